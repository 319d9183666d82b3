"""py-cord integration: settings host adapter and the settings cog."""
