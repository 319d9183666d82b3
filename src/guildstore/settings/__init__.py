"""Settings provider, value store, row formatting and read cache."""
