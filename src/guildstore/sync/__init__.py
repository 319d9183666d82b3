"""Host interface, sync engine and listener lifecycle."""
