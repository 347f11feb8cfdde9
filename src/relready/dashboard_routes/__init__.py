"""Route modules for the relready dashboard."""
