"""Click command modules for the relready CLI."""
