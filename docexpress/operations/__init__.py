"""File operations, one per job type."""
