"""Process infrastructure (logging)."""
