"""Domain models for vingest."""
