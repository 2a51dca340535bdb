"""Utility helpers shared across vingest modules."""
