"""Core audit engine infrastructure."""
