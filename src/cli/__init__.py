"""Command-line interface for the progression engine."""
