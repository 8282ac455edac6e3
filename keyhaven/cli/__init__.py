"""Command-line interface for keyhaven."""
