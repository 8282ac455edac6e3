"""Application configuration for keyhaven."""
