"""Configuration and shared exception types."""
