"""Core mocking pipeline."""
