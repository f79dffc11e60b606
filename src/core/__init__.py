"""Shared infrastructure: logging and error classification."""
