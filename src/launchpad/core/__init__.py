"""Shared infrastructure: exceptions and logging."""
