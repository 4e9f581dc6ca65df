"""Shared infrastructure: logging, database, exceptions."""
