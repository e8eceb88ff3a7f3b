"""Shared error messages and prompt suggestions."""
