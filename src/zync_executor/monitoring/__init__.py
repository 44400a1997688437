"""Logging setup for the executor."""
