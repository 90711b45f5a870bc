"""Shared helpers for the workflow engine."""
