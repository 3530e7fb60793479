"""Shared helpers for mapping comparison."""
