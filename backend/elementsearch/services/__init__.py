"""Indexing services: resolver, codec, persistence, lifecycle, rebuild and live sync."""
