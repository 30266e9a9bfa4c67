"""Catalog metadata sources for track pools."""
