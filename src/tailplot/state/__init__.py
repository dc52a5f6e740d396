"""State/store layer.

This package is the single source of truth for the series data shared by
ingestion (writer) and rendering (reader).
"""
