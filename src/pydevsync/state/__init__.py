"""State/store layer.

This package is the single source of truth for how subscription events,
snapshot polls and bulk loads are merged into the normalized console cache.
"""
