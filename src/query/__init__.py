"""Query layer.

This package exposes search over the cached metadata snapshot.
"""
