"""Storage and indexing layer.

This package persists per-origin metadata snapshots, builds id indexes,
and evaluates nested filters for search and templating.
"""
