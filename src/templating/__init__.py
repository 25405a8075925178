"""Template rewriting layer.

This package turns numeric ids inside context payloads into symbolic
template references built from the active metadata index.
"""
