"""
.. include:: ../README.md
"""

__all__ = [
    "manifest",
    "generators",
    "generate",
    "registry",
    "values",
    "exceptions",
    "config",
    "context",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
