"""Top-level package for movie-vault.

movie-vault stores timeline documents and their thumbnails as paired files
and keeps a small metadata index in sync with them.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
