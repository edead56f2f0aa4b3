"""App Update Checker - find newer versions of installed applications."""

from .constants import __version__

__all__ = ["__version__"]
