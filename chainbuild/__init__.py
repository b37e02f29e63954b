"""Build and release pipeline for chain applications."""

from chainbuild.__version__ import __version__

__all__ = ["__version__"]
