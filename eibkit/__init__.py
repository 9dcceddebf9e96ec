"""Building blocks for assembling edge operating system images."""

__version__ = "0.1.0"

__all__ = ["download", "fileio", "helm", "workspace"]