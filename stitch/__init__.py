"""stitch - intent records bound to git history."""

__version__ = "0.4.0"
