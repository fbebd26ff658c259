"""HitFinder: keyword hit navigation over chunked documents."""

__version__ = "0.1.0"
