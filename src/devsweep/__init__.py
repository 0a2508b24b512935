"""devsweep - find and safely reclaim developer tool caches."""

__version__ = "0.3.0"
