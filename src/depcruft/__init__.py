"""depcruft - find and clean stale package-manager cache artifacts."""

__version__ = "0.1.0"
