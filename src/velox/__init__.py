"""Velox - cancellable, progress-streaming directory scanner."""

__version__ = "0.1.0"
