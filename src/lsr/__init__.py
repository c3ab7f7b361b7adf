"""Lockstep Reader: side-by-side document translation with lock-step scrolling."""

__version__ = "0.1.0"
