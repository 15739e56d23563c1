"""Multi-tenant short-video feed backend."""

__version__ = "0.1.0"
