"""Share media files between a host and connected clients over TCP, with web and desktop control panels."""

__version__ = "0.1.0"
__all__ = ["__version__"]