"""remotescan: client for a remote security-scanning service."""

__app_name__ = "remotescan"
__version__ = "0.1.0"
