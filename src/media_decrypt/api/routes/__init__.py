"""
API route modules.
"""

from media_decrypt.api.routes import decode, downloads, health

__all__ = ["decode", "downloads", "health"]
