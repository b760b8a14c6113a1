"""
Media Decrypt Fetch Module.

HTTP retrieval of encrypted media blobs.
"""

from media_decrypt.fetch.client import MediaFetcher

__all__ = ["MediaFetcher"]
