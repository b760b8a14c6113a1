"""
Media Decrypt - Encrypted media recovery service.

Derives media keys, verifies and decrypts encrypted media blobs, and
serves the plaintext through one-time or persistent download handles.
"""

from media_decrypt.version import __version__

# API module is available but not exported by default
# Import explicitly: from media_decrypt.api import create_app

__all__ = ["__version__"]
