"""
Media Decrypt REST API.

FastAPI application exposing decode, download and health endpoints.
"""

from media_decrypt.api.app import create_app

__all__ = ["create_app"]
