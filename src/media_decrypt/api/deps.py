"""
Route dependencies.

Components are built once by create_app and kept on app.state.
"""

from fastapi import Request

from media_decrypt.artifacts import ArtifactStore, RetentionSweeper
from media_decrypt.core.config import ServiceConfig
from media_decrypt.service import MediaDecryptService


def get_config(request: Request) -> ServiceConfig:
    return request.app.state.config


def get_service(request: Request) -> MediaDecryptService:
    return request.app.state.service


def get_store(request: Request) -> ArtifactStore:
    return request.app.state.service.store


def get_sweeper(request: Request) -> RetentionSweeper:
    return request.app.state.sweeper
