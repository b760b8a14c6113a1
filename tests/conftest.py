"""Pytest configuration and fixtures."""

import base64
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from media_decrypt.artifacts import ArtifactStore
from media_decrypt.core.config import StoreConfig

# 32-byte key 0x00..0x1f, image type, plaintext b"decrypted media payload"
SAMPLE_MEDIA_KEY = base64.b64encode(bytes(range(32))).decode("ascii")
SAMPLE_PLAINTEXT = b"decrypted media payload"
SAMPLE_BLOB = bytes.fromhex(
    "70e138d3c3215c3afcfbb39d897d0cac967e7311ef243ce0da27a491eff4eab7"
    "04f40694d9676bdf4028"
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store_config(temp_dir: Path) -> StoreConfig:
    """Provide a one-time store configuration rooted in a temporary directory."""
    return StoreConfig(storage_dir=temp_dir / "downloads", one_time_download=True)


@pytest.fixture
def artifact_store(store_config: StoreConfig) -> Generator[ArtifactStore, None, None]:
    """Provide an ArtifactStore instance with a temporary directory."""
    store = ArtifactStore(config=store_config)
    yield store
    store.close()


@pytest.fixture
def sample_media_key() -> str:
    """Base64 media key matching sample_blob."""
    return SAMPLE_MEDIA_KEY


@pytest.fixture
def sample_blob() -> bytes:
    """Encrypted image blob (ciphertext plus 10-byte MAC)."""
    return SAMPLE_BLOB


@pytest.fixture
def sample_plaintext() -> bytes:
    """Plaintext contained in sample_blob."""
    return SAMPLE_PLAINTEXT
