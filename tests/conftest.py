"""Shared fixtures for unit and integration tests."""

import json

import httpx
import pytest

from sealrelay.core.config import Settings
from sealrelay.security.aead import AeadCodec
from sealrelay.pipeline.envelope import DEMO_RECORDS
from sealrelay.security.kdf import KeyDeriver

DATA_URL = "https://source.example.test/webhook/get-encrypted"
SINK_URL = "https://sink.example.test/webhook/process"
CLEAR_URL = "https://sink.example.test/webhook/clear"
HEALTH_URL = "https://sink.example.test/healthprocess"
RAW_URL = "https://source.example.test/webhook/get-data"

PASSPHRASE = b"unit-test-passphrase"
SALT = b"unit-test-salt"
# low iteration count keeps the suite fast
FAST_ITERATIONS = 1_000


@pytest.fixture
def settings() -> Settings:
    return Settings(
        encrypted_data_url=DATA_URL,
        sink_url=SINK_URL,
        clear_url=CLEAR_URL,
        data_url=RAW_URL,
        request_timeout=2.0,
        health_timeout=1.0,
        kdf_iterations=FAST_ITERATIONS,
    )


@pytest.fixture
def deriver() -> KeyDeriver:
    return KeyDeriver(iterations=FAST_ITERATIONS)


@pytest.fixture
def key(deriver) -> bytes:
    return deriver.derive(PASSPHRASE, SALT)


@pytest.fixture
def codec() -> AeadCodec:
    return AeadCodec()


def source_body(wire: dict) -> dict:
    """Wrap a wire envelope the way the data source serves it."""
    algorithm = wire.get("algorithm", "aes-256-gcm")
    encrypted = {k: v for k, v in wire.items() if k != "algorithm"}
    return {"success": True, "data": {"encrypted": encrypted, "algorithm": algorithm}}


def demo_body() -> dict:
    """Plaintext demo batch in the shape the data source serves it."""
    return {"mockData": True, "users": [dict(r) for r in DEMO_RECORDS]}


def json_response(status: int, body) -> httpx.Response:
    return httpx.Response(status, content=json.dumps(body).encode("utf-8"),
                          headers={"Content-Type": "application/json"})
