"""Security helpers: key derivation, key providers and AEAD decryption.

This package provides:
- PBKDF2-HMAC-SHA256 (default) or Argon2id key derivation
- pluggable passphrase/salt providers (environment, OS keystore, demo)
- AES-256-GCM envelope decryption with buffered and streamed strategies
"""

from .kdf import KeyDeriver, generate_salt
from .aead import AeadCodec, DecryptStrategy
from .providers import (
    DemoKeyProvider,
    EnvironmentKeyProvider,
    KeyMaterial,
    KeyProvider,
    KeyringKeyProvider,
    build_key_provider,
)

__all__ = [
    "KeyDeriver",
    "generate_salt",
    "AeadCodec",
    "DecryptStrategy",
    "KeyMaterial",
    "KeyProvider",
    "EnvironmentKeyProvider",
    "KeyringKeyProvider",
    "DemoKeyProvider",
    "build_key_provider",
]
