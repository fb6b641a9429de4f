"""Key derivation for envelope decryption keys."""
import os
from typing import Dict, Union

from argon2.low_level import Type, hash_secret_raw
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from sealrelay.core.exceptions import ConfigurationError

PBKDF2_SHA256 = "pbkdf2-sha256"
ARGON2ID = "argon2id"


def generate_salt(length: int = 16) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def _as_bytes(value: Union[str, bytes], what: str) -> bytes:
    if isinstance(value, str):
        value = value.encode("utf-8")
    if not value:
        raise ConfigurationError(f"{what} must not be empty")
    return value


def derive_pbkdf2_key(password: bytes, salt: bytes, iterations: int = 100_000, key_len: int = 32) -> bytes:
    """Derive a key with PBKDF2-HMAC-SHA256."""
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=key_len, salt=salt, iterations=iterations)
    return kdf.derive(password)


def derive_argon2_key(
    password: bytes,
    salt: bytes,
    time_cost: int = 3,
    memory_cost: int = 65536,
    parallelism: int = 1,
    key_len: int = 32,
) -> bytes:
    """
    Derive a key from a password using Argon2id.
    Returns raw derived key bytes.
    """
    return hash_secret_raw(
        secret=password,
        salt=salt,
        time_cost=time_cost,
        memory_cost=memory_cost,
        parallelism=parallelism,
        hash_len=key_len,
        type=Type.ID,
    )


class KeyDeriver:
    """
    Turns a passphrase/salt pair into a fixed-length symmetric key.

    Stateless apart from its parameters, so one instance can be shared by
    concurrent flows. Keys are recomputed on every call and never cached.
    """

    def __init__(
        self,
        algorithm: str = PBKDF2_SHA256,
        iterations: int = 100_000,
        key_len: int = 32,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 1,
    ):
        if algorithm not in (PBKDF2_SHA256, ARGON2ID):
            raise ConfigurationError(f"unsupported kdf: {algorithm}")
        self.algorithm = algorithm
        self.iterations = iterations
        self.key_len = key_len
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism

    def derive(self, passphrase: Union[str, bytes], salt: Union[str, bytes]) -> bytes:
        password = _as_bytes(passphrase, "passphrase")
        salt = _as_bytes(salt, "salt")

        if self.algorithm == ARGON2ID:
            return derive_argon2_key(
                password,
                salt,
                time_cost=self.time_cost,
                memory_cost=self.memory_cost,
                parallelism=self.parallelism,
                key_len=self.key_len,
            )
        return derive_pbkdf2_key(password, salt, iterations=self.iterations, key_len=self.key_len)

    def params(self) -> Dict:
        return kdf_params_to_dict(self)


def kdf_params_to_dict(deriver: KeyDeriver) -> Dict:
    if deriver.algorithm == ARGON2ID:
        return {
            "algo": ARGON2ID,
            "time": deriver.time_cost,
            "memory": deriver.memory_cost,
            "parallelism": deriver.parallelism,
            "length": deriver.key_len,
        }
    return {
        "algo": PBKDF2_SHA256,
        "iterations": deriver.iterations,
        "length": deriver.key_len,
    }
