from __future__ import annotations

import secrets
import time
from enum import Enum
from hashlib import sha256


class KeyMode(str, Enum):
    content_addressed = "content_addressed"
    bypass_unique = "bypass_unique"


def compute_bytes_sha256(content: bytes, block_size: int = 1 << 20) -> str:
    hasher = sha256()
    view = memoryview(content)
    for offset in range(0, len(view), block_size):
        hasher.update(view[offset : offset + block_size])
    return hasher.hexdigest()


def build_key(content: bytes, mode: KeyMode | str = KeyMode.content_addressed) -> str:
    """Derive the deduplication key handed to the caller.

    ``bypass_unique`` salts the digest with the wall clock and a random token
    so every call differs; it exists to exercise delivery end to end.
    """
    resolved = KeyMode(mode)
    if resolved == KeyMode.content_addressed:
        return compute_bytes_sha256(content)
    salt = f"{time.time_ns()}:{secrets.token_hex(16)}".encode("utf-8")
    hasher = sha256()
    hasher.update(content)
    hasher.update(b"\x00")
    hasher.update(salt)
    return hasher.hexdigest()


def key_mode_for(bypass: bool) -> KeyMode:
    return KeyMode.bypass_unique if bypass else KeyMode.content_addressed
