from __future__ import annotations

from hashlib import sha256

import pytest

from curtailment_watch.io.idempotency import (
    KeyMode,
    build_key,
    compute_bytes_sha256,
    key_mode_for,
)

CONTENT = b"date,he,forecast\n2025-08-10,24,95.00\n"


def test_content_addressed_key_is_stable() -> None:
    first = build_key(CONTENT, KeyMode.content_addressed)
    second = build_key(bytes(CONTENT), "content_addressed")

    assert first == second
    assert first == sha256(CONTENT).hexdigest()
    assert len(first) == 64


def test_content_addressed_key_changes_with_content() -> None:
    assert build_key(CONTENT) != build_key(CONTENT + b"2025-08-11,1,60.00\n")


def test_bypass_unique_key_differs_on_every_call() -> None:
    keys = {build_key(CONTENT, KeyMode.bypass_unique) for _ in range(25)}

    assert len(keys) == 25
    assert build_key(CONTENT) not in keys


def test_compute_bytes_sha256_matches_across_block_sizes() -> None:
    payload = bytes(range(256)) * 50
    assert compute_bytes_sha256(payload, block_size=7) == compute_bytes_sha256(payload)
    assert compute_bytes_sha256(b"") == sha256(b"").hexdigest()


def test_key_mode_for_bypass_flag() -> None:
    assert key_mode_for(False) == KeyMode.content_addressed
    assert key_mode_for(True) == KeyMode.bypass_unique


def test_build_key_rejects_unknown_mode() -> None:
    with pytest.raises(ValueError):
        build_key(CONTENT, "sometimes_unique")
