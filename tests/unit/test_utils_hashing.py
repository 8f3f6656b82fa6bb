"""Unit tests for hashing helpers."""

import hashlib

from fleet_intake.utils.hashing import (
    calculate_bytes_sha256,
    commit_idempotency_key,
    payload_digest,
)


class TestCalculateBytesSha256:
    def test_matches_hashlib(self):
        assert calculate_bytes_sha256(b"work order") == hashlib.sha256(b"work order").hexdigest()


class TestCommitIdempotencyKey:
    def test_stable_for_same_inputs(self):
        sha = calculate_bytes_sha256(b"pdf bytes")
        assert commit_idempotency_key(sha, "T1") == commit_idempotency_key(sha, "T1")

    def test_differs_per_tenant(self):
        sha = calculate_bytes_sha256(b"pdf bytes")
        assert commit_idempotency_key(sha, "T1") != commit_idempotency_key(sha, "T2")

    def test_length(self):
        assert len(commit_idempotency_key("abc", "T1")) == 40

    def test_reviewed_digest_changes_key(self):
        sha = calculate_bytes_sha256(b"pdf bytes")
        original = payload_digest({"truck": {"vin": "1FTFW1ET1EKE12340"}})
        corrected = payload_digest({"truck": {"vin": "1FTFW1ET1EKE12345"}})

        assert commit_idempotency_key(sha, "T1", original) != commit_idempotency_key(sha, "T1", corrected)
        assert commit_idempotency_key(sha, "T1", original) != commit_idempotency_key(sha, "T1")


class TestPayloadDigest:
    def test_ignores_key_order(self):
        assert payload_digest({"a": 1, "b": [1, 2]}) == payload_digest({"b": [1, 2], "a": 1})

    def test_detects_value_change(self):
        assert payload_digest({"year": 2019}) != payload_digest({"year": 2021})
