"""Unit tests for credential fingerprints and cache keys."""
import hashlib
import re
from datetime import date

from pydantic import SecretStr

from git_heatmaps.models.contributions import Provider
from git_heatmaps.services.fingerprint import build_cache_key, fingerprint


def test_fingerprint_is_short_hex_and_deterministic():
    fp = fingerprint("glpat-secret-token")
    assert re.fullmatch(r"[0-9a-f]{16}", fp)
    assert fp == fingerprint("glpat-secret-token")
    assert fp == hashlib.sha256(b"glpat-secret-token").hexdigest()[:16]


def test_different_credentials_differ():
    assert fingerprint("token-a") != fingerprint("token-b")


def test_secret_str_matches_plain_string():
    assert fingerprint(SecretStr("ghp_abc")) == fingerprint("ghp_abc")


def test_cache_key_format():
    key = build_cache_key(Provider.GITHUB, "ghp_abc", date(2025, 1, 1), date(2025, 12, 31))
    assert key == f"contrib:gh:{fingerprint('ghp_abc')}:2025-01-01_2025-12-31"


def test_cache_key_never_contains_credential():
    key = build_cache_key(Provider.GITLAB, "glpat-very-secret", date(2025, 6, 1), date(2025, 6, 2))
    assert key.startswith("contrib:gl:")
    assert "glpat-very-secret" not in key


def test_same_token_different_range_or_provider_differs():
    base = build_cache_key(Provider.GITHUB, "t", date(2025, 1, 1), date(2025, 1, 31))
    assert base != build_cache_key(Provider.GITHUB, "t", date(2025, 1, 1), date(2025, 2, 1))
    assert base != build_cache_key(Provider.GITLAB, "t", date(2025, 1, 1), date(2025, 1, 31))


def test_named_identity_scopes_the_key():
    alice = build_cache_key(Provider.GITHUB, "t", date(2025, 1, 1), date(2025, 1, 31), identity="Alice")
    assert alice == f"contrib:gh:{fingerprint('t')}:alice:2025-01-01_2025-01-31"
    assert alice != build_cache_key(Provider.GITHUB, "t", date(2025, 1, 1), date(2025, 1, 31), identity="bob")
    assert alice != build_cache_key(Provider.GITHUB, "t", date(2025, 1, 1), date(2025, 1, 31))
