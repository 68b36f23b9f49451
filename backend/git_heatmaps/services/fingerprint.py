import hashlib
from datetime import date

from pydantic import SecretStr

from ..models.contributions import Provider

FINGERPRINT_LENGTH = 16


def fingerprint(credential: str | SecretStr) -> str:
    """
    One-way, fixed-length identifier for a credential.

    First 16 hex characters of its SHA-256 digest (64 bits), stable across
    restarts. Used in cache keys and log lines in place of the raw token.
    """
    if isinstance(credential, SecretStr):
        credential = credential.get_secret_value()
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def build_cache_key(
    provider: Provider,
    credential: str | SecretStr,
    from_day: date,
    to_day: date,
    identity: str | None = None,
) -> str:
    """
    Format: contrib:{gh|gl}:{fingerprint}:{from}_{to}

    With a caller-named identity the credential no longer determines whose
    data is cached: contrib:{gh|gl}:{fingerprint}:{identity}:{from}_{to}.
    """
    scope = f"{fingerprint(credential)}:{identity.lower()}" if identity else fingerprint(credential)
    return f"contrib:{provider.tag}:{scope}:{from_day.isoformat()}_{to_day.isoformat()}"
