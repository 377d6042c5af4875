# Overview: Caller identity resolution, injected into the app instead of a hard identity-provider dependency.

"""
The core trusts an (user_id, role) pair handed to it by an Authorizer.

Any object with resolve(token) -> Identity | None can be passed to
create_app(authorizer=...). The default TokenAuthorizer serves a static
token table from config, which is enough for kiosks and tests; a deployment
fronted by an external identity service plugs in its own resolver.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Mapping, NamedTuple, Optional, Protocol

from .permissions import normalize_role


class Identity(NamedTuple):
    user_id: str
    role: str


class Authorizer(Protocol):
    def resolve(self, token: str) -> Optional[Identity]:
        ...


def hash_token(token: str) -> str:
    """
    SHA-256 of the bearer token.

    Tokens are high-entropy, so a fast one-way hash is sufficient.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def parse_token_table(raw: str) -> dict[str, Identity]:
    """
    Parse "token:user_id:ROLE;token:user_id:ROLE".

    Entries with an unknown role are rejected, not silently dropped.
    """
    table: dict[str, Identity] = {}
    if not raw:
        return table
    for chunk in raw.split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        parts = chunk.split(":")
        if len(parts) != 3 or not all(p.strip() for p in parts):
            raise ValueError(f"Malformed API token entry: {chunk!r}")
        token, user_id, role = (p.strip() for p in parts)
        normalized = normalize_role(role)
        if normalized is None:
            raise ValueError(f"Unknown role {role!r} for user {user_id!r}")
        table[token] = Identity(user_id=user_id, role=normalized)
    return table


class TokenAuthorizer:
    """Resolve bearer tokens against a fixed table; only digests are kept in memory."""

    def __init__(self, tokens: Mapping[str, Identity]):
        self._by_digest = {
            hash_token(token): Identity(identity.user_id, normalize_role(identity.role) or identity.role)
            for token, identity in tokens.items()
        }

    @classmethod
    def from_config(cls, raw) -> "TokenAuthorizer":
        if isinstance(raw, Mapping):
            return cls(raw)
        return cls(parse_token_table(raw or ""))

    def resolve(self, token: str) -> Optional[Identity]:
        if not token:
            return None
        digest = hash_token(token)
        for known_digest, identity in self._by_digest.items():
            if secrets.compare_digest(known_digest, digest):
                return identity
        return None
