"""Seam to the external auth collaborator.

Sessions are owned elsewhere. This module only carries the caller's
credentials through unchanged and asks an Authenticator whether an identity
exists for them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol

INGEST_SECRET_HEADER = "x-ingest-secret"


@dataclass(frozen=True)
class AuthContext:
    """Credentials presented by the caller, forwarded verbatim downstream."""

    cookie: Optional[str] = None
    ingest_secret: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "AuthContext":
        return cls(
            cookie=headers.get("cookie") or None,
            ingest_secret=headers.get(INGEST_SECRET_HEADER) or None,
        )

    def forward_headers(self) -> Dict[str, str]:
        h: Dict[str, str] = {}
        if self.cookie:
            h["cookie"] = self.cookie
        if self.ingest_secret:
            h[INGEST_SECRET_HEADER] = self.ingest_secret
        return h


@dataclass(frozen=True)
class Identity:
    mode: str  # "system" or "user"
    subject: Optional[str] = None


class Authenticator(Protocol):
    def authenticate(self, auth: AuthContext) -> Optional[Identity]:
        ...


class CredentialPresenceAuthenticator:
    """Accept any caller that presents a session cookie or an ingest secret.

    The report backend re-checks the forwarded credentials, so this only
    rejects callers that could never be authorised.
    """

    def authenticate(self, auth: AuthContext) -> Optional[Identity]:
        if auth.ingest_secret:
            return Identity(mode="system")
        if auth.cookie:
            return Identity(mode="user")
        return None
