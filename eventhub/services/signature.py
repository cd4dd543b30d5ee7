"""
Command signature verification.

Verification is pluggable: the router accepts anything with a
``verify(command) -> bool`` method. The default verifier checks an
HMAC-SHA256 of the command's canonical JSON with a shared secret.
"""

import hashlib
import hmac
import json
import logging
from typing import Protocol

from eventhub.schemas.command import Command

logger = logging.getLogger(__name__)


class SignatureVerifier(Protocol):
    def verify(self, command: Command) -> bool: ...


def canonical_payload(command: Command) -> str:
    """Serialize the signed fields with sorted keys and no whitespace."""
    return json.dumps(
        {
            "ops": command.ops.value,
            "code": command.code,
            "user": command.user,
            "created_at": command.created_at.isoformat() if command.created_at else None,
            "data": command.data,
            "tags": command.tags,
        },
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )


class HmacSignatureVerifier:
    """HMAC-SHA256 over ``canonical_payload`` with a shared secret."""

    def __init__(self, secret: str):
        self.secret = secret

    def sign(self, command: Command) -> str:
        return hmac.new(
            self.secret.encode(),
            canonical_payload(command).encode(),
            hashlib.sha256,
        ).hexdigest()

    def verify(self, command: Command) -> bool:
        if not command.sig:
            return False
        return hmac.compare_digest(self.sign(command), command.sig)


class AcceptAllVerifier:
    """Used when no signing secret is configured."""

    def verify(self, command: Command) -> bool:
        return True


def build_verifier(secret: str | None) -> SignatureVerifier:
    if not secret:
        logger.warning("No signing secret configured; command signatures are not verified")
        return AcceptAllVerifier()
    return HmacSignatureVerifier(secret)
