"""Session identity, bucket derivation and topic naming."""

from __future__ import annotations

import hashlib
import re
import secrets
from dataclasses import dataclass, field

from eth_keys import keys

PROTOCOL_NAMESPACE = "iLayer"
PROTOCOL_VERSION = 1
MESSAGE_FORMAT = "proto"
REQUEST_SEGMENT = "rfq"

BUCKET_LENGTH = 8
_BUCKET_RE = re.compile(rf"[0-9a-f]{{{BUCKET_LENGTH}}}")


@dataclass(frozen=True)
class Identity:
    """A throwaway secp256k1 keypair, one per process."""

    private_key: keys.PrivateKey = field(repr=False)

    @property
    def public_key(self) -> str:
        """Compressed public key as 0x-prefixed hex."""
        return "0x" + self.private_key.public_key.to_compressed_bytes().hex()

    @property
    def address(self) -> str:
        return self.private_key.public_key.to_checksum_address()


def new_identity() -> Identity:
    return Identity(private_key=keys.PrivateKey(secrets.token_bytes(32)))


def bucket_of(public_key: str) -> str:
    """First 8 hex chars of SHA-256 over the public key string.

    The digest covers the textual key (as sent on the wire), so any
    participant holding the string derives the same bucket.
    """
    digest = hashlib.sha256(public_key.encode("utf-8")).hexdigest()
    return digest[:BUCKET_LENGTH]


def topic_for(bucket: str) -> str:
    return f"/{PROTOCOL_NAMESPACE}/{PROTOCOL_VERSION}/{bucket}/{MESSAGE_FORMAT}"


REQUEST_TOPIC = topic_for(REQUEST_SEGMENT)


def is_valid_bucket(value: str) -> bool:
    return bool(_BUCKET_RE.fullmatch(value or ""))
