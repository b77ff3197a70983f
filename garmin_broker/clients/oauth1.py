"""
OAuth 1.0a request signing (HMAC-SHA1).

The exchange endpoint validates signatures byte-for-byte, so every step of
the canonical form is built explicitly here.
"""

from __future__ import annotations

import base64
import hmac
import secrets
import time
from dataclasses import dataclass
from hashlib import sha1
from typing import Callable, Dict, Optional
from urllib.parse import quote

from garmin_broker.models import ConsumerKeyPair, OAuth1Credential

SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"


def percent_encode(value: str) -> str:
    """RFC 3986 encoding: only ``A-Z a-z 0-9 - . _ ~`` are left as-is.

    ``quote`` with an empty safe set also escapes ``!'()*``, which plain
    URL encoders leave untouched but OAuth 1.0a requires as ``%21`` etc.
    """
    return quote(value, safe="")


def generate_nonce() -> str:
    """16 random bytes as 32 lowercase hex characters."""
    return secrets.token_hex(16)


@dataclass(frozen=True)
class SignedRequest:
    """Ephemeral result of signing one request. Never persisted."""

    method: str
    url: str
    nonce: str
    timestamp: str
    signature: str
    header: str


class OAuth1Signer:
    """Build ``Authorization: OAuth ...`` header values for body-less requests."""

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], str] = generate_nonce,
    ) -> None:
        self._clock = clock
        self._nonce_factory = nonce_factory

    def sign(
        self,
        consumer: ConsumerKeyPair,
        token: OAuth1Credential,
        method: str,
        url: str,
        *,
        nonce: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> SignedRequest:
        method = method.upper()
        nonce = nonce if nonce is not None else self._nonce_factory()
        timestamp = timestamp if timestamp is not None else str(int(self._clock()))

        params: Dict[str, str] = {
            "oauth_consumer_key": consumer.consumer_key,
            "oauth_nonce": nonce,
            "oauth_signature_method": SIGNATURE_METHOD,
            "oauth_timestamp": timestamp,
            "oauth_token": token.oauth_token,
            "oauth_version": OAUTH_VERSION,
        }

        encoded = sorted(
            (percent_encode(key), percent_encode(value)) for key, value in params.items()
        )
        param_string = "&".join(f"{key}={value}" for key, value in encoded)
        base_string = "&".join(
            [method, percent_encode(url), percent_encode(param_string)]
        )
        signing_key = (
            f"{percent_encode(consumer.consumer_secret)}"
            f"&{percent_encode(token.oauth_token_secret)}"
        )
        digest = hmac.new(
            signing_key.encode("utf-8"), base_string.encode("utf-8"), sha1
        ).digest()
        signature = base64.b64encode(digest).decode("ascii")

        params["oauth_signature"] = signature
        header = "OAuth " + ", ".join(
            f'{percent_encode(key)}="{percent_encode(params[key])}"'
            for key in sorted(params)
        )
        return SignedRequest(
            method=method,
            url=url,
            nonce=nonce,
            timestamp=timestamp,
            signature=signature,
            header=header,
        )


__all__ = [
    "OAuth1Signer",
    "SignedRequest",
    "generate_nonce",
    "percent_encode",
]
