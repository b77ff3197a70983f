"""Credential record exports."""

from .oauth import (
    ConsumerKeyPair,
    OAuth1Credential,
    OAuth2Credential,
    OAuth2TokenResponse,
)

__all__ = [
    "ConsumerKeyPair",
    "OAuth1Credential",
    "OAuth2Credential",
    "OAuth2TokenResponse",
]
