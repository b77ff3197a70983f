"""
Domain models for OAuth credential persistence.

Field names follow the JSON layout written by the external bootstrap so the
stored records can be read without any translation.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OAuth1Credential(BaseModel):
    """Long-lived OAuth1 token provisioned by the operator. Never rewritten here."""

    model_config = ConfigDict(frozen=True)

    oauth_token: str
    oauth_token_secret: str
    mfa_token: Optional[str] = None
    mfa_expiration_timestamp: Optional[str] = None
    domain: str = "garmin.com"


class OAuth2Credential(BaseModel):
    """Short-lived bearer token pair with absolute expiry timestamps."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    scope: str = ""
    jti: str = Field("", description="Issuer-assigned token identifier.")
    expires_in: int
    expires_at: int = Field(..., description="Absolute epoch seconds.")
    refresh_token_expires_in: int
    refresh_token_expires_at: int = Field(..., description="Absolute epoch seconds.")

    def is_usable(self, now: float, margin: int) -> bool:
        """True when the access token stays valid for at least ``margin`` seconds."""
        return self.expires_at > now + margin


class OAuth2TokenResponse(BaseModel):
    """Raw payload returned by the token exchange endpoint."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    scope: str = ""
    jti: str = ""
    expires_in: int
    refresh_token_expires_in: int
    expires_at: Optional[int] = None
    refresh_token_expires_at: Optional[int] = None

    def to_credential(self, now: int) -> OAuth2Credential:
        """Resolve relative lifetimes against ``now`` where absolute ones are missing."""
        expires_at = self.expires_at or now + self.expires_in
        refresh_expires_at = (
            self.refresh_token_expires_at or now + self.refresh_token_expires_in
        )
        return OAuth2Credential(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            token_type=self.token_type,
            scope=self.scope,
            jti=self.jti,
            expires_in=self.expires_in,
            expires_at=expires_at,
            refresh_token_expires_in=self.refresh_token_expires_in,
            refresh_token_expires_at=refresh_expires_at,
        )


class ConsumerKeyPair(BaseModel):
    """Application-level OAuth1 consumer key shared by every account."""

    model_config = ConfigDict(frozen=True)

    consumer_key: str
    consumer_secret: str


__all__ = [
    "ConsumerKeyPair",
    "OAuth1Credential",
    "OAuth2Credential",
    "OAuth2TokenResponse",
]
