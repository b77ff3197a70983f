"""Load bootstrap OAuth tokens into the durable credential store.

The one-time login (for example ``garth``) leaves two JSON files behind,
``oauth1_token.json`` and ``oauth2_token.json``. This tool validates both and
writes them under the record identifiers the broker reads.

Example usages::

    # Validate and upload tokens from the default directory.
    python -m scripts.upload_tokens

    # Only validate, printing the token expiry times.
    python -m scripts.upload_tokens --token-dir /tmp/garth --dry-run
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from garmin_broker.core.config import (
    OAUTH1_TOKEN_KEY,
    OAUTH2_TOKEN_KEY,
    StorageSettings,
)
from garmin_broker.dependencies import build_credential_store
from garmin_broker.models import OAuth1Credential, OAuth2Credential

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_RUNTIME_ERROR = 5

OAUTH1_FILE = "oauth1_token.json"
OAUTH2_FILE = "oauth2_token.json"


def _format_epoch(value: int) -> str:
    return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Upload bootstrap OAuth tokens to the credential store."
    )
    parser.add_argument(
        "--token-dir",
        default=Path.home() / ".garminconnect",
        type=Path,
        help="Directory holding oauth1_token.json and oauth2_token.json.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the token files without writing them.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    token_dir: Path = args.token_dir

    try:
        oauth1_raw = (token_dir / OAUTH1_FILE).read_bytes()
        oauth2_raw = (token_dir / OAUTH2_FILE).read_bytes()
    except FileNotFoundError as exc:
        print(
            f"Could not read tokens from {token_dir}: {exc}\n"
            "Run the bootstrap login first to generate them.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        oauth1 = OAuth1Credential.model_validate_json(oauth1_raw)
        oauth2 = OAuth2Credential.model_validate_json(oauth2_raw)
    except ValidationError as exc:
        print(
            "Token validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    print(f"Found OAuth tokens in {token_dir}")
    print(f"  Access token expires:  {_format_epoch(oauth2.expires_at)}")
    print(f"  Refresh token expires: {_format_epoch(oauth2.refresh_token_expires_at)}")

    if args.dry_run:
        return EXIT_OK

    store = build_credential_store(StorageSettings())
    store.write(OAUTH1_TOKEN_KEY, oauth1.model_dump_json().encode("utf-8"))
    store.write(OAUTH2_TOKEN_KEY, oauth2.model_dump_json().encode("utf-8"))
    print(f"Uploaded {OAUTH1_TOKEN_KEY} and {OAUTH2_TOKEN_KEY}.")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
