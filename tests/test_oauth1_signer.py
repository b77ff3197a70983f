try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import base64
import hmac
import re
from hashlib import sha1

import pytest

from garmin_broker.clients.oauth1 import OAuth1Signer, generate_nonce, percent_encode
from garmin_broker.models import ConsumerKeyPair, OAuth1Credential

EXCHANGE_URL = "https://connectapi.garmin.com/oauth-service/oauth/exchange/user/2.0"

CONSUMER = ConsumerKeyPair(consumer_key="ck", consumer_secret="cs")
TOKEN = OAuth1Credential(oauth_token="tok", oauth_token_secret="ts")


@pytest.mark.parametrize(
    ("raw", "encoded"),
    [
        ("!", "%21"),
        ("'", "%27"),
        ("(", "%28"),
        (")", "%29"),
        ("*", "%2A"),
        ("a b+c/d=", "a%20b%2Bc%2Fd%3D"),
        ("AZaz09-._~", "AZaz09-._~"),
        ("é", "%C3%A9"),
    ],
)
def test_percent_encode(raw: str, encoded: str) -> None:
    assert percent_encode(raw) == encoded


def test_generate_nonce_is_32_lowercase_hex_chars() -> None:
    nonce = generate_nonce()
    assert re.fullmatch(r"[0-9a-f]{32}", nonce)
    assert nonce != generate_nonce()


def test_signature_matches_canonical_base_string() -> None:
    signer = OAuth1Signer()

    signed = signer.sign(
        CONSUMER, TOKEN, "post", EXCHANGE_URL, nonce="abc", timestamp="1000"
    )

    base_string = (
        "POST&https%3A%2F%2Fconnectapi.garmin.com%2Foauth-service%2Foauth"
        "%2Fexchange%2Fuser%2F2.0&oauth_consumer_key%3Dck%26oauth_nonce%3Dabc"
        "%26oauth_signature_method%3DHMAC-SHA1%26oauth_timestamp%3D1000"
        "%26oauth_token%3Dtok%26oauth_version%3D1.0"
    )
    expected = base64.b64encode(
        hmac.new(b"cs&ts", base_string.encode("utf-8"), sha1).digest()
    ).decode("ascii")

    assert signed.method == "POST"
    assert signed.signature == expected
    assert signed.header == (
        'OAuth oauth_consumer_key="ck", oauth_nonce="abc", '
        f'oauth_signature="{percent_encode(expected)}", '
        'oauth_signature_method="HMAC-SHA1", oauth_timestamp="1000", '
        'oauth_token="tok", oauth_version="1.0"'
    )


def test_signing_key_escapes_reserved_characters_in_secrets() -> None:
    consumer = ConsumerKeyPair(consumer_key="ck", consumer_secret="c&s!")
    token = OAuth1Credential(oauth_token="tok", oauth_token_secret="t s*")

    signed = OAuth1Signer().sign(
        consumer, token, "POST", EXCHANGE_URL, nonce="abc", timestamp="1000"
    )
    other = OAuth1Signer().sign(
        CONSUMER, TOKEN, "POST", EXCHANGE_URL, nonce="abc", timestamp="1000"
    )

    base_string = "&".join(
        [
            "POST",
            percent_encode(EXCHANGE_URL),
            percent_encode(
                "oauth_consumer_key=ck&oauth_nonce=abc&oauth_signature_method=HMAC-SHA1"
                "&oauth_timestamp=1000&oauth_token=tok&oauth_version=1.0"
            ),
        ]
    )
    expected = base64.b64encode(
        hmac.new(b"c%26s%21&t%20s%2A", base_string.encode("utf-8"), sha1).digest()
    ).decode("ascii")
    assert signed.signature == expected
    assert signed.signature != other.signature


def test_injected_clock_and_nonce_make_output_deterministic() -> None:
    signer = OAuth1Signer(clock=lambda: 1700000000.9, nonce_factory=lambda: "f" * 32)

    first = signer.sign(CONSUMER, TOKEN, "POST", EXCHANGE_URL)
    second = signer.sign(CONSUMER, TOKEN, "POST", EXCHANGE_URL)

    assert first == second
    assert first.timestamp == "1700000000"
    assert first.nonce == "f" * 32
    assert 'oauth_timestamp="1700000000"' in first.header


def test_header_parameters_are_sorted() -> None:
    signed = OAuth1Signer().sign(CONSUMER, TOKEN, "POST", EXCHANGE_URL)

    assert signed.header.startswith("OAuth ")
    keys = [part.split("=", 1)[0] for part in signed.header[len("OAuth "):].split(", ")]
    assert keys == sorted(keys)
    assert "oauth_signature" in keys
