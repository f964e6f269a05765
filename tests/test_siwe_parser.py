# mypy: ignore-errors
"""Tests for the strict sign-in message parser."""

from __future__ import annotations

import pytest
from eth_account import Account

from syspoints_stage.services.siwe import (
    SiweMessage,
    SiweParseError,
    parse_siwe_message,
    parse_timestamp,
    recover_signer,
)
from tests.conftest import sign_text

ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


def _message(**overrides) -> SiweMessage:
    fields = {
        "domain": "app.example",
        "address": ADDRESS,
        "statement": "Sign in to Syspoints with your wallet.",
        "uri": "https://app.example",
        "version": "1",
        "chain_id": 57,
        "nonce": "a1b2c3d4e5f6a7b8",
        "issued_at": "2026-10-19T12:00:00.000Z",
        "expiration_time": "2026-10-19T12:05:00.000Z",
    }
    fields.update(overrides)
    return SiweMessage(**fields)


def test_render_then_parse_preserves_fields() -> None:
    message = _message(not_before="2026-10-19T12:00:00.000Z", request_id="req-1")
    assert parse_siwe_message(message.render()) == message


def test_parse_without_statement() -> None:
    message = _message(statement=None)
    text = message.render()
    assert "\n\n\nURI:" in text
    assert parse_siwe_message(text).statement is None


def test_parse_accepts_statement_without_trailing_blank_line() -> None:
    text = _message().render().replace("wallet.\n\nURI:", "wallet.\nURI:")
    parsed = parse_siwe_message(text)
    assert parsed.statement == "Sign in to Syspoints with your wallet."
    assert parsed.uri == "https://app.example"


def test_expiration_time_is_optional_in_grammar() -> None:
    parsed = parse_siwe_message(_message(expiration_time=None).render())
    assert parsed.expiration_time is None


@pytest.mark.parametrize(
    "mutate",
    [
        lambda text: text.replace("wants you to sign in", "would like you to sign in"),
        lambda text: text.replace(ADDRESS, "0x1234"),
        lambda text: text.replace("Chain ID: 57", "Chain ID: fifty-seven"),
        lambda text: text.replace("Nonce: a1b2c3d4e5f6a7b8", "Nonce: short"),
        lambda text: text.replace("Version: 1\n", ""),
        lambda text: text + "\nResources: https://example.org",
        lambda text: text.replace(
            "URI: https://app.example\nVersion: 1", "Version: 1\nURI: https://app.example"
        ),
        lambda text: text.replace("Nonce:", "Nonce:\nNonce:"),
        lambda text: text + "\n",
    ],
    ids=[
        "header",
        "address",
        "chain-id",
        "nonce",
        "missing-version",
        "unknown-field",
        "reordered",
        "duplicate",
        "trailing-newline",
    ],
)
def test_parse_rejects_grammar_deviations(mutate) -> None:
    with pytest.raises(SiweParseError):
        parse_siwe_message(mutate(_message().render()))


def test_parse_rejects_empty_input() -> None:
    with pytest.raises(SiweParseError):
        parse_siwe_message("")


def test_parse_timestamp_requires_timezone() -> None:
    assert parse_timestamp("2026-10-19T12:00:00.000Z") is not None
    assert parse_timestamp("2026-10-19T12:00:00") is None
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None


def test_recover_signer_round_trip() -> None:
    account = Account.create()
    text = _message(address=account.address).render()
    assert recover_signer(text, sign_text(account, text)) == account.address


def test_recover_signer_returns_none_for_garbage() -> None:
    assert recover_signer("hello", "0xdeadbeef") is None
