# src/syspoints_stage/services/siwe.py
"""Strict parser and signature helpers for Sign-In-With-Ethereum messages.

The accepted grammar is the EIP-4361 subset the web client produces::

    {domain} wants you to sign in with your Ethereum account:
    {address}

    [{statement}
    [<blank>]]
    URI: {uri}
    Version: {version}
    Chain ID: {chain_id}
    Nonce: {nonce}
    Issued At: {issued_at}
    [Expiration Time: {expiration_time}]
    [Not Before: {not_before}]
    [Request ID: {request_id}]

Anything else (unknown fields, reordered fields, trailing lines) is rejected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from eth_account import Account
from eth_account.messages import encode_defunct

HEADER_SUFFIX = " wants you to sign in with your Ethereum account:"

_HEADER_RE = re.compile(r"^(?P<domain>[^\s/]+) wants you to sign in with your Ethereum account:$")
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_REQUIRED_FIELDS: tuple[tuple[str, str, re.Pattern[str]], ...] = (
    ("uri", "URI", re.compile(r"^URI: (?P<value>\S+)$")),
    ("version", "Version", re.compile(r"^Version: (?P<value>\S+)$")),
    ("chain_id", "Chain ID", re.compile(r"^Chain ID: (?P<value>\d+)$")),
    ("nonce", "Nonce", re.compile(r"^Nonce: (?P<value>[A-Za-z0-9]{8,})$")),
    ("issued_at", "Issued At", re.compile(r"^Issued At: (?P<value>\S+)$")),
)
_OPTIONAL_FIELDS: tuple[tuple[str, str, re.Pattern[str]], ...] = (
    ("expiration_time", "Expiration Time", re.compile(r"^Expiration Time: (?P<value>\S+)$")),
    ("not_before", "Not Before", re.compile(r"^Not Before: (?P<value>\S+)$")),
    ("request_id", "Request ID", re.compile(r"^Request ID: (?P<value>\S*)$")),
)


class SiweParseError(ValueError):
    """Raised when a message does not match the sign-in grammar."""


@dataclass(frozen=True)
class SiweMessage:
    """Typed view of a parsed sign-in message.

    Timestamps are kept verbatim; interpreting them is the verifier's job.
    """

    domain: str
    address: str
    uri: str
    version: str
    chain_id: int
    nonce: str
    issued_at: str
    statement: str | None = None
    expiration_time: str | None = None
    not_before: str | None = None
    request_id: str | None = None

    def render(self) -> str:
        """Return the canonical EIP-4361 text for this message."""
        lines = [f"{self.domain}{HEADER_SUFFIX}", self.address, ""]
        if self.statement:
            lines.extend([self.statement, ""])
        else:
            lines.append("")
        lines.extend(
            [
                f"URI: {self.uri}",
                f"Version: {self.version}",
                f"Chain ID: {self.chain_id}",
                f"Nonce: {self.nonce}",
                f"Issued At: {self.issued_at}",
            ]
        )
        if self.expiration_time is not None:
            lines.append(f"Expiration Time: {self.expiration_time}")
        if self.not_before is not None:
            lines.append(f"Not Before: {self.not_before}")
        if self.request_id is not None:
            lines.append(f"Request ID: {self.request_id}")
        return "\n".join(lines)


def _is_field_line(line: str) -> bool:
    return any(line.startswith(f"{label}: ") for _, label, _ in _REQUIRED_FIELDS + _OPTIONAL_FIELDS)


def parse_siwe_message(text: str) -> SiweMessage:
    """Parse ``text`` into a :class:`SiweMessage`.

    Raises:
        SiweParseError: If the text deviates from the grammar in any way.
    """
    if not isinstance(text, str) or not text:
        raise SiweParseError("message must be a non-empty string")

    lines = text.split("\n")
    if len(lines) < 8:
        raise SiweParseError("message is truncated")

    header = _HEADER_RE.match(lines[0])
    if header is None:
        raise SiweParseError("invalid header line")
    if _ADDRESS_RE.match(lines[1]) is None:
        raise SiweParseError("invalid address line")
    if lines[2] != "":
        raise SiweParseError("expected blank line after address")

    idx = 3
    statement: str | None = None
    if lines[idx] == "":
        idx += 1
    elif not lines[idx].startswith("URI: "):
        statement = lines[idx]
        if _is_field_line(statement):
            raise SiweParseError("statement must not look like a field")
        idx += 1
        if idx < len(lines) and lines[idx] == "":
            idx += 1

    values: dict[str, str] = {}
    for key, label, pattern in _REQUIRED_FIELDS:
        if idx >= len(lines):
            raise SiweParseError(f"missing {label} field")
        match = pattern.match(lines[idx])
        if match is None:
            raise SiweParseError(f"invalid or missing {label} field")
        values[key] = match.group("value")
        idx += 1

    for key, _label, pattern in _OPTIONAL_FIELDS:
        if idx >= len(lines):
            break
        match = pattern.match(lines[idx])
        if match is not None:
            values[key] = match.group("value")
            idx += 1

    if idx != len(lines):
        raise SiweParseError("unexpected trailing content")

    return SiweMessage(
        domain=header.group("domain"),
        address=lines[1],
        statement=statement,
        uri=values["uri"],
        version=values["version"],
        chain_id=int(values["chain_id"]),
        nonce=values["nonce"],
        issued_at=values["issued_at"],
        expiration_time=values.get("expiration_time"),
        not_before=values.get("not_before"),
        request_id=values.get("request_id"),
    )


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp; return None when absent or unparseable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


def recover_signer(message: str, signature: str) -> str | None:
    """Recover the EIP-191 signer of ``message``; None if the signature is unusable."""
    try:
        recovered: str = Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception:  # eth_account raises a mix of ValueError/TypeError/BadSignature
        return None
    return recovered
