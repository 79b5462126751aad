"""
Text-to-bytes parsing for captured diagnostic payloads.

Accepts the representations technicians paste out of log viewers:
separated or continuous hex (optionally 0x-prefixed), binary groups,
decimal CSV, Base64 and plain text. Pure functions, no state.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Literal

from diagdecode.core.errors import ParseError


InputFormat = Literal["Hexadecimal", "Binary", "Base64", "DecimalCsv", "AsciiText", "UdsLikely"]

_SEPARATORS_RE = re.compile(r"[\s,:\-]+")
_DECIMAL_CSV_RE = re.compile(r"^\d{1,3}(?:\s*,\s*\d{1,3})+$")
_HEX_RE = re.compile(r"^[0-9A-Fa-f]+$")

_CANDIDATE_PATTERNS = (
    # Byte pairs with separators: "62 F1 90", "62-F1-90", "0x62,0xF1"
    re.compile(r"\b(?:0[xX])?[0-9A-Fa-f]{2}\b(?:[\s,:\-]+(?:0[xX])?[0-9A-Fa-f]{2}\b)+"),
    # Continuous hex, at least two bytes
    re.compile(r"\b(?:0[xX])?[0-9A-Fa-f]{4,}\b"),
    # Binary octets separated by whitespace
    re.compile(r"\b[01]{8}(?:\s+[01]{8})+\b"),
)


@dataclass(frozen=True)
class ParsedInput:
    data: bytes
    input_format: InputFormat


def to_hex_string(data: bytes) -> str:
    return " ".join(f"{b:02X}" for b in data)


def _strip_prefix(token: str) -> str:
    if token[:2] in ("0x", "0X"):
        return token[2:]
    return token


def _is_hex(group: str) -> bool:
    return bool(group) and _HEX_RE.match(group) is not None


def _looks_decimal_csv(text: str, groups: list[str]) -> bool:
    if _DECIMAL_CSV_RE.match(text) is None:
        return False
    # "10,20,30" is still read as hex bytes; only ragged groups are decimal.
    return not all(len(g) == 2 for g in groups)


def _mostly_hex_bytes(groups: list[str]) -> bool:
    if len(groups) < 2:
        return False
    if not all(len(g) == 2 and g.isalnum() for g in groups):
        return False
    hex_count = sum(1 for g in groups if _is_hex(g))
    return hex_count * 2 > len(groups)


def _parse_binary(groups: list[str]) -> bytes:
    compact = "".join(groups)
    return bytes(int(compact[i : i + 8], 2) for i in range(0, len(compact), 8))


def _parse_decimal_csv(text: str) -> bytes | None:
    values = [int(part.strip()) for part in text.split(",")]
    if any(v > 0xFF for v in values):
        return None
    return bytes(values)


def _try_base64(text: str) -> bytes | None:
    candidate = "".join(text.split())
    if not candidate or len(candidate) % 4 != 0:
        return None
    try:
        decoded = base64.b64decode(candidate, validate=True)
    except (binascii.Error, ValueError):
        return None
    if not decoded or base64.b64encode(decoded).decode("ascii") != candidate:
        return None
    letters = sum(1 for c in candidate if c.isalpha())
    digits = sum(1 for c in candidate if c.isdigit())
    if letters == 0 or (letters + digits) * 2 <= len(candidate):
        return None
    return decoded


def parse(raw: str) -> ParsedInput:
    """
    Convert one textual payload into bytes.

    Classification order (first match wins):
    1. binary octets -> Binary
    2. hex digits -> Hexadecimal (odd length raises OddLength)
    3. comma separated decimals in 0..255 -> DecimalCsv
    4. strict Base64 with mostly alphanumeric content -> Base64
    5. anything else -> AsciiText (UTF-8 bytes of the text)

    Raises:
        ParseError: Empty, OddLength or InvalidDigit.
    """
    if raw is None or not raw.strip():
        raise ParseError("Empty")

    text = raw.strip()
    tokens = [t for t in _SEPARATORS_RE.split(text) if t]
    prefixed = any(t[:2] in ("0x", "0X") for t in tokens)
    groups = [_strip_prefix(t) for t in tokens]
    compact = "".join(groups)

    if (
        not prefixed
        and len(compact) >= 8
        and len(compact) % 8 == 0
        and set(compact) <= {"0", "1"}
        and all(len(g) % 8 == 0 for g in groups)
    ):
        return ParsedInput(data=_parse_binary(groups), input_format="Binary")

    if compact and all(_is_hex(g) for g in groups):
        if not _looks_decimal_csv(text, groups):
            if len(groups) > 1:
                for token, group in zip(tokens, groups):
                    if len(group) % 2:
                        raise ParseError("OddLength", token)
            if len(compact) % 2:
                raise ParseError("OddLength", text)
            return ParsedInput(data=bytes.fromhex(compact), input_format="Hexadecimal")
    elif prefixed:
        for token, group in zip(tokens, groups):
            if not _is_hex(group):
                raise ParseError("InvalidDigit", token)
    elif _mostly_hex_bytes(groups):
        for token, group in zip(tokens, groups):
            if not _is_hex(group):
                raise ParseError("InvalidDigit", token)

    if _DECIMAL_CSV_RE.match(text) is not None:
        data = _parse_decimal_csv(text)
        if data is not None:
            return ParsedInput(data=data, input_format="DecimalCsv")

    decoded = _try_base64(text)
    if decoded is not None:
        return ParsedInput(data=decoded, input_format="Base64")

    return ParsedInput(data=text.encode("utf-8"), input_format="AsciiText")


def extract_payload_candidates(line: str) -> list[str]:
    """Return distinct hex/binary runs found in a free-form log line, longest first."""
    seen: set[str] = set()
    candidates: list[str] = []
    for pattern in _CANDIDATE_PATTERNS:
        for match in pattern.finditer(line):
            value = match.group(0).strip()
            if len(value) < 4 or value in seen:
                continue
            seen.add(value)
            candidates.append(value)
    candidates.sort(key=len, reverse=True)
    return candidates
