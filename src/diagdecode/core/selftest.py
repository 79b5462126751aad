"""
Built-in self test.

Runs a fixed table of captured inputs through the whole pipeline and
checks that the formatted report (or the error text) contains the
expected fragment.
"""

from __future__ import annotations

from dataclasses import dataclass

from diagdecode.core.config import DEFAULT_CONFIG, DecoderConfig
from diagdecode.core.decoder import decode_frames
from diagdecode.core.errors import DecodeError
from diagdecode.core.report import format_report


@dataclass(frozen=True)
class TestResult:
    __test__ = False  # not a pytest class

    name: str
    input: str
    expected: str
    actual: str
    passed: bool


# Read VIN (DID F190) answered in three frames.
_VIN_FIRST = "10 14 62 F1 90 31 46 54"
_VIN_CF1 = "21 46 57 31 45 54 35 44"
_VIN_CF2 = "22 46 41 31 32 33 34 35"

SELF_TEST_VECTORS: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("Negative response", ("7F 22 31",), "Negative Response: ReadDataByIdentifier rejected with RequestOutOfRange"),
    ("Incomplete negative response", ("7F 22",), "Negative Response (incomplete)"),
    ("Read VIN request", ("22 F1 90",), "DID: 0xF190 (VIN)"),
    ("Positive session control response", ("50 03",), "Sub-function: 0x03 (Extended Diagnostic Session"),
    ("ISO-TP single frame read", ("03 22 F1 90",), "[ISO-TP] ISO-TP Single Frame (3 bytes)"),
    ("ISO-TP negative response", ("03 7F 22 31",), "NRC: 0x31 (RequestOutOfRange)"),
    ("Security access seed request", ("02 27 01",), "Request Seed (Level 1)"),
    ("Session control request", ("02 10 03",), "Extended Diagnostic Session"),
    ("Multi-frame VIN reassembly", (_VIN_FIRST, _VIN_CF1, _VIN_CF2), "VIN: 1FTFW1ET5DFA12345"),
    ("CAN-framed negative response", ("000007D87F2231",), "CAN ID: 0x7D8"),
    ("CAN-framed request", ("000007D02201F190",), "Direction: Request to ECU"),
    ("Decimal CSV non-UDS payload", ("2,203,006,208",), "Non-UDS payload"),
    ("Hex with 0x prefix", ("0x02 0xCB 0x06 0xD0",), "Non-UDS payload"),
    ("Binary input", ("00000010 11001011 00000110 11010000",), "Non-UDS payload"),
    ("ASCII text", ("OK: CAL COMPLETE",), 'ASCII text: "OK: CAL COMPLETE"'),
    ("Odd-length hex", ("7F2",), "error: OddLength"),
    ("Lone first frame", (_VIN_FIRST,), "error: Truncated"),
    ("Sequence gap", (_VIN_FIRST, _VIN_CF2), "error: SequenceGap"),
)


def _run_one(frames: tuple[str, ...], config: DecoderConfig) -> str:
    try:
        report = decode_frames(list(frames), config)
    except DecodeError as exc:
        return f"error: {exc}"
    return format_report(report)


def run_self_tests(config: DecoderConfig = DEFAULT_CONFIG) -> list[TestResult]:
    results: list[TestResult] = []
    for name, frames, expected in SELF_TEST_VECTORS:
        actual = _run_one(frames, config)
        results.append(
            TestResult(
                name=name,
                input=" | ".join(frames),
                expected=expected,
                actual=actual,
                passed=expected in actual,
            )
        )
    return results
