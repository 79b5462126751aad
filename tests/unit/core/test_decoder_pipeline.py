from __future__ import annotations

import json

import pytest

from diagdecode.core.config import DecoderConfig
from diagdecode.core.decoder import classify_input, decode, decode_frames, decode_line, decode_payload_frames
from diagdecode.core.errors import ParseError, ReassemblyError


def test_plain_uds_has_only_uds_layer() -> None:
    report = decode("7F 22 31")
    assert report.kind == "UDS"
    assert report.layer_names == ("UDS",)
    assert report.raw_frames == (bytes.fromhex("7F2231"),)


def test_can_isotp_uds_stack() -> None:
    report = decode("00 00 07 D8 03 7F 22 31")
    assert report.layer_names == ("CAN", "ISO-TP", "UDS")
    assert report.payload == bytes.fromhex("7F2231")
    assert report.interpretation.startswith("Frame on CAN ID 0x7D8 (Response from ECU).")


@pytest.mark.parametrize(
    "raw",
    ["2,203,006,208", "0x02 0xCB 0x06 0xD0", "00000010 11001011 00000110 11010000"],
)
def test_isotp_non_uds_payload(raw: str) -> None:
    report = decode(raw)
    assert report.kind == "ISO-TP"
    assert report.summary == "ISO-TP Single Frame (2 bytes) - Non-UDS payload"
    assert report.reasons == ("Payload first byte 0xCB is not a valid UDS Service ID",)
    assert report.confidence == "Partial"
    assert report.uds is None


def test_unrecognized_bytes() -> None:
    report = decode("AA BB CC")
    assert report.kind == "HEX"
    assert report.layers == ()
    assert report.confidence == "Unknown"


def test_ascii_text() -> None:
    report = decode("OK: CAL COMPLETE")
    assert report.kind == "ASCII"
    assert report.input_format == "AsciiText"
    assert report.confidence == "Exact"
    assert report.layers == ()


@pytest.mark.parametrize(
    ("raw", "text"),
    [
        ("48 45 4C 4C 4F 20 57 4F 52 4C 44", "HELLO WORLD"),
        ("4D 42 35 54 2D 31 34 43 32 30 34 2D 41 41", "MB5T-14C204-AA"),
    ],
)
def test_printable_hex_bytes_are_text(raw: str, text: str) -> None:
    report = decode(raw)
    assert report.input_format == "Hexadecimal"
    assert report.kind == "ASCII"
    assert report.confidence == "Exact"
    assert report.summary == f'UTF-8 text: "{text}"'
    assert report.layers == ()
    assert report.reasons == ()


def test_printable_bytes_behind_can_header_stay_can() -> None:
    report = decode("00 00 07 D8 48 45 4C 4C 4F")
    assert report.kind == "CAN"
    assert report.summary.endswith("- Non-UDS payload")


@pytest.mark.parametrize("raw", ["a\x01\x02\x03\x04\x05b", "abcd\x01"])
def test_text_with_low_printable_ratio_is_raw_bytes(raw: str) -> None:
    report = decode(raw)
    assert report.input_format == "AsciiText"
    assert report.kind == "HEX"
    assert report.confidence == "Unknown"
    assert report.summary == "Raw bytes (low printable ratio)"
    assert report.reasons[0].startswith("Low printable character ratio for ASCII")


def test_overall_confidence_is_the_weakest_layer() -> None:
    report = decode("03 22 12 34")
    assert report.layer("ISO-TP").confidence == "Exact"  # type: ignore[union-attr]
    assert report.layer("UDS").confidence == "Partial"  # type: ignore[union-attr]
    assert report.confidence == "Partial"


def test_multi_frame(vin_frames: list[str]) -> None:
    report = decode_frames(vin_frames)
    assert report.layer_names == ("ISO-TP", "UDS")
    assert len(report.raw_frames) == 3
    assert len(report.payload) == 20
    isotp = report.layer("ISO-TP")
    assert isotp is not None
    assert ("Frames", "3") in isotp.fields


def test_multi_frame_with_can_headers() -> None:
    frames = [
        "00 00 07 D8 10 14 62 F1 90 31 46 54",
        "00 00 07 D8 21 46 57 31 45 54 35 44",
        "00 00 07 D8 22 46 41 31 32 33 34 35",
    ]
    report = decode_frames(frames)
    assert report.layer_names == ("CAN", "ISO-TP", "UDS")
    assert report.uds is not None
    assert ("VIN", "1FTFW1ET5DFA12345") in report.uds.fields


def test_lone_first_frame_raises() -> None:
    with pytest.raises(ReassemblyError) as exc:
        decode("10 14 62 F1 90 31 46 54")
    assert exc.value.kind == "Truncated"


def test_empty_frame_list() -> None:
    with pytest.raises(ParseError):
        decode_frames([])


def test_capture_can_id_adds_can_layer() -> None:
    report = decode_payload_frames(
        [bytes.fromhex("037F2231AAAAAAAA")], input_format="Hexadecimal", can_id=0x7D8
    )
    assert report.layer_names == ("CAN", "ISO-TP", "UDS")
    can = report.layer("CAN")
    assert can is not None
    assert ("Direction", "Response from ECU") in can.fields


def test_config_disables_isotp() -> None:
    report = decode("03 22 F1 90", DecoderConfig(auto_detect_isotp=False))
    assert report.kind == "HEX"


def test_display_cap_follows_config() -> None:
    report = decode("36 01 " + " ".join(["00"] * 10), DecoderConfig(max_display_bytes=4))
    assert report.uds is not None
    assert dict(report.uds.fields)["Extra Data"] == "01 00 00 00 (+7 more)"


def test_decode_line_prefers_uds_candidate() -> None:
    report = decode_line("2024-01-01 12:00:01 ECU RX 7D8 [8] 03 7F 22 31 AA AA AA AA")
    assert report.uds is not None
    assert report.uds.nrc == 0x31


def test_decode_line_without_payload_falls_back_to_text() -> None:
    report = decode_line("Calibration finished")
    assert report.kind == "ASCII"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("22 F1 90", "UdsLikely"),
        ("7F 22 31", "UdsLikely"),
        ("03 22 F1 90", "Hexadecimal"),
        ("2,203,006,208", "DecimalCsv"),
        ("hello there", "AsciiText"),
        ("7F2", None),
        ("", None),
    ],
)
def test_classify_input(raw: str, expected: str | None) -> None:
    assert classify_input(raw) == expected


def test_report_to_dict_is_json_serializable(vin_frames: list[str]) -> None:
    d = decode_frames(vin_frames).to_dict()
    text = json.dumps(d)
    assert '"kind": "UDS"' in text
    assert d["uds"]["fields"]["VIN"] == "1FTFW1ET5DFA12345"
