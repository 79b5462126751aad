"""
Decoding pipeline.

text -> bytes -> (CAN header) -> (ISO-TP) -> UDS -> DecodedReport

Parse and reassembly failures propagate to the caller as `ParseError` /
`ReassemblyError`. Everything past reassembly degrades to "Unknown"
labels and a lower confidence instead of failing.
"""

from __future__ import annotations

import logging
from typing import Sequence

from diagdecode.core.bytestr import InputFormat, ParsedInput, extract_payload_candidates, parse, to_hex_string
from diagdecode.core.config import DEFAULT_CONFIG, DecoderConfig
from diagdecode.core.errors import DecodeError, ParseError
from diagdecode.core.isotp import FRAME_TYPE_NAMES, flow_status_name, parse_isotp_frame, reassemble, stmin_to_seconds
from diagdecode.core.layers import CanHeader, LayerPlan, detect_layers, split_can_header
from diagdecode.core.parsed import DecodedReport, LayerDescription
from diagdecode.core.parsers.uds_parser import Confidence, decode_uds, format_hex_capped, worst_confidence
from diagdecode.core.parsers.uds_tables import is_known_uds_sid


log = logging.getLogger(__name__)

# Share of printable characters above which bytes are reported as text.
PRINTABLE_RATIO = 0.8


def classify_input(raw: str) -> InputFormat | None:
    """Auto-detect hint: UdsLikely when the bytes open with a known service byte."""
    try:
        parsed = parse(raw)
    except ParseError:
        return None
    if parsed.input_format != "AsciiText" and is_known_uds_sid(parsed.data[0]):
        return "UdsLikely"
    return parsed.input_format


def _can_layer(header: CanHeader | None, can_id: int | None, config: DecoderConfig) -> LayerDescription | None:
    if header is not None:
        return LayerDescription(
            name="CAN",
            summary=f"CAN ID 0x{header.can_id:03X} ({header.label})",
            fields=(
                ("CAN ID", f"0x{header.can_id:03X}"),
                ("Direction", header.label),
                ("Header", to_hex_string(header.raw)),
            ),
        )
    if can_id is not None:
        label = config.can_id_label(can_id)
        return LayerDescription(
            name="CAN",
            summary=f"CAN ID 0x{can_id:03X} ({label})",
            fields=(("CAN ID", f"0x{can_id:03X}"), ("Direction", label)),
        )
    return None


def _isotp_layer(bodies: Sequence[bytes], payload: bytes, config: DecoderConfig) -> LayerDescription:
    first = parse_isotp_frame(bodies[0])
    type_name = FRAME_TYPE_NAMES[first.frame_type]
    fields: list[tuple[str, str]] = [
        ("Frame Type", type_name),
        ("PCI", f"0x{first.pci:02X}"),
    ]
    if first.frame_type == "sf":
        fields.append(("Length", f"{first.total_len} bytes"))
        summary = f"ISO-TP Single Frame ({first.total_len} bytes)"
    else:
        fields.append(("Total Length", f"{len(payload)} bytes"))
        fields.append(("Frames", str(sum(1 for b in bodies if b and b[0] >> 4 != 0x3))))
        summary = f"ISO-TP Multi-Frame ({len(payload)} bytes)"
    flow = [parse_isotp_frame(b) for b in bodies if b and b[0] >> 4 == 0x3]
    for fc in flow[:1]:
        fields.append(("Flow Status", flow_status_name(fc.fc_status or 0)))
        fields.append(("Block Size", str(fc.block_size)))
        fields.append(("STmin", f"{stmin_to_seconds(fc.stmin or 0) * 1000:g} ms"))
    fields.append(("Payload", format_hex_capped(payload, config.max_display_bytes)))
    return LayerDescription(name="ISO-TP", summary=summary, fields=tuple(fields))


def _printable_text(data: bytes) -> tuple[str, int]:
    """Decoded text and how many of its characters are printable."""
    text = data.decode("utf-8", errors="replace")
    # Undecodable bytes come back as U+FFFD and count as unprintable.
    printable = sum(1 for ch in text if ch.isprintable() and ch != "\ufffd")
    return text, printable


def _is_mostly_printable(text: str, printable: int) -> bool:
    return bool(text) and printable / len(text) > PRINTABLE_RATIO


def _ascii_report(data: bytes, input_format: InputFormat) -> DecodedReport:
    text, printable = _printable_text(data)
    if not _is_mostly_printable(text, printable):
        return DecodedReport(
            input_format=input_format,
            raw_frames=(data,),
            kind="HEX",
            confidence="Unknown",
            summary="Raw bytes (low printable ratio)",
            interpretation="The input is neither hex nor readable text; the bytes are not interpreted.",
            payload=data,
            reasons=(f"Low printable character ratio for ASCII ({printable}/{len(text)})",),
        )
    return DecodedReport(
        input_format=input_format,
        raw_frames=(data,),
        kind="ASCII",
        confidence="Exact",
        summary=f'ASCII text: "{text}"',
        interpretation="The input is plain text, not a diagnostic byte sequence.",
        payload=data,
    )


def decode_payload_frames(
    frames: Sequence[bytes],
    *,
    input_format: InputFormat,
    can_id: int | None = None,
    config: DecoderConfig = DEFAULT_CONFIG,
) -> DecodedReport:
    """
    Decode already-parsed frames.

    Args:
        frames: one frame, or the frames of a segmented ISO-TP message
        input_format: how the bytes were written, echoed in the report
        can_id: arbitration id when the frames came from a capture file
        config: decoder settings

    Raises:
        ReassemblyError: ISO-TP framing could not be resolved
    """
    frames = tuple(bytes(f) for f in frames)
    if not frames:
        raise ParseError("Empty")
    multi = len(frames) > 1

    if input_format == "AsciiText" and not multi:
        return _ascii_report(frames[0], input_format)

    plan: LayerPlan = detect_layers(frames[0], multi_frame=multi, config=config)
    header = plan.can_header
    bodies = [split_can_header(f, config)[1] for f in frames] if plan.has_can_header else list(frames)

    payload = reassemble(bodies, plan)

    layers: list[LayerDescription] = []
    reasons: list[str] = []
    can_layer = _can_layer(header, can_id, config)
    if can_layer is not None:
        layers.append(can_layer)
    isotp_layer = _isotp_layer(bodies, payload, config) if plan.is_iso_tp else None
    if isotp_layer is not None:
        layers.append(isotp_layer)

    context = ""
    if can_layer is not None:
        context = f"Frame on {can_layer.summary}."

    if is_known_uds_sid(payload[0]):
        msg = decode_uds(payload, max_display_bytes=config.max_display_bytes)
        layers.append(
            LayerDescription(
                name="UDS",
                summary=msg.summary,
                confidence=msg.confidence,
                fields=msg.fields,
                reasons=msg.reasons,
            )
        )
        confidence: Confidence = worst_confidence(*(layer.confidence for layer in layers))
        interpretation = " ".join(part for part in (context, msg.interpretation) if part)
        return DecodedReport(
            input_format=input_format,
            raw_frames=frames,
            kind="UDS",
            confidence=confidence,
            summary=msg.summary,
            interpretation=interpretation,
            layers=tuple(layers),
            payload=payload,
            uds=msg,
        )

    text, printable = _printable_text(payload)
    if isotp_layer is None and can_layer is None and _is_mostly_printable(text, printable):
        return DecodedReport(
            input_format=input_format,
            raw_frames=frames,
            kind="ASCII",
            confidence="Exact",
            summary=f'UTF-8 text: "{text}"',
            interpretation="The bytes spell out readable text such as a part number or identifier.",
            payload=payload,
        )

    reasons.append(f"Payload first byte 0x{payload[0]:02X} is not a valid UDS Service ID")
    if isotp_layer is not None:
        kind = "ISO-TP"
        summary = f"{isotp_layer.summary} - Non-UDS payload"
        interpretation = "ISO-TP transports a payload that is not UDS; its content is not interpreted."
        confidence = worst_confidence(*(layer.confidence for layer in layers), "Partial")
    elif can_layer is not None:
        kind = "CAN"
        summary = f"{can_layer.summary} - Non-UDS payload"
        interpretation = "The CAN frame carries a payload that is not UDS; its content is not interpreted."
        confidence = worst_confidence(*(layer.confidence for layer in layers), "Partial")
    else:
        kind = "HEX"
        summary = f"Unrecognized payload ({len(payload)} bytes)"
        interpretation = "No CAN, ISO-TP or UDS structure was detected; the bytes are not interpreted."
        confidence = "Unknown"
    if context:
        interpretation = f"{context} {interpretation}"

    return DecodedReport(
        input_format=input_format,
        raw_frames=frames,
        kind=kind,
        confidence=confidence,
        summary=summary,
        interpretation=interpretation,
        layers=tuple(layers),
        payload=payload,
        reasons=tuple(reasons),
    )


def decode(raw: str, config: DecoderConfig | None = None) -> DecodedReport:
    parsed = parse(raw)
    return decode_payload_frames([parsed.data], input_format=parsed.input_format, config=config or DEFAULT_CONFIG)


def decode_frames(raws: Sequence[str], config: DecoderConfig | None = None) -> DecodedReport:
    """Decode a pre-segmented capture, one string per frame."""
    if not raws:
        raise ParseError("Empty")
    parsed: list[ParsedInput] = [parse(raw) for raw in raws]
    return decode_payload_frames(
        [p.data for p in parsed],
        input_format=parsed[0].input_format,
        config=config or DEFAULT_CONFIG,
    )


def decode_line(line: str, config: DecoderConfig | None = None) -> DecodedReport:
    """
    Decode a free-form log line.

    Byte runs found in the line are tried longest first; the first one that
    reaches UDS wins, then the first one with any detected layer. Without a
    usable run the whole line is decoded as-is.
    """
    fallback: DecodedReport | None = None
    for candidate in extract_payload_candidates(line):
        try:
            report = decode(candidate, config)
        except DecodeError as exc:
            log.debug("candidate %r rejected: %s", candidate, exc)
            continue
        if report.uds is not None:
            return report
        if fallback is None and report.layers:
            fallback = report
    if fallback is not None:
        return fallback
    return decode(line, config)
