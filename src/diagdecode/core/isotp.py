from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Sequence

from diagdecode.core.errors import ReassemblyError
from diagdecode.core.layers import CLASSIC_FRAME_LEN, IsoTpFrameType, LayerPlan


log = logging.getLogger(__name__)

FRAME_TYPE_NAMES: dict[str, str] = {
    "sf": "Single Frame",
    "ff": "First Frame",
    "cf": "Consecutive Frame",
    "fc": "Flow Control",
}

FLOW_STATUS_NAMES: dict[int, str] = {
    0x0: "ContinueToSend",
    0x1: "Wait",
    0x2: "Overflow",
}


def flow_status_name(status: int) -> str:
    return FLOW_STATUS_NAMES.get(status & 0xF, "Reserved")


@dataclass(frozen=True)
class IsoTpFrame:
    frame_type: IsoTpFrameType
    pci: int
    payload: bytes
    total_len: int | None = None
    seq: int | None = None
    fc_status: int | None = None
    block_size: int | None = None
    stmin: int | None = None


def parse_isotp_frame(data: bytes) -> IsoTpFrame:
    """
    Parse one classic (8-byte) ISO-TP frame.

    Single frames return exactly the announced number of bytes, padding is
    dropped. First and consecutive frames return everything after the PCI
    bytes, capped at the classic frame length.

    Raises:
        ReassemblyError: LengthMismatch for a single/first frame whose
            length field cannot be satisfied, UnexpectedFrame for an
            unknown PCI nibble.
    """
    if len(data) < 1:
        raise ReassemblyError("Truncated", "ISO-TP frame requires at least 1 byte")

    pci = data[0]
    ftype = (pci >> 4) & 0xF

    if ftype == 0x0:  # Single Frame
        length = pci & 0xF
        if not 1 <= length <= 7:
            raise ReassemblyError("LengthMismatch", f"single frame length {length} outside 1..7")
        available = len(data) - 1
        if length > available:
            raise ReassemblyError("LengthMismatch", f"single frame announces {length} bytes, {available} present")
        return IsoTpFrame(frame_type="sf", pci=pci, payload=bytes(data[1 : 1 + length]), total_len=length)

    if ftype == 0x1:  # First Frame
        if len(data) < 2:
            raise ReassemblyError("Truncated", "first frame requires 2 PCI bytes")
        total_len = ((pci & 0xF) << 8) | data[1]
        if total_len < CLASSIC_FRAME_LEN:
            raise ReassemblyError("LengthMismatch", f"first frame total length {total_len} is below 8")
        return IsoTpFrame(frame_type="ff", pci=pci, payload=bytes(data[2:CLASSIC_FRAME_LEN]), total_len=total_len)

    if ftype == 0x2:  # Consecutive Frame
        return IsoTpFrame(frame_type="cf", pci=pci, payload=bytes(data[1:CLASSIC_FRAME_LEN]), seq=pci & 0xF)

    if ftype == 0x3:  # Flow Control
        bs = data[1] if len(data) > 1 else 0
        stmin = data[2] if len(data) > 2 else 0
        return IsoTpFrame(frame_type="fc", pci=pci, payload=b"", fc_status=pci & 0xF, block_size=bs, stmin=stmin)

    raise ReassemblyError("UnexpectedFrame", f"unknown ISO-TP frame type nibble {ftype:X}")


def _pad_to_len(data: bytes, *, frame_len: int, pad_byte: int | None) -> bytes:
    if pad_byte is None:
        return data
    frame_len = int(frame_len)
    if frame_len <= 0:
        return data
    if len(data) >= frame_len:
        return data[:frame_len]
    return data + bytes([pad_byte & 0xFF]) * (frame_len - len(data))


def build_sf(payload: bytes, *, pad_byte: int | None = None) -> bytes:
    payload = bytes(payload)
    if not 1 <= len(payload) <= 7:
        raise ValueError("SF payload must be 1..7 bytes")
    frame = bytes([len(payload)]) + payload
    return _pad_to_len(frame, frame_len=CLASSIC_FRAME_LEN, pad_byte=pad_byte)


def build_ff(payload: bytes, *, total_len: int | None = None) -> bytes:
    payload = bytes(payload)
    total_len = len(payload) if total_len is None else int(total_len)
    if not CLASSIC_FRAME_LEN <= total_len <= 0xFFF:
        raise ValueError("FF total_len must be 8..4095")
    return bytes([0x10 | ((total_len >> 8) & 0xF), total_len & 0xFF]) + payload[: CLASSIC_FRAME_LEN - 2]


def build_cf(seq: int, chunk: bytes, *, pad_byte: int | None = None) -> bytes:
    frame = bytes([0x20 | (seq & 0xF)]) + bytes(chunk)[: CLASSIC_FRAME_LEN - 1]
    return _pad_to_len(frame, frame_len=CLASSIC_FRAME_LEN, pad_byte=pad_byte)


def build_fc(*, status: int = 0x0, block_size: int = 0x0, stmin: int = 0x0, pad_byte: int | None = None) -> bytes:
    frame = bytes([0x30 | (status & 0xF), block_size & 0xFF, stmin & 0xFF])
    return _pad_to_len(frame, frame_len=CLASSIC_FRAME_LEN, pad_byte=pad_byte)


def segment(payload: bytes, *, pad_byte: int | None = None) -> list[bytes]:
    """Split a payload into classic ISO-TP frames (SF, or FF followed by CFs)."""
    payload = bytes(payload)
    if len(payload) <= 7:
        return [build_sf(payload, pad_byte=pad_byte)]
    frames = [build_ff(payload)]
    seq = 1
    for offset in range(CLASSIC_FRAME_LEN - 2, len(payload), CLASSIC_FRAME_LEN - 1):
        frames.append(build_cf(seq, payload[offset : offset + CLASSIC_FRAME_LEN - 1], pad_byte=pad_byte))
        seq = (seq + 1) & 0xF
    return frames


def stmin_to_seconds(stmin: int) -> float:
    stmin &= 0xFF
    if stmin <= 0x7F:
        return stmin / 1000.0
    if 0xF1 <= stmin <= 0xF9:
        return (stmin - 0xF0) / 10000.0
    return 0.0


@dataclass
class IsoTpReassembly:
    total_len: int | None = None
    buf: bytearray = field(default_factory=bytearray)
    next_seq: int = 1

    @property
    def in_progress(self) -> bool:
        return self.total_len is not None

    def reset(self) -> None:
        self.total_len = None
        self.buf = bytearray()
        self.next_seq = 1

    def feed(self, frame_data: bytes) -> tuple[bytes | None, IsoTpFrame]:
        """
        Feed one transport frame (no CAN header).

        Returns the completed payload, or None while a message is still
        being collected or the frame was flow control.
        """
        parsed = parse_isotp_frame(frame_data)

        if parsed.frame_type == "fc":
            log.debug("skipping flow control frame status=%s", flow_status_name(parsed.fc_status or 0))
            return None, parsed

        if parsed.frame_type in ("sf", "ff") and self.in_progress:
            raise ReassemblyError(
                "UnexpectedFrame",
                f"{FRAME_TYPE_NAMES[parsed.frame_type].lower()} received while {len(self.buf)} of "
                f"{self.total_len} bytes were pending",
            )

        if parsed.frame_type == "sf":
            return parsed.payload, parsed

        if parsed.frame_type == "ff":
            self.reset()
            self.total_len = int(parsed.total_len or 0)
            self.buf.extend(parsed.payload)
            return None, parsed

        # Consecutive Frame
        if not self.in_progress:
            raise ReassemblyError("UnexpectedFrame", "consecutive frame without a preceding first frame")
        expected = self.next_seq & 0xF
        if parsed.seq != expected:
            raise ReassemblyError("SequenceGap", f"expected sequence {expected}, got {parsed.seq}")
        self.next_seq = (self.next_seq + 1) & 0xF
        self.buf.extend(parsed.payload)
        total = int(self.total_len or 0)
        if len(self.buf) >= total:
            out = bytes(self.buf[:total])
            self.reset()
            return out, parsed
        return None, parsed

    def finish(self) -> None:
        """Raise Truncated when a multi-frame message was left incomplete."""
        if self.in_progress:
            raise ReassemblyError("Truncated", f"received {len(self.buf)} of {self.total_len} bytes")


def reassemble(frames: Sequence[bytes], plan: LayerPlan) -> bytes:
    """
    Recover the application payload from transport frames (CAN header removed).

    Without an ISO-TP layer the single supplied frame is passed through.
    """
    if not frames:
        raise ReassemblyError("Truncated", "no frames supplied")

    if not plan.is_iso_tp:
        if len(frames) != 1:
            raise ReassemblyError("UnexpectedFrame", f"{len(frames)} frames supplied without ISO-TP framing")
        return bytes(frames[0])

    state = IsoTpReassembly()
    for index, frame in enumerate(frames):
        payload, parsed = state.feed(bytes(frame))
        if payload is None:
            continue
        rest = [f for f in frames[index + 1 :] if not (f and f[0] >> 4 == 0x3)]
        if rest and parsed.frame_type == "sf":
            raise ReassemblyError("UnexpectedFrame", f"{len(rest)} frame(s) follow a single frame")
        if rest:
            log.warning("ignoring %d frame(s) after completed %d-byte message", len(rest), len(payload))
        return payload

    state.finish()
    # Only flow control frames were supplied.
    raise ReassemblyError("Truncated", "no data frames supplied")
