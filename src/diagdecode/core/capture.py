"""
Offline decoding of CAN capture files.

Frames are read with python-can's `LogReader` (candump .log, .asc, .blf,
.csv, ...). ISO-TP messages are collected per arbitration id and every
completed message goes through the same pipeline as pasted text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from diagdecode.core.config import DEFAULT_CONFIG, DecoderConfig
from diagdecode.core.decoder import decode_payload_frames
from diagdecode.core.errors import DecodeError, ReassemblyError
from diagdecode.core.layers import CLASSIC_FRAME_LEN, isotp_frame_type
from diagdecode.core.parsed import DecodedReport


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureResult:
    timestamp: float
    arbitration_id: int
    frames: tuple[bytes, ...]
    report: DecodedReport | None = None
    error: DecodeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "timestamp": self.timestamp,
            "arbitration_id": self.arbitration_id,
            "frames": [f.hex() for f in self.frames],
        }
        if self.report is not None:
            out["report"] = self.report.to_dict()
        if self.error is not None:
            out["error"] = {"kind": self.error.kind, "message": str(self.error)}
        return out


@dataclass
class _Pending:
    timestamp: float
    total_len: int
    frames: list[bytes] = field(default_factory=list)

    @property
    def collected(self) -> int:
        # First frame carries 6 bytes, each consecutive frame up to 7.
        return (CLASSIC_FRAME_LEN - 2) + (CLASSIC_FRAME_LEN - 1) * (len(self.frames) - 1)


def _decode(
    timestamp: float, arbitration_id: int, frames: list[bytes], config: DecoderConfig
) -> CaptureResult:
    try:
        report = decode_payload_frames(frames, input_format="Hexadecimal", can_id=arbitration_id, config=config)
    except DecodeError as exc:
        log.debug("0x%03X: %s", arbitration_id, exc)
        return CaptureResult(timestamp, arbitration_id, tuple(frames), error=exc)
    return CaptureResult(timestamp, arbitration_id, tuple(frames), report=report)


def _truncated(arbitration_id: int, pending: _Pending) -> CaptureResult:
    exc = ReassemblyError("Truncated", f"received {min(pending.collected, pending.total_len)} of {pending.total_len} bytes")
    return CaptureResult(pending.timestamp, arbitration_id, tuple(pending.frames), error=exc)


def _open_reader(path: Path) -> Any:
    try:
        import can  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("python-can is required for capture decoding") from e
    return can.LogReader(str(path))


def iter_capture(path: Path | str, config: DecoderConfig = DEFAULT_CONFIG) -> Iterator[CaptureResult]:
    """
    Yield one result per completed message in a capture file.

    Incomplete multi-frame messages are reported as `Truncated` when a new
    first/single frame arrives on the same id, or at end of file.
    """
    pending: dict[int, _Pending] = {}

    with _open_reader(Path(path)) as reader:
        for msg in reader:
            if msg.is_error_frame or msg.is_remote_frame:
                continue
            data = bytes(msg.data)
            if not data:
                continue
            arb_id = int(msg.arbitration_id)
            ts = float(msg.timestamp)

            if not config.auto_detect_isotp:
                yield _decode(ts, arb_id, [data], config)
                continue

            frame_type = isotp_frame_type(data, multi_frame=True)
            if frame_type == "fc":
                log.debug("0x%03X: flow control skipped", arb_id)
                continue

            if frame_type == "cf":
                current = pending.get(arb_id)
                if current is None:
                    log.debug("0x%03X: consecutive frame without first frame skipped", arb_id)
                    continue
                current.frames.append(data)
                if data[0] & 0x0F != (len(current.frames) - 1) & 0x0F:
                    # Let the reassembler report the gap.
                    del pending[arb_id]
                    yield _decode(current.timestamp, arb_id, current.frames, config)
                elif current.collected >= current.total_len:
                    del pending[arb_id]
                    yield _decode(current.timestamp, arb_id, current.frames, config)
                continue

            stale = pending.pop(arb_id, None)
            if stale is not None:
                yield _truncated(arb_id, stale)

            if frame_type == "ff":
                total = ((data[0] & 0x0F) << 8) | data[1]
                pending[arb_id] = _Pending(timestamp=ts, total_len=total, frames=[data])
                continue

            yield _decode(ts, arb_id, [data], config)

    for arb_id, stale in pending.items():
        yield _truncated(arb_id, stale)
