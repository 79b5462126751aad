"""
Layer detection for a single captured frame.

Decides, from bytes alone, whether a frame carries a 4-byte CAN header,
an ISO-TP PCI and a UDS service byte. Pure functions; the input is never
modified. The heuristics are conservative: a missed layer is preferred
over a misidentified one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from diagdecode.core.config import DEFAULT_CONFIG, DecoderConfig
from diagdecode.core.parsers.uds_tables import is_known_uds_sid


log = logging.getLogger(__name__)

IsoTpFrameType = Literal["sf", "ff", "cf", "fc"]

CAN_HEADER_LEN = 4
CLASSIC_FRAME_LEN = 8


@dataclass(frozen=True)
class CanHeader:
    can_id: int
    raw: bytes
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"can_id": self.can_id, "raw": self.raw.hex(), "label": self.label}


@dataclass(frozen=True)
class LayerPlan:
    has_can_header: bool = False
    can_header: CanHeader | None = None
    is_iso_tp: bool = False
    frame_type: IsoTpFrameType | None = None
    uds_likely: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_can_header": bool(self.has_can_header),
            "can_header": self.can_header.to_dict() if self.can_header is not None else None,
            "is_iso_tp": bool(self.is_iso_tp),
            "frame_type": self.frame_type,
            "uds_likely": bool(self.uds_likely),
        }


def split_can_header(data: bytes, config: DecoderConfig = DEFAULT_CONFIG) -> tuple[CanHeader | None, bytes]:
    """Return (header, remaining bytes); header is None when the prefix does not match."""
    if len(data) <= CAN_HEADER_LEN or data[0] != 0x00 or data[1] != 0x00:
        return None, data
    can_id = (data[2] << 8) | data[3]
    if not config.can_id_in_range(can_id):
        return None, data
    header = CanHeader(can_id=can_id, raw=bytes(data[:CAN_HEADER_LEN]), label=config.can_id_label(can_id))
    return header, data[CAN_HEADER_LEN:]


def isotp_frame_type(body: bytes, *, multi_frame: bool = False) -> IsoTpFrameType | None:
    if not body:
        return None
    nibble = body[0] >> 4
    low = body[0] & 0x0F

    if nibble == 0x0:
        return "sf" if 1 <= low <= 7 else None

    if nibble == 0x1:
        if len(body) < CLASSIC_FRAME_LEN:
            return None
        total = (low << 8) | body[1]
        # A genuine first frame announces more than it carries.
        if total >= CLASSIC_FRAME_LEN and total > len(body) - 2:
            return "ff"
        return None

    if multi_frame and nibble == 0x2:
        return "cf"
    if multi_frame and nibble == 0x3:
        return "fc"
    return None


def _inner_payload(body: bytes, frame_type: IsoTpFrameType | None) -> bytes:
    if frame_type == "sf":
        return body[1 : 1 + (body[0] & 0x0F)]
    if frame_type == "ff":
        return body[2:]
    if frame_type in ("cf", "fc"):
        return b""
    return body


def detect_layers(data: bytes, *, multi_frame: bool = False, config: DecoderConfig = DEFAULT_CONFIG) -> LayerPlan:
    data = bytes(data)
    header, body = split_can_header(data, config)

    frame_type: IsoTpFrameType | None = None
    if config.auto_detect_isotp:
        frame_type = isotp_frame_type(body, multi_frame=multi_frame)

    inner = _inner_payload(body, frame_type)
    uds_likely = bool(inner) and is_known_uds_sid(inner[0])

    log.debug(
        "layers: can_header=%s iso_tp=%s uds_likely=%s",
        f"0x{header.can_id:03X}" if header is not None else None,
        frame_type,
        uds_likely,
    )
    return LayerPlan(
        has_can_header=header is not None,
        can_header=header,
        is_iso_tp=frame_type is not None,
        frame_type=frame_type,
        uds_likely=uds_likely,
    )
