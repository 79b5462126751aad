from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from diagdecode.core.bytestr import InputFormat, to_hex_string
from diagdecode.core.parsers.uds_parser import Confidence, UdsMessage


LayerName = Literal["CAN", "ISO-TP", "UDS"]
ReportKind = Literal["UDS", "ISO-TP", "CAN", "ASCII", "HEX"]


@dataclass(frozen=True)
class LayerDescription:
    name: LayerName
    summary: str
    confidence: Confidence = "Exact"
    fields: tuple[tuple[str, str], ...] = ()
    reasons: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "summary": self.summary,
            "confidence": self.confidence,
            "fields": dict(self.fields),
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class DecodedReport:
    """
    Immutable result of one decode call.

    - layers: detected protocol layers, outermost first
    - confidence: the weakest rating among the layers
    - payload: innermost bytes (what the UDS layer saw, if any)
    - reasons: report-level notes that do not belong to one layer
    """

    input_format: InputFormat
    raw_frames: tuple[bytes, ...]
    kind: ReportKind
    confidence: Confidence
    summary: str
    interpretation: str = ""
    layers: tuple[LayerDescription, ...] = ()
    payload: bytes = b""
    reasons: tuple[str, ...] = ()
    uds: UdsMessage | None = None

    @property
    def layer_names(self) -> tuple[str, ...]:
        return tuple(layer.name for layer in self.layers)

    def layer(self, name: LayerName) -> LayerDescription | None:
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    @property
    def raw_hex(self) -> str:
        return " | ".join(to_hex_string(frame) for frame in self.raw_frames)

    @property
    def byte_length(self) -> int:
        return sum(len(frame) for frame in self.raw_frames)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "kind": self.kind,
            "input_format": self.input_format,
            "confidence": self.confidence,
            "summary": self.summary,
            "interpretation": self.interpretation,
            "layers": [layer.to_dict() for layer in self.layers],
            "raw_frames": [frame.hex() for frame in self.raw_frames],
            "payload": self.payload.hex(),
            "reasons": list(self.reasons),
        }
        if self.uds is not None:
            out["uds"] = self.uds.to_dict()
        return out
