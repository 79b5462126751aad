from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from diagdecode.core.schemas import DECODER_CONFIG_KEYS


# Ford diagnostic logs prefix frames with 00 00 <id hi> <id lo>; 0x7D0/0x7D8 is
# the tester/ECU pair, the rest of the block is the same physical range.
DEFAULT_CAN_ID_RANGES: tuple[tuple[int, int], ...] = ((0x7D0, 0x7DF),)
DEFAULT_CAN_ID_LABELS: dict[int, str] = {
    0x7D0: "Request to ECU",
    0x7D8: "Response from ECU",
}


@dataclass(frozen=True)
class DecoderConfig:
    can_id_ranges: tuple[tuple[int, int], ...] = DEFAULT_CAN_ID_RANGES
    can_id_labels: Mapping[int, str] = field(default_factory=lambda: dict(DEFAULT_CAN_ID_LABELS))
    auto_detect_isotp: bool = True
    max_display_bytes: int = 8

    def can_id_in_range(self, can_id: int) -> bool:
        return any(low <= can_id <= high for low, high in self.can_id_ranges)

    def can_id_label(self, can_id: int) -> str:
        label = self.can_id_labels.get(can_id)
        if label is not None:
            return label
        return f"CAN ID 0x{can_id:03X}"


DEFAULT_CONFIG = DecoderConfig()


def _as_int(value: Any, *, what: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid config: {what} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip(), 0)
        except ValueError:
            pass
    raise ValueError(f"Invalid config: {what} must be an integer")


def _parse_ranges(raw: Any) -> tuple[tuple[int, int], ...]:
    if not isinstance(raw, list) or not raw:
        raise ValueError("Invalid config: can_id_ranges must be a non-empty list")
    ranges: list[tuple[int, int]] = []
    for idx, item in enumerate(raw):
        if isinstance(item, dict):
            low = _as_int(item.get("low"), what=f"can_id_ranges[{idx}].low")
            high = _as_int(item.get("high"), what=f"can_id_ranges[{idx}].high")
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            low = _as_int(item[0], what=f"can_id_ranges[{idx}][0]")
            high = _as_int(item[1], what=f"can_id_ranges[{idx}][1]")
        else:
            raise ValueError(f"Invalid config: can_id_ranges[{idx}] must be {{low, high}}")
        if not 0 <= low <= high <= 0xFFFF:
            raise ValueError(f"Invalid config: can_id_ranges[{idx}] out of 16-bit range")
        ranges.append((low, high))
    return tuple(ranges)


def parse_decoder_config(merged: Mapping[str, Any]) -> DecoderConfig:
    unknown = sorted(set(merged) - DECODER_CONFIG_KEYS)
    if unknown:
        raise ValueError(f"Unknown config key(s): {', '.join(unknown)}")

    ranges = DEFAULT_CAN_ID_RANGES
    if "can_id_ranges" in merged:
        ranges = _parse_ranges(merged["can_id_ranges"])

    labels = dict(DEFAULT_CAN_ID_LABELS)
    if "can_id_labels" in merged:
        raw_labels = merged["can_id_labels"]
        if not isinstance(raw_labels, dict):
            raise ValueError("Invalid config: can_id_labels must be a mapping")
        labels = {_as_int(k, what="can_id_labels key"): str(v) for k, v in raw_labels.items()}

    auto_detect = merged.get("auto_detect_isotp", True)
    if not isinstance(auto_detect, bool):
        raise ValueError("Invalid config: auto_detect_isotp must be a boolean")

    max_display = _as_int(merged.get("max_display_bytes", 8), what="max_display_bytes")
    if max_display <= 0:
        raise ValueError("Invalid config: max_display_bytes must be > 0")

    return DecoderConfig(
        can_id_ranges=ranges,
        can_id_labels=labels,
        auto_detect_isotp=auto_detect,
        max_display_bytes=max_display,
    )


def load_config_file(path: Path) -> Any:
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    if suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    raise ValueError(f"Unsupported config file type: {path.name}")


def load_config(path: Path | str | None) -> DecoderConfig:
    if path is None:
        return DEFAULT_CONFIG
    data = load_config_file(Path(path))
    if data is None:
        return DEFAULT_CONFIG
    if not isinstance(data, dict):
        raise ValueError("Invalid config: top level must be a mapping")
    return parse_decoder_config(data)
