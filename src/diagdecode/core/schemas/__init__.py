"""
Configuration schemas.

TypedDict description of the decoder config file (YAML or JSON). Using the
schema keeps the accepted keys in one place for `parse_decoder_config`.
"""

from __future__ import annotations

from typing import TypedDict


class CanIdRangeConfig(TypedDict):
    """Inclusive range of 16-bit identifiers accepted as a CAN header."""
    low: int
    high: int


class DecoderConfigFile(TypedDict, total=False):
    """Configuration schema for the decoder pipeline."""
    can_id_ranges: list[CanIdRangeConfig]  # Default: [{low: 0x7D0, high: 0x7DF}]
    can_id_labels: dict[int, str]  # Default: {0x7D0: "Request to ECU", 0x7D8: "Response from ECU"}
    auto_detect_isotp: bool  # Default: True
    max_display_bytes: int  # Default: 8


DECODER_CONFIG_KEYS: frozenset[str] = frozenset(DecoderConfigFile.__annotations__)
