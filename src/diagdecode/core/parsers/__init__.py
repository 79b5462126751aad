"""
Public parsers module.

Transport-agnostic decoding functions shared by the pipeline, the capture
reader and the CLI.

Design principle:
- All parsers are pure functions (no state, no side effects)
- Lookup tables live in uds_tables and are read-only
"""

from diagdecode.core.parsers.uds_parser import UdsMessage, decode_uds

__all__ = [
    "UdsMessage",
    "decode_uds",
]
