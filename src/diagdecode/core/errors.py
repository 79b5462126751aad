from __future__ import annotations

from typing import Literal


ParseErrorKind = Literal["Empty", "OddLength", "InvalidDigit"]
ReassemblyErrorKind = Literal["LengthMismatch", "SequenceGap", "Truncated", "UnexpectedFrame"]


class DecodeError(ValueError):
    """Base exception for a failed decode attempt."""

    kind: str = ""


class ParseError(DecodeError):
    """The input text could not be turned into bytes."""

    def __init__(self, kind: ParseErrorKind, fragment: str = "") -> None:
        self.kind = kind
        self.fragment = fragment
        if fragment:
            super().__init__(f"{kind}: {fragment!r}")
        else:
            super().__init__(kind)


class ReassemblyError(DecodeError):
    """ISO-TP segments could not be put back together."""

    def __init__(self, kind: ReassemblyErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        if detail:
            super().__init__(f"{kind}: {detail}")
        else:
            super().__init__(kind)
