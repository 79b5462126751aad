"""
UDS (Unified Diagnostic Services) payload decoder.

This is a pure function with no knowledge of the transport. It takes the
innermost payload (CAN header and ISO-TP PCI already removed) and returns
an immutable `UdsMessage`.

It never raises: unknown services, sub-functions, NRCs and identifiers are
labelled as such and lower the confidence rating instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from diagdecode.core.parsers.uds_tables import (
    ASCII_DIDS,
    DID_NAMES,
    NEGATIVE_RESPONSE_SID,
    NRC_ACTIONS,
    NRC_CAUSES,
    NRC_DESCRIPTIONS,
    NRC_NAMES,
    POSITIVE_RESPONSE_BIT,
    ROUTINE_NAMES,
    SERVICE_CATEGORIES,
    SERVICE_CONTEXT,
    SERVICE_NAMES,
    SERVICE_PURPOSES,
    SUBFUNCTION_MEANINGS,
    SUBFUNCTION_SERVICES,
    SUPPRESS_POSITIVE_RESPONSE_BIT,
    UNKNOWN_NRC_ACTION,
    UNKNOWN_SERVICE,
    base_service,
)


Direction = Literal["Request", "PositiveResponse", "NegativeResponse", "Incomplete"]
Confidence = Literal["Exact", "Partial", "Unknown"]

_CONFIDENCE_RANK: dict[str, int] = {"Exact": 0, "Partial": 1, "Unknown": 2}

_COMMUNICATION_TYPES: dict[int, str] = {
    0x01: "Normal communication messages",
    0x02: "Network management messages",
    0x03: "Normal and network management messages",
}

# ReadDTCInformation report types whose request carries a DTC status mask.
_DTC_MASK_REPORTS = frozenset({0x01, 0x02, 0x0F, 0x11, 0x12, 0x13})


def worst_confidence(*ratings: Confidence) -> Confidence:
    worst: Confidence = "Exact"
    for rating in ratings:
        if _CONFIDENCE_RANK[rating] > _CONFIDENCE_RANK[worst]:
            worst = rating
    return worst


def format_hex_capped(data: bytes, limit: int = 8) -> str:
    """Hex bytes capped at `limit`, e.g. "01 02 03 04 05 06 07 08 (+4 more)"."""
    shown = " ".join(f"{b:02X}" for b in data[:limit])
    if len(data) > limit:
        return f"{shown} (+{len(data) - limit} more)"
    return shown


def service_label(sid: int) -> str:
    return f"0x{sid:02X} ({SERVICE_NAMES.get(sid, UNKNOWN_SERVICE)})"


def did_label(did: int) -> str:
    name = DID_NAMES.get(did)
    if name is None:
        return f"0x{did:04X} (Unknown DID)"
    return f"0x{did:04X} ({name})"


@dataclass(frozen=True)
class UdsMessage:
    raw: bytes
    direction: Direction
    service_id: int | None = None
    base_service: int | None = None
    service_name: str = UNKNOWN_SERVICE
    category: str | None = None
    sub_function: int | None = None
    sub_function_name: str | None = None
    suppress_positive_response: bool = False
    requested_service: int | None = None
    requested_service_name: str | None = None
    nrc: int | None = None
    nrc_name: str | None = None
    nrc_description: str | None = None
    extra_data: bytes = b""
    fields: tuple[tuple[str, str], ...] = ()
    confidence: Confidence = "Unknown"
    reasons: tuple[str, ...] = ()
    summary: str = ""
    interpretation: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "direction": self.direction,
            "service_id": self.service_id,
            "base_service": self.base_service,
            "service_name": self.service_name,
            "category": self.category,
            "sub_function": self.sub_function,
            "sub_function_name": self.sub_function_name,
            "suppress_positive_response": bool(self.suppress_positive_response),
            "extra_data": self.extra_data.hex(),
            "fields": dict(self.fields),
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "summary": self.summary,
            "interpretation": self.interpretation,
        }
        if self.direction == "NegativeResponse":
            out["requested_service"] = self.requested_service
            out["requested_service_name"] = self.requested_service_name
            out["nrc"] = self.nrc
            out["nrc_name"] = self.nrc_name
            out["nrc_description"] = self.nrc_description
        return out


@dataclass
class _Draft:
    """Mutable accumulator used while a single message is decoded."""

    fields: list[tuple[str, str]] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    confidence: Confidence = "Exact"
    notes: list[str] = field(default_factory=list)

    def add(self, name: str, value: str) -> None:
        self.fields.append((name, value))

    def degrade(self, rating: Confidence, reason: str) -> None:
        self.confidence = worst_confidence(self.confidence, rating)
        self.reasons.append(reason)


def decode_uds(payload: bytes, *, max_display_bytes: int = 8) -> UdsMessage:
    """
    Decode one UDS message.

    Args:
        payload: innermost application bytes, first byte is the SID
        max_display_bytes: cap for hex renderings of trailing data

    Returns:
        UdsMessage; `direction` is Incomplete for an empty payload or a
        negative response shorter than 3 bytes.
    """
    data = bytes(payload)
    if not data:
        return UdsMessage(
            raw=data,
            direction="Incomplete",
            confidence="Unknown",
            reasons=("Empty payload",),
            summary="Empty UDS payload",
            interpretation="No bytes were available to interpret.",
        )

    if data[0] == NEGATIVE_RESPONSE_SID:
        return _decode_negative(data, max_display_bytes)
    return _decode_service(data, max_display_bytes)


def _decode_negative(data: bytes, max_display_bytes: int) -> UdsMessage:
    if len(data) < 3:
        return UdsMessage(
            raw=data,
            direction="Incomplete",
            service_id=NEGATIVE_RESPONSE_SID,
            service_name="NegativeResponse",
            fields=(
                ("Service ID", "0x7F (Negative Response)"),
                ("Length", f"{len(data)} bytes (expected 3)"),
            ),
            confidence="Partial",
            reasons=("Insufficient length for negative response (need 3 bytes: 7F + RequestSID + NRC)",),
            summary="Negative Response (incomplete)",
            interpretation=(
                "The message starts like a negative response but is truncated; "
                "the rejected service and the response code are not present."
            ),
        )

    draft = _Draft()
    requested = data[1]
    nrc = data[2]
    requested_name = SERVICE_NAMES.get(requested)
    nrc_name = NRC_NAMES.get(nrc)
    nrc_description = NRC_DESCRIPTIONS.get(nrc)

    draft.add("Service ID", "0x7F (Negative Response)")
    draft.add("Direction", "NegativeResponse")
    draft.add("Requested Service", service_label(requested))
    if requested_name is None:
        draft.degrade("Partial", f"Requested service 0x{requested:02X} is not a standard UDS service")
    else:
        draft.add("Category", SERVICE_CATEGORIES.get(requested, "Other"))

    if nrc_name is None:
        draft.add("NRC", f"0x{nrc:02X} (Unknown NRC)")
        draft.degrade("Partial", f"NRC 0x{nrc:02X} not in standard ISO 14229 dictionary (may be OEM-specific)")
    else:
        draft.add("NRC", f"0x{nrc:02X} ({nrc_name})")
        draft.add("NRC Description", nrc_description or nrc_name)
        draft.add("Likely Cause", NRC_CAUSES.get(nrc, "not documented."))
        draft.add("Recommended Action", NRC_ACTIONS.get(nrc, UNKNOWN_NRC_ACTION))

    extra = data[3:]
    if extra:
        draft.add("Extra Data", format_hex_capped(extra, max_display_bytes))
        draft.reasons.append(f"Additional data: {len(extra)} bytes (unusual for negative response)")

    shown_service = requested_name or "UNKNOWN"
    shown_nrc = nrc_name or "UNKNOWN_NRC"
    summary = f"Negative Response: {shown_service} rejected with {shown_nrc}"

    if nrc == 0x78:
        interpretation = (
            f"The ECU received the {shown_service} request and is still processing it. "
            "This is an interim response; the final response follows."
        )
    elif nrc_name is None:
        interpretation = (
            f"The ECU rejected the {shown_service} request with response code 0x{nrc:02X}, "
            "which is not defined by ISO 14229 and is not interpreted."
        )
    else:
        interpretation = (
            f"The ECU rejected the {shown_service} request: {nrc_description}. "
            f"Likely cause: {NRC_CAUSES.get(nrc, 'not documented.')} "
            f"Recommended action: {NRC_ACTIONS.get(nrc, UNKNOWN_NRC_ACTION)}"
        )

    return UdsMessage(
        raw=data,
        direction="NegativeResponse",
        service_id=NEGATIVE_RESPONSE_SID,
        base_service=requested,
        service_name="NegativeResponse",
        category=SERVICE_CATEGORIES.get(requested),
        requested_service=requested,
        requested_service_name=requested_name or UNKNOWN_SERVICE,
        nrc=nrc,
        nrc_name=nrc_name,
        nrc_description=nrc_description,
        extra_data=extra,
        fields=tuple(draft.fields),
        confidence=draft.confidence,
        reasons=tuple(draft.reasons),
        summary=summary,
        interpretation=interpretation,
    )


def _decode_service(data: bytes, max_display_bytes: int) -> UdsMessage:
    sid = data[0]
    positive = bool(sid & POSITIVE_RESPONSE_BIT)
    base = base_service(sid)
    name = SERVICE_NAMES.get(base)
    known = name is not None
    direction: Direction = "PositiveResponse" if positive else "Request"

    draft = _Draft()
    if positive:
        draft.add("Service ID", f"0x{sid:02X} (positive response to {service_label(base)})")
    else:
        draft.add("Service ID", service_label(sid))
    draft.add("Direction", direction)

    if known:
        draft.add("Category", SERVICE_CATEGORIES.get(base, "Other"))
        draft.add("Purpose", SERVICE_PURPOSES.get(base, ""))
    else:
        draft.degrade("Unknown", f"SID 0x{base:02X} not recognized in UDS service table")

    sub_function: int | None = None
    sub_name: str | None = None
    suppress = False
    header_len = 1
    if (base in SUBFUNCTION_SERVICES or not known) and len(data) >= 2:
        sub_function = data[1]
        header_len = 2
        suppress = bool(sub_function & SUPPRESS_POSITIVE_RESPONSE_BIT)
        low = sub_function & 0x7F
        sub_name = SUBFUNCTION_MEANINGS.get((base, low))
        if sub_name is None:
            sub_name = f"Custom/Unlisted sub-function 0x{low:02X}"
            if known:
                draft.degrade("Partial", f"Sub-function 0x{low:02X} is not defined for {name}")
        draft.add("Sub-function", f"0x{low:02X} ({sub_name})")
        if suppress:
            draft.add("Suppress Positive Response", "Yes")
    elif base in SUBFUNCTION_SERVICES and not positive:
        draft.degrade("Partial", f"{name} request is missing its sub-function byte")

    extra = data[header_len:]
    if known:
        _service_fields(draft, base, data, positive)
    if extra:
        draft.add("Extra Data", format_hex_capped(extra, max_display_bytes))

    kind = "Positive Response" if positive else "Request"
    summary = f"{kind}: {name or UNKNOWN_SERVICE} (0x{sid:02X})"
    if sub_name is not None and known:
        summary = f"{summary} - {sub_name}"

    return UdsMessage(
        raw=data,
        direction=direction,
        service_id=sid,
        base_service=base,
        service_name=name or UNKNOWN_SERVICE,
        category=SERVICE_CATEGORIES.get(base),
        sub_function=sub_function,
        sub_function_name=sub_name,
        suppress_positive_response=suppress,
        extra_data=extra,
        fields=tuple(draft.fields),
        confidence=draft.confidence,
        reasons=tuple(draft.reasons),
        summary=summary,
        interpretation=_interpretation(base, known, positive, draft.notes),
    )


def _interpretation(base: int, known: bool, positive: bool, notes: list[str]) -> str:
    if not known:
        return (
            f"Service 0x{base:02X} is not a standard UDS service. Its meaning is "
            "manufacturer specific and is not interpreted."
        )
    verb, consequence = SERVICE_CONTEXT.get(base, ("this service", ""))
    if positive:
        text = f"The ECU confirmed {verb}. {consequence}"
    else:
        text = f"The tester is requesting {verb}. {consequence}"
    if notes:
        text = f"{text} {' '.join(notes)}"
    return text.strip()


def _ascii_text(data: bytes) -> str | None:
    if not data or not all(0x20 <= b < 0x7F for b in data):
        return None
    return data.decode("ascii")


def _read_did(draft: _Draft, did: int, label: str = "DID") -> None:
    draft.add(label, did_label(did))
    if did not in DID_NAMES:
        draft.degrade("Partial", f"DID 0x{did:04X} is not a standard data identifier")


def _memory_fields(draft: _Draft, data: bytes, offset: int) -> None:
    """addressAndLengthFormatIdentifier followed by address and size."""
    if len(data) <= offset:
        draft.degrade("Partial", "Missing addressAndLengthFormatIdentifier")
        return
    alfid = data[offset]
    addr_len = alfid & 0x0F
    size_len = (alfid >> 4) & 0x0F
    draft.add("Address Length", f"{addr_len} bytes")
    draft.add("Memory Size Length", f"{size_len} bytes")
    start = offset + 1
    if addr_len == 0 or len(data) < start + addr_len:
        draft.degrade("Partial", "Memory address is missing or truncated")
        return
    address = int.from_bytes(data[start : start + addr_len], "big")
    draft.add("Memory Address", f"0x{address:0{addr_len * 2}X}")
    start += addr_len
    if size_len and len(data) >= start + size_len:
        size = int.from_bytes(data[start : start + size_len], "big")
        draft.add("Memory Size", f"{size} bytes")


def _service_fields(draft: _Draft, base: int, data: bytes, positive: bool) -> None:
    """Service-specific parameters following the SID (and sub-function)."""

    if base == 0x10:  # DiagnosticSessionControl
        if positive and len(data) >= 6:
            p2 = int.from_bytes(data[2:4], "big")
            p2_star = int.from_bytes(data[4:6], "big") * 10
            draft.add("P2 Server Max", f"{p2} ms")
            draft.add("P2* Server Max", f"{p2_star} ms")

    elif base == 0x11:  # ECUReset
        if positive and len(data) >= 3 and (data[1] & 0x7F) == 0x04:
            seconds = data[2]
            if seconds == 0xFF:
                draft.add("Power Down Time", "Not available")
            else:
                draft.add("Power Down Time", f"{seconds} s")

    elif base == 0x14:  # ClearDiagnosticInformation
        if not positive:
            if len(data) >= 4:
                group = int.from_bytes(data[1:4], "big")
                if group == 0xFFFFFF:
                    draft.add("Group Of DTC", "0xFFFFFF (All DTC groups)")
                    draft.notes.append("All stored DTCs will be cleared.")
                else:
                    draft.add("Group Of DTC", f"0x{group:06X}")
            else:
                draft.degrade("Partial", "Group of DTC requires 3 bytes")

    elif base == 0x19:  # ReadDTCInformation
        if len(data) < 3:
            return
        report_type = data[1] & 0x7F
        if not positive:
            if report_type in _DTC_MASK_REPORTS:
                draft.add("DTC Status Mask", f"0x{data[2]:02X}")
            return
        draft.add("DTC Status Availability Mask", f"0x{data[2]:02X}")
        if report_type in (0x01, 0x07, 0x11, 0x12) and len(data) >= 6:
            draft.add("DTC Format", f"0x{data[3]:02X}")
            draft.add("DTC Count", str(int.from_bytes(data[4:6], "big")))
        elif report_type in (0x02, 0x0A, 0x0F, 0x13, 0x15):
            records = data[3:]
            count = len(records) // 4
            draft.add("DTC Count", str(count))
            for i in range(min(count, 4)):
                rec = records[i * 4 : i * 4 + 4]
                dtc = int.from_bytes(rec[:3], "big")
                draft.add(f"DTC {i + 1}", f"0x{dtc:06X} (status 0x{rec[3]:02X})")
            if len(records) % 4:
                draft.degrade("Partial", "DTC record list has trailing bytes")

    elif base == 0x22:  # ReadDataByIdentifier
        if not positive:
            params = data[1:]
            if len(params) < 2:
                draft.degrade("Partial", "ReadDataByIdentifier request needs a 2-byte DID")
                return
            dids = [int.from_bytes(params[i : i + 2], "big") for i in range(0, len(params) - 1, 2)]
            for idx, did in enumerate(dids):
                _read_did(draft, did, "DID" if len(dids) == 1 else f"DID {idx + 1}")
            if len(params) % 2:
                draft.degrade("Partial", "Odd number of DID bytes")
            if dids[0] in DID_NAMES:
                draft.notes.append(f"The requested data is {DID_NAMES[dids[0]]} (0x{dids[0]:04X}).")
            return
        if len(data) < 3:
            draft.degrade("Partial", "Positive response is missing the DID")
            return
        did = int.from_bytes(data[1:3], "big")
        _read_did(draft, did)
        record = data[3:]
        if not record:
            return
        draft.add("Data Length", f"{len(record)} bytes")
        text = _ascii_text(record) if did in ASCII_DIDS else None
        if text is not None:
            draft.add(DID_NAMES[did], text)
            draft.notes.append(f"{DID_NAMES[did]} reported as \"{text}\".")

    elif base == 0x23:  # ReadMemoryByAddress
        if not positive:
            _memory_fields(draft, data, 1)

    elif base == 0x27:  # SecurityAccess
        if len(data) < 2:
            return
        sub = data[1] & 0x7F
        level = (sub + 1) // 2
        draft.add("Security Level", str(level))
        body = data[2:]
        if sub % 2:
            if positive:
                draft.add("Seed Length", f"{len(body)} bytes")
                draft.notes.append(f"The ECU returned a {len(body)}-byte seed for level {level}.")
        else:
            if not positive:
                draft.add("Key Length", f"{len(body)} bytes")
            else:
                draft.notes.append(f"Security level {level} is now unlocked.")

    elif base == 0x28:  # CommunicationControl
        if not positive and len(data) >= 3:
            comm = data[2] & 0x03
            draft.add("Communication Type", f"0x{data[2]:02X} ({_COMMUNICATION_TYPES.get(comm, 'Reserved')})")

    elif base == 0x2E:  # WriteDataByIdentifier
        if len(data) < 3:
            draft.degrade("Partial", "WriteDataByIdentifier needs a 2-byte DID")
            return
        did = int.from_bytes(data[1:3], "big")
        _read_did(draft, did)
        if not positive:
            record = data[3:]
            draft.add("Data Length", f"{len(record)} bytes")
            text = _ascii_text(record) if did in ASCII_DIDS else None
            if text is not None:
                draft.add(DID_NAMES[did], text)

    elif base == 0x2F:  # InputOutputControlByIdentifier
        if len(data) < 3:
            draft.degrade("Partial", "InputOutputControlByIdentifier needs a 2-byte DID")
            return
        _read_did(draft, int.from_bytes(data[1:3], "big"))
        if len(data) >= 4:
            draft.add("Control Parameter", f"0x{data[3]:02X}")

    elif base == 0x31:  # RoutineControl
        if len(data) < 4:
            draft.degrade("Partial", "RoutineControl needs a 2-byte routine identifier")
            return
        rid = int.from_bytes(data[2:4], "big")
        routine = ROUTINE_NAMES.get(rid)
        if routine is None:
            draft.add("Routine ID", f"0x{rid:04X} (Unknown routine)")
            draft.degrade("Partial", f"Routine 0x{rid:04X} is manufacturer specific")
        else:
            draft.add("Routine ID", f"0x{rid:04X} ({routine})")
            draft.notes.append(f"Routine: {routine}.")
        if len(data) > 4:
            label = "Status Record" if positive else "Option Record"
            draft.add(label, f"{len(data) - 4} bytes")

    elif base in (0x34, 0x35):  # RequestDownload / RequestUpload
        if not positive:
            if len(data) < 2:
                draft.degrade("Partial", "Missing dataFormatIdentifier")
                return
            dfi = data[1]
            draft.add("Compression Method", str((dfi >> 4) & 0x0F))
            draft.add("Encryption Method", str(dfi & 0x0F))
            _memory_fields(draft, data, 2)
        elif len(data) >= 2:
            n = (data[1] >> 4) & 0x0F
            if n and len(data) >= 2 + n:
                block = int.from_bytes(data[2 : 2 + n], "big")
                draft.add("Max Block Length", f"{block} bytes")

    elif base == 0x36:  # TransferData
        if len(data) >= 2:
            draft.add("Block Sequence Counter", str(data[1]))
            draft.add("Transfer Data Length", f"{len(data) - 2} bytes")
        elif not positive:
            draft.degrade("Partial", "TransferData request is missing the block sequence counter")

    elif base == 0x3D:  # WriteMemoryByAddress
        _memory_fields(draft, data, 1)
