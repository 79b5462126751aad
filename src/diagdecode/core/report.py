"""
Plain-text rendering of a DecodedReport.

Section order is fixed: detected layers, per-layer fields, interpretation,
raw hex echo, length. The output depends only on the report, so equal
reports always render to identical text.
"""

from __future__ import annotations

from diagdecode.core.parsed import DecodedReport


INDENT = "  "


def format_report(report: DecodedReport) -> str:
    lines: list[str] = []

    names = " -> ".join(report.layer_names) if report.layers else "none"
    lines.append(f"Detected Layers: {names}")
    lines.append(f"Kind: {report.kind}")
    lines.append(f"Confidence: {report.confidence}")
    lines.append(f"Summary: {report.summary}")

    for layer in report.layers:
        lines.append("")
        lines.append(f"[{layer.name}] {layer.summary}")
        for key, value in layer.fields:
            lines.append(f"{INDENT}{key}: {value}")
        if layer.confidence != "Exact":
            lines.append(f"{INDENT}Confidence: {layer.confidence}")
        for reason in layer.reasons:
            lines.append(f"{INDENT}! {reason}")

    if report.reasons:
        lines.append("")
        lines.append("Notes:")
        for reason in report.reasons:
            lines.append(f"{INDENT}! {reason}")

    if report.interpretation:
        lines.append("")
        lines.append("Interpretation:")
        lines.append(f"{INDENT}{report.interpretation}")

    lines.append("")
    lines.append(f"Raw Hex: {report.raw_hex}")
    lines.append(f"Length: {report.byte_length} bytes ({report.byte_length * 8} bits)")
    return "\n".join(lines) + "\n"


def format_short(report: DecodedReport) -> str:
    """One-line form for grid cells and tooltips."""
    return f"[{report.kind}] {report.summary}"


def extract_raw_hex(text: str) -> str | None:
    """Return the "Raw Hex" value of a formatted report, if present."""
    for line in text.splitlines():
        if line.startswith("Raw Hex: "):
            return line[len("Raw Hex: ") :]
    return None
