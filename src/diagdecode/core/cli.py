from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from diagdecode import __version__
from diagdecode.core.bytestr import parse
from diagdecode.core.capture import iter_capture
from diagdecode.core.config import DecoderConfig, load_config
from diagdecode.core.decoder import classify_input, decode_frames, decode_line
from diagdecode.core.errors import DecodeError
from diagdecode.core.layers import detect_layers
from diagdecode.core.parsed import DecodedReport
from diagdecode.core.report import format_report, format_short
from diagdecode.core.selftest import run_self_tests
from diagdecode.logging import parse_log_level, setup_logging


log = logging.getLogger(__name__)


def _print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _emit(report: DecodedReport, args: argparse.Namespace) -> None:
    if args.json:
        _print_json(report.to_dict())
    elif args.short:
        print(format_short(report))
    else:
        sys.stdout.write(format_report(report))


def _cmd_decode(args: argparse.Namespace, config: DecoderConfig) -> int:
    report = decode_frames(list(args.payload), config)
    _emit(report, args)
    return 0


def _cmd_line(args: argparse.Namespace, config: DecoderConfig) -> int:
    report = decode_line(" ".join(args.text), config)
    _emit(report, args)
    return 0


def _cmd_detect(args: argparse.Namespace, config: DecoderConfig) -> int:
    parsed = parse(args.payload)
    plan = detect_layers(parsed.data, config=config)
    out = {
        "input_format": parsed.input_format,
        "hint": classify_input(args.payload),
        "length": len(parsed.data),
        "layers": plan.to_dict(),
    }
    if args.json:
        _print_json(out)
    else:
        for key in ("input_format", "hint", "length"):
            print(f"{key}: {out[key]}")
        for key, value in plan.to_dict().items():
            print(f"{key}: {value}")
    return 0


def _cmd_selftest(args: argparse.Namespace, config: DecoderConfig) -> int:
    results = run_self_tests(config)
    if args.json:
        _print_json(
            [
                {"name": r.name, "input": r.input, "expected": r.expected, "passed": r.passed}
                for r in results
            ]
        )
    else:
        for r in results:
            print(f"{'PASS' if r.passed else 'FAIL'}  {r.name}")
            if not r.passed:
                print(f"      input:    {r.input}")
                print(f"      expected: {r.expected}")
                print(f"      actual:   {r.actual.strip().splitlines()[0] if r.actual.strip() else ''}")
        passed = sum(1 for r in results if r.passed)
        print(f"{passed}/{len(results)} passed")
    return 0 if all(r.passed for r in results) else 1


def _cmd_capture(args: argparse.Namespace, config: DecoderConfig) -> int:
    path = Path(args.path)
    if not path.exists():
        raise SystemExit(f"Capture file not found: {path}")

    errors = 0
    for result in iter_capture(path, config):
        if args.json:
            print(json.dumps(result.to_dict(), ensure_ascii=False))
            continue
        prefix = f"{result.timestamp:.6f} 0x{result.arbitration_id:03X}"
        if result.error is not None:
            errors += 1
            print(f"{prefix} error: {result.error}")
        elif result.report is not None:
            print(f"{prefix} {format_short(result.report)}")
    if errors:
        log.warning("%d message(s) in %s could not be decoded", errors, path.name)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="diagdecode",
        description="diagdecode - CAN / ISO-TP / UDS diagnostic payload decoder",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None, help="Decoder config file (*.yaml/*.yml/*.json)")
    parser.add_argument("--log-level", default="warning", help="debug|info|warning|error (default: %(default)s)")
    parser.add_argument("--log-format", default="pretty", choices=["pretty", "json"], help="Log format on stderr")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    parser.add_argument("--no-color", action="store_true", help="Disable colored log output")

    output = argparse.ArgumentParser(add_help=False)
    output.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    output.add_argument("--short", action="store_true", help="Print a one-line summary")

    subparsers = parser.add_subparsers(dest="command", required=True)

    decode_p = subparsers.add_parser(
        "decode",
        parents=[output],
        help="Decode a payload; several arguments are read as the frames of one ISO-TP message",
    )
    decode_p.add_argument("payload", nargs="+", help='Payload text, e.g. "7F 22 31" or "2,203,006,208"')
    decode_p.set_defaults(func=_cmd_decode)

    line_p = subparsers.add_parser("line", parents=[output], help="Find and decode the payload in a log line")
    line_p.add_argument("text", nargs="+", help="Log line (words are joined with spaces)")
    line_p.set_defaults(func=_cmd_line)

    detect_p = subparsers.add_parser("detect", parents=[output], help="Show input format and detected layers only")
    detect_p.add_argument("payload", help="Payload text")
    detect_p.set_defaults(func=_cmd_detect)

    selftest_p = subparsers.add_parser("selftest", parents=[output], help="Run the built-in decoder self test")
    selftest_p.set_defaults(func=_cmd_selftest)

    capture_p = subparsers.add_parser(
        "capture",
        parents=[output],
        help="Decode a CAN capture file (candump .log, .asc, .blf, .csv ...)",
    )
    capture_p.add_argument("path", help="Capture file path")
    capture_p.set_defaults(func=_cmd_capture)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(
            level=parse_log_level(args.log_level),
            log_format=args.log_format,
            log_file=args.log_file,
            no_color=args.no_color,
        )
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        return int(args.func(args, config))
    except DecodeError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
