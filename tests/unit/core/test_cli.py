from __future__ import annotations

import json
from pathlib import Path

import pytest

from diagdecode.core.cli import build_parser, main


def test_decode_prints_report(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["decode", "7F 22 31"]) == 0
    out = capsys.readouterr().out
    assert "Detected Layers: UDS" in out
    assert "Raw Hex: 7F 22 31" in out


def test_decode_json(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["decode", "--json", "00 00 07 D8 7F 22 31"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["kind"] == "UDS"
    assert data["uds"]["nrc"] == 0x31
    assert data["layers"][0]["fields"]["CAN ID"] == "0x7D8"


def test_decode_multi_frame_short(capsys: pytest.CaptureFixture[str], vin_frames: list[str]) -> None:
    assert main(["decode", "--short", *vin_frames]) == 0
    assert capsys.readouterr().out.strip() == "[UDS] Positive Response: ReadDataByIdentifier (0x62)"


def test_parse_error_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["decode", "7F2"]) == 2
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.strip() == "error: OddLength: '7F2'"


def test_reassembly_error_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["decode", "10 14 62 F1 90 31 46 54"]) == 2
    assert capsys.readouterr().err.startswith("error: Truncated")


def test_line(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["line", "--short", "RX", "7D8", "03", "7F", "22", "31"]) == 0
    assert "RequestOutOfRange" in capsys.readouterr().out


def test_detect(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["detect", "--json", "03 22 F1 90"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["input_format"] == "Hexadecimal"
    assert data["layers"]["frame_type"] == "sf"
    assert data["layers"]["uds_likely"] is True


def test_selftest(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["selftest"]) == 0
    out = capsys.readouterr().out
    assert "FAIL" not in out
    assert out.strip().endswith("passed")


def test_config_option(capsys: pytest.CaptureFixture[str], config_factory) -> None:
    path = config_factory({"can_id_ranges": [{"low": 0x7E0, "high": 0x7EF}], "can_id_labels": {0x7E8: "Engine ECU"}})
    assert main(["--config", str(path), "decode", "--short", "00 00 07 E8 7F 22 31"]) == 0
    assert "RequestOutOfRange" in capsys.readouterr().out


def test_bad_config_exit_code(capsys: pytest.CaptureFixture[str], config_factory) -> None:
    path = config_factory({"bogus": 1})
    assert main(["--config", str(path), "decode", "7F 22 31"]) == 2
    assert "Unknown config key" in capsys.readouterr().err


def test_bad_log_level(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--log-level", "loud", "selftest"]) == 2
    assert "invalid log level" in capsys.readouterr().err


def test_missing_capture_file(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        main(["capture", str(tmp_path / "missing.log")])


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
