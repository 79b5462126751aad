from __future__ import annotations

import logging

import pytest

from diagdecode.core.errors import ReassemblyError
from diagdecode.core.isotp import (
    IsoTpReassembly,
    build_cf,
    build_fc,
    build_ff,
    build_sf,
    flow_status_name,
    parse_isotp_frame,
    reassemble,
    segment,
    stmin_to_seconds,
)
from diagdecode.core.layers import LayerPlan, detect_layers


VIN_RESPONSE = bytes.fromhex("62F190") + b"1FTFW1ET5DFA12345"


def h(text: str) -> bytes:
    return bytes.fromhex(text)


def multi_plan(frames: list[bytes]) -> LayerPlan:
    return detect_layers(frames[0], multi_frame=True)


def test_single_frame_ignores_padding() -> None:
    frame = h("0322F190AAAAAAAA")
    parsed = parse_isotp_frame(frame)
    assert parsed.frame_type == "sf"
    assert parsed.payload == h("22F190")
    assert reassemble([frame], detect_layers(frame)) == h("22F190")


def test_single_frame_length_mismatch() -> None:
    frame = h("0522F1")
    with pytest.raises(ReassemblyError) as exc:
        reassemble([frame], detect_layers(frame))
    assert exc.value.kind == "LengthMismatch"


def test_multi_frame_vin() -> None:
    frames = segment(VIN_RESPONSE)
    assert frames[0] == h("101462F190314654")
    assert frames[1] == h("2146573145543544")
    assert frames[2] == h("2246413132333435")
    assert reassemble(frames, multi_plan(frames)) == VIN_RESPONSE


def test_flow_control_frames_are_skipped() -> None:
    frames = segment(VIN_RESPONSE)
    with_fc = [frames[0], build_fc(status=0, block_size=0, stmin=0x0A), frames[1], frames[2]]
    assert reassemble(with_fc, multi_plan(with_fc)) == VIN_RESPONSE


def test_padded_last_frame_is_trimmed() -> None:
    frames = segment(VIN_RESPONSE + b"\x01", pad_byte=0xAA)
    assert len(frames[-1]) == 8
    assert reassemble(frames, multi_plan(frames)) == VIN_RESPONSE + b"\x01"


def test_sequence_counter_wraps() -> None:
    payload = bytes(range(118))
    frames = segment(payload)
    assert len(frames) == 17
    assert frames[15][0] == 0x2F
    assert frames[16][0] == 0x20
    assert reassemble(frames, multi_plan(frames)) == payload


def test_sequence_gap() -> None:
    frames = segment(VIN_RESPONSE)
    gapped = [frames[0], frames[2]]
    with pytest.raises(ReassemblyError) as exc:
        reassemble(gapped, multi_plan(gapped))
    assert exc.value.kind == "SequenceGap"


def test_truncated_multi_frame() -> None:
    frames = segment(VIN_RESPONSE)[:2]
    with pytest.raises(ReassemblyError) as exc:
        reassemble(frames, multi_plan(frames))
    assert exc.value.kind == "Truncated"
    assert "13 of 20" in str(exc.value)


def test_lone_first_frame_is_truncated() -> None:
    frame = segment(VIN_RESPONSE)[0]
    with pytest.raises(ReassemblyError) as exc:
        reassemble([frame], detect_layers(frame))
    assert exc.value.kind == "Truncated"


def test_consecutive_frame_first_is_unexpected() -> None:
    frames = segment(VIN_RESPONSE)[1:]
    with pytest.raises(ReassemblyError) as exc:
        reassemble(frames, multi_plan(frames))
    assert exc.value.kind == "UnexpectedFrame"


def test_frames_after_single_frame_are_unexpected() -> None:
    frames = [build_sf(h("3E00")), build_sf(h("3E00"))]
    with pytest.raises(ReassemblyError) as exc:
        reassemble(frames, multi_plan(frames))
    assert exc.value.kind == "UnexpectedFrame"


def test_new_first_frame_inside_sequence_is_unexpected() -> None:
    frames = segment(VIN_RESPONSE)
    restarted = [frames[0], frames[1], frames[0]]
    with pytest.raises(ReassemblyError) as exc:
        reassemble(restarted, multi_plan(restarted))
    assert exc.value.kind == "UnexpectedFrame"


def test_trailing_frames_after_completion_are_ignored(caplog: pytest.LogCaptureFixture) -> None:
    frames = segment(VIN_RESPONSE) + [build_cf(3, b"\x00" * 7)]
    with caplog.at_level(logging.WARNING, logger="diagdecode.core.isotp"):
        assert reassemble(frames, multi_plan(frames)) == VIN_RESPONSE
    assert any("ignoring 1 frame" in r.getMessage() for r in caplog.records)


def test_pass_through_without_isotp() -> None:
    assert reassemble([h("7F2231")], LayerPlan()) == h("7F2231")
    with pytest.raises(ReassemblyError) as exc:
        reassemble([h("7F2231"), h("7F2231")], LayerPlan())
    assert exc.value.kind == "UnexpectedFrame"


def test_no_frames() -> None:
    with pytest.raises(ReassemblyError) as exc:
        reassemble([], LayerPlan(is_iso_tp=True, frame_type="sf"))
    assert exc.value.kind == "Truncated"


def test_reassembly_state_resets_after_message() -> None:
    state = IsoTpReassembly()
    frames = segment(VIN_RESPONSE)
    out = None
    for frame in frames:
        out, _parsed = state.feed(frame)
    assert out == VIN_RESPONSE
    assert not state.in_progress
    assert state == IsoTpReassembly()
    state.finish()


def test_builders() -> None:
    assert build_sf(h("3E00")) == h("023E00")
    assert build_sf(h("3E00"), pad_byte=0x55) == h("023E005555555555")
    assert build_ff(VIN_RESPONSE)[:2] == h("1014")
    assert build_fc(status=1, block_size=8, stmin=0x14) == h("310814")
    with pytest.raises(ValueError):
        build_sf(b"")
    with pytest.raises(ValueError):
        build_ff(h("0102"))


def test_flow_control_parsing() -> None:
    parsed = parse_isotp_frame(h("300814"))
    assert parsed.frame_type == "fc"
    assert parsed.block_size == 8
    assert parsed.stmin == 0x14
    assert flow_status_name(0) == "ContinueToSend"
    assert flow_status_name(1) == "Wait"
    assert flow_status_name(2) == "Overflow"
    assert flow_status_name(3) == "Reserved"


def test_stmin_to_seconds() -> None:
    assert stmin_to_seconds(0x0A) == pytest.approx(0.010)
    assert stmin_to_seconds(0xF5) == pytest.approx(0.0005)
    assert stmin_to_seconds(0x80) == 0.0
