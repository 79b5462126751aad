from __future__ import annotations

import pytest

from diagdecode.core.config import DecoderConfig
from diagdecode.core.layers import detect_layers, split_can_header


def h(text: str) -> bytes:
    return bytes.fromhex(text)


def test_can_header_response() -> None:
    plan = detect_layers(h("000007D87F2231"))
    assert plan.has_can_header
    assert plan.can_header is not None
    assert plan.can_header.can_id == 0x7D8
    assert plan.can_header.label == "Response from ECU"
    assert not plan.is_iso_tp
    assert plan.uds_likely


def test_can_header_request_label() -> None:
    plan = detect_layers(h("000007D02201F190"))
    assert plan.can_header is not None
    assert plan.can_header.label == "Request to ECU"


def test_can_header_other_id_in_range() -> None:
    plan = detect_layers(h("000007DA037F2231"))
    assert plan.can_header is not None
    assert plan.can_header.label == "CAN ID 0x7DA"
    assert plan.frame_type == "sf"


def test_can_id_outside_range_is_not_a_header() -> None:
    plan = detect_layers(h("000001237F2231"))
    assert not plan.has_can_header
    assert not plan.uds_likely


def test_header_needs_a_payload_byte() -> None:
    header, rest = split_can_header(h("000007D8"))
    assert header is None
    assert rest == h("000007D8")


def test_configured_range_and_label() -> None:
    config = DecoderConfig(can_id_ranges=((0x700, 0x7FF),), can_id_labels={0x7E8: "Engine ECU"})
    plan = detect_layers(h("000007E87F2231"), config=config)
    assert plan.can_header is not None
    assert plan.can_header.label == "Engine ECU"
    assert not detect_layers(h("000007E87F2231")).has_can_header


def test_single_frame() -> None:
    plan = detect_layers(h("0322F190"))
    assert plan.is_iso_tp
    assert plan.frame_type == "sf"
    assert plan.uds_likely


@pytest.mark.parametrize("text", ["1003", "1101", "3E00", "2701", "0022F190"])
def test_plain_uds_is_not_isotp(text: str) -> None:
    plan = detect_layers(h(text))
    assert not plan.is_iso_tp


def test_first_frame() -> None:
    plan = detect_layers(h("101462F190314654"))
    assert plan.frame_type == "ff"
    assert plan.uds_likely


def test_first_frame_must_announce_more_than_it_carries() -> None:
    assert detect_layers(h("1006010203040506")).frame_type is None


def test_consecutive_and_flow_control_only_in_multi_frame() -> None:
    assert detect_layers(h("21465731")).frame_type is None
    assert detect_layers(h("21465731"), multi_frame=True).frame_type == "cf"
    assert detect_layers(h("300000"), multi_frame=True).frame_type == "fc"
    assert not detect_layers(h("21465731"), multi_frame=True).uds_likely


def test_isotp_detection_can_be_disabled() -> None:
    plan = detect_layers(h("0322F190"), config=DecoderConfig(auto_detect_isotp=False))
    assert not plan.is_iso_tp
    assert not plan.uds_likely


def test_input_is_not_modified() -> None:
    data = bytearray(h("000007D8037F2231"))
    before = bytes(data)
    detect_layers(data)
    assert bytes(data) == before


def test_plan_to_dict() -> None:
    d = detect_layers(h("000007D8037F2231")).to_dict()
    assert d["has_can_header"] is True
    assert d["can_header"]["can_id"] == 0x7D8
    assert d["frame_type"] == "sf"
