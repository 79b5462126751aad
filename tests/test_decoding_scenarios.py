from __future__ import annotations

import sys
import unittest
from pathlib import Path


def _bootstrap_src_path() -> None:
    project_root = Path(__file__).resolve().parents[1]
    src_dir = project_root / "src"
    sys.path.insert(0, str(src_dir))


_bootstrap_src_path()

from diagdecode.core.decoder import decode, decode_frames  # noqa: E402
from diagdecode.core.errors import ParseError  # noqa: E402
from diagdecode.core.isotp import segment  # noqa: E402
from diagdecode.core.bytestr import to_hex_string  # noqa: E402


class DecodingScenarioTests(unittest.TestCase):
    def test_negative_response(self) -> None:
        report = decode("7F 22 31")
        uds = report.uds
        self.assertIsNotNone(uds)
        assert uds is not None
        self.assertEqual(uds.direction, "NegativeResponse")
        self.assertEqual(uds.requested_service, 0x22)
        self.assertEqual(uds.requested_service_name, "ReadDataByIdentifier")
        self.assertEqual(uds.nrc, 0x31)
        self.assertEqual(uds.nrc_name, "RequestOutOfRange")
        self.assertEqual(report.confidence, "Exact")
        self.assertEqual(report.layer_names, ("UDS",))

    def test_positive_session_control(self) -> None:
        report = decode("50 03")
        uds = report.uds
        assert uds is not None
        self.assertEqual(uds.direction, "PositiveResponse")
        self.assertEqual(uds.base_service, 0x10)
        self.assertEqual(uds.service_name, "DiagnosticSessionControl")
        self.assertEqual(uds.sub_function, 0x03)
        self.assertTrue(uds.sub_function_name.startswith("Extended Diagnostic Session"))
        self.assertFalse(uds.suppress_positive_response)

    def test_isotp_single_frame_vin_request(self) -> None:
        report = decode("03 22 F1 90")
        self.assertEqual(report.layer_names, ("ISO-TP", "UDS"))
        self.assertEqual(report.payload, bytes.fromhex("22F190"))
        isotp = report.layer("ISO-TP")
        assert isotp is not None
        self.assertIn(("Frame Type", "Single Frame"), isotp.fields)
        self.assertIn(("Length", "3 bytes"), isotp.fields)
        uds = report.uds
        assert uds is not None
        self.assertEqual(uds.direction, "Request")
        self.assertEqual(uds.service_id, 0x22)
        self.assertIn(("DID", "0xF190 (VIN)"), uds.fields)

    def test_can_header_negative_response(self) -> None:
        report = decode("00 00 07 D8 7F 22 31")
        self.assertEqual(report.layer_names, ("CAN", "UDS"))
        can = report.layer("CAN")
        assert can is not None
        self.assertIn(("CAN ID", "0x7D8"), can.fields)
        self.assertIn(("Direction", "Response from ECU"), can.fields)
        self.assertEqual(report.payload, bytes.fromhex("7F2231"))
        uds = report.uds
        assert uds is not None
        self.assertEqual(uds.requested_service, 0x22)
        self.assertEqual(uds.nrc, 0x31)

    def test_odd_length_is_rejected(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            decode("7F2")
        self.assertEqual(ctx.exception.kind, "OddLength")
        self.assertEqual(ctx.exception.fragment, "7F2")

    def test_decimal_csv_is_not_misread_as_uds(self) -> None:
        report = decode("2,203,006,208")
        self.assertEqual(report.input_format, "DecimalCsv")
        self.assertEqual(report.kind, "ISO-TP")
        self.assertIn("Non-UDS payload", report.summary)
        self.assertIsNone(report.uds)
        self.assertTrue(any("not a valid UDS Service ID" in r for r in report.reasons))

    def test_segmented_payload_round_trip(self) -> None:
        payload = bytes.fromhex("62F190") + b"1FTFW1ET5DFA12345"
        frames = [to_hex_string(f) for f in segment(payload)]
        self.assertEqual(len(frames), 3)
        report = decode_frames(frames)
        self.assertEqual(report.payload, payload)
        uds = report.uds
        assert uds is not None
        self.assertIn(("VIN", "1FTFW1ET5DFA12345"), uds.fields)


if __name__ == "__main__":
    unittest.main()
