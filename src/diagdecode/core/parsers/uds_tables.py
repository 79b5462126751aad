"""
Static ISO 14229 lookup tables.

Built once at import and exposed read-only. Anything not listed here is
reported as unknown by the decoder; nothing is inferred.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping


NEGATIVE_RESPONSE_SID = 0x7F
POSITIVE_RESPONSE_BIT = 0x40
SUPPRESS_POSITIVE_RESPONSE_BIT = 0x80

UNKNOWN_SERVICE = "Unknown/Proprietary"


# UDS Service IDs (request SIDs)
SERVICE_NAMES: Mapping[int, str] = MappingProxyType({
    0x10: "DiagnosticSessionControl",
    0x11: "ECUReset",
    0x14: "ClearDiagnosticInformation",
    0x19: "ReadDTCInformation",
    0x22: "ReadDataByIdentifier",
    0x23: "ReadMemoryByAddress",
    0x24: "ReadScalingDataByIdentifier",
    0x27: "SecurityAccess",
    0x28: "CommunicationControl",
    0x29: "Authentication",
    0x2A: "ReadDataByPeriodicIdentifier",
    0x2C: "DynamicallyDefineDataIdentifier",
    0x2E: "WriteDataByIdentifier",
    0x2F: "InputOutputControlByIdentifier",
    0x31: "RoutineControl",
    0x34: "RequestDownload",
    0x35: "RequestUpload",
    0x36: "TransferData",
    0x37: "RequestTransferExit",
    0x38: "RequestFileTransfer",
    0x3D: "WriteMemoryByAddress",
    0x3E: "TesterPresent",
    0x83: "AccessTimingParameter",
    0x84: "SecuredDataTransmission",
    0x85: "ControlDTCSetting",
    0x86: "ResponseOnEvent",
    0x87: "LinkControl",
})

_CATEGORY_MEMBERS: dict[str, tuple[int, ...]] = {
    "Session & Communication Control": (0x10, 0x11, 0x28, 0x3E, 0x83, 0x85, 0x86, 0x87),
    "Diagnostic Trouble Codes": (0x14, 0x19),
    "Data Read/Write": (0x22, 0x23, 0x24, 0x2A, 0x2C, 0x2E, 0x3D),
    "Security": (0x27, 0x29, 0x84),
    "Input/Output Control": (0x2F, 0x31),
    "Data Transfer (Upload/Download)": (0x34, 0x35, 0x36, 0x37, 0x38),
}

SERVICE_CATEGORIES: Mapping[int, str] = MappingProxyType(
    {sid: category for category, members in _CATEGORY_MEMBERS.items() for sid in members}
)

SERVICE_PURPOSES: Mapping[int, str] = MappingProxyType({
    0x10: "Enable different diagnostic sessions",
    0x11: "Request ECU reset",
    0x14: "Clear diagnostic trouble codes",
    0x19: "Read diagnostic trouble code information",
    0x22: "Read data from ECU memory",
    0x23: "Read memory by address",
    0x24: "Read scaling information of a data identifier",
    0x27: "Unlock security access to ECU",
    0x28: "Control communication parameters",
    0x29: "Authenticate the tester to the ECU",
    0x2A: "Schedule periodic transmission of data identifiers",
    0x2C: "Define data identifiers at runtime",
    0x2E: "Write data to ECU memory",
    0x2F: "Control input/output parameters",
    0x31: "Start/stop routines",
    0x34: "Initiate data download to ECU",
    0x35: "Initiate data upload from ECU",
    0x36: "Transfer data blocks",
    0x37: "Terminate transfer session",
    0x38: "Transfer files to or from the ECU",
    0x3D: "Write memory by address",
    0x3E: "Keep diagnostic session alive",
    0x83: "Read or set communication timing parameters",
    0x84: "Exchange protected diagnostic data",
    0x85: "Control DTC setting behavior",
    0x86: "Request the ECU to start or stop event-driven responses",
    0x87: "Control the communication baud rate",
})

# (verb phrase, consequence) used for the contextual interpretation paragraph.
SERVICE_CONTEXT: Mapping[int, tuple[str, str]] = MappingProxyType({
    0x10: ("a diagnostic session change", "This controls which services are available."),
    0x11: ("an ECU reset", "The ECU will restart after this operation."),
    0x14: ("clearing diagnostic trouble codes", "This removes stored fault information."),
    0x19: ("reading diagnostic trouble codes", "This retrieves stored fault information."),
    0x22: ("reading data from the ECU", "This retrieves specific data values (DID: Data Identifier)."),
    0x23: ("reading memory by address", "This retrieves raw memory contents."),
    0x24: ("reading scaling data", "This describes how a data identifier is encoded."),
    0x27: ("security access", "This is part of the seed/key unlock sequence."),
    0x28: ("communication control", "This manages ECU communication behavior."),
    0x29: ("authentication", "This establishes the tester's access rights."),
    0x2A: ("periodic data identifier transmission", "The ECU will send the selected data repeatedly."),
    0x2C: ("a dynamic data identifier definition", "This composes a new identifier from existing data."),
    0x2E: ("writing data to the ECU", "This modifies specific data values."),
    0x2F: ("input/output control", "This directly controls ECU outputs or inputs."),
    0x31: ("routine control", "This starts/stops/checks an ECU routine/test."),
    0x34: ("a DOWNLOAD to the ECU (tester to ECU)", "This prepares to send data/software to the ECU."),
    0x35: ("an UPLOAD from the ECU (ECU to tester)", "This prepares to receive data from the ECU."),
    0x36: ("transferring a data block", "This sends/receives a chunk of data."),
    0x37: ("ending the transfer session", "This finalizes the upload/download operation."),
    0x38: ("a file transfer", "This moves a file between tester and ECU."),
    0x3D: ("writing memory by address", "This overwrites raw memory contents."),
    0x3E: ("a keep-alive message", "This prevents the diagnostic session from timing out."),
    0x83: ("access to timing parameters", "This reads or changes session timing."),
    0x84: ("secured data transmission", "The embedded data is protected and not interpreted here."),
    0x85: ("DTC setting control", "This enables/disables diagnostic trouble code recording."),
    0x86: ("response-on-event control", "This manages event-driven ECU responses."),
    0x87: ("link control", "This changes the communication baud rate."),
})

# Services whose first parameter byte is a sub-function.
SUBFUNCTION_SERVICES: frozenset[int] = frozenset(
    {0x10, 0x11, 0x19, 0x27, 0x28, 0x29, 0x2C, 0x31, 0x3E, 0x83, 0x85, 0x86, 0x87}
)

_SUBFUNCTIONS: dict[tuple[int, int], str] = {
    # DiagnosticSessionControl
    (0x10, 0x01): "Default Session (normal operation mode)",
    (0x10, 0x02): "Programming Session (for ECU reprogramming/flashing)",
    (0x10, 0x03): "Extended Diagnostic Session (access to all diagnostic services)",
    (0x10, 0x04): "Safety System Diagnostic Session",
    # ECUReset
    (0x11, 0x01): "Hard Reset (power cycle)",
    (0x11, 0x02): "Key Off/On Reset (ignition cycle)",
    (0x11, 0x03): "Soft Reset (application restart)",
    (0x11, 0x04): "Enable Rapid Power Shutdown",
    (0x11, 0x05): "Disable Rapid Power Shutdown",
    # ReadDTCInformation
    (0x19, 0x01): "Report Number Of DTC By Status Mask",
    (0x19, 0x02): "Report DTC By Status Mask",
    (0x19, 0x03): "Report DTC Snapshot Identification",
    (0x19, 0x04): "Report DTC Snapshot Record By DTC Number",
    (0x19, 0x05): "Report DTC Stored Data By Record Number",
    (0x19, 0x06): "Report DTC Extended Data Record By DTC Number",
    (0x19, 0x07): "Report Number Of DTC By Severity Mask Record",
    (0x19, 0x08): "Report DTC By Severity Mask Record",
    (0x19, 0x09): "Report Severity Information Of DTC",
    (0x19, 0x0A): "Report Supported DTC",
    (0x19, 0x0B): "Report First Test Failed DTC",
    (0x19, 0x0C): "Report First Confirmed DTC",
    (0x19, 0x0D): "Report Most Recent Test Failed DTC",
    (0x19, 0x0E): "Report Most Recent Confirmed DTC",
    (0x19, 0x14): "Report DTC Fault Detection Counter",
    (0x19, 0x15): "Report DTC With Permanent Status",
    # CommunicationControl
    (0x28, 0x00): "Enable Rx and Tx",
    (0x28, 0x01): "Enable Rx, Disable Tx",
    (0x28, 0x02): "Disable Rx, Enable Tx",
    (0x28, 0x03): "Disable Rx and Tx",
    # Authentication
    (0x29, 0x00): "Deauthenticate",
    (0x29, 0x01): "Verify Certificate Unidirectional",
    (0x29, 0x02): "Verify Certificate Bidirectional",
    (0x29, 0x03): "Proof Of Ownership",
    (0x29, 0x04): "Transmit Certificate",
    (0x29, 0x05): "Request Challenge For Authentication",
    (0x29, 0x06): "Verify Proof Of Ownership Unidirectional",
    (0x29, 0x07): "Verify Proof Of Ownership Bidirectional",
    (0x29, 0x08): "Authentication Configuration",
    # DynamicallyDefineDataIdentifier
    (0x2C, 0x01): "Define By Identifier",
    (0x2C, 0x02): "Define By Memory Address",
    (0x2C, 0x03): "Clear Dynamically Defined Data Identifier",
    # RoutineControl
    (0x31, 0x01): "Start Routine",
    (0x31, 0x02): "Stop Routine",
    (0x31, 0x03): "Request Routine Results",
    # TesterPresent
    (0x3E, 0x00): "Zero Sub-Function (keep session alive)",
    # AccessTimingParameter
    (0x83, 0x01): "Read Extended Timing Parameter Set",
    (0x83, 0x02): "Set Timing Parameters To Default Values",
    (0x83, 0x03): "Read Currently Active Timing Parameters",
    (0x83, 0x04): "Set Timing Parameters To Given Values",
    # ControlDTCSetting
    (0x85, 0x01): "Turn DTC Recording ON",
    (0x85, 0x02): "Turn DTC Recording OFF",
    # ResponseOnEvent
    (0x86, 0x00): "Stop Response On Event",
    (0x86, 0x01): "On DTC Status Change",
    (0x86, 0x03): "On Change Of Data Identifier",
    (0x86, 0x04): "Report Activated Events",
    (0x86, 0x05): "Start Response On Event",
    (0x86, 0x06): "Clear Response On Event",
    (0x86, 0x07): "On Comparison Of Values",
    # LinkControl
    (0x87, 0x01): "Verify Mode Transition With Fixed Parameter",
    (0x87, 0x02): "Verify Mode Transition With Specific Parameter",
    (0x87, 0x03): "Transition Mode",
}

# SecurityAccess: odd levels request a seed, even levels send the key (0x01..0x42).
for _level in range(0x01, 0x43):
    if _level % 2:
        _SUBFUNCTIONS[(0x27, _level)] = f"Request Seed (Level {(_level + 1) // 2})"
    else:
        _SUBFUNCTIONS[(0x27, _level)] = f"Send Key (Level {_level // 2})"

SUBFUNCTION_MEANINGS: Mapping[tuple[int, int], str] = MappingProxyType(_SUBFUNCTIONS)


# Negative Response Codes
NRC_NAMES: Mapping[int, str] = MappingProxyType({
    0x10: "GeneralReject",
    0x11: "ServiceNotSupported",
    0x12: "SubFunctionNotSupported",
    0x13: "IncorrectMessageLengthOrInvalidFormat",
    0x14: "ResponseTooLong",
    0x21: "BusyRepeatRequest",
    0x22: "ConditionsNotCorrect",
    0x24: "RequestSequenceError",
    0x25: "NoResponseFromSubnetComponent",
    0x26: "FailurePreventsExecutionOfRequestedAction",
    0x31: "RequestOutOfRange",
    0x33: "SecurityAccessDenied",
    0x34: "AuthenticationRequired",
    0x35: "InvalidKey",
    0x36: "ExceedNumberOfAttempts",
    0x37: "RequiredTimeDelayNotExpired",
    0x70: "UploadDownloadNotAccepted",
    0x71: "TransferDataSuspended",
    0x72: "GeneralProgrammingFailure",
    0x73: "WrongBlockSequenceCounter",
    0x78: "RequestCorrectlyReceived_ResponsePending",
    0x7E: "SubFunctionNotSupportedInActiveSession",
    0x7F: "ServiceNotSupportedInActiveSession",
    0x81: "RpmTooHigh",
    0x82: "RpmTooLow",
    0x83: "EngineIsRunning",
    0x84: "EngineIsNotRunning",
    0x85: "EngineRunTimeTooLow",
    0x86: "TemperatureTooHigh",
    0x87: "TemperatureTooLow",
    0x88: "VehicleSpeedTooHigh",
    0x89: "VehicleSpeedTooLow",
    0x8A: "ThrottlePedalTooHigh",
    0x8B: "ThrottlePedalTooLow",
    0x8C: "TransmissionRangeNotInNeutral",
    0x8D: "TransmissionRangeNotInGear",
    0x8F: "BrakeSwitchesNotClosed",
    0x90: "ShifterLeverNotInPark",
    0x91: "TorqueConverterClutchLocked",
    0x92: "VoltageTooHigh",
    0x93: "VoltageTooLow",
})

NRC_DESCRIPTIONS: Mapping[int, str] = MappingProxyType({
    0x10: "General Reject",
    0x11: "Service Not Supported",
    0x12: "SubFunction Not Supported",
    0x13: "Incorrect Message Length or Invalid Format",
    0x14: "Response Too Long",
    0x21: "Busy Repeat Request",
    0x22: "Conditions Not Correct",
    0x24: "Request Sequence Error",
    0x25: "No Response From Subnet Component",
    0x26: "Failure Prevents Execution Of Requested Action",
    0x31: "Request Out Of Range",
    0x33: "Security Access Denied",
    0x34: "Authentication Required",
    0x35: "Invalid Key",
    0x36: "Exceed Number Of Attempts",
    0x37: "Required Time Delay Not Expired",
    0x70: "Upload Download Not Accepted",
    0x71: "Transfer Data Suspended",
    0x72: "General Programming Failure",
    0x73: "Wrong Block Sequence Counter",
    0x78: "Request Correctly Received - Response Pending",
    0x7E: "SubFunction Not Supported In Active Session",
    0x7F: "Service Not Supported In Active Session",
    0x81: "RPM Too High",
    0x82: "RPM Too Low",
    0x83: "Engine Is Running",
    0x84: "Engine Is Not Running",
    0x85: "Engine Run Time Too Low",
    0x86: "Temperature Too High",
    0x87: "Temperature Too Low",
    0x88: "Vehicle Speed Too High",
    0x89: "Vehicle Speed Too Low",
    0x8A: "Throttle/Pedal Too High",
    0x8B: "Throttle/Pedal Too Low",
    0x8C: "Transmission Range Not In Neutral",
    0x8D: "Transmission Range Not In Gear",
    0x8F: "Brake Switch(es) Not Closed",
    0x90: "Shifter Lever Not In Park",
    0x91: "Torque Converter Clutch Locked",
    0x92: "Voltage Too High",
    0x93: "Voltage Too Low",
})

NRC_CAUSES: Mapping[int, str] = MappingProxyType({
    0x10: "the ECU rejected the request for an unspecified reason.",
    0x11: "the requested service is not implemented in this ECU.",
    0x12: "the requested sub-function is not supported.",
    0x13: "the message has incorrect length or invalid data format.",
    0x14: "the response data is too large to transmit.",
    0x21: "the ECU is currently busy processing another request.",
    0x22: "preconditions are not met (e.g., wrong gear, engine state, or voltage).",
    0x24: "the request was sent out of sequence (e.g., writing before unlocking).",
    0x25: "a required subnet component failed to respond.",
    0x26: "an internal failure prevents executing the request.",
    0x31: "parameters are outside valid ranges (e.g., invalid address or value).",
    0x33: "security access is required but not granted.",
    0x34: "the tester has not authenticated for this service.",
    0x35: "the provided security key is incorrect.",
    0x36: "too many failed security attempts; ECU is locked temporarily.",
    0x37: "a mandatory delay period has not elapsed yet.",
    0x70: "upload/download is not allowed in the current state.",
    0x71: "data transfer was suspended due to an issue.",
    0x72: "a general error occurred during programming.",
    0x73: "the data block sequence number is wrong.",
    0x78: "the ECU is processing the request; this is an interim response.",
    0x7E: "the sub-function is not available in the current diagnostic session.",
    0x7F: "the service is not available in the current diagnostic session.",
    0x81: "engine speed is above the limit allowed for this request.",
    0x82: "engine speed is below the limit required for this request.",
    0x83: "the engine must be stopped for this request.",
    0x84: "the engine must be running for this request.",
    0x85: "the engine has not been running long enough.",
    0x86: "a monitored temperature is above the allowed limit.",
    0x87: "a monitored temperature is below the required limit.",
    0x88: "the vehicle is moving faster than allowed for this request.",
    0x89: "the vehicle is moving slower than required for this request.",
    0x8A: "the throttle or pedal position is above the allowed limit.",
    0x8B: "the throttle or pedal position is below the required limit.",
    0x8C: "the transmission must be in neutral.",
    0x8D: "the transmission must be in gear.",
    0x8F: "the brake pedal must be pressed.",
    0x90: "the shifter must be in park.",
    0x91: "the torque converter clutch is locked.",
    0x92: "supply voltage is above the allowed limit.",
    0x93: "supply voltage is below the required limit.",
})

NRC_ACTIONS: Mapping[int, str] = MappingProxyType({
    0x10: "Consult ECU documentation for specific resolution steps.",
    0x11: "Check if the ECU supports this service in the current session.",
    0x12: "Check if the sub-function is valid for this service.",
    0x13: "Verify the message format and length are correct.",
    0x14: "Request less data per message or use a transfer service.",
    0x21: "Wait and retry the request.",
    0x22: "Check preconditions (e.g., engine state, session type).",
    0x24: "Ensure proper request sequence (e.g., security access before writing).",
    0x25: "Check the gateway and the subnet component it forwards to.",
    0x26: "Read DTCs on the ECU to find the internal failure.",
    0x31: "Verify parameters are within valid ranges.",
    0x33: "Complete security access procedure first.",
    0x34: "Run the authentication service before this request.",
    0x35: "Use the correct security key for this ECU.",
    0x36: "Wait for the timeout period before retrying.",
    0x37: "Wait for the required time delay before retrying.",
    0x70: "Check programming preconditions and the requested memory area.",
    0x71: "Restart the transfer from RequestDownload/RequestUpload.",
    0x72: "Erase and reprogram the memory area; check supply voltage.",
    0x73: "Resend the block with the expected sequence counter.",
    0x78: "Wait for the final response; the ECU is still processing.",
    0x7E: "Switch to a different diagnostic session (e.g., extended or programming).",
    0x7F: "Switch to a different diagnostic session (e.g., extended or programming).",
    0x81: "Reduce engine speed and retry.",
    0x82: "Increase engine speed and retry.",
    0x83: "Stop the engine and retry.",
    0x84: "Start the engine and retry.",
    0x85: "Let the engine run longer before retrying.",
    0x86: "Let the component cool down before retrying.",
    0x87: "Let the component warm up before retrying.",
    0x88: "Reduce vehicle speed and retry.",
    0x89: "Increase vehicle speed and retry.",
    0x8A: "Release the throttle/pedal and retry.",
    0x8B: "Press the throttle/pedal and retry.",
    0x8C: "Shift the transmission to neutral and retry.",
    0x8D: "Shift the transmission into gear and retry.",
    0x8F: "Press the brake pedal and retry.",
    0x90: "Move the shifter to park and retry.",
    0x91: "Unlock the torque converter clutch and retry.",
    0x92: "Reduce supply voltage (check charger/alternator) and retry.",
    0x93: "Connect a battery support unit and retry.",
})

UNKNOWN_NRC_ACTION = "Consult ECU documentation for specific resolution steps."


# Data identifiers (ISO 14229-1 Annex C, 0xF180-0xF19F block)
DID_NAMES: Mapping[int, str] = MappingProxyType({
    0xF180: "BootSoftwareIdentification",
    0xF181: "ApplicationSoftwareIdentification",
    0xF182: "ApplicationDataIdentification",
    0xF183: "BootSoftwareFingerprint",
    0xF184: "ApplicationSoftwareFingerprint",
    0xF185: "ApplicationDataFingerprint",
    0xF186: "ActiveDiagnosticSession",
    0xF187: "VehicleManufacturerSparePartNumber",
    0xF188: "VehicleManufacturerECUSoftwareNumber",
    0xF189: "VehicleManufacturerECUSoftwareVersionNumber",
    0xF18A: "SystemSupplierIdentifier",
    0xF18B: "ECUManufacturingDate",
    0xF18C: "ECUSerialNumber",
    0xF18D: "SupportedFunctionalUnits",
    0xF18E: "VehicleManufacturerKitAssemblyPartNumber",
    0xF190: "VIN",
    0xF191: "VehicleManufacturerECUHardwareNumber",
    0xF192: "SystemSupplierECUHardwareNumber",
    0xF193: "SystemSupplierECUHardwareVersionNumber",
    0xF194: "SystemSupplierECUSoftwareNumber",
    0xF195: "SystemSupplierECUSoftwareVersionNumber",
    0xF196: "ExhaustRegulationOrTypeApprovalNumber",
    0xF197: "SystemNameOrEngineType",
    0xF198: "RepairShopCodeOrTesterSerialNumber",
    0xF199: "ProgrammingDate",
    0xF19A: "CalibrationRepairShopCodeOrCalibrationEquipmentSerialNumber",
    0xF19B: "CalibrationDate",
    0xF19C: "CalibrationEquipmentSoftwareNumber",
    0xF19D: "ECUInstallationDate",
    0xF19E: "ODXFile",
    0xF19F: "Entity",
})

# DIDs whose value is defined as ASCII text.
ASCII_DIDS: frozenset[int] = frozenset({0xF187, 0xF188, 0xF189, 0xF18C, 0xF190, 0xF192, 0xF194, 0xF197})

ROUTINE_NAMES: Mapping[int, str] = MappingProxyType({
    0x0202: "ProgrammingPreconditionCheck",
    0x0203: "CheckMemory",
    0xE200: "ExecuteSPL",
    0xE201: "DeployLoopRoutineID",
    0xF018: "ReadDevelopmentData",
    0xFF00: "EraseMemory",
    0xFF01: "CheckProgrammingDependencies",
    0xFF02: "EraseMirrorMemoryDTCs",
})


def base_service(sid: int) -> int:
    return sid & ~POSITIVE_RESPONSE_BIT & 0xFF


def is_known_uds_sid(sid: int) -> bool:
    """True for 0x7F, a known request SID, or a known SID + 0x40 response."""
    sid &= 0xFF
    if sid == NEGATIVE_RESPONSE_SID:
        return True
    return base_service(sid) in SERVICE_NAMES
