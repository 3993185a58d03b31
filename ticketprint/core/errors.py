"""Domain-specific errors for ticketprint."""

from ticketprint.core.model import FailureReason


class TicketprintError(Exception):
    """Base error for ticketprint."""


class ConfigError(TicketprintError):
    """Base configuration error."""


class ConfigLoadError(ConfigError):
    """Raised when a configuration file cannot be read."""


class ConfigValidationError(ConfigError):
    """Raised when configuration does not conform to schema or semantics."""


class TicketValidationError(TicketprintError):
    """Raised when a ticket record is incomplete or malformed."""


class DeviceSelectionError(TicketprintError):
    """Raised when a selection cannot be resolved to a listed device."""


class SessionBusyError(TicketprintError):
    """Raised when a print attempt is started while another is in flight."""


class TransportError(TicketprintError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised on RFCOMM/BLE connect failures."""


class TransportSendError(TransportError):
    """Raised when payload sending fails."""


class TransportTimeoutError(TransportError):
    """Raised when a link operation times out."""


class PrintFailure(TicketprintError):
    """Base for errors that terminate a print attempt with a typed reason."""

    reason: FailureReason = FailureReason.DISCOVERY_FAILED


class PermissionDeniedError(PrintFailure):
    """Raised when a required runtime permission was not granted."""

    reason = FailureReason.PERMISSION_DENIED


class BluetoothDisabledError(PrintFailure):
    """Raised when the Bluetooth adapter is off and could not be enabled."""

    reason = FailureReason.BLUETOOTH_DISABLED


class DeviceDiscoveryError(PrintFailure):
    """Raised when Bluetooth device discovery fails."""

    reason = FailureReason.DISCOVERY_FAILED


class AdapterEnableError(DeviceDiscoveryError):
    """Raised when enabling or querying the adapter throws."""


class ScanError(DeviceDiscoveryError):
    """Raised when the active scan throws."""


class NoDevicesFoundError(PrintFailure):
    """Raised when discovery succeeded but found nothing."""

    reason = FailureReason.NO_DEVICES_FOUND


class SelectionCancelledError(PrintFailure):
    """Raised when the operator dismisses the device picker."""

    reason = FailureReason.SELECTION_CANCELLED


class ConnectionFailedError(PrintFailure):
    """Raised when the printer link cannot be opened."""

    reason = FailureReason.CONNECTION_FAILED


class TransmissionFailedError(PrintFailure):
    """Raised when a printer command fails mid-sequence."""

    reason = FailureReason.TRANSMISSION_FAILED

    def __init__(self, message: str, *, commands_sent: int = 0) -> None:
        super().__init__(message)
        self.commands_sent = commands_sent
