"""Exceptions raised by the FT232R GPIO and UART layers."""


class Ft232RError(Exception):
    """Base exception for all FT232R driver errors."""

    pass


class InvalidIndexError(Ft232RError, ValueError):
    """Raised when a pin index is outside the addressable range 0-3."""

    pass


class PinNotFoundError(Ft232RError, ValueError):
    """Raised when a pin name does not map to an addressable CBUS line."""

    pass


class AlreadyOpenError(Ft232RError):
    """Raised when opening a pin that is already open."""

    pass


class NotOpenError(Ft232RError):
    """Raised when operating on a pin that has not been opened."""

    pass


class UnsupportedModeError(Ft232RError, ValueError):
    """Raised for pin modes other than input and output."""

    pass


class WrongDirectionError(Ft232RError):
    """Raised when writing to a pin configured as input."""

    pass


class NotSupportedError(Ft232RError, NotImplementedError):
    """Raised by capabilities the hardware does not have (pin events)."""

    pass


class ConfigurationError(Ft232RError, ValueError):
    """Raised when a UART setting is out of range."""

    pass


class DeviceIoError(Ft232RError, IOError):
    """Raised when a call into the transport fails.

    Attributes:
        operation: Name of the transport operation that failed
        status: Vendor status code reported by the transport (if any)
    """

    def __init__(self, operation: str, status=None, message: str | None = None):
        self.operation = operation
        self.status = status
        if message is None:
            message = f"{operation} failed"
        if status is not None:
            message = f"{message}, status: {_status_name(status)}"
        super().__init__(message)


class ShortWriteError(DeviceIoError):
    """Raised when the device accepts fewer bytes than were written."""

    def __init__(self, requested: int, written: int):
        self.requested = requested
        self.written = written
        super().__init__(
            "write", message=f"Short write: {written} of {requested} bytes accepted"
        )


class BaudRateError(DeviceIoError):
    """UART baud rate could not be applied."""

    pass


class FramingError(DeviceIoError):
    """UART data bits / stop bits / parity could not be applied."""

    pass


class FlowControlError(DeviceIoError):
    """UART flow control could not be applied."""

    pass


class TimeoutConfigError(DeviceIoError):
    """UART read/write timeouts could not be applied."""

    pass


def _status_name(status) -> str:
    name = getattr(status, "name", None)
    return name if name is not None else str(status)
