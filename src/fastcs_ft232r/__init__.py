"""Top level API.

This package drives the FTDI FT232R USB-serial bridge as two peripherals
sharing one device handle:

- Ft232RGpio: the four CBUS lines (CBUS0-3) as GPIO in CBUS bit-bang mode
- Ft232RUart: the dedicated TX/RX UART
- Ft232RDevice: the session owning the handle and serializing all access

Plus a FastCS controller exposing the CBUS pins as EPICS PVs.

Example usage::

    from fastcs_ft232r import Ft232RDevice, PinMode, PinValue, pin_name_to_index

    with Ft232RDevice.from_url("loc://0x1234") as device:
        gpio = device.create_gpio()
        pin = pin_name_to_index("CBUS2")
        gpio.open_pin(pin, PinMode.OUTPUT)
        gpio.write_pin(pin, PinValue.HIGH)
        print(f"CBUS mask: {gpio.mask:#04x}")

.. data:: __version__
    :type: str

    Version number as calculated by https://github.com/pypa/setuptools_scm
"""

from ._version import __version__
from .device import Ft232RDevice
from .enums import FlowControl, Parity, PinEventTypes, PinMode, PinValue, StopBits
from .errors import (
    AlreadyOpenError,
    BaudRateError,
    ConfigurationError,
    DeviceIoError,
    FlowControlError,
    FramingError,
    Ft232RError,
    InvalidIndexError,
    NotOpenError,
    NotSupportedError,
    PinNotFoundError,
    ShortWriteError,
    TimeoutConfigError,
    UnsupportedModeError,
    WrongDirectionError,
)
from .ft232r_controller import Ft232RController
from .gpio import Ft232RGpio
from .pin_io import CbusPinIO, CbusPinIORef
from .registers import (
    PIN_COUNT,
    BitMode,
    describe_mask,
    get_direction,
    get_value,
    pin_index_to_name,
    pin_name_to_index,
    set_direction,
    set_value,
)
from .simulator import SimulatedTransport
from .transport import D2xxTransport, FtStatus, Transport, TransportError, open_transport
from .uart import Ft232RUart, UartConfig

__all__ = [
    "__version__",
    # Session, GPIO, UART
    "Ft232RDevice",
    "Ft232RGpio",
    "Ft232RUart",
    "UartConfig",
    # Transport
    "Transport",
    "TransportError",
    "FtStatus",
    "D2xxTransport",
    "SimulatedTransport",
    "open_transport",
    # Controller
    "Ft232RController",
    "CbusPinIO",
    "CbusPinIORef",
    # Enumerations
    "PinMode",
    "PinValue",
    "PinEventTypes",
    "Parity",
    "StopBits",
    "FlowControl",
    "BitMode",
    # Register model
    "PIN_COUNT",
    "set_direction",
    "set_value",
    "get_direction",
    "get_value",
    "describe_mask",
    "pin_name_to_index",
    "pin_index_to_name",
    # Errors
    "Ft232RError",
    "InvalidIndexError",
    "PinNotFoundError",
    "AlreadyOpenError",
    "NotOpenError",
    "UnsupportedModeError",
    "WrongDirectionError",
    "NotSupportedError",
    "DeviceIoError",
    "ShortWriteError",
    "BaudRateError",
    "FramingError",
    "FlowControlError",
    "TimeoutConfigError",
    "ConfigurationError",
]
