"""Transport layer between the FT232R driver core and the device.

The driver core never talks to USB directly. It calls through a
:class:`Transport`, an opaque handle exposing the handful of vendor-driver
primitives the CBUS and UART logic need. Two implementations ship:

- :class:`D2xxTransport`: real hardware through the FTDI D2XX driver
  (``ftd2xx`` package)
- :class:`~fastcs_ft232r.simulator.SimulatedTransport`: software model of
  an FT232R for testing without hardware

Use :func:`open_transport` to build one from a URL:

- ``sim://name``: simulator
- ``loc://0x1234`` or ``0x1234``: D2XX device by USB location id
- ``sn://A12345``: D2XX device by serial number

Transports raise :class:`TransportError` and nothing else; the device
session maps that into the driver's own error taxonomy.
"""

import enum
import logging
from typing import Protocol, runtime_checkable

try:
    import ftd2xx
except ImportError:
    ftd2xx = None  # type: ignore[assignment]
except OSError:
    # The binding imports but the native libftd2xx is not installed
    ftd2xx = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

PURGE_RX = 1
PURGE_TX = 2


class FtStatus(enum.IntEnum):
    """D2XX ``FT_STATUS`` codes."""

    OK = 0
    INVALID_HANDLE = 1
    DEVICE_NOT_FOUND = 2
    DEVICE_NOT_OPENED = 3
    IO_ERROR = 4
    INSUFFICIENT_RESOURCES = 5
    INVALID_PARAMETER = 6
    INVALID_BAUD_RATE = 7
    DEVICE_NOT_OPENED_FOR_ERASE = 8
    DEVICE_NOT_OPENED_FOR_WRITE = 9
    FAILED_TO_WRITE_DEVICE = 10
    EEPROM_READ_FAILED = 11
    EEPROM_WRITE_FAILED = 12
    EEPROM_ERASE_FAILED = 13
    EEPROM_NOT_PRESENT = 14
    EEPROM_NOT_PROGRAMMED = 15
    INVALID_ARGS = 16
    NOT_SUPPORTED = 17
    OTHER_ERROR = 18


class TransportError(Exception):
    """Raised by a transport when a vendor-driver call fails.

    Attributes:
        status: The vendor status code
    """

    def __init__(self, status: FtStatus | int, message: str = ""):
        self.status = status
        status_name = getattr(status, "name", str(status))
        super().__init__(message or f"Transport call failed: {status_name}")


@runtime_checkable
class Transport(Protocol):
    """Collaborator contract the driver core needs from the device."""

    @property
    def is_open(self) -> bool: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    def reset(self) -> None: ...

    def set_bit_mode(self, mask: int, mode: int) -> None: ...

    def get_bit_mode(self) -> int: ...

    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> int: ...

    def set_baud_rate(self, baud_rate: int) -> None: ...

    def set_data_characteristics(
        self, word_length: int, stop_bits: int, parity: int
    ) -> None: ...

    def set_flow_control(self, mode: int, xon: int, xoff: int) -> None: ...

    def set_timeouts(self, read_ms: int, write_ms: int) -> None: ...

    def purge(self, mask: int) -> None: ...

    def queue_status(self) -> int: ...


class D2xxTransport:
    """FTDI D2XX transport for a physical FT232R.

    Wraps a handle from the ``ftd2xx`` package. The handle is opened by USB
    location id (int) or by serial number (str).
    """

    OPEN_BY_SERIAL_NUMBER = 1
    OPEN_BY_LOCATION = 4

    def __init__(self, location: int | str):
        """Initialize transport for a device.

        Args:
            location: USB location id (int) or serial number (str)
        """
        self.location = location
        self._handle = None

        if ftd2xx is None:
            raise ImportError(
                "ftd2xx and the FTDI D2XX driver are required for hardware access. "
                "Install with: pip install 'fastcs-ft232r[d2xx]'"
            )

    def __repr__(self) -> str:
        return f"D2xxTransport({self.location!r})"

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def open(self) -> None:
        if self._handle is not None:
            return

        if isinstance(self.location, int):
            logger.info(f"Opening FT232R at location {self.location:#x}")
            self._handle = self._call(
                ftd2xx.openEx, self.location, self.OPEN_BY_LOCATION
            )
        else:
            logger.info(f"Opening FT232R with serial number {self.location}")
            self._handle = self._call(
                ftd2xx.openEx, self.location.encode("ascii"), self.OPEN_BY_SERIAL_NUMBER
            )

    def close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self._call(handle.close)
        logger.info(f"Closed FT232R {self.location!r}")

    def reset(self) -> None:
        self._call(self._device().resetDevice)

    def set_bit_mode(self, mask: int, mode: int) -> None:
        self._call(self._device().setBitMode, mask, mode)

    def get_bit_mode(self) -> int:
        return int(self._call(self._device().getBitMode))

    def read(self, size: int) -> bytes:
        return bytes(self._call(self._device().read, size))

    def write(self, data: bytes) -> int:
        return int(self._call(self._device().write, bytes(data)))

    def set_baud_rate(self, baud_rate: int) -> None:
        self._call(self._device().setBaudRate, baud_rate)

    def set_data_characteristics(
        self, word_length: int, stop_bits: int, parity: int
    ) -> None:
        self._call(self._device().setDataCharacteristics, word_length, stop_bits, parity)

    def set_flow_control(self, mode: int, xon: int, xoff: int) -> None:
        self._call(self._device().setFlowControl, mode, xon, xoff)

    def set_timeouts(self, read_ms: int, write_ms: int) -> None:
        self._call(self._device().setTimeouts, read_ms, write_ms)

    def purge(self, mask: int) -> None:
        self._call(self._device().purge, mask)

    def queue_status(self) -> int:
        return int(self._call(self._device().getQueueStatus))

    def _device(self):
        if self._handle is None:
            raise TransportError(FtStatus.DEVICE_NOT_OPENED, "Device handle not open")
        return self._handle

    @staticmethod
    def _call(func, *args):
        """Invoke a D2XX call, translating driver errors to TransportError."""
        try:
            return func(*args)
        except ftd2xx.DeviceError as e:
            raise TransportError(_parse_status(e), f"D2XX error: {e}") from e


def _parse_status(error) -> FtStatus | int:
    text = str(error).strip().upper()
    try:
        return FtStatus[text]
    except KeyError:
        return FtStatus.OTHER_ERROR


def open_transport(url: str) -> Transport:
    """Create a transport from a device URL.

    Args:
        url: ``sim://name``, ``loc://<id>``, ``<id>`` (decimal or 0x hex) or
             ``sn://<serial>``

    Returns:
        An unopened transport

    Raises:
        ValueError: If the URL is not understood
    """
    if url.startswith("sim://"):
        # Import simulator locally to avoid a circular import
        from .simulator import SimulatedTransport

        return SimulatedTransport(name=url[len("sim://") :])

    if url.startswith("sn://"):
        serial = url[len("sn://") :]
        if not serial:
            raise ValueError(f"Missing serial number in device URL {url!r}")
        return D2xxTransport(serial)

    location = url[len("loc://") :] if url.startswith("loc://") else url
    try:
        return D2xxTransport(int(location, 0))
    except ValueError:
        raise ValueError(f"Unrecognised device URL: {url!r}") from None
