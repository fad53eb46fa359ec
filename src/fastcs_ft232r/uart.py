"""UART channel over the FT232R's dedicated TX/RX lines.

The UART shares the device handle with the CBUS GPIO controller but uses a
separate register space on the chip. Configuration is applied as four
independent calls (baud rate, framing, flow control, timeouts); each failure
is reported with its own exception so the caller knows which setting to fix.

Example usage::

    from fastcs_ft232r import Ft232RDevice, Parity, UartConfig

    device = Ft232RDevice.from_url("loc://0x1234")
    uart = device.create_uart(UartConfig(baud_rate=115200, parity=Parity.EVEN))
    uart.write(b"ping")
    buffer = bytearray(16)
    count = uart.read(buffer)
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .enums import FlowControl, Parity, StopBits
from .errors import (
    BaudRateError,
    ConfigurationError,
    DeviceIoError,
    FlowControlError,
    FramingError,
    ShortWriteError,
    TimeoutConfigError,
)
from .transport import PURGE_RX, PURGE_TX

if TYPE_CHECKING:
    from .device import Ft232RDevice

logger = logging.getLogger(__name__)

MIN_BAUD_RATE = 300
MAX_BAUD_RATE = 3_000_000
DEFAULT_BAUD_RATE = 9600
DATA_BITS = (7, 8)

# XON/XOFF characters (DC1/DC3)
XON_CHAR = 0x11
XOFF_CHAR = 0x13

# D2XX codes for each setting
STOP_BITS_CODES: dict[StopBits, int] = {
    StopBits.ONE: 0,
    StopBits.ONE_POINT_FIVE: 1,
    StopBits.TWO: 2,
}

PARITY_CODES: dict[Parity, int] = {
    Parity.NONE: 0,
    Parity.ODD: 1,
    Parity.EVEN: 2,
    Parity.MARK: 3,
    Parity.SPACE: 4,
}

FLOW_CONTROL_CODES: dict[FlowControl, int] = {
    FlowControl.NONE: 0x0000,
    FlowControl.RTS_CTS: 0x0100,
    FlowControl.XON_XOFF: 0x0400,
}


@dataclass(frozen=True)
class UartConfig:
    """UART connection settings.

    Attributes:
        baud_rate: Bits per second (300-3000000)
        data_bits: 7 or 8
        parity: Parity mode
        stop_bits: Number of stop bits
        flow_control: Flow control mode
        read_timeout: Read timeout in ms, negative for infinite
        write_timeout: Write timeout in ms, negative for infinite
    """

    baud_rate: int = DEFAULT_BAUD_RATE
    data_bits: int = 8
    parity: Parity = Parity.NONE
    stop_bits: StopBits = StopBits.ONE
    flow_control: FlowControl = FlowControl.NONE
    read_timeout: int = -1
    write_timeout: int = -1

    def __post_init__(self):
        """Validate every field."""
        if isinstance(self.baud_rate, bool) or not isinstance(self.baud_rate, int):
            raise ConfigurationError(f"Baud rate must be an int, got {self.baud_rate!r}")
        if not MIN_BAUD_RATE <= self.baud_rate <= MAX_BAUD_RATE:
            raise ConfigurationError(
                f"Baud rate {self.baud_rate} out of range "
                f"[{MIN_BAUD_RATE}-{MAX_BAUD_RATE}]"
            )
        if isinstance(self.data_bits, bool) or not isinstance(self.data_bits, int):
            raise ConfigurationError(f"Data bits must be an int, got {self.data_bits!r}")
        if self.data_bits not in DATA_BITS:
            raise ConfigurationError(f"Data bits must be 7 or 8, got {self.data_bits!r}")
        if not isinstance(self.parity, Parity):
            raise ConfigurationError(f"Invalid parity: {self.parity!r}")
        if not isinstance(self.stop_bits, StopBits):
            raise ConfigurationError(f"Invalid stop bits: {self.stop_bits!r}")
        if not isinstance(self.flow_control, FlowControl):
            raise ConfigurationError(f"Invalid flow control: {self.flow_control!r}")
        for name in ("read_timeout", "write_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an int (ms), got {value!r}")


class Ft232RUart:
    """UART channel of an FT232R.

    Obtain one with :meth:`Ft232RDevice.create_uart`. The configuration is
    applied on construction and can only be changed by creating a new channel
    (or re-applying it with :meth:`reapply`).
    """

    def __init__(self, device: "Ft232RDevice", config: UartConfig):
        """Bind to a device session and apply ``config``.

        Args:
            device: The owning session
            config: UART settings

        Raises:
            BaudRateError, FramingError, FlowControlError, TimeoutConfigError:
                If the corresponding configuration call fails
        """
        self._device = device
        self._config = dataclasses.replace(config)
        self.reapply()

    def __repr__(self) -> str:
        return f"Ft232RUart({self._device!r}, {self._config!r})"

    @property
    def connection_settings(self) -> UartConfig:
        """A copy of the settings this channel was created with."""
        return dataclasses.replace(self._config)

    def reapply(self) -> None:
        """Push the channel's configuration to the device."""
        config = self._config
        transport = self._device.transport

        with self._device.locked():
            self._configure(
                BaudRateError,
                f"Failed to set baud rate to {config.baud_rate}",
                transport.set_baud_rate,
                config.baud_rate,
            )
            self._configure(
                FramingError,
                "Failed to set data characteristics",
                transport.set_data_characteristics,
                config.data_bits,
                STOP_BITS_CODES[config.stop_bits],
                PARITY_CODES[config.parity],
            )
            self._configure(
                FlowControlError,
                "Failed to set flow control",
                transport.set_flow_control,
                FLOW_CONTROL_CODES[config.flow_control],
                XON_CHAR,
                XOFF_CHAR,
            )
            self._configure(
                TimeoutConfigError,
                "Failed to set timeouts",
                transport.set_timeouts,
                max(config.read_timeout, 0),
                max(config.write_timeout, 0),
            )

        logger.info(
            f"UART configured: {config.baud_rate} baud, {config.data_bits} data bits, "
            f"parity {config.parity.name}, stop bits {config.stop_bits.value}, "
            f"flow control {config.flow_control.name}"
        )

    def _configure(self, error_type: type[DeviceIoError], message: str, func, *args):
        operation = func.__name__
        try:
            self._device.call(operation, func, *args)
        except DeviceIoError as e:
            raise error_type(operation, e.status, message) from e

    # -------------------------------------------------------------------------
    # Queues
    # -------------------------------------------------------------------------

    @property
    def bytes_to_read(self) -> int:
        """Bytes waiting in the receive queue."""
        return self._device.call("queue_status", self._device.transport.queue_status)

    @property
    def bytes_to_write(self) -> int:
        """Always 0: the FT232R does not report its transmit queue depth."""
        return 0

    def discard_in_buffer(self) -> None:
        self._device.call("purge", self._device.transport.purge, PURGE_RX)

    def discard_out_buffer(self) -> None:
        self._device.call("purge", self._device.transport.purge, PURGE_TX)

    def flush(self) -> None:
        """Wait for pending output. Returns at once, see :attr:`bytes_to_write`."""
        logger.debug("UART flush: TX queue depth is not reported, nothing to wait for")

    # -------------------------------------------------------------------------
    # Data transfer
    # -------------------------------------------------------------------------

    def read(self, buffer: bytearray | memoryview) -> int:
        """Read whatever is already queued, up to ``len(buffer)`` bytes.

        One non-blocking pass: the receive queue depth is checked first and
        only that many bytes are requested, so the transport read never waits
        on the line while the session lock is held. May return fewer bytes
        than requested (including 0).

        Args:
            buffer: Writable buffer to fill

        Returns:
            Number of bytes placed in ``buffer``
        """
        size = len(buffer)
        if size == 0:
            return 0

        transport = self._device.transport
        with self._device.locked():
            available = self._device.call("queue_status", transport.queue_status)
            if available <= 0:
                return 0
            data = self._device.call("read", transport.read, min(size, available))

        count = min(len(data), size)
        buffer[:count] = data[:count]
        logger.debug(f"UART RX {count} bytes")
        return count

    def read_byte(self) -> int:
        """Read a single byte, or -1 if nothing arrived."""
        buffer = bytearray(1)
        return buffer[0] if self.read(buffer) else -1

    def write(self, data: bytes | bytearray | memoryview) -> None:
        """Write ``data`` in one transport call.

        Raises:
            ShortWriteError: If the device accepted fewer bytes than given
            DeviceIoError: If the write fails
        """
        data = bytes(data)
        if not data:
            return

        written = self._device.call("write", self._device.transport.write, data)
        logger.debug(f"UART TX {written}/{len(data)} bytes")
        if written != len(data):
            raise ShortWriteError(len(data), written)

    def write_byte(self, value: int) -> None:
        self.write(bytes((value,)))

    async def read_async(self, buffer: bytearray | memoryview) -> int:
        """:meth:`read` run in the event loop's default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.read, buffer)

    async def write_async(self, data: bytes | bytearray | memoryview) -> None:
        """:meth:`write` run in the event loop's default executor."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.write, data)
