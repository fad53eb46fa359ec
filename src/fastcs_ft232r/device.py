"""FT232R device session.

An :class:`Ft232RDevice` owns the single transport handle to one FT232R,
the CBUS pin table, and the lock that serializes every call into the
transport. The GPIO controller and UART channel it hands out are views onto
the session: they never hold the transport themselves.

Example usage::

    from fastcs_ft232r import Ft232RDevice, PinMode, PinValue, UartConfig

    with Ft232RDevice.from_url("sim://bench") as device:
        gpio = device.create_gpio()
        gpio.open_pin(0, PinMode.OUTPUT)
        gpio.write_pin(0, PinValue.HIGH)

        uart = device.create_uart(UartConfig(baud_rate=115200))
        uart.write(b"hello")
"""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, TypeVar

from .errors import DeviceIoError
from .pins import PinTable
from .registers import BitMode
from .transport import FtStatus, Transport, TransportError, open_transport

if TYPE_CHECKING:
    from .gpio import Ft232RGpio
    from .uart import Ft232RUart, UartConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Ft232RDevice:
    """Session owning one FT232R transport handle.

    The handle is opened lazily on first use. All transport calls go through
    :meth:`call`, which holds the session lock, so GPIO mask pushes and UART
    configuration never interleave.
    """

    def __init__(
        self,
        transport: Transport,
        description: str = "FT232R",
        serial_number: str = "",
    ):
        """Initialize a session.

        Args:
            transport: Unopened (or already open) transport to the device
            description: Human-readable device description
            serial_number: Device serial number, if known
        """
        self.transport = transport
        self.description = description
        self.serial_number = serial_number
        self.pin_table = PinTable()

        self._lock = threading.RLock()
        self._closed = False
        self._gpio_initialized = False
        self._gpio: "Ft232RGpio | None" = None

    @classmethod
    def from_url(cls, url: str) -> "Ft232RDevice":
        """Create a session from a device URL (see :func:`open_transport`)."""
        serial_number = url[len("sn://") :] if url.startswith("sn://") else ""
        return cls(
            open_transport(url), description=f"FT232R {url}", serial_number=serial_number
        )

    def __repr__(self) -> str:
        return f"Ft232RDevice({self.transport!r})"

    def __enter__(self) -> "Ft232RDevice":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # -------------------------------------------------------------------------
    # Handle lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return not self._closed and self.transport.is_open

    @property
    def gpio_initialized(self) -> bool:
        return self._gpio_initialized

    def open(self) -> None:
        """Open the transport handle if it is not already open.

        Raises:
            DeviceIoError: If the session was closed or the open fails
        """
        with self._lock:
            if self._closed:
                raise DeviceIoError(
                    "open", FtStatus.DEVICE_NOT_OPENED, f"Session for {self.description} is closed"
                )
            if self.transport.is_open:
                return
            try:
                self.transport.open()
            except TransportError as e:
                raise DeviceIoError(
                    "open", e.status, f"Failed to open device {self.description}"
                ) from e
            logger.info(f"Opened {self.description}")

    def close(self) -> None:
        """Close the transport handle. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._gpio_initialized = False
            if self.transport.is_open:
                try:
                    self.transport.close()
                except TransportError as e:
                    raise DeviceIoError(
                        "close", e.status, f"Failed to close device {self.description}"
                    ) from e
            logger.info(f"Closed {self.description}")

    def reset(self) -> None:
        """Reset the device.

        A chip reset drops CBUS bit-bang mode, so if GPIO is in use the cached
        mask is pushed again to keep hardware and cache in step.
        """
        with self._lock:
            self.call("reset", self.transport.reset)
            logger.info(f"Reset {self.description}")
            if self._gpio_initialized:
                self.call(
                    "set_bit_mode",
                    self.transport.set_bit_mode,
                    self.pin_table.mask,
                    BitMode.CBUS_BITBANG,
                )
                self.discard_input()

    # -------------------------------------------------------------------------
    # Serialized transport access
    # -------------------------------------------------------------------------

    @contextmanager
    def locked(self) -> Iterator["Ft232RDevice"]:
        """Hold the session lock across several transport calls."""
        with self._lock:
            yield self

    def call(self, operation: str, func: Callable[..., T], *args) -> T:
        """Run one transport call under the session lock.

        Args:
            operation: Operation name reported on failure
            func: Bound transport method
            *args: Arguments for ``func``

        Returns:
            Whatever ``func`` returns

        Raises:
            DeviceIoError: If the handle cannot be opened or the call fails
        """
        with self._lock:
            self.open()
            try:
                return func(*args)
            except TransportError as e:
                raise DeviceIoError(operation, e.status) from e

    def discard_input(self) -> int:
        """Drain whatever is sitting in the receive queue.

        Returns:
            Number of bytes discarded
        """
        with self._lock:
            available = self.call("queue_status", self.transport.queue_status)
            if available <= 0:
                return 0
            junk = self.call("read", self.transport.read, available)
            logger.debug(f"Discarded {len(junk)} pending input bytes")
            return len(junk)

    # -------------------------------------------------------------------------
    # GPIO and UART views
    # -------------------------------------------------------------------------

    def initialize_gpio(self) -> None:
        """Put the device into CBUS bit-bang mode with all pins input/low.

        Runs once per open handle; later calls do nothing.

        Raises:
            DeviceIoError: If either bit-mode call fails
        """
        with self._lock:
            if self._gpio_initialized:
                return
            self.open()

            try:
                self.transport.set_bit_mode(0x00, BitMode.RESET)
            except TransportError as e:
                raise DeviceIoError(
                    "set_bit_mode", e.status, f"Failed to reset device {self.description}"
                ) from e

            self.pin_table.reset()

            try:
                self.transport.set_bit_mode(self.pin_table.mask, BitMode.CBUS_BITBANG)
            except TransportError as e:
                raise DeviceIoError(
                    "set_bit_mode",
                    e.status,
                    f"Failed to setup device {self.description} in CBUS bitbang mode",
                ) from e

            discarded = self.discard_input()
            if discarded:
                logger.warning(
                    f"Discarded {discarded} bytes emitted during CBUS mode switch"
                )

            self._gpio_initialized = True
            logger.info(f"CBUS bit-bang mode enabled on {self.description}")

    def create_gpio(self) -> "Ft232RGpio":
        """Return the GPIO controller for this device, initializing GPIO once."""
        from .gpio import Ft232RGpio

        with self._lock:
            if self._gpio is None:
                self._gpio = Ft232RGpio(self)
            else:
                self.initialize_gpio()
            return self._gpio

    def create_uart(self, config: "UartConfig | None" = None) -> "Ft232RUart":
        """Create a UART channel on this device and apply ``config`` to it."""
        from .uart import Ft232RUart, UartConfig

        return Ft232RUart(self, config if config is not None else UartConfig())
