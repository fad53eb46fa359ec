"""GPIO controller for the FT232R CBUS lines.

Each public call validates against the pin table, updates the table, and
pushes the whole CBUS mask to the device in one critical section under the
session lock. If the push fails the table is rolled back, so the cached
mask always matches the last mask the device accepted.

The FT232R cannot report pin changes: inputs can only be polled with
:meth:`Ft232RGpio.read_pin`. The event methods are present but raise
:class:`~fastcs_ft232r.errors.NotSupportedError`.
"""

import logging
from collections.abc import Callable
from contextlib import contextmanager
from typing import TYPE_CHECKING

from . import registers
from .enums import PinEventTypes, PinMode, PinValue
from .errors import DeviceIoError, NotSupportedError
from .pins import SUPPORTED_MODES
from .registers import CBUS_READ_MASK, PIN_COUNT, BitMode

if TYPE_CHECKING:
    from .device import Ft232RDevice

logger = logging.getLogger(__name__)


class Ft232RGpio:
    """GPIO driver for the four CBUS lines of an FT232R.

    Obtain one with :meth:`Ft232RDevice.create_gpio`. Pins are addressed by
    index 0-3; use :func:`~fastcs_ft232r.registers.pin_name_to_index` to
    convert ``"CBUS2"``-style names.
    """

    def __init__(self, device: "Ft232RDevice"):
        """Bind to a device session and enable CBUS bit-bang mode.

        Args:
            device: The owning session
        """
        self._device = device
        self._table = device.pin_table
        device.initialize_gpio()

    def __repr__(self) -> str:
        return f"Ft232RGpio({self._device!r}, mask={self.mask:#04x})"

    @property
    def pin_count(self) -> int:
        return PIN_COUNT

    @property
    def mask(self) -> int:
        """Cached CBUS mask last accepted by the device."""
        return self._table.mask

    def is_pin_open(self, index: int) -> bool:
        return self._table.is_open(index)

    def is_pin_mode_supported(self, index: int, mode: PinMode) -> bool:
        self._table.validate_index(index)
        return mode in SUPPORTED_MODES

    # -------------------------------------------------------------------------
    # Pin lifecycle
    # -------------------------------------------------------------------------

    def open_pin(self, index: int, mode: PinMode | None = None) -> None:
        """Open a pin, optionally setting its mode.

        Opening alone pushes nothing to the device. With ``mode`` the pin is
        opened and configured atomically; if configuring fails it is left
        closed.

        Raises:
            InvalidIndexError: If index out of range
            AlreadyOpenError: If the pin is already open
        """
        with self._device.locked():
            self._table.open(index)
            logger.debug(f"Opened {registers.pin_index_to_name(index)}")
            if mode is None:
                return
            try:
                self.set_pin_mode(index, mode)
            except Exception:
                self._table.close(index)
                raise

    def close_pin(self, index: int, release: bool = False) -> None:
        """Close a pin.

        By default the line keeps driving whatever was last programmed. With
        ``release=True`` the line is returned to a low input first.

        Raises:
            InvalidIndexError: If index out of range
            DeviceIoError: If releasing the line fails (pin stays open)
        """
        with self._device.locked():
            self._table.validate_index(index)
            if release:
                with self._transaction():
                    self._table.release(index)
                    self._push()
            self._table.close(index)
            logger.debug(f"Closed {registers.pin_index_to_name(index)}")

    # -------------------------------------------------------------------------
    # Mode
    # -------------------------------------------------------------------------

    def set_pin_mode(self, index: int, mode: PinMode) -> None:
        """Set a pin's direction and push it to the device.

        Raises:
            InvalidIndexError: If index out of range
            NotOpenError: If the pin is not open
            UnsupportedModeError: If mode is not INPUT or OUTPUT
            DeviceIoError: If the push fails (cached mode unchanged)
        """
        with self._transaction():
            self._table.set_mode(index, mode)
            self._push()
        logger.debug(f"{registers.pin_index_to_name(index)} mode set to {mode.name}")

    def get_pin_mode(self, index: int) -> PinMode:
        """Cached mode of an open pin. No hardware access."""
        return self._table.mode(index)

    # -------------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------------

    def write_pin(self, index: int, level: PinValue | bool) -> None:
        """Drive an output pin and push the mask to the device.

        Raises:
            InvalidIndexError: If index out of range
            NotOpenError: If the pin is not open
            WrongDirectionError: If the pin is an input
            DeviceIoError: If the push fails (cached value unchanged)
        """
        level = PinValue.HIGH if level else PinValue.LOW
        with self._transaction():
            self._table.set_value(index, level)
            self._push()

    def read_pin(self, index: int) -> PinValue:
        """Read the live level of a pin from the device.

        Always goes to hardware, inputs can change at any time.

        Raises:
            InvalidIndexError: If index out of range
            NotOpenError: If the pin is not open
            DeviceIoError: If the read fails
        """
        with self._device.locked():
            self._table.mode(index)  # open check before touching hardware
            snapshot = self._device.call(
                "get_bit_mode", self._device.transport.get_bit_mode
            )
            level = (
                PinValue.HIGH
                if registers.get_value(snapshot & CBUS_READ_MASK, index)
                else PinValue.LOW
            )
            self._table.observe(index, level)
        return level

    def toggle_pin(self, index: int) -> None:
        """Invert an output pin from its last known level.

        Raises:
            WrongDirectionError: If the pin is an input
        """
        with self._device.locked():
            self.write_pin(index, ~self._table.last_value(index))

    # -------------------------------------------------------------------------
    # Events (unsupported)
    # -------------------------------------------------------------------------

    def wait_for_event(
        self, index: int, event_types: PinEventTypes, timeout: float | None = None
    ):
        """Not available: CBUS has no edge detection, poll :meth:`read_pin`."""
        raise NotSupportedError("FT232R CBUS pins cannot report events, poll read_pin")

    def add_pin_change_callback(
        self, index: int, event_types: PinEventTypes, callback: Callable
    ) -> None:
        """Not available: CBUS has no edge detection, poll :meth:`read_pin`."""
        raise NotSupportedError("FT232R CBUS pins cannot report events, poll read_pin")

    def remove_pin_change_callback(self, index: int, callback: Callable) -> None:
        """Not available: CBUS has no edge detection."""
        raise NotSupportedError("FT232R CBUS pins cannot report events")

    def component_information(self) -> dict[str, str]:
        return {
            "Name": type(self).__name__,
            "Description": self._device.description,
            "SerialNumber": self._device.serial_number,
        }

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @contextmanager
    def _transaction(self):
        """Lock the session and roll the pin table back if the body fails."""
        with self._device.locked():
            saved = self._table.snapshot()
            try:
                yield
            except DeviceIoError:
                self._table.restore(saved)
                raise

    def _push(self) -> None:
        mask = self._table.mask
        logger.debug(f"Pushing CBUS mask {mask:#04x} ({registers.describe_mask(mask)})")
        try:
            self._device.call(
                "set_bit_mode",
                self._device.transport.set_bit_mode,
                mask,
                BitMode.CBUS_BITBANG,
            )
        except DeviceIoError as e:
            raise DeviceIoError(
                "set_bit_mode", e.status, "Failed to set GPIO values"
            ) from e
