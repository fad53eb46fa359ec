"""Per-pin lifecycle state and the shared CBUS mask.

The :class:`PinTable` holds one :class:`PinState` per addressable CBUS line
and the single mask byte all four lines are multiplexed into. It knows
nothing about hardware: the GPIO controller pushes the mask and rolls the
table back when a push fails.
"""

import copy
import logging
from dataclasses import dataclass

from . import registers
from .enums import PinMode, PinValue
from .errors import (
    AlreadyOpenError,
    InvalidIndexError,
    NotOpenError,
    UnsupportedModeError,
    WrongDirectionError,
)
from .registers import PIN_COUNT

logger = logging.getLogger(__name__)

SUPPORTED_MODES = (PinMode.INPUT, PinMode.OUTPUT)


@dataclass
class PinState:
    """Lifecycle state of one CBUS line.

    Attributes:
        is_open: True once opened, required for mode/read/write
        mode: Cached direction, None while closed
        last_value: Last level written or observed, None while closed
    """

    is_open: bool = False
    mode: PinMode | None = None
    last_value: PinValue | None = None


@dataclass(frozen=True)
class PinTableSnapshot:
    """Saved copy of a pin table used to undo a failed hardware push."""

    mask: int
    pins: tuple[PinState, ...]


class PinTable:
    """The four CBUS pin states plus the mask byte they share.

    Invariant: for every open pin the direction bit of :attr:`mask` equals
    the pin's cached mode. Mutating one pin never changes another pin's bits.
    """

    def __init__(self):
        self.mask = 0x00
        self._pins = [PinState() for _ in range(PIN_COUNT)]

    def __repr__(self) -> str:
        return f"PinTable(mask={self.mask:#04x}, pins={self._pins!r})"

    @staticmethod
    def validate_index(index: int) -> int:
        """Check a pin index is addressable.

        Raises:
            InvalidIndexError: If index is not an int in 0-3
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidIndexError(f"Pin index must be an int, got {index!r}")
        if not 0 <= index < PIN_COUNT:
            raise InvalidIndexError(
                f"Pin number can only be between 0 and {PIN_COUNT - 1}, got {index}"
            )
        return index

    def _open_pin(self, index: int) -> PinState:
        pin = self._pins[self.validate_index(index)]
        if not pin.is_open:
            raise NotOpenError(f"Pin {index} is not open")
        return pin

    def is_open(self, index: int) -> bool:
        return self._pins[self.validate_index(index)].is_open

    def mode(self, index: int) -> PinMode:
        return self._open_pin(index).mode  # type: ignore[return-value]

    def last_value(self, index: int) -> PinValue:
        return self._open_pin(index).last_value  # type: ignore[return-value]

    def open(self, index: int) -> None:
        """Mark a pin open. Does not touch the mask.

        Mode and last value are taken from the pin's bits in the mask, so a
        line left driving by an earlier :meth:`close` reopens as the output
        it still is. A fresh line (bits clear) opens as a low input.
        """
        pin = self._pins[self.validate_index(index)]
        if pin.is_open:
            raise AlreadyOpenError(f"Pin {index} is already open")
        pin.is_open = True
        pin.mode = (
            PinMode.OUTPUT
            if registers.get_direction(self.mask, index)
            else PinMode.INPUT
        )
        pin.last_value = (
            PinValue.HIGH if registers.get_value(self.mask, index) else PinValue.LOW
        )

    def close(self, index: int) -> None:
        """Mark a pin closed and forget its cached mode and value.

        The mask is left as it is: the line keeps whatever was last pushed.
        """
        pin = self._pins[self.validate_index(index)]
        if not pin.is_open:
            logger.warning(f"Closing pin {index} which is not open")
        pin.is_open = False
        pin.mode = None
        pin.last_value = None

    def set_mode(self, index: int, mode: PinMode) -> None:
        pin = self._open_pin(index)
        if mode not in SUPPORTED_MODES:
            raise UnsupportedModeError(f"Pin mode {mode!r} is not supported on CBUS")
        self.mask = registers.set_direction(self.mask, index, mode is PinMode.OUTPUT)
        pin.mode = mode

    def set_value(self, index: int, level: PinValue) -> None:
        pin = self._open_pin(index)
        if pin.mode is not PinMode.OUTPUT:
            raise WrongDirectionError(f"Pin {index} is an input and cannot be written")
        self.mask = registers.set_value(self.mask, index, bool(level))
        pin.last_value = level

    def observe(self, index: int, level: PinValue) -> None:
        """Record a level read back from hardware."""
        self._open_pin(index).last_value = level

    def release(self, index: int) -> None:
        """Return a pin's mask bits to input/low (closed-line default)."""
        self.validate_index(index)
        self.mask = registers.set_direction(self.mask, index, False)
        self.mask = registers.set_value(self.mask, index, False)

    def reset(self) -> None:
        """Close every pin and clear the mask."""
        self.mask = 0x00
        self._pins = [PinState() for _ in range(PIN_COUNT)]

    def snapshot(self) -> PinTableSnapshot:
        return PinTableSnapshot(self.mask, tuple(copy.copy(p) for p in self._pins))

    def restore(self, snapshot: PinTableSnapshot) -> None:
        self.mask = snapshot.mask
        self._pins = [copy.copy(p) for p in snapshot.pins]
