"""FT232R CBUS register model and pin naming.

The FT232R exposes four of its auxiliary CBUS lines as GPIO when the chip is
put into CBUS bit-bang mode. Direction and level for all four lines live in a
single byte that is pushed to the device with the bit-mode call:

- Upper nibble (bits 4-7): direction, bit ``index + 4`` set = output
- Lower nibble (bits 0-3): value, bit ``index`` set = high

i.e. ``mask = (direction << 4) | value``. CBUS4 is reserved for power
management and is never encoded here.

The functions in this module are pure: they take a mask and return a new
one, touching only the bit belonging to the requested pin.
"""

import enum

from .errors import InvalidIndexError, PinNotFoundError

PIN_COUNT = 4

# Only the four value bits of a hardware read carry pin levels
CBUS_READ_MASK = 0x0F

_DIRECTION_SHIFT = 4


class BitMode(enum.IntEnum):
    """FTDI bit-mode selectors passed alongside the mask."""

    RESET = 0x00
    ASYNC_BITBANG = 0x01
    MPSSE = 0x02
    SYNC_BITBANG = 0x04
    MCU_HOST = 0x08
    FAST_OPTO = 0x10
    CBUS_BITBANG = 0x20


# =============================================================================
# Bit algebra
# =============================================================================


def _check(index: int) -> None:
    if not 0 <= index < PIN_COUNT:
        raise InvalidIndexError(f"CBUS index {index} is outside 0-{PIN_COUNT - 1}")


def set_direction(mask: int, index: int, is_output: bool) -> int:
    """Return ``mask`` with the direction bit of pin ``index`` set or cleared.

    Args:
        mask: Current 8-bit CBUS mask
        index: Pin index (0-3)
        is_output: True to make the pin an output

    Returns:
        New 8-bit mask
    """
    _check(index)
    bit = 1 << (index + _DIRECTION_SHIFT)
    if is_output:
        return (mask | bit) & 0xFF
    return mask & ~bit & 0xFF


def set_value(mask: int, index: int, is_high: bool) -> int:
    """Return ``mask`` with the value bit of pin ``index`` set or cleared.

    Args:
        mask: Current 8-bit CBUS mask
        index: Pin index (0-3)
        is_high: True to drive the pin high

    Returns:
        New 8-bit mask
    """
    _check(index)
    bit = 1 << index
    if is_high:
        return (mask | bit) & 0xFF
    return mask & ~bit & 0xFF


def get_direction(mask: int, index: int) -> bool:
    """True if pin ``index`` is an output in ``mask``."""
    _check(index)
    return bool((mask >> (index + _DIRECTION_SHIFT)) & 0x01)


def get_value(mask: int, index: int) -> bool:
    """True if pin ``index`` is high in ``mask``."""
    _check(index)
    return bool((mask >> index) & 0x01)


def make_mask(direction: int, value: int) -> int:
    """Build a CBUS mask from 4-bit direction and value nibbles."""
    return ((direction & 0x0F) << _DIRECTION_SHIFT) | (value & 0x0F)


def direction_nibble(mask: int) -> int:
    return (mask >> _DIRECTION_SHIFT) & 0x0F


def value_nibble(mask: int) -> int:
    return mask & 0x0F


def describe_mask(mask: int) -> str:
    """Render a mask for humans, e.g. ``CBUS0=out:1 CBUS1=in:0 ...``."""
    parts = []
    for index in range(PIN_COUNT):
        direction = "out" if get_direction(mask, index) else "in"
        parts.append(f"{pin_index_to_name(index)}={direction}:{int(get_value(mask, index))}")
    return " ".join(parts)


# =============================================================================
# Pin naming
# =============================================================================

PIN_NAMES: tuple[str, ...] = tuple(f"CBUS{index}" for index in range(PIN_COUNT))

# Both long (CBUSn) and short (CBn) spellings; CBUS4/CB4 deliberately absent
_PIN_NAME_TO_INDEX: dict[str, int] = {
    **{f"CBUS{index}": index for index in range(PIN_COUNT)},
    **{f"CB{index}": index for index in range(PIN_COUNT)},
}


def pin_name_to_index(name: str) -> int:
    """Convert a CBUS pin name to its index.

    Accepts ``CBUS0``-``CBUS3`` and ``CB0``-``CB3`` in any case.

    Args:
        name: Pin name

    Returns:
        Pin index (0-3)

    Raises:
        PinNotFoundError: If the name does not denote an addressable pin
    """
    key = name.strip().upper()
    if key not in _PIN_NAME_TO_INDEX:
        raise PinNotFoundError(f"Unknown CBUS pin: {name!r}")
    return _PIN_NAME_TO_INDEX[key]


def pin_index_to_name(index: int) -> str:
    """Convert a pin index (0-3) to its canonical ``CBUSn`` name.

    Raises:
        InvalidIndexError: If index out of range
    """
    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidIndexError(f"Pin index must be an int, got {index!r}")
    if not 0 <= index < PIN_COUNT:
        raise InvalidIndexError(f"Pin index must be 0-{PIN_COUNT - 1}, got {index}")
    return PIN_NAMES[index]
