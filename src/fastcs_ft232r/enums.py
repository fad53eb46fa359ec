"""
Enumerations for pin and UART settings.
"""

import enum


class PinMode(enum.Enum):
    """Pin modes. CBUS lines only support INPUT and OUTPUT."""

    INPUT = "input"
    OUTPUT = "output"
    INPUT_PULL_DOWN = "input_pull_down"
    INPUT_PULL_UP = "input_pull_up"


class PinValue(enum.IntEnum):
    """Logic level of a pin."""

    LOW = 0
    HIGH = 1

    def __invert__(self) -> "PinValue":
        return PinValue.LOW if self is PinValue.HIGH else PinValue.HIGH


class PinEventTypes(enum.IntFlag):
    """Pin edge events (not available on CBUS)."""

    NONE = 0
    RISING = 1
    FALLING = 2


class Parity(enum.Enum):
    """UART parity."""

    NONE = "none"
    ODD = "odd"
    EVEN = "even"
    MARK = "mark"
    SPACE = "space"


class StopBits(enum.Enum):
    """UART stop bits."""

    ONE = 1.0
    ONE_POINT_FIVE = 1.5
    TWO = 2.0


class FlowControl(enum.Enum):
    """UART flow control."""

    NONE = "none"
    RTS_CTS = "rts_cts"
    XON_XOFF = "xon_xoff"
