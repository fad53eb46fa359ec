"""CBUS pin I/O classes for FastCS attributes.

Bridges FastCS attributes to the blocking :class:`~fastcs_ft232r.gpio.Ft232RGpio`
calls. Each attribute refers to one pin and one field of it: its direction
(``"output"``) or its level (``"level"``). The GPIO calls run in the event
loop's default executor so the device lock is never taken on the loop thread.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

from fastcs.attributes import AttributeIO, AttributeIORef, AttrRW

from .enums import PinMode, PinValue
from .registers import pin_index_to_name

logger = logging.getLogger(__name__)


@dataclass
class CbusPinIORef(AttributeIORef):
    """Reference for CBUS pin IO operations.

    Attributes:
        pin: Pin index (0-3)
        field: ``"output"`` for the direction, ``"level"`` for the value
        update_period: Poll period in seconds (default 0.5)
    """

    pin: int = 0
    field: Literal["output", "level"] = "level"
    update_period: float | None = 0.5


class CbusPinIO(AttributeIO[bool, CbusPinIORef]):
    """Handles reading from and writing to CBUS pins."""

    def __init__(self, gpio=None):
        """Initialize pin IO handler.

        Args:
            gpio: Ft232RGpio instance (can be None until connected)
        """
        super().__init__()
        self._gpio = gpio

    def set_gpio(self, gpio) -> None:
        """Set the GPIO controller used for pin I/O."""
        self._gpio = gpio

    async def update(self, attr):
        """Read the pin field and update the attribute."""
        if not self._gpio:
            return

        ref = attr.io_ref
        loop = asyncio.get_running_loop()
        try:
            if ref.field == "output":
                mode = await loop.run_in_executor(None, self._gpio.get_pin_mode, ref.pin)
                value = mode is PinMode.OUTPUT
            else:
                level = await loop.run_in_executor(None, self._gpio.read_pin, ref.pin)
                value = level is PinValue.HIGH

            await attr.update(value)
        except Exception as e:
            logger.error(f"Error reading {pin_index_to_name(ref.pin)} {ref.field}: {e}")

    async def send(self, attr, value):
        """Write the attribute value to the pin field."""
        if not self._gpio:
            return

        ref = attr.io_ref
        loop = asyncio.get_running_loop()
        try:
            if ref.field == "output":
                mode = PinMode.OUTPUT if value else PinMode.INPUT
                await loop.run_in_executor(None, self._gpio.set_pin_mode, ref.pin, mode)
            else:
                await loop.run_in_executor(None, self._gpio.write_pin, ref.pin, bool(value))

            # Read back so the attribute reflects the device
            if isinstance(attr, AttrRW):
                await self.update(attr)

        except Exception as e:
            logger.error(f"Error writing {pin_index_to_name(ref.pin)} {ref.field}: {e}")
