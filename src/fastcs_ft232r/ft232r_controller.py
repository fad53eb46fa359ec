"""FastCS controller for an FT232R.

Exposes the four CBUS lines and the UART receive queue depth as FastCS
attributes, so they can be served as EPICS PVs:

- ``cbus0_output`` .. ``cbus3_output``: pin direction (True = output)
- ``cbus0_level`` .. ``cbus3_level``: pin level (True = high)
- ``uart_rx_queue``: bytes waiting in the UART receive queue
"""

import asyncio
import logging

from fastcs.attributes import AttrR, AttrRW
from fastcs.controllers import Controller
from fastcs.datatypes import Bool, Int, String
from fastcs.methods import command

from .device import Ft232RDevice
from .gpio import Ft232RGpio
from .pin_io import CbusPinIO, CbusPinIORef
from .registers import PIN_COUNT, describe_mask

logger = logging.getLogger(__name__)

PIN_UPDATE = 0.5
SLOW_UPDATE = 1.0


class Ft232RController(Controller):
    """Top-level controller for one FT232R.

    All four CBUS pins are opened on connect and closed on disconnect.

    Attributes:
        connected: Connection status
        status_msg: Human-readable status message
        cbusN_output: Direction of pin N
        cbusN_level: Level of pin N
        uart_rx_queue: UART receive queue depth
    """

    def __init__(self, url: str):
        """Initialize controller.

        Args:
            url: Device URL (e.g. 'sim://bench', 'loc://0x1234')
        """
        self._url = url
        self._device: Ft232RDevice | None = None
        self._gpio: Ft232RGpio | None = None
        self._queue_task: asyncio.Task | None = None

        self._pin_io = CbusPinIO(None)

        super().__init__(ios=[self._pin_io])

        self.connected = AttrR(Bool())
        self.status_msg = AttrR(String())
        self.uart_rx_queue = AttrR(Int())

        for pin in range(PIN_COUNT):
            output = AttrRW(
                Bool(),
                io_ref=CbusPinIORef(pin=pin, field="output", update_period=SLOW_UPDATE),
            )
            level = AttrRW(
                Bool(),
                io_ref=CbusPinIORef(pin=pin, field="level", update_period=PIN_UPDATE),
            )
            setattr(self, f"cbus{pin}_output", output)
            setattr(self, f"cbus{pin}_level", level)

    @property
    def device(self) -> Ft232RDevice | None:
        return self._device

    @property
    def gpio(self) -> Ft232RGpio | None:
        return self._gpio

    async def connect(self) -> None:
        """Open the device, enable CBUS GPIO and open all pins."""
        loop = asyncio.get_running_loop()
        try:
            self._device = Ft232RDevice.from_url(self._url)
            self._gpio = await loop.run_in_executor(None, self._device.create_gpio)
            for pin in range(PIN_COUNT):
                await loop.run_in_executor(None, self._gpio.open_pin, pin)

            self._pin_io.set_gpio(self._gpio)

            await self.connected.update(True)
            self._queue_task = asyncio.create_task(self._update_queue_depth())

            logger.info(f"Connected to FT232R at {self._url}")
            await self.status_msg.update(f"Connected to {self._url}")

        except Exception as e:
            logger.error(f"Failed to connect: {e}")
            self._pin_io.set_gpio(None)
            if self._queue_task:
                self._queue_task.cancel()
                self._queue_task = None
            # D2XX handles are exclusive
            if self._device:
                await loop.run_in_executor(None, self._device.close)
            self._device = None
            self._gpio = None
            await self.status_msg.update(f"Connection failed: {e}")
            raise

    async def disconnect(self) -> None:
        """Close all pins and the device."""
        if self._queue_task:
            self._queue_task.cancel()
            try:
                await self._queue_task
            except asyncio.CancelledError:
                pass
            self._queue_task = None

        self._pin_io.set_gpio(None)

        if self._device:
            loop = asyncio.get_running_loop()
            if self._gpio:
                for pin in range(PIN_COUNT):
                    if self._gpio.is_pin_open(pin):
                        await loop.run_in_executor(None, self._gpio.close_pin, pin)
            await loop.run_in_executor(None, self._device.close)
            self._device = None
            self._gpio = None

        await self.connected.update(False)
        logger.info("Disconnected from FT232R")
        await self.status_msg.update("Disconnected")

    def _check_connected(self) -> None:
        if not self._device:
            raise RuntimeError("Not connected to FT232R")

    @command()
    async def reset(self) -> None:
        """Reset the device, keeping the CBUS configuration."""
        self._check_connected()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._device.reset)  # type: ignore[union-attr]
        logger.info("Device reset")
        await self.status_msg.update(
            f"Reset ({describe_mask(self._device.pin_table.mask)})"  # type: ignore[union-attr]
        )

    async def _update_queue_depth(self) -> None:
        """Background task polling the UART receive queue depth."""
        loop = asyncio.get_running_loop()
        try:
            while self._device and self._device.is_open:
                try:
                    depth = await loop.run_in_executor(
                        None,
                        self._device.call,
                        "queue_status",
                        self._device.transport.queue_status,
                    )
                    await self.uart_rx_queue.update(depth)
                    await asyncio.sleep(SLOW_UPDATE)
                except Exception as e:
                    logger.error(f"Error reading UART queue depth: {e}")
                    await asyncio.sleep(SLOW_UPDATE)
        except asyncio.CancelledError:
            logger.debug("UART queue depth task cancelled")
            raise
