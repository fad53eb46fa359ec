"""FT232R simulator for testing without real hardware.

Implements the :class:`~fastcs_ft232r.transport.Transport` contract in
software. Models the CBUS bit-bang register, externally driven input levels,
the UART receive queue (optionally looped back from transmit) and the junk
bytes the chip emits when switching into CBUS bit-bang mode. Supports fault
injection so error paths can be exercised.
"""

import logging
import threading
import time
from collections import deque

from .registers import CBUS_READ_MASK, PIN_COUNT, BitMode, direction_nibble, value_nibble
from .transport import PURGE_RX, PURGE_TX, FtStatus, TransportError

logger = logging.getLogger(__name__)


class SimulatedTransport:
    """Software model of an FT232R behind the transport contract.

    Attributes:
        name: Simulator instance name (from ``sim://name``)
        calls: Log of every transport call as ``(operation, *args)`` tuples
        tx_log: All bytes accepted by :meth:`write`
        loopback: Echo written bytes into the receive queue
        short_write: If set, maximum bytes accepted per write
        mode_switch_junk: Bytes queued when CBUS bit-bang mode is entered
        latency: Seconds to sleep inside :meth:`set_bit_mode`
    """

    def __init__(
        self,
        name: str = "ft232r",
        loopback: bool = False,
        mode_switch_junk: bytes = b"\x00\xff",
        latency: float = 0.0,
    ):
        self.name = name
        self.loopback = loopback
        self.mode_switch_junk = mode_switch_junk
        self.latency = latency
        self.short_write: int | None = None

        self.calls: list[tuple] = []
        self.tx_log = bytearray()

        self._open = False
        self._mode = BitMode.RESET
        self._mask = 0x00
        self._external = 0x00  # Levels driven onto input pins from outside
        self._rx = deque()
        self._failures: dict[str, FtStatus | int] = {}
        self._uart: dict[str, object] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"SimulatedTransport({self.name!r})"

    # -------------------------------------------------------------------------
    # Test hooks
    # -------------------------------------------------------------------------

    def fail_next(self, operation: str, status: FtStatus | int = FtStatus.IO_ERROR):
        """Make the next call to ``operation`` raise TransportError."""
        self._failures[operation] = status

    def drive_input(self, index: int, high: bool) -> None:
        """Set the level an external circuit drives onto pin ``index``."""
        if not 0 <= index < PIN_COUNT:
            raise ValueError(f"Simulated CBUS index must be 0-{PIN_COUNT - 1}")
        if high:
            self._external |= 1 << index
        else:
            self._external &= ~(1 << index)

    def inject_rx(self, data: bytes) -> None:
        """Queue bytes as if received on the UART RX line."""
        with self._lock:
            self._rx.extend(data)

    @property
    def mask(self) -> int:
        """Last CBUS mask programmed."""
        return self._mask

    @property
    def mode(self) -> BitMode:
        """Active bit mode."""
        return self._mode

    @property
    def uart_settings(self) -> dict[str, object]:
        """UART settings last applied, keyed by setting name."""
        return dict(self._uart)

    def operations(self) -> list[str]:
        """Names of the calls made so far, in order."""
        return [call[0] for call in self.calls]

    # -------------------------------------------------------------------------
    # Transport contract
    # -------------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self._record("open")
        self._open = True
        logger.debug(f"Simulator {self.name}: opened")

    def close(self) -> None:
        self.calls.append(("close",))
        self._open = False
        logger.debug(f"Simulator {self.name}: closed")

    def reset(self) -> None:
        self._record("reset")
        self._mode = BitMode.RESET
        self._mask = 0x00
        with self._lock:
            self._rx.clear()
        logger.debug(f"Simulator {self.name}: device reset")

    def set_bit_mode(self, mask: int, mode: int) -> None:
        self._record("set_bit_mode", mask, mode)
        if self.latency:
            time.sleep(self.latency)

        mode = BitMode(mode)
        if mode is BitMode.CBUS_BITBANG and self._mode is not BitMode.CBUS_BITBANG:
            with self._lock:
                self._rx.extend(self.mode_switch_junk)
        self._mode = mode
        self._mask = mask & 0xFF
        logger.debug(f"Simulator {self.name}: bit mode {mode.name} mask {mask:#04x}")

    def get_bit_mode(self) -> int:
        self._record("get_bit_mode")
        if self._mode is not BitMode.CBUS_BITBANG:
            return 0
        direction = direction_nibble(self._mask)
        levels = (value_nibble(self._mask) & direction) | (self._external & ~direction)
        # Upper nibble carries the direction bits, callers must mask it off
        return ((direction << 4) | (levels & CBUS_READ_MASK)) & 0xFF

    def read(self, size: int) -> bytes:
        self._record("read", size)
        with self._lock:
            count = min(size, len(self._rx))
            data = bytes(self._rx.popleft() for _ in range(count))
        return data

    def write(self, data: bytes) -> int:
        self._record("write", bytes(data))
        accepted = bytes(data)
        if self.short_write is not None:
            accepted = accepted[: self.short_write]
        self.tx_log.extend(accepted)
        if self.loopback:
            with self._lock:
                self._rx.extend(accepted)
        return len(accepted)

    def set_baud_rate(self, baud_rate: int) -> None:
        self._record("set_baud_rate", baud_rate)
        self._uart["baud_rate"] = baud_rate

    def set_data_characteristics(
        self, word_length: int, stop_bits: int, parity: int
    ) -> None:
        self._record("set_data_characteristics", word_length, stop_bits, parity)
        self._uart.update(word_length=word_length, stop_bits=stop_bits, parity=parity)

    def set_flow_control(self, mode: int, xon: int, xoff: int) -> None:
        self._record("set_flow_control", mode, xon, xoff)
        self._uart.update(flow_control=mode, xon=xon, xoff=xoff)

    def set_timeouts(self, read_ms: int, write_ms: int) -> None:
        self._record("set_timeouts", read_ms, write_ms)
        self._uart.update(read_timeout=read_ms, write_timeout=write_ms)

    def purge(self, mask: int) -> None:
        self._record("purge", mask)
        if mask & PURGE_RX:
            with self._lock:
                self._rx.clear()
        if mask & PURGE_TX:
            pass  # Nothing is ever pending on the simulated TX side

    def queue_status(self) -> int:
        self._record("queue_status")
        with self._lock:
            return len(self._rx)

    def _record(self, operation: str, *args) -> None:
        """Log the call and apply open-state and injected failures."""
        self.calls.append((operation, *args))
        status = self._failures.pop(operation, None)
        if status is not None:
            logger.debug(f"Simulator {self.name}: injected failure in {operation}")
            raise TransportError(status)
        if operation != "open" and not self._open:
            raise TransportError(FtStatus.DEVICE_NOT_OPENED)
