"""Command-line interface for FT232R GPIO and UART bench testing.

Provides interactive commands for exercising the CBUS GPIO controller and the
UART channel against real hardware or the simulator.
"""

import argparse
import logging
import sys
from typing import NoReturn

from .device import Ft232RDevice
from .enums import FlowControl, Parity, PinMode, PinValue, StopBits
from .errors import Ft232RError
from .gpio import Ft232RGpio
from .registers import describe_mask, pin_name_to_index
from .uart import Ft232RUart, UartConfig

logger = logging.getLogger(__name__)

_MODES = {"in": PinMode.INPUT, "input": PinMode.INPUT, "out": PinMode.OUTPUT, "output": PinMode.OUTPUT}
_PARITY = {"n": Parity.NONE, "o": Parity.ODD, "e": Parity.EVEN, "m": Parity.MARK, "s": Parity.SPACE}
_STOP_BITS = {"1": StopBits.ONE, "1.5": StopBits.ONE_POINT_FIVE, "2": StopBits.TWO}
_FLOW = {"none": FlowControl.NONE, "rtscts": FlowControl.RTS_CTS, "xonxoff": FlowControl.XON_XOFF}

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def add_logging_options(parser: argparse.ArgumentParser) -> None:
    """Add the ``--log-level`` option shared by the CLI and the EPICS server."""
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default="INFO",
        choices=LOG_LEVELS,
        help="Logging level (default: INFO)",
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_pin(token: str) -> int:
    """Accept a pin as an index ('2') or a name ('CBUS2', 'cb2')."""
    if token.isdigit():
        return int(token)
    return pin_name_to_index(token)


def parse_level(token: str) -> PinValue:
    if token.lower() in ("1", "high", "h", "on"):
        return PinValue.HIGH
    if token.lower() in ("0", "low", "l", "off"):
        return PinValue.LOW
    raise ValueError(f"Invalid level: {token!r}")


def parse_framing(token: str) -> tuple[int, Parity, StopBits]:
    """Parse framing such as '8N1' or '7E2'."""
    token = token.lower()
    if len(token) < 3 or token[1] not in _PARITY or token[2:] not in _STOP_BITS:
        raise ValueError(f"Invalid framing: {token!r}, expected e.g. 8N1")
    return int(token[0]), _PARITY[token[1]], _STOP_BITS[token[2:]]


class Ft232RCLI:
    """Interactive CLI for an FT232R.

    Commands:
    - open <pin> [in|out]: Open a pin (index or CBUSn name)
    - close <pin> [release]: Close a pin, optionally returning it to input
    - mode <pin> [in|out]: Show or set pin direction
    - read <pin>: Read pin level from the device
    - write <pin> <0|1>: Drive an output pin
    - toggle <pin>: Invert an output pin
    - mask: Show the cached CBUS mask
    - uart <baud> [8N1] [none|rtscts|xonxoff]: Configure the UART
    - send <text>: Send text over the UART
    - recv [n]: Receive up to n bytes (default 64)
    - status: Show UART queue depth
    - reset: Reset the device
    - quit: Exit
    """

    def __init__(self, url: str):
        """Initialize CLI.

        Args:
            url: Device URL
        """
        self.url = url
        self.device: Ft232RDevice | None = None
        self.gpio: Ft232RGpio | None = None
        self.uart: Ft232RUart | None = None

    def start(self) -> None:
        """Open the device and enable CBUS GPIO."""
        self.device = Ft232RDevice.from_url(self.url)
        self.device.open()
        self.gpio = self.device.create_gpio()
        print(f"Connected to FT232R at {self.url}")
        print("Type 'help' for available commands")

    def stop(self) -> None:
        if self.device:
            self.device.close()
        print("Disconnected")

    def _uart(self) -> Ft232RUart:
        if self.uart is None:
            self.uart = self.device.create_uart()  # type: ignore[union-attr]
            print("UART opened with default settings (9600 8N1)")
        return self.uart

    def run_command(self, cmd_line: str) -> bool:
        """Execute a command.

        Args:
            cmd_line: Command line input

        Returns:
            False if should exit, True otherwise
        """
        parts = cmd_line.strip().split()
        if not parts:
            return True

        cmd = parts[0].lower()
        gpio = self.gpio

        try:
            if cmd in ("quit", "exit", "q"):
                return False

            elif cmd == "help":
                print(self.__class__.__doc__)

            elif cmd == "open" and len(parts) in (2, 3):
                pin = parse_pin(parts[1])
                mode = _MODES[parts[2].lower()] if len(parts) == 3 else None
                gpio.open_pin(pin, mode)  # type: ignore[union-attr]
                print(f"Pin {pin} open")

            elif cmd == "close" and len(parts) in (2, 3):
                pin = parse_pin(parts[1])
                release = len(parts) == 3 and parts[2].lower() == "release"
                gpio.close_pin(pin, release=release)  # type: ignore[union-attr]
                print(f"Pin {pin} closed")

            elif cmd == "mode" and len(parts) == 2:
                pin = parse_pin(parts[1])
                print(f"Pin {pin}: {gpio.get_pin_mode(pin).name}")  # type: ignore[union-attr]

            elif cmd == "mode" and len(parts) == 3:
                pin = parse_pin(parts[1])
                gpio.set_pin_mode(pin, _MODES[parts[2].lower()])  # type: ignore[union-attr]
                print(f"Pin {pin}: {gpio.get_pin_mode(pin).name}")  # type: ignore[union-attr]

            elif cmd == "read" and len(parts) == 2:
                pin = parse_pin(parts[1])
                print(f"Pin {pin} = {gpio.read_pin(pin).name}")  # type: ignore[union-attr]

            elif cmd == "write" and len(parts) == 3:
                pin = parse_pin(parts[1])
                gpio.write_pin(pin, parse_level(parts[2]))  # type: ignore[union-attr]
                print(f"Mask {gpio.mask:#04x}")  # type: ignore[union-attr]

            elif cmd == "toggle" and len(parts) == 2:
                pin = parse_pin(parts[1])
                gpio.toggle_pin(pin)  # type: ignore[union-attr]
                print(f"Mask {gpio.mask:#04x}")  # type: ignore[union-attr]

            elif cmd == "mask":
                mask = gpio.mask  # type: ignore[union-attr]
                print(f"{mask:#04x}  {describe_mask(mask)}")

            elif cmd == "uart" and 2 <= len(parts) <= 4:
                data_bits, parity, stop_bits = parse_framing(
                    parts[2] if len(parts) > 2 else "8n1"
                )
                flow = _FLOW[parts[3].lower()] if len(parts) > 3 else FlowControl.NONE
                config = UartConfig(
                    baud_rate=int(parts[1]),
                    data_bits=data_bits,
                    parity=parity,
                    stop_bits=stop_bits,
                    flow_control=flow,
                    read_timeout=100,
                    write_timeout=100,
                )
                self.uart = self.device.create_uart(config)  # type: ignore[union-attr]
                print(f"UART configured: {config}")

            elif cmd == "send" and len(parts) >= 2:
                text = cmd_line.strip().split(maxsplit=1)[1]
                self._uart().write(text.encode())
                print(f"Sent {len(text)} bytes")

            elif cmd == "recv" and len(parts) <= 2:
                buffer = bytearray(int(parts[1]) if len(parts) == 2 else 64)
                count = self._uart().read(buffer)
                print(f"Received {count} bytes: {bytes(buffer[:count])!r}")

            elif cmd == "status":
                print(f"UART bytes to read: {self._uart().bytes_to_read}")

            elif cmd == "reset":
                self.device.reset()  # type: ignore[union-attr]
                print("Device reset")

            else:
                print(f"Unknown command: {cmd}")
                print("Type 'help' for available commands")

        except (ValueError, KeyError) as e:
            print(f"Error: {e}")
        except Ft232RError as e:
            print(f"Command failed: {e}")
            logger.debug("Command error", exc_info=True)

        return True

    def run_interactive(self) -> None:
        """Run interactive command loop."""
        self.start()

        try:
            while True:
                try:
                    cmd_line = input("ft232r> ")
                    if not self.run_command(cmd_line):
                        break
                except EOFError:
                    print()
                    break
                except KeyboardInterrupt:
                    print()
                    break
        finally:
            self.stop()


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv)
    """
    parser = argparse.ArgumentParser(description="FT232R GPIO/UART test tool")
    parser.add_argument(
        "device",
        help="Device URL (e.g., sim://bench, loc://0x1234, sn://A12345)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (same as --log-level DEBUG)",
    )
    add_logging_options(parser)
    parser.add_argument(
        "-c",
        "--command",
        nargs="+",
        help="Execute single command and exit",
    )

    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else args.log_level)

    cli = Ft232RCLI(args.device)
    exit_code = 0
    try:
        if args.command:
            cli.start()
            try:
                cli.run_command(" ".join(args.command))
            finally:
                cli.stop()
        else:
            cli.run_interactive()
    except Ft232RError as e:
        print(f"Error: {e}")
        exit_code = 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
