"""Unit tests for the CBUS GPIO controller against the simulator."""

import threading

import pytest

from fastcs_ft232r.device import Ft232RDevice
from fastcs_ft232r.enums import PinEventTypes, PinMode, PinValue
from fastcs_ft232r.errors import (
    AlreadyOpenError,
    DeviceIoError,
    InvalidIndexError,
    NotOpenError,
    NotSupportedError,
    UnsupportedModeError,
    WrongDirectionError,
)
from fastcs_ft232r.registers import BitMode, pin_name_to_index
from fastcs_ft232r.simulator import SimulatedTransport
from fastcs_ft232r.transport import FtStatus

# =============================================================================
# Initialization Tests
# =============================================================================


class TestInitialization:
    """Tests for the CBUS bit-bang start-up sequence."""

    def test_init_sequence(self, sim, gpio):
        """Open, reset bit mode, enter CBUS mode with 0x00, drain junk."""
        assert sim.calls[:3] == [
            ("open",),
            ("set_bit_mode", 0x00, BitMode.RESET),
            ("set_bit_mode", 0x00, BitMode.CBUS_BITBANG),
        ]
        assert sim.operations()[3:] == ["queue_status", "read"]
        assert sim.mode is BitMode.CBUS_BITBANG
        assert gpio.mask == 0x00

    def test_mode_switch_junk_discarded(self, sim, gpio):
        assert sim.queue_status() == 0

    def test_no_drain_read_when_queue_empty(self):
        sim = SimulatedTransport(mode_switch_junk=b"")
        Ft232RDevice(sim).create_gpio()
        assert "read" not in sim.operations()

    def test_create_gpio_is_idempotent(self, sim, device, gpio):
        count = len(sim.calls)
        assert device.create_gpio() is gpio
        assert len(sim.calls) == count

    def test_reads_do_not_drain(self, sim, gpio):
        gpio.open_pin(0)
        sim.inject_rx(b"data")
        gpio.read_pin(0)
        assert sim.queue_status() == 4

    def test_reset_failure(self, sim, device):
        sim.open()
        sim.fail_next("set_bit_mode")
        with pytest.raises(DeviceIoError, match="Failed to reset device"):
            device.create_gpio()
        assert not device.gpio_initialized

    def test_pin_count(self, gpio):
        assert gpio.pin_count == 4

    def test_component_information(self, gpio):
        info = gpio.component_information()
        assert info["SerialNumber"] == "SIM0001"
        assert info["Description"] == "FT232R sim"


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestPinLifecycle:
    """Tests for open/close of pins through the controller."""

    def test_open_pushes_nothing(self, sim, gpio):
        count = len(sim.calls)
        gpio.open_pin(0)
        assert len(sim.calls) == count
        assert gpio.is_pin_open(0)

    def test_open_with_mode(self, sim, gpio):
        gpio.open_pin(1, PinMode.OUTPUT)
        assert gpio.get_pin_mode(1) is PinMode.OUTPUT
        assert sim.mask == 0x20

    def test_open_with_mode_failure_leaves_closed(self, sim, gpio):
        sim.fail_next("set_bit_mode")
        with pytest.raises(DeviceIoError):
            gpio.open_pin(1, PinMode.OUTPUT)
        assert not gpio.is_pin_open(1)
        assert gpio.mask == 0x00

    def test_open_with_unsupported_mode_leaves_closed(self, gpio):
        with pytest.raises(UnsupportedModeError):
            gpio.open_pin(1, PinMode.INPUT_PULL_UP)
        assert not gpio.is_pin_open(1)

    def test_open_twice(self, gpio):
        gpio.open_pin(0)
        with pytest.raises(AlreadyOpenError):
            gpio.open_pin(0)

    def test_close_keeps_line_driven(self, sim, gpio):
        gpio.open_pin(0, PinMode.OUTPUT)
        gpio.write_pin(0, PinValue.HIGH)
        gpio.close_pin(0)
        assert not gpio.is_pin_open(0)
        assert sim.mask == 0x11

    def test_close_with_release(self, sim, gpio):
        gpio.open_pin(0, PinMode.OUTPUT)
        gpio.open_pin(1, PinMode.OUTPUT)
        gpio.write_pin(0, PinValue.HIGH)
        gpio.write_pin(1, PinValue.HIGH)
        gpio.close_pin(0, release=True)
        assert sim.mask == 0x22
        assert gpio.mask == 0x22

    def test_close_release_failure_keeps_pin_open(self, sim, gpio):
        gpio.open_pin(0, PinMode.OUTPUT)
        gpio.write_pin(0, PinValue.HIGH)
        sim.fail_next("set_bit_mode")
        with pytest.raises(DeviceIoError):
            gpio.close_pin(0, release=True)
        assert gpio.is_pin_open(0)
        assert gpio.mask == 0x11

    def test_reopen_after_close(self, sim, gpio):
        """A line left driving reopens as the output it still is."""
        gpio.open_pin(2, PinMode.OUTPUT)
        gpio.close_pin(2)
        gpio.open_pin(2)
        assert gpio.get_pin_mode(2) is PinMode.OUTPUT
        assert gpio.mask == sim.mask == 0x40

    def test_reopen_driven_high_then_toggle(self, sim, gpio):
        gpio.open_pin(0, PinMode.OUTPUT)
        gpio.write_pin(0, PinValue.HIGH)
        gpio.close_pin(0)

        gpio.open_pin(0)
        assert gpio.get_pin_mode(0) is PinMode.OUTPUT
        assert gpio.mask == sim.mask == 0x11

        gpio.toggle_pin(0)
        assert gpio.mask == sim.mask == 0x10
        gpio.toggle_pin(0)
        assert gpio.mask == sim.mask == 0x11

    def test_reopen_after_release(self, gpio):
        gpio.open_pin(2, PinMode.OUTPUT)
        gpio.close_pin(2, release=True)
        gpio.open_pin(2)
        assert gpio.get_pin_mode(2) is PinMode.INPUT


# =============================================================================
# Validation Tests
# =============================================================================


class TestValidation:
    """Every pin operation rejects bad indices and closed pins up front."""

    OPERATIONS = {
        "open_pin": lambda g, i: g.open_pin(i),
        "close_pin": lambda g, i: g.close_pin(i),
        "set_pin_mode": lambda g, i: g.set_pin_mode(i, PinMode.OUTPUT),
        "get_pin_mode": lambda g, i: g.get_pin_mode(i),
        "write_pin": lambda g, i: g.write_pin(i, PinValue.HIGH),
        "read_pin": lambda g, i: g.read_pin(i),
        "toggle_pin": lambda g, i: g.toggle_pin(i),
        "is_pin_open": lambda g, i: g.is_pin_open(i),
        "is_pin_mode_supported": lambda g, i: g.is_pin_mode_supported(
            i, PinMode.OUTPUT
        ),
    }

    @pytest.mark.parametrize("index", [-1, 4])
    @pytest.mark.parametrize("name", OPERATIONS)
    def test_invalid_index(self, sim, gpio, name, index):
        count = len(sim.calls)
        with pytest.raises(InvalidIndexError):
            self.OPERATIONS[name](gpio, index)
        assert len(sim.calls) == count

    @pytest.mark.parametrize(
        "name", ["set_pin_mode", "get_pin_mode", "write_pin", "read_pin", "toggle_pin"]
    )
    def test_never_opened(self, sim, gpio, name):
        count = len(sim.calls)
        with pytest.raises(NotOpenError):
            self.OPERATIONS[name](gpio, 0)
        assert len(sim.calls) == count

    @pytest.mark.parametrize("name", ["set_pin_mode", "write_pin", "toggle_pin"])
    def test_closed(self, gpio, name):
        gpio.open_pin(0, PinMode.OUTPUT)
        gpio.close_pin(0)
        with pytest.raises(NotOpenError):
            self.OPERATIONS[name](gpio, 0)

    def test_mode_support(self, gpio):
        assert gpio.is_pin_mode_supported(0, PinMode.INPUT)
        assert gpio.is_pin_mode_supported(0, PinMode.OUTPUT)
        assert not gpio.is_pin_mode_supported(0, PinMode.INPUT_PULL_DOWN)

    def test_write_to_input(self, sim, gpio):
        gpio.open_pin(0)
        count = len(sim.calls)
        with pytest.raises(WrongDirectionError):
            gpio.write_pin(0, PinValue.HIGH)
        assert gpio.mask == 0x00
        assert len(sim.calls) == count

    def test_toggle_input(self, gpio):
        gpio.open_pin(0)
        with pytest.raises(WrongDirectionError):
            gpio.toggle_pin(0)


# =============================================================================
# Mode and Value Tests
# =============================================================================


class TestModeAndValue:
    """Tests for mask merging and hardware pushes."""

    def test_scenario_tracks_mask(self, sim, gpio):
        """Track the expected mask across writes to two pins."""
        expected = 0x00

        gpio.open_pin(0, PinMode.OUTPUT)
        expected |= 0x10
        gpio.write_pin(0, PinValue.HIGH)
        expected |= 0x01
        assert expected == 0x11
        assert gpio.mask == sim.mask == expected

        gpio.write_pin(0, PinValue.LOW)
        expected &= ~0x01
        assert gpio.mask == sim.mask == expected == 0x10

        gpio.open_pin(1, PinMode.OUTPUT)
        expected |= 0x20
        gpio.write_pin(1, PinValue.HIGH)
        expected |= 0x02
        assert gpio.mask == sim.mask == expected == 0x32

    def test_one_push_per_call(self, sim, gpio):
        gpio.open_pin(3)
        before = sim.operations().count("set_bit_mode")
        gpio.set_pin_mode(3, PinMode.OUTPUT)
        gpio.write_pin(3, True)
        assert sim.operations().count("set_bit_mode") == before + 2
        assert sim.calls[-1] == ("set_bit_mode", 0x88, BitMode.CBUS_BITBANG)

    def test_get_pin_mode_is_cached(self, sim, gpio):
        gpio.open_pin(2, PinMode.OUTPUT)
        count = len(sim.calls)
        assert gpio.get_pin_mode(2) is PinMode.OUTPUT
        assert len(sim.calls) == count

    def test_write_accepts_bool(self, gpio):
        gpio.open_pin(0, PinMode.OUTPUT)
        gpio.write_pin(0, True)
        assert gpio.mask == 0x11
        gpio.write_pin(0, 0)
        assert gpio.mask == 0x10

    def test_failed_mode_push_rolls_back(self, sim, gpio):
        gpio.open_pin(0)
        sim.fail_next("set_bit_mode", FtStatus.IO_ERROR)
        with pytest.raises(DeviceIoError) as excinfo:
            gpio.set_pin_mode(0, PinMode.OUTPUT)
        assert excinfo.value.operation == "set_bit_mode"
        assert excinfo.value.status == FtStatus.IO_ERROR
        assert gpio.get_pin_mode(0) is PinMode.INPUT
        assert gpio.mask == 0x00

    def test_failed_write_push_rolls_back(self, sim, gpio):
        gpio.open_pin(0, PinMode.OUTPUT)
        gpio.write_pin(0, PinValue.HIGH)
        sim.fail_next("set_bit_mode")
        with pytest.raises(DeviceIoError):
            gpio.write_pin(0, PinValue.LOW)
        assert gpio.mask == 0x11
        # Toggle still works from the last good value
        gpio.toggle_pin(0)
        assert gpio.mask == 0x10


# =============================================================================
# Read and Toggle Tests
# =============================================================================


class TestReadAndToggle:
    """Tests for live reads and toggling."""

    def test_read_input_is_live(self, sim, gpio):
        pin = pin_name_to_index("CBUS2")
        gpio.open_pin(pin)
        assert gpio.read_pin(pin) is PinValue.LOW
        sim.drive_input(pin, True)
        assert gpio.read_pin(pin) is PinValue.HIGH
        sim.drive_input(pin, False)
        assert gpio.read_pin(pin) is PinValue.LOW

    def test_read_each_call_hits_hardware(self, sim, gpio):
        gpio.open_pin(1)
        before = sim.operations().count("get_bit_mode")
        gpio.read_pin(1)
        gpio.read_pin(1)
        assert sim.operations().count("get_bit_mode") == before + 2

    def test_read_ignores_upper_nibble(self, sim, gpio):
        """Direction bits echoed in the snapshot do not leak into levels."""
        for index in range(4):
            gpio.open_pin(index, PinMode.OUTPUT)
        assert [gpio.read_pin(i) for i in range(4)] == [PinValue.LOW] * 4

    def test_read_output_reports_driven_level(self, gpio):
        gpio.open_pin(3, PinMode.OUTPUT)
        gpio.write_pin(3, PinValue.HIGH)
        assert gpio.read_pin(3) is PinValue.HIGH

    def test_read_does_not_change_mask(self, sim, gpio):
        gpio.open_pin(0)
        sim.drive_input(0, True)
        gpio.read_pin(0)
        assert gpio.mask == 0x00

    def test_read_failure(self, sim, gpio):
        gpio.open_pin(0)
        sim.fail_next("get_bit_mode")
        with pytest.raises(DeviceIoError, match="get_bit_mode"):
            gpio.read_pin(0)

    def test_toggle(self, gpio):
        gpio.open_pin(0, PinMode.OUTPUT)
        gpio.toggle_pin(0)
        assert gpio.mask == 0x11
        gpio.toggle_pin(0)
        assert gpio.mask == 0x10

    def test_toggle_uses_observed_value(self, sim, gpio):
        """An input read refreshes the cache used by a later toggle."""
        gpio.open_pin(0)
        sim.drive_input(0, True)
        assert gpio.read_pin(0) is PinValue.HIGH
        gpio.set_pin_mode(0, PinMode.OUTPUT)
        gpio.toggle_pin(0)
        assert gpio.mask == 0x10


# =============================================================================
# Event Tests
# =============================================================================


class TestEvents:
    """Edge events are a hardware capability gap."""

    def test_wait_for_event(self, gpio):
        with pytest.raises(NotSupportedError, match="poll read_pin"):
            gpio.wait_for_event(0, PinEventTypes.RISING, timeout=1.0)

    def test_add_callback(self, gpio):
        with pytest.raises(NotSupportedError):
            gpio.add_pin_change_callback(0, PinEventTypes.FALLING, lambda *a: None)

    def test_remove_callback(self, gpio):
        with pytest.raises(NotImplementedError):
            gpio.remove_pin_change_callback(0, lambda *a: None)


# =============================================================================
# Concurrency Tests
# =============================================================================


class TestConcurrentWriters:
    """Writers on different pins must never lose each other's bits."""

    def test_no_lost_update(self):
        # Latency inside the push widens the window a lost update needs
        sim = SimulatedTransport(latency=0.002)
        device = Ft232RDevice(sim)
        gpio = device.create_gpio()
        gpio.open_pin(0, PinMode.OUTPUT)
        gpio.open_pin(1, PinMode.OUTPUT)

        barrier = threading.Barrier(2)
        errors = []

        def writer(index):
            try:
                barrier.wait()
                for i in range(20):
                    gpio.write_pin(index, i % 2 == 0)
                gpio.write_pin(index, PinValue.HIGH)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(i,)) for i in (0, 1)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert gpio.mask == 0x33
        assert sim.mask == 0x33

        # Every pushed mask keeps both pins as outputs
        pushes = [c[1] for c in sim.calls if c[0] == "set_bit_mode"][-42:]
        assert all(mask & 0x30 == 0x30 for mask in pushes)
        device.close()

    def test_gpio_and_uart_calls_serialized(self):
        """A UART configuration never lands inside a GPIO push."""
        sim = SimulatedTransport(latency=0.002)
        device = Ft232RDevice(sim)
        gpio = device.create_gpio()
        gpio.open_pin(0, PinMode.OUTPUT)

        active = []
        overlaps = []
        original = sim.set_baud_rate

        def tracking_baud(rate):
            if active:
                overlaps.append(rate)
            original(rate)

        sim.set_baud_rate = tracking_baud
        original_push = sim.set_bit_mode

        def tracking_push(mask, mode):
            active.append(mask)
            try:
                original_push(mask, mode)
            finally:
                active.pop()

        sim.set_bit_mode = tracking_push

        def toggler():
            for _ in range(20):
                gpio.toggle_pin(0)

        def configurer():
            for _ in range(20):
                device.create_uart()

        threads = [threading.Thread(target=toggler), threading.Thread(target=configurer)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert overlaps == []
        device.close()
