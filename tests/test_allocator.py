"""
Register Allocator and Device Table Tests
=========================================
"""

import pytest

from ayysee.compiler.allocator import DeviceTable, RegisterAllocator
from ayysee.compiler.errors import DeviceSlotConflictError, RegisterExhaustionError
from ayysee.errors import SourceLocation
from ayysee.ic10.types import DeviceSlot, Register


class TestRegisterAllocator:
    """Tests for the scope-stack register allocator."""

    def test_lowest_register_first(self):
        allocator = RegisterAllocator()
        assert allocator.allocate("a") == Register(0)
        assert allocator.allocate("b") == Register(1)

    def test_release_makes_register_reusable(self):
        allocator = RegisterAllocator()
        first = allocator.allocate("temp")
        allocator.allocate("x")
        allocator.release(first)
        assert allocator.allocate("y") == Register(0)

    def test_frame_pop_frees_registers(self):
        allocator = RegisterAllocator()
        allocator.allocate("outer")
        allocator.push_frame()
        inner = allocator.allocate("inner")
        assert inner == Register(1)
        assert allocator.pop_frame() == [Register(1)]
        assert allocator.allocate("next") == Register(1)

    def test_frame_context_manager(self):
        allocator = RegisterAllocator()
        with allocator.frame():
            allocator.allocate("a")
            allocator.allocate("b")
            assert allocator.depth == 2
        assert allocator.depth == 1
        assert allocator.live() == frozenset()

    def test_sibling_frames_share_registers(self):
        allocator = RegisterAllocator()
        with allocator.frame():
            first = allocator.allocate("a")
        with allocator.frame():
            second = allocator.allocate("b")
        assert first == second == Register(0)

    def test_reserved_registers_skipped(self):
        allocator = RegisterAllocator(reserved=[Register(0), Register(2)])
        assert allocator.allocate("a") == Register(1)
        assert allocator.allocate("b") == Register(3)

    def test_live_includes_reserved(self):
        allocator = RegisterAllocator(reserved=[Register(5)])
        allocator.allocate("a")
        assert allocator.live() == frozenset({Register(0), Register(5)})

    def test_used_tracks_every_register(self):
        allocator = RegisterAllocator()
        with allocator.frame():
            allocator.allocate("a")
            allocator.allocate("b")
        assert allocator.used == {Register(0), Register(1)}

    def test_exhaustion(self):
        allocator = RegisterAllocator(register_count=2)
        allocator.allocate("a")
        allocator.allocate("b")
        location = SourceLocation("test.ay", 3, 5)
        with pytest.raises(RegisterExhaustionError) as exc_info:
            allocator.allocate("variable 'c'", location)
        error = exc_info.value
        assert error.register_count == 2
        assert error.location == location
        assert "variable 'c'" in str(error)

    def test_exhaustion_counts_reserved(self):
        allocator = RegisterAllocator(register_count=1, reserved=[Register(0)])
        with pytest.raises(RegisterExhaustionError):
            allocator.allocate("a")

    def test_full_pool(self):
        allocator = RegisterAllocator()
        registers = [allocator.allocate(f"v{i}") for i in range(16)]
        assert registers[-1] == Register(15)
        with pytest.raises(RegisterExhaustionError):
            allocator.allocate("v16")

    def test_invalid_register_count(self):
        with pytest.raises(ValueError):
            RegisterAllocator(register_count=0)
        with pytest.raises(ValueError):
            RegisterAllocator(register_count=17)

    def test_pop_outermost_frame(self):
        with pytest.raises(RuntimeError):
            RegisterAllocator().pop_frame()

    def test_release_unallocated(self):
        allocator = RegisterAllocator()
        with pytest.raises(RuntimeError):
            allocator.release(Register(4))


class TestDeviceTable:
    """Tests for alias to device slot binding."""

    def test_bind(self):
        table = DeviceTable()
        table.bind("sensor", DeviceSlot("d0"))
        assert table.alias_of(DeviceSlot("d0")) == "sensor"
        assert table.alias_of(DeviceSlot("d1")) is None
        assert len(table) == 1

    def test_slot_conflict(self):
        table = DeviceTable()
        table.bind("sensor", DeviceSlot("d0"))
        with pytest.raises(DeviceSlotConflictError) as exc_info:
            table.bind("probe", DeviceSlot("d0"))
        error = exc_info.value
        assert error.slot == "d0"
        assert error.existing_alias == "sensor"
        assert error.kind == "DeviceSlotConflictError"

    def test_distinct_slots(self):
        table = DeviceTable()
        table.bind("sensor", DeviceSlot("d0"))
        table.bind("base", DeviceSlot("db"))
        assert len(table) == 2
