"""
Register and Device Slot Allocation
===================================

The chip has no memory to spill to, so every live value needs its own
register for as long as it lives, and running out is a compile error.

Register Allocation
-------------------
Allocation follows lexical scope. The allocator keeps a stack of frames,
one per open scope, each holding the registers reserved in it:

    push_frame()      entering a block, loop body, branch or function
    allocate()        a ``let``, a parameter or an expression temporary
    release()         an expression temporary that is no longer needed
    pop_frame()       leaving the scope; its registers become free again

The lowest free register is always handed out first, so register numbers
depend only on program order.

A set of registers can be reserved up front. Function bodies use this to
stay clear of every register that is live at any of their call sites.

Device Table
------------
Aliases bind names to physical device slots one-to-one. Binding a second
alias to an already named slot is a DeviceSlotConflictError.
"""

from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from ayysee.errors import SourceLocation
from ayysee.compiler.errors import DeviceSlotConflictError, RegisterExhaustionError
from ayysee.ic10.types import REGISTER_COUNT, DeviceSlot, Register


class RegisterAllocator:
    """
    Scope-stack register allocator.

    Attributes:
        register_count: Size of the general purpose pool (r0..rN-1)
        reserved: Registers that are never handed out
        used: Every register handed out so far
    """

    def __init__(
        self,
        register_count: int = REGISTER_COUNT,
        reserved: Iterable[Register] = (),
    ):
        if not 1 <= register_count <= REGISTER_COUNT:
            raise ValueError(
                f"register count must be between 1 and {REGISTER_COUNT}, got {register_count}"
            )
        self.register_count = register_count
        self.reserved = frozenset(reserved)
        self.used: set[Register] = set()
        self._frames: list[list[Register]] = [[]]

    @property
    def depth(self) -> int:
        return len(self._frames)

    def live(self) -> frozenset[Register]:
        """Registers that must not be clobbered right now."""
        return self.reserved | {reg for frame in self._frames for reg in frame}

    def push_frame(self) -> None:
        self._frames.append([])

    def pop_frame(self) -> list[Register]:
        """Close the innermost frame and return the registers it freed."""
        if len(self._frames) == 1:
            raise RuntimeError("cannot pop the outermost register frame")
        return self._frames.pop()

    @contextmanager
    def frame(self) -> Iterator[None]:
        """Context manager wrapping push_frame/pop_frame."""
        self.push_frame()
        try:
            yield
        finally:
            self.pop_frame()

    def allocate(
        self,
        construct: str,
        location: Optional[SourceLocation] = None,
    ) -> Register:
        """
        Reserve the lowest free register in the innermost frame.

        Args:
            construct: What needs the register, for the error message
            location: Source position of that construct

        Raises:
            RegisterExhaustionError: If every register is live
        """
        live = self.live()
        for index in range(self.register_count):
            reg = Register(index)
            if reg not in live:
                self._frames[-1].append(reg)
                self.used.add(reg)
                return reg
        raise RegisterExhaustionError(construct, self.register_count, location)

    def release(self, reg: Register) -> None:
        """Free a register reserved in the innermost frame."""
        frame = self._frames[-1]
        if reg not in frame:
            raise RuntimeError(f"{reg} is not allocated in the current frame")
        frame.remove(reg)


class DeviceTable:
    """One-to-one mapping between alias names and device slots."""

    def __init__(self):
        self._aliases: dict[DeviceSlot, str] = {}

    def bind(self, alias: str, slot: DeviceSlot, location: Optional[SourceLocation] = None) -> None:
        """
        Record ``alias`` as the name of ``slot``.

        Raises:
            DeviceSlotConflictError: If the slot already has an alias
        """
        existing = self._aliases.get(slot)
        if existing is not None:
            raise DeviceSlotConflictError(slot.name, alias, existing, location)
        self._aliases[slot] = alias

    def alias_of(self, slot: DeviceSlot) -> Optional[str]:
        return self._aliases.get(slot)

    def __len__(self) -> int:
        return len(self._aliases)
