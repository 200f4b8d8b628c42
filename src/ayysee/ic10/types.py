"""
IC10 Operand Types
==================

Value types for the operands of Stationeers IC10 instructions, rendered
exactly as the in-game chip expects them.

Machine Resources
-----------------
| Resource   | Names             | Notes                              |
|------------|-------------------|------------------------------------|
| Registers  | r0 - r15          | general purpose                    |
|            | sp (r16)          | stack pointer, never allocated     |
|            | ra (r17)          | return address, written by jal     |
| Devices    | d0 - d5           | screws on the IC housing           |
|            | db                | the IC housing itself              |
| Lines      | 128               | maximum program length             |

Symbolic Operands
-----------------
Two operand types exist only until the program is linked:

- Label: a jump target, replaced by its absolute 0-based line number
- ParameterRef: a function parameter at a call site, replaced by the
  register the callee assigned to it
"""

from dataclasses import dataclass
from typing import Union


# =============================================================================
# Machine Limits
# =============================================================================

REGISTER_COUNT = 16
MAX_LINES = 128

DEVICE_SLOTS: tuple[str, ...] = ("d0", "d1", "d2", "d3", "d4", "d5", "db")


# =============================================================================
# Registers and Devices
# =============================================================================

@dataclass(frozen=True)
class Register:
    """
    A chip register.

    Attributes:
        index: 0-15 for r0-r15, 16 for sp, 17 for ra
    """
    index: int

    def __post_init__(self):
        if not 0 <= self.index <= 17:
            raise ValueError(f"invalid register index {self.index}")

    def __str__(self) -> str:
        if self.index == 16:
            return "sp"
        if self.index == 17:
            return "ra"
        return f"r{self.index}"


SP = Register(16)
RA = Register(17)


@dataclass(frozen=True)
class DeviceSlot:
    """
    A physical device pin (d0-d5) or the housing (db).

    Aliases and raw slot literals both resolve to one of these.
    """
    name: str

    def __post_init__(self):
        if self.name not in DEVICE_SLOTS:
            raise ValueError(f"invalid device slot '{self.name}'")

    def __str__(self) -> str:
        return self.name


# =============================================================================
# Numbers
# =============================================================================

def format_number(value: Union[int, float, bool]) -> str:
    """
    Render a numeric literal for IC10.

    Booleans become 1/0. Floats with an integral value are written
    without the fractional part (``2.0`` becomes ``2``).

    >>> format_number(True), format_number(21.5), format_number(-3.0)
    ('1', '21.5', '-3')
    """
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


@dataclass(frozen=True)
class Number:
    """An immediate operand."""
    value: Union[int, float, bool]

    def __str__(self) -> str:
        return format_number(self.value)


# =============================================================================
# Symbolic Operands
# =============================================================================

@dataclass(frozen=True)
class Label:
    """Jump target resolved to a line number when the program is linked."""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ParameterRef:
    """
    Register of a function parameter, as seen from a call site.

    Callers are compiled before their callees are allocated, so the
    register is only known at link time.
    """
    function: str
    index: int

    def __str__(self) -> str:
        return f"{self.function}#{self.index}"


@dataclass(frozen=True)
class Name:
    """A bare name operand (alias names, logic types)."""
    text: str

    def __str__(self) -> str:
        return self.text


Operand = Union[Register, DeviceSlot, Number, Label, ParameterRef, Name]


# =============================================================================
# Logic Types
# =============================================================================

# Device properties understood by the chip. Property names are not
# checked unless strict property checking is enabled.
LOGIC_TYPES: frozenset[str] = frozenset({
    "Activate",
    "AirRelease",
    "Charge",
    "ClearMemory",
    "Color",
    "CompletionRatio",
    "ElevatorLevel",
    "ElevatorSpeed",
    "Error",
    "ExportCount",
    "Filtration",
    "Harvest",
    "Horizontal",
    "HorizontalRatio",
    "Idle",
    "ImportCount",
    "Lock",
    "Maximum",
    "Mode",
    "On",
    "Open",
    "Output",
    "Plant",
    "PositionX",
    "PositionY",
    "Power",
    "PowerActual",
    "PowerPotential",
    "PowerRequired",
    "Pressure",
    "PressureExternal",
    "PressureInternal",
    "PressureSetting",
    "Quantity",
    "Ratio",
    "RatioCarbonDioxide",
    "RatioNitrogen",
    "RatioOxygen",
    "RatioPollutant",
    "RatioVolatiles",
    "RatioWater",
    "Reagents",
    "RecipeHash",
    "RequestHash",
    "RequiredPower",
    "Setting",
    "SolarAngle",
    "Temperature",
    "TemperatureSetting",
    "TotalMoles",
    "VelocityMagnitude",
    "VelocityRelativeX",
    "VelocityRelativeY",
    "VelocityRelativeZ",
    "Vertical",
    "VerticalRatio",
    "Volume",
})
