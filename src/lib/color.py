"""
Color value model for theme expressions

Colors are either three channel (RGB) or four channel (RGBA) byte tuples.
They are created by the color(), rgb() and rgba() script built-ins and are
serialized into descriptor code and theme configuration values.

Two packed encodings exist:
- value():     channels in construction order (0xRRGGBB / 0xRRGGBBAA),
               used when substituting into descriptor code
- value_rev(): channels in reversed order (0xBBGGRR / 0xAABBGGRR),
               the byte order of .ReaperTheme configuration values

Example:
    >>> c = color_fromValue(0x112233)
    >>> c
    RGB(r=17, g=34, b=51)
    >>> hex(c.value_rev())
    '0x332211'
"""

from dataclasses import dataclass, astuple
from typing import Optional, Tuple

# Offset subtracted from the reversed value for togglable theme colors
NEGATIVE_OFFSET = 0x1000000


class ColorError(ValueError):
    """Raised when a color cannot be constructed or an operation is undefined"""
    pass


class ChannelMismatchError(ColorError):
    """Raised when arithmetic mixes RGB and RGBA operands"""
    pass


class ChannelRangeError(ColorError):
    """Raised when color arithmetic pushes a channel outside 0..255"""
    pass


def byte_check(value, name: str = "channel") -> int:
    """
    Validate a single channel value

    Accepts integers and integral floats (Lua numbers may arrive as either).

    Raises:
        ColorError: If the value is not an integer in 0..255
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ColorError(f"{name} must be an integer between 0 and 255, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ColorError(f"{name} must be an integer between 0 and 255, got {value!r}")
        value = int(value)
    if not 0 <= value <= 0xFF:
        raise ColorError(f"{name} must be an integer between 0 and 255, got {value!r}")
    return value


class ColorValue:
    """
    Behaviour shared by RGB and RGBA

    Subclasses are frozen dataclasses whose fields are the channels in
    construction order. Equality is per class, so RGB(1, 2, 3) never equals
    an RGBA value.
    """

    def channels(self) -> Tuple[int, ...]:
        return astuple(self)

    def value(self) -> int:
        packed = 0
        for channel in self.channels():
            packed = (packed << 8) | channel
        return packed

    def value_rev(self) -> int:
        packed = 0
        for channel in reversed(self.channels()):
            packed = (packed << 8) | channel
        return packed

    def arr(self) -> str:
        return " ".join(str(channel) for channel in self.channels())

    def hex(self) -> str:
        return "".join(f"{channel:02X}" for channel in reversed(self.channels()))

    def with_alpha(self, alpha) -> "RGBA":
        r, g, b = self.channels()[:3]
        return RGBA(r, g, b, byte_check(alpha, "alpha"))

    def negative(self) -> int:
        raise ColorError("cannot apply negative() to RGBA color")

    def arithmetic_apply(self, other: "ColorValue", sign: int) -> "ColorValue":
        """
        Per-channel checked addition (sign=1) or subtraction (sign=-1)

        Every channel is computed before any is checked, so a failing
        operation never yields a partially updated color.

        Raises:
            ChannelMismatchError: If the operands have different channel counts
            ChannelRangeError: If any resulting channel leaves 0..255
        """
        if type(self) is not type(other):
            raise ChannelMismatchError(
                "cannot perform arithmetic on two colors with different channels"
            )
        result = [a + sign * b for a, b in zip(self.channels(), other.channels())]
        if any(channel > 0xFF for channel in result):
            raise ChannelRangeError(
                "color addition caused one of the channels to overflow past 255"
            )
        if any(channel < 0 for channel in result):
            raise ChannelRangeError(
                "color subtraction caused one of the channels to underflow below 0"
            )
        return type(self)(*result)

    def __add__(self, other):
        if not isinstance(other, ColorValue):
            return NotImplemented
        return self.arithmetic_apply(other, 1)

    def __sub__(self, other):
        if not isinstance(other, ColorValue):
            return NotImplemented
        return self.arithmetic_apply(other, -1)

    def __str__(self) -> str:
        return self.hex()


@dataclass(frozen=True)
class RGB(ColorValue):
    r: int
    g: int
    b: int

    def __post_init__(self) -> None:
        for name in ("r", "g", "b"):
            object.__setattr__(self, name, byte_check(getattr(self, name), name))

    def negative(self) -> int:
        """
        Legacy toggle-state encoding

        Used in .ReaperTheme files when a color has an on/off option
        (e.g. col_main_bg): the reversed value shifted below zero.
        """
        return self.value_rev() - NEGATIVE_OFFSET


@dataclass(frozen=True)
class RGBA(ColorValue):
    r: int
    g: int
    b: int
    a: int

    def __post_init__(self) -> None:
        for name in ("r", "g", "b", "a"):
            object.__setattr__(self, name, byte_check(getattr(self, name), name))

    def to_rgb(self) -> RGB:
        return RGB(self.r, self.g, self.b)


def color_fromValue(value, channels: Optional[int] = None) -> ColorValue:
    """
    Build a color from a packed integer

    Without an explicit channel count, values up to 0xFFFFFF are read as
    0xRRGGBB and larger values as 0xRRGGBBAA.

    Args:
        value: Packed color value (0..0xFFFFFFFF)
        channels: Optional forced channel count (3 or 4)

    Returns:
        RGB or RGBA instance

    Raises:
        ColorError: If the value does not fit, or channels is not 3 or 4

    Example:
        >>> color_fromValue(0xFFFFFF, 4)
        RGBA(r=0, g=255, b=255, a=255)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ColorError(f"color value must be an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ColorError(f"color value must be an integer, got {value!r}")
        value = int(value)
    if not 0 <= value <= 0xFFFFFFFF:
        raise ColorError(f"value `{value}` does not fit within 4 channels")

    if channels is None:
        channels = 3 if value <= 0xFFFFFF else 4
    if isinstance(channels, float) and channels.is_integer():
        channels = int(channels)

    if channels == 3:
        if value > 0xFFFFFF:
            raise ColorError(f"value `{value}` does not fit within 3 channels")
        return RGB((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)
    if channels == 4:
        return RGBA((value >> 24) & 0xFF, (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)
    raise ColorError(f"invalid channel count `{channels}`")
