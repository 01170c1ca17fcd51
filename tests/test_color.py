"""
Color value model tests

Tests construction, packed encodings, arithmetic and the legacy
negative() encoding.
"""

import pytest

from themebuilder.lib.color import (
    RGB,
    RGBA,
    ChannelMismatchError,
    ChannelRangeError,
    ColorError,
    color_fromValue,
)


class TestConstruction:
    """Test building colors"""

    def test_from_value_three_channels(self):
        """Values up to 0xFFFFFF are RGB"""
        assert color_fromValue(0xFFFFFF) == RGB(255, 255, 255)

    def test_from_value_four_channels(self):
        """Larger values are RGBA"""
        assert color_fromValue(0x11223344) == RGBA(0x11, 0x22, 0x33, 0x44)

    def test_forced_channel_count(self):
        """An explicit count of 4 reads the value as 0xRRGGBBAA"""
        assert color_fromValue(0xFFFFFF, 4) == RGBA(0, 255, 255, 255)

    def test_value_too_large_for_rgb(self):
        """Forcing 3 channels on a 4 byte value fails"""
        with pytest.raises(ColorError, match="does not fit within 3 channels"):
            color_fromValue(0x11223344, 3)

    def test_invalid_channel_count(self):
        """Only 3 and 4 channels exist"""
        with pytest.raises(ColorError, match="invalid channel count"):
            color_fromValue(1, 5)

    @pytest.mark.parametrize("channels", [(256, 0, 0), (-1, 0, 0), (1.5, 0, 0), (True, 0, 0)])
    def test_channel_range(self, channels):
        """Channels are integers in 0..255"""
        with pytest.raises(ColorError):
            RGB(*channels)

    def test_integral_float_channels(self):
        """Lua numbers like 3.0 are accepted"""
        assert RGB(1.0, 2.0, 3.0) == RGB(1, 2, 3)


class TestEncodings:
    """Test packed values and text forms"""

    def test_value_and_value_rev(self):
        """value() keeps order, value_rev() reverses it"""
        color = RGB(0x11, 0x22, 0x33)

        assert color.value() == 0x112233
        assert color.value_rev() == 0x332211

    def test_rgba_value_rev(self):
        """Alpha ends up in the high byte of value_rev()"""
        assert RGBA(1, 2, 3, 4).value_rev() == 0x04030201

    def test_arr(self):
        """arr() lists channels separated by spaces"""
        assert RGB(1, 2, 3).arr() == "1 2 3"
        assert RGBA(1, 2, 3, 4).arr() == "1 2 3 4"

    def test_hex(self):
        """hex() is the reversed byte order in upper case"""
        assert RGB(0x0A, 0x0B, 0x0C).hex() == "0C0B0A"
        assert str(RGB(1, 2, 3)) == "030201"

    def test_with_alpha(self):
        """with_alpha() produces RGBA"""
        assert RGB(1, 2, 3).with_alpha(4) == RGBA(1, 2, 3, 4)

    def test_to_rgb(self):
        """to_rgb() drops alpha"""
        assert RGBA(1, 2, 3, 4).to_rgb() == RGB(1, 2, 3)


class TestNegative:
    """Test the toggle-state encoding"""

    def test_rgb_negative(self):
        """negative() is value_rev() minus 0x1000000"""
        color = RGB(1, 2, 3)

        assert color.negative() == color.value_rev() - 0x1000000
        assert color.negative() < 0

    def test_rgba_negative(self):
        """RGBA has no negative form"""
        with pytest.raises(ColorError, match="cannot apply negative"):
            RGBA(1, 2, 3, 4).negative()


class TestArithmetic:
    """Test checked channel arithmetic"""

    def test_add(self):
        assert RGB(1, 2, 3) + RGB(10, 20, 30) == RGB(11, 22, 33)

    def test_sub(self):
        assert RGBA(10, 20, 30, 40) - RGBA(1, 2, 3, 4) == RGBA(9, 18, 27, 36)

    @pytest.mark.parametrize("c1,c2", [
        (RGB(1, 2, 3), RGB(4, 5, 6)),
        (RGBA(0, 100, 200, 255), RGBA(255, 155, 55, 0)),
        (RGB(0, 0, 0), RGB(0, 0, 0)),
    ])
    def test_add_then_sub_restores(self, c1, c2):
        """(c1 + c2) - c2 == c1 when nothing overflows"""
        assert (c1 + c2) - c2 == c1

    def test_overflow(self):
        """Addition past 255 fails"""
        with pytest.raises(ChannelRangeError, match="overflow"):
            RGB(250, 0, 0) + RGB(10, 0, 0)

    def test_underflow(self):
        """Subtraction below 0 fails"""
        with pytest.raises(ChannelRangeError, match="underflow"):
            RGB(0, 0, 0) - RGB(0, 0, 1)

    def test_channel_mismatch(self):
        """RGB and RGBA never mix"""
        with pytest.raises(ChannelMismatchError):
            RGB(1, 2, 3) + RGBA(1, 2, 3, 4)

    def test_rgb_never_equals_rgba(self):
        """Equality respects channel count"""
        assert RGB(1, 2, 3) != RGBA(1, 2, 3, 0)
