"""
Script engine tests

Tests expression evaluation, the color and blend built-ins, global
persistence, resource staging and the sandbox allow-list.
"""

from pathlib import PurePosixPath

import pytest

from themebuilder.lib.color import RGB, RGBA
from themebuilder.lib.engine import ScriptEngine, ScriptError, blend_encode
from themebuilder.models.content import Resource


@pytest.fixture
def engine():
    return ScriptEngine(theme_name="Default")


class TestEvaluate:
    """Test evaluating expressions"""

    def test_arithmetic(self, engine):
        assert engine.evaluate("1 + 2", "test") == 3

    def test_float_result(self, engine):
        """Lua division always yields a float"""
        assert engine.evaluate("10 / 2", "test") == 5.0

    def test_string_result(self, engine):
        assert engine.evaluate('"a" .. "b"', "test") == "ab"

    def test_nil_and_boolean(self, engine):
        assert engine.evaluate("nil", "test") is None
        assert engine.evaluate("1 < 2", "test") is True

    def test_statement_form(self, engine):
        """Statements ending in return are accepted"""
        assert engine.evaluate("local x = 2; return x * 3", "test") == 6

    def test_first_of_multiple_results(self, engine):
        assert engine.evaluate("1, 2", "test") == 1

    def test_syntax_error(self, engine):
        with pytest.raises(ScriptError):
            engine.evaluate("1 +", "test")

    def test_runtime_error_names_chunk(self, engine):
        """Errors carry the chunk name"""
        with pytest.raises(ScriptError, match="layout.txt line 3"):
            engine.evaluate("undefined_value.field", "layout.txt line 3")

    @pytest.mark.parametrize("source", ["{}", "function() end", "coroutine.create(function() end)"])
    def test_unsupported_result(self, engine, source):
        """Tables, functions and threads cannot be serialized"""
        with pytest.raises(ScriptError, match="unsupported value"):
            engine.evaluate(source, "test")


class TestColorBuiltins:
    """Test color(), rgb(), rgba() and color methods"""

    def test_rgb_result(self, engine):
        assert engine.evaluate("rgb(1, 2, 3)", "test") == RGB(1, 2, 3)

    def test_color_from_value(self, engine):
        assert engine.evaluate("color(0xFFFFFF)", "test") == RGB(255, 255, 255)
        assert engine.evaluate("color(0xFFFFFF, 4)", "test") == RGBA(0, 255, 255, 255)

    def test_arr_method(self, engine):
        assert engine.evaluate("rgb(1, 2, 3):arr()", "test") == "1 2 3"

    def test_value_methods(self, engine):
        assert engine.evaluate("rgb(1, 2, 3):value()", "test") == 0x010203
        assert engine.evaluate("rgb(1, 2, 3):value_rev()", "test") == 0x030201

    def test_tostring(self, engine):
        assert engine.evaluate("tostring(rgb(1, 2, 3))", "test") == "030201"

    def test_arithmetic(self, engine):
        assert engine.evaluate("rgb(1, 2, 3) + rgb(1, 1, 1)", "test") == RGB(2, 3, 4)
        assert engine.evaluate("rgb(5, 5, 5) - rgb(1, 2, 3)", "test") == RGB(4, 3, 2)

    def test_equality(self, engine):
        assert engine.evaluate("rgb(1, 2, 3) == rgb(1, 2, 3)", "test") is True
        assert engine.evaluate("rgb(1, 2, 3) == rgba(1, 2, 3, 0)", "test") is False

    def test_with_alpha_and_back(self, engine):
        assert engine.evaluate("rgb(1, 2, 3):with_alpha(4)", "test") == RGBA(1, 2, 3, 4)
        assert engine.evaluate("rgba(1, 2, 3, 4):to_rgb()", "test") == RGB(1, 2, 3)

    def test_negative(self, engine):
        assert engine.evaluate("rgb(1, 2, 3):negative()", "test") == RGB(1, 2, 3).value_rev() - 0x1000000

    @pytest.mark.parametrize("source", [
        "rgba(1, 2, 3, 4):negative()",
        "rgb(256, 0, 0)",
        "rgb(250, 0, 0) + rgb(10, 0, 0)",
        "rgb(1, 2, 3) + rgba(1, 2, 3, 4)",
        "rgb(1, 2, 3):to_rgb()",
    ])
    def test_color_errors(self, engine, source):
        """Color failures surface as script errors"""
        with pytest.raises(ScriptError):
            engine.evaluate(source, "test")


class TestBlend:
    """Test the legacy blend bitfield"""

    def test_known_values(self):
        assert blend_encode("normal", 0.0) == 0b100000000000000000
        assert blend_encode("normal", 1.0) == 0b110000000000000000
        assert blend_encode("hsv", 0.12) == 0b100001111111111110

    def test_from_lua(self, engine):
        assert engine.evaluate('blend("add", 0.5)', "test") == 0x20000 | (128 << 8) | 0x01

    @pytest.mark.parametrize("source", ['blend("screen", 0.5)', 'blend("add", 1.5)', 'blend("add", -0.1)'])
    def test_invalid_arguments(self, engine, source):
        with pytest.raises(ScriptError):
            engine.evaluate(source, "test")


class TestGlobals:
    """Test state shared across chunks"""

    def test_globals_persist(self, engine):
        """Globals from a script are visible to later expressions"""
        engine.execute("width = 40\nfunction double(x) return x * 2 end", "vars.lua")

        assert engine.evaluate("double(width)", "test") == 80

    def test_theme_name(self, engine):
        assert engine.evaluate("THEME_NAME", "test") == "Default"

    def test_global_set_and_get(self, engine):
        engine.global_set("SCALE", 2)

        assert engine.global_get("SCALE") == 2
        assert engine.evaluate("SCALE * 10", "test") == 20

    def test_env(self, engine, monkeypatch):
        monkeypatch.setenv("THEMEBUILDER_TEST_VAR", "hello")

        assert engine.evaluate('env("THEMEBUILDER_TEST_VAR")', "test") == "hello"

    def test_env_missing(self, engine, monkeypatch):
        monkeypatch.delenv("THEMEBUILDER_TEST_VAR", raising=False)

        with pytest.raises(ScriptError):
            engine.evaluate('env("THEMEBUILDER_TEST_VAR")', "test")


class TestResourceStaging:
    """Test resource() calls"""

    def test_pattern_only(self):
        pending = []
        engine = ScriptEngine(pending=pending)
        engine.execute('resource("*.png")', "test")

        assert pending == [Resource(pattern="*.png", dest=PurePosixPath("."))]

    def test_dest_and_pattern(self):
        pending = []
        engine = ScriptEngine(pending=pending)

        assert engine.evaluate('resource("icons/./small", "img/*.png")', "test") is None
        assert pending == [Resource(pattern="img/*.png", dest=PurePosixPath("icons/small"))]

    @pytest.mark.parametrize("source", [
        'resource("/abs", "*.png")',
        'resource("a**")',
        'resource()',
        'resource(1)',
    ])
    def test_invalid_calls(self, engine, source):
        with pytest.raises(ScriptError):
            engine.execute(source, "test")


class TestSandbox:
    """Test the allow-listed environment"""

    @pytest.mark.parametrize("name", [
        "io", "require", "dofile", "loadfile", "load", "package", "debug",
        "python", "os.execute", "os.remove", "os.getenv", "string.dump",
    ])
    def test_unavailable(self, engine, name):
        """Unsafe globals and members are nil"""
        assert engine.evaluate(name, "test") is None

    @pytest.mark.parametrize("source,expected", [
        ("math.floor(2.7)", 2),
        ("string.format('%02d', 7)", "07"),
        ("('abc'):upper()", "ABC"),
        ("table.concat({1, 2}, ',')", "1,2"),
        ("select('#', 1, 2, 3)", 3),
        ("utf8.char(72)", "H"),
    ])
    def test_available(self, engine, source, expected):
        """Pure libraries remain usable"""
        assert engine.evaluate(source, "test") == expected

    def test_clock_functions(self, engine):
        assert isinstance(engine.evaluate("os.time()", "test"), int)

    def test_print_does_not_fail(self, engine):
        assert engine.evaluate('print("hello", 1)', "test") is None

    def test_string_methods_filtered(self, engine):
        """String method lookup uses the filtered library"""
        assert engine.evaluate('("x").dump', "test") is None

    def test_color_metatable_protected(self, engine):
        """Colors are opaque tables without a reachable metatable"""
        assert engine.evaluate("getmetatable(rgb(1, 2, 3))", "test") == "color"

    def test_utf8_charpattern(self, engine):
        """Byte-string library members are copied intact"""
        assert engine.evaluate("type(utf8.charpattern)", "test") == "string"
        assert engine.evaluate('("é"):match(utf8.charpattern) == "é"', "test") is True


class TestHostErrors:
    """Test how built-in failures reach scripts and callers"""

    def test_pcall_gets_string_message(self, engine):
        """A caught built-in failure is a plain Lua string"""
        assert engine.evaluate("type(select(2, pcall(rgb, 999, 0, 0)))", "test") == "string"

    def test_pcall_message_text(self, engine):
        message = engine.evaluate("select(2, pcall(rgb, 999, 0, 0))", "test")

        assert "must be an integer" in message

    def test_pcall_success(self, engine):
        assert engine.evaluate("select(2, pcall(rgb, 1, 2, 3)):hex()", "test") == "030201"

    def test_python_attribute_denied(self, engine):
        """Attribute access on a host object is a script error"""
        engine.global_set("HOST_OBJECT", object())

        with pytest.raises(ScriptError, match="not allowed"):
            engine.evaluate("HOST_OBJECT.__class__", "test")

    def test_error_names_calling_line(self, engine):
        with pytest.raises(ScriptError, match="colors.lua:2:"):
            engine.execute("local ok = 1\nlocal c = rgb(300, 0, 0)", "colors.lua")
