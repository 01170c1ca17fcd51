"""
Sandboxed Lua engine for descriptor expressions and theme scripts

One ScriptEngine is created per build and reused for every #{ } expression,
configuration value expression and included .lua script, so globals defined
anywhere persist for the rest of the build.

Sandbox:
    The environment scripts run in is built from an allow-list rather than
    by deleting entries from the full Lua globals. Chunks are loaded in text
    mode with that table as their _ENV, so io, package, debug, require,
    load, dofile and the Python bridge are simply not reachable. The os
    table only offers clock, date, difftime and time. Attribute access on
    Python objects from Lua is refused.

Domain built-ins:
    color(value, [channels])  rgb(r, g, b)  rgba(r, g, b, a)
    blend(mode, fraction)     env(name)     resource([dest], pattern)

Colors are Lua tables with a shared metatable; the ColorValue they stand
for lives in a weak registry only the built-ins can read. They support
+, -, ==, tostring() and the methods arr, hex, value, value_rev,
with_alpha, negative (RGB) and to_rgb (RGBA).

Example:
    >>> engine = ScriptEngine(theme_name="Default")
    >>> engine.evaluate("rgb(1, 2, 3):arr()", "example")
    '1 2 3'
"""

import math
import os
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from lupa import LuaRuntime, LuaError, lua_type

from ..config import appsettings, AppSettings
from ..models.content import Resource
from .color import ColorValue, ColorError, RGB, RGBA, color_fromValue
from .literals import glob_validate, relativePath_parse
from .log import LOG

ScriptValue = Union[None, bool, int, float, str, ColorValue]

SAFE_GLOBALS = (
    "assert", "error", "ipairs", "next", "pairs", "pcall", "select",
    "tonumber", "tostring", "type", "xpcall", "rawequal", "rawget",
    "rawlen", "rawset", "setmetatable", "getmetatable", "_VERSION",
)

SAFE_LIBRARIES = ("string", "table", "math", "utf8", "coroutine")

# Library members withheld from scripts
EXCLUDED_MEMBERS = {"string": ("dump",)}

OS_FUNCTIONS = ("clock", "date", "difftime", "time")

# Legacy blend bitfield: 0b1 <8-bit fraction numerator> <8-bit mode>
BLEND_FLAG = 0x20000
BLEND_MODES = {
    "normal": 0x00,
    "add": 0x01,
    "dodge": 0x02,
    "multiply": 0x03,
    "overlay": 0x04,
    "hsv": 0xFE,
}

_LOADER = """
function(source, name, env)
    local chunk, message = load(source, name, "t", env)
    if chunk == nil then
        error(message, 0)
    end
    return chunk
end
"""

_SANDBOX = """
function(names, libraries, excluded, os_names)
    local env = {}
    for _, name in ipairs(names) do
        env[name] = _G[name]
    end

    for _, library in ipairs(libraries) do
        local source = _G[library]
        if source ~= nil then
            local copy = {}
            for key, value in pairs(source) do
                copy[key] = value
            end
            for _, key in ipairs(excluded[library] or {}) do
                copy[key] = nil
            end
            env[library] = copy
        end
    end

    local os_copy = {}
    for _, name in ipairs(os_names) do
        os_copy[name] = os[name]
    end
    env.os = os_copy
    env._G = env

    -- ("x"):method() looks up the string metatable, not _ENV
    getmetatable("").__index = env.string
    return env
end
"""

_PRELUDE = """
function(host, env)
    local registry = setmetatable({}, {__mode = "k"})
    local Color = {__metatable = "color"}
    local methods = {}
    Color.__index = methods

    -- host functions return (true, result) or (false, message)
    local function call(name, ...)
        local ok, result = host[name](...)
        if not ok then
            error(result, 3)
        end
        return result
    end

    local function wrap(value)
        local color = setmetatable({}, Color)
        registry[color] = value
        return color
    end

    local function unwrap(color)
        local value = registry[color]
        if value == nil then
            error("expected a color, got " .. type(color), 3)
        end
        return value
    end

    Color.__add = function(a, b) return wrap(call("add", unwrap(a), unwrap(b))) end
    Color.__sub = function(a, b) return wrap(call("sub", unwrap(a), unwrap(b))) end
    Color.__tostring = function(a) return (call("hex", unwrap(a))) end
    Color.__eq = function(a, b)
        local x, y = registry[a], registry[b]
        if x == nil or y == nil then
            return false
        end
        return (call("eq", x, y))
    end

    function methods:arr() return (call("arr", unwrap(self))) end
    function methods:hex() return (call("hex", unwrap(self))) end
    function methods:value() return (call("value", unwrap(self))) end
    function methods:value_rev() return (call("value_rev", unwrap(self))) end
    function methods:negative() return (call("negative", unwrap(self))) end
    function methods:to_rgb() return wrap(call("to_rgb", unwrap(self))) end
    function methods:with_alpha(alpha) return wrap(call("with_alpha", unwrap(self), alpha)) end

    env.color = function(value, channels) return wrap(call("color", value, channels)) end
    env.rgb = function(r, g, b) return wrap(call("rgb", r, g, b)) end
    env.rgba = function(r, g, b, a) return wrap(call("rgba", r, g, b, a)) end
    env.blend = function(mode, fraction) return (call("blend", mode, fraction)) end
    env.env = function(name) return (call("env", name)) end
    env.resource = function(...) return (call("resource", ...)) end
    env.print = function(...)
        local parts = {}
        for i = 1, select("#", ...) do
            parts[i] = tostring((select(i, ...)))
        end
        call("print", table.concat(parts, "\\t"))
    end

    return function(value) return registry[value] end
end
"""


class ScriptError(Exception):
    """A Lua chunk failed to compile or run, or returned an unsupported value"""
    pass


class HostError(ValueError):
    """A domain built-in was called with invalid arguments"""
    pass


def attribute_deny(obj: Any, attr_name: str, is_setting: bool) -> str:
    """lupa attribute filter: Python objects are opaque to scripts"""
    raise AttributeError(f"access to attribute `{attr_name}` is not allowed")


def blend_encode(mode: str, fraction: float) -> int:
    """
    Encode a blend mode and opacity as the legacy 18-bit bitfield

    The fraction is quantized to a numerator over 256 (rounding half up);
    a fraction of 1.0 sets the numerator's ninth bit, which is why the
    field is 18 bits wide.

    Example:
        >>> bin(blend_encode("hsv", 0.12))
        '0b100001111111111110'
    """
    if isinstance(fraction, bool) or not isinstance(fraction, (int, float)):
        raise HostError(f"frac `{fraction}` must be a number between 0.0 and 1.0")
    if not 0.0 <= fraction <= 1.0:
        raise HostError(f"frac `{fraction}` must be a value between 0.0 and 1.0")
    if not isinstance(mode, str) or mode not in BLEND_MODES:
        names = ", ".join(f'"{name}"' for name in BLEND_MODES)
        raise HostError(f"mode `{mode}` must be one of: {names}")

    numerator = math.floor(fraction * 256 + 0.5)
    return BLEND_FLAG | (numerator << 8) | BLEND_MODES[mode]


def host_guard(function: Callable) -> Callable:
    """
    Wrap a host function for the Lua side

    Returns (True, result) or (False, message), so a failing built-in
    raises a plain Lua string error and no Python exception object ever
    reaches a script.
    """

    def guarded(*args: Any) -> Tuple[bool, Any]:
        try:
            return True, function(*args)
        except Exception as e:
            return False, str(e)

    return guarded


class ScriptEngine:
    """
    Lua runtime restricted to pure computation plus theme built-ins

    Attributes:
        lua: Underlying lupa runtime
        env: Sandbox environment table used as _ENV for every chunk
        pending: Resource directives staged by resource(), drained by the
                 preprocessor after each evaluation
    """

    def __init__(
        self,
        pending: Optional[List[Resource]] = None,
        theme_name: Optional[str] = None,
        settings: AppSettings = appsettings,
    ) -> None:
        self.pending: List[Resource] = pending if pending is not None else []
        self.lua = LuaRuntime(
            register_eval=False,
            register_builtins=False,
            unpack_returned_tuples=True,
            attribute_filter=attribute_deny,
        )
        self.env = self.sandbox_build()

        host = self.lua.table_from(
            {name: host_guard(function) for name, function in self.hostFunctions_build().items()}
        )
        self.color_lookup = self.lua.eval(_PRELUDE)(host, self.env)
        self.chunk_load = self.lua.eval(_LOADER)

        if theme_name is not None:
            self.global_set(settings.theme_name_global, theme_name)

    def sandbox_build(self):
        """
        Create the allow-listed environment table

        Libraries are copied on the Lua side; their values (functions and
        byte strings such as utf8.charpattern) never pass through Python.
        """
        excluded = self.lua.table_from(
            {library: self.lua.table_from(list(members)) for library, members in EXCLUDED_MEMBERS.items()}
        )
        return self.lua.eval(_SANDBOX)(
            self.lua.table_from(list(SAFE_GLOBALS)),
            self.lua.table_from(list(SAFE_LIBRARIES)),
            excluded,
            self.lua.table_from(list(OS_FUNCTIONS)),
        )

    def hostFunctions_build(self) -> Dict[str, Callable]:
        """Python side of the built-ins and color methods"""

        def to_rgb(color: ColorValue) -> RGB:
            if not isinstance(color, RGBA):
                raise ColorError("to_rgb() is only defined for RGBA colors")
            return color.to_rgb()

        def env(name: str) -> str:
            if not isinstance(name, str):
                raise HostError(f"environment variable name must be a string, got {name!r}")
            value = os.environ.get(name)
            if value is None:
                raise HostError(f"environment variable `{name}` is not set")
            return value

        def resource(*args: Any) -> None:
            if len(args) == 1:
                dest, pattern = ".", args[0]
            elif len(args) == 2:
                dest, pattern = args
            else:
                raise HostError("resource(...) can only be called with 1 or 2 arguments")
            if not isinstance(dest, str) or not isinstance(pattern, str):
                raise HostError("resource(...) arguments must be strings")

            self.pending.append(
                Resource(pattern=glob_validate(pattern), dest=relativePath_parse(dest))
            )
            LOG(f"Staged resource `{pattern}` -> `{dest}`", level=3)

        def lua_print(text: str) -> None:
            LOG(f"[lua] {text}", level=2)

        return {
            "color": color_fromValue,
            "rgb": RGB,
            "rgba": RGBA,
            "blend": blend_encode,
            "env": env,
            "resource": resource,
            "print": lua_print,
            "add": lambda a, b: a + b,
            "sub": lambda a, b: a - b,
            "eq": lambda a, b: a == b,
            "arr": lambda color: color.arr(),
            "hex": lambda color: color.hex(),
            "value": lambda color: color.value(),
            "value_rev": lambda color: color.value_rev(),
            "negative": lambda color: color.negative(),
            "with_alpha": lambda color, alpha: color.with_alpha(alpha),
            "to_rgb": to_rgb,
        }

    def global_set(self, name: str, value: Any) -> None:
        """Define a global visible to every later chunk"""
        self.env[name] = value

    def global_get(self, name: str) -> ScriptValue:
        return self.value_project(self.env[name])

    def chunk_compile(self, source: str, name: str, expression: bool):
        """
        Compile a chunk against the sandbox environment

        Expressions are tried as 'return <source>' first and fall back to
        statement form, so both '1 + 2' and 'local x = 2; return x' work.
        """
        chunk_name = "=" + name
        if expression:
            try:
                return self.chunk_load("return " + source, chunk_name, self.env)
            except LuaError:
                pass
        return self.chunk_load(source, chunk_name, self.env)

    def evaluate(self, source: str, name: str) -> ScriptValue:
        """
        Evaluate an expression

        Args:
            source: Lua expression (or statements ending in return)
            name: Chunk name used in Lua error messages

        Returns:
            The first result projected onto ScriptValue

        Raises:
            ScriptError: On compile/runtime failure or unsupported result
        """
        try:
            result = self.chunk_compile(source, name, expression=True)()
        except Exception as e:
            raise ScriptError(str(e)) from e

        if isinstance(result, tuple):
            result = result[0] if result else None
        return self.value_project(result)

    def execute(self, source: str, name: str) -> None:
        """
        Run a script for its side effects (globals, resource() calls)

        Raises:
            ScriptError: On compile or runtime failure
        """
        try:
            self.chunk_compile(source, name, expression=False)()
        except Exception as e:
            raise ScriptError(str(e)) from e

    def value_project(self, value: Any) -> ScriptValue:
        """
        Map a Lua result onto the closed set of serializable values

        nil, booleans, numbers and strings map to their Python types; a
        color table maps to its ColorValue. Tables, functions, coroutines
        and userdata are rejected.

        Raises:
            ScriptError: For any other kind of value
        """
        if value is None or isinstance(value, (bool, int, float, str)):
            return value

        kind = lua_type(value)
        if kind == "table":
            color = self.color_lookup(value)
            if color is not None:
                return color
        raise ScriptError(
            f"expression evaluated to an unsupported value of type `{kind or type(value).__name__}`"
        )
