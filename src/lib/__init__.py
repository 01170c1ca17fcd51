"""
themebuilder - REAPER theme preprocessor

Expands directive-driven theme descriptors with embedded Lua expressions
into a packaged theme archive.
"""

__version__ = "1.0.0"

from .parser import Parser, ConfigValueParser
from .preprocess import Preprocessor, preprocess
from .engine import ScriptEngine
from .color import RGB, RGBA, color_fromValue
from .theme import Theme, ThemeError
from .errors import BuildError
from .log import LOG, WARN, state_connectToLogger

__all__ = [
    "Parser",
    "ConfigValueParser",
    "Preprocessor",
    "preprocess",
    "ScriptEngine",
    "RGB",
    "RGBA",
    "color_fromValue",
    "Theme",
    "ThemeError",
    "BuildError",
    "LOG",
    "WARN",
    "state_connectToLogger",
    "__version__",
]
