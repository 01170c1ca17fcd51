"""
themebuilder - REAPER theme preprocessor

Compiles a theme descriptor (rtconfig) with #include/#resource directives
and embedded Lua expressions into a .ReaperThemeZip archive.
"""

__version__ = "1.0.0"

from .lib import Preprocessor, preprocess, Theme, LOG, state_connectToLogger

__all__ = ["Preprocessor", "preprocess", "Theme", "LOG", "state_connectToLogger", "__version__"]
