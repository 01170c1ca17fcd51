"""
Build error taxonomy

Every failure that aborts a build derives from BuildError, so the top-level
caller can report it with a single except clause. Advisory conditions
(resource collisions, unreadable glob matches) are not errors; they are
logged and collected on the build state.
"""

from pathlib import Path
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.content import Span


class BuildError(Exception):
    """Base class for errors that abort a theme build"""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.path}: {self.message}"
        return self.message


class LocatedError(BuildError):
    """
    A build error tied to a span of source text

    The span is None only for whole-file failures (e.g. a Lua script whose
    error message already names the line).
    """

    def __init__(self, message: str, span: Optional["Span"], path: Optional[Path] = None):
        super().__init__(message, path)
        self.span = span

    @property
    def offset(self) -> Optional[int]:
        return self.span.offset if self.span else None

    @property
    def line(self) -> Optional[int]:
        return self.span.line if self.span else None

    @property
    def column(self) -> Optional[int]:
        return self.span.column if self.span else None

    @property
    def fragment(self) -> Optional[str]:
        return self.span.fragment if self.span else None

    def __str__(self) -> str:
        if self.span is None:
            return super().__str__()
        where = f"line {self.span.line}, column {self.span.column}"
        if self.path is not None:
            where = f"{self.path}: {where}"
        return f"{where}: {self.message}\n    {self.span.fragment}"


class ParseError(LocatedError):
    """Malformed descriptor or configuration value syntax"""
    pass


class EvaluationError(LocatedError):
    """An expression or script failed, or produced an unsupported value"""
    pass


class ReadError(BuildError):
    """An included descriptor, config or script file could not be read"""

    def __init__(self, path: Path, reason: str = ""):
        message = f"failed to read file `{path}`"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return self.message


class ConfigError(BuildError):
    """A structured configuration file is malformed"""
    pass


class IncludeDepthError(BuildError):
    """Nested includes exceeded the configured depth limit"""
    pass


class OutsideRootError(BuildError):
    """An include or resource resolved outside the build root"""
    pass
