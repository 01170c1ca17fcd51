"""
Build-scoped data models

Defines the accumulating state of one theme build and the artifacts handed
to the packager.
"""

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional, Tuple, TYPE_CHECKING

from .content import Resource

if TYPE_CHECKING:
    from ..lib.engine import ScriptEngine


class ConfigurationTable:
    """
    Section -> key -> value mapping of theme configuration

    Insertion order is kept. Setting an existing section/key replaces its
    value, so later imports win. The general section, holding keys that
    precede any section header, is keyed by None.

    Example:
        >>> table = ConfigurationTable()
        >>> table.set("color theme", "col_main_bg", "3355443")
        >>> table.get("color theme", "col_main_bg")
        '3355443'
    """

    def __init__(self) -> None:
        self.sections: Dict[Optional[str], Dict[str, str]] = {}

    def set(self, section: Optional[str], key: str, value: str) -> None:
        self.sections.setdefault(section, {})[key] = value

    def get(self, section: Optional[str], key: str, default: Optional[str] = None) -> Optional[str]:
        return self.sections.get(section, {}).get(key, default)

    def items(self) -> Iterator[Tuple[Optional[str], Dict[str, str]]]:
        return iter(self.sections.items())

    def to_dict(self) -> Dict[Optional[str], Dict[str, str]]:
        return {section: dict(values) for section, values in self.sections.items()}

    def __len__(self) -> int:
        return len(self.sections)

    def __contains__(self, section: object) -> bool:
        return section in self.sections


class ResourceManifest:
    """
    Destination -> source mapping of files to package

    Destinations are normalized POSIX paths relative to the theme folder.
    The first registration of a destination wins; register() reports a
    conflict instead of overwriting.
    """

    def __init__(self) -> None:
        self.entries: Dict[str, Path] = {}

    def register(self, dest: PurePosixPath, source: Path) -> bool:
        """
        Add a resource unless the destination is taken

        Returns:
            True if added, False if the destination already had a source
        """
        key = dest.as_posix()
        if key in self.entries:
            return False
        self.entries[key] = source
        return True

    def get(self, dest: str) -> Optional[Path]:
        return self.entries.get(dest)

    def items(self) -> Iterator[Tuple[str, Path]]:
        return iter(self.entries.items())

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, dest: object) -> bool:
        return dest in self.entries


@dataclass
class BuildState:
    """
    Mutable state of one top-level build

    Created once per build and passed explicitly through every recursive
    include, so script globals, configuration and resources accumulate
    across files. Never reused between builds.

    Attributes:
        engine: The build's single script engine
        root: Directory of the top-level descriptor
        parts: Expanded descriptor output fragments
        config: Merged configuration table
        resources: Resource manifest
        pending: resource() calls staged by the engine, drained after each
                 evaluation
        warnings: Advisory messages (collisions, skipped matches)
        newline_suppress: Drop the next Newline item (set by directives)
        depth: Current descriptor include depth
    """
    engine: "ScriptEngine"
    root: Path
    parts: List[str] = field(default_factory=list)
    config: ConfigurationTable = field(default_factory=ConfigurationTable)
    resources: ResourceManifest = field(default_factory=ResourceManifest)
    pending: List[Resource] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    newline_suppress: bool = False
    depth: int = 0


@dataclass(frozen=True)
class BuildResult:
    """
    Artifacts of a finished build, handed to the theme packager

    Attributes:
        descriptor: Fully expanded descriptor text (rtconfig.txt)
        config: Merged configuration table (.ReaperTheme)
        resources: Resource manifest
        warnings: Advisory messages raised during the build
    """
    descriptor: str
    config: ConfigurationTable
    resources: ResourceManifest
    warnings: List[str]
