"""
Preprocessor for theme descriptors

Expands a descriptor into the three build artifacts:
- expanded descriptor text (rtconfig.txt)
- merged configuration table (.ReaperTheme)
- resource manifest (destination -> source file)

Processing is depth-first: an included descriptor is fully expanded, with
its own includes, before the including file continues. All state lives in
one BuildState passed explicitly through every call, so Lua globals,
configuration and resources accumulate across files of the same build.
"""

import configparser
import glob
import os
from decimal import Decimal
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional

import yaml

from ..config import appsettings, AppSettings
from ..models.build import BuildResult, BuildState
from ..models.content import (
    Code,
    Comment,
    ContentItem,
    Directive,
    Expression,
    Include,
    Newline,
    Resource,
    Span,
    Text,
)
from .color import ColorValue
from .engine import ScriptEngine, ScriptError, ScriptValue
from .errors import (
    ConfigError,
    EvaluationError,
    IncludeDepthError,
    OutsideRootError,
    ReadError,
)
from .log import LOG, WARN, source_enter
from .parser import ConfigValueParser, Parser


# Placeholder header for INI keys that precede any section
GENERAL_SECTION = "\x00"


class ValueTarget(Enum):
    """Where a serialized expression value is spliced"""
    DESCRIPTOR = "descriptor"
    CONFIG = "config"


def number_format(value: float) -> str:
    """
    Decimal text for a float

    Integral floats drop the fraction (Lua's 10 / 2 gives 5.0, written 5).
    Others use the shortest round-trip digits in positional notation,
    never an exponent (1e-07 is written 0.0000001).
    """
    if value != value:
        return "NaN"
    if value in (float("inf"), float("-inf")):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def value_serialize(value: ScriptValue, target: ValueTarget) -> str:
    """
    Convert an evaluated expression to the text spliced into the output

    Colors use value() in descriptor code and the reversed value_rev() in
    configuration values, matching each format's byte order.

    Raises:
        TypeError: If value is outside the ScriptValue union
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return number_format(value)
    if isinstance(value, str):
        return value
    if isinstance(value, ColorValue):
        if target is ValueTarget.DESCRIPTOR:
            return str(value.value())
        return str(value.value_rev())
    raise TypeError(f"cannot serialize value of type {type(value).__name__}")


def yamlScalar_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Preprocessor:
    """
    Expands descriptors into build artifacts

    Responsibilities:
    - Parse each descriptor and feed its items into the BuildState
    - Recursively expand #include'd descriptors
    - Import configuration files and run Lua scripts in the shared engine
    - Resolve #resource globs and resource() calls into the manifest
    """

    def __init__(
        self,
        theme_name: Optional[str] = None,
        settings: AppSettings = appsettings,
    ) -> None:
        """
        Args:
            theme_name: Value of the THEME_NAME script global; defaults to
                        the descriptor's file stem
            settings: Application settings
        """
        self.theme_name = theme_name
        self.settings = settings

    def preprocess(self, path: Path) -> BuildResult:
        """
        Build a descriptor from scratch

        Args:
            path: Top-level descriptor file

        Returns:
            BuildResult with expanded descriptor, config and resources

        Raises:
            BuildError: Any parse, read, evaluation or config failure
        """
        path = Path(path)
        state = self.buildState_create(path.parent, self.theme_name or path.stem)

        LOG(f"Preprocessing {path}", level=1)
        self.descriptor_expand(state, path)

        result = BuildResult(
            descriptor="".join(state.parts),
            config=state.config,
            resources=state.resources,
            warnings=list(state.warnings),
        )
        LOG(
            f"Expanded {len(result.descriptor)} characters, "
            f"{len(result.config)} config sections, {len(result.resources)} resources",
            level=2,
        )
        return result

    def buildState_create(self, root: Path, theme_name: str) -> BuildState:
        """Create the state for one build, with an engine bound to its queue"""
        pending: List[Resource] = []
        engine = ScriptEngine(pending=pending, theme_name=theme_name, settings=self.settings)
        return BuildState(engine=engine, root=root, pending=pending)

    def file_read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(path, str(e)) from e

    def root_check(self, state: BuildState, path: Path, what: str) -> None:
        """
        Enforce root confinement when enabled

        Raises:
            OutsideRootError: If path resolves outside the build root
        """
        if not self.settings.confine_to_root:
            return
        if not path.resolve().is_relative_to(state.root.resolve()):
            raise OutsideRootError(
                f"cannot {what} outside the root folder `{state.root}`", path
            )

    def warning_emit(self, state: BuildState, message: str) -> None:
        state.warnings.append(message)
        WARN(message)

    def descriptor_expand(self, state: BuildState, path: Path) -> None:
        """
        Parse a descriptor and feed every item into the build

        Raises:
            IncludeDepthError: If nesting exceeds max_include_depth
        """
        limit = self.settings.max_include_depth
        if limit and state.depth > limit:
            raise IncludeDepthError(f"includes nested deeper than {limit} levels", path)

        with source_enter(path):
            LOG(f"Expanding descriptor {path}", level=2)
            source = self.file_read(path)
            for item in Parser(source, path).parse():
                self.item_feed(state, item, path)

    def item_feed(self, state: BuildState, item: ContentItem, path: Path) -> None:
        """
        Apply one content item to the build

        Args:
            state: Current build state
            item: Parsed content item
            path: Descriptor the item came from
        """
        if isinstance(item, Newline):
            if state.newline_suppress:
                state.newline_suppress = False
            else:
                state.parts.append("\n")
            return

        state.newline_suppress = False

        if isinstance(item, (Code, Comment)):
            state.parts.append(item.span.fragment)
        elif isinstance(item, Expression):
            chunk_name = f"{path.name} line {item.span.line} column {item.span.column}"
            value = self.expression_evaluate(state, item.span, path, chunk_name)
            state.parts.append(value_serialize(value, ValueTarget.DESCRIPTOR))
        elif isinstance(item, Directive):
            self.directive_feed(state, item, path)

    def directive_feed(self, state: BuildState, directive: Directive, path: Path) -> None:
        """
        Apply a directive

        Include and resource lines vanish from the output together with
        their line break. Unknown directives are kept as a comment line.
        """
        kind = directive.kind
        if isinstance(kind, Include):
            self.include_feed(state, kind, path)
            state.newline_suppress = True
        elif isinstance(kind, Resource):
            self.resource_feed(state, kind, path.parent)
            state.newline_suppress = True
        else:
            LOG(f"Passing through unknown directive #{kind.name.fragment}", level=2)
            state.parts.append(f"; #{kind.name.fragment}{kind.rest.fragment}")

    def include_feed(self, state: BuildState, include: Include, path: Path) -> None:
        """Dispatch an #include by extension"""
        target = path.parent / include.path
        self.root_check(state, target, "include a file")

        if self.settings.config_is(target):
            self.config_import(state, target)
        elif self.settings.script_is(target):
            self.script_run(state, target)
        else:
            state.depth += 1
            try:
                self.descriptor_expand(state, target)
            finally:
                state.depth -= 1

    def expression_evaluate(
        self, state: BuildState, span: Span, path: Path, chunk_name: str
    ) -> ScriptValue:
        """
        Evaluate an expression and drain resources it registered

        Raises:
            EvaluationError: With the file and expression location
        """
        try:
            value = state.engine.evaluate(span.fragment, chunk_name)
        except ScriptError as e:
            raise EvaluationError(str(e), span, path) from e
        self.pending_drain(state, path.parent)
        return value

    def script_run(self, state: BuildState, path: Path) -> None:
        """Execute a Lua script once in the shared engine"""
        with source_enter(path):
            LOG(f"Running script {path}", level=2)
            source = self.file_read(path)
            try:
                state.engine.execute(source, path.name)
            except ScriptError as e:
                raise EvaluationError(str(e), None, path) from e
            self.pending_drain(state, path.parent)

    def pending_drain(self, state: BuildState, base_dir: Path) -> None:
        """Resolve resource() calls staged during the last evaluation"""
        if not state.pending:
            return
        queued = list(state.pending)
        state.pending.clear()
        for resource in queued:
            self.resource_feed(state, resource, base_dir)

    def resource_feed(self, state: BuildState, resource: Resource, base_dir: Path) -> None:
        """
        Add glob matches to the resource manifest

        Matches are visited in sorted order. A destination that is already
        registered keeps its first source; the newcomer is skipped with a
        warning. Enumeration problems are warnings, never errors.
        """
        pattern = resource.pattern.replace('\\', '/')
        LOG(f"glob pattern `{pattern}` starting from `{base_dir}`", level=3)

        try:
            matches = sorted(glob.glob(
                os.path.join(glob.escape(str(base_dir)), pattern),
                recursive=True,
                include_hidden=True,
            ))
        except OSError as e:
            self.warning_emit(state, f"failed to get resources in path `{base_dir}`: {e}")
            return

        for match in matches:
            source = Path(match)
            if source.name in ("", ".", ".."):
                self.warning_emit(state, f"resource does not have a filename `{source}`")
                continue
            self.root_check(state, source, "add a resource")

            dest = PurePosixPath(resource.dest) / source.name
            if not state.resources.register(dest, source):
                self.warning_emit(
                    state,
                    f"resource `{source}` conflicts with previous resource at `{dest}` "
                    f"(keeping `{state.resources.get(dest.as_posix())}`)",
                )
            else:
                LOG(f"Resource {dest} <- {source}", level=3)

    def config_load(self, path: Path) -> Dict[Optional[str], Dict[str, str]]:
        """
        Read a configuration file as section -> key -> raw value

        INI files keep key case, use '=' as the only delimiter and ';' for
        comment lines. YAML files must map sections to flat mappings. Keys
        outside any section (before the first INI header, or under a null
        YAML key) are returned under None.

        Raises:
            ReadError: If the file cannot be read
            ConfigError: If the file is malformed
        """
        text = self.file_read(path)

        if self.settings.yaml_is(path):
            try:
                data = yaml.safe_load(text)
            except yaml.YAMLError as e:
                raise ConfigError(f"failed to parse configuration: {e}", path) from e
            if data is None:
                return {}
            if not isinstance(data, dict):
                raise ConfigError("configuration must map section names to key/value mappings", path)

            sections: Dict[Optional[str], Dict[str, str]] = {}
            for section, values in data.items():
                if not isinstance(values, dict):
                    raise ConfigError(f"section `{section}` must be a mapping", path)
                for key, value in values.items():
                    if isinstance(value, (dict, list)):
                        raise ConfigError(f"value of `{section}.{key}` must be a scalar", path)
                    name = None if section is None else str(section)
                    sections.setdefault(name, {})[str(key)] = yamlScalar_text(value)
            return sections

        parser = configparser.ConfigParser(
            interpolation=None,
            strict=False,
            delimiters=("=",),
            comment_prefixes=(";",),
        )
        parser.optionxform = str  # type: ignore[assignment,method-assign]
        try:
            try:
                parser.read_string(text, source=str(path))
            except configparser.MissingSectionHeaderError:
                # Keys before the first header belong to the general section
                parser.read_string(f"[{GENERAL_SECTION}]\n{text}", source=str(path))
        except configparser.Error as e:
            raise ConfigError(f"failed to parse configuration: {e}", path) from e

        return {
            None if section == GENERAL_SECTION else section: {
                key: value or "" for key, value in parser.items(section, raw=True)
            }
            for section in parser.sections()
        }

    def config_import(self, state: BuildState, path: Path) -> None:
        """
        Merge a configuration file into the build's table

        Every value is scanned for #{ } expressions, which are evaluated in
        the shared engine and spliced back in place.
        """
        with source_enter(path):
            LOG(f"Importing configuration {path}", level=2)
            for section, values in self.config_load(path).items():
                for key, raw in values.items():
                    state.config.set(section, key, self.configValue_expand(state, raw, path, section, key))

    def configValue_expand(
        self, state: BuildState, value: str, path: Path, section: Optional[str], key: str
    ) -> str:
        """
        Evaluate the expressions inside one configuration value

        Colors are written with value_rev(). Multi-line string results are
        indented so continuation lines start at the column of the '#' that
        opened the expression.
        """
        parts = []
        for piece in ConfigValueParser(value, path).parse():
            if isinstance(piece, Text):
                parts.append(piece.span.fragment)
                continue

            location = f"{path.name} [{section}] {key}" if section is not None else f"{path.name} {key}"
            result = self.expression_evaluate(state, piece.span, path, location)
            text = value_serialize(result, ValueTarget.CONFIG)
            if isinstance(result, str):
                # the span starts two characters after the opening '#'
                text = text.replace("\n", "\n" + " " * (piece.span.column - 3))
            parts.append(text)
        return "".join(parts)


def preprocess(
    path: Path,
    theme_name: Optional[str] = None,
    settings: AppSettings = appsettings,
) -> BuildResult:
    """
    Expand a top-level descriptor

    Convenience wrapper around Preprocessor for one build.

    Example:
        >>> result = preprocess(Path("theme/rtconfig.txt"), theme_name="Default")
        >>> result.descriptor, result.config, result.resources
    """
    return Preprocessor(theme_name=theme_name, settings=settings).preprocess(path)
