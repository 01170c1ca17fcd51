"""
Descriptor content models

Type-safe structures produced by the descriptor and config-value parsers
and consumed by the preprocessor.
"""

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Union


@dataclass(frozen=True)
class Span:
    """
    A slice of source text annotated with its position

    Every parsed item and every parse error carries a Span, so locations are
    known without re-scanning the source.

    Attributes:
        fragment: The sliced text
        start: Character index of the slice in the source string
        offset: Byte offset of the slice in the UTF-8 encoded source
        line: 1-based line number
        column: 1-based column counted in characters (UTF-8 code points)

    Example:
        For source "abc\\n#{ 1 + 2 }" the expression body " 1 + 2 " is
        Span(fragment=" 1 + 2 ", start=6, offset=6, line=2, column=3)
    """
    fragment: str
    start: int
    offset: int
    line: int
    column: int

    def __str__(self) -> str:
        return self.fragment


@dataclass(frozen=True)
class Newline:
    """A physical line break"""

    def render(self) -> str:
        return "\n"


@dataclass(frozen=True)
class Code:
    """Plain descriptor code, passed through verbatim"""
    span: Span

    def render(self) -> str:
        return self.span.fragment


@dataclass(frozen=True)
class Comment:
    """A ';' line comment (the ';' is part of the span)"""
    span: Span

    def render(self) -> str:
        return self.span.fragment


@dataclass(frozen=True)
class Expression:
    """
    An inline #{ ... } expression

    The span covers only the source between the braces.
    """
    span: Span

    def render(self) -> str:
        return "#{" + self.span.fragment + "}"


@dataclass(frozen=True)
class Include:
    """#include "relative/path" """
    path: PurePosixPath


@dataclass(frozen=True)
class Resource:
    """
    #resource ["dest":] "glob"

    Attributes:
        pattern: Glob pattern, relative to the declaring file's directory
        dest: Destination directory inside the theme (normalized, '.' = root)
    """
    pattern: str
    dest: PurePosixPath = PurePosixPath(".")


@dataclass(frozen=True)
class Unknown:
    """
    A directive this engine does not understand

    Attributes:
        name: Directive name without '#'
        rest: Remainder of the line after the name, verbatim
    """
    name: Span
    rest: Span


DirectiveKind = Union[Include, Resource, Unknown]


@dataclass(frozen=True)
class Directive:
    """
    A directive line

    Attributes:
        kind: Include, Resource or Unknown
        span: The directive text from '#' up to the trailing whitespace,
              comment or line break
    """
    kind: DirectiveKind
    span: Span

    def render(self) -> str:
        return self.span.fragment


ContentItem = Union[Newline, Code, Comment, Expression, Directive]


@dataclass(frozen=True)
class Text:
    """Literal text inside a configuration value"""
    span: Span


ConfigValueContent = Union[Text, Expression]


def items_render(items: List[ContentItem]) -> str:
    """
    Reassemble source text from parsed items

    Expressions are re-wrapped in '#{ }'. For a directive-free document the
    result is identical to the parsed source.
    """
    return "".join(item.render() for item in items)
