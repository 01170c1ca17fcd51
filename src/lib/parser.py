"""
Parser for theme descriptor (rtconfig) syntax

Transforms descriptor text into an ordered sequence of content items.

Grammar:
    ; comment              line comment, to end of the physical line
    #include "path"        include a descriptor, config (.ReaperTheme/.ini/
                           .yaml) or Lua script, relative to this file
    #resource "glob"       package files matching glob at the theme root
    #resource "dest":"glob"  ... or below dest
    #name anything         unknown directive, passed through
    #{ expression }        Lua expression; braces nest, may span lines
    anything else          plain code up to the next '#', ';' or newline

Directives are only recognized when '#name' starts a line. Any other '#'
is ordinary code, so legacy '##' macro interpolation passes through.

Key features:
- Single forward scan with brace depth tracking for expressions
- Every item carries a Span (byte offset, line, column, fragment)
- Literal validation (escapes, relative paths, globs) at parse time
- No recovery: the first error aborts the file

Example:
    >>> items = Parser('set a #{ rgb(1, 2, 3) }\\n').parse()
    >>> [type(item).__name__ for item in items]
    ['Code', 'Expression', 'Newline']
"""

import re
from bisect import bisect_right
from pathlib import Path, PurePosixPath
from typing import List, NoReturn, Optional, Tuple

from ..models.content import (
    Span,
    Newline,
    Code,
    Comment,
    Expression,
    Directive,
    Include,
    Resource,
    Unknown,
    Text,
    ContentItem,
    ConfigValueContent,
)
from .errors import ParseError
from .literals import string_decode, relativePath_parse, glob_validate
from .log import LOG

_DIRECTIVE = re.compile(r'#([A-Za-z_]\w*)')
_CODE_STOP = '#;\n'
_BLANKS = ' \t\r'


class Parser:
    """
    Recursive-descent parser for theme descriptors

    Handles:
    - Code, comments, newlines and nested #{ } expressions
    - #include / #resource directives with literal validation
    - Unknown directives as passthrough items
    - Error reporting with byte offset, line and column
    """

    def __init__(self, source: str, path: Optional[Path] = None):
        """
        Initialize parser with source text

        Args:
            source: Raw descriptor text
            path: File the text came from (for error messages only)

        Attributes:
            source: Source text being parsed
            path: Optional source path attached to errors
            position: Current character position in source
            line_starts: Character index where each line begins
            line_offsets: UTF-8 byte offset where each line begins
        """
        self.source = source
        self.path = path
        self.position = 0
        self.line_starts: List[int] = [0]
        self.line_offsets: List[int] = [0]

        for line in source.split('\n')[:-1]:
            self.line_starts.append(self.line_starts[-1] + len(line) + 1)
            self.line_offsets.append(self.line_offsets[-1] + len(line.encode('utf-8')) + 1)

    def parse(self) -> List[ContentItem]:
        """
        Parse the whole source into content items

        Returns:
            Items in document order. Newlines are separate items; Code never
            contains '\\n'.

        Raises:
            ParseError: On the first malformed construct
        """
        items: List[ContentItem] = []

        while self.position < len(self.source):
            char = self.source[self.position]
            if char == '\n':
                items.append(Newline())
                self.position += 1
            elif char == ';':
                items.append(self.comment_parse())
            elif self.source.startswith('#{', self.position):
                items.append(self.expression_parse())
            elif char == '#' and self.directive_at():
                items.append(self.directive_parse())
            else:
                items.append(self.code_parse())

        LOG(f"Parsed {len(items)} items from {self.path or '<string>'}", level=3)
        return items

    def location_find(self, index: int) -> Tuple[int, int, int]:
        """
        Locate a character index

        Returns:
            (line, column, byte offset), line and column 1-based
        """
        line = bisect_right(self.line_starts, index)
        line_start = self.line_starts[line - 1]
        offset = self.line_offsets[line - 1] + len(self.source[line_start:index].encode('utf-8'))
        return line, index - line_start + 1, offset

    def span_make(self, start: int, end: int) -> Span:
        """Create a Span for source[start:end]"""
        line, column, offset = self.location_find(start)
        return Span(
            fragment=self.source[start:end],
            start=start,
            offset=offset,
            line=line,
            column=column,
        )

    def lineEnd_find(self, start: int) -> int:
        """Index of the next '\\n' at or after start, or end of source"""
        end = self.source.find('\n', start)
        return len(self.source) if end == -1 else end

    def line_span(self, start: int) -> Span:
        """Span from start to the end of its line"""
        return self.span_make(start, self.lineEnd_find(start))

    def blanks_skip(self) -> None:
        while self.position < len(self.source) and self.source[self.position] in _BLANKS:
            self.position += 1

    def comment_parse(self) -> Comment:
        end = self.lineEnd_find(self.position)
        comment = Comment(self.span_make(self.position, end))
        self.position = end
        return comment

    def code_parse(self) -> Code:
        """
        Consume plain code

        The first character is always taken (it may be a '#' that opened
        nothing), then everything up to the next '#', ';' or newline.
        """
        start = self.position
        end = start + 1
        while end < len(self.source) and self.source[end] not in _CODE_STOP:
            end += 1
        self.position = end
        return Code(self.span_make(start, end))

    def brace_findMatching(self, start_pos: int) -> int:
        """
        Find matching closing brace using depth tracking

        Args:
            start_pos: Character position of the opening '{'

        Returns:
            Character position of the matching '}'

        Raises:
            ParseError: If the source ends before the brace is closed

        Example:
            For "#{ {a = {1}} }" at position 1 returns 13.
            Depth tracking: {1 {2 a = {3 1 }2 }1 }0
        """
        depth = 1
        pos = start_pos + 1

        while pos < len(self.source) and depth > 0:
            if self.source[pos] == '{':
                depth += 1
            elif self.source[pos] == '}':
                depth -= 1
            pos += 1

        if depth != 0:
            self.error("unterminated expression, missing '}'", self.line_span(start_pos - 1))

        return pos - 1

    def expression_parse(self) -> Expression:
        """
        Consume a #{ ... } expression

        The Expression span is the text between the braces, so its location
        points at the first character of the expression source.
        """
        start = self.position
        close = self.brace_findMatching(start + 1)
        self.position = close + 1
        return Expression(self.span_make(start + 2, close))

    def directive_at(self) -> bool:
        """True if a '#name' directive starts at the current position"""
        at_line_start = self.position == 0 or self.source[self.position - 1] == '\n'
        return at_line_start and _DIRECTIVE.match(self.source, self.position) is not None

    def directive_parse(self) -> Directive:
        """
        Consume a directive line (without its line break)

        The trailing line break is left for the caller, so the preprocessor
        can decide whether the directive line disappears from the output.
        """
        start = self.position
        match = _DIRECTIVE.match(self.source, start)
        assert match is not None
        keyword = self.span_make(start, match.end())
        self.position = match.end()

        name = match.group(1)
        if name == 'include':
            kind = self.include_parse(keyword)
        elif name == 'resource':
            kind = self.resource_parse(keyword)
        else:
            end = self.lineEnd_find(self.position)
            kind = Unknown(
                name=self.span_make(match.start(1), match.end(1)),
                rest=self.span_make(self.position, end),
            )
            self.position = end

        return Directive(kind=kind, span=self.span_make(start, self.position))

    def string_parse(self, keyword: Span) -> Tuple[str, Span]:
        """
        Consume a double-quoted string literal

        Args:
            keyword: Directive keyword, referenced if no literal is present

        Returns:
            (decoded value, literal span including quotes)
        """
        start = self.position
        if start >= len(self.source) or self.source[start] != '"':
            self.error(f"expected a quoted string after {keyword.fragment}", self.line_span(keyword.start))

        pos = start + 1
        while pos < len(self.source) and self.source[pos] not in '"\n':
            pos += 2 if self.source[pos] == '\\' else 1
        if pos >= len(self.source) or self.source[pos] != '"':
            self.error("unterminated string literal", self.line_span(start))

        literal = self.span_make(start, pos + 1)
        self.position = pos + 1
        try:
            value = string_decode(literal.fragment)
        except ValueError as e:
            self.error(str(e), literal)
        return value, literal

    def lineEnd_expect(self, keyword: Span, expected: str) -> None:
        """
        Require that only blanks or a comment follow the directive arguments

        Raises:
            ParseError: Pointing at the directive keyword
        """
        self.blanks_skip()
        if self.position < len(self.source) and self.source[self.position] not in '\n;':
            extra = self.source[self.position:self.lineEnd_find(self.position)]
            self.error(
                f"unexpected `{extra}` in {keyword.fragment} directive, expected {expected}",
                self.line_span(keyword.start),
            )

    def include_parse(self, keyword: Span) -> Include:
        """Parse the arguments of #include "path" """
        self.blanks_skip()
        value, literal = self.string_parse(keyword)
        self.lineEnd_expect(keyword, '#include "path"')

        try:
            path = relativePath_parse(value)
        except ValueError as e:
            self.error(str(e), literal)
        return Include(path=path)

    def resource_parse(self, keyword: Span) -> Resource:
        """
        Parse the arguments of #resource

        Accepted forms:
            #resource "glob"
            #resource "dest":"glob"     (blanks allowed around ':')
        """
        self.blanks_skip()
        first_value, first_literal = self.string_parse(keyword)
        self.blanks_skip()

        dest_value: Optional[str] = None
        dest_literal: Optional[Span] = None
        if self.position < len(self.source) and self.source[self.position] == ':':
            self.position += 1
            self.blanks_skip()
            dest_value, dest_literal = first_value, first_literal
            pattern_value, pattern_literal = self.string_parse(keyword)
        else:
            pattern_value, pattern_literal = first_value, first_literal

        self.lineEnd_expect(keyword, '#resource "glob" or #resource "dest":"glob"')

        dest = PurePosixPath('.')
        if dest_value is not None and dest_literal is not None:
            try:
                dest = relativePath_parse(dest_value)
            except ValueError as e:
                self.error(str(e), dest_literal)

        try:
            glob_validate(pattern_value)
        except ValueError as e:
            self.error(str(e), pattern_literal)

        return Resource(pattern=pattern_value, dest=dest)

    def error(self, message: str, span: Span) -> NoReturn:
        """
        Report parser error at a source location

        Args:
            message: Human-readable error description
            span: Offending source fragment

        Raises:
            ParseError: Always (this is an error reporting function)
        """
        raise ParseError(message, span, self.path)


class ConfigValueParser(Parser):
    """
    Scanner for #{ } expressions inside configuration values

    Uses the descriptor expression grammar; everything outside an
    expression, including '#', ';' and line breaks, is literal text.

    Example:
        >>> pieces = ConfigValueParser('#{ rgb(1, 2, 3) } ; note').parse()
        >>> [type(piece).__name__ for piece in pieces]
        ['Expression', 'Text']
    """

    def parse(self) -> List[ConfigValueContent]:  # type: ignore[override]
        pieces: List[ConfigValueContent] = []

        while self.position < len(self.source):
            found = self.source.find('#{', self.position)
            if found == -1:
                found = len(self.source)
            if found > self.position:
                pieces.append(Text(self.span_make(self.position, found)))
                self.position = found
            if self.position < len(self.source):
                pieces.append(self.expression_parse())

        return pieces
