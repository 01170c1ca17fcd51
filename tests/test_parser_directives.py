"""
Directive parsing tests

Tests #include, #resource and unknown directives, including the literal
validation that happens at parse time.
"""

from pathlib import PurePosixPath

import pytest

from themebuilder.lib.errors import ParseError
from themebuilder.lib.parser import Parser
from themebuilder.models.content import Comment, Directive, Include, Newline, Resource, Unknown


def directive_first(source):
    items = Parser(source).parse()
    assert isinstance(items[0], Directive)
    return items[0]


class TestInclude:
    """Test #include directives"""

    def test_include_path(self):
        """#include keeps the normalized relative path"""
        directive = directive_first('#include "parts/./layout.txt"\n')

        assert directive.kind == Include(path=PurePosixPath("parts/layout.txt"))

    def test_line_break_is_separate(self):
        """The directive's line break is left as a Newline item"""
        items = Parser('#include "a.txt"\nnext').parse()

        assert isinstance(items[1], Newline)

    def test_trailing_comment(self):
        """A comment may follow the directive arguments"""
        items = Parser('#include "a.txt" ; the layout').parse()

        assert isinstance(items[0].kind, Include)
        assert isinstance(items[1], Comment)
        assert items[1].span.fragment == "; the layout"

    def test_backslash_separators(self):
        """Backslashes in paths are read as separators"""
        directive = directive_first('#include "parts\\\\layout.txt"')

        assert directive.kind.path == PurePosixPath("parts/layout.txt")

    def test_escaped_quote(self):
        """String literals support escapes"""
        directive = directive_first('#include "odd\\"name.txt"')

        assert directive.kind.path == PurePosixPath('odd"name.txt')

    def test_parent_reference_kept(self):
        """Leading '..' components survive normalization"""
        directive = directive_first('#include "../shared/base.txt"')

        assert directive.kind.path == PurePosixPath("../shared/base.txt")


class TestResource:
    """Test #resource directives"""

    def test_pattern_only(self):
        """A single literal is the glob, destination is the theme root"""
        directive = directive_first('#resource "images/*.png"')

        assert directive.kind == Resource(pattern="images/*.png", dest=PurePosixPath("."))

    def test_dest_and_pattern(self):
        """'dest':'glob' form with blanks around the colon"""
        directive = directive_first('#resource "toolbar/./icons" : "*.png"')

        assert directive.kind == Resource(pattern="*.png", dest=PurePosixPath("toolbar/icons"))

    def test_recursive_glob(self):
        """'**' is accepted as a whole path component"""
        directive = directive_first('#resource "img/**/*.png"')

        assert directive.kind.pattern == "img/**/*.png"


class TestUnknown:
    """Test passthrough of unknown directives"""

    def test_unknown_directive(self):
        """Name and rest of the line are kept verbatim"""
        directive = directive_first("#define SIZE 20 ; note\nnext")

        assert isinstance(directive.kind, Unknown)
        assert directive.kind.name.fragment == "define"
        assert directive.kind.rest.fragment == " SIZE 20 ; note"


class TestDirectiveErrors:
    """Test malformed directives"""

    @pytest.mark.parametrize("source", [
        '#resource "C:/abs" "x.png"',
        '#resource "150" "./*.png"',
        '#include "a.txt" extra',
    ])
    def test_trailing_garbage(self, source):
        """Anything but blanks or a comment after the arguments fails"""
        with pytest.raises(ParseError) as excinfo:
            Parser(source).parse()

        assert "unexpected" in excinfo.value.message
        assert excinfo.value.column == 1

    def test_missing_literal(self):
        """#include needs a quoted string"""
        with pytest.raises(ParseError, match="expected a quoted string after #include"):
            Parser("#include a.txt").parse()

    def test_unterminated_string(self):
        """A string literal must close on its line"""
        with pytest.raises(ParseError, match="unterminated string literal"):
            Parser('#include "a.txt\nmore').parse()

    def test_invalid_escape(self):
        """Unknown escapes are rejected"""
        with pytest.raises(ParseError, match="invalid string literal"):
            Parser('#include "a\\q.txt"').parse()

    @pytest.mark.parametrize("path", ["/etc/passwd", "C:/theme/a.txt", ""])
    def test_non_relative_include(self, path):
        """Absolute, drive-letter and empty paths are rejected"""
        with pytest.raises(ParseError):
            Parser(f'#include "{path}"').parse()

    def test_absolute_resource_dest(self):
        """The resource destination must be relative"""
        with pytest.raises(ParseError, match="must be relative"):
            Parser('#resource "/abs":"*.png"').parse()

    @pytest.mark.parametrize("pattern", ["a**.png", "[ab.png", "/abs/*.png"])
    def test_invalid_glob(self, pattern):
        """Malformed glob patterns fail at parse time"""
        with pytest.raises(ParseError):
            Parser(f'#resource "{pattern}"').parse()

    def test_unterminated_expression(self):
        """A missing '}' is reported at the opening '#'"""
        with pytest.raises(ParseError) as excinfo:
            Parser("ok\nset a #{ 1 + {2}").parse()

        error = excinfo.value
        assert "missing '}'" in error.message
        assert (error.line, error.column) == (2, 7)

    def test_error_carries_path(self, tmp_path):
        """Errors name the file they came from"""
        path = tmp_path / "rtconfig.txt"
        with pytest.raises(ParseError) as excinfo:
            Parser("#include nothing", path).parse()

        assert excinfo.value.path == path
        assert str(path) in str(excinfo.value)
