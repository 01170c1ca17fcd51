"""
Custom Pygments lexer for theme descriptors

Used by the command line --preview option to show the expanded (or raw)
descriptor with highlighting.

Token types:
- Comment.Preproc: Directive names (#include, #resource, unknown #names)
- String.Double: Directive arguments
- Comment.Single: ';' comments
- Punctuation: #{ and } around embedded expressions
- Lua tokens: Expression source, delegated to the Pygments Lua lexer
- Number / Name / Text: Descriptor code
"""

import re

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexer import RegexLexer, bygroups, using
from pygments.lexers.scripting import LuaLexer
from pygments.token import (
    Comment,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Whitespace,
)


class DescriptorLexer(RegexLexer):
    """
    Lexer for the theme descriptor language

    Example:
        #resource "images":"*.png"
        set tcp.size [300 100 #{ width + 20 }]   ; track panel

    Tokens:
        #resource -> Comment.Preproc
        "images" -> String.Double
        #{ -> Punctuation
        width + 20 -> Lua tokens
        ; track panel -> Comment.Single
    """

    name = 'Theme descriptor'
    aliases = ['themedescriptor', 'rtconfig']
    filenames = ['rtconfig.txt', '*.rtconfig.txt']

    flags = re.MULTILINE

    tokens = {
        'root': [
            # Directives only start at the beginning of a line
            (r'^([ \t]*)(#[A-Za-z_]\w*)', bygroups(Whitespace, Comment.Preproc), 'directive'),

            (r';.*?$', Comment.Single),

            (r'#\{', Punctuation, 'expression'),

            (r'-?\d+(\.\d+)?', Number),
            (r'[A-Za-z_][\w.]*', Name),
            (r'[\[\](),]', Punctuation),
            (r'[+\-*/=<>!&|?:]', Operator),
            (r'\n', Whitespace),
            (r'[^\S\n]+', Whitespace),
            (r'.', Text),
        ],

        'directive': [
            (r'"(\\\\|\\"|[^"\n])*"', String.Double),
            (r':', Punctuation),
            (r';.*?$', Comment.Single, '#pop'),
            (r'\n', Whitespace, '#pop'),
            (r'[^\S\n]+', Whitespace),
            (r'[^"\n;:]+', Text),
        ],

        'expression': [
            (r'\}', Punctuation, '#pop'),
            # Lua table constructors nest inside the expression
            (r'\{', Punctuation, 'expression'),
            (r'"(\\\\|\\"|[^"])*"', String.Double),
            (r"'(\\\\|\\'|[^'])*'", String.Single),
            (r'[^{}"\']+', using(LuaLexer)),
        ],
    }


def get_lexer() -> DescriptorLexer:
    """
    Get the DescriptorLexer instance

    Returns:
        DescriptorLexer instance ready for use with Pygments
    """
    return DescriptorLexer()


def descriptor_highlight(text: str) -> str:
    """
    Highlight descriptor text for a terminal

    Args:
        text: Descriptor source or expanded output

    Returns:
        Text with ANSI color escapes
    """
    return highlight(text, get_lexer(), TerminalFormatter())
