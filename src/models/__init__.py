"""
Models package for themebuilder

Contains data structures and type definitions for parsing, building and
the command line pipeline.
"""

from .state import ProgramState, pipeline
from .build import BuildState, BuildResult, ConfigurationTable, ResourceManifest
from .content import (
    Span,
    Newline,
    Code,
    Comment,
    Expression,
    Include,
    Resource,
    Unknown,
    Directive,
    Text,
    items_render,
)

__all__ = [
    "ProgramState",
    "pipeline",
    "BuildState",
    "BuildResult",
    "ConfigurationTable",
    "ResourceManifest",
    "Span",
    "Newline",
    "Code",
    "Comment",
    "Expression",
    "Include",
    "Resource",
    "Unknown",
    "Directive",
    "Text",
    "items_render",
]
