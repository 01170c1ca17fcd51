"""
Build logging on top of Loguru.

LOG() checks the verbosity of the ProgramState connected to the current
context, so library code never needs the state passed in. WARN() reports
advisory build conditions (resource collisions, skipped glob matches) and
stays visible unless output is silenced with verbosity 0.

Every record also names the file being expanded, set with source_enter()
by the preprocessor while it walks nested includes.

Usage:
    from themebuilder.lib.log import LOG, WARN, state_connectToLogger

    state_connectToLogger(state)
    LOG("Preprocessing descriptor...", level=1)
    LOG("glob pattern `*.png` starting from `images`", level=3)
    WARN("resource `b/a.png` conflicts with previous resource at `a.png`")
"""

from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Iterator, Optional
import sys

from loguru import logger

# ProgramState of the running pipeline, None when used as a library
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

# Descriptor, config or script currently being processed
_source_file: ContextVar[str] = ContextVar('source_file', default="-")

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <7}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> │ "
    "<magenta>{extra[source]}</magenta> ║ "
    "<level>{message}</level>"
)


def source_patch(record: Any) -> None:
    record["extra"].setdefault("source", _source_file.get())


logger.remove()
logger.configure(patcher=source_patch)
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """
    Connect a ProgramState to the logging context.

    Args:
        state: ProgramState (or any object) with a verbosity attribute
    """
    _program_state.set(state)


@contextmanager
def source_enter(path: Path) -> Iterator[None]:
    """
    Tag log records with the file being processed.

    Nested uses restore the including file on exit.
    """
    token = _source_file.set(path.name)
    try:
        yield
    finally:
        _source_file.reset(token)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if current state's verbosity allows.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=debug)
        **kwargs: Additional loguru metadata

    Nothing is logged when no ProgramState is connected.
    """
    state = _program_state.get()

    if state is not None and getattr(state, 'verbosity', 0) >= level:
        logger.opt(depth=1).debug(message, **kwargs)


def WARN(message: str, **kwargs: Any) -> None:
    """
    Log an advisory warning.

    Shown at verbosity 1 and above, and always when no ProgramState is
    connected.
    """
    state = _program_state.get()

    if state is None or getattr(state, 'verbosity', 1) >= 1:
        logger.opt(depth=1).warning(message, **kwargs)
