#!/usr/bin/env python3
"""
themebuilder - REAPER theme preprocessor

Compiles a theme descriptor (the rtconfig.txt layout language) into a
packaged .ReaperThemeZip archive.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Descriptor language:
    - Plain descriptor code passes through unchanged
    - #include "file" pulls in another descriptor, a configuration file
      (.ReaperTheme, .ini, .yaml, .yml) or a Lua script (.lua)
    - #resource "dest":"glob" adds image files to the theme
    - #{ expression } is replaced by the value of a Lua expression

Usage:
    themebuilder inputdir/ outputdir/ --inputFile rtconfig.txt

    The theme archive is written to outputdir/ as <name>.ReaperThemeZip,
    where <name> defaults to the descriptor's file stem.

Examples:
    # Basic build
    themebuilder . output/ --inputFile Default.rtconfig.txt

    # Explicit theme name, replace a previous build
    themebuilder src/ dist/ --inputFile rtconfig.txt --themeName Default --overwrite

    # Show the expanded descriptor, verbose output
    themebuilder . output/ --inputFile rtconfig.txt --preview -vv
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .config import appsettings
from .lib import Preprocessor, Theme, ThemeError, BuildError, __version__, LOG, state_connectToLogger
from .lib.lexer import descriptor_highlight
from .models import ProgramState, pipeline


DISPLAY_TITLE = r"""
  _   _                          _           _ _     _
 | |_| |__   ___ _ __ ___   ___ | |__  _   _(_) | __| | ___ _ __
 | __| '_ \ / _ \ '_ ` _ \ / _ \| '_ \| | | | | |/ _` |/ _ \ '__|
 | |_| | | |  __/ | | | | |  __/| |_) | |_| | | | (_| |  __/ |
  \__|_| |_|\___|_| |_| |_|\___||_.__/ \__,_|_|_|\__,_|\___|_|

  REAPER theme preprocessor
"""

# Define CLI arguments
parser = ArgumentParser(
    description="themebuilder - compile a REAPER theme descriptor into a theme archive",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--inputFile", required=True, type=str, help="Top-level theme descriptor (relative to inputdir)"
)

parser.add_argument(
    "--outputFile",
    default=None,
    type=str,
    help=f"Theme archive name (relative to outputdir). Defaults to <themeName>.{appsettings.theme_extension}",
)

parser.add_argument(
    "--themeName",
    default=None,
    type=str,
    help="Theme name, also exposed to scripts as THEME_NAME. Defaults to the descriptor file stem",
)

parser.add_argument(
    "--overwrite",
    action="store_true",
    help="Replace an existing theme archive",
)

parser.add_argument(
    "--preview",
    action="store_true",
    help="Print the expanded descriptor with syntax highlighting",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and resolve all file paths.

    Verifies that the descriptor exists, settles the theme name and
    creates the output directory.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - inputSourceFile: Resolved path to the descriptor
            - themeName: Theme name (defaulted to the descriptor stem)
            - themeOutputFile: Path of the archive to write
            - envOK: True if environment is valid

    Exits:
        1 if the descriptor is missing or the output is a directory
    """

    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    input_file = state.inputdir / state.inputFile

    if not input_file.is_file():
        print(f"Error: Input file not found: {input_file}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.inputSourceFile = input_file
    LOG(f"Input file: {input_file}", level=2)

    if not state.themeName:
        state.themeName = input_file.stem
    LOG(f"Theme name: {state.themeName}", level=2)

    output_name = state.outputFile or f"{state.themeName}.{appsettings.theme_extension}"
    state.themeOutputFile = state.outputdir / output_name

    if state.themeOutputFile.is_dir():
        print(f"Error: Output path is a directory: {state.themeOutputFile}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.themeOutputFile.parent.mkdir(parents=True, exist_ok=True)
    LOG(f"Output file: {state.themeOutputFile}", level=2)

    state.envOK = True
    return state


def descriptor_preprocess(inputstate: ProgramState) -> ProgramState:
    """
    Expand the descriptor into build artifacts.

    Runs the preprocessor over the descriptor and everything it includes.

    Args:
        inputstate: Program state with inputSourceFile and themeName set

    Returns:
        ProgramState with added field:
            - buildResult: Expanded descriptor, configuration and resources

    Exits:
        1 on any build error
    """

    state = inputstate.copy()

    LOG("Preprocessing descriptor...", level=1)

    try:
        preprocessor = Preprocessor(theme_name=state.themeName)
        state.buildResult = preprocessor.preprocess(state.inputSourceFile)
    except BuildError as e:
        print(f"Build error: {e}", file=sys.stderr)
        sys.exit(1)

    if state.preview:
        print(descriptor_highlight(state.buildResult.descriptor))

    return state


def theme_package(inputstate: ProgramState) -> ProgramState:
    """
    Write the theme archive.

    Args:
        inputstate: Program state with buildResult

    Returns:
        ProgramState with added field:
            - packageFile: Path of the written archive

    Exits:
        1 if buildResult is None or writing fails
    """

    state = inputstate.copy()

    LOG("Packaging theme...", level=1)

    if state.buildResult is None:
        print("Error: No build result available", file=sys.stderr)
        sys.exit(1)

    try:
        theme = Theme.fromResult(state.themeName, state.buildResult)
        state.packageFile = theme.build(state.themeOutputFile, overwrite=state.overwrite)
    except ThemeError as e:
        print(f"Packaging error: {e}", file=sys.stderr)
        sys.exit(1)

    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display build results to user.

    Args:
        inputstate: Program state with packageFile populated

    Returns:
        ProgramState unchanged (terminal pipeline stage)

    Exits:
        1 if packageFile is None
    """
    state: ProgramState = inputstate.copy()
    if not state.packageFile or state.buildResult is None:
        print("Error: Build failed", file=sys.stderr)
        sys.exit(1)

    result = state.buildResult
    LOG("\n✓ Build successful!", level=1)
    LOG(f"  Output:    {state.packageFile}", level=1)
    LOG(f"  Sections:  {len(result.config)}", level=1)
    LOG(f"  Resources: {len(result.resources)}", level=1)
    if result.warnings:
        LOG(f"  Warnings:  {len(result.warnings)}", level=1)
    return state


@chris_plugin(
    parser=parser,
    title="themebuilder - REAPER theme preprocessor",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - build a theme archive from a descriptor.

    Orchestrates the full build pipeline:
        1. env_check: Validate paths and environment
        2. descriptor_preprocess: Expand the descriptor
        3. theme_package: Write the .ReaperThemeZip archive
        4. results_report: Display results to user

    Args:
        options: CLI arguments from argparse
        inputdir: Directory containing the descriptor
        outputdir: Directory where the archive will be written

    Note:
        This function is wrapped by @chris_plugin which handles CLI
        argument parsing and invokes this function with parsed values.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, descriptor_preprocess, theme_package, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
