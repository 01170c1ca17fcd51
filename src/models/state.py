"""
Program state model and pipeline helper

Defines ProgramState dataclass for the command line pipeline and the
pipeline() helper for composing transformation stages.
"""

import dataclasses
from argparse import Namespace
from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path
from typing import Callable, Optional, Type, TypeVar

from .build import BuildResult


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the build pipeline (state bus pattern).

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, inputFile, outputFile,
                   themeName, overwrite, preview
        - env_check: inputSourceFile, themeOutputFile, envOK
        - descriptor_preprocess: buildResult
        - theme_package: packageFile
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Directory containing the top-level descriptor
        outputdir: Directory the theme archive is written to
        verbosity: Logging verbosity level (1-3)
        inputFile: Descriptor filename (relative to inputdir)
        outputFile: Archive filename; defaults to <themeName>.ReaperThemeZip
        themeName: Theme name; defaults to the descriptor's stem
        overwrite: Replace an existing archive
        preview: Print the highlighted expanded descriptor
        envOK: Environment validation passed
        inputSourceFile: Resolved path to the descriptor
        themeOutputFile: Resolved path of the archive to write
        buildResult: Preprocessor output
        packageFile: Archive actually written
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    inputFile: str = field(default="")
    outputFile: Optional[str] = field(default=None)
    themeName: Optional[str] = field(default=None)
    overwrite: bool = field(default=False)
    preview: bool = field(default=False)

    # Pipeline state
    envOK: bool = field(default=False)
    inputSourceFile: Path = field(default=Path("/"))
    themeOutputFile: Path = field(default=Path("/"))
    buildResult: Optional[BuildResult] = field(default=None)
    packageFile: Optional[Path] = field(default=None)

    @classmethod
    def state_createFromNamespace(
        cls: Type[PS], options: Namespace, inputdir: Path, outputdir: Path
    ) -> PS:
        """
        Create ProgramState from argparse Namespace and directory paths.

        Options without a matching field are ignored; inputdir and outputdir
        override anything of the same name in options.

        Args:
            options: Parsed CLI arguments (inputFile, outputFile, etc.)
            inputdir: Directory containing the descriptor
            outputdir: Directory for the theme archive

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        valid_fields = {f.name for f in dataclasses.fields(cls)}
        filtered_options = {k: v for k, v in vars(options).items() if k in valid_fields}
        return cls(**{**filtered_options, "inputdir": inputdir, "outputdir": outputdir})

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            descriptor_preprocess,
            theme_package,
            results_report
        )

    This is equivalent to:
        results_report(theme_package(descriptor_preprocess(env_check(initial_state))))
    """
    return reduce(lambda state, stage: stage(state), stages, initial_state)
