"""
Theme archive packager

A built theme is a single zip archive laid out the way REAPER unpacks it:
  - <name>.ReaperTheme: merged configuration table as an INI file
  - <name>/rtconfig.txt: expanded descriptor
  - <name>/<dest>: every resource in the manifest
"""

from pathlib import Path
from typing import Optional
from zipfile import ZipFile, ZIP_DEFLATED

from ..config import appsettings, AppSettings
from ..models.build import BuildResult, ConfigurationTable, ResourceManifest
from .log import LOG, WARN


class ThemeError(Exception):
    """Raised when a theme archive cannot be written"""
    pass


class Theme:
    """
    Represents a built theme ready to be packaged.

    A theme consists of:
      - A name, used for the .ReaperTheme file and the resource folder
      - The expanded descriptor text
      - The merged configuration table
      - The resource manifest
    """

    def __init__(
        self,
        name: str,
        descriptor: str,
        config: Optional[ConfigurationTable] = None,
        resources: Optional[ResourceManifest] = None,
        settings: AppSettings = appsettings,
    ):
        self.name = name
        self.descriptor = descriptor
        self.config = config if config is not None else ConfigurationTable()
        self.resources = resources if resources is not None else ResourceManifest()
        self.settings = settings

    @classmethod
    def fromResult(
        cls, name: str, result: BuildResult, settings: AppSettings = appsettings
    ) -> "Theme":
        """Create a theme from preprocessor output"""
        return cls(name, result.descriptor, result.config, result.resources, settings)

    def config_render(self) -> str:
        """
        Render the configuration table as INI text

        Keys keep their case and are written as key=value. Keys of the
        general section come first, with no header. Values are written
        as stored, so continuation lines keep their indentation.
        """
        sections = sorted(self.config.items(), key=lambda item: item[0] is not None)
        lines = []
        for section, values in sections:
            if section is not None:
                lines.append(f"[{section}]")
            lines.extend(f"{key}={value}" for key, value in values.items())
            lines.append("")
        return "".join(line + "\n" for line in lines)

    def outputPath_check(self, path: Path, overwrite: bool) -> None:
        """
        Validate the destination before anything is written

        Raises:
            ThemeError: If path is a directory, or an existing file without overwrite
        """
        if path.is_dir():
            raise ThemeError(f"cannot write theme over directory `{path}`")
        if path.exists() and not overwrite:
            raise ThemeError(f"file `{path}` already exists (use overwrite to replace it)")

        if path.stem != self.name:
            WARN(f"theme file name `{path.name}` does not match theme name `{self.name}`")
        if path.suffix.lower() != f".{self.settings.theme_extension}".lower():
            WARN(f"theme file `{path.name}` does not have the .{self.settings.theme_extension} extension")

    def build(self, path: Path, overwrite: bool = False) -> Path:
        """
        Write the theme archive

        The archive is written to a hidden temporary file beside the
        destination and moved into place only once complete, so a failed
        build never leaves a partial archive or replaces an existing one.

        Args:
            path: Destination zip file
            overwrite: Replace an existing file

        Returns:
            The path written

        Raises:
            ThemeError: If the destination is refused or any write fails
        """
        path = Path(path)
        self.outputPath_check(path, overwrite)

        LOG(f"Packaging theme `{self.name}` into {path}", level=1)
        temp_path = path.with_name(f".{path.name}.tmp")
        try:
            with ZipFile(
                temp_path, "w",
                compression=ZIP_DEFLATED,
                compresslevel=self.settings.compression_level,
            ) as archive:
                archive.writestr(f"{self.name}.ReaperTheme", self.config_render())
                archive.writestr(f"{self.name}/rtconfig.txt", self.descriptor)
                for dest, source in self.resources.items():
                    LOG(f"  {source} -> {self.name}/{dest}", level=3)
                    archive.write(source, f"{self.name}/{dest}")
            temp_path.replace(path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise ThemeError(f"failed to write theme `{path}`: {e}") from e
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

        LOG(f"Wrote {len(self.resources)} resources", level=2)
        return path
