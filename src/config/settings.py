"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use THEMEBUILDER_ prefix (e.g., THEMEBUILDER_MAX_INCLUDE_DEPTH=16).

Settings can also be loaded from a .env file in the project root.
"""

from pathlib import PurePath
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use THEMEBUILDER_ prefix.

    Examples:
        THEMEBUILDER_CONFINE_TO_ROOT=true
        THEMEBUILDER_MAX_INCLUDE_DEPTH=0
        THEMEBUILDER_COMPRESSION_LEVEL=9
    """

    model_config = SettingsConfigDict(
        env_prefix="THEMEBUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Include handling
    config_extensions: List[str] = Field(
        default=["reapertheme", "ini", "yaml", "yml"],
        description="#include extensions imported as configuration (case-insensitive)",
    )

    script_extensions: List[str] = Field(
        default=["lua"],
        description="#include extensions executed as Lua scripts (case-insensitive)",
    )

    yaml_extensions: List[str] = Field(
        default=["yaml", "yml"],
        description="Configuration extensions read as YAML instead of INI",
    )

    max_include_depth: int = Field(
        default=64,
        ge=0,
        description="Maximum descriptor include nesting; 0 disables the limit",
    )

    confine_to_root: bool = Field(
        default=False,
        description="Reject includes and resources outside the top-level descriptor's directory",
    )

    # Script engine
    theme_name_global: str = Field(
        default="THEME_NAME",
        description="Lua global pre-seeded with the theme name",
    )

    # Packaging
    theme_extension: str = Field(
        default="ReaperThemeZip",
        description="Expected extension of the packaged theme archive",
    )

    compression_level: int = Field(
        default=6,
        ge=0,
        le=9,
        description="Deflate compression level for the theme archive",
    )

    def extension_of(self, path: PurePath) -> str:
        """
        Lower-case extension of a path without the leading dot

        Example:
            >>> AppSettings().extension_of(PurePath("colors.ReaperTheme"))
            'reapertheme'
        """
        return path.suffix[1:].lower()

    def config_is(self, path: PurePath) -> bool:
        """True if an included path is imported as configuration"""
        return self.extension_of(path) in self.config_extensions

    def script_is(self, path: PurePath) -> bool:
        """True if an included path is executed as a Lua script"""
        return self.extension_of(path) in self.script_extensions

    def yaml_is(self, path: PurePath) -> bool:
        """True if a configuration file is YAML"""
        return self.extension_of(path) in self.yaml_extensions


# Singleton instance - import this in your code
appsettings = AppSettings()
