"""
Configuration management for data-scaffolder.

Loads tool settings from data-scaffolder.toml files using Pydantic, and reads
the connection-string document (appsettings*.json or TOML) that names the
data sources to scaffold.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from data_scaffolder.core.models import DataSource
from data_scaffolder.core.naming import sanitize_identifier
from data_scaffolder.exceptions import ConfigurationError, DuplicateDataSourceError

CONFIG_FILE_NAME = "data-scaffolder.toml"
CONNECTION_STRINGS_SECTION = "ConnectionStrings"
TOML_CONNECTION_STRINGS_SECTION = "connection_strings"


class CatalogConfig(BaseSettings):
    """Rules deciding which tables are scaffolded."""

    model_config = SettingsConfigDict(env_prefix="DATA_SCAFFOLDER_CATALOG_")

    excluded_tables: list[str] = Field(
        default=["__EFMigrationsHistory"],
        description="Table names never scaffolded (migration history markers)",
    )
    excluded_schemas: list[str] = Field(
        default=["information_schema", "_maintenance"],
        description="Schema names never scaffolded",
    )
    excluded_schema_prefixes: list[str] = Field(
        default=["pg_", "_"],
        description="Schemas starting with any of these prefixes are skipped",
    )
    excluded_schema_suffixes: list[str] = Field(
        default=["_history"],
        description="Schemas ending with any of these suffixes are skipped",
    )


class MappingConfig(BaseSettings):
    """Column annotation (name override) configuration."""

    model_config = SettingsConfigDict(env_prefix="DATA_SCAFFOLDER_MAPPINGS_")

    annotation_prefix: str = Field(
        default="efcore:", description="Key prefix of recognized annotations"
    )


class OutputConfig(BaseSettings):
    """Generated file configuration."""

    model_config = SettingsConfigDict(env_prefix="DATA_SCAFFOLDER_OUTPUT_")

    file_name: str = Field(default="DataFactory.cs", description="Generated file name")
    models_dir: str = Field(
        default="Models", description="Preferred output subdirectory, used when it exists"
    )
    project_file_glob: str = Field(
        default="*.csproj", description="Project file pattern used to derive the namespace"
    )
    fallback_namespace: str = Field(
        default="DataScaffolder",
        description="Namespace used when no project file or annotation provides one",
    )
    container_suffix: str = Field(
        default="DataFactory", description="Suffix of each per-connection container class"
    )
    escape_literals: bool = Field(
        default=True,
        description="Escape quotes and control characters in string/char literals",
    )
    skip_failed_tables: bool = Field(
        default=False,
        description="Skip tables whose rows cannot be read instead of aborting",
    )


class ScaffolderConfig(BaseSettings):
    """Main configuration for data-scaffolder."""

    model_config = SettingsConfigDict(env_prefix="DATA_SCAFFOLDER_")

    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    mappings: MappingConfig = Field(default_factory=MappingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def from_toml(cls, path: Path | str) -> ScaffolderConfig:
        """
        Load configuration from TOML file.

        A [connection_strings] table may live in the same file; it is read by
        load_connection_strings() and ignored here.

        Args:
            path: Path to data-scaffolder.toml

        Returns:
            ScaffolderConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If config file is not valid TOML
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        data = _read_toml(config_path)
        data.pop(TOML_CONNECTION_STRINGS_SECTION, None)
        return cls(**data)

    @classmethod
    def find_and_load(cls, start_dir: Optional[Path] = None) -> ScaffolderConfig:
        """
        Find and load configuration from data-scaffolder.toml.

        Searches start_dir and its parents. Returns the defaults when no
        config file exists anywhere up to the filesystem root.
        """
        if start_dir is None:
            start_dir = Path.cwd()

        current = Path(start_dir).resolve()

        while True:
            config_path = current / CONFIG_FILE_NAME
            if config_path.exists():
                return cls.from_toml(config_path)

            parent = current.parent
            if parent == current:
                break
            current = parent

        return cls()


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(path, f"not valid TOML ({exc})") from exc


def _read_json(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8-sig") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(path, f"not valid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(path, "top-level JSON value must be an object")
    return data


def load_connection_strings(path: Path | str) -> dict[str, str]:
    """
    Read named connection strings from a settings document.

    Supports appsettings*.json (top-level "ConnectionStrings" object, key
    matched case-insensitively) and TOML ([connection_strings] table).
    Document order is preserved.

    Raises:
        FileNotFoundError: If the document doesn't exist
        ConfigurationError: If the section is missing, empty or malformed
    """
    settings_path = Path(path)
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    if settings_path.suffix.lower() == ".toml":
        section = _read_toml(settings_path).get(TOML_CONNECTION_STRINGS_SECTION)
        section_name = f"[{TOML_CONNECTION_STRINGS_SECTION}]"
    else:
        data = _read_json(settings_path)
        section = next(
            (
                value
                for key, value in data.items()
                if key.lower() == CONNECTION_STRINGS_SECTION.lower()
            ),
            None,
        )
        section_name = f'"{CONNECTION_STRINGS_SECTION}"'

    if not isinstance(section, dict) or not section:
        raise ConfigurationError(settings_path, f"no {section_name} section found")

    connection_strings: dict[str, str] = {}
    for key, value in section.items():
        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError(
                settings_path, f"connection string '{key}' must be a non-empty string"
            )
        connection_strings[key] = value
    return connection_strings


def build_data_sources(connection_strings: dict[str, str]) -> list[DataSource]:
    """
    Turn named connection strings into data sources with sanitized names.

    Raises:
        InvalidIdentifierError: If a key has no usable characters
        DuplicateDataSourceError: If two keys sanitize to the same name
    """
    sources: list[DataSource] = []
    keys_by_name: dict[str, list[str]] = {}
    for key, conninfo in connection_strings.items():
        name = sanitize_identifier(key)
        keys_by_name.setdefault(name, []).append(key)
        sources.append(DataSource(name=name, conninfo=conninfo, key=key))

    for name, keys in keys_by_name.items():
        if len(keys) > 1:
            raise DuplicateDataSourceError(name, keys)
    return sources


def get_destination_path(project_dir: Path | str, models_dir: str = "Models") -> Path:
    """
    Get the directory the generated file is written to.

    The models subfolder when it exists, otherwise the project directory.
    """
    project_path = Path(project_dir)
    models_path = project_path / models_dir
    if models_path.is_dir():
        return models_path
    return project_path


def resolve_namespace(
    project_dir: Path | str,
    destination: Path | str,
    output: Optional[OutputConfig] = None,
) -> str:
    """
    Derive the namespace of the generated file from the project file.

    MyApp.csproj + Models destination -> MyApp.Models
    MyApp.csproj + project root       -> MyApp
    no project file                   -> fallback namespace
    """
    output = output or OutputConfig()
    project_files = sorted(
        p for p in Path(project_dir).glob(output.project_file_glob) if p.is_file()
    )
    if not project_files:
        return output.fallback_namespace

    stem = project_files[0].stem
    if Path(destination).name == output.models_dir:
        return f"{stem}.{output.models_dir}"
    return stem
