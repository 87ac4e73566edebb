"""Workspace configuration read from Cargo metadata tables.

Settings live in the root manifest under [workspace.metadata.cvm] (or
[package.metadata.cvm] for a single-crate repository):

    [workspace.metadata.cvm]
    source-dir = "src"
    exclude = ["xtask"]

A member crate may override source-dir in its own [package.metadata.cvm].
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

DEFAULT_SOURCE_DIR = "src"


class CvmConfig(BaseModel):
    """Parsed [metadata.cvm] table.

    Attributes:
        source_dir: Directory, relative to each crate, whose changes require
                    a version bump.
        exclude: Crate names that are never checked or bumped.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    source_dir: str = Field(default=DEFAULT_SOURCE_DIR, alias="source-dir")
    exclude: list[str] = Field(default_factory=list)

    @field_validator("source_dir")
    @classmethod
    def _relative_source_dir(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value or value.startswith("/") or ".." in value.split("/"):
            raise ValueError("source-dir must be a relative path inside the crate")
        return value


def cvm_table(data: dict[str, Any], section: str) -> dict[str, Any] | None:
    """Return the [<section>.metadata.cvm] table of a manifest, if present."""
    table = data.get(section, {}).get("metadata", {}).get("cvm")
    if table is None:
        return None
    if not isinstance(table, dict):
        raise ConfigError(f"[{section}.metadata.cvm] must be a table")
    return table


def load_config(root_data: dict[str, Any]) -> CvmConfig:
    """Build the workspace configuration from the root manifest's data.

    [workspace.metadata.cvm] takes precedence over [package.metadata.cvm].
    """
    table = cvm_table(root_data, "workspace")
    if table is None:
        table = cvm_table(root_data, "package")
    try:
        return CvmConfig.model_validate(table or {})
    except ValidationError as exc:
        raise ConfigError(f"Invalid [metadata.cvm] configuration:\n{exc}") from exc


def crate_source_dir(crate_data: dict[str, Any], config: CvmConfig) -> str:
    """Resolve a crate's source-dir from its own metadata, else the workspace default."""
    table = cvm_table(crate_data, "package")
    if not table or "source-dir" not in table:
        return config.source_dir
    try:
        return CvmConfig.model_validate({"source-dir": table["source-dir"]}).source_dir
    except ValidationError as exc:
        raise ConfigError(f"Invalid [package.metadata.cvm] source-dir:\n{exc}") from exc
