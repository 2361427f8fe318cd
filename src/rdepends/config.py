"""Configuration settings for rdepends."""

from __future__ import annotations

from enum import Enum
from pathlib import Path  # noqa: TC003

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    CliImplicitFlag,
    SettingsConfigDict,
)

from .db import DEFAULT_DB_PATH


class OutputFormat(str, Enum):
    """Output formats for rdepends."""

    json = "json"
    dot = "dot"


class Settings(BaseSettings):
    """Settings for rdepends."""

    target: str = Field(
        default="",
        description="""Release whose dependents to compute, in the form
            PACKAGE_NAME@VERSION. For example: `serde@1.0.130`.""",
    )
    index: Path | None = Field(
        default=None,
        description="""Local checkout of a crates.io style registry index, or a
            file with one release record (JSON) per line. If omitted, the
            snapshot stored in `--database` is used.""",
    )
    resolver: str = Field(
        default="cargo",
        description="""Constraint resolver used to evaluate requirements. See
            `rdepends --list`.""",
    )
    database: Path = Field(
        default=DEFAULT_DB_PATH,
        description="""Alternative path to load/store the index snapshot, or
        ':memory:' to keep it in memory rather than reading/writing to disk.""",
    )
    refresh: CliImplicitFlag[bool] = Field(
        default=False,
        description="""Re-parse `--index` and replace the stored snapshot even
        if one already exists.""",
    )
    clear_cache: CliImplicitFlag[bool] = Field(
        default=False,
        description="""Clears the database specified by `--database` (equivalent
        to deleting the database file).""",
    )
    deduplicate: CliImplicitFlag[bool] = Field(
        default=False,
        description="""Drop requirement edges that appear more than once in the
        registry (same source release, target and constraint).""",
    )
    kinds: str = Field(
        default="",
        description="""Comma separated requirement kinds to index (`normal`,
        `build`, `dev`). By default every kind is indexed.""",
    )
    include_yanked: CliImplicitFlag[bool] = Field(
        default=True,
        description="""Index yanked releases.""",
    )
    force: CliImplicitFlag[bool] = Field(
        default=False,
        description="""Force the overwrite of the output file if it already
        exists.""",
    )
    list: CliImplicitFlag[bool] = Field(
        default=False,
        description="""List available constraint resolvers.""",
    )
    log_level: str = Field(default="info", description="Log level")
    max_workers: int = Field(
        default=-1,
        description="""Maximum number of jobs to run concurrently. If not
            provided, the maximum number of logical CPUs will be used.""",
    )
    timeout: float | None = Field(
        default=None,
        description="""Stop exploring after this many seconds and output the
        partial graph (flagged as truncated).""",
    )
    output_file: Path | None = Field(
        default=None,
        description="""Output file path. If not provided, the output will be
        written to stdout.""",
    )
    output_format: OutputFormat = Field(
        default=OutputFormat.json,
        description="""Output format.""",
    )
    progress: CliImplicitFlag[bool] = Field(
        default=False,
        description="""Display progress bars.""",
    )
    version: CliImplicitFlag[bool] = Field(
        default=False,
        description="""Show the version of rdepends and exit.""",
    )

    model_config = SettingsConfigDict(
        cli_parse_args=True,
        cli_prog_name="rdepends",
        cli_kebab_case=True,
        env_prefix="RDEPENDS_",
        nested_model_default_partial_update=True,
    )
