"""Configuration loading for formatguard."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from formatguard.annotations import DEFAULT_MARKER, DEFAULT_RESOLVED_REPLY

CONFIG_FILENAMES = (".formatguard.toml", "formatguard.toml")
PYPROJECT_FILENAME = "pyproject.toml"

ON_CHANGE_POLICIES = {"recreate", "update"}

T = TypeVar("T")


@dataclass(slots=True)
class FormatterConfig:
    """How to run the formatter and how to tell users to run it."""

    command: list[str] = field(
        default_factory=lambda: ["ruff", "format", "--stdin-filename", "{path}", "-"]
    )
    fix_command: list[str] = field(default_factory=lambda: ["ruff", "format", "{path}"])

    def to_dict(self) -> dict[str, Any]:
        return {"command": list(self.command), "fix_command": list(self.fix_command)}


@dataclass(slots=True)
class CommentsConfig:
    """Review comment identity and update policy."""

    marker: str = DEFAULT_MARKER
    resolved_reply: str = DEFAULT_RESOLVED_REPLY
    on_change: str = "recreate"

    def to_dict(self) -> dict[str, Any]:
        return {
            "marker": self.marker,
            "resolved_reply": self.resolved_reply,
            "on_change": self.on_change,
        }


@dataclass(slots=True)
class GitHubConfig:
    """GitHub transport controls."""

    max_retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        return {"max_retries": self.max_retries}


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration values resolved from project files."""

    format: str = "human"
    fail_on_violations: bool = True
    include: list[str] = field(default_factory=lambda: ["*.py"])
    exclude: list[str] = field(default_factory=list)
    formatter: FormatterConfig = field(default_factory=FormatterConfig)
    comments: CommentsConfig = field(default_factory=CommentsConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "fail_on_violations": self.fail_on_violations,
            "include": list(self.include),
            "exclude": list(self.exclude),
            "formatter": self.formatter.to_dict(),
            "comments": self.comments.to_dict(),
            "github": self.github.to_dict(),
            "source": self.source,
        }


def load_app_config(repo: Path, config_path: Path | None = None) -> AppConfig:
    """Resolve configuration for ``repo``.

    An explicit ``config_path`` wins. Otherwise the first of
    ``.formatguard.toml``, ``formatguard.toml`` and a ``[tool.formatguard]``
    table in ``pyproject.toml`` is used, falling back to defaults.
    """
    repo = repo.resolve()
    if config_path is not None:
        path = config_path if config_path.is_absolute() else repo / config_path
        if not path.is_file():
            raise ValueError(f"Config file does not exist: {path}")
        return _from_mapping(_read_settings(path) or {}, source=str(path))

    for name in (*CONFIG_FILENAMES, PYPROJECT_FILENAME):
        path = repo / name
        if not path.is_file():
            continue
        settings = _read_settings(path)
        if settings is not None:
            return _from_mapping(settings, source=str(path))
    return AppConfig()


def default_config_template() -> str:
    """Return a starter config template."""
    return "\n".join(
        [
            'format = "human"',
            "fail_on_violations = true",
            'include = ["*.py"]',
            'exclude = ["build/**"]',
            "",
            "[formatter]",
            "# Reads the file on stdin and writes the formatted file to stdout.",
            'command = ["ruff", "format", "--stdin-filename", "{path}", "-"]',
            "# Shown in review comments as the remediation command.",
            'fix_command = ["ruff", "format", "{path}"]',
            "",
            "[comments]",
            'marker = "<!-- formatguard -->"',
            'resolved_reply = "✓ Formatting has been fixed."',
            "# recreate: delete stale suggestions and post new ones",
            "# update: edit a stale suggestion in place when it sits on the same line",
            'on_change = "recreate"',
            "",
            "[github]",
            "max_retries = 3",
            "",
        ]
    )


def _read_settings(path: Path) -> dict[str, Any] | None:
    """Return formatguard settings from ``path``, or None if a pyproject has none."""
    try:
        document = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc
    if path.name != PYPROJECT_FILENAME:
        return document
    tool = document.get("tool")
    section = tool.get("formatguard") if isinstance(tool, dict) else None
    return section if isinstance(section, dict) else None


def _from_mapping(mapping: dict[str, Any], *, source: str) -> AppConfig:
    defaults = AppConfig()
    output_format = _read(mapping, "format", defaults.format).lower()
    if output_format not in {"human", "json"}:
        output_format = "human"
    return AppConfig(
        format=output_format,
        fail_on_violations=_read(mapping, "fail_on_violations", defaults.fail_on_violations),
        include=_read(mapping, "include", defaults.include),
        exclude=_read(mapping, "exclude", defaults.exclude),
        formatter=_formatter_from(_section(mapping, "formatter")),
        comments=_comments_from(_section(mapping, "comments")),
        github=_github_from(_section(mapping, "github")),
        source=source,
    )


def _formatter_from(table: dict[str, Any]) -> FormatterConfig:
    defaults = FormatterConfig()
    command = _read(table, "command", defaults.command, prefix="formatter.")
    if not command:
        raise ValueError("formatter.command cannot be empty")
    fix_command = _read(table, "fix_command", defaults.fix_command, prefix="formatter.")
    if not fix_command:
        raise ValueError("formatter.fix_command cannot be empty")
    return FormatterConfig(command=command, fix_command=fix_command)


def _comments_from(table: dict[str, Any]) -> CommentsConfig:
    marker = _read(table, "marker", DEFAULT_MARKER, prefix="comments.")
    if not marker.strip():
        raise ValueError("comments.marker cannot be empty")
    on_change = _read(table, "on_change", "recreate", prefix="comments.").lower()
    if on_change not in ON_CHANGE_POLICIES:
        policies = ", ".join(sorted(ON_CHANGE_POLICIES))
        raise ValueError(f"comments.on_change must be one of: {policies}")
    return CommentsConfig(
        marker=marker,
        resolved_reply=_read(table, "resolved_reply", DEFAULT_RESOLVED_REPLY, prefix="comments."),
        on_change=on_change,
    )


def _github_from(table: dict[str, Any]) -> GitHubConfig:
    max_retries = _read(table, "max_retries", 3, prefix="github.")
    if max_retries <= 0:
        raise ValueError("github.max_retries must be > 0")
    return GitHubConfig(max_retries=max_retries)


def _section(mapping: dict[str, Any], name: str) -> dict[str, Any]:
    value = mapping.get(name, {})
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a table")
    return value


def _read(table: dict[str, Any], key: str, default: T, *, prefix: str = "") -> T:
    """Read ``key`` from ``table``, requiring the type of ``default``."""
    name = prefix + key
    value = table.get(key, default)
    if isinstance(default, list):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ValueError(f"{name} must be a list of strings")
        return list(value)
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be a boolean")
    elif isinstance(default, int):
        # bool is an int subclass.
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer")
    elif not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    return value
