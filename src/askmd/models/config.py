"""Configuration models for askmd runs and their on-disk store."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from askmd.errors import ConfigError

_DEFAULT_EXTENSIONS = [
    "go", "rs", "py", "js", "ts", "jsx", "tsx", "java", "cpp", "c", "h", "hpp",
    "cs", "rb", "php", "swift", "kt", "scala", "sh", "bash", "zsh", "fish", "ps1",
    "md", "txt", "json", "yaml", "yml", "toml", "xml", "html", "css", "scss",
    "sass", "sql", "proto",
]

_DEFAULT_INCLUDE_PATTERNS = [
    "Makefile", "Dockerfile", ".gitignore", ".env.example", "README", "LICENSE",
]

_DEFAULT_EXCLUDE_PATTERNS = [
    "*_test.go", "*.pb.go", "*_generated.go", "*.min.js", "*.min.css", "*.map",
]

_DEFAULT_EXCLUDE_DIRS = [
    "vendor", "node_modules", ".git", "dist", "build", "target", "bin", "obj",
    ".idea", ".vscode", "__pycache__", ".pytest_cache", ".next", ".nuxt", ".output",
]

# Short model names accepted in config. Anything else is passed to litellm as-is.
MODEL_ALIASES: dict[str, str] = {
    "opus": "anthropic/claude-opus-4-1",
    "sonnet": "anthropic/claude-sonnet-4-5",
    "haiku": "anthropic/claude-haiku-4-5",
}


class ExpansionPolicy(BaseModel):
    """How directory references are walked and which files they pick up."""

    model_config = ConfigDict(frozen=True)

    max_depth: int = Field(
        default=3,
        ge=1,
        le=64,
        description="Directory levels below the expansion root that are visited.",
    )

    recursive_default: bool = False
    """Recurse into subdirectories for ``[[dir/]]`` even without the ``**`` marker."""

    include_extensions: list[str] = Field(default_factory=lambda: list(_DEFAULT_EXTENSIONS))
    include_patterns: list[str] = Field(
        default_factory=lambda: list(_DEFAULT_INCLUDE_PATTERNS),
        description="Glob patterns matched against the file name (covers extensionless files).",
    )
    exclude_dir_names: list[str] = Field(default_factory=lambda: list(_DEFAULT_EXCLUDE_DIRS))
    exclude_glob_patterns: list[str] = Field(
        default_factory=lambda: list(_DEFAULT_EXCLUDE_PATTERNS),
        description="Glob patterns matched against both the relative path and the file name.",
    )

    @field_validator("include_extensions")
    @classmethod
    def _strip_leading_dots(cls, value: list[str]) -> list[str]:
        return [ext.lstrip(".") for ext in value if ext.lstrip(".")]


class HeaderPair(BaseModel):
    """Start and end markers delimiting a removable header block."""

    model_config = ConfigDict(frozen=True)

    start: str = Field(min_length=1)
    end: str = Field(min_length=1)


class FilterPolicy(BaseModel):
    """Text filtering applied to file content before it is inlined."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    strip_headers: bool = True
    """Remove leading license/doc blocks delimited by ``header_remove_pairs``."""
    strip_all_comments: bool = False
    """Drop every comment line and block comment."""

    header_remove_pairs: list[HeaderPair] = Field(
        default_factory=lambda: [
            HeaderPair(start="/*", end="*/"),
            HeaderPair(start="<!--", end="-->"),
        ]
    )
    header_preserve_prefixes: list[str] = Field(
        default_factory=lambda: [
            "#!",
            "//go:build",
            "// +build",
            "// Code generated",
            "<?xml",
            "<!DOCTYPE",
        ],
        description="Content starting with any of these prefixes is never header-stripped.",
    )


class ThinkingConfig(BaseModel):
    """Extended thinking settings."""

    enabled: bool = False
    budget: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Fraction of max_tokens reserved for thinking when enabled.",
    )


class AskConfig(BaseModel):
    """
    Top-level configuration for an askmd run.

    Example::

        config = AskConfig(
            model="sonnet",
            expand=ExpansionPolicy(max_depth=5, recursive_default=True),
            filter=FilterPolicy(strip_all_comments=True),
        )
    """

    version: int = 1
    model: str = "opus"
    temperature: float = Field(default=1.0, ge=0.0, le=1.0)
    max_tokens: int = Field(default=32_000, ge=1)
    timeout: float = Field(default=300.0, gt=0, description="Request timeout in seconds.")
    context: Literal["standard", "1m"] = "standard"
    thinking: ThinkingConfig = Field(default_factory=ThinkingConfig)
    expand: ExpansionPolicy = Field(default_factory=ExpansionPolicy)
    filter: FilterPolicy = Field(default_factory=FilterPolicy)

    def resolve_model(self) -> str:
        """Return the full litellm model string, resolving short aliases."""
        if any(sep in self.model for sep in ("/", ".", ":")):
            return self.model
        return MODEL_ALIASES.get(self.model.lower(), self.model)

    def thinking_tokens(self) -> int:
        """Return the thinking token budget, or 0 when thinking is disabled."""
        if not self.thinking.enabled:
            return 0
        return int(self.max_tokens * self.thinking.budget)

    def uses_1m_context(self) -> bool:
        return self.context == "1m"


def default_config_path() -> Path:
    """Return ``$ASKMD_CONFIG`` or ``~/.askmd/config.json``."""
    override = os.environ.get("ASKMD_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path("~/.askmd/config.json").expanduser()


class ConfigStore:
    """
    JSON-backed persistence for :class:`AskConfig`.

    The file is created with defaults on first load. Writes go through a
    temporary file and ``os.replace`` so a crash never leaves half a config.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path).expanduser() if path is not None else default_config_path()
        self._logger = structlog.get_logger("askmd.config")

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> AskConfig:
        """
        Read the config file, creating it with defaults when missing.

        Raises:
            ConfigError: If the file exists but is not a valid config.
        """
        if not self._path.exists():
            config = AskConfig()
            try:
                self.save(config)
            except OSError as exc:
                self._logger.warning("config_default_write_failed", path=str(self._path), error=str(exc))
            return config

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"failed to read config '{self._path}': {exc}") from exc
        try:
            return AskConfig.model_validate_json(raw)
        except ValidationError as exc:
            raise ConfigError(f"invalid config '{self._path}': {exc}") from exc

    def save(self, config: AskConfig) -> None:
        """Atomically write ``config`` to disk."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(config.model_dump_json(indent=2) + "\n", encoding="utf-8")
        os.replace(tmp, self._path)
        self._logger.debug("config_saved", path=str(self._path))

    def set_value(self, key: str, raw: str) -> AskConfig:
        """
        Update one dotted config key (e.g. ``thinking.enabled``) and save.

        The raw string is validated by pydantic against the field's type, so
        ``"true"``, ``"0.5"`` and ``"1m"`` all coerce as expected.

        Raises:
            ConfigError: If the key is unknown or the value fails validation.
        """
        config = self.load()
        data: dict[str, Any] = config.model_dump()
        parts = key.split(".")
        target = data
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                raise ConfigError(f"unknown config key '{key}'")
            target = target[part]
        leaf = parts[-1]
        if leaf not in target or isinstance(target[leaf], dict):
            raise ConfigError(f"unknown config key '{key}'")
        if isinstance(target[leaf], list):
            target[leaf] = [item.strip() for item in raw.split(",") if item.strip()]
        else:
            target[leaf] = raw

        try:
            updated = AskConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"invalid value for '{key}': {exc}") from exc
        self.save(updated)
        return updated
