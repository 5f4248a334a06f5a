"""Configuration loader for the PDF quiz workflow."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from ..core import config as core_config
from ..core import workspace as workspace_mod
from .models import DEFAULT_CHUNK_SIZE, QuizMode

CONFIG_FILENAME = "pdf_quizzer.toml"
CONFIG_ENV = "PDF_QUIZZER_CONFIG"
ENV_PREFIX = "PDF_QUIZZER_"

_DEFAULTS: Mapping[str, Mapping[str, Any]] = {
    "processing": {"chunk_size": DEFAULT_CHUNK_SIZE},
    "ai": {
        "model": "gpt-4o-mini",
        "temperature": 0.0,
        "max_output_tokens": 8192,
        "request_timeout_seconds": 120,
    },
    "retry": {
        "max_attempts": 3,
        "extraction_base_delay": 2.0,
        "service_base_delay": 1.0,
    },
    "quiz": {"mode": QuizMode.QUIZ.value},
    "logging": {"level": "INFO"},
}


class QuizzerConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class QuizzerConfig:
    """Fully resolved settings for one run."""

    chunk_size: int
    model: str
    temperature: float
    max_output_tokens: int
    request_timeout: float
    max_attempts: int
    extraction_base_delay: float
    service_base_delay: float
    mode: QuizMode
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced values applied on top of file and environment options."""

    chunk_size: Optional[int] = None
    model: Optional[str] = None
    mode: Optional[QuizMode] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: QuizzerConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load settings with precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env
    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)

    explicit = config_path
    if explicit is None and (env_map.get(CONFIG_ENV) or "").strip():
        explicit = Path(env_map[CONFIG_ENV].strip())
    target = (explicit or layout.path_for("config") / CONFIG_FILENAME)
    target = target.expanduser()

    table: MutableMapping[str, Any] = copy.deepcopy(dict(_DEFAULTS))
    loaded_path: Optional[Path] = None
    if target.exists():
        try:
            core_config.merge_defaults(table, core_config.load_toml(target))
        except core_config.TomlConfigError as exc:
            raise QuizzerConfigError(str(exc)) from exc
        loaded_path = target
    elif explicit is not None:
        raise QuizzerConfigError(f"Config file not found: {target}")

    chunk_size = _pick(
        overrides.chunk_size,
        _env_int(env_map, "CHUNK_SIZE"),
        table["processing"]["chunk_size"],
    )
    model = _pick(
        overrides.model, _env(env_map, "MODEL"), table["ai"]["model"]
    )
    mode = _pick(
        overrides.mode, _env(env_map, "MODE"), table["quiz"]["mode"]
    )
    log_level = _pick(
        overrides.log_level,
        _env(env_map, "LOG_LEVEL"),
        table["logging"]["level"],
    )

    config = QuizzerConfig(
        chunk_size=_positive_int(chunk_size, "processing.chunk_size"),
        model=_non_empty(model, "ai.model"),
        temperature=_number(table["ai"]["temperature"], "ai.temperature"),
        max_output_tokens=_positive_int(
            table["ai"]["max_output_tokens"], "ai.max_output_tokens"
        ),
        request_timeout=_number(
            table["ai"]["request_timeout_seconds"],
            "ai.request_timeout_seconds",
        ),
        max_attempts=_positive_int(
            table["retry"]["max_attempts"], "retry.max_attempts"
        ),
        extraction_base_delay=_number(
            table["retry"]["extraction_base_delay"],
            "retry.extraction_base_delay",
        ),
        service_base_delay=_number(
            table["retry"]["service_base_delay"], "retry.service_base_delay"
        ),
        mode=_mode(mode),
        log_level=_non_empty(log_level, "logging.level").upper(),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def read_template() -> str:
    """Return the packaged ``pdf_quizzer.toml`` template text."""

    resource = resources.files(__package__).joinpath(CONFIG_FILENAME)
    return resource.read_text(encoding="utf-8")


def write_template(path: Path, *, overwrite: bool = False) -> Path:
    try:
        return core_config.write_toml_template(
            path, template=read_template(), overwrite=overwrite
        )
    except core_config.TomlConfigError as exc:
        raise QuizzerConfigError(str(exc)) from exc


def _pick(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def _env(env_map: Mapping[str, str], key: str) -> Optional[str]:
    value = (env_map.get(f"{ENV_PREFIX}{key}") or "").strip()
    return value or None


def _env_int(env_map: Mapping[str, str], key: str) -> Optional[int]:
    raw = _env(env_map, key)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise QuizzerConfigError(
            f"{ENV_PREFIX}{key} must be an integer, got '{raw}'."
        ) from exc


def _positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise QuizzerConfigError(f"'{field}' must be a positive integer.")
    return value


def _number(value: Any, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise QuizzerConfigError(f"'{field}' must be a number.")
    if value < 0:
        raise QuizzerConfigError(f"'{field}' must not be negative.")
    return float(value)


def _non_empty(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizzerConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _mode(value: Any) -> QuizMode:
    if isinstance(value, QuizMode):
        return value
    if not isinstance(value, str):
        raise QuizzerConfigError("'quiz.mode' must be a string.")
    try:
        return QuizMode.from_value(value)
    except ValueError as exc:
        raise QuizzerConfigError(str(exc)) from exc
