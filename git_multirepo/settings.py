"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .exceptions import ValidationError

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Application configuration."""

    git_executable: str = "git"
    timeout: float | None = None
    max_depth: int | None = None
    pin_locale: bool = True


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        git_executable=env.get("GMR_GIT") or Settings.git_executable,
        timeout=_optional_float(env, "GMR_TIMEOUT"),
        max_depth=_optional_int(env, "GMR_MAX_DEPTH"),
        pin_locale=_flag(env, "GMR_PIN_LOCALE", Settings.pin_locale),
    )


def _optional_float(env, var: str) -> float | None:
    raw = (env.get(var) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValidationError(f"{var} must be a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise ValidationError(f"{var} must be positive, got {raw!r}")
    return value


def _optional_int(env, var: str) -> int | None:
    raw = (env.get(var) or "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(f"{var} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ValidationError(f"{var} cannot be negative, got {raw!r}")
    return value


def _flag(env, var: str, default: bool) -> bool:
    raw = (env.get(var) or "").strip().lower()
    if not raw:
        return default
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValidationError(f"{var} must be one of 1/0, true/false, yes/no, on/off; got {raw!r}")
