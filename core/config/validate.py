"""Runtime config value validation."""

from __future__ import annotations

from typing import Any

from core.contracts import PixelFormat

from .schema import ConfigError, LoadedConfig

_CAPTURE_MODES = ("single", "continuous")
_LOG_LEVELS = ("debug", "info", "warning", "warn", "error", "critical")


def validate_config(cfg: LoadedConfig) -> None:
    # runtime
    _require_float("runtime.max_runtime_s", cfg.runtime.max_runtime_s, min_v=0.0)
    _require_choice("runtime.log_level", cfg.runtime.log_level, _LOG_LEVELS)
    _require_str("runtime.save_dir", cfg.runtime.save_dir, allow_empty=False)

    # source
    _require_str("source.type", cfg.source.type, allow_empty=False)
    _require_int("source.width", cfg.source.width, min_v=1)
    _require_int("source.height", cfg.source.height, min_v=1)
    _require_int("source.depth_width", cfg.source.depth_width, min_v=1)
    _require_int("source.depth_height", cfg.source.depth_height, min_v=1)
    padding = _require_int(
        "source.row_padding_bytes", cfg.source.row_padding_bytes, min_v=0
    )
    if padding % 4:
        raise ConfigError("source.row_padding_bytes must be a multiple of 4")
    # Unknown pixel formats pass; captures then save color only.
    _require_str("source.pixel_format", cfg.source.pixel_format, allow_empty=False)

    # capture
    _require_choice("capture.mode", cfg.capture.mode, _CAPTURE_MODES)
    _require_float("capture.interval_ms", cfg.capture.interval_ms, min_v=1.0)

    # storage
    _require_str("storage.type", cfg.storage.type, allow_empty=False)
    _require_str("storage.root_dir", cfg.storage.root_dir or "", allow_empty=True)


def known_pixel_formats() -> list[str]:
    return [f.value for f in PixelFormat]


def _require_int(
    name: str, value: Any, *, min_v: int | None = None, max_v: int | None = None
) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer")
    try:
        iv = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer") from e
    if min_v is not None and iv < min_v:
        op = ">=" if min_v != 1 else ">"
        threshold = min_v if min_v != 1 else 0
        raise ConfigError(f"{name} must be {op} {threshold}")
    if max_v is not None and iv > max_v:
        raise ConfigError(f"{name} must be <= {max_v}")
    return iv


def _require_float(
    name: str, value: Any, *, min_v: float | None = None, max_v: float | None = None
) -> float:
    try:
        fv = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number") from e
    if min_v is not None and fv < min_v:
        raise ConfigError(f"{name} must be >= {min_v:g}")
    if max_v is not None and fv > max_v:
        raise ConfigError(f"{name} must be <= {max_v:g}")
    return fv


def _require_str(name: str, value: Any, *, allow_empty: bool) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string")
    if not allow_empty and not value.strip():
        raise ConfigError(f"{name} must not be empty")
    return value


def _require_choice(name: str, value: Any, choices: tuple[str, ...]) -> str:
    text = str(value or "").strip().lower()
    if text not in choices:
        raise ConfigError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return text


__all__ = ["validate_config", "known_pixel_formats"]
