from __future__ import annotations

import importlib
from collections.abc import MutableMapping
from typing import TypeVar

T = TypeVar("T")


def register_named(registry: MutableMapping[str, T], name: str):
    """Class decorator: store the backend under `name` in `registry`."""

    def decorator(obj: T) -> T:
        if name in registry and registry[name] is not obj:
            raise ValueError(f"duplicate registration for {name!r}")
        registry[name] = obj
        return obj

    return decorator


def resolve_registered(
    registry: MutableMapping[str, T],
    name: str,
    *,
    package: str,
    unknown_label: str,
) -> T:
    """Look up a backend, importing `<package>.<name>` on first use."""
    key = str(name or "").strip().lower()
    import_err: Exception | None = None
    if key and key not in registry:
        try:
            importlib.import_module(f"{package}.{key}")
        except ImportError as e:
            import_err = e
    if key not in registry:
        hint = f" (import failed: {import_err})" if import_err else ""
        known = ", ".join(sorted(registry)) or "none"
        raise ValueError(f"Unknown {unknown_label} '{name}'. Available: {known}{hint}")
    return registry[key]


__all__ = ["register_named", "resolve_registered"]
