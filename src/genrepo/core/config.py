# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Layered configuration for genrepo.

Values come from three layers, highest priority first:

1. Environment variables. ``genrepo.data.bulk.batch_size`` is read from
   ``GENREPO_DATA_BULK_BATCH_SIZE``; keys outside the ``genrepo.`` namespace
   keep their full path (``app.x`` -> ``GENREPO_APP_X``).
2. The mapping passed in, or a YAML / TOML file plus its profile overlays.
3. The packaged ``genrepo-defaults.yaml``.

String values may reference other keys or environment variables with
``${name}`` / ``${name:fallback}``.
"""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar, get_type_hints

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

T = TypeVar("T")

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")
_MAX_PLACEHOLDER_DEPTH = 10

_PREFIX_ATTR = "__genrepo_config_prefix__"
_ENV_PREFIX = "GENREPO_"
_DEFAULTS_RESOURCE = "genrepo-defaults.yaml"
_DEFAULTS_SOURCE = f"{_DEFAULTS_RESOURCE} (library defaults)"

_MISSING = object()


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Bind a dataclass or Pydantic model to the configuration section *prefix*.

    Usage::

        @config_properties(prefix="genrepo.data.bulk")
        @dataclass
        class BulkProperties:
            batch_size: int = 1000
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _PREFIX_ATTR, prefix)
        return cls

    return decorator


def _env_key(key: str) -> str:
    return _ENV_PREFIX + key.removeprefix("genrepo.").upper().replace(".", "_").replace("-", "_")


def _lookup(data: Mapping[str, Any], key: str) -> Any:
    """Walk a dotted *key* through nested mappings; ``_MISSING`` when absent."""
    current: Any = data
    for part in key.split("."):
        if not isinstance(current, Mapping) or current.get(part) is None:
            return _MISSING
        current = current[part]
    return current


def _merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, Mapping):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_file(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        with open(path, "rb") as f:
            return tomllib.load(f)
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _read_defaults() -> dict[str, Any]:
    resource = importlib.resources.files("genrepo.resources").joinpath(_DEFAULTS_RESOURCE)
    return yaml.safe_load(resource.read_text()) or {}


def _coerce(value: Any, expected: Any) -> Any:
    """Convert env-var strings to the field's scalar type."""
    if not isinstance(value, str):
        return value
    if expected is bool:
        return value.strip().lower() in ("true", "1", "yes", "on")
    if expected in (int, float):
        return expected(value)
    return value


class Config:
    """Hierarchical configuration with dot-notation access.

    Usage::

        config = Config.from_file("genrepo.yaml", active_profiles=["prod"])
        batch_size = config.get("genrepo.data.bulk.batch_size", 1000)
        bulk = config.bind(BulkProperties)
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._loaded_sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """Files merged into this configuration, lowest priority first."""
        return list(self._loaded_sources)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    @classmethod
    def defaults(cls) -> Config:
        """Configuration holding only the packaged defaults."""
        return cls._with_sources(_read_defaults(), [_DEFAULTS_SOURCE])

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        active_profiles: list[str] | None = None,
        load_defaults: bool = True,
    ) -> Config:
        """Load *path* (``.yaml``/``.yml`` or ``.toml``) over the packaged defaults.

        Each active profile merges ``<stem>-<profile><suffix>`` from the same
        directory on top, in the order given. A missing *path* leaves only
        the defaults.
        """
        path = Path(path)
        data: dict[str, Any] = _read_defaults() if load_defaults else {}
        sources = [_DEFAULTS_SOURCE] if load_defaults else []

        if path.exists():
            overlays = [(path, str(path))]
            for profile in active_profiles or []:
                overlay = path.with_name(f"{path.stem}-{profile}{path.suffix}")
                overlays.append((overlay, f"{overlay} (profile: {profile})"))
            for overlay, label in overlays:
                if overlay.exists():
                    data = _merge(data, _read_file(overlay))
                    sources.append(label)

        return cls._with_sources(data, sources)

    @classmethod
    def _with_sources(cls, data: dict[str, Any], sources: list[str]) -> Config:
        instance = cls(data)
        instance._loaded_sources = sources
        return instance

    def get(self, key: str, default: Any = None) -> Any:
        """Value at dotted *key*; the matching environment variable wins."""
        env_value = os.environ.get(_env_key(key))
        if env_value is not None:
            return env_value
        value = _lookup(self._data, key)
        if value is _MISSING:
            return default
        if isinstance(value, str) and "${" in value:
            return self._resolve(value)
        return value

    def _resolve(self, value: str, depth: int = 0) -> str:
        if depth > _MAX_PLACEHOLDER_DEPTH:
            raise ValueError(f"Placeholder nesting too deep in '{value}'; check for circular references")

        def substitute(match: re.Match[str]) -> str:
            name, _, fallback = match.group(1).partition(":")
            env_value = os.environ.get(name)
            if env_value is not None:
                return env_value
            found = _lookup(self._data, name)
            if found is not _MISSING:
                text = str(found)
                return self._resolve(text, depth + 1) if "${" in text else text
            if match.group(1) != name:
                return fallback
            raise ValueError(f"Cannot resolve placeholder '${{{name}}}': not found in environment or config")

        return _PLACEHOLDER_RE.sub(substitute, value)

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Mapping stored under *prefix*, or ``{}``."""
        section = _lookup(self._data, prefix)
        return dict(section) if isinstance(section, Mapping) else {}

    def bind(self, config_cls: type[T]) -> T:
        """Instantiate a ``@config_properties`` class from its section.

        Every field may be overridden by its environment variable
        (``GENREPO_DATA_BULK_BATCH_SIZE`` for ``batch_size`` under
        ``genrepo.data.bulk``).

        Raises:
            ValueError: *config_cls* is not decorated, or a Pydantic model
                rejects the bound values.
        """
        prefix = getattr(config_cls, _PREFIX_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")

        if issubclass(config_cls, BaseModel):
            return _validate_model(config_cls, self._field_values(prefix, config_cls.model_fields), prefix)

        hints = get_type_hints(config_cls)
        names = [field.name for field in dataclasses.fields(config_cls)]  # type: ignore[arg-type]
        values = {name: _coerce(value, hints.get(name)) for name, value in self._field_values(prefix, names).items()}
        return config_cls(**values)

    def _field_values(self, prefix: str, names: Any) -> dict[str, Any]:
        values = {}
        for name in names:
            value = self.get(f"{prefix}.{name}")
            if value is not None:
                values[name] = value
        return values


def _validate_model(model_cls: type[T], values: dict[str, Any], prefix: str) -> T:
    """Validate *values* into a Pydantic model, reporting the section on failure."""
    try:
        return model_cls.model_validate(values)  # type: ignore[attr-defined, no-any-return]
    except ValidationError as exc:
        raise ValueError(f"Configuration validation failed for '{model_cls.__name__}' (prefix='{prefix}'):\n{exc}") from exc
