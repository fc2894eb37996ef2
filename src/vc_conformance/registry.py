"""Implementation registry - ordered, read-only map of issuers under test.

Configuration files map implementation names to their issuer settings::

    {
        "acme": {
            "issuer": {
                "id": "did:key:z6Mk...",
                "endpoint": "https://issuer.acme.example/credentials/issue",
                "bearer_token": "$ACME_TOKEN",
                "tags": ["vc-api"]
            }
        }
    }

String values of the form ``$NAME`` are resolved from the environment when
the registry is loaded. An entry that fails validation does not abort loading;
it is kept in :attr:`ImplementationRegistry.invalid` so its scenarios can be
reported as configuration failures.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from vc_conformance.errors import ConfigurationError
from vc_conformance.models import ImplementationConfig
from vc_conformance.observability.logging import get_logger

ENV_CONFIG_PATH = "VC_CONFORMANCE_CONFIG"
ISSUER_KEY = "issuer"

logger = get_logger(__name__)


class ImplementationRegistry(Mapping[str, ImplementationConfig]):
    """Immutable, insertion-ordered mapping of implementation name to config."""

    def __init__(
        self,
        implementations: Sequence[ImplementationConfig] = (),
        invalid: Sequence[ConfigurationError] = (),
    ) -> None:
        entries: dict[str, ImplementationConfig] = {}
        for config in implementations:
            if config.name in entries:
                raise ConfigurationError(config.name, "duplicate implementation name")
            entries[config.name] = config
        self._entries = MappingProxyType(entries)
        self._invalid = tuple(invalid)

    def __getitem__(self, name: str) -> ImplementationConfig:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ImplementationRegistry({list(self._entries)!r}, invalid={len(self._invalid)})"

    @property
    def invalid(self) -> tuple[ConfigurationError, ...]:
        """Entries that could not be turned into an ImplementationConfig."""
        return self._invalid

    def filter(
        self,
        names: Sequence[str] | None = None,
        tags: Sequence[str] | None = None,
    ) -> "ImplementationRegistry":
        """Return a registry restricted to ``names`` and/or entries carrying any of ``tags``."""
        unknown = [n for n in names or () if n not in self._entries and not self._is_invalid(n)]
        if unknown:
            raise ConfigurationError(", ".join(unknown), "no such implementation")

        def _keep(name: str, config_tags: Sequence[str] = ()) -> bool:
            if names and name not in names:
                return False
            if tags and not set(tags) & set(config_tags):
                return False
            return True

        return ImplementationRegistry(
            [c for c in self._entries.values() if _keep(c.name, c.tags)],
            [e for e in self._invalid if _keep(e.implementation) and not tags],
        )

    def _is_invalid(self, name: str) -> bool:
        return any(e.implementation == name for e in self._invalid)


def _resolve_env(name: str, value: Any) -> Any:
    if isinstance(value, str) and value.startswith("$") and len(value) > 1:
        env_name = value[1:]
        resolved = os.environ.get(env_name)
        if resolved is None:
            raise ConfigurationError(
                name, f"environment variable {env_name} is not set", details={"env": env_name}
            )
        return resolved
    if isinstance(value, dict):
        return {k: _resolve_env(name, v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env(name, v) for v in value]
    return value


def _parse_entry(name: str, entry: Any) -> ImplementationConfig:
    if not isinstance(entry, dict) or not isinstance(entry.get(ISSUER_KEY), dict):
        raise ConfigurationError(name, f"missing '{ISSUER_KEY}' settings")
    settings = _resolve_env(name, entry[ISSUER_KEY])
    try:
        return ImplementationConfig.model_validate({**settings, "name": name})
    except ValidationError as e:
        raise ConfigurationError(
            name,
            "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()),
        ) from e


def load_registry(source: Mapping[str, Any] | str | Path | None = None) -> ImplementationRegistry:
    """Build a registry from a mapping, a JSON file path, or the environment.

    Args:
        source: Parsed configuration mapping, or path to a JSON file. When
            omitted, the path in VC_CONFORMANCE_CONFIG is used.

    Raises:
        ConfigurationError: If no source is available or the file itself is
            unreadable. Problems with individual entries never raise.
    """
    if source is None:
        env_path = os.environ.get(ENV_CONFIG_PATH)
        if not env_path:
            raise ConfigurationError(
                "*", f"no configuration given and {ENV_CONFIG_PATH} is not set"
            )
        source = env_path

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError("*", f"cannot read {path}: {e}") from e
    else:
        raw = source

    if not isinstance(raw, Mapping):
        raise ConfigurationError("*", "configuration root must be an object")

    implementations: list[ImplementationConfig] = []
    invalid: list[ConfigurationError] = []
    for name, entry in raw.items():
        try:
            implementations.append(_parse_entry(name, entry))
        except ConfigurationError as e:
            logger.warning("registry.invalid_entry", implementation=name, reason=e.reason)
            invalid.append(e)

    logger.info(
        "registry.loaded", implementations=len(implementations), invalid=len(invalid)
    )
    return ImplementationRegistry(implementations, invalid)


__all__ = ["ENV_CONFIG_PATH", "ImplementationRegistry", "load_registry"]
