"""Tests for the implementation registry and its configuration loader."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from vc_conformance.errors import ConfigurationError
from vc_conformance.registry import ENV_CONFIG_PATH, ImplementationRegistry, load_registry

from tests.factories import make_config


def _entry(name: str, **extra: object) -> dict[str, object]:
    return {
        "issuer": {
            "id": f"did:example:{name}",
            "endpoint": f"https://{name}.example/credentials/issue",
            **extra,
        }
    }


class TestImplementationRegistry:
    def test_preserves_insertion_order(self) -> None:
        registry = ImplementationRegistry([make_config(n) for n in ("zeta", "alpha", "mid")])

        assert list(registry) == ["zeta", "alpha", "mid"]
        assert registry["alpha"].name == "alpha"
        assert len(registry) == 3

    def test_rejects_duplicate_names(self) -> None:
        with pytest.raises(ConfigurationError, match="duplicate"):
            ImplementationRegistry([make_config("a"), make_config("a")])

    def test_is_read_only(self) -> None:
        registry = ImplementationRegistry([make_config("a")])

        with pytest.raises(TypeError):
            registry["b"] = make_config("b")  # type: ignore[index]

    def test_filter_by_name(self) -> None:
        registry = ImplementationRegistry([make_config(n) for n in ("a", "b", "c")])

        assert list(registry.filter(names=["c", "a"])) == ["a", "c"]

    def test_filter_by_tag(self) -> None:
        registry = ImplementationRegistry(
            [make_config("a", tags=["vc-api"]), make_config("b"), make_config("c", tags=["vc-api"])]
        )

        assert list(registry.filter(tags=["vc-api"])) == ["a", "c"]

    def test_filter_unknown_name(self) -> None:
        registry = ImplementationRegistry([make_config("a")])

        with pytest.raises(ConfigurationError, match="nope"):
            registry.filter(names=["nope"])


class TestLoadRegistry:
    def test_from_mapping(self) -> None:
        registry = load_registry({"acme": _entry("acme"), "beta": _entry("beta", tags=["x"])})

        assert list(registry) == ["acme", "beta"]
        assert registry["acme"].id == "did:example:acme"
        assert registry["beta"].tags == ("x",)
        assert registry.invalid == ()

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "issuers.json"
        path.write_text(json.dumps({"acme": _entry("acme")}), encoding="utf-8")

        registry = load_registry(path)

        assert list(registry) == ["acme"]

    def test_from_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "issuers.json"
        path.write_text(json.dumps({"acme": _entry("acme")}), encoding="utf-8")
        monkeypatch.setenv(ENV_CONFIG_PATH, str(path))

        assert list(load_registry()) == ["acme"]

    def test_no_source(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(ENV_CONFIG_PATH, raising=False)

        with pytest.raises(ConfigurationError, match=ENV_CONFIG_PATH):
            load_registry()

    def test_unreadable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="cannot read"):
            load_registry(path)

    def test_invalid_entries_do_not_abort_loading(self) -> None:
        registry = load_registry(
            {
                "good": _entry("good"),
                "no-issuer": {"verifier": {}},
                "bad-url": {"issuer": {"id": "did:example:x", "endpoint": "not a url"}},
            }
        )

        assert list(registry) == ["good"]
        assert [e.implementation for e in registry.invalid] == ["no-issuer", "bad-url"]
        assert "endpoint" in registry.invalid[1].reason

    def test_resolves_environment_references(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ACME_TOKEN", "tok-123")

        registry = load_registry({"acme": _entry("acme", bearer_token="$ACME_TOKEN")})

        assert registry["acme"].bearer_token == "tok-123"

    def test_unset_environment_reference_is_invalid(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("MISSING_TOKEN", raising=False)

        registry = load_registry({"acme": _entry("acme", bearer_token="$MISSING_TOKEN")})

        assert len(registry) == 0
        assert registry.invalid[0].details["env"] == "MISSING_TOKEN"

    def test_filter_keeps_invalid_entries_by_name(self) -> None:
        registry = load_registry({"good": _entry("good"), "bad": {}})

        filtered = registry.filter(names=["bad"])

        assert len(filtered) == 0
        assert [e.implementation for e in filtered.invalid] == ["bad"]
