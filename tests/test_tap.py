"""Tests for the tap registry."""

import pytest
import yaml
from git import GitCommandError

from cellar.modules import tap as tap_module
from cellar.modules.tap import Tap, TapError, TapRegistry, TapUnavailable


@pytest.mark.parametrize("name", ["acme", "acme/", "/tools", "acme/tools/extra"])
def test_invalid_tap_name(tmp_path, name) -> None:
    with pytest.raises(TapError):
        Tap(name, tmp_path)


def test_fetch_unregistered(tap_registry, tmp_path) -> None:
    tap = tap_registry.fetch("acme/tools")
    assert tap.user == "acme"
    assert tap.repo == "tools"
    assert tap.path == tmp_path / "taps" / "acme" / "tools"
    assert not tap.installed

    tap.path.mkdir(parents=True)
    assert tap.installed


def test_add_persists(tap_registry) -> None:
    tap_registry.add("acme/tools", "https://git.example.com/acme/tools.git")
    with pytest.raises(TapError):
        tap_registry.add("acme/tools", "https://git.example.com/acme/tools.git")

    reloaded = TapRegistry(taps_config=tap_registry.taps_config, taps_dir=str(tap_registry.taps_dir))
    assert reloaded.fetch("acme/tools").url == "https://git.example.com/acme/tools.git"
    assert reloaded.installed_taps() == []


def test_remove(tap_registry) -> None:
    tap = tap_registry.add("acme/tools", "https://git.example.com/acme/tools.git")
    tap.path.mkdir(parents=True)
    tap_registry.remove("acme/tools", remove_local=True)
    assert not tap.path.exists()
    with pytest.raises(TapUnavailable):
        tap_registry.remove("acme/tools")


def test_bad_config(tmp_path) -> None:
    config = tmp_path / "taps.yaml"
    config.write_text(yaml.safe_dump({"taps": [{"url": "x"}]}), encoding="utf-8")
    with pytest.raises(TapError):
        TapRegistry(taps_config=str(config), taps_dir=str(tmp_path))


def test_sync_needs_url(tap_registry) -> None:
    with pytest.raises(TapUnavailable):
        tap_registry.sync("acme/tools")


class FakeRepo:
    cloned = []

    @classmethod
    def clone_from(cls, url, path, branch=None):
        cls.cloned.append((url, str(path), branch))
        path.mkdir(parents=True)


class FailingRepo:
    @classmethod
    def clone_from(cls, url, path, branch=None):
        raise GitCommandError("clone", 128)


def test_sync_clones(tap_registry, monkeypatch) -> None:
    monkeypatch.setattr(tap_module, "Repo", FakeRepo)
    tap_registry.add("acme/tools", "https://git.example.com/acme/tools.git", branch="stable")
    tap = tap_registry.sync("acme/tools")

    assert tap.installed
    assert FakeRepo.cloned[-1] == ("https://git.example.com/acme/tools.git", str(tap.path), "stable")
    assert tap_registry.installed_taps() == [tap]


def test_sync_failure(tap_registry, monkeypatch) -> None:
    monkeypatch.setattr(tap_module, "Repo", FailingRepo)
    tap_registry.add("acme/tools", "https://git.example.com/acme/tools.git")
    with pytest.raises(TapError):
        tap_registry.sync("acme/tools")
