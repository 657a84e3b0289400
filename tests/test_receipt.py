"""Tests for installation receipts."""

import json

import pytest

from cellar.modules.formula import Formula
from cellar.modules.receipt import ReceiptError, ReceiptStore


def test_missing_db_is_empty(tmp_path) -> None:
    store = ReceiptStore(str(tmp_path / "installed_db.json"))
    assert store.installed_version(Formula("curl", "8.0")) is None
    assert store.used_options_for(Formula("curl", "8.0")) == []


def test_reads_db(tmp_path) -> None:
    db = tmp_path / "installed_db.json"
    db.write_text(json.dumps({
        "curl": {"version": "8.0", "used_options": ["with-ssl"]},
        "acme/tools/zstd": {"version": "1.5"},
    }), encoding="utf-8")
    store = ReceiptStore(str(db))

    assert store.installed_version(Formula("curl", "8.0")) == "8.0"
    assert store.used_options_for(Formula("curl", "8.0")) == ["with-ssl"]
    assert store.installed_version(Formula("zstd", "1.5", tap_name="acme/tools")) == "1.5"


def test_malformed_db(tmp_path) -> None:
    db = tmp_path / "installed_db.json"
    db.write_text("{not json", encoding="utf-8")
    with pytest.raises(ReceiptError):
        ReceiptStore(str(db))

    db.write_text("[]", encoding="utf-8")
    with pytest.raises(ReceiptError):
        ReceiptStore(str(db))


def test_record_and_save(tmp_path) -> None:
    path = tmp_path / "db" / "installed_db.json"
    store = ReceiptStore(str(path))
    formula = Formula("curl", "8.0")
    store.record(formula, ["with-ssl"])
    store.save()

    reloaded = ReceiptStore(str(path))
    assert reloaded.used_options_for(formula) == ["with-ssl"]
    assert formula.latest_version_installed(reloaded)
    assert not Formula("curl", "8.1").latest_version_installed(reloaded)
