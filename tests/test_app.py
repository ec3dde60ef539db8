from __future__ import annotations

import json
import logging

import pytest

import app
import settings


@pytest.fixture
def cli(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setattr(settings, "LOGGING", {})
    monkeypatch.setattr(settings, "CLASSIFIER_ENABLED", False)
    monkeypatch.setattr(settings, "RESCUE_METHOD", "log")
    monkeypatch.setattr(settings, "PROFILE_ID", "FOCUS")
    monkeypatch.setattr(settings, "SIGNIFICANT_SENDERS", [])
    return tmp_path


def test_redacting_formatter_masks_secrets() -> None:
    formatter = app._RedactingFormatter(["sk-secret"], fmt="%(message)s")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "key=%s", ("sk-secret",), None)
    assert formatter.format(record) == "key=***"


def test_rules_set_and_list(cli, capsys) -> None:
    app.main(["rules", "set", "com.shop", "--level", "Fortress", "--tags", "finance, Security"])
    app.main(["rules", "set", "com.shop", "--keywords", "invoice"])
    capsys.readouterr()

    app.main(["rules", "list"])
    out = capsys.readouterr().out

    assert "com.shop | Fortress | tags: Finance, Security | keywords: invoice" in out


def test_rules_remove(cli, capsys) -> None:
    app.main(["rules", "set", "com.shop"])
    app.main(["rules", "remove", "com.shop"])
    capsys.readouterr()
    app.main(["rules", "list"])
    assert "No rules in profile FOCUS" in capsys.readouterr().out


def test_check_blocks_and_records(cli, capsys) -> None:
    app.main(["rules", "set", "com.shop", "--level", "Smart"])
    capsys.readouterr()

    app.main(["check", "com.shop", "Flash Sale", "Get 50% off today only"])
    verdict = json.loads(capsys.readouterr().out)

    assert verdict["allowed"] is False
    assert verdict["category"] == "Promotions"

    app.main(["blocked", "list"])
    assert "com.shop | Promotions | Flash Sale" in capsys.readouterr().out


def test_run_emits_one_verdict_per_event(cli, capsys) -> None:
    events = cli / "events.jsonl"
    events.write_text(
        '{"packageName": "com.none", "title": "Hi", "content": "there"}\n'
        "garbage\n"
        '{"packageName": "com.bank", "title": "Bank Alert", "content": "Account debited"}\n',
        encoding="utf-8",
    )

    app.main(["run", "--events", str(events)])
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]

    assert sorted(line["source"] for line in lines) == ["com.bank", "com.none"]
    assert all(line["allowed"] for line in lines)


def test_prune_removes_old_records(cli, capsys) -> None:
    app.main(["rules", "set", "com.shop"])
    app.main(["check", "com.shop", "Old promo", "50% off"])
    capsys.readouterr()

    app.main(["prune", "--days", "0"])
    assert "Removed" in capsys.readouterr().out


def test_digest_without_backend_uses_local_summary(cli, capsys) -> None:
    app.main(["rules", "set", "com.shop"])
    app.main(["check", "com.shop", "Deals", "Big sale"])
    capsys.readouterr()

    app.main(["digest"])
    out = capsys.readouterr().out

    assert "com.shop (1):" in out
    assert "Updates from Deals" in out


def test_unknown_rescue_method_exits(cli, monkeypatch) -> None:
    monkeypatch.setattr(settings, "RESCUE_METHOD", "carrier-pigeon")
    with pytest.raises(SystemExit):
        app.main(["check", "com.shop", "Hi"])


def test_new_rules_use_configured_default_level(cli, monkeypatch, capsys) -> None:
    monkeypatch.setattr(settings, "DEFAULT_SHIELD_LEVEL", "Fortress")
    app.main(["rules", "set", "com.shop"])
    assert "com.shop | Fortress |" in capsys.readouterr().out


def test_cache_capacity_is_validated_at_startup(cli, monkeypatch) -> None:
    monkeypatch.setattr(settings, "CACHE_CAPACITY", 0)
    with pytest.raises(ValueError, match="capacity"):
        app.main(["check", "com.shop", "Hi"])
