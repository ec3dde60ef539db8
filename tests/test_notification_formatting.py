from __future__ import annotations

from datetime import datetime, timezone

import pytest

from adapters.notification_formatting import format_source_label, format_urgent_alert

WHEN = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_format_source_label_with_alias() -> None:
    assert format_source_label("com.whatsapp", {"com.whatsapp": "WhatsApp"}) == "WhatsApp (com.whatsapp)"


def test_format_source_label_without_alias() -> None:
    assert format_source_label("com.unknown", {"com.whatsapp": "WhatsApp"}) == "com.unknown"


def test_markdown_alert_escapes_title() -> None:
    message = format_urgent_alert("com.bank", "*card* blocked", {}, mode="markdown", when=WHEN)
    assert "\\*card\\* blocked" in message
    assert message.startswith("[")


def test_html_alert_escapes_title() -> None:
    message = format_urgent_alert("com.bank", "a < b", {"com.bank": "Bank"}, mode="html", when=WHEN)
    assert "<b>Source:</b> Bank (com.bank)" in message
    assert "a &lt; b" in message


def test_plain_alert() -> None:
    assert (
        format_urgent_alert("com.bank", "Card blocked", {}, mode="plain")
        == "Rescued notification: Card blocked from com.bank"
    )


def test_unknown_mode() -> None:
    with pytest.raises(ValueError):
        format_urgent_alert("com.bank", "x", {}, mode="rtf")
