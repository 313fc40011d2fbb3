from __future__ import annotations

from pydevsync._api.queries import PROJECT_QUERY
from pydevsync._redact import redact_for_log
from pydevsync.models.project import UserSettings


def test_redact_for_log_redacts_contact_fields() -> None:
    payload = {
        "data": {
            "userSettings": {"id": "user-settings", "sendTo": "dev@example.com"},
            "user": {"username": "dev"},
            "headers": {"Authorization": "Bearer abc"},
        }
    }

    redacted = redact_for_log(payload)
    assert redacted["data"]["userSettings"]["sendTo"] == "<redacted>"
    assert redacted["data"]["userSettings"]["id"] == "user-settings"
    assert redacted["data"]["user"]["username"] == "<redacted>"
    assert redacted["data"]["headers"]["Authorization"] == "<redacted>"


def test_redact_for_log_collapses_query_documents() -> None:
    redacted = redact_for_log({"query": PROJECT_QUERY, "variables": {}})
    assert redacted["query"] == "query IndexPageQuery …"
    assert redacted["variables"] == {}


def test_redact_for_log_dumps_models() -> None:
    redacted = redact_for_log(UserSettings(id="s", send_to="dev@example.com"))
    assert redacted == {"id": "s", "send_to": "<redacted>"}


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": [long_value]}, max_string=10)
    assert redacted["value"][0].startswith("x" * 10)
    assert "<truncated>" in redacted["value"][0]
