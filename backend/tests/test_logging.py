import json
import logging

from app.logging_config import StructuredJsonFormatter, mask_value


def format_record(**attrs):
    record = logging.makeLogRecord({"msg": "Created student", "levelname": "INFO", **attrs})
    return json.loads(StructuredJsonFormatter().format(record))


def test_mask_value():
    assert mask_value("200310600123") == "*********123"
    assert mask_value("kasun.perera@example.lk") == "k***@example.lk"
    assert mask_value("07") == "**"
    assert mask_value(None) is None


def test_formatter_masks_personal_fields():
    entry = format_record(
        channel="students",
        context={"student_id": "STU000001", "nic": "200310600123"},
        extra_data={"phone": "0771234567", "query_params": {"search": "kasun@example.lk", "page": "1"}},
    )

    assert entry["context"]["student_id"] == "STU000001"
    assert entry["context"]["nic"] == "*********123"
    assert entry["extra"]["phone"] == "*******567"
    assert entry["extra"]["query_params"] == {"search": "k***@example.lk", "page": "1"}


def test_request_log_does_not_leak_search_terms(client, caplog):
    caplog.set_level(logging.INFO)

    client.get("/api/students", params={"search": "200310600123"})

    started = [r for r in caplog.records if r.getMessage().startswith("Request started")]
    assert started
    line = StructuredJsonFormatter().format(started[-1])
    assert "200310600123" not in line
    assert json.loads(line)["channel"] == "http"
