import time

import pytest
from loguru import logger

from baseserver.core.audit import AuditOptions, make_audit_logger, timer_to_ms
from baseserver.core.errors import BadRequestError, ConfigurationError, serialize_error
from baseserver.domain.models import RequestRecord, ResponseBody, ResponseRecord, TimerSample
from tests.conftest import audit_records


def _request(**kwargs) -> RequestRecord:
    return RequestRecord(method="GET", url="/things?x=1", **kwargs)


def test_timer_to_ms_floors_high_resolution_samples():
    assert timer_to_ms(1, 500_000_000) == 1500
    assert timer_to_ms(0, 1_999_999) == 1
    assert timer_to_ms(2, 0) == 2000
    assert timer_to_ms(0, 999_999) == 0


def test_timer_sample_from_ns_splits_seconds():
    assert TimerSample.from_ns("handler", 2_345_000_000).time == (2, 345_000_000)
    assert TimerSample.from_ns("handler", -5).time == (0, 0)


def test_request_serializer_converts_every_timer():
    audit = make_audit_logger(AuditOptions(log=logger))
    req = _request(timers=[
        TimerSample("body_parser", (1, 500_000_000)),
        TimerSample("handler", (0, 1_999_999)),
        TimerSample("query_parser", (0, 250_000_000)),
    ])
    assert audit.serialize_request(req) == {
        "method": "GET",
        "url": "/things?x=1",
        "timers": {"body_parser": 1500, "handler": 1, "query_parser": 250},
    }


def test_request_without_timers_has_empty_mapping():
    audit = make_audit_logger(AuditOptions(log=logger))
    serialized = audit.serialize_request(_request())
    assert serialized["timers"] == {}


def test_absent_request_and_response_serialize_to_false():
    audit = make_audit_logger(AuditOptions(log=logger))
    assert audit.serialize_request(None) is False
    assert audit.serialize_response(None) is False


def test_body_omitted_when_capture_disabled():
    audit = make_audit_logger(AuditOptions(log=logger, body=False))
    res = ResponseRecord(status_code=200, body=ResponseBody.plain({"secret": "value"}))
    assert audit.serialize_response(res) == {"statusCode": 200}


def test_plain_body_kept_when_capture_enabled():
    audit = make_audit_logger(AuditOptions(log=logger, body=True))
    res = ResponseRecord(status_code=200, body=ResponseBody.plain({"a": 1}))
    assert audit.serialize_response(res) == {"statusCode": 200, "body": {"a": 1}}


def test_error_wrapper_body_logs_inner_payload():
    audit = make_audit_logger(AuditOptions(log=logger, body=True))
    wrapper = BadRequestError("nope", code="X")
    res = ResponseRecord(status_code=400, body=ResponseBody.error(wrapper, {"code": "X"}))
    assert audit.serialize_response(res) == {"statusCode": 400, "body": {"code": "X"}}


def test_latency_uses_numeric_response_time_verbatim():
    audit = make_audit_logger(AuditOptions(log=logger))
    req = _request(start_time_ms=0.0)
    assert audit.latency(req, ResponseRecord(200, headers={"response-time": "42"})) == 42
    assert audit.latency(req, ResponseRecord(200, headers={"response-time": "12.5"})) == 12.5


def test_latency_falls_back_to_wall_clock():
    audit = make_audit_logger(AuditOptions(log=logger))
    req = _request(start_time_ms=time.time() * 1000 - 100)
    latency = audit.latency(req, ResponseRecord(200, headers={"response-time": "fast"}))
    assert 100 <= latency < 1100


@pytest.mark.parametrize("value", ["nan", "inf", "-Infinity"])
def test_latency_ignores_non_finite_response_time(value):
    audit = make_audit_logger(AuditOptions(log=logger))
    req = _request(start_time_ms=time.time() * 1000 - 100)
    latency = audit.latency(req, ResponseRecord(200, headers={"response-time": value}))
    assert 100 <= latency < 1100


def test_audit_emits_one_info_entry(log_records):
    audit = make_audit_logger(AuditOptions(log=logger))
    req = _request(timers=[TimerSample("handler", (0, 3_000_000))])
    res = ResponseRecord(status_code=201, headers={"response-time": "7"})

    assert audit(req, res, "/things", None) is True

    entries = audit_records(log_records)
    assert len(entries) == 1
    entry = entries[0]
    assert entry["level"].name == "INFO"
    assert entry["message"] == "handled: 201"
    assert entry["extra"]["req"] == {"method": "GET", "url": "/things?x=1", "timers": {"handler": 3}}
    assert entry["extra"]["res"] == {"statusCode": 201}
    assert entry["extra"]["latency"] == 7
    assert "err" not in entry["extra"]


def test_audit_serializes_error_with_default_serializer(log_records):
    audit = make_audit_logger(AuditOptions(log=logger))
    try:
        raise RuntimeError("kaput")
    except RuntimeError as exc:
        err = exc

    audit(_request(), ResponseRecord(status_code=500), "/things", err)

    serialized = audit_records(log_records)[0]["extra"]["err"]
    assert serialized["name"] == "RuntimeError"
    assert serialized["message"] == "kaput"
    assert "RuntimeError: kaput" in serialized["stack"]


def test_audit_prefers_configured_error_serializer(log_records):
    audit = make_audit_logger(AuditOptions(log=logger, err_serializer=lambda e: {"kind": type(e).__name__}))
    audit(_request(), ResponseRecord(status_code=500), None, ValueError("x"))
    assert audit_records(log_records)[0]["extra"]["err"] == {"kind": "ValueError"}


def test_serialize_error_includes_extra_attributes():
    exc = BadRequestError("missing field", code="MissingField")
    exc.field = "name"
    serialized = serialize_error(exc)
    assert serialized["name"] == "BadRequestError"
    assert serialized["message"] == "missing field"
    assert serialized["code"] == "MissingField"
    assert serialized["field"] == "name"
    assert serialize_error(None) is None


def test_make_audit_logger_requires_log():
    with pytest.raises(ConfigurationError):
        make_audit_logger(AuditOptions(log=None))
