"""Tests for buffer_controller/errors.py"""

import json

from kubernetes.client.rest import ApiException

from buffer_controller.errors import is_already_exists, is_conflict, is_not_found, status_reason


def _api_error(status, http_reason, status_body_reason=None):
    error = ApiException(status=status, reason=http_reason)
    if status_body_reason is not None:
        error.body = json.dumps({"kind": "Status", "code": status, "reason": status_body_reason})
    return error


def test_status_reason_prefers_body():
    assert status_reason(_api_error(409, "Conflict", "AlreadyExists")) == "AlreadyExists"


def test_status_reason_falls_back_to_http_reason():
    assert status_reason(_api_error(409, "Conflict")) == "Conflict"
    error = _api_error(409, "Conflict")
    error.body = "not json"
    assert status_reason(error) == "Conflict"


def test_stale_write_is_conflict():
    error = _api_error(409, "Conflict", "Conflict")
    assert is_conflict(error)
    assert not is_already_exists(error)


def test_already_exists_is_not_conflict():
    error = _api_error(409, "Conflict", "AlreadyExists")
    assert is_already_exists(error)
    assert not is_conflict(error)


def test_other_statuses():
    error = _api_error(404, "Not Found", "NotFound")
    assert is_not_found(error)
    assert not is_conflict(error)
    assert not is_already_exists(error)
    assert not is_conflict(ValueError("409"))
