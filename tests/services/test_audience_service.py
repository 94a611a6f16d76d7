"""Tests for custom & lookalike audience operations."""
from __future__ import annotations

import hashlib
import json

import pytest

from fbads.services import audience_service
from fbads.services.account_service import AccountError, AdAccount
from fbads.services.graph_api import GraphResponseError


@pytest.fixture
def account():
    return AdAccount(account_id="1234", access_token="tok", api_version="v19.0")


@pytest.fixture
def recorder(monkeypatch):
    calls = []
    responses = []

    def fake_request(path, method="GET", params=None, *, api_version=None, timeout=None, session=None):
        calls.append({"path": path, "method": method, "params": dict(params or {}), "api_version": api_version})
        if responses:
            item = responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return {}

    monkeypatch.setattr(audience_service.graph_api, "request", fake_request)
    return calls, responses


def _sha(value):
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def test_create_audience_minimal_params(account, recorder):
    calls, responses = recorder
    responses.append({"id": "6001"})

    audience_id = audience_service.create_audience(account, "Newsletter")

    assert audience_id == "6001"
    assert calls == [{
        "path": "act_1234/customaudiences",
        "method": "POST",
        "params": {"access_token": "tok", "name": "Newsletter"},
        "api_version": "v19.0",
    }]


def test_create_audience_includes_optional_fields(account, recorder):
    calls, responses = recorder
    responses.append({"id": 6002})

    audience_id = audience_service.create_audience(
        account, "Buyers", description="Paid last 30d", opt_out_link="https://example.com/optout"
    )

    assert audience_id == "6002"
    assert calls[0]["params"] == {
        "access_token": "tok",
        "name": "Buyers",
        "description": "Paid last 30d",
        "opt_out_link": "https://example.com/optout",
    }


@pytest.mark.parametrize("name", [None, "", "   "])
def test_create_audience_requires_name(account, recorder, name):
    calls, _ = recorder
    with pytest.raises(audience_service.AudienceValidationError):
        audience_service.create_audience(account, name)
    assert calls == []


def test_operations_reject_invalid_account(recorder):
    calls, _ = recorder
    with pytest.raises(AccountError):
        audience_service.create_audience({"access_token": "tok"}, "Name")
    with pytest.raises(AccountError):
        audience_service.delete_audience(AdAccount(account_id="1", access_token="", api_version="v19.0"), "5")
    assert calls == []


def test_read_audience_default_fields(account, recorder):
    calls, responses = recorder
    responses.append({"id": "6001", "name": "Newsletter", "approximate_count": 1000})

    data = audience_service.read_audience(account, 6001)

    assert data["approximate_count"] == 1000
    assert calls[0]["path"] == "6001"
    assert calls[0]["method"] == "GET"
    assert calls[0]["params"]["fields"] == ",".join(audience_service.DEFAULT_FIELDS)
    assert calls[0]["params"]["access_token"] == "tok"


def test_read_audience_subset_and_single_string(account, recorder):
    calls, _ = recorder
    audience_service.read_audience(account, "6001", ["name", "id", "name"])
    audience_service.read_audience(account, "6001", "operation_status")
    assert calls[0]["params"]["fields"] == "name,id"
    assert calls[1]["params"]["fields"] == "operation_status"


def test_read_audience_rejects_unknown_field(account, recorder):
    calls, _ = recorder
    with pytest.raises(audience_service.AudienceValidationError):
        audience_service.read_audience(account, "6001", ["name", "rule"])
    assert calls == []


def test_read_audience_requires_id(account, recorder):
    with pytest.raises(audience_service.AudienceValidationError):
        audience_service.read_audience(account, None)


def test_delete_audience(account, recorder):
    calls, responses = recorder
    responses.append({"success": True})

    assert audience_service.delete_audience(account, "6001") == {"success": True}
    assert calls[0] == {
        "path": "6001",
        "method": "DELETE",
        "params": {"access_token": "tok"},
        "api_version": "v19.0",
    }


def test_share_audience_sends_integer_json_array(account, recorder):
    calls, responses = recorder
    responses.append({"success": True})

    audience_service.share_audience(account, "6001", ["act_111", 222, " 333 "])

    assert calls[0]["path"] == "6001/adaccounts"
    assert calls[0]["method"] == "POST"
    assert json.loads(calls[0]["params"]["adaccounts"]) == [111, 222, 333]


def test_share_audience_rejects_non_numeric_account(account, recorder):
    calls, _ = recorder
    with pytest.raises(audience_service.AudienceValidationError):
        audience_service.share_audience(account, "6001", ["abc"])
    with pytest.raises(audience_service.AudienceValidationError):
        audience_service.share_audience(account, "6001", [])
    assert calls == []


def test_share_audience_surfaces_platform_rejection(account, recorder):
    _, responses = recorder
    responses.append(GraphResponseError("already shared", status=400, code=100))
    with pytest.raises(GraphResponseError):
        audience_service.share_audience(account, "6001", [111])


def test_add_users_hashes_normalized_emails(account, recorder):
    calls, responses = recorder
    responses.append({"audience_id": "6001", "num_received": 2, "num_invalid_entries": 0})

    results = audience_service.add_audience_users(
        account, "6001", "email", [" Reader@Example.com ", "other@example.com"]
    )

    assert results == [{"audience_id": "6001", "num_received": 2, "num_invalid_entries": 0}]
    assert calls[0]["path"] == "6001/users"
    assert calls[0]["method"] == "POST"
    payload = json.loads(calls[0]["params"]["payload"])
    assert payload == {
        "schema": "EMAIL_SHA256",
        "data": [_sha("reader@example.com"), _sha("other@example.com")],
    }


def test_add_users_phone_schema_uses_digits(account, recorder):
    calls, _ = recorder
    audience_service.add_audience_users(account, "6001", "PHONE", ["+1 (555) 010-9999"])
    payload = json.loads(calls[0]["params"]["payload"])
    assert payload["schema"] == "PHONE_SHA256"
    assert payload["data"] == [_sha("15550109999")]


def test_add_users_splits_into_batches_of_ten_thousand(account, recorder):
    calls, _ = recorder
    emails = [f"user{i}@example.com" for i in range(25001)]

    results = audience_service.add_audience_users(account, "6001", "EMAIL", emails)

    assert len(results) == 3
    sizes = [len(json.loads(c["params"]["payload"])["data"]) for c in calls]
    assert sizes == [10000, 10000, 5001]
    first = json.loads(calls[0]["params"]["payload"])["data"]
    last = json.loads(calls[-1]["params"]["payload"])["data"]
    assert first[0] == _sha("user0@example.com")
    assert last[-1] == _sha("user25000@example.com")


def test_add_users_empty_input_warns_and_sends_nothing(account, recorder):
    calls, _ = recorder
    with pytest.warns(UserWarning, match="Nothing to send to FB"):
        results = audience_service.add_audience_users(account, "6001", "EMAIL", [])
    assert results == []
    assert calls == []


def test_add_users_rejects_unknown_schema(account, recorder):
    with pytest.raises(audience_service.AudienceValidationError):
        audience_service.add_audience_users(account, "6001", "MADID", ["abc"])


def test_add_users_rejects_prehashed_schema(account, recorder):
    calls, _ = recorder
    with pytest.raises(audience_service.AudienceValidationError):
        audience_service.add_audience_users(account, "6001", "EMAIL_SHA256", [_sha("reader@example.com")])
    assert calls == []


def test_add_users_single_string_is_one_identifier(account, recorder):
    calls, _ = recorder

    audience_service.add_audience_users(account, "6001", "EMAIL", "Reader@Example.com")

    assert len(calls) == 1
    payload = json.loads(calls[0]["params"]["payload"])
    assert payload["data"] == [_sha("reader@example.com")]


def test_add_users_skips_blank_identifiers(account, recorder):
    calls, _ = recorder

    audience_service.add_audience_users(account, "6001", "PHONE", ["  ", "n/a", None, "+1 555 0100"])

    payload = json.loads(calls[0]["params"]["payload"])
    assert payload["data"] == [_sha("15550100")]
    assert _sha("") not in payload["data"]


def test_add_users_only_blank_identifiers_warns_and_sends_nothing(account, recorder):
    calls, _ = recorder
    with pytest.warns(UserWarning, match="Nothing to send to FB"):
        results = audience_service.add_audience_users(account, "6001", "PHONE", ["  ", "n/a"])
    assert results == []
    assert calls == []


def test_add_users_failing_chunk_stops_upload(account, recorder):
    calls, responses = recorder
    responses.extend([{"num_received": 10000}, GraphResponseError("boom", status=400, code=100)])
    emails = [f"user{i}@example.com" for i in range(30000)]

    with pytest.raises(GraphResponseError):
        audience_service.add_audience_users(account, "6001", "EMAIL", emails)
    assert len(calls) == 2


def test_create_lookalike_audience(account, recorder):
    calls, responses = recorder
    responses.append({"id": "7001"})

    audience_id = audience_service.create_lookalike_audience(account, "LAL 5%", "6001", ratio=0.05, country="gb")

    assert audience_id == "7001"
    params = calls[0]["params"]
    assert calls[0]["path"] == "act_1234/customaudiences"
    assert calls[0]["method"] == "POST"
    assert params["name"] == "LAL 5%"
    assert params["origin_audience_id"] == "6001"
    assert json.loads(params["lookalike_spec"]) == {"ratio": 0.05, "country": "GB"}


def test_create_lookalike_defaults(account, recorder):
    calls, _ = recorder
    audience_service.create_lookalike_audience(account, "LAL", 6001)
    assert json.loads(calls[0]["params"]["lookalike_spec"]) == {"ratio": 0.01, "country": "US"}


@pytest.mark.parametrize("ratio", [0, 0.005, 0.21, 0.015, "big"])
def test_create_lookalike_rejects_bad_ratio(account, recorder, ratio):
    calls, _ = recorder
    with pytest.raises(audience_service.AudienceValidationError):
        audience_service.create_lookalike_audience(account, "LAL", "6001", ratio=ratio)
    assert calls == []


def test_create_lookalike_requires_name_and_origin(account, recorder):
    with pytest.raises(audience_service.AudienceValidationError, match="lookalike audience"):
        audience_service.create_lookalike_audience(account, "", "6001")
    with pytest.raises(audience_service.AudienceValidationError, match="origin"):
        audience_service.create_lookalike_audience(account, "LAL", None)
