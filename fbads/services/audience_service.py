"""Custom & lookalike audience operations.

Each function validates its arguments, builds the Graph API parameter set
for one endpoint and returns the relevant part of the parsed response.
Platform failures propagate as `graph_api.GraphAPIError`.
"""
from __future__ import annotations

import json
import warnings
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from fbads.services import graph_api
from fbads.services.account_service import AdAccount, check_account
from fbads.utils.hashing import BATCH_SIZE, chunked, hash_normalized, normalize_identifier, normalize_schema
from fbads.utils.logging import get_logger

LOG = get_logger("fbads.audience_service")

DEFAULT_FIELDS = (
    "id",
    "account_id",
    "approximate_count",
    "data_source",
    "delivery_status",
    "lookalike_audience_ids",
    "lookalike_spec",
    "name",
    "permission_for_actions",
    "operation_status",
    "subtype",
    "time_updated",
)
MIN_LOOKALIKE_RATIO = 0.01
MAX_LOOKALIKE_RATIO = 0.20


class AudienceValidationError(ValueError):
    """Raised when audience arguments are missing or out of range."""


def _require_text(value: Any, message: str) -> str:
    if value is None:
        raise AudienceValidationError(message)
    text = str(value).strip()
    if not text:
        raise AudienceValidationError(message)
    return text


def _request(account: AdAccount, path: str, method: str, params: Dict[str, Any]) -> Any:
    body = {"access_token": account.access_token}
    body.update(params)
    return graph_api.request(path, method=method, params=body, api_version=account.api_version)


def _response_id(data: Any) -> Optional[str]:
    if isinstance(data, dict) and data.get("id") is not None:
        return str(data["id"])
    return None


def create_audience(
    account: AdAccount,
    name: str,
    description: Optional[str] = None,
    opt_out_link: Optional[str] = None,
) -> Optional[str]:
    """Create an empty custom audience and return its id."""
    check_account(account)
    clean_name = _require_text(name, "The custom audience name is required.")
    LOG.info("Creating new custom audience: %s", clean_name)
    params: Dict[str, Any] = {"name": clean_name}
    if description is not None:
        params["description"] = description
    if opt_out_link is not None:
        params["opt_out_link"] = opt_out_link
    data = _request(account, f"{account.act_path}/customaudiences", "POST", params)
    return _response_id(data)


def _normalize_fields(fields: Union[str, Iterable[str], None]) -> List[str]:
    if fields is None:
        return list(DEFAULT_FIELDS)
    requested = [fields] if isinstance(fields, str) else list(fields)
    if not requested:
        raise AudienceValidationError("At least one field is required.")
    unknown = [f for f in requested if f not in DEFAULT_FIELDS]
    if unknown:
        raise AudienceValidationError(f"Unknown custom audience field(s): {', '.join(map(str, unknown))}")
    seen: List[str] = []
    for field in requested:
        if field not in seen:
            seen.append(field)
    return seen


def read_audience(
    account: AdAccount,
    audience_id: Union[str, int],
    fields: Union[str, Iterable[str], None] = DEFAULT_FIELDS,
) -> Dict[str, Any]:
    """Read metadata of a custom audience.

    ``fields`` must be a subset of `DEFAULT_FIELDS`; a single string is
    treated as one field name.
    """
    selected = _normalize_fields(fields)
    check_account(account)
    target = _require_text(audience_id, "A custom audience id is required.")
    data = _request(account, target, "GET", {"fields": ",".join(selected)})
    return data if isinstance(data, dict) else {}


def delete_audience(account: AdAccount, audience_id: Union[str, int]) -> Dict[str, Any]:
    check_account(account)
    target = _require_text(audience_id, "A custom audience id is required.")
    LOG.info("Deleting custom audience %s", target)
    data = _request(account, target, "DELETE", {})
    return data if isinstance(data, dict) else {}


def _normalize_adaccounts(adaccounts: Iterable[Union[str, int]]) -> List[int]:
    if isinstance(adaccounts, (str, int)):
        adaccounts = [adaccounts]
    ids: List[int] = []
    for raw in adaccounts:
        text = str(raw).strip()
        if text.startswith("act_"):
            text = text[len("act_"):]
        if not text.isdigit():
            raise AudienceValidationError(f"Invalid ad account id: {raw!r}")
        ids.append(int(text))
    return ids


def share_audience(
    account: AdAccount,
    audience_id: Union[str, int],
    adaccounts: Iterable[Union[str, int]],
) -> Dict[str, Any]:
    """Grant other ad accounts access to a custom audience.

    The platform rejects unknown ids, and also ids that already have access.
    """
    check_account(account)
    target = _require_text(audience_id, "A custom audience id is required.")
    ids = _normalize_adaccounts(adaccounts)
    if not ids:
        raise AudienceValidationError("At least one ad account id is required.")
    LOG.info("Sharing %s custom audience ID with %s accounts.", target, len(ids))
    data = _request(account, f"{target}/adaccounts", "POST", {"adaccounts": json.dumps(ids)})
    return data if isinstance(data, dict) else {}


def add_audience_users(
    account: AdAccount,
    audience_id: Union[str, int],
    schema: str,
    identifiers: Sequence[str],
) -> List[Dict[str, Any]]:
    """Hash e-mail addresses or phone numbers and add them to an audience.

    A single string counts as one identifier. Identifiers that normalize
    to an empty value are skipped. Uploads run sequentially in chunks of
    `BATCH_SIZE`; one response per chunk is returned in upload order. A
    failing chunk raises and stops the remaining uploads.
    """
    check_account(account)
    target = _require_text(audience_id, "A custom audience id is required.")
    try:
        clean_schema = normalize_schema(schema)
    except ValueError as exc:
        raise AudienceValidationError(str(exc)) from exc
    if isinstance(identifiers, str):
        identifiers = [identifiers]
    values = list(identifiers or [])
    LOG.info("Adding %s %s to %s custom audience ID.", len(values), clean_schema, target)

    normalized = [normalize_identifier(v, clean_schema) for v in values if v is not None]
    normalized = [v for v in normalized if v]
    skipped = len(values) - len(normalized)
    if skipped:
        LOG.warning("Skipping %s blank %s identifier(s) for %s", skipped, clean_schema, target)

    if not normalized:
        LOG.warning("Nothing to send to FB for custom audience %s", target)
        warnings.warn("Nothing to send to FB", UserWarning, stacklevel=2)
        return []

    hashes = [hash_normalized(v) for v in normalized]
    results: List[Dict[str, Any]] = []
    for index, batch in enumerate(chunked(hashes, BATCH_SIZE), start=1):
        payload = {"schema": f"{clean_schema}_SHA256", "data": batch}
        LOG.debug("Uploading chunk %s (%s hashes) to %s", index, len(batch), target)
        data = _request(account, f"{target}/users", "POST", {"payload": json.dumps(payload)})
        results.append(data if isinstance(data, dict) else {})
    return results


def _validate_ratio(ratio: Any) -> float:
    try:
        value = float(ratio)
    except (TypeError, ValueError) as exc:
        raise AudienceValidationError("Lookalike ratio must be a number.") from exc
    percent = value * 100
    if not (MIN_LOOKALIKE_RATIO - 1e-9 <= value <= MAX_LOOKALIKE_RATIO + 1e-9) or abs(percent - round(percent)) > 1e-6:
        raise AudienceValidationError("Lookalike ratio must be between 0.01 and 0.20 in 0.01 increments.")
    return round(value, 2)


def create_lookalike_audience(
    account: AdAccount,
    name: str,
    origin_audience_id: Union[str, int],
    ratio: float = 0.01,
    country: str = "US",
) -> Optional[str]:
    """Create a lookalike audience of an existing custom audience and return its id.

    ``ratio`` selects the top share (0.01-0.20) of people in ``country`` most
    similar to the origin audience.
    """
    check_account(account)
    clean_name = _require_text(name, "A custom name for the lookalike audience is required.")
    origin = _require_text(origin_audience_id, "The origin custom audience id is required.")
    clean_ratio = _validate_ratio(ratio)
    clean_country = _require_text(country, "A country code is required.").upper()
    LOG.info(
        "Creating new lookalike (%s%%) %s audience based on %s: %s",
        f"{clean_ratio * 100:g}", clean_country, origin, clean_name,
    )
    spec = {"ratio": clean_ratio, "country": clean_country}
    data = _request(
        account,
        f"{account.act_path}/customaudiences",
        "POST",
        {
            "name": clean_name,
            "origin_audience_id": origin,
            "lookalike_spec": json.dumps(spec),
        },
    )
    return _response_id(data)


__all__ = [
    "DEFAULT_FIELDS",
    "MIN_LOOKALIKE_RATIO",
    "MAX_LOOKALIKE_RATIO",
    "AudienceValidationError",
    "create_audience",
    "read_audience",
    "delete_audience",
    "share_audience",
    "add_audience_users",
    "create_lookalike_audience",
]
