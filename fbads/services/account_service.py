"""Ad account handle used by every audience call."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from fbads import config
from fbads.services import graph_api
from fbads.utils.logging import get_logger

LOG = get_logger("fbads.account_service")

ACCOUNT_FIELDS = ("name", "account_status", "currency", "timezone_name")


class AccountError(ValueError):
    """Raised when an ad account handle is missing or malformed."""


@dataclass(frozen=True)
class AdAccount:
    """Authenticated ad account handle.

    ``account_id`` is the numeric id without the ``act_`` prefix.
    """

    account_id: str
    access_token: str
    api_version: str
    name: Optional[str] = None
    currency: Optional[str] = None
    account_status: Optional[int] = None
    timezone_name: Optional[str] = None

    @property
    def act_path(self) -> str:
        return f"act_{self.account_id}"

    def __repr__(self) -> str:
        return (
            f"AdAccount(account_id={self.account_id!r}, api_version={self.api_version!r}, "
            f"name={self.name!r})"
        )


def normalize_account_id(raw: Any) -> str:
    """Strip whitespace and an ``act_`` prefix; raise AccountError unless numeric."""
    text = str(raw if raw is not None else "").strip()
    if text.startswith("act_"):
        text = text[len("act_"):]
    if not text.isdigit():
        raise AccountError("account_id_invalid")
    return text


def init_account(
    access_token: Optional[str] = None,
    account_id: Optional[str] = None,
    *,
    api_version: Optional[str] = None,
    verify: bool = True,
) -> AdAccount:
    """Build an account handle, falling back to environment configuration.

    With ``verify`` the account is fetched once from the Graph API so a bad
    token or id fails here rather than on the first audience call.
    """
    token = (access_token or config.access_token() or "").strip()
    if not token:
        raise AccountError("access_token_missing")
    raw_id = account_id if account_id is not None else config.account_id()
    if raw_id is None or not str(raw_id).strip():
        raise AccountError("account_id_missing")
    clean_id = normalize_account_id(raw_id)
    version = api_version or config.graph_api_version()

    if not verify:
        return AdAccount(account_id=clean_id, access_token=token, api_version=version)

    data = graph_api.request(
        f"act_{clean_id}",
        method="GET",
        params={"access_token": token, "fields": ",".join(ACCOUNT_FIELDS)},
        api_version=version,
    )
    data = data if isinstance(data, dict) else {}
    status = data.get("account_status")
    account = AdAccount(
        account_id=clean_id,
        access_token=token,
        api_version=version,
        name=data.get("name"),
        currency=data.get("currency"),
        account_status=int(status) if status is not None else None,
        timezone_name=data.get("timezone_name"),
    )
    LOG.info("Initialized ad account act_%s (%s)", clean_id, account.name or "unnamed")
    return account


def check_account(account: Any) -> AdAccount:
    if not isinstance(account, AdAccount):
        raise AccountError("account_handle_invalid")
    if not account.access_token:
        raise AccountError("access_token_missing")
    if not account.account_id:
        raise AccountError("account_id_missing")
    return account


__all__ = [
    "ACCOUNT_FIELDS",
    "AccountError",
    "AdAccount",
    "normalize_account_id",
    "init_account",
    "check_account",
]
