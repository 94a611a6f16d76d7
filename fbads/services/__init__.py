"""Service exports."""

from .graph_api import (
    GraphAPIError,
    GraphTransportError,
    GraphResponseError,
)
from .account_service import (
    AdAccount,
    AccountError,
    init_account,
    check_account,
)
from .audience_service import (
    DEFAULT_FIELDS,
    AudienceValidationError,
    create_audience,
    read_audience,
    delete_audience,
    share_audience,
    add_audience_users,
    create_lookalike_audience,
)
from . import graph_api, account_service, audience_service

__all__ = [
    "GraphAPIError",
    "GraphTransportError",
    "GraphResponseError",
    "AdAccount",
    "AccountError",
    "init_account",
    "check_account",
    "DEFAULT_FIELDS",
    "AudienceValidationError",
    "create_audience",
    "read_audience",
    "delete_audience",
    "share_audience",
    "add_audience_users",
    "create_lookalike_audience",
    "graph_api",
    "account_service",
    "audience_service",
]
