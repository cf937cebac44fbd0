"""
groupledger — group expense settlement.

Turns a group's expense records into per-member balances and suggests the
transfers that settle them. See groupledger.app for the entry points.
"""

from groupledger.app import configure
from groupledger.app.errors import AppError, ErrorCode, WarningCode
from groupledger.app.services.settlement_service import (
    settle_balances,
    settle_group,
    settle_group_payload,
    settle_payload,
    simplify_debts,
)

__all__ = [
    "AppError",
    "ErrorCode",
    "WarningCode",
    "configure",
    "settle_balances",
    "settle_group",
    "settle_group_payload",
    "settle_payload",
    "simplify_debts",
]
