"""
schemas/settlement_schema.py — Marshmallow schemas for the settlement response.

Dump-only. Monetary amounts are serialised as strings to preserve precision
("10.50", never 10.5 or 10.500000001).

Response shape:
  {
    "balances":  [{"memberId", "displayName", "balance"}],
    "transfers": [{"from", "fromName", "to", "toName", "amount"}],
    "summary":   {"totalOwed", "totalOwing", "isSettled"},
    "imbalance": "0.00",
    "currency":  "INR",
    "warnings":  [{"code", "message"}],
    "ledger":    [{"memberId", "displayName", "totalPaid", "totalOwed", "balance"}]
  }
"""

from __future__ import annotations

from marshmallow import Schema, fields

from groupledger.app.schemas.balance_schema import MemberIdField


def _money(**kwargs) -> fields.Decimal:
    return fields.Decimal(as_string=True, **kwargs)


class MemberBalanceSchema(Schema):
    member_id = MemberIdField(data_key="memberId")
    display_name = fields.Str(data_key="displayName")
    balance = _money()


class TransferSchema(Schema):
    from_member_id = MemberIdField(data_key="from")
    from_name = fields.Str(data_key="fromName")
    to_member_id = MemberIdField(data_key="to")
    to_name = fields.Str(data_key="toName")
    amount = _money()


class SettlementSummarySchema(Schema):
    total_owed = _money(data_key="totalOwed")
    total_owing = _money(data_key="totalOwing")
    is_settled = fields.Bool(data_key="isSettled")


class WarningSchema(Schema):
    code = fields.Str()
    message = fields.Str()


class LedgerEntrySchema(Schema):
    member_id = MemberIdField(data_key="memberId")
    display_name = fields.Str(data_key="displayName")
    total_paid = _money(data_key="totalPaid")
    total_owed = _money(data_key="totalOwed")
    balance = _money()


class SettlementResponseSchema(Schema):
    balances = fields.List(fields.Nested(MemberBalanceSchema))
    transfers = fields.List(fields.Nested(TransferSchema))
    summary = fields.Nested(SettlementSummarySchema)
    imbalance = _money()
    currency = fields.Str()
    warnings = fields.List(fields.Nested(WarningSchema))
    ledger = fields.List(fields.Nested(LedgerEntrySchema))
