from groupledger.app.models.balance import (
    LedgerEntry,
    MemberBalance,
    MemberId,
    SettlementResult,
    SettlementSummary,
    Transfer,
)
from groupledger.app.models.expense import ExpenseRecord, Member, SplitMode, SplitParticipant

__all__ = [
    "ExpenseRecord",
    "LedgerEntry",
    "Member",
    "MemberBalance",
    "MemberId",
    "SettlementResult",
    "SettlementSummary",
    "SplitMode",
    "SplitParticipant",
    "Transfer",
]
