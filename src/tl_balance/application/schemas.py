"""Pydantic schemas for tl_balance API."""

from pydantic import BaseModel

from src.tl_balance.domain.reconciler import BalanceBreakdown
from src.tl_common.money import round2, usd_display


class BalanceResponse(BaseModel):
    user_id: str
    running_balance: float
    running_balance_display: str
    status: str  # "credit" | "owes" | "settled"

    @classmethod
    def from_balance(cls, user_id: str, balance: float) -> "BalanceResponse":
        rounded = round2(balance)
        if rounded > 0:
            status = "credit"
        elif rounded < 0:
            status = "owes"
        else:
            status = "settled"
        return cls(
            user_id=user_id,
            running_balance=rounded,
            running_balance_display=usd_display(rounded),
            status=status,
        )


class BalanceLineItem(BaseModel):
    contribution_id: str
    purchase_id: str
    purchase_date: str  # ISO8601 string
    contribution_amount: float
    tokens_consumed: float
    effective_tokens_consumed: float
    fair_share: float
    balance_change: float
    running_balance: float
    is_first_purchase: bool


class BalanceBreakdownResponse(BaseModel):
    user_id: str
    running_balance: float
    running_balance_display: str
    total_contributed: float
    total_fair_share: float
    lines: list[BalanceLineItem]

    @classmethod
    def from_domain(cls, user_id: str, b: BalanceBreakdown) -> "BalanceBreakdownResponse":
        return cls(
            user_id=user_id,
            running_balance=round2(b.running_balance),
            running_balance_display=usd_display(round2(b.running_balance)),
            total_contributed=round2(b.total_contributed),
            total_fair_share=round2(b.total_fair_share),
            lines=[
                BalanceLineItem(
                    contribution_id=ln.contribution_id,
                    purchase_id=ln.purchase_id,
                    purchase_date=ln.purchase_date.isoformat(),
                    contribution_amount=round2(ln.contribution_amount),
                    tokens_consumed=ln.tokens_consumed,
                    effective_tokens_consumed=ln.effective_tokens_consumed,
                    fair_share=round2(ln.fair_share),
                    balance_change=round2(ln.balance_change),
                    running_balance=round2(ln.running_balance),
                    is_first_purchase=ln.is_first_purchase,
                )
                for ln in b.lines
            ],
        )


class GlobalBalanceResponse(BaseModel):
    earliest_purchase_id: str | None
    member_count: int
    contribution_count: int
    net_balance: float
    balances: list[BalanceResponse]
