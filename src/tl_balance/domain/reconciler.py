"""Balance reconciliation — pure functions, no I/O.

A member's balance is Σ(contribution_amount) − Σ(fair_share) over their
whole contribution history, walked in purchase-date order:

    fair_share     = true_cost(effective_tokens, purchase.total_tokens, purchase.total_payment)
    balance_change = contribution_amount − fair_share

The globally earliest purchase has no earlier purchase to measure
consumption against, so its contribution counts 0 effective tokens no
matter what was recorded. Positive balance = overpaid (credit),
negative = owes.

Record creation timestamps are never consulted: rows restored from a backup
carry rewritten created_at values but their purchase dates are intact.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime

from src.tl_common.datetime_utils import as_utc
from src.tl_common.errors import LedgerCorruptionError
from src.tl_cost.domain.allocation import require_valid_totals, true_cost
from src.tl_ledger.domain.models import ContributionLine, Purchase


@dataclass(frozen=True)
class BalanceLine:
    contribution_id: str
    purchase_id: str
    purchase_date: datetime
    contribution_amount: float
    tokens_consumed: float
    effective_tokens_consumed: float
    fair_share: float
    balance_change: float
    running_balance: float
    is_first_purchase: bool


@dataclass(frozen=True)
class BalanceBreakdown:
    lines: list[BalanceLine] = field(default_factory=list)
    running_balance: float = 0.0
    total_contributed: float = 0.0
    total_fair_share: float = 0.0


def _checked_purchase(line: ContributionLine) -> Purchase:
    if line.purchase is None:
        raise LedgerCorruptionError(line.contribution.id, line.contribution.purchase_id)
    return require_valid_totals(line.purchase)


def order_chronologically(lines: list[ContributionLine]) -> list[ContributionLine]:
    """Sort by (purchase_date, purchase_id, contribution_id).

    Raises LedgerCorruptionError on the first contribution whose purchase
    is missing and InvalidPurchaseError when its totals are not positive;
    nothing is skipped.
    """
    for line in lines:
        _checked_purchase(line)
    return sorted(
        lines,
        key=lambda ln: (
            as_utc(_checked_purchase(ln).purchase_date),
            ln.contribution.purchase_id,
            ln.contribution.id,
        ),
    )


def reconcile(
    lines: list[ContributionLine], earliest_purchase_id: str | None
) -> BalanceBreakdown:
    """Running balance of one member's contributions.

    ``earliest_purchase_id`` must be the earliest purchase across the whole
    ledger (not just this member's), looked up once by the caller.
    """
    running = 0.0
    contributed = 0.0
    fair_total = 0.0
    out: list[BalanceLine] = []

    for line in order_chronologically(lines):
        purchase = _checked_purchase(line)
        contribution = line.contribution
        is_first = purchase.id == earliest_purchase_id
        effective = 0.0 if is_first else contribution.tokens_consumed
        fair_share = true_cost(effective, purchase.total_tokens, purchase.total_payment)
        change = contribution.contribution_amount - fair_share

        running += change
        contributed += contribution.contribution_amount
        fair_total += fair_share
        out.append(
            BalanceLine(
                contribution_id=contribution.id,
                purchase_id=purchase.id,
                purchase_date=purchase.purchase_date,
                contribution_amount=contribution.contribution_amount,
                tokens_consumed=contribution.tokens_consumed,
                effective_tokens_consumed=effective,
                fair_share=fair_share,
                balance_change=change,
                running_balance=running,
                is_first_purchase=is_first,
            )
        )

    return BalanceBreakdown(
        lines=out,
        running_balance=running,
        total_contributed=contributed,
        total_fair_share=fair_total,
    )


def reconcile_all(
    lines: list[ContributionLine], earliest_purchase_id: str | None
) -> dict[str, BalanceBreakdown]:
    """Reconcile every member found in ``lines``, keyed by user id."""
    by_user: dict[str, list[ContributionLine]] = defaultdict(list)
    for line in lines:
        by_user[line.contribution.user_id].append(line)
    return {
        user_id: reconcile(user_lines, earliest_purchase_id)
        for user_id, user_lines in sorted(by_user.items())
    }
