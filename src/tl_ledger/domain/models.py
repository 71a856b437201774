"""Domain models for tl_ledger — pure dataclasses, no SQLAlchemy dependency.

The ledger records are created by external CRUD collaborators and are only
read here. Every derived value (true cost, balances, matches, statistics)
is recomputed from these records on demand.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime

_WHITESPACE = re.compile(r"\s+")
_ACCOUNT_NUMBER = re.compile(r"^\d{11}$")


@dataclass(frozen=True)
class Purchase:
    id: str
    total_tokens: float      # kWh
    total_payment: float     # USD
    meter_reading: float     # kWh on the meter at purchase time
    purchase_date: datetime
    is_emergency: bool = False
    has_receipt: bool = False


@dataclass(frozen=True)
class Contribution:
    id: str
    purchase_id: str         # unique: one contribution per purchase
    user_id: str
    contribution_amount: float  # USD
    meter_reading: float
    tokens_consumed: float


@dataclass(frozen=True)
class ContributionLine:
    """A contribution joined to its purchase.

    ``purchase`` is None when the referenced purchase row is missing, which
    the reconciler treats as ledger corruption.
    """
    contribution: Contribution
    purchase: Purchase | None


@dataclass(frozen=True)
class MeterReading:
    id: str
    user_id: str             # recorder, the meter itself is shared
    reading: float
    reading_date: date
    notes: str | None = None


@dataclass(frozen=True)
class ReceiptIdentifiers:
    """Optional token / account references printed on a receipt.

    Blank strings collapse to None; token numbers keep single spaces
    between digit groups.
    """
    token_number: str | None = None
    account_number: str | None = None

    @classmethod
    def from_raw(
        cls, token_number: str | None, account_number: str | None
    ) -> "ReceiptIdentifiers":
        token = _WHITESPACE.sub(" ", token_number).strip() if token_number else ""
        account = _WHITESPACE.sub("", account_number) if account_number else ""
        return cls(token_number=token or None, account_number=account or None)

    @property
    def has_token(self) -> bool:
        return self.token_number is not None

    @property
    def has_account(self) -> bool:
        return self.account_number is not None

    @property
    def account_number_valid(self) -> bool:
        return self.account_number is not None and bool(
            _ACCOUNT_NUMBER.match(self.account_number)
        )


@dataclass(frozen=True)
class ReceiptData:
    """Official provider receipt, all amounts in ZWG."""
    id: str
    purchase_id: str
    kwh_purchased: float
    energy_cost: float
    debt: float
    rea: float               # regulatory levy
    vat: float
    total_amount: float
    tendered: float
    transaction_date_time: datetime
    identifiers: ReceiptIdentifiers = field(default_factory=ReceiptIdentifiers)


@dataclass(frozen=True)
class ReceiptWithPurchase:
    receipt: ReceiptData
    purchase: Purchase
