"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Ledger / Balance
  3xxx: Meter readings
  4xxx: Receipts
  9xxx: System

Validation-style operations (meter reading validation, receipt matching)
return structured results instead of raising. These exceptions are for
broken references, rejected writes and infrastructure failures.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired access token", 401)


# --- 2xxx: Ledger / Balance ---

class PurchaseNotFoundError(AppError):
    def __init__(self, purchase_id: str) -> None:
        super().__init__(2001, f"Purchase not found: {purchase_id}", 404)


class LedgerCorruptionError(AppError):
    """A contribution references a purchase that no longer exists."""

    def __init__(self, contribution_id: str, purchase_id: str) -> None:
        self.contribution_id = contribution_id
        self.purchase_id = purchase_id
        super().__init__(
            2002,
            f"Ledger corrupted: contribution {contribution_id} references "
            f"missing purchase {purchase_id}",
            500,
        )


class InvalidPurchaseError(AppError):
    """A stored purchase breaks the totals > 0 invariant."""

    def __init__(self, purchase_id: str, detail: str) -> None:
        super().__init__(2003, f"Invalid purchase {purchase_id}: {detail}", 500)


# --- 3xxx: Meter readings ---

class MeterReadingRejectedError(AppError):
    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(3001, "; ".join(errors) or "Meter reading rejected", 422)


# --- 4xxx: Receipts ---

class ReceiptAlreadyExistsError(AppError):
    def __init__(self, purchase_id: str) -> None:
        super().__init__(4001, f"Receipt already exists for purchase {purchase_id}", 409)


class ReceiptBatchTooLargeError(AppError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(4002, f"Too many receipts ({size}), max {limit} per batch", 400)


class EmptyReceiptBatchError(AppError):
    def __init__(self) -> None:
        super().__init__(4003, "No receipts provided", 400)


class ReceiptNotFoundError(AppError):
    def __init__(self, purchase_id: str) -> None:
        super().__init__(4004, f"No receipt recorded for purchase {purchase_id}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
