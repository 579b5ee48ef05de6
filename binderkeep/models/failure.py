"""
Failure Classification: Ledger Errors and the Response Envelope.

Every ledger mutation ends in exactly one of two outcomes:

- Success: the store accepted the change
- KnownFailure: the system knows why the change was refused

Anything else is an UnknownFailure, reported with a fixed message.

Known failures are raised as KnownError subclasses so that the caller
(the optimistic cache coordinator or an API handler) can roll back and
surface a classified, user-readable message. They are never swallowed.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    CARD_NOT_FOUND = "card_not_found"
    ENTRY_NOT_FOUND = "entry_not_found"

    # Constraint violations
    DUPLICATE_WISHLIST_ENTRY = "duplicate_wishlist_entry"

    # Session failures
    NOT_AUTHENTICATED = "not_authenticated"

    # Store failures
    PERSISTENCE_ERROR = "persistence_error"
    SCHEMA_MISMATCH = "schema_mismatch"
    INVALID_CATALOG_RECORD = "invalid_catalog_record"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class ApiResponse(BaseModel, Generic[T]):
    """
    Response envelope for ledger mutations.

    Every mutation result is classified, so no failure reaches
    the user unexplained.
    """

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )

    @property
    def ok(self) -> bool:
        return self.outcome == OutcomeType.SUCCESS

    @classmethod
    def success(cls, data: T) -> "ApiResponse[T]":
        """Create a success response."""
        return cls(outcome=OutcomeType.SUCCESS, data=data)

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ) -> "ApiResponse[Any]":
        """
        Create a known failure response.

        Use when the system knows exactly why the operation failed.
        Example: card unavailable, already in wishlist.
        """
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(
                kind=kind,
                message=message,
                detail=detail,
                suggestion=suggestion,
            ),
        )

    @classmethod
    def unknown_failure(
        cls,
        detail: str | None = None,
    ) -> "ApiResponse[Any]":
        """
        Create an unknown failure response.

        This is the catch-all for unexpected exceptions.
        """
        return cls(
            outcome=OutcomeType.UNKNOWN_FAILURE,
            failure=FailureDetail(
                kind=FailureKind.UNKNOWN,
                message=UNKNOWN_FAILURE_MESSAGE,
                detail=detail,
                suggestion="If this persists, please report the issue.",
            ),
        )


UNKNOWN_FAILURE_MESSAGE = "Something went wrong. Your change was not saved."


# Standard exception types that map to known failures


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )

    def to_response(self) -> ApiResponse[Any]:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class CardNotFound(KnownError):
    """No catalog record exists for the card identifier in any language."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(
            kind=FailureKind.CARD_NOT_FOUND,
            message="This card is unavailable.",
            detail=f"No catalog record for card '{card_id}' in any language",
            status_code=404,
        )


class DuplicateWishlistEntry(KnownError):
    """
    The card is already on the user's wishlist.

    Kept distinct from generic failures so the user sees
    "already in wishlist" rather than "something went wrong".
    """

    def __init__(self, user_id: str, card_id: str):
        self.user_id = user_id
        self.card_id = card_id
        super().__init__(
            kind=FailureKind.DUPLICATE_WISHLIST_ENTRY,
            message="This card is already in your wishlist.",
            detail=f"Wishlist entry for card '{card_id}' already exists",
            status_code=409,
        )


class PersistenceError(KnownError):
    """
    The store rejected a read or write.

    `schema_mismatch` marks failures that look like a missing column or
    table, which get their own message.
    """

    def __init__(self, operation: str, detail: str | None = None, schema_mismatch: bool = False):
        self.operation = operation
        self.schema_mismatch = schema_mismatch
        if schema_mismatch:
            super().__init__(
                kind=FailureKind.SCHEMA_MISMATCH,
                message="Your change could not be saved because the database is out of date.",
                detail=detail,
                suggestion="Please contact an administrator.",
                status_code=503,
            )
        else:
            super().__init__(
                kind=FailureKind.PERSISTENCE_ERROR,
                message="Your change could not be saved.",
                detail=detail,
                suggestion="Please try again in a moment.",
                status_code=503,
            )


class NotAuthenticated(KnownError):
    """A mutation was attempted with no signed-in user."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.NOT_AUTHENTICATED,
            message="Please sign in to manage your collection and wishlist.",
            status_code=401,
        )


class LedgerEntryNotFound(KnownError):
    """The ledger entry being edited does not exist for this user."""

    def __init__(self, ledger: str, key: str):
        self.ledger = ledger
        self.key = key
        super().__init__(
            kind=FailureKind.ENTRY_NOT_FOUND,
            message=f"This card is not in your {ledger}.",
            detail=f"No {ledger} entry matching '{key}'",
            status_code=404,
        )


class InvalidLedgerInput(KnownError):
    """Ledger input failed validation before reaching the store."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=message,
            detail=detail,
            status_code=400,
        )


class CatalogRecordError(KnownError):
    """A catalog row failed validation at the read boundary."""

    def __init__(self, detail: str):
        super().__init__(
            kind=FailureKind.INVALID_CATALOG_RECORD,
            message="The card catalog returned an invalid record.",
            detail=detail,
            status_code=502,
        )


def create_unknown_failure(
    exception: Exception,
    include_type: bool = True,
) -> ApiResponse[Any]:
    """
    Create an unknown failure response from an exception.

    The message is fixed and cannot be customized.
    """
    detail = None
    if include_type:
        detail = f"{type(exception).__name__}"
    return ApiResponse.unknown_failure(detail=detail)


def classify_failure(exception: Exception) -> FailureDetail:
    """Map any exception to the FailureDetail shown to the user."""
    if isinstance(exception, KnownError):
        return exception.to_detail()
    failure = create_unknown_failure(exception).failure
    assert failure is not None
    return failure
