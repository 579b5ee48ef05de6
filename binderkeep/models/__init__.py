from binderkeep.models.card import CardRecord, CardSet
from binderkeep.models.failure import (
    UNKNOWN_FAILURE_MESSAGE,
    ApiResponse,
    CardNotFound,
    CatalogRecordError,
    DuplicateWishlistEntry,
    FailureDetail,
    FailureKind,
    InvalidLedgerInput,
    KnownError,
    LedgerEntryNotFound,
    NotAuthenticated,
    OutcomeType,
    PersistenceError,
    classify_failure,
    create_unknown_failure,
)
from binderkeep.models.ledger import (
    DEFAULT_PRIORITY,
    CardSnapshot,
    OwnershipEdit,
    OwnershipEntry,
    OwnershipMetadata,
    Priority,
    WishlistEdit,
    WishlistEntry,
    normalize_priority,
)
from binderkeep.models.progress import SetProgress
from binderkeep.models.value import CurrentPrice, ValueSummary

__all__ = [
    "DEFAULT_PRIORITY",
    "UNKNOWN_FAILURE_MESSAGE",
    "ApiResponse",
    "CardNotFound",
    "CardRecord",
    "CardSet",
    "CardSnapshot",
    "CatalogRecordError",
    "CurrentPrice",
    "DuplicateWishlistEntry",
    "FailureDetail",
    "FailureKind",
    "InvalidLedgerInput",
    "KnownError",
    "LedgerEntryNotFound",
    "NotAuthenticated",
    "OutcomeType",
    "OwnershipEdit",
    "OwnershipEntry",
    "OwnershipMetadata",
    "PersistenceError",
    "Priority",
    "SetProgress",
    "ValueSummary",
    "WishlistEdit",
    "WishlistEntry",
    "classify_failure",
    "create_unknown_failure",
    "normalize_priority",
]
