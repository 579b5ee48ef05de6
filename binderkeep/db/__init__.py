from binderkeep.db.database import get_session, init_db
from binderkeep.db.errors import persistence_errors
from binderkeep.db.operations import (
    card_record_from_row,
    card_set_from_row,
    count_ownership,
    count_wishlist,
    delete_ownership_rows,
    delete_wishlist_rows,
    find_wishlist_row,
    get_card_record,
    get_card_records,
    get_card_sets,
    get_current_prices,
    get_sets,
    get_wishlist_row,
    insert_ownership_row,
    insert_price_rows,
    insert_wishlist_row,
    ownership_entry_from_row,
    select_owned_card_ids,
    select_ownership_rows,
    select_wishlist_rows,
    select_wishlisted_card_ids,
    update_ownership_rows,
    update_wishlist_row,
    wishlist_entry_from_row,
)

__all__ = [
    "card_record_from_row",
    "card_set_from_row",
    "count_ownership",
    "count_wishlist",
    "delete_ownership_rows",
    "delete_wishlist_rows",
    "find_wishlist_row",
    "get_card_record",
    "get_card_records",
    "get_card_sets",
    "get_current_prices",
    "get_session",
    "get_sets",
    "get_wishlist_row",
    "init_db",
    "insert_ownership_row",
    "insert_price_rows",
    "insert_wishlist_row",
    "ownership_entry_from_row",
    "persistence_errors",
    "select_owned_card_ids",
    "select_ownership_rows",
    "select_wishlist_rows",
    "select_wishlisted_card_ids",
    "update_ownership_rows",
    "update_wishlist_row",
    "wishlist_entry_from_row",
]
