from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SetProgress:
    """
    Completion of one set for one user.

    Derived on every read and never persisted.

    Attributes:
        set_id: Catalog set identifier
        set_name: Display name of the set
        total_cards: Number of cards in the set (from the catalog)
        collected_cards: Distinct card identifiers owned from this set
        wishlist_cards: Distinct card identifiers wishlisted from this set
        completion_percentage: collected / total as an integer 0-100
        is_completed: True when every card is owned and the set is non-empty
    """

    set_id: str
    set_name: str
    total_cards: int
    collected_cards: int
    wishlist_cards: int
    completion_percentage: int
    is_completed: bool

    @property
    def missing_cards(self) -> int:
        return max(self.total_cards - self.collected_cards, 0)
