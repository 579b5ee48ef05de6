from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class CardRecord:
    """
    One language variant of a catalog card.

    Attributes:
        card_id: Stable identifier of the logical card (e.g., "base1-4")
        language: Language code of this printing (e.g., "en", "de")
        set_id: Identifier of the set the card belongs to
        name: Display name in this language
        rarity: Rarity label as stored in the catalog
        set_name: Display name of the set
        card_number: Number within the set
        image_url: Card image location
        illustrator: Credited artist
        stats: Game statistics (hp, types, attacks, weaknesses, retreat)
    """

    card_id: str
    language: str
    set_id: str | None = None
    name: str | None = None
    rarity: str | None = None
    set_name: str | None = None
    card_number: str | None = None
    image_url: str | None = None
    illustrator: str | None = None
    stats: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CardSet:
    """A catalog set and the number of cards it contains."""

    set_id: str
    name: str
    total: int = 0
    series_id: str | None = None
    series_name: str | None = None
