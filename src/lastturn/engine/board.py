from __future__ import annotations

from dataclasses import dataclass, field, replace

from .types import CardDefinition


@dataclass(frozen=True)
class CardInstance:
    """A card in play. Damage yields a new instance instead of mutating."""

    card_id: str
    name: str
    damage: int
    health: int
    max_health: int

    @staticmethod
    def from_definition(card: CardDefinition) -> "CardInstance":
        return CardInstance(
            card_id=card.id,
            name=card.name,
            damage=card.damage,
            health=card.health,
            max_health=card.health,
        )

    def with_health(self, health: int) -> "CardInstance":
        return replace(self, health=max(0, min(self.max_health, health)))

    @property
    def is_dead(self) -> bool:
        return self.health <= 0


@dataclass
class BoardSlot:
    index: int
    card: CardInstance | None = None

    @property
    def is_empty(self) -> bool:
        return self.card is None

    def place(self, card: CardInstance) -> None:
        if self.card is not None:
            raise ValueError(f"Slot {self.index} is occupied.")
        self.card = card

    def clear(self) -> None:
        self.card = None


@dataclass
class SideMetrics:
    damage_dealt: int = 0
    damage_received: int = 0
    cards_eliminated: int = 0


@dataclass
class SideState:
    name: str
    max_health: int
    health: int
    deck: list[CardInstance]
    hand: list[CardInstance]
    board: list[BoardSlot]
    metrics: SideMetrics = field(default_factory=SideMetrics)

    def draw(self) -> CardInstance | None:
        if not self.deck:
            return None
        card = self.deck.pop(0)
        self.hand.append(card)
        return card

    def hand_index(self, card_id: str) -> int | None:
        for i, c in enumerate(self.hand):
            if c.card_id == card_id:
                return i
        return None

    def empty_slots(self) -> list[int]:
        return [s.index for s in self.board if s.is_empty]

    def occupied_slots(self) -> list[int]:
        return [s.index for s in self.board if not s.is_empty]

    def has_cards_available(self) -> bool:
        return bool(self.deck) or bool(self.hand) or bool(self.occupied_slots())

    def take_direct_hit(self, amount: int) -> int:
        """Apply direct damage, returning the health actually lost."""
        lost = min(self.health, max(0, amount))
        self.health -= lost
        return lost

    @property
    def is_defeated(self) -> bool:
        return self.health <= 0


def new_side(name: str, max_health: int, deck: list[CardInstance], board_size: int) -> SideState:
    ids = [c.card_id for c in deck]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Deck for {name!r} contains duplicate cards.")
    return SideState(
        name=name,
        max_health=max_health,
        health=max_health,
        deck=list(deck),
        hand=[],
        board=[BoardSlot(index=i) for i in range(board_size)],
    )
