"""Next-opponent prediction for a seven-opponent rotation."""

from __future__ import annotations

from typing import Sequence

from src.lobby.models import Opponent, normalize_name
from src.utils.constants import MAX_OPPONENTS


def predict_opponent(
    match_number: int,
    opponents: Sequence[Opponent],
    anchor_id: str | None = None,
) -> Opponent | None:
    """Predict who the player faces in ``match_number``.

    Matches 1-7 follow registration order: slot ``(match_number - 1) % 7``.
    When ``anchor_id`` (the opponent last actually faced) is given and is in
    the roster, the rotation instead continues from the slot after it and
    ``match_number`` is ignored. Either way dead opponents are skipped by
    scanning forward circularly.

    Returns None for an incomplete roster, a match number below 1, or when
    every opponent is dead.
    """
    if len(opponents) != MAX_OPPONENTS or match_number < 1:
        return None

    if not any(not opp.is_dead for opp in opponents):
        return None

    base_index = (match_number - 1) % MAX_OPPONENTS
    if anchor_id is not None:
        for i, opp in enumerate(opponents):
            if opp.id == anchor_id:
                base_index = (i + 1) % MAX_OPPONENTS
                break

    for step in range(MAX_OPPONENTS):
        candidate = opponents[(base_index + step) % MAX_OPPONENTS]
        if not candidate.is_dead:
            return candidate
    return None


def validate_unique_opponents(opponents: Sequence[Opponent]) -> bool:
    """True if no two opponents share a name (trimmed, case-insensitive)."""
    names = [normalize_name(opp.name) for opp in opponents]
    return len(set(names)) == len(names)
