"""State integrity checker for lobby state."""

from __future__ import annotations

from collections import Counter

from src.lobby.models import Lobby, normalize_name
from src.utils.constants import MAX_OPPONENTS


def validate_lobby_integrity(lobby: Lobby) -> list[str]:
    """Validate all lobby invariants. Returns list of errors (empty = OK).

    Checks:
    1. Roster has at most 7 opponents
    2. Names are unique (trimmed, case-insensitive)
    3. is_complete matches the roster size
    4. current_match is at least 1
    5. Elimination fields only on dead opponents
    6. Kill counts are non-negative
    7. Match history and killers refer to known ids
    """
    errors: list[str] = []
    roster_ids = {opp.id for opp in lobby.opponents}

    # 1. Roster size
    if len(lobby.opponents) > MAX_OPPONENTS:
        errors.append(
            f"Roster has {len(lobby.opponents)} opponents, max {MAX_OPPONENTS}"
        )

    # 2. Unique names
    counts = Counter(normalize_name(opp.name) for opp in lobby.opponents)
    for name, count in counts.items():
        if count > 1:
            errors.append(f"Duplicate opponent name: {name!r} (x{count})")
    if any(not opp.name.strip() for opp in lobby.opponents):
        errors.append("Opponent with empty name")

    # 3. Completion flag
    expected = len(lobby.opponents) == MAX_OPPONENTS
    if lobby.is_complete != expected:
        errors.append(
            f"isComplete={lobby.is_complete} but roster size is {len(lobby.opponents)}"
        )

    # 4. Match counter
    if lobby.current_match < 1:
        errors.append(f"currentMatch must be >= 1, got {lobby.current_match}")

    for opp in lobby.opponents:
        # 5. Elimination only on dead opponents
        if not opp.is_dead and opp.eliminated_at_match is not None:
            errors.append(f"{opp.name} has eliminatedAtMatch but is alive")
        if opp.eliminated_at_match is not None and opp.eliminated_at_match < 1:
            errors.append(f"{opp.name} eliminated at invalid match {opp.eliminated_at_match}")

        # 6. Kill counts
        if opp.kill_count < 0:
            errors.append(f"Negative kill count for {opp.name}: {opp.kill_count}")

        # 7. Killer references
        if opp.killed_by is not None and opp.killed_by not in roster_ids | {lobby.id}:
            errors.append(f"{opp.name} killed by unknown id {opp.killed_by}")
        if opp.killed_by == opp.id:
            errors.append(f"{opp.name} is recorded as killing itself")

    for opponent_id in lobby.match_history:
        if opponent_id not in roster_ids:
            errors.append(f"Match history refers to unknown opponent {opponent_id}")

    return errors
