"""Data models for lobby tracking state.

All models are immutable. Mutations elsewhere build replacements with
``dataclasses.replace`` so a previously handed-out object never changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable

from src.utils.constants import (
    DEFAULT_PLAYER_NAME,
    FIRST_MATCH,
    MAX_OPPONENTS,
    OUTCOME_LOSS,
    OUTCOME_WIN,
    OUTCOMES,
)
from src.utils.ids import new_id, parse_timestamp, utc_now


def normalize_name(name: str) -> str:
    return name.strip().lower()


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one match against an opponent, from the player's side."""

    match_number: int
    outcome: str  # "win" or "loss"
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "matchNumber": self.match_number,
            "outcome": self.outcome,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> MatchResult:
        outcome = d["outcome"]
        if outcome not in OUTCOMES:
            raise ValueError(f"Unknown match outcome: {outcome!r}")
        return cls(
            match_number=int(d["matchNumber"]),
            outcome=outcome,
            timestamp=parse_timestamp(d["timestamp"]),
        )


@dataclass(frozen=True)
class Opponent:
    """A registered opponent within a lobby."""

    id: str
    name: str
    is_dead: bool = False
    match_results: tuple[MatchResult, ...] = ()
    kill_count: int = 0
    killed_by: str | None = None
    eliminated_at_match: int | None = None

    @classmethod
    def create(cls, name: str) -> Opponent:
        return cls(id=new_id(), name=name.strip())

    @property
    def wins(self) -> int:
        return sum(1 for r in self.match_results if r.outcome == OUTCOME_WIN)

    @property
    def losses(self) -> int:
        return sum(1 for r in self.match_results if r.outcome == OUTCOME_LOSS)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "isDead": self.is_dead,
            "matchResults": [r.to_dict() for r in self.match_results],
            "killCount": self.kill_count,
            "killedBy": self.killed_by,
            "eliminatedAtMatch": self.eliminated_at_match,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Opponent:
        eliminated = d["eliminatedAtMatch"]
        return cls(
            id=d["id"],
            name=d["name"],
            is_dead=bool(d["isDead"]),
            match_results=tuple(MatchResult.from_dict(r) for r in d["matchResults"]),
            kill_count=int(d["killCount"]),
            killed_by=d["killedBy"],
            eliminated_at_match=int(eliminated) if eliminated is not None else None,
        )


@dataclass(frozen=True)
class Lobby:
    """One tournament session: a roster of up to seven opponents."""

    id: str
    created_at: datetime
    player_name: str = DEFAULT_PLAYER_NAME
    opponents: tuple[Opponent, ...] = ()
    current_match: int = FIRST_MATCH
    is_complete: bool = False
    # Opponent ids in the order they were actually faced
    match_history: tuple[str, ...] = ()

    @classmethod
    def create(cls, player_name: str = DEFAULT_PLAYER_NAME) -> Lobby:
        return cls(
            id=new_id(),
            created_at=utc_now(),
            player_name=player_name.strip() or DEFAULT_PLAYER_NAME,
        )

    def get_opponent(self, opponent_id: str) -> Opponent | None:
        for opp in self.opponents:
            if opp.id == opponent_id:
                return opp
        return None

    def find_opponent(self, name: str) -> Opponent | None:
        """Look up an opponent by name, case-insensitively."""
        wanted = normalize_name(name)
        for opp in self.opponents:
            if normalize_name(opp.name) == wanted:
                return opp
        return None

    def get_alive_opponents(self) -> list[Opponent]:
        return [opp for opp in self.opponents if not opp.is_dead]

    @property
    def last_faced_id(self) -> str | None:
        return self.match_history[-1] if self.match_history else None

    def with_opponents(self, opponents: Iterable[Opponent]) -> Lobby:
        """Return a copy with a new roster and ``is_complete`` recomputed."""
        roster = tuple(opponents)
        return replace(
            self, opponents=roster, is_complete=len(roster) == MAX_OPPONENTS
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "createdAt": self.created_at.isoformat(),
            "playerName": self.player_name,
            "opponents": [opp.to_dict() for opp in self.opponents],
            "currentMatch": self.current_match,
            "isComplete": self.is_complete,
            "matchHistory": list(self.match_history),
        }

    @classmethod
    def from_dict(cls, d: dict) -> Lobby:
        return cls(
            id=d["id"],
            created_at=parse_timestamp(d["createdAt"]),
            player_name=d["playerName"],
            opponents=tuple(Opponent.from_dict(o) for o in d["opponents"]),
            current_match=int(d["currentMatch"]),
            is_complete=bool(d["isComplete"]),
            match_history=tuple(d["matchHistory"]),
        )


@dataclass(frozen=True)
class LobbyState:
    """Everything the tracker persists under its storage key."""

    current_lobby: Lobby | None = None
    opponent_name_history: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "currentLobby": self.current_lobby.to_dict() if self.current_lobby else None,
            "opponentNameHistory": list(self.opponent_name_history),
        }

    @classmethod
    def from_dict(cls, d: dict) -> LobbyState:
        lobby = d["currentLobby"]
        return cls(
            current_lobby=Lobby.from_dict(lobby) if lobby is not None else None,
            opponent_name_history=tuple(d["opponentNameHistory"]),
        )


def name_conflicts(existing: Iterable[Opponent], candidate: str) -> bool:
    """True if any existing opponent already uses ``candidate`` (case-insensitive)."""
    wanted = normalize_name(candidate)
    return any(normalize_name(opp.name) == wanted for opp in existing)


def is_roster_full(lobby: Lobby) -> bool:
    return len(lobby.opponents) >= MAX_OPPONENTS
