"""Lobby store: owns the current lobby and applies all mutations to it."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Callable, Union

from src.db.persistence import LobbyStatePersistence
from src.lobby.models import (
    Lobby,
    LobbyState,
    MatchResult,
    Opponent,
    is_roster_full,
    name_conflicts,
    normalize_name,
)
from src.lobby.prediction import predict_opponent
from src.utils.constants import DEFAULT_PLAYER_NAME, MAX_OPPONENTS, OUTCOMES
from src.utils.ids import utc_now

logger = logging.getLogger("lobbytracker.store")

Subscriber = Callable[[LobbyState], None]


@dataclass
class StoreResult:
    success: bool
    lobby: Lobby | None = None
    error: str | None = None


@dataclass(frozen=True)
class StatusUpdate:
    """Mark an opponent alive or dead."""

    is_dead: bool


@dataclass(frozen=True)
class RenameUpdate:
    """Fix a misspelled opponent name."""

    name: str


OpponentUpdate = Union[StatusUpdate, RenameUpdate]


class LobbyStore:
    """Holds the single current lobby for this process.

    State is immutable: every mutation builds new model objects and swaps
    them in, so a reader holding an old Lobby never sees it change. After a
    successful mutation the state is saved and subscribers are notified, in
    that order. Rejected mutations leave everything untouched.
    """

    def __init__(self, persistence: LobbyStatePersistence) -> None:
        self._persistence = persistence
        self._state = persistence.load()
        self._subscribers: list[Subscriber] = []

    # -- reading --------------------------------------------------------

    @property
    def state(self) -> LobbyState:
        return self._state

    def get(self) -> LobbyState:
        return self._state

    @property
    def current_lobby(self) -> Lobby | None:
        return self._state.current_lobby

    @property
    def opponent_name_history(self) -> tuple[str, ...]:
        return self._state.opponent_name_history

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback run after each change. Returns an unsubscribe."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def can_add_opponent(self, name: str) -> bool:
        lobby = self.current_lobby
        if lobby is None or is_roster_full(lobby) or not name.strip():
            return False
        return not name_conflicts(lobby.opponents, name)

    def predict_next(self) -> Opponent | None:
        """Predicted opponent for the lobby's current match.

        Once past the first cycle the rotation continues from whoever was
        last actually faced, as long as every earlier match has a recorded
        opponent. Otherwise it falls back to the plain slot rotation.
        """
        lobby = self.current_lobby
        if lobby is None:
            return None
        anchor = None
        if (
            lobby.current_match > MAX_OPPONENTS
            and len(lobby.match_history) >= lobby.current_match - 1
        ):
            anchor = lobby.last_faced_id
        return predict_opponent(lobby.current_match, lobby.opponents, anchor)

    def suggest_names(self, filter_text: str = "") -> list[str]:
        """Previously used names not yet in the roster, matching ``filter_text``."""
        wanted = normalize_name(filter_text)
        lobby = self.current_lobby
        used = {normalize_name(o.name) for o in lobby.opponents} if lobby else set()
        return [
            name
            for name in self._state.opponent_name_history
            if normalize_name(name) not in used and wanted in name.lower()
        ]

    # -- lifecycle ------------------------------------------------------

    def create_lobby(self, player_name: str = DEFAULT_PLAYER_NAME) -> StoreResult:
        """Replace the current lobby with a fresh, empty one."""
        lobby = Lobby.create(player_name)
        self._commit(replace(self._state, current_lobby=lobby))
        self._log_event("lobby_created", lobby, player_name=lobby.player_name)
        return StoreResult(success=True, lobby=lobby)

    def reset(self) -> StoreResult:
        """Discard the current lobby. Name history is kept."""
        self._commit(replace(self._state, current_lobby=None))
        logger.info(json.dumps({"event": "lobby_reset"}))
        return StoreResult(success=True)

    # -- roster ---------------------------------------------------------

    def add_opponent(self, name: str) -> StoreResult:
        lobby = self.current_lobby
        if lobby is None:
            return StoreResult(success=False, error="No active lobby")
        if is_roster_full(lobby):
            return StoreResult(
                success=False, lobby=lobby,
                error=f"Roster is full (max {MAX_OPPONENTS})",
            )
        clean = name.strip()
        if not clean:
            return StoreResult(success=False, lobby=lobby, error="Name is empty")
        if name_conflicts(lobby.opponents, clean):
            return StoreResult(
                success=False, lobby=lobby, error=f"'{clean}' is already in the lobby"
            )

        opponent = Opponent.create(clean)
        updated = replace(
            lobby.with_opponents((*lobby.opponents, opponent)),
            match_history=(*lobby.match_history, opponent.id),
        )

        history = self._state.opponent_name_history
        if not any(normalize_name(n) == normalize_name(clean) for n in history):
            history = (*history, clean)

        self._commit(LobbyState(current_lobby=updated, opponent_name_history=history))
        self._log_event(
            "opponent_added", updated,
            opponent_id=opponent.id, slot=len(updated.opponents),
        )
        return StoreResult(success=True, lobby=updated)

    def update_opponent(self, opponent_id: str, update: OpponentUpdate) -> StoreResult:
        lobby = self.current_lobby
        if lobby is None:
            return StoreResult(success=False, error="No active lobby")
        target = lobby.get_opponent(opponent_id)
        if target is None:
            return StoreResult(success=False, lobby=lobby, error="Opponent not found")

        if isinstance(update, StatusUpdate):
            if not update.is_dead and target.eliminated_at_match is not None:
                return StoreResult(
                    success=False, lobby=lobby,
                    error=f"{target.name} was eliminated in match "
                          f"#{target.eliminated_at_match}",
                )
            changed = replace(target, is_dead=update.is_dead)
        elif isinstance(update, RenameUpdate):
            clean = update.name.strip()
            if not clean:
                return StoreResult(success=False, lobby=lobby, error="Name is empty")
            others = [o for o in lobby.opponents if o.id != opponent_id]
            if name_conflicts(others, clean):
                return StoreResult(
                    success=False, lobby=lobby,
                    error=f"'{clean}' is already in the lobby",
                )
            changed = replace(target, name=clean)
        else:
            raise TypeError(f"Unsupported opponent update: {update!r}")

        updated = self._replace_opponents(lobby, {opponent_id: changed})
        self._commit(replace(self._state, current_lobby=updated))
        self._log_event(
            "opponent_updated", updated,
            opponent_id=opponent_id, update=type(update).__name__,
        )
        return StoreResult(success=True, lobby=updated)

    def set_opponent_status(self, opponent_id: str, is_dead: bool) -> StoreResult:
        return self.update_opponent(opponent_id, StatusUpdate(is_dead=is_dead))

    # -- matches --------------------------------------------------------

    def record_match_outcome(
        self, opponent_id: str, outcome: str, match_number: int
    ) -> StoreResult:
        """Append a result. Callers must not record the same match twice."""
        lobby = self.current_lobby
        if lobby is None:
            return StoreResult(success=False, error="No active lobby")
        if outcome not in OUTCOMES:
            return StoreResult(
                success=False, lobby=lobby, error=f"Unknown outcome: {outcome}"
            )
        if match_number < 1:
            return StoreResult(
                success=False, lobby=lobby, error="Match number must be at least 1"
            )
        target = lobby.get_opponent(opponent_id)
        if target is None:
            return StoreResult(success=False, lobby=lobby, error="Opponent not found")

        result = MatchResult(
            match_number=match_number, outcome=outcome, timestamp=utc_now()
        )
        changed = replace(target, match_results=(*target.match_results, result))
        updated = self._replace_opponents(lobby, {opponent_id: changed})
        self._commit(replace(self._state, current_lobby=updated))
        self._log_event(
            "match_outcome", updated,
            opponent_id=opponent_id, outcome=outcome, match=match_number,
        )
        return StoreResult(success=True, lobby=updated)

    def record_match_opponent(self, opponent_id: str) -> StoreResult:
        """Note who was actually faced; anchors later predictions."""
        lobby = self.current_lobby
        if lobby is None:
            return StoreResult(success=False, error="No active lobby")
        if lobby.get_opponent(opponent_id) is None:
            return StoreResult(success=False, lobby=lobby, error="Opponent not found")

        updated = replace(lobby, match_history=(*lobby.match_history, opponent_id))
        self._commit(replace(self._state, current_lobby=updated))
        self._log_event("match_opponent", updated, opponent_id=opponent_id)
        return StoreResult(success=True, lobby=updated)

    def record_elimination(
        self, opponent_id: str, killer_id: str | None, match_number: int
    ) -> StoreResult:
        """Mark an opponent eliminated and credit the killer, if any.

        ``killer_id`` is opaque: only a different roster member gets a kill
        credited. Any other value (e.g. the lobby id for the player) is just
        stored on the victim. An opponent cannot be its own killer.
        """
        lobby = self.current_lobby
        if lobby is None:
            return StoreResult(success=False, error="No active lobby")
        target = lobby.get_opponent(opponent_id)
        if target is None:
            return StoreResult(success=False, lobby=lobby, error="Opponent not found")
        if match_number < 1:
            return StoreResult(
                success=False, lobby=lobby, error="Match number must be at least 1"
            )
        if killer_id == opponent_id:
            return StoreResult(
                success=False, lobby=lobby, error="An opponent cannot eliminate itself"
            )

        changes = {
            opponent_id: replace(
                target,
                is_dead=True,
                killed_by=killer_id,
                eliminated_at_match=match_number,
            )
        }
        killer = lobby.get_opponent(killer_id) if killer_id is not None else None
        if killer is not None:
            changes[killer.id] = replace(killer, kill_count=killer.kill_count + 1)

        updated = self._replace_opponents(lobby, changes)
        self._commit(replace(self._state, current_lobby=updated))
        self._log_event(
            "opponent_eliminated", updated,
            opponent_id=opponent_id, killer_id=killer_id, match=match_number,
        )
        return StoreResult(success=True, lobby=updated)

    def advance_match(self) -> StoreResult:
        lobby = self.current_lobby
        if lobby is None:
            return StoreResult(success=False, error="No active lobby")
        if not is_roster_full(lobby):
            return StoreResult(
                success=False, lobby=lobby,
                error=f"Register all {MAX_OPPONENTS} opponents first",
            )

        updated = replace(
            lobby.with_opponents(lobby.opponents),
            current_match=lobby.current_match + 1,
        )
        self._commit(replace(self._state, current_lobby=updated))
        self._log_event("match_advanced", updated, match=updated.current_match)
        return StoreResult(success=True, lobby=updated)

    def update_player_name(self, name: str) -> StoreResult:
        lobby = self.current_lobby
        if lobby is None:
            return StoreResult(success=False, error="No active lobby")
        clean = name.strip()
        if not clean:
            return StoreResult(success=False, lobby=lobby, error="Name is empty")

        updated = replace(lobby, player_name=clean)
        self._commit(replace(self._state, current_lobby=updated))
        self._log_event("player_renamed", updated)
        return StoreResult(success=True, lobby=updated)

    # -- internals ------------------------------------------------------

    @staticmethod
    def _replace_opponents(lobby: Lobby, changes: dict[str, Opponent]) -> Lobby:
        return lobby.with_opponents(changes.get(o.id, o) for o in lobby.opponents)

    def _commit(self, state: LobbyState) -> None:
        self._state = state
        self._persistence.save(state)
        for callback in list(self._subscribers):
            callback(state)

    @staticmethod
    def _log_event(event: str, lobby: Lobby, **fields) -> None:
        logger.info(json.dumps({"event": event, "lobby_id": lobby.id, **fields}))
