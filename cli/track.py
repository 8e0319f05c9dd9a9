"""Command-line lobby tracker.

Usage:
  python -m cli.track new --player Sam
  python -m cli.track add Alice
  python -m cli.track predict
  python -m cli.track result Alice win --match 1
  python -m cli.track eliminate Alice --by Bob --match 3
  python -m cli.track advance
  python -m cli.track show
"""

from __future__ import annotations

import argparse
import logging
import sys

from src.db.file import FileBlobStore
from src.db.persistence import LobbyStatePersistence
from src.lobby.models import Lobby, Opponent
from src.lobby.store import LobbyStore, RenameUpdate, StoreResult
from src.utils.constants import MAX_OPPONENTS, OUTCOMES, STORAGE_KEY


def display_lobby(lobby: Lobby, predicted: Opponent | None = None) -> str:
    """Format the roster for terminal display."""
    lines = [
        "",
        f"{'=' * 50}",
        f"  {lobby.player_name} - Match #{lobby.current_match}",
        f"{'=' * 50}",
        "",
        f"  Roster: {len(lobby.opponents)}/{MAX_OPPONENTS}"
        + (" (complete)" if lobby.is_complete else ""),
    ]
    names = {opp.id: opp.name for opp in lobby.opponents}
    for slot, opp in enumerate(lobby.opponents, 1):
        status = "DEAD" if opp.is_dead else "alive"
        extra = f"  W{opp.wins}/L{opp.losses}  kills: {opp.kill_count}"
        if opp.is_dead and opp.eliminated_at_match is not None:
            killer = names.get(opp.killed_by or "", "player" if opp.killed_by else "?")
            extra += f"  (out at #{opp.eliminated_at_match} by {killer})"
        marker = " ← next" if predicted is not None and predicted.id == opp.id else ""
        lines.append(f"    {slot}. {opp.name} [{status}]{extra}{marker}")
    lines.append("")
    return "\n".join(lines)


def _resolve(lobby: Lobby, name: str) -> Opponent:
    opp = lobby.find_opponent(name)
    if opp is None:
        print(f"Unknown opponent: {name}")
        sys.exit(1)
    return opp


def _require_lobby(store: LobbyStore) -> Lobby:
    lobby = store.current_lobby
    if lobby is None:
        print("No active lobby. Start one with: new")
        sys.exit(1)
    return lobby


def _report(result: StoreResult, message: str) -> None:
    if not result.success:
        print(f"Rejected: {result.error}")
        sys.exit(1)
    print(message)


def run_command(store: LobbyStore, args: argparse.Namespace) -> None:
    command = args.command

    if command == "new":
        result = store.create_lobby(args.player)
        _report(result, f"New lobby for {result.lobby.player_name}")
        return

    if command == "reset":
        store.reset()
        print("Lobby cleared")
        return

    if command == "suggest":
        for name in store.suggest_names(args.text):
            print(name)
        return

    lobby = _require_lobby(store)

    if command == "add":
        _report(store.add_opponent(args.name), f"Added {args.name.strip()}")
    elif command == "status":
        opp = _resolve(lobby, args.name)
        result = store.set_opponent_status(opp.id, args.dead)
        _report(result, f"{opp.name} is now {'dead' if args.dead else 'alive'}")
    elif command == "rename":
        opp = _resolve(lobby, args.name)
        result = store.update_opponent(opp.id, RenameUpdate(args.new_name))
        _report(result, f"Renamed {opp.name} to {args.new_name.strip()}")
    elif command == "result":
        opp = _resolve(lobby, args.name)
        match = args.match or lobby.current_match
        result = store.record_match_outcome(opp.id, args.outcome, match)
        _report(result, f"Match #{match}: {args.outcome} vs {opp.name}")
    elif command == "faced":
        opp = _resolve(lobby, args.name)
        _report(store.record_match_opponent(opp.id), f"Faced {opp.name}")
    elif command == "eliminate":
        opp = _resolve(lobby, args.name)
        if args.by is None:
            killer_id = None
        elif args.by.lower() == "me":
            killer_id = lobby.id
        else:
            killer_id = _resolve(lobby, args.by).id
        match = args.match or lobby.current_match
        result = store.record_elimination(opp.id, killer_id, match)
        _report(result, f"{opp.name} eliminated in match #{match}")
    elif command == "advance":
        result = store.advance_match()
        match = result.lobby.current_match if result.success else None
        _report(result, f"Now at match #{match}")
    elif command == "player":
        _report(store.update_player_name(args.name), f"Player is {args.name.strip()}")
    elif command == "predict":
        predicted = store.predict_next()
        if predicted is None:
            print("No prediction available")
        else:
            print(f"Match #{lobby.current_match}: {predicted.name}")
    elif command == "show":
        print(display_lobby(lobby, store.predict_next()))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Track a seven-opponent lobby")
    parser.add_argument("--data-dir", help="Directory holding the state file")
    parser.add_argument("--key", default=STORAGE_KEY, help="Storage key")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log events")
    sub = parser.add_subparsers(dest="command", required=True)

    new = sub.add_parser("new", help="Start a new lobby")
    new.add_argument("--player", default="Player", help="Your name")

    add = sub.add_parser("add", help="Register the next opponent")
    add.add_argument("name")

    status = sub.add_parser("status", help="Toggle an opponent's status")
    status.add_argument("name")
    group = status.add_mutually_exclusive_group(required=True)
    group.add_argument("--dead", dest="dead", action="store_true")
    group.add_argument("--alive", dest="dead", action="store_false")

    rename = sub.add_parser("rename", help="Rename an opponent")
    rename.add_argument("name")
    rename.add_argument("new_name")

    result = sub.add_parser("result", help="Record a match outcome")
    result.add_argument("name")
    result.add_argument("outcome", choices=OUTCOMES)
    result.add_argument("--match", type=int, help="Match number (default: current)")

    faced = sub.add_parser("faced", help="Record who you actually faced")
    faced.add_argument("name")

    eliminate = sub.add_parser("eliminate", help="Record an elimination")
    eliminate.add_argument("name")
    eliminate.add_argument("--by", help="Killer's name, or 'me'")
    eliminate.add_argument("--match", type=int, help="Match number (default: current)")

    sub.add_parser("advance", help="Move to the next match")

    player = sub.add_parser("player", help="Change your name")
    player.add_argument("name")

    sub.add_parser("predict", help="Show the predicted next opponent")
    sub.add_parser("show", help="Show the lobby")

    suggest = sub.add_parser("suggest", help="Suggest previously seen names")
    suggest.add_argument("text", nargs="?", default="")

    sub.add_parser("reset", help="Discard the current lobby")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(name)s %(levelname)s %(message)s",
    )
    persistence = LobbyStatePersistence(FileBlobStore(args.data_dir), args.key)
    run_command(LobbyStore(persistence), args)


if __name__ == "__main__":
    main()
