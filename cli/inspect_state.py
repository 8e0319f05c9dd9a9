"""Inspect and validate a saved lobby state file.

Usage:
  python -m cli.inspect_state --file ~/.lobby-tracker/lobby-state.json
  python -m cli.inspect_state --file lobby-state.json --validate
  python -m cli.inspect_state --file lobby-state.json --migrate > upgraded.json
"""

from __future__ import annotations

import argparse
import json
import sys

from src.db.persistence import dumps, loads
from src.lobby.integrity import validate_lobby_integrity
from src.lobby.prediction import validate_unique_opponents


def inspect_state(file_path: str, validate: bool, upgrade: bool) -> None:
    with open(file_path, encoding="utf-8") as f:
        blob = f.read()

    if upgrade:
        state = loads(blob)
        print(dumps(state))
        return

    version = json.loads(blob).get("schemaVersion", 1)
    state = loads(blob)
    lobby = state.current_lobby

    if validate:
        if lobby is None:
            print("No lobby stored ✓")
            return
        errors = validate_lobby_integrity(lobby)
        if errors:
            print("Integrity errors:")
            for e in errors:
                print(f"  - {e}")
            sys.exit(1)
        else:
            print("State valid ✓")
        return

    print(f"Schema version: {version}")
    print(f"Name history: {', '.join(state.opponent_name_history) or '(empty)'}")
    if lobby is None:
        print("No current lobby")
        return

    print(f"Lobby ID: {lobby.id}")
    print(f"Created: {lobby.created_at.isoformat()}")
    print(f"Player: {lobby.player_name}")
    print(f"Match: {lobby.current_match} (complete: {lobby.is_complete})")
    print(f"Unique names: {validate_unique_opponents(lobby.opponents)}")
    print("Opponents:")
    for opp in lobby.opponents:
        status = "DEAD" if opp.is_dead else "alive"
        print(
            f"  {opp.name} [{status}] results={len(opp.match_results)} "
            f"kills={opp.kill_count} killedBy={opp.killed_by} "
            f"eliminatedAt={opp.eliminated_at_match}"
        )


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect lobby tracker state")
    parser.add_argument("--file", required=True, help="Path to state JSON")
    parser.add_argument("--validate", action="store_true", help="Validate integrity")
    parser.add_argument(
        "--migrate", action="store_true", help="Print the state upgraded to the current schema"
    )
    args = parser.parse_args()
    inspect_state(args.file, args.validate, args.migrate)


if __name__ == "__main__":
    main()
