from __future__ import annotations

import argparse
import sys
from pathlib import Path

from questboard_api.profile_store import get_profile_store
from questboard_api.submissions import standings
from questboard_engine.ranking import normalize_strategy, rank_of


def main() -> None:
    parser = argparse.ArgumentParser(description="Back up, restore or inspect profiles.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_export = sub.add_parser("export", help="Write a profile backup as JSON.")
    p_export.add_argument("username")
    p_export.add_argument("--out", default="", help="Output path (default: stdout).")

    p_import = sub.add_parser("import", help="Restore a profile from a JSON backup.")
    p_import.add_argument("path")

    p_delete = sub.add_parser("delete", help="Delete a profile and its history.")
    p_delete.add_argument("username")

    p_rank = sub.add_parser("rank", help="Print a user's current rank.")
    p_rank.add_argument("username")
    p_rank.add_argument("--sort-by", default="total")

    args = parser.parse_args()
    store = get_profile_store()

    if args.cmd == "export":
        raw = store.export_json(args.username)
        if raw is None:
            sys.exit(f"no profile for {args.username}")
        if args.out:
            Path(args.out).write_bytes(raw)
        else:
            print(raw.decode("utf-8"))
    elif args.cmd == "import":
        profile = store.import_json(Path(args.path).read_bytes())
        if profile is None:
            sys.exit(f"could not import {args.path}")
        print(f"imported {profile.username} (level {profile.level})")
    elif args.cmd == "delete":
        if not store.delete(args.username):
            sys.exit(f"no profile for {args.username}")
        print(f"deleted {args.username}")
    else:
        strategy = normalize_strategy(args.sort_by)
        result = rank_of(standings(store, strategy), args.username)
        rank = "unranked" if result.rank is None else f"#{result.rank}"
        print(f"{args.username}: {rank} of {result.total} ({strategy}, score={result.score})")


if __name__ == "__main__":
    main()
