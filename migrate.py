#!/usr/bin/env python3
"""
OLT Manager 스키마 마이그레이션 실행기

  python migrate.py                    # upgrade head
  python migrate.py upgrade <rev>
  python migrate.py downgrade -1
  python migrate.py current | heads
  python migrate.py history [base:head]
  python migrate.py stamp head         # create_all 로 만든 기존 DB 를 Alembic 관리로 편입
  python migrate.py revision -m "add column" [--autogenerate]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig

PROJECT_ROOT = Path(__file__).resolve().parent


def load_config() -> AlembicConfig:
    ini_path = PROJECT_ROOT / "alembic.ini"
    if not ini_path.exists():
        raise FileNotFoundError(f"alembic.ini not found at {ini_path}")
    cfg = AlembicConfig(str(ini_path))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    return cfg


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="OLT Manager database migrations")
    sub = parser.add_subparsers(dest="cmd")

    up = sub.add_parser("upgrade", help="Upgrade to a later revision")
    up.add_argument("revision", nargs="?", default="head")

    down = sub.add_parser("downgrade", help="Revert to a previous revision")
    down.add_argument("revision")

    sub.add_parser("current", help="Show the current revision")
    sub.add_parser("heads", help="Show available heads")

    hist = sub.add_parser("history", help="List revisions")
    hist.add_argument("range", nargs="?", default=None)

    stamp = sub.add_parser("stamp", help="Set the revision table without running migrations")
    stamp.add_argument("revision")

    rev = sub.add_parser("revision", help="Create a new revision file")
    rev.add_argument("-m", "--message", required=True)
    rev.add_argument("--autogenerate", action="store_true")

    parser.set_defaults(cmd="upgrade", revision="head")
    return parser


COMMANDS = {
    "upgrade": lambda cfg, a: command.upgrade(cfg, a.revision),
    "downgrade": lambda cfg, a: command.downgrade(cfg, a.revision),
    "current": lambda cfg, a: command.current(cfg),
    "heads": lambda cfg, a: command.heads(cfg),
    "history": lambda cfg, a: command.history(cfg, rev_range=a.range),
    "stamp": lambda cfg, a: command.stamp(cfg, a.revision),
    "revision": lambda cfg, a: command.revision(cfg, message=a.message, autogenerate=a.autogenerate),
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)

    # alembic/env.py 가 olt_manager 패키지를 임포트할 수 있어야 함
    if str(PROJECT_ROOT) not in sys.path:
        sys.path.insert(0, str(PROJECT_ROOT))

    try:
        COMMANDS[args.cmd](load_config(), args)
    except Exception as exc:
        sys.stderr.write(f"Migration '{args.cmd}' failed: {exc}\n")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
