"""
Progress report for a JSON-lines session history file.

Prints the current streak, readiness per category and which premium
categories are unlocked. Useful for checking a file written with
HISTORY_STORE=file.

Usage:
    python scripts/history_report.py data/session_history.jsonl
    python scripts/history_report.py history.jsonl --required-level 70 --timezone Europe/Berlin
"""

import argparse
import asyncio
import os
import sys
from typing import List, Optional
from zoneinfo import ZoneInfo

# Add the cognitive_trainer package to Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(project_root, "cognitive_trainer", "src"))

from cognitive_trainer.access_gate import AccessGate
from cognitive_trainer.config import EngineSettings
from cognitive_trainer.history_store import JsonlHistoryStore
from cognitive_trainer.readiness_calculator import ReadinessCalculator
from cognitive_trainer.streak_tracker import StreakTracker


def build_parser() -> argparse.ArgumentParser:
    settings = EngineSettings.from_env()
    parser = argparse.ArgumentParser(description="Streak, readiness and access report for a history file")
    parser.add_argument("history_file", help="JSON-lines history written by JsonlHistoryStore")
    parser.add_argument(
        "--required-level",
        type=int,
        default=settings.required_level,
        help=f"Readiness needed to unlock a category (default: {settings.required_level})",
    )
    parser.add_argument(
        "--timezone",
        default=settings.streak_timezone,
        help="Timezone whose calendar days count toward the streak",
    )
    parser.add_argument("--window-days", type=int, default=settings.readiness_window_days)
    parser.add_argument("--expected-sessions", type=int, default=settings.expected_sessions)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if not os.path.exists(args.history_file):
        print(f"❌ History file not found: {args.history_file}")
        return 1

    entries = asyncio.run(JsonlHistoryStore(args.history_file).load_history())
    streak = StreakTracker(ZoneInfo(args.timezone)).compute_streak(entries)
    calculator = ReadinessCalculator(
        category_modifiers=EngineSettings.from_env().category_modifiers,
        expected_sessions=args.expected_sessions,
        window_days=args.window_days,
    )
    profile = calculator.compute_profile(entries)
    gate = AccessGate(required_level=args.required_level)

    print("=" * 60)
    print(f"📊 HISTORY REPORT: {args.history_file}")
    print("=" * 60)
    print(f"Sessions recorded: {len(entries)}")

    print("\n🔥 Streak")
    print(f"   Current: {streak.current_streak_days} day(s)")
    print(f"   Longest: {streak.longest_streak_days} day(s)")
    if streak.is_at_risk:
        print("   ⚠️  Nothing completed today yet")
    if streak.milestone:
        print(f"   {streak.milestone}")

    print(f"\n📈 Readiness (last {args.window_days} days)")
    for category, level in profile.items():
        if level.expected:
            print(f"   {category:15s} {level.level:3d}  ({level.completed}/{level.expected} x {level.modifier})")
        else:
            print(f"   {category:15s} {level.level:3d}")

    print(f"\n🔐 Access (required level {args.required_level})")
    for category in calculator.categories:
        decision = gate.has_access(profile, category)
        if decision.granted:
            print(f"   ✅ {category}")
        else:
            print(f"   🔒 {category}: {decision.remaining} more point(s) needed")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
