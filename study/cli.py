"""
Scheduler CLI for inspecting and replaying review schedules offline.

Usage:
    python -m study.cli schedule easy
    python -m study.cli schedule 4 --interval 6 --ease 2.5 --now 2025-01-31T09:00:00
    python -m study.cli replay easy good again good --step-days 1
"""

import argparse
import json
import sys
from datetime import datetime

from study.errors import InvalidRating
from study.models import PriorSchedule
from study.ratings import parse_rating, rating_label
from study.scheduler import replay, schedule


def _parse_now(value):
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an ISO timestamp: {value}")


def _prior_from_args(args):
    if args.interval is None and args.ease is None:
        return None
    return PriorSchedule(interval_days=args.interval, ease_factor=args.ease)


def cmd_schedule(args):
    """Compute a single scheduling step."""
    quality = parse_rating(args.rating)
    state = schedule(quality, _prior_from_args(args), now=args.now)
    out = {'quality': quality, 'rating': rating_label(quality)}
    out.update(state.to_dict())
    print(json.dumps(out, indent=2))


def cmd_replay(args):
    """Fold a sequence of ratings, printing every intermediate state."""
    qualities = [parse_rating(r) for r in args.ratings]
    states = replay(qualities, _prior_from_args(args), now=args.now, step_days=args.step_days)
    rows = []
    for quality, state in zip(qualities, states):
        row = {'quality': quality, 'rating': rating_label(quality)}
        row.update(state.to_dict())
        rows.append(row)
    print(json.dumps(rows, indent=2))


def _add_prior_args(p):
    p.add_argument('--interval', type=int, default=None, help='Prior interval in days')
    p.add_argument('--ease', type=float, default=None, help='Prior ease factor')
    p.add_argument('--now', type=_parse_now, default=None, help='Review time (ISO 8601, UTC if naive)')


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='FlashNote review scheduler',
        prog='python -m study.cli',
    )
    subparsers = parser.add_subparsers(dest='command')

    schedule_parser = subparsers.add_parser('schedule', help='Schedule one rating')
    schedule_parser.add_argument('rating', help='0-5 or again/hard/good/easy')
    _add_prior_args(schedule_parser)

    replay_parser = subparsers.add_parser('replay', help='Replay a sequence of ratings')
    replay_parser.add_argument('ratings', nargs='+', help='0-5 or again/hard/good/easy')
    replay_parser.add_argument(
        '--step-days', type=int, default=None,
        help='Review every N days instead of on each due date',
    )
    _add_prior_args(replay_parser)

    args = parser.parse_args(argv)

    try:
        if args.command == 'schedule':
            cmd_schedule(args)
        elif args.command == 'replay':
            cmd_replay(args)
        else:
            parser.print_help()
            return 1
    except InvalidRating as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
