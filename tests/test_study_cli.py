"""Tests for study/cli.py -- schedule and replay subcommands."""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from study.cli import main


def test_schedule_cold_start_easy(capsys):
    code = main(['schedule', 'easy', '--now', '2025-01-31T09:00:00'])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out['quality'] == 5
    assert out['rating'] == 'easy'
    assert out['interval_days'] == 4
    assert out['ease_factor'] == 2.6
    assert out['due_at'].startswith('2025-02-04T09:00:00')


def test_schedule_with_prior(capsys):
    code = main(['schedule', '5', '--interval', '6', '--ease', '2.5', '--now', '2025-01-01T00:00:00'])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out['interval_days'] == 16


def test_replay_prints_every_step(capsys):
    code = main(['replay', 'easy', 'again', '--now', '2025-01-31T09:00:00'])
    assert code == 0
    rows = json.loads(capsys.readouterr().out)
    assert [r['interval_days'] for r in rows] == [4, 1]
    assert rows[1]['ease_factor'] == 2.4
    assert rows[1]['reviewed_at'] == rows[0]['due_at']


def test_invalid_rating_exit_code(capsys):
    code = main(['schedule', 'perfect'])
    assert code == 2
    assert 'Invalid rating' in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    assert main([]) == 1
