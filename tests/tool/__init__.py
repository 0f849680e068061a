"""Test helpers for gitopssets tools."""

import pytest

from gitopssets.tool.gitopssets import main


def run_command(args: list[str], capsys: pytest.CaptureFixture[str]) -> str:
    """Run the command line tool and return its output."""
    main(args)
    return capsys.readouterr().out
