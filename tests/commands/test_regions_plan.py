"""Tests for the regions and plan commands."""

import json

from click.testing import CliRunner

from autogit.cli.cli import cli
from autogit.core.context import AutogitContext

PLAN_ARGS = ["--start", "2024-01-01", "--end", "2024-01-07", "--region", "NONE", "--seed", "1"]


def test_regions_lists_bundled_table() -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["regions"], obj=AutogitContext.for_test())

    assert result.exit_code == 0, result.output
    assert "United States" in result.stderr
    assert "Holiday table version 2024.1" in result.stderr


def test_plan_json_output() -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["plan", *PLAN_ARGS, "--branches", "2", "--commits", "5", "--json"],
        obj=AutogitContext.for_test(),
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["eligible_dates"] == 6
    assert data["branches"] == 2
    assert data["total_commits"] == 5
    assert not data["adjusted_branches"]
    assert all(a["branch"] == f"auto-{a['date']}" for a in data["assignments"])


def test_plan_is_reproducible_with_seed() -> None:
    runner = CliRunner()
    args = ["plan", *PLAN_ARGS, "--branches", "3", "--commits", "10", "--json"]

    first = runner.invoke(cli, args, obj=AutogitContext.for_test(seed=5))
    second = runner.invoke(cli, args, obj=AutogitContext.for_test(seed=99))

    assert json.loads(first.stdout) == json.loads(second.stdout)


def test_plan_reports_clamping() -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["plan", *PLAN_ARGS, "--branches", "10", "--commits", "20"],
        obj=AutogitContext.for_test(),
    )

    assert result.exit_code == 0, result.output
    assert "Branches reduced from 10 to 6" in result.stderr


def test_plan_rejects_bad_budget() -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["plan", *PLAN_ARGS, "--branches", "2", "--commits", "0"],
        obj=AutogitContext.for_test(),
    )

    assert result.exit_code == 1
    assert "Total commits must be at least 1" in result.stderr


def test_plan_reports_empty_pool() -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        [
            "plan",
            "--start",
            "2024-01-07",
            "--end",
            "2024-01-07",
            "--branches",
            "1",
            "--commits",
            "1",
        ],
        obj=AutogitContext.for_test(),
    )

    assert result.exit_code == 1
    assert "No valid dates found" in result.stderr
