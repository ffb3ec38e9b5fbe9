"""Tests for the decivue command line."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID

import pytest

from decivue.cli import build_parser, main
from decivue.core.schemas.conflict import DetectionReport
from decivue.core.schemas.evaluation import BatchEvaluationResult

DECISION_ID = "6f1c2a1e-0000-4000-8000-000000000001"


def _session_factory():
    session_cm = MagicMock()
    session_cm.__aenter__ = AsyncMock(return_value=MagicMock())
    session_cm.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=session_cm)


@pytest.fixture
def cli_env():
    with patch("decivue.cli.get_session_factory", return_value=_session_factory()), patch(
        "decivue.cli.close_database", new=AsyncMock()
    ) as close, patch("decivue.cli.configure_logging"):
        yield close


# --- Parsing ---


def test_evaluate_ids_are_uuids():
    args = build_parser().parse_args(["evaluate", DECISION_ID])
    assert args.decision_ids == [UUID(DECISION_ID)]
    assert args.pending is False


def test_evaluate_modes_are_exclusive():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["evaluate", "--pending", "--all"])


def test_seed_flags():
    args = build_parser().parse_args(["seed", "scenario.json", "--no-evaluate"])
    assert args.scenario == "scenario.json"
    assert args.no_evaluate is True


def test_detect_default_kind():
    assert build_parser().parse_args(["detect-conflicts"]).kind == "all"


def test_command_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_evaluate_needs_a_target(cli_env):
    with pytest.raises(SystemExit) as exc:
        main(["evaluate"])
    assert exc.value.code == 2


# --- Commands ---


def test_evaluate_exit_code_reflects_failures(cli_env, capsys):
    batch = BatchEvaluationResult(
        evaluated=0, failed=1, results=[], errors={DECISION_ID: "Decision not found"}
    )
    service = MagicMock()
    service.evaluate_batch = AsyncMock(return_value=batch)

    with patch("decivue.cli.EvaluationService.from_session", return_value=service):
        assert main(["--plain-logs", "evaluate", DECISION_ID]) == 1

    service.evaluate_batch.assert_awaited_once_with([UUID(DECISION_ID)], triggered_by="cli")
    cli_env.assert_awaited_once()
    assert "Evaluated 0, failed 1" in capsys.readouterr().err


def test_evaluate_pending(cli_env):
    service = MagicMock()
    service.evaluate_pending = AsyncMock(
        return_value=BatchEvaluationResult(evaluated=0, failed=0, results=[], errors={})
    )
    with patch("decivue.cli.EvaluationService.from_session", return_value=service):
        assert main(["evaluate", "--pending"]) == 0
    service.evaluate_pending.assert_awaited_once()


def test_detect_conflicts_prints_findings(cli_env, capsys):
    report = DetectionReport(
        compared=1,
        detected=1,
        conflicts=[
            {
                "id": "c1",
                "a": "a1",
                "b": "b1",
                "conflict_type": "CONTRADICTORY",
                "confidence_score": 0.94,
                "explanation": "demand is expected to both increase and decrease",
            }
        ],
    )
    service = MagicMock()
    service.detect_assumption_conflicts = AsyncMock(return_value=report)
    service.detect_decision_conflicts = AsyncMock()

    with patch("decivue.cli.ConflictService.from_session", return_value=service):
        assert main(["detect-conflicts", "--kind", "assumptions"]) == 0

    service.detect_decision_conflicts.assert_not_awaited()
    out = capsys.readouterr().out
    assert "assumption: compared 1 pairs, 1 new conflict(s)" in out
    assert "a1 <-> b1  CONTRADICTORY (0.94)" in out


def test_listen_passes_options_to_listener(cli_env, tmp_path):
    state_file = tmp_path / "state.json"
    with patch("decivue.cli.run_listener", new=AsyncMock()) as run:
        code = main(
            ["listen", "--once", "--webhook", "http://hooks.test/x", "--state-file", str(state_file)]
        )

    assert code == 0
    kwargs = run.await_args.kwargs
    assert kwargs["once"] is True
    assert kwargs["webhook_url"] == "http://hooks.test/x"
    assert kwargs["state_file"] == state_file
    assert kwargs["api_url"].endswith("/api/v1")


def test_seed_reports_invalid_scenario(cli_env, tmp_path, capsys):
    scenario = tmp_path / "broken.json"
    scenario.write_text(
        '{"decisions": [{"key": "d1", "title": "Expand", "assumptions": ["missing"]}]}'
    )

    with patch("decivue.cli.init_database", new=AsyncMock()) as init_db:
        assert main(["seed", str(scenario)]) == 2

    init_db.assert_not_awaited()
    err = capsys.readouterr().err
    assert f"Invalid scenario {scenario}" in err
    assert "unknown assumption 'missing'" in err


def test_seed_reports_missing_file(cli_env, tmp_path, capsys):
    assert main(["seed", str(tmp_path / "nope.json")]) == 2
    assert "Cannot read scenario" in capsys.readouterr().err
