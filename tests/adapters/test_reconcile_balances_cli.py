"""Tests for the reconcile_balances_cli adapter."""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

from cambio_ledger.adapters import reconcile_balances_cli


def _patch(monkeypatch, report=None, rows=None):
    fake_logger = MagicMock()
    recalculate = MagicMock()
    recalculate.run.return_value = report
    reconcile = MagicMock()
    reconcile.report_inconsistencies.return_value = rows or []
    monkeypatch.setattr(reconcile_balances_cli, "get_maintenance_logger", lambda: fake_logger)
    monkeypatch.setattr(reconcile_balances_cli, "build_database_adapter", lambda: object())
    monkeypatch.setattr(
        reconcile_balances_cli,
        "build_recalculate_balances_use_case",
        lambda db_port: recalculate,
    )
    monkeypatch.setattr(
        reconcile_balances_cli,
        "build_reconcile_balances_use_case",
        lambda db_port: reconcile,
    )
    return recalculate, reconcile


def _report(corrections=(), errors=(), executed=False):
    return SimpleNamespace(
        executed=executed,
        points_processed=2,
        pairs_checked=2,
        corrections=list(corrections),
        applied=len(corrections) if executed else 0,
        errors=list(errors),
    )


def _correction():
    return SimpleNamespace(
        point_name="Plaza",
        currency_code="USD",
        before=Decimal("130.00"),
        after=Decimal("150.00"),
        diff=Decimal("-20.00"),
    )


def test_dry_run_with_drift_exits_2(monkeypatch, capsys):
    """Drift found without --execute is reported with status 2."""
    recalculate, _ = _patch(monkeypatch, report=_report([_correction()]))

    code = reconcile_balances_cli.main([])

    assert code == 2
    recalculate.run.assert_called_once_with(
        execute=False,
        point_id=None,
        currency_codes=["USD"],
        include_inactive=False,
        limit=None,
    )
    out = capsys.readouterr().out
    assert "Plaza [USD]: 130.00 -> 150.00" in out


def test_execute_without_confirm_is_refused(monkeypatch):
    """--execute without CONFIRM=1 writes nothing."""
    recalculate, _ = _patch(monkeypatch, report=_report())
    monkeypatch.delenv("CONFIRM", raising=False)

    assert reconcile_balances_cli.main(["--execute"]) == 1
    recalculate.run.assert_not_called()


def test_execute_with_confirm_applies(monkeypatch):
    """Confirmed runs pass every option through and exit 0."""
    recalculate, _ = _patch(
        monkeypatch,
        report=_report([_correction()], executed=True),
    )
    monkeypatch.setenv("CONFIRM", "1")

    code = reconcile_balances_cli.main(
        ["--execute", "--all-currencies", "--include-inactive", "--limit", "5"]
    )

    assert code == 0
    kwargs = recalculate.run.call_args.kwargs
    assert kwargs["execute"] is True
    assert kwargs["currency_codes"] is None
    assert kwargs["include_inactive"] is True
    assert kwargs["limit"] == 5


def test_errors_exit_1(monkeypatch, capsys):
    """Per-pair errors make the batch fail."""
    _patch(monkeypatch, report=_report(errors=["Plaza [USD]: boom"]))

    assert reconcile_balances_cli.main(["--currency", "EUR"]) == 1
    assert "ERROR Plaza [USD]: boom" in capsys.readouterr().out


def test_report_mode_lists_inconsistencies(monkeypatch, capsys):
    """--report only reads and exits 2 when anything is off."""
    row = SimpleNamespace(
        point_name="Plaza",
        currency_code="USD",
        snapshot_amount=Decimal("130.00"),
        calculated_amount=Decimal("150.00"),
        diff=Decimal("-20.00"),
    )
    recalculate, _ = _patch(monkeypatch, rows=[row])

    assert reconcile_balances_cli.main(["--report"]) == 2
    recalculate.run.assert_not_called()
    assert "Inconsistent snapshots: 1" in capsys.readouterr().out
