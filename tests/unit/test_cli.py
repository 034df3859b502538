"""Tests for the command-line entry point and bootstrap wiring."""

import json
import logging

import pytest

from gym_kernel.bootstrap import bootstrap
from gym_kernel.cli import main
from gym_kernel.config import KernelSettings
from gym_kernel.db.engine import reset_engine
from gym_kernel.logging_config import configure_logging, reset_logging
from gym_kernel.uow import ExecutionMode


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    for name in ("GYM_KERNEL_CONFIG", "GYM_KERNEL_EXECUTION_MODE", "GYM_KERNEL_DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)
    yield f"sqlite:///{tmp_path / 'cli.db'}"
    reset_engine()
    reset_logging()
    configure_logging(level=logging.DEBUG)


class TestBootstrap:
    def test_sqlite_runs_atomic(self, database_url):
        kernel = bootstrap(KernelSettings(database_url=database_url))
        assert kernel.coordinator.mode is ExecutionMode.ATOMIC

    def test_sequential_can_be_forced(self, database_url):
        kernel = bootstrap(KernelSettings(database_url=database_url, execution_mode="sequential"))
        assert kernel.coordinator.mode is ExecutionMode.SEQUENTIAL

        result = kernel.clients.create_client("Ana", "Perez", "ana@example.com")
        assert result.success


class TestCli:
    def test_init_and_check(self, database_url, capsys):
        assert main(["--database-url", database_url, "init-db"]) == 0
        capsys.readouterr()

        assert main(["--database-url", database_url, "check"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output == {"mode": "atomic", "audit_chain_valid": True}

    def test_reconcile_on_empty_store(self, database_url, capsys):
        assert main(["--database-url", database_url, "reconcile"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output["failed_items"] == 0

    def test_cancel_unknown_contract_fails(self, database_url, capsys):
        code = main(
            ["--database-url", database_url, "cancel-contract", "00000000-0000-0000-0000-0000000000aa"]
        )
        output = json.loads(capsys.readouterr().out)
        assert code == 1
        assert output["error_code"] == "CONTRACT_NOT_FOUND"

    def test_malformed_id_exits_with_error(self, database_url, capsys):
        assert main(["--database-url", database_url, "delete-client", "nope"]) == 2
        assert "Invalid identifier" in capsys.readouterr().err
