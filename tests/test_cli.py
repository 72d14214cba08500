"""Tests for the command line interface."""

import sys

import pytest

import harness.main
from cli.main import EXIT_ERROR, EXIT_THRESHOLDS_FAILED, main
from common.models.metrics import CustomMetrics, MetricsReport, SummaryDocument
from common.models.run import RunResult
from harness.config import init_settings
from harness.core.driver import SetupError


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    for name in ("LOADTEST_BASE_URL", "LOADTEST_SEED", "LOADTEST_SUMMARY_PATH"):
        monkeypatch.delenv(name, raising=False)
    init_settings()
    yield
    init_settings()


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "run.yaml"
    path.write_text(
        "name: cli-test\n"
        "base_url: http://checkout.test\n"
        "start_vus: 0\n"
        "stages:\n"
        "  - {duration: 5s, target: 10}\n"
        "  - {duration: 10s, target: 10}\n"
        "thresholds:\n"
        "  real_errors: [\"rate<0.01\"]\n"
        "pools: {user_pool_size: 20, item_pool_size: 50}\n"
    )
    return path


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["loadtest", *args])
    main()


def fake_result(passed: bool) -> RunResult:
    summary = SummaryDocument(report=MetricsReport(), custom_metrics=CustomMetrics(), thresholds_passed=passed)
    return RunResult(id="run-1", name="cli-test", summary=summary)


class TestValidate:
    """Tests for the validate command."""

    def test_prints_profile(self, monkeypatch, capsys, config_file):
        run_cli(monkeypatch, "validate", "-c", str(config_file))

        out = capsys.readouterr().out
        assert "Run: cli-test" in out
        assert "Target: http://checkout.test/checkout" in out
        assert "Pools: 20 users, 50 items" in out
        assert "real_errors: rate<0.01" in out
        assert "Total duration: 15s, max 10 VUs" in out

    def test_flat_profile_override(self, monkeypatch, capsys, config_file):
        run_cli(monkeypatch, "validate", "-c", str(config_file), "--vus", "1000", "--duration", "1m")

        out = capsys.readouterr().out
        assert "start at 1000 VUs" in out
        assert "Total duration: 1m 0s, max 1000 VUs" in out

    def test_missing_config(self, monkeypatch, capsys, temp_dir):
        with pytest.raises(SystemExit) as exc:
            run_cli(monkeypatch, "validate", "-c", str(temp_dir / "missing.yaml"))

        assert exc.value.code == EXIT_ERROR
        assert "config file not found" in capsys.readouterr().out

    def test_invalid_threshold(self, monkeypatch, capsys, temp_dir):
        path = temp_dir / "bad.yaml"
        path.write_text("thresholds:\n  http_reqs: [\"rate>>1\"]\n")

        with pytest.raises(SystemExit) as exc:
            run_cli(monkeypatch, "validate", "-c", str(path))

        assert exc.value.code == EXIT_ERROR

    def test_no_command(self, monkeypatch):
        with pytest.raises(SystemExit) as exc:
            run_cli(monkeypatch)

        assert exc.value.code == EXIT_ERROR


class TestRun:
    """Tests for exit codes of the run command."""

    def test_thresholds_passed(self, monkeypatch, config_file):
        async def fake_run(config, transport=None, write_summary=True):
            return fake_result(True)

        monkeypatch.setattr(harness.main, "run_load_test", fake_run)

        run_cli(monkeypatch, "run", "-c", str(config_file), "--no-summary-file")

    def test_thresholds_failed(self, monkeypatch, capsys, config_file):
        async def fake_run(config, transport=None, write_summary=True):
            return fake_result(False)

        monkeypatch.setattr(harness.main, "run_load_test", fake_run)

        with pytest.raises(SystemExit) as exc:
            run_cli(monkeypatch, "run", "-c", str(config_file))

        assert exc.value.code == EXIT_THRESHOLDS_FAILED
        assert "Some thresholds have failed" in capsys.readouterr().out

    def test_setup_failure(self, monkeypatch, config_file):
        async def fake_run(config, transport=None, write_summary=True):
            raise SetupError("Setup failed: pool size must be at least 1")

        monkeypatch.setattr(harness.main, "run_load_test", fake_run)

        with pytest.raises(SystemExit) as exc:
            run_cli(monkeypatch, "run", "-c", str(config_file))

        assert exc.value.code == EXIT_ERROR

    def test_overrides_reach_config(self, monkeypatch, config_file):
        seen = {}

        async def fake_run(config, transport=None, write_summary=True):
            seen["config"] = config
            seen["write_summary"] = write_summary
            return fake_result(True)

        monkeypatch.setattr(harness.main, "run_load_test", fake_run)

        run_cli(
            monkeypatch, "run", "-c", str(config_file),
            "--base-url", "http://other.test", "--seed", "3", "--no-summary-file",
        )

        assert seen["config"].base_url == "http://other.test"
        assert seen["config"].seed == 3
        assert seen["write_summary"] is False
