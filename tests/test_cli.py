"""Tests for the command-line interface."""

import pandas as pd
import pytest
import yaml
from click.testing import CliRunner

from twolayer.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "config.yaml")


def test_ecs(runner, config_path):
    result = runner.invoke(main, ["--config", config_path, "ecs"])
    assert result.exit_code == 0
    assert "Equilibrium Climate Sensitivity (ECS): 1.85 K per CO₂ doubling" in result.output


def test_ecs_with_override(runner, config_path):
    result = runner.invoke(main, ["--config", config_path, "ecs", "--set", "B0=1.0"])
    assert result.exit_code == 0
    assert "3.7 K" in result.output


def test_bad_override(runner, config_path):
    result = runner.invoke(main, ["--config", config_path, "ecs", "--set", "gamma=1"])
    assert result.exit_code != 0
    assert "Unknown parameter" in result.output


def test_params(runner, config_path):
    result = runner.invoke(main, ["--config", config_path, "params"])
    assert result.exit_code == 0
    assert "Fmax" in result.output
    assert "W/m²" in result.output
    assert "Volcanic eruption" in result.output


def test_run_writes_csv(runner, config_path, tmp_path):
    out_dir = tmp_path / "out"
    result = runner.invoke(main, [
        "--config", config_path,
        "run",
        "--no-noise",
        "--t-end", "50",
        "--outputs", "csv",
        "-o", str(out_dir),
        "--log-dir", str(tmp_path / "logs"),
        "-e", "smoke",
    ])
    assert result.exit_code == 0, result.output
    assert "Two-layer climate model with all feedbacks and forcings defined." in result.output
    assert "ODE problem solved." in result.output
    assert "Equilibrium Climate Sensitivity (ECS): 1.85 K per CO₂ doubling" in result.output

    df = pd.read_csv(out_dir / "smoke_data.csv")
    assert df["time_years"].iloc[-1] == 50.0
    assert (tmp_path / "logs" / "smoke.log").exists()


def test_run_failure_exits_nonzero(runner, tmp_path):
    path = tmp_path / "stiff.yaml"
    path.write_text(yaml.safe_dump({"simulation": {"max_steps": 2000, "seed": 0}}))
    result = runner.invoke(main, [
        "--config", str(path),
        "run",
        "--set", "C_a=1e-12",
        "--outputs", "csv",
        "-o", str(tmp_path / "out"),
        "--log-dir", str(tmp_path / "logs"),
    ])
    assert result.exit_code == 1
    assert "Integration failed" in result.output
    assert not (tmp_path / "out").exists()
