from __future__ import annotations

from pathlib import Path

import numpy as np
import yaml
from typer.testing import CliRunner

from sedlaunch.cli.main import app


def _write_config(path: Path, output_name: str, family: str = "bpass") -> None:
    config = {
        "resources": {"paths": ["tables"]},
        "family": {"kind": family},
        "snapshot": {"path": "entities.npz"},
        "source": {"wavelength_range_um": [0.1, 10.0]},
        "launch": {"num_packets": 300, "emission_bias": 0.5, "chunk_size": 64, "workers": 2},
        "output": {"path": output_name},
        "seed": 42,
    }
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f)


def test_cli_synth_generate_and_run(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["table", "synth", str(tmp_path / "tables"), "--family", "bpass"])
    assert result.exit_code == 0, result.stdout
    assert (tmp_path / "tables" / "BpassSEDFamily_Chabrier100.npz").exists()

    result = runner.invoke(app, ["snapshot", "generate", str(tmp_path / "entities.npz"), "--count", "20"])
    assert result.exit_code == 0, result.stdout

    cfg_path = tmp_path / "config.yaml"
    _write_config(cfg_path, "packets.npz")
    result = runner.invoke(app, ["run", str(cfg_path)])
    assert result.exit_code == 0, result.stdout
    assert "Launched 300 packets from 20 entities" in result.stdout

    with np.load(tmp_path / "packets.npz") as data:
        np.testing.assert_array_equal(data["history_index"], np.arange(300))
        assert np.all(data["weight"] > 0)


def test_cli_run_with_overrides(tmp_path: Path) -> None:
    runner = CliRunner()
    runner.invoke(app, ["table", "synth", str(tmp_path / "tables"), "-f", "bpass"])
    runner.invoke(app, ["snapshot", "generate", str(tmp_path / "entities.npz"), "-n", "8"])
    cfg_path = tmp_path / "config.yaml"
    _write_config(cfg_path, "packets.npz")

    out = tmp_path / "override.txt"
    result = runner.invoke(app, ["run", str(cfg_path), "-o", str(out), "-n", "16", "--bias", "1.0", "--seed", "3"])
    assert result.exit_code == 0, result.stdout
    lines = out.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 17


def test_cli_run_missing_table_fails(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("SEDLAUNCH_RESOURCES", raising=False)
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()
    runner.invoke(app, ["snapshot", "generate", str(tmp_path / "entities.npz")])
    cfg_path = tmp_path / "config.yaml"
    _write_config(cfg_path, "packets.npz", family="fsps")
    result = runner.invoke(app, ["run", str(cfg_path)])
    assert result.exit_code == 1
    assert not (tmp_path / "packets.npz").exists()


def test_cli_run_invalid_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    with open(cfg_path, "w", encoding="utf-8") as f:
        yaml.safe_dump({"family": {"kind": "bpass"}, "snapshot": {"path": "x.npz"}, "launch": {"emission_bias": 2}}, f)
    result = CliRunner().invoke(app, ["run", str(cfg_path)])
    assert result.exit_code == 2


def test_cli_rejects_unknown_output_extension(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    _write_config(cfg_path, "packets.npz")
    result = CliRunner().invoke(app, ["run", str(cfg_path), "-o", str(tmp_path / "out.las")])
    assert result.exit_code == 2


def test_cli_table_info(tmp_path: Path) -> None:
    runner = CliRunner()
    runner.invoke(app, ["table", "synth", str(tmp_path), "-f", "fsps"])
    result = runner.invoke(app, ["table", "info", "FSPSSEDFamily_Variable", "-r", str(tmp_path)])
    assert result.exit_code == 0, result.stdout
    assert "axis 0: lambda(m)" in result.stdout
    assert "axis 2: alpha(1)" in result.stdout
    assert "quantity: Llambda(W/m)" in result.stdout

    result = runner.invoke(app, ["table", "info", "Missing", "-r", str(tmp_path)])
    assert result.exit_code == 1


def test_cli_run_empty_snapshot_is_a_config_error(tmp_path: Path) -> None:
    runner = CliRunner()
    runner.invoke(app, ["table", "synth", str(tmp_path / "tables"), "-f", "bpass"])
    np.savez(tmp_path / "entities.npz", position=np.zeros((0, 3)), parameters=np.zeros((0, 3)))
    cfg_path = tmp_path / "config.yaml"
    _write_config(cfg_path, "packets.npz")
    result = runner.invoke(app, ["run", str(cfg_path)])
    assert result.exit_code == 2
    assert not isinstance(result.exception, ValueError)
    assert not (tmp_path / "packets.npz").exists()
