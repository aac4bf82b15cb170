"""
Tests for the mooresim command line interface.
"""

import json

import pytest

from mooresim.cli import main


INVALID_TEXT = """Q:
S0, S1
Σ:
0
Γ:
A
Estado Inicial:
S9
Tabla de Transición:
S0, A, S1
"""


@pytest.fixture
def machine_file(tmp_path, quintuple_text):
    path = tmp_path / "machine.txt"
    path.write_text(quintuple_text, encoding="utf-8")
    return path


@pytest.fixture
def flat_file(tmp_path, flat_text):
    path = tmp_path / "parity.txt"
    path.write_text(flat_text, encoding="utf-8")
    return path


def test_validate_ok(machine_file, capsys):
    assert main(["validate", str(machine_file)]) == 0
    assert "Machine is valid: 2 states, 4 transitions" in capsys.readouterr().out


def test_validate_invalid(tmp_path, capsys):
    path = tmp_path / "bad.txt"
    path.write_text(INVALID_TEXT, encoding="utf-8")

    assert main(["validate", str(path)]) == 1
    out = capsys.readouterr().out
    assert "Machine definition is invalid:" in out
    assert "Initial state 'S9' is not one of the defined states" in out


def test_missing_section(tmp_path, capsys):
    path = tmp_path / "partial.txt"
    path.write_text("Q:\nS0\n", encoding="utf-8")

    assert main(["validate", str(path)]) == 1
    assert "Error: Missing section" in capsys.readouterr().out


def test_unsupported_extension(tmp_path, capsys):
    path = tmp_path / "machine.csv"
    path.write_text("", encoding="utf-8")

    assert main(["validate", str(path)]) == 1
    assert "Only .txt or .json" in capsys.readouterr().out


def test_layout_json(machine_file, tmp_path):
    out = tmp_path / "layout.json"
    assert main(["layout", str(machine_file), "--output", str(out)]) == 0

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["state_positions"]["S0"] == {"x": 450.0, "y": 135.0}
    assert len(data["transitions"]) == 4


def test_export_flat_to_quintuple(flat_file, capsys):
    assert main(["--dialect", "flat", "export", str(flat_file)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("QUINTUPLA MAQUINA DE MOORE")
    assert "even, E, odd, even" in out


def test_table(machine_file, capsys):
    assert main(["table", str(machine_file)]) == 0
    out = capsys.readouterr().out
    assert "state" in out and "output" in out
    assert "S1" in out


def test_simulate(machine_file, tmp_path, capsys):
    history = tmp_path / "history.csv"
    code = main([
        "simulate", str(machine_file), "010",
        "--delay", "0", "--history-out", str(history),
    ])

    assert code == 0
    assert "Final state: S0 (output A)" in capsys.readouterr().out
    assert history.read_text(encoding="utf-8").splitlines()[0] == "step,state,input,output"


def test_simulate_rejects_bad_symbols(machine_file, capsys):
    assert main(["simulate", str(machine_file), "012", "--delay", "0"]) == 1
    assert "outside the input alphabet" in capsys.readouterr().out


def test_simulate_uses_config(machine_file, tmp_path, capsys):
    config = tmp_path / "config.yaml"
    config.write_text("simulation:\n  step_delay: 0\n", encoding="utf-8")

    assert main(["--config", str(config), "simulate", str(machine_file), "1"]) == 0
    assert "Final state: S0" in capsys.readouterr().out


def test_render(machine_file, tmp_path):
    out = tmp_path / "machine.png"
    assert main(["render", str(machine_file), "--output", str(out)]) == 0
    assert out.exists()


@pytest.mark.parametrize("bits,expected", [
    ("0011", "0110"),
    ("0000", "0011"),
    ("1001", "1100"),
])
def test_excess3(bits, expected, capsys):
    assert main(["excess3", bits]) == 0
    assert f"{bits} -> {expected}" in capsys.readouterr().out


def test_excess3_rejects_non_bits(capsys):
    assert main(["excess3", "012"]) == 1
    assert "Expected a non-empty bit string" in capsys.readouterr().out


def test_invalid_utf8_file(tmp_path, capsys):
    path = tmp_path / "latin1.txt"
    path.write_bytes("Q:\nEstado \xf1\n".encode("latin-1"))

    assert main(["validate", str(path)]) == 1
    assert "is not valid UTF-8 text" in capsys.readouterr().out


def test_config_with_unknown_key(machine_file, tmp_path, capsys):
    config = tmp_path / "config.yaml"
    config.write_text("simulation:\n  speed: 2\n", encoding="utf-8")

    assert main(["--config", str(config), "validate", str(machine_file)]) == 1
    assert "Unknown keys in config section 'simulation': speed" in capsys.readouterr().out
