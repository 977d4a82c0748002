"""
Tests for the command line entry point.
"""

import json

from main import main


def _write_json(tmp_path, name, payload):
    path = tmp_path / name
    path.write_text(json.dumps(payload))
    return str(path)


def test_kelly(capsys):
    code = main(["--kelly", "--prob", "0.5", "--odds", "150", "--bankroll", "1000"])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["is_valid"]
    assert out["result"]["recommended_stake"] == 50.0


def test_kelly_invalid_inputs_are_reported(capsys):
    code = main(["--kelly", "--prob", "1.5", "--odds", "150", "--bankroll", "5"])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert not out["is_valid"]
    assert len(out["errors"]) == 2


def test_analyze(tmp_path, capsys, strong_leg, weak_leg):
    path = _write_json(tmp_path, "parlay.json", {
        "legs": [strong_leg.model_dump(mode="json"), weak_leg.model_dump(mode="json")],
        "correlation": {"probability": 0.2, "warnings": ["same_game"]},
        "bankroll": {"bankroll_amount": 1000},
    })
    output = tmp_path / "result.json"
    code = main(["--analyze", path, "--user-stake", "20", "--output", str(output)])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["consensus"]["strongest_leg"] == 0
    assert out["stake_comparison"] is not None
    assert json.loads(output.read_text()) == out


def test_calibrate(tmp_path, capsys):
    records = [
        {"predicted_probability": 0.6, "actual_outcome": i < 3, "engine": "sharp", "sport": "NBA"}
        for i in range(5)
    ]
    path = _write_json(tmp_path, "outcomes.json", records)
    assert main(["--calibrate", path, "--by", "engine"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["overall"]["n_samples"] == 5
    assert "sharp" in out["scopes"]
    assert out["calibration_factors"][0]["sample_size"] == 5


def test_no_command():
    assert main([]) == 1


def test_missing_file(tmp_path):
    assert main(["--analyze", str(tmp_path / "missing.json")]) == 2


def test_invalid_request(tmp_path):
    path = _write_json(tmp_path, "bad.json", {"legs": [{"odds": 50}]})
    assert main(["--analyze", path]) == 2
