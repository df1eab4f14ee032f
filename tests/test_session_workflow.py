"""
Tests for the session workflow command line
"""

import json

import pandas as pd
import pytest

from toj_sequences.researcher_hub.session_workflow import generate, load_design, main, plot_design
from toj_sequences.researcher_hub.trial_sequence import trial_sequence


def test_main_writes_outputs(tmp_path, capsys):
    status = main(["--preset", "debug", "--seed", "3", "--output-dir", str(tmp_path), "--plot"])

    assert status == 0
    trials = pd.read_csv(tmp_path / "trials.csv")
    assert trials["trialIndex"].tolist() == list(range(len(trials)))
    assert "last block" in (tmp_path / "experiment.js").read_text(encoding="utf-8")
    assert (tmp_path / "summary.txt").exists()
    assert (tmp_path / "design_structure.png").stat().st_size > 0
    assert "Saved: trials.csv" in capsys.readouterr().out


def test_main_is_reproducible(tmp_path):
    main(["--preset", "main", "--seed", "8", "--output-dir", str(tmp_path / "a")])
    main(["--preset", "main", "--seed", "8", "--output-dir", str(tmp_path / "b")])

    assert (tmp_path / "a" / "trials.csv").read_text() == (tmp_path / "b" / "trials.csv").read_text()


def test_main_preset_stamps_conditions(tmp_path):
    main(["--preset", "main", "--seed", "2", "--output-dir", str(tmp_path)])

    trials = pd.read_csv(tmp_path / "trials.csv")
    assert trials["fixationTime"].between(300, 500).all()


def test_main_rejects_strict_block_size(tmp_path, capsys):
    config = tmp_path / "design.json"
    config.write_text(json.dumps({
        "factors": {"isInstructionNegated": [True, False], "soa": [0]},
        "always_stay_under_block_size": True,
    }), encoding="utf-8")

    status = main(["--config", str(config), "--output-dir", str(tmp_path / "out")])

    assert status == 1
    assert "not implemented" in capsys.readouterr().err
    assert not (tmp_path / "out").exists()


@pytest.mark.parametrize("content", [
    None,
    "[1, 2, 3]",
    json.dumps({"factors": {"isInstructionNegated": [True, False]}, "repetitions": "2"}),
    json.dumps({"factors": {"isInstructionNegated": [True, False]}, "run_lengths": 5}),
])
def test_main_reports_bad_configuration(tmp_path, capsys, content):
    config = tmp_path / "design.json"
    if content is not None:
        config.write_text(content, encoding="utf-8")

    status = main(["--config", str(config), "--output-dir", str(tmp_path / "out")])

    assert status == 1
    assert capsys.readouterr().err.startswith("Error: ")
    assert not (tmp_path / "out").exists()


def test_load_design_seed_override():
    assert load_design(preset="tutorial", seed=12).seed == 12


def test_generate_uses_config():
    config = load_design(preset="tutorial", seed=1)

    result = generate(config)

    # 4 SOAs x 3 run lengths x 2 probe sides x 5 repetitions per polarity
    assert len({t["soa"] for t in result.trials}) == 4
    assert sum(1 for t in result.trials if t["isInstructionNegated"]) == 4 * 3 * 2 * 5


def test_plot_design(tmp_path, rng, toj_factors):
    path = plot_design(trial_sequence(toj_factors, blocksize=5, rng=rng).trials, tmp_path / "plot.png")
    assert path.exists()
