"""
Tests for the trial tables and the parsing of collected data
"""

import pytest

from toj_sequences.researcher_hub.preprocessing import (
    is_response_correct,
    trial_list_to_experiment_data,
    trials_to_frame,
)
from toj_sequences.researcher_hub.trial_sequence import trial_sequence


def test_trials_to_frame(rng, toj_factors):
    trials = trial_sequence(toj_factors, blocksize=10, rng=rng).trials

    df = trials_to_frame(trials)

    assert len(df) == len(trials)
    assert list(df.columns[:3]) == ["trialIndex", "blockIndex", "trialIndexInBlock"]
    assert df["trialIndex"].tolist() == list(range(len(trials)))


def test_trials_to_frame_empty():
    assert trials_to_frame([]).empty


@pytest.mark.parametrize("soa, response, correct", [
    (-100, "probe", True),
    (-100, "reference", False),
    (100, "reference", True),
    (100, "probe", False),
    (0, "probe", True),
    (0, "reference", True),
    ("-50.000", "probe", True),
    (50, None, False),
])
def test_is_response_correct(soa, response, correct):
    assert is_response_correct(soa, response) is correct


def test_trial_list_to_experiment_data():
    raw = [
        {"trial_type": "html-keyboard-response", "rt": 800},
        {"trial_type": "toj-negation", "trialIndex": 0, "blockIndex": 0, "sequenceLength": 2, "rank": 0,
         "isInstructionNegated": True, "probeLeft": False, "soa": "-100.000", "response": "probe", "rt": 512},
        {"trial_type": "toj-negation", "trialIndex": 1, "blockIndex": 0, "sequenceLength": 2, "rank": 1,
         "isInstructionNegated": True, "probeLeft": True, "soa": "100.000", "response": "probe", "rt": 430},
        {"trial_type": "toj-negation", "trialIndex": 2, "blockIndex": 0, "sequenceLength": 1, "rank": 0,
         "isInstructionNegated": False, "probeLeft": True, "soa": "0.000", "response": None, "rt": None},
    ]

    df = trial_list_to_experiment_data(raw)

    assert df["trialIndex"].tolist() == [0, 1]
    assert df["soa"].tolist() == [-100.0, 100.0]
    assert df["accuracy"].tolist() == [1.0, 0.0]
    assert df["rt"].tolist() == [512.0, 430.0]
    assert "trialIndexInBlock" not in df.columns


def test_trial_type_filter():
    raw = [{"trial_type": "toj", "soa": 0, "response": "probe", "rt": 300}]
    assert trial_list_to_experiment_data(raw).empty
    assert len(trial_list_to_experiment_data(raw, trial_type="toj")) == 1
