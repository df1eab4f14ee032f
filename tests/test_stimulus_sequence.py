"""
Tests for turning generated trials into a sweetbean experiment
"""

from toj_sequences.researcher_hub.stimulus_sequence import (
    instruction,
    split_blocks,
    stimulus_sequence,
    timeline_blocks,
    timeline_variables,
)
from toj_sequences.researcher_hub.trial_sequence import TrialSequence, trial_sequence


class TestSplitBlocks:

    def test_groups_by_block_index(self):
        trials = [{"blockIndex": 0}, {"blockIndex": 0}, {"blockIndex": 1}, {"blockIndex": 2}, {"blockIndex": 2}]
        assert [len(block) for block in split_blocks(trials)] == [2, 1, 2]

    def test_empty(self):
        assert split_blocks([]) == []


class TestTimelineVariables:

    def test_instruction_follows_polarity(self):
        assert instruction({"isInstructionNegated": False}) == "now"
        assert instruction({"isInstructionNegated": True}) == "not"

    def test_instruction_names_color(self):
        assert instruction({"isInstructionNegated": True, "instructedColor": "red"}) == "not red"

    def test_rows_are_copies(self, rng, toj_factors):
        result = trial_sequence(toj_factors, blocksize=5, rng=rng)
        block = split_blocks(result.trials)[0]

        rows = timeline_variables(block)
        rows[0]["GreenFact"] = True

        assert len(rows) == len(block)
        assert "GreenFact" not in result.trials[0]
        assert "instruction" not in result.trials[0]
        assert all(row["soa"] == trial["soa"] for row, trial in zip(rows, block))


class TestStimulusSequence:

    def test_one_block_and_break_per_block(self, rng, toj_factors):
        result = trial_sequence(toj_factors, blocksize=5, rng=rng)
        assert len(timeline_blocks(result)) == 2 * result.block_count

    def test_without_breaks(self, rng, toj_factors):
        result = trial_sequence(toj_factors, blocksize=5, rng=rng)
        assert len(timeline_blocks(result, add_block_breaks=False)) == result.block_count

    def test_js_string(self, rng, toj_factors):
        result = trial_sequence(toj_factors, blocksize=5, with_conditions=True, rng=rng)

        js = stimulus_sequence(result)

        assert isinstance(js, str)
        assert "last block" in js
        assert "Thank you for participating" in js

    def test_empty_design(self):
        assert timeline_blocks(TrialSequence([], 0)) == []
        assert isinstance(stimulus_sequence(TrialSequence([], 0)), str)
