"""
Balance checks for a generated design: how runs fall into blocks, how often
each run length occurs and how SOAs are spread over the strata.
"""

from collections import Counter
from dataclasses import dataclass

import pandas as pd

from toj_sequences.researcher_hub.factorial import POLARITY_FACTOR, SEQUENCE_LENGTH_FACTOR, SOA_FACTOR
from toj_sequences.researcher_hub.interleave import iter_runs
from toj_sequences.researcher_hub.stimulus_sequence import split_blocks


def run_string(trials):
    """Encode each block's runs as e.g. '2A 1N 5A' (length, Asserted or Negated)."""
    lines = []
    for block in split_blocks(trials):
        codes = [f"{len(run)}{'N' if run[0][POLARITY_FACTOR] else 'A'}" for run in iter_runs(block)]
        lines.append(' '.join(codes))
    return lines


def run_length_counts(trials):
    return dict(sorted(Counter(len(run) for run in iter_runs(trials)).items()))


def block_sizes(trials):
    return [len(block) for block in split_blocks(trials)]


def soa_counts(trials):
    """Count SOA values per polarity, run length and rank."""
    df = pd.DataFrame(list(trials))
    keys = [POLARITY_FACTOR, SEQUENCE_LENGTH_FACTOR, 'rank']
    if df.empty or SOA_FACTOR not in df.columns:
        return pd.DataFrame(columns=keys)
    return df.groupby(keys + [SOA_FACTOR]).size().unstack(SOA_FACTOR, fill_value=0)


@dataclass
class DesignSummary:
    total_trials: int
    block_count: int
    block_sizes: list
    run_strings: list
    run_length_counts: dict
    soa_counts: pd.DataFrame


def summarize(trial_sequence):
    trials = trial_sequence.trials
    return DesignSummary(
        total_trials=len(trials),
        block_count=trial_sequence.block_count,
        block_sizes=block_sizes(trials),
        run_strings=run_string(trials),
        run_length_counts=run_length_counts(trials),
        soa_counts=soa_counts(trials),
    )


def format_summary(summary):
    lines = []
    for block_index, (runs, size) in enumerate(zip(summary.run_strings, summary.block_sizes)):
        lines.append(runs)
        lines.append(f'block_size={size} block_index={block_index}')
    lines.append(f'total_trials={summary.total_trials}')
    lines.append(f'block_count={summary.block_count}')
    lines.append('run count by run length:')
    lines.extend(f'  {length}: {count}' for length, count in summary.run_length_counts.items())
    lines.append('SOA count by polarity, run length and rank:')
    lines.append(summary.soa_counts.to_string())
    return '\n'.join(lines)
