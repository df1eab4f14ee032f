from dataclasses import dataclass

from loguru import logger

from toj_sequences.researcher_hub.conditions import stamp_conditions
from toj_sequences.researcher_hub.errors import BlockSizeModeNotImplementedError, ConfigurationError
from toj_sequences.researcher_hub.factorial import (
  POLARITY_FACTOR, SEQUENCE_LENGTH_FACTOR, SOA_FACTOR,
  as_factor_set, make_rng, normalize_run_lengths, polarity_values,
)
from toj_sequences.researcher_hub.interleave import generate_sequences_alternating, iter_runs
from toj_sequences.researcher_hub.soa_pools import SoaPools


@dataclass(frozen=True)
class TrialSequence:
  trials: list
  block_count: int


def sequences_to_trials(sequences, factors, blocksize=40, always_stay_under_block_size=False,
                        repetitions=1, probe_left_is_factor=False, run_lengths=None, rng=None):
  """
  Assign SOAs and position metadata to interleaved runs and cut them into blocks.

  SOAs are not distributed uniformly over all trials but balanced within
  each stratum of polarity, run length and rank of the trial within its run.
  A block closes once it holds `blocksize` or more trials, and only between
  runs, so blocks hold `blocksize` to `blocksize + max(run length) - 1`
  trials (or a single run longer than that).
  """
  if always_stay_under_block_size:
    raise BlockSizeModeNotImplementedError()
  if blocksize < 1:
    raise ConfigurationError(f'blocksize must be at least 1, got {blocksize}')
  factors = as_factor_set(factors)
  rng = make_rng(rng)

  soas = None
  if SOA_FACTOR in factors:
    passes = repetitions * (2 if probe_left_is_factor else 1)
    soas = SoaPools(factors[SOA_FACTOR], polarity_values(factors),
                    normalize_run_lengths(run_lengths, factors), passes, rng)

  block_index = 0
  trial_index_in_block = 0
  trials = []

  for run in iter_runs(sequences):
    if len(run) > blocksize:
      logger.debug(f'A run of {len(run)} trials exceeds the block size of {blocksize}; '
                   f'block {block_index} is oversized')
    for trial in run:
      trial = dict(trial)
      if soas is not None:
        trial[SOA_FACTOR] = soas.draw(trial[POLARITY_FACTOR], trial[SEQUENCE_LENGTH_FACTOR], trial['rank'])
      trial['blockIndex'] = block_index
      trial['trialIndex'] = len(trials)
      trial['trialIndexInBlock'] = trial_index_in_block
      trials.append(trial)
      trial_index_in_block += 1

    # end block
    if trial_index_in_block >= blocksize:
      trial_index_in_block = 0
      block_index += 1

  block_count = trials[-1]['blockIndex'] + 1 if trials else 0
  return TrialSequence(trials, block_count)


def trial_sequence(factors, repetitions=1, probe_left_is_factor=False, blocksize=40,
                   always_stay_under_block_size=False, run_lengths=None, rng=None,
                   balanced_run_lengths=False, with_conditions=False):
  """
  Generate the full trial list of an alternating-polarity TOJ design.

  Runs the interleaver and the block partitioner with one random source.
  With `with_conditions`, every trial also gets its stimulus condition
  (colours, grid positions, rotation, fixation time) drawn up front.
  Returns a TrialSequence holding the flat trial list and the block count.
  """
  if always_stay_under_block_size:
    raise BlockSizeModeNotImplementedError()
  factors = as_factor_set(factors)
  rng = make_rng(rng)

  sequences = generate_sequences_alternating(factors, repetitions, probe_left_is_factor,
                                             run_lengths, rng, balanced_run_lengths)
  result = sequences_to_trials(sequences, factors, blocksize, always_stay_under_block_size,
                               repetitions, probe_left_is_factor, run_lengths, rng)
  if with_conditions:
    result = TrialSequence(stamp_conditions(result.trials, rng), result.block_count)
  logger.info(f'Generated {len(result.trials)} trials in {result.block_count} blocks')
  return result


generate_alternating_sequences = trial_sequence
