import functools
import itertools

import numpy as np
from loguru import logger

from toj_sequences.researcher_hub.errors import ConfigurationError
from toj_sequences.researcher_hub.factorial import (
  POLARITY_FACTOR, PROBE_LEFT_FACTOR, SEQUENCE_LENGTH_FACTOR,
  as_factor_set, factorial, make_rng, normalize_run_lengths, polarity_values,
)


def _polarity_pools(factors, repetitions, probe_left_is_factor, rng):
  """Build the shuffled asserted and negated pools, stamped with their polarity."""
  design = {name: values for name, values in factors.items() if name != POLARITY_FACTOR}

  # probeLeft is either crossed in or drawn per trial
  if probe_left_is_factor:
    design[PROBE_LEFT_FACTOR] = [True, False]
  else:
    design.pop(PROBE_LEFT_FACTOR, None)

  pools = []
  for polarity in polarity_values(factors):
    pool = factorial(design, repetitions, rng)
    for trial in pool:
      trial[POLARITY_FACTOR] = polarity
      if not probe_left_is_factor:
        trial[PROBE_LEFT_FACTOR] = bool(rng.random() < 0.5)
    pools.append(pool)
  return pools


def _tag_run(run):
  for rank, trial in enumerate(run):
    trial['rank'] = rank
    trial[SEQUENCE_LENGTH_FACTOR] = len(run)
  return run


@functools.lru_cache(maxsize=None)
def _completable(size, run_lengths):
  """
  Table of the (due, other) pool sizes from which strict alternation can
  empty both pools using allowed run lengths, except for a final run of at
  most max(run_lengths) trials.
  """
  longest = max(run_lengths)
  lengths = sorted(set(run_lengths))
  table = np.zeros((size + 1, size + 1), dtype=bool)
  table[0, 0] = True
  for total in range(1, 2 * size + 1):
    for due in range(max(1, total - size), min(total, size) + 1):
      other = total - due
      if other == 0:
        table[due, 0] = due <= longest
      else:
        table[due, other] = any(table[other, due - length] for length in lengths if length <= due)
  return table


def _drawn_runs(pools, run_lengths, rng):
  remaining = [list(pool) for pool in pools]
  completable = _completable(max(len(pool) for pool in remaining), tuple(run_lengths))
  due = int(rng.integers(2))
  runs = []
  while remaining[due]:
    left, other = len(remaining[due]), len(remaining[1 - due])
    if completable[left, other]:
      options = [length for length in run_lengths if length <= left and completable[other, left - length]]
      if options:
        length = int(rng.choice(options))
      else:
        # last run, shorter than every allowed length
        length = left
        logger.debug(f'Final run truncated to the {left} trials left in the pool')
    else:
      # the pools are too small for the allowed lengths; keep them level
      drawn = int(rng.choice(run_lengths))
      length = min(left, max(1, min(drawn, left - other + 1)))
      logger.debug(f'Run of {drawn} truncated to {length} of the {left} trials left in the pool')
    runs.append(remaining[due][:length])
    remaining[due] = remaining[due][length:]
    due = 1 - due
  return runs


def _balanced_runs(pools, rng):
  start = int(rng.integers(2))
  order = (start, 1 - start)
  runs = []
  for pair in zip(pools[order[0]], pools[order[1]]):
    for item in pair:
      runs.append([dict(item) for _ in range(item[SEQUENCE_LENGTH_FACTOR])])
  return runs


def generate_sequences_alternating(factors, repetitions=1, probe_left_is_factor=False,
                                   run_lengths=None, rng=None, balanced_run_lengths=False):
  """
  Interleave asserted and negated trials in runs of alternating polarity.

  The polarity factor is taken out of the Cartesian product, which is then
  built once per polarity value. With `balanced_run_lengths` unset, run
  lengths are drawn uniformly from those entries of `run_lengths` that still
  let both pools run out together, and every run pops that many trials from
  its pool. Only the final run may be shorter than every allowed length. With
  it set, the run-length factor is crossed into the pools and each pool item
  expands into a run of its own length.

  Every trial is tagged with its polarity value, `rank` within its run and
  `sequenceLength`, the length of its run.
  """
  factors = as_factor_set(factors)
  rng = make_rng(rng)
  run_lengths = normalize_run_lengths(run_lengths, factors)

  if balanced_run_lengths:
    factors[SEQUENCE_LENGTH_FACTOR] = run_lengths
  pools = _polarity_pools(factors, repetitions, probe_left_is_factor, rng)

  if balanced_run_lengths:
    runs = _balanced_runs(pools, rng)
  else:
    runs = _drawn_runs(pools, run_lengths, rng)
  return [trial for run in runs for trial in _tag_run(run)]


def randomize_sequencewise(factors, factor, values, patterns=None, repetitions=1, rng=None):
  """
  Assign `factor` run-wise over the shuffled product of the other factors.

  Run lengths are drawn from `patterns`, and each run takes one of `values`,
  never the value of the run before it. The final run is cut short when the
  trials run out. Trials are tagged with `rank` and `sequenceLength` like
  the alternating interleaver's output.
  """
  factors = as_factor_set(factors)
  rng = make_rng(rng)
  values = list(values)
  if len(values) < 2 or any(a == b for a, b in itertools.combinations(values, 2)):
    raise ConfigurationError(f"'{factor}' needs at least two distinct values to alternate, got {values}")
  patterns = normalize_run_lengths(patterns)

  design = {name: levels for name, levels in factors.items() if name != factor}
  trials = factorial(design, repetitions, rng)

  value_index = int(rng.integers(len(values)))
  position = 0
  while position < len(trials):
    run = trials[position:position + int(rng.choice(patterns))]
    for trial in run:
      trial[factor] = values[value_index]
    _tag_run(run)
    position += len(run)
    others = [index for index in range(len(values)) if index != value_index]
    value_index = others[int(rng.integers(len(others)))]
  return trials


def iter_runs(trials):
  """Yield the runs of `trials` as lists, starting a new run at every rank 0."""
  run = []
  for trial in trials:
    if trial['rank'] == 0 and run:
      yield run
      run = []
    run.append(trial)
  if run:
    yield run
