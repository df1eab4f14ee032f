import numpy as np
from autora.experimentalist.grid import grid_pool
from autora.variable import Variable, VariableCollection

from toj_sequences.researcher_hub.errors import ConfigurationError

# reserved factor names
POLARITY_FACTOR = 'isInstructionNegated'
SOA_FACTOR = 'soa'
SEQUENCE_LENGTH_FACTOR = 'sequenceLength'
PROBE_LEFT_FACTOR = 'probeLeft'

DEFAULT_RUN_LENGTHS = (1, 2, 5)


def make_rng(rng=None):
  """
  Return a numpy Generator for `rng`, which may be None, a seed or a Generator.

  A Generator is passed through unchanged, so callers sharing one handle
  draw from the same stream.
  """
  return np.random.default_rng(rng)


def shuffled(items, rng):
  """Return a new list holding `items` in uniformly random order."""
  items = list(items)
  return [items[i] for i in rng.permutation(len(items))]


def variables_from_factor_set(factors):
  """Declare each factor as an autora independent variable."""
  return VariableCollection(independent_variables=[
    Variable(name=name, allowed_values=list(values)) for name, values in factors.items()
  ])


def factorial(factors, repetitions=1, rng=None):
  """
  Cartesian product of all factor values, each combination repeated
  `repetitions` times, in random order.

  Each trial record is a fresh dict with the factors in the key order of
  `factors`. A factor with no values yields an empty design.
  """
  if repetitions < 1:
    raise ConfigurationError(f'repetitions must be at least 1, got {repetitions}')
  rng = make_rng(rng)

  factors = as_factor_set(factors)
  if not factors:
    combinations = [{}]
  elif any(len(values) == 0 for values in factors.values()):
    combinations = []
  else:
    # grid_pool crosses the allowed values in the key order of the factors
    combinations = grid_pool(variables_from_factor_set(factors)).astype(object).to_dict('records')
  trials = [dict(combination) for combination in combinations for _ in range(repetitions)]
  return shuffled(trials, rng)


def validate_factor_set(factors):
  """Check the polarity factor: it must hold exactly two distinct values."""
  if POLARITY_FACTOR not in factors:
    raise ConfigurationError(f"factor set has no polarity factor '{POLARITY_FACTOR}'")
  values = list(factors[POLARITY_FACTOR])
  if len(values) != 2 or values[0] == values[1]:
    raise ConfigurationError(
      f"polarity factor '{POLARITY_FACTOR}' needs exactly two distinct values, got {values}")


def polarity_values(factors):
  """Return (asserted, negated): the falsy polarity value first."""
  validate_factor_set(factors)
  asserted, negated = sorted(factors[POLARITY_FACTOR], key=bool)
  return asserted, negated


def normalize_run_lengths(run_lengths, factors=None):
  """
  Resolve the allowed run lengths.

  Falls back to the factor set's run-length factor and then to
  DEFAULT_RUN_LENGTHS. Duplicates are kept, as they weight the draw.
  """
  if run_lengths is None:
    if factors is not None and SEQUENCE_LENGTH_FACTOR in factors:
      run_lengths = factors[SEQUENCE_LENGTH_FACTOR]
    else:
      run_lengths = DEFAULT_RUN_LENGTHS
  try:
    run_lengths = [int(length) for length in run_lengths]
  except (TypeError, ValueError) as e:
    raise ConfigurationError(f'run lengths must be positive integers, got {run_lengths!r}') from e
  if not run_lengths or any(length < 1 for length in run_lengths):
    raise ConfigurationError(f'run lengths must be positive integers, got {run_lengths}')
  return run_lengths


def factor_set_from_variables(variables):
  """
  Convert the independent variables of an autora VariableCollection into a
  factor set.

  Each variable's `allowed_values` becomes the factor's value list; numpy
  arrays are converted to plain Python lists.
  """
  factors = {}
  for variable in variables.independent_variables:
    values = variable.allowed_values
    if values is None:
      raise ConfigurationError(f"variable '{variable.name}' has no allowed values")
    factors[variable.name] = np.asarray(values).tolist() if isinstance(values, np.ndarray) else list(values)
  return factors


def as_factor_set(factors):
  """Accept a factor-set mapping or an autora VariableCollection."""
  if isinstance(factors, VariableCollection):
    return factor_set_from_variables(factors)
  return dict(factors)
