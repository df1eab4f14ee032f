from loguru import logger

from toj_sequences.researcher_hub.errors import ConfigurationError, PoolExhaustedError
from toj_sequences.researcher_hub.factorial import make_rng, shuffled


class StratumQueue:
  """Fixed sequence of SOA values handed out front to back."""

  def __init__(self, values):
    self.values = tuple(values)
    self.cursor = 0

  def __len__(self):
    return len(self.values) - self.cursor

  @property
  def exhausted(self):
    return self.cursor >= len(self.values)

  def pop(self):
    if self.exhausted:
      raise PoolExhaustedError(f'stratum queue of {len(self.values)} values is exhausted')
    value = self.values[self.cursor]
    self.cursor += 1
    return value


class SoaPools:
  """
  SOA queues stratified by polarity, run length and rank within the run.

  For every polarity and run length the SOA list is replicated `passes`
  times and shuffled; each rank then gets its own reshuffle of that pool.
  Drawing from a stratum therefore balances the SOA values within the
  stratum instead of over the whole design.
  """

  def __init__(self, soa_values, polarities, run_lengths, passes=1, rng=None):
    if passes < 1:
      raise ConfigurationError(f'passes must be at least 1, got {passes}')
    self.soa_values = list(soa_values)
    self.passes = passes
    self.rng = make_rng(rng)
    self.queues = {}
    for polarity in polarities:
      for run_length in sorted(set(run_lengths)):
        self._build(polarity, run_length)

  def _pass_values(self):
    return shuffled(self.soa_values * self.passes, self.rng)

  def _build(self, polarity, run_length):
    values = self._pass_values()
    for rank in range(run_length):
      values = shuffled(values, self.rng)
      self.queues[(polarity, run_length, rank)] = StratumQueue(values)

  def draw(self, polarity, run_length, rank):
    """Pop the next SOA of the stratum, starting a new pass when it runs dry."""
    key = (polarity, run_length, rank)
    queue = self.queues.get(key)
    if queue is None:
      logger.debug(f'No SOA stratum for run length {run_length}, creating one')
      self._build(polarity, run_length)
      queue = self.queues[key]
    elif queue.exhausted:
      logger.debug(f'SOA stratum {key} exhausted, starting a new pass')
      queue = self.queues[key] = StratumQueue(self._pass_values())
    return queue.pop()
