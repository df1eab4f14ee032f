class TojSequenceError(Exception):
  """Base class for errors raised while generating a trial sequence."""


class ConfigurationError(TojSequenceError, ValueError):
  """Invalid factor set or structural parameter."""


class BlockSizeModeNotImplementedError(ConfigurationError, NotImplementedError):
  """The 'always stay under block size' partitioning mode was requested."""

  def __init__(self):
    super().__init__('always_stay_under_block_size=True is not implemented yet')


class PoolExhaustedError(TojSequenceError, IndexError):
  """A stratum queue was popped after its last value was handed out."""
