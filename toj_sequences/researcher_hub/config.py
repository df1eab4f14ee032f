"""
Design configuration of a TOJ negation session.

A configuration holds the factor set plus the structural parameters of the
generator. It can be one of the PRESETS, built in code or read from a JSON
file such as

    {
        "factors": {"isInstructionNegated": [true, false],
                    "soa": [-100, 0, 100],
                    "sequenceLength": [1, 2, 5]},
        "repetitions": 1,
        "blocksize": 40,
        "probe_left_is_factor": true
    }
"""

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from toj_sequences.researcher_hub.errors import ConfigurationError
from toj_sequences.researcher_hub.factorial import normalize_run_lengths, validate_factor_set

# ------------- Study parameters -------------
FRAME_DURATION = 16.6667  # ms, one frame at 60 Hz

SOA_CHOICES = [round(x * FRAME_DURATION, 3) for x in [-6, -3, -1, 0, 1, 3, 6]]
SOA_CHOICES_TUTORIAL = [round(x * FRAME_DURATION, 3) for x in [-6, -3, 3, 6]]
SOA_CHOICES_DEBUG = [round(x * FRAME_DURATION, 3) for x in [-6, 6]]


@dataclass
class DesignConfig:
    """
    Parameters of one generator run.

    Attributes:
        factors: factor name -> list of values; must contain isInstructionNegated
        repetitions: how often each factor combination appears per polarity
        probe_left_is_factor: cross probeLeft into the design instead of drawing it per trial
        blocksize: soft block size; blocks close between runs once they reach it
        always_stay_under_block_size: strict block size mode (not implemented)
        run_lengths: allowed run lengths; defaults to the sequenceLength factor
        balanced_run_lengths: take run lengths from the crossed design instead of drawing them
        with_conditions: draw the stimulus condition of every trial up front
        seed: seed of the random source, None for a fresh one
    """

    factors: Dict[str, List[Any]]
    repetitions: int = 1
    probe_left_is_factor: bool = False
    blocksize: int = 40
    always_stay_under_block_size: bool = False
    run_lengths: Optional[List[int]] = None
    balanced_run_lengths: bool = False
    with_conditions: bool = False
    seed: Optional[int] = None

    def validate(self):
        """Raise ConfigurationError on the first invalid parameter."""
        if not isinstance(self.factors, dict) or not self.factors:
            raise ConfigurationError('factors must be a non-empty mapping')
        for name, values in self.factors.items():
            if not isinstance(values, list):
                raise ConfigurationError(f"factor '{name}' must be a list of values, got {values!r}")
        validate_factor_set(self.factors)
        for name in ('repetitions', 'blocksize'):
            value = getattr(self, name)
            if not _is_int(value) or value < 1:
                raise ConfigurationError(f'{name} must be an integer of at least 1, got {value!r}')
        for name in ('probe_left_is_factor', 'always_stay_under_block_size', 'balanced_run_lengths',
                     'with_conditions'):
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f'{name} must be true or false, got {getattr(self, name)!r}')
        if self.seed is not None and not _is_int(self.seed):
            raise ConfigurationError(f'seed must be an integer, got {self.seed!r}')
        normalize_run_lengths(self.run_lengths, self.factors)
        return self

    def generator_kwargs(self):
        """Keyword arguments for trial_sequence, without the factor set."""
        kwargs = asdict(self)
        del kwargs['factors'], kwargs['seed']
        return kwargs

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ConfigurationError(f'configuration must be a JSON object, got {type(data).__name__}')
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"unknown configuration keys: {', '.join(unknown)}")
        if 'factors' not in data:
            raise ConfigurationError("configuration has no 'factors'")
        return cls(**data).validate()


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def load_config(path):
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f'{path} is not valid JSON: {e}') from e
    except OSError as e:
        raise ConfigurationError(f'cannot read configuration {path}: {e.strerror}') from e
    return DesignConfig.from_dict(data)


PRESETS = {
    'main': DesignConfig(
        factors={
            'isInstructionNegated': [True, False],
            'soa': SOA_CHOICES,
            'sequenceLength': [1, 2, 5],
        },
        repetitions=1,
        probe_left_is_factor=True,  # adds an implicit repetition
        blocksize=40,
        with_conditions=True,
    ),
    'tutorial': DesignConfig(
        factors={
            'isInstructionNegated': [True, False],
            'soa': SOA_CHOICES_TUTORIAL,
            'sequenceLength': [1, 2, 5],
        },
        repetitions=5,
        probe_left_is_factor=True,
        blocksize=40,
        with_conditions=True,
    ),
    'debug': DesignConfig(
        factors={
            'isInstructionNegated': [True, False],
            'soa': SOA_CHOICES_DEBUG,
            'sequenceLength': [1, 2],
        },
        repetitions=1,
        probe_left_is_factor=False,
        blocksize=1,
    ),
}


def get_preset(name):
    if name not in PRESETS:
        raise ConfigurationError(f"unknown preset '{name}', choose from {', '.join(PRESETS)}")
    # asdict deep-copies the factor lists
    return DesignConfig(**asdict(PRESETS[name]))
