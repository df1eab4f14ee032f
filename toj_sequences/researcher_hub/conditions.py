"""
Per-trial stimulus conditions of the TOJ experiments.

The generated trial list fixes the experimental factors; the stimulus
details of a trial (target colours, grid positions, bar rotation, fixation
time) are drawn here, either one at a time when the trial is shown or for a
whole list with stamp_conditions. Orientations and positions never repeat
the previous draw for the same identifier.
"""

from dataclasses import dataclass, field

import numpy as np

from toj_sequences.researcher_hub.factorial import POLARITY_FACTOR, PROBE_LEFT_FACTOR, make_rng


@dataclass(frozen=True)
class Quadrant:
  """Screen quadrant, numbered counter-clockwise from the top right (0 to 3)."""
  number: int

  @property
  def is_left(self):
    return self.number in (1, 2)

  @property
  def is_top(self):
    return self.number in (0, 1)

  def sibling_vertical(self):
    return Quadrant(3 - self.number)

  def sibling_horizontal(self):
    return Quadrant((1, 0, 3, 2)[self.number])

  def sibling_diagonal(self):
    return Quadrant((self.number + 2) % 4)

  @staticmethod
  def random(rng):
    return Quadrant(int(rng.integers(0, 4)))

  @staticmethod
  def random_mixed_side_pairs(rng):
    """Two quadrant pairs covering all quadrants, each pair with one quadrant per side."""
    a = Quadrant.random(rng)
    is_cross = bool(rng.integers(0, 2))
    return [
      (a, a.sibling_diagonal() if is_cross else a.sibling_horizontal()),
      (a.sibling_vertical(), a.sibling_horizontal() if is_cross else a.sibling_diagonal()),
    ]


# CIELAB (D50) to linear sRGB
_XYZ_TO_LINEAR_RGB = np.array([
  [3.1338561, -1.6168667, -0.4906146],
  [-0.9787684, 1.9161415, 0.0334540],
  [0.0719453, -0.2289914, 1.4052427],
])
_D50_WHITE = np.array([0.96422, 1.0, 0.82521])

_COLOR_NAMES = {0: 'red', 90: 'yellow', 180: 'green', 270: 'blue'}


def _lab_to_xyz(t):
  t0, t1 = 4 / 29, 6 / 29
  return np.where(t > t1, t ** 3, 3 * t1 ** 2 * (t - t0))


def _linear_to_srgb(x):
  return np.where(x <= 0.0031308, 12.92 * x, 1.055 * np.abs(x) ** (1 / 2.4) - 0.055)


@dataclass(frozen=True)
class LabColor:
  """Hue on a circle of constant lightness and chroma in the CIELAB space."""
  degrees: float

  L = 50
  r = 50

  def to_rgb(self):
    """Return the colour as an sRGB hex string."""
    angle = np.deg2rad(self.degrees)
    a, b = self.r * np.cos(angle), self.r * np.sin(angle)
    y = (self.L + 16) / 116
    xyz = _D50_WHITE * _lab_to_xyz(np.array([y + a / 500, y, y - b / 200]))
    rgb = np.clip(np.round(255 * _linear_to_srgb(_XYZ_TO_LINEAR_RGB @ xyz)), 0, 255).astype(int)
    return '#{:02x}{:02x}{:02x}'.format(*(int(channel) for channel in rgb))

  def to_name(self):
    """Natural-language name of the colour; only defined for multiples of 90 degrees."""
    degrees = self.degrees % 360
    if degrees not in _COLOR_NAMES:
      raise ValueError(f'{degrees} degrees could not be converted to a color name.')
    return _COLOR_NAMES[degrees]

  def relative(self, delta_degrees):
    return LabColor(self.degrees + delta_degrees)

  def random_relative(self, delta_degree_options, rng):
    return self.relative(delta_degree_options[int(rng.integers(len(delta_degree_options)))])


@dataclass(frozen=True)
class TojTarget:
  is_probe: bool
  is_left: bool
  grid_position: tuple
  color: LabColor = None
  quadrant: Quadrant = None
  orientation: str = None


@dataclass(frozen=True)
class TojCondition:
  probe: TojTarget
  reference: TojTarget
  fixation_time: int
  rotation: int


@dataclass(frozen=True)
class TargetPair:
  pair_index: int
  primary: TojTarget
  secondary: TojTarget
  fixation_time: int


@dataclass(frozen=True)
class QuadrantCondition:
  target_pairs: tuple
  rotation: int
  distractor_soa: object


def _randint(rng, low, high):
  """Uniform integer in [low, high], both inclusive."""
  return int(rng.integers(low, high + 1))


@dataclass
class ConditionGenerator:
  """
  Draws stimulus conditions with one random source.

  Remembers the last orientation and grid position per identifier, so that
  identified draws never repeat trial to trial.
  """
  rng: np.random.Generator = None
  primary_degrees: tuple = (180,)
  reference_deltas: tuple = (180,)
  previous_orientations: dict = field(default_factory=dict)
  previous_positions: dict = field(default_factory=dict)

  def __post_init__(self):
    self.rng = make_rng(self.rng)

  def _draw_avoiding(self, candidates, previous):
    if previous in candidates and len(candidates) > 1:
      candidates = [c for c in candidates if c != previous]
    return candidates[int(self.rng.integers(len(candidates)))]

  def generate_orientation(self, identifier=None):
    """Bar rotation in steps of 10 degrees from 0 to 170."""
    orientations = [step * 10 for step in range(18)]
    if identifier is None:
      return orientations[int(self.rng.integers(len(orientations)))]
    orientation = self._draw_avoiding(orientations, self.previous_orientations.get(identifier))
    self.previous_orientations[identifier] = orientation
    return orientation

  def generate_position(self, identifier, x_range=(2, 5), y_range=(2, 5)):
    """Grid position with both coordinates drawn from inclusive ranges."""
    positions = [(x, y) for x in range(x_range[0], x_range[1] + 1)
                 for y in range(y_range[0], y_range[1] + 1)]
    position = self._draw_avoiding(positions, self.previous_positions.get(identifier))
    self.previous_positions[identifier] = position
    return position

  def generate_condition(self, probe_left):
    """Probe and reference bar on opposite sides, colored with opposite hues."""
    probe_color = LabColor(self.primary_degrees[int(self.rng.integers(len(self.primary_degrees)))])
    reference_color = probe_color.random_relative(self.reference_deltas, self.rng)

    targets = {}
    for name, is_probe, is_left, color in (('probe', True, probe_left, probe_color),
                                           ('reference', False, not probe_left, reference_color)):
      x_range = (3, 5) if is_left else (2, 4)
      targets[name] = TojTarget(is_probe=is_probe, is_left=is_left, color=color,
                                grid_position=self.generate_position(name, x_range, (2, 5)))

    return TojCondition(probe=targets['probe'], reference=targets['reference'],
                        fixation_time=_randint(self.rng, 300, 500),
                        rotation=self.generate_orientation('rotation'))

  def generate_quadrant_condition(self, probe_left, soa_choices):
    """Two target pairs spread over the four quadrants, one horizontal and one vertical."""
    quadrant_pairs = Quadrant.random_mixed_side_pairs(self.rng)
    orientations = ('horizontal', 'vertical') if self.rng.random() < 0.5 else ('vertical', 'horizontal')

    pairs = []
    for pair_index, (primary_quadrant, secondary_quadrant) in enumerate(quadrant_pairs):
      primary_is_probe = primary_quadrant.is_left if probe_left else not primary_quadrant.is_left
      targets = []
      for quadrant, is_probe in ((primary_quadrant, primary_is_probe),
                                 (secondary_quadrant, not primary_is_probe)):
        x_range = (3, 5) if quadrant.is_left else (1, 3)
        targets.append(TojTarget(
          is_probe=is_probe, is_left=quadrant.is_left, quadrant=quadrant,
          orientation=orientations[pair_index],
          grid_position=self.generate_position(f'pair{pair_index}-q{quadrant.number}', x_range, (1, 2)),
        ))
      pairs.append(TargetPair(pair_index, targets[0], targets[1], _randint(self.rng, 300, 500)))

    return QuadrantCondition(target_pairs=tuple(pairs),
                             rotation=self.generate_orientation('rotation'),
                             distractor_soa=soa_choices[int(self.rng.integers(len(soa_choices)))])


def condition_fields(condition, instruction_negated):
  """Flatten a TojCondition into plain trial-record fields."""
  # a negated instruction names the reference, an asserted one the probe
  instructed = condition.reference if instruction_negated else condition.probe
  return {
    'probeColor': condition.probe.color.to_rgb(),
    'referenceColor': condition.reference.color.to_rgb(),
    'instructedColor': instructed.color.to_name(),
    'probeGridX': condition.probe.grid_position[0],
    'probeGridY': condition.probe.grid_position[1],
    'referenceGridX': condition.reference.grid_position[0],
    'referenceGridY': condition.reference.grid_position[1],
    'fixationTime': condition.fixation_time,
    'rotation': condition.rotation,
  }


def stamp_conditions(trials, rng=None):
  """
  Return copies of `trials` with a stimulus condition drawn for each trial
  from its probeLeft, in trial order.
  """
  generator = ConditionGenerator(rng=rng)
  stamped = []
  for trial in trials:
    condition = generator.generate_condition(trial[PROBE_LEFT_FACTOR])
    stamped.append(dict(trial, **condition_fields(condition, trial[POLARITY_FACTOR])))
  return stamped
