from sweetbean import Block, Experiment
from sweetbean.stimulus import Fixation, Text
from sweetbean.variable import TimelineVariable

from toj_sequences.researcher_hub.factorial import POLARITY_FACTOR

FIRST_KEY = 'q'
SECOND_KEY = 'p'
FIXATION_DURATION = 400


def split_blocks(trials):
  """Group consecutive trials sharing a blockIndex."""
  blocks = []
  for trial in trials:
    if not blocks or blocks[-1][-1]['blockIndex'] != trial['blockIndex']:
      blocks.append([])
    blocks[-1].append(trial)
  return blocks


def instruction(trial):
  # "now green" names the probe, "not red" names the reference
  word = 'not' if trial[POLARITY_FACTOR] else 'now'
  if 'instructedColor' in trial:
    return f"{word} {trial['instructedColor']}"
  return word


def timeline_variables(block):
  """Timeline rows of one block: the trial records plus their instruction."""
  return [dict(trial, instruction=instruction(trial)) for trial in block]


def block_finished_screen(block_number, block_count):
  # shown after each block; the last one closes the task
  if block_number < block_count:
    text = f'You finished block {block_number} of {block_count}.<br><br> \
             Take a short break and press the SPACE key to continue.'
  else:
    text = f'You finished the last block ({block_number} of {block_count}).<br><br> \
             Press the SPACE key to continue.'
  return Block([Text(text=text, choices=[' '])])


def task_block(block):
  # stamped conditions carry their own fixation time
  if 'fixationTime' in block[0]:
    fixation = Fixation(TimelineVariable('fixationTime'))
  else:
    fixation = Fixation(FIXATION_DURATION)

  # the probe flashed first or second
  judgement = Text(text=TimelineVariable('instruction'), choices=[FIRST_KEY, SECOND_KEY])

  event_sequence = [fixation, judgement]
  return Block(event_sequence, timeline_variables(block))


def timeline_blocks(trial_sequence, add_block_breaks=True):
  """
  Turn a generated TrialSequence into sweetbean blocks.

  Each presentation block becomes one task block that repeats the trial's
  event sequence over the block's trials, optionally followed by a
  block-finished screen.
  """
  blocks = []
  for block_number, block in enumerate(split_blocks(trial_sequence.trials), start=1):
    blocks.append(task_block(block))
    if add_block_breaks:
      blocks.append(block_finished_screen(block_number, trial_sequence.block_count))
  return blocks


def stimulus_sequence(trial_sequence, add_block_breaks=True):

  # TASK BLOCKS
  blocks = timeline_blocks(trial_sequence, add_block_breaks)

  # EXIT BLOCK
  exit_block = Block([Text(duration=3000, text='Thank you for participating in the experiment.')])

  # EXPERIMENT
  experiment = Experiment(blocks + [exit_block])

  # return a js string to run with jsPsych
  return experiment.to_js_string(as_function=True, is_async=True)
