"""
Session Workflow
    Generate the trial sequence of one TOJ negation session
    Design: preset or JSON configuration
    Output: trial table (CSV), sweetbean experiment (JS), design summary, block structure plot
"""

import argparse
import pathlib
import sys

import matplotlib.pyplot as plt
from loguru import logger

from toj_sequences.researcher_hub.config import PRESETS, get_preset, load_config
from toj_sequences.researcher_hub.errors import TojSequenceError
from toj_sequences.researcher_hub.factorial import POLARITY_FACTOR, make_rng
from toj_sequences.researcher_hub.preprocessing import trials_to_frame
from toj_sequences.researcher_hub.stimulus_sequence import split_blocks, stimulus_sequence
from toj_sequences.researcher_hub.summary import format_summary, summarize
from toj_sequences.researcher_hub.trial_sequence import trial_sequence


# ------------- Logging -------------
def configure_logging(verbose=False):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


# ------------- Design -------------
def load_design(config_path=None, preset="main", seed=None):
    config = load_config(config_path) if config_path else get_preset(preset)
    if seed is not None:
        config.seed = seed
    return config.validate()


def generate(config):
    rng = make_rng(config.seed)
    return trial_sequence(config.factors, rng=rng, **config.generator_kwargs())


# ------------- Plot (polarity runs, SOAs, block boundaries) -------------
def plot_design(trials, path):
    fig, (ax_polarity, ax_soa) = plt.subplots(2, 1, figsize=(14, 5), sharex=True)

    index = [t["trialIndex"] for t in trials]
    polarity = [1 if t[POLARITY_FACTOR] else 0 for t in trials]
    ax_polarity.bar(index, polarity, width=1.0, color="tab:red", label="negated")
    ax_polarity.set_yticks([0, 1])
    ax_polarity.set_yticklabels(["asserted", "negated"])

    if trials and "soa" in trials[0]:
        ax_soa.scatter(index, [float(t["soa"]) for t in trials], s=8, color="black")
    ax_soa.set_xlabel("trial index"); ax_soa.set_ylabel("SOA (ms)")

    for block in split_blocks(trials)[1:]:
        for ax in (ax_polarity, ax_soa):
            ax.axvline(block[0]["trialIndex"] - 0.5, color="tab:blue", linestyle=":")

    ax_polarity.set_title(f"{len(trials)} trials")
    plt.tight_layout()
    plt.savefig(path, dpi=160)
    plt.close(fig)
    return path


# ------------- Command line -------------
def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="toj-sequences", description="Generate the trial sequence of one TOJ negation session")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--config", type=pathlib.Path, help="JSON design configuration")
    source.add_argument("--preset", choices=sorted(PRESETS), default="main")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output-dir", type=pathlib.Path, default=pathlib.Path("."))
    parser.add_argument("--plot", action="store_true", help="save a block structure figure")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_design(args.config, args.preset, args.seed)
        result = generate(config)
    except TojSequenceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print("Generated alternating trial sequence.")

    summary = summarize(result)
    print(format_summary(summary))

    output_dir = args.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    trials_to_frame(result.trials).to_csv(output_dir / "trials.csv", index=False)
    (output_dir / "experiment.js").write_text(stimulus_sequence(result), encoding="utf-8")
    (output_dir / "summary.txt").write_text(format_summary(summary), encoding="utf-8")
    saved = ["trials.csv", "experiment.js", "summary.txt"]

    if args.plot:
        plot_design(result.trials, output_dir / "design_structure.png")
        saved.append("design_structure.png")

    print("Saved: " + ", ".join(saved))
    return 0


if __name__ == "__main__":
    sys.exit(main())
