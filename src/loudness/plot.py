"""
Loading recorded runs, threshold estimates and the staircase plot.
"""
from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from loudness import config


def load_results(path: Path) -> pd.DataFrame:
    """Read a trial CSV written by CsvWriter."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Results file not found: {path}")
    df = pd.read_csv(path, dtype={"response": str})
    required = {"trial_n", "level", "presented_level", "reversal"}
    if not required.issubset(df.columns):
        raise ValueError(f"Results file must have columns {required}; got {set(df.columns)}")
    return df


def final_level_threshold(df: pd.DataFrame) -> float:
    """Threshold estimate as the level the staircase ended on."""
    if df.empty:
        return float("nan")
    return float(df["level"].iloc[-1])


def reversal_threshold(
    df: pd.DataFrame, n_last: int = config.N_REVERSALS_FOR_ESTIMATE
) -> float:
    """Mean presented level over the last n_last reversal trials (NaN if none)."""
    levels = df.loc[df["reversal"].astype(bool), "presented_level"].to_numpy()
    if levels.size == 0 or n_last < 1:
        return float("nan")
    return float(np.mean(levels[-n_last:]))


def plot_staircase(
    df: pd.DataFrame,
    reference_level: float = config.REFERENCE_LEVEL_DB,
    ax=None,
):
    """Plot level against trial index with reversals marked. Returns (fig, ax)."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 4.5))
    else:
        fig = ax.figure

    trials = df["trial_n"].to_numpy()
    ax.plot(trials, df["level"].to_numpy(), "-o", linewidth=1.5, label="Loudness level")
    rev = df["reversal"].astype(bool).to_numpy()
    if rev.any():
        ax.plot(trials[rev], df["level"].to_numpy()[rev], "s", mfc="none", ms=10,
                color="k", label="Reversals")
    ax.axhline(reference_level, linestyle="--", color="r", linewidth=1.5,
               label=f"Reference = {reference_level:g} dB")
    ax.set_xlabel("Trial index")
    ax.set_ylabel("Loudness level (dB)")
    ax.set_title("Staircase Loudness Threshold")
    if len(trials) > 1:
        ax.set_xlim(trials[0], trials[-1])
    ax.grid(True)
    ax.legend(loc="best")
    return fig, ax
