"""
Response collection, run_trial() and the stopping policy.
No tone synthesis here; no data is written here.
"""
from __future__ import annotations

from typing import Callable, Protocol

from psychopy import logging
from rich.console import Console

from loudness import config
from loudness.recorder import TrialRecord
from loudness.staircase import (
    AdaptationState,
    StaircaseConfig,
    StepResult,
    update,
)


class Presenter(Protocol):
    def present(self, level_db: float) -> float:
        """Play a stimulus at level_db and return the linear amplitude used."""
        ...


def parse_response(text: str | None) -> bool:
    """'1' means detected; anything else (including empty input) means not detected."""
    if not text:
        return False
    return text.strip() == config.DETECTED_KEY


def collect_response(console: Console) -> str:
    """Prompt on the console and return the raw answer ("0" when left empty)."""
    text = console.input(config.RESPONSE_PROMPT).strip()
    return text or "0"


def stop_reason(
    trial_n: int, state: AdaptationState, max_trials: int, max_reversals: int
) -> str | None:
    """Return why the run should stop before trial_n (1-indexed), or None to continue."""
    if state.reversal_count >= max_reversals:
        return "max_reversals"
    if trial_n > max_trials:
        return "max_trials"
    return None


def run_trial(
    trial_n: int,
    state: AdaptationState,
    staircase_config: StaircaseConfig,
    presenter: Presenter,
    respond: Callable[[], str],
) -> tuple[TrialRecord, AdaptationState, StepResult]:
    """
    Run one complete trial (play tone -> collect response -> update staircase).

    Returns:
        record     – TrialRecord for the trial CSV
        new_state  – staircase state for the next trial
        result     – direction taken and reversal flag
    """
    presented_level = state.stimulus_level
    amplitude = presenter.present(presented_level)
    logging.exp(
        f"Trial {trial_n}: level={presented_level:.1f} dB  amplitude={amplitude:.3f}"
    )

    response = respond()
    detected = parse_response(response)
    new_state, result = update(detected, state, staircase_config)

    record = TrialRecord(
        trial_n=trial_n,
        level=new_state.stimulus_level,
        presented_level=presented_level,
        amplitude=round(amplitude, 6),
        step_size=new_state.step_size,
        response=response,
        detected=int(detected),
        direction=result.direction.value,
        reversal=int(result.reversal),
        reversal_count=new_state.reversal_count,
        reversals_at_or_below_target=new_state.reversals_at_or_below_target,
    )
    return record, new_state, result
