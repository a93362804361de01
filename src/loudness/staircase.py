"""
N-down / M-up staircase with PEST step-size rules.

update() is a pure function: it takes the current AdaptationState, one trial
outcome and a StaircaseConfig, and returns a new AdaptationState plus a
StepResult.  The incoming state is never mutated.

PEST rules applied on every step:
  1. A reversal halves the step size (floored, never below min_step_size).
  2. A step in the same direction as the previous one keeps the step size.
  3. From the 3rd consecutive same-direction step on, the step size doubles
     (never above max_step_size).
  4. If a reversal follows a doubled step, the next doubling is skipped once.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum

from psychopy import logging


class ConfigurationError(ValueError):
    """Staircase parameters that cannot produce a valid staircase."""


class StateError(ValueError):
    """An AdaptationState whose invariants were violated outside update()."""


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    NONE = "none"


@dataclass(frozen=True)
class StaircaseConfig:
    down_criterion: int
    up_criterion: int
    min_step_size: float
    max_step_size: float
    target_step_size: float

    def __post_init__(self) -> None:
        for name in ("down_criterion", "up_criterion"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be an integer >= 1; got {value!r}")
        if self.min_step_size <= 0:
            raise ConfigurationError(f"min_step_size must be > 0; got {self.min_step_size}")
        if self.max_step_size < self.min_step_size:
            raise ConfigurationError(
                f"min_step_size ({self.min_step_size}) exceeds max_step_size ({self.max_step_size})"
            )
        if self.target_step_size <= 0:
            raise ConfigurationError(f"target_step_size must be > 0; got {self.target_step_size}")


@dataclass(frozen=True)
class AdaptationState:
    stimulus_level: float
    step_size: float
    consecutive_correct: int = 0
    consecutive_incorrect: int = 0
    previous_direction: Direction = Direction.NONE
    reversal_count: int = 0
    reversals_at_or_below_target: int = 0
    consecutive_same_direction_steps: int = 1
    skip_next_doubling: bool = False


@dataclass(frozen=True)
class StepResult:
    direction: Direction
    reversal: bool


def initial_state(level: float, step_size: float, config: StaircaseConfig) -> AdaptationState:
    """Return the starting state: given level and step size, zeroed counters."""
    if not config.min_step_size <= step_size <= config.max_step_size:
        raise ConfigurationError(
            f"initial step size {step_size} outside "
            f"[{config.min_step_size}, {config.max_step_size}]"
        )
    return AdaptationState(stimulus_level=level, step_size=step_size)


def validate_state(state: AdaptationState, config: StaircaseConfig) -> None:
    """Raise StateError if the state could not have come from update()."""
    if not 0 < state.step_size <= config.max_step_size:
        raise StateError(
            f"step_size {state.step_size} outside (0, {config.max_step_size}]"
        )
    for name in (
        "consecutive_correct",
        "consecutive_incorrect",
        "reversal_count",
        "reversals_at_or_below_target",
    ):
        if getattr(state, name) < 0:
            raise StateError(f"{name} is negative: {getattr(state, name)}")
    if state.consecutive_same_direction_steps < 1:
        raise StateError(
            f"consecutive_same_direction_steps must be >= 1; "
            f"got {state.consecutive_same_direction_steps}"
        )
    if state.reversals_at_or_below_target > state.reversal_count:
        raise StateError(
            f"reversals_at_or_below_target ({state.reversals_at_or_below_target}) "
            f"exceeds reversal_count ({state.reversal_count})"
        )
    if not isinstance(state.previous_direction, Direction):
        raise StateError(f"unknown previous_direction {state.previous_direction!r}")


def halve_step(step_size: float, min_step_size: float) -> float:
    """Floor of half the step size, raised to min_step_size."""
    halved = float(math.floor(step_size * 0.5))
    if halved < min_step_size:
        halved = min_step_size
    return halved


def update(
    outcome: bool, state: AdaptationState, config: StaircaseConfig
) -> tuple[AdaptationState, StepResult]:
    """
    Apply one trial outcome to the staircase.

    Returns (new_state, StepResult).  When neither criterion is met the level,
    step size and previous_direction are carried over and direction is NONE.
    """
    validate_state(state, config)

    correct = state.consecutive_correct
    incorrect = state.consecutive_incorrect
    if outcome:
        correct += 1
    else:
        incorrect += 1
        correct = 0

    old_step = state.step_size
    if correct >= config.down_criterion:
        direction = Direction.DOWN
        level = state.stimulus_level - old_step
        correct = 0
    elif incorrect >= config.up_criterion:
        direction = Direction.UP
        level = state.stimulus_level + old_step
        incorrect = 0
    else:
        no_step = replace(state, consecutive_correct=correct, consecutive_incorrect=incorrect)
        return no_step, StepResult(direction=Direction.NONE, reversal=False)

    reversal_count = state.reversal_count
    fine_reversals = state.reversals_at_or_below_target
    same_dir = state.consecutive_same_direction_steps
    skip = state.skip_next_doubling

    reversal = (
        state.previous_direction is not Direction.NONE
        and direction is not state.previous_direction
    )
    if reversal:
        reversal_count += 1
        if abs(old_step) <= abs(config.target_step_size):
            fine_reversals += 1
        new_step = halve_step(old_step, config.min_step_size)
        if abs(old_step) >= 2 * abs(new_step):
            skip = True
        same_dir = 1
        logging.exp(
            f"Reversal #{reversal_count} ({direction.value}) at level {level:.1f}, "
            f"step {old_step:g} -> {new_step:g}"
        )
    else:
        if direction is state.previous_direction:
            same_dir += 1
        else:
            same_dir = 1
        new_step = old_step
        if same_dir >= 3:
            if not skip:
                new_step = min(config.max_step_size, old_step * 2)
            else:
                skip = False

    if abs(new_step) > abs(config.max_step_size):
        new_step = config.max_step_size
    # TODO: replace with a plain clamp to min_step_size once the zero-step case is signed off
    if new_step == 0:
        new_step = new_step + 0.1 * old_step

    new_state = AdaptationState(
        stimulus_level=level,
        step_size=new_step,
        consecutive_correct=correct,
        consecutive_incorrect=incorrect,
        previous_direction=direction,
        reversal_count=reversal_count,
        reversals_at_or_below_target=fine_reversals,
        consecutive_same_direction_steps=same_dir,
        skip_next_doubling=skip,
    )
    return new_state, StepResult(direction=direction, reversal=reversal)
