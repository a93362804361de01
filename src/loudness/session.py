"""
Session initialisation: dialog, staircase parameters, output directory.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from loudness import config
from loudness.staircase import StaircaseConfig


@dataclass
class SessionInfo:
    subject_id: str
    initial_level_db: float
    initial_step_db: float
    max_trials: int
    max_reversals: int


_LEVEL_KEY = f"Initial level (dB) [default {config.INITIAL_LEVEL_DB}]"
_STEP_KEY = f"Initial step (dB) [default {config.INITIAL_STEP_DB}]"
_TRIALS_KEY = f"Max trials [default {config.MAX_TRIALS}]"
_REVERSALS_KEY = f"Max reversals [default {config.MAX_REVERSALS}]"


def _parse(text: str, cast, default):
    try:
        return cast(text)
    except (TypeError, ValueError):
        return default


def session_from_fields(fields: dict) -> SessionInfo:
    """Build a SessionInfo from dialog fields; unparsable numbers fall back to defaults."""
    return SessionInfo(
        subject_id=str(fields["Subject ID"]).strip(),
        initial_level_db=_parse(fields[_LEVEL_KEY], float, config.INITIAL_LEVEL_DB),
        initial_step_db=_parse(fields[_STEP_KEY], float, config.INITIAL_STEP_DB),
        max_trials=_parse(fields[_TRIALS_KEY], int, config.MAX_TRIALS),
        max_reversals=_parse(fields[_REVERSALS_KEY], int, config.MAX_REVERSALS),
    )


def show_dialog() -> SessionInfo:
    """Present the startup dialog and return a SessionInfo."""
    from psychopy import core, gui

    fields = {
        "Subject ID": "XXX000",
        _LEVEL_KEY: str(config.INITIAL_LEVEL_DB),
        _STEP_KEY: str(config.INITIAL_STEP_DB),
        _TRIALS_KEY: str(config.MAX_TRIALS),
        _REVERSALS_KEY: str(config.MAX_REVERSALS),
    }
    dlg = gui.DlgFromDict(dictionary=fields, title="Loudness Threshold")
    if not dlg.OK:
        core.quit()
    return session_from_fields(fields)


def build_staircase_config() -> StaircaseConfig:
    """StaircaseConfig from config.py; raises ConfigurationError on bad constants."""
    return StaircaseConfig(
        down_criterion=config.DOWN_CRITERION,
        up_criterion=config.UP_CRITERION,
        min_step_size=config.MIN_STEP_DB,
        max_step_size=config.MAX_STEP_DB,
        target_step_size=config.TARGET_STEP_DB,
    )


def make_run_dir(data_dir: Path, session_info: SessionInfo, session_time: datetime) -> Path:
    """Create and return data/{subject_id}_{YYYYMMDDTHHMMSS}/."""
    ts = session_time.strftime("%Y%m%dT%H%M%S")
    run_dir = data_dir / f"{session_info.subject_id}_{ts}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir
