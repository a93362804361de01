"""
Data recording: TrialRecord, CsvWriter, write_manifest.
"""
from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loudness.session import SessionInfo
    from loudness.staircase import StaircaseConfig


@dataclass
class TrialRecord:
    trial_n: int
    level: float                 # level after the update (next trial's level)
    presented_level: float       # level the tone was played at
    amplitude: float
    step_size: float             # step size after the update
    response: str                # raw text entered by the participant
    detected: int
    direction: str               # "up" | "down" | "none"
    reversal: int
    reversal_count: int
    reversals_at_or_below_target: int


TRIAL_COLUMNS: list[str] = [
    "trial_n", "level", "presented_level", "amplitude", "step_size", "response",
    "detected", "direction", "reversal", "reversal_count",
    "reversals_at_or_below_target",
]


class CsvWriter:
    def __init__(self, path: Path, columns: list[str] = TRIAL_COLUMNS) -> None:
        self._file = open(path, "w", newline="")
        self._writer = csv.DictWriter(self._file, fieldnames=columns)
        self._writer.writeheader()
        self._columns = columns

    def append(self, record: TrialRecord) -> None:
        row = {k: getattr(record, k) for k in self._columns}
        self._writer.writerow(row)
        self._file.flush()

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> CsvWriter:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def write_manifest(
    run_dir: Path,
    session_info: "SessionInfo",
    session_time: datetime,
    staircase_config: "StaircaseConfig",
) -> Path:
    from loudness import __version__
    from loudness.config import (
        REFERENCE_LEVEL_DB,
        SAMPLE_RATE_HZ,
        TONE_DUR_S,
        TONE_FREQ_HZ,
    )

    manifest = {
        "loudness_threshold_version": __version__,
        "subject_id": session_info.subject_id,
        "session_time": session_time.isoformat(timespec="seconds"),
        "max_trials": session_info.max_trials,
        "max_reversals": session_info.max_reversals,
        "staircase": {
            "initial_level_db": session_info.initial_level_db,
            "initial_step_db": session_info.initial_step_db,
            "down_criterion": staircase_config.down_criterion,
            "up_criterion": staircase_config.up_criterion,
            "min_step_db": staircase_config.min_step_size,
            "max_step_db": staircase_config.max_step_size,
            "target_step_db": staircase_config.target_step_size,
        },
        "tone": {
            "freq_hz": TONE_FREQ_HZ,
            "dur_s": TONE_DUR_S,
            "sample_rate_hz": SAMPLE_RATE_HZ,
            "reference_level_db": REFERENCE_LEVEL_DB,
        },
    }
    path = run_dir / "manifest.json"
    with open(path, "w") as f:
        json.dump(manifest, f, indent=2)
    return path
