"""
Tone synthesis and playback.
No staircase logic, no response handling, no I/O beyond the sound device.
"""
from __future__ import annotations

import numpy as np
from psychopy import core

from loudness import config


def level_to_amplitude(
    level_db: float, reference_level_db: float = config.REFERENCE_LEVEL_DB
) -> float:
    """Linear amplitude for a dB level relative to the reference, clipped to MAX_AMPLITUDE."""
    amplitude = 10 ** ((level_db - reference_level_db) / 20)
    return float(min(amplitude, config.MAX_AMPLITUDE))


def build_tone(
    freq_hz: float = config.TONE_FREQ_HZ,
    dur_s: float = config.TONE_DUR_S,
    sample_rate: int = config.SAMPLE_RATE_HZ,
) -> np.ndarray:
    """Unit-amplitude sine wave sampled at 0, 1/fs, ..., dur_s (endpoint included)."""
    n_samples = int(round(dur_s * sample_rate)) + 1
    t = np.arange(n_samples) / sample_rate
    return np.sin(2 * np.pi * freq_hz * t)


class TonePresenter:
    """
    Plays the base tone scaled to a staircase level.

    The tone is synthesised once; present() only rescales it.  psychopy.sound
    is imported on first use so that importing this module never touches the
    audio backend.
    """

    def __init__(
        self,
        freq_hz: float = config.TONE_FREQ_HZ,
        dur_s: float = config.TONE_DUR_S,
        sample_rate: int = config.SAMPLE_RATE_HZ,
        reference_level_db: float = config.REFERENCE_LEVEL_DB,
    ) -> None:
        self.freq_hz = freq_hz
        self.dur_s = dur_s
        self.sample_rate = sample_rate
        self.reference_level_db = reference_level_db
        self._base_tone = build_tone(freq_hz, dur_s, sample_rate)

    def waveform(self, level_db: float) -> tuple[np.ndarray, float]:
        """Return (samples, amplitude) for the given level."""
        amplitude = level_to_amplitude(level_db, self.reference_level_db)
        return amplitude * self._base_tone, amplitude

    def present(self, level_db: float) -> float:
        """Play the tone at level_db, block for its duration, return the amplitude used."""
        from psychopy import sound

        samples, amplitude = self.waveform(level_db)
        tone = sound.Sound(value=samples, sampleRate=self.sample_rate, stereo=False)
        tone.play()
        core.wait(self.dur_s)
        return amplitude
