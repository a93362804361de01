"""
All task constants. No imports from other loudness modules.
Levels and step sizes are in dB-like units unless the name includes a unit suffix.
"""

# N-down / M-up criteria
DOWN_CRITERION: int = 2   # consecutive "heard" responses before stepping down
UP_CRITERION: int = 1     # consecutive "not heard" responses before stepping up

# Staircase levels and step sizes (dB)
INITIAL_LEVEL_DB: float = 40.0
INITIAL_STEP_DB: float = 4.0
MIN_STEP_DB: float = 1.0
MAX_STEP_DB: float = 32.0
TARGET_STEP_DB: float = 2.0   # reversals at or below this step are tallied separately

# Stopping policy
MAX_TRIALS: int = 30
MAX_REVERSALS: int = 6
N_REVERSALS_FOR_ESTIMATE: int = 4

# Tone parameters
TONE_FREQ_HZ: float = 440.0
TONE_DUR_S: float = 0.5
SAMPLE_RATE_HZ: int = 44100
REFERENCE_LEVEL_DB: float = 40.0   # level at which amplitude == 1.0
MAX_AMPLITUDE: float = 1.0

# Response prompt
RESPONSE_PROMPT: str = "  Did you hear it? (1 = yes, 0 = no, ENTER = no): "
DETECTED_KEY: str = "1"
