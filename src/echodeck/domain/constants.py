"""Scheduling policy constants.

These are fixed policy, not runtime configuration. Every layer imports them
from here.
"""

# ---------- Steps (minutes) ----------
LEARNING_STEPS = (1, 10)
RELEARNING_STEPS = (10,)

# ---------- Graduation ----------
GRADUATING_INTERVAL = 1  # days
EASY_INTERVAL = 4  # days
RELEARN_INTERVAL_FACTOR = 0.5

# ---------- Ease ----------
DEFAULT_EASE = 2.5
MINIMUM_EASE = 1.3
EASY_EASE_BONUS = 0.15
HARD_EASE_PENALTY = 0.15
LAPSE_EASE_PENALTY = 0.2

# ---------- Interval multipliers ----------
EASY_BONUS = 1.3
HARD_MULTIPLIER = 1.2
INTERVAL_MODIFIER = 1.0
FUZZ_FRACTION = 0.05

# ---------- Queue ----------
NEW_CARD_SPACING = 10  # one new card after every N due cards

# ---------- Statistics ----------
MATURE_INTERVAL = 21  # days
DEFAULT_FORECAST_DAYS = 30

# ---------- Persistence ----------
REVIEW_LOG_CAP = 10_000

# ---------- Time ----------
MS_PER_MINUTE = 60_000
MS_PER_DAY = 86_400_000
