"""Centralized constants for the Leitner scheduler.

All tuning numbers for the card state machine live here so the domain
model and the application layer import from a single source of truth.
"""

# ---------- Boxes ----------
MIN_BOX = 1
MAX_BOX = 6
LEVELS = tuple(range(MIN_BOX, MAX_BOX + 1))

# Baseline review interval per box (days), index = box - 1
BASE_INTERVALS = (1, 3, 7, 16, 35, 80)

# ---------- Promotion ----------
MIN_STREAK_FOR_PROMOTION = 2
MAX_STREAK_FOR_PROMOTION = 4
STRICT_PROMOTION_BOX = 4  # from this box on, speed and accuracy are checked too
MIN_SUCCESS_RATE_FOR_PROMOTION = 0.7
PROMOTION_SLOWNESS_LIMIT = 2.0  # x expected response time

# ---------- Response time ----------
EXPECTED_RESPONSE_SECONDS = 10.0  # scaled by Difficulty.time_factor
RESPONSE_TIME_ALPHA = 0.3  # EMA smoothing
FAST_ANSWER_RATIO = 0.5
SLOW_ANSWER_RATIO = 1.5
DEFAULT_MAX_RESPONSE_SECONDS = 600.0

# ---------- Intervals ----------
# Keyed by Difficulty member name
DIFFICULTY_FACTORS = {
    "EASY": 2.0,
    "MEDIUM": 1.0,
    "HARD": 0.6,
    "VERY_HARD": 0.3,
}
MIN_ATTEMPTS_FOR_PERFORMANCE = 3
# (minimum success rate, factor), checked top-down
PERFORMANCE_FACTORS = (
    (0.9, 1.3),
    (0.7, 1.0),
    (0.5, 0.8),
)
POOR_PERFORMANCE_FACTOR = 0.6
NOISE_MIN = 0.85
NOISE_SPAN = 0.3
MIN_INTERVAL_DAYS = 1

# ---------- Priority ----------
OVERDUE_DAY_WEIGHT = 0.5
DIFFICULTY_RANK_WEIGHT = 0.3

# ---------- Queries ----------
ALL_TOPICS = "All topics"
QUESTION_ID_SEPARATOR = ":"
