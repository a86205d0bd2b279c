"""Shared constants for scoring and scheduling."""

# Total score weights (percent, sum to 100)
ACCURACY_WEIGHT = 40
FLUENCY_WEIGHT = 30
PRONUNCIATION_WEIGHT = 30

# Feedback tier lower bounds; anything below FAIR is poor
SCORE_EXCELLENT_THRESHOLD = 90
SCORE_GOOD_THRESHOLD = 75
SCORE_FAIR_THRESHOLD = 45

# Specific advice is added when a sub-score falls below these
ACCURACY_ADVICE_THRESHOLD = 80
FLUENCY_ADVICE_THRESHOLD = 70
PRONUNCIATION_ADVICE_THRESHOLD = 75

# A token counts as correctly produced at or above this similarity
TOKEN_PASS_SCORE = 80

# Fluency defaults
IDEAL_SECONDS_PER_TOKEN = 0.5
PACE_PENALTY = 100.0  # Points lost per second of deviation from the ideal pace
GAP_VARIANCE_PENALTY = 200.0  # Points lost per unit of inter-token gap variance

# Synthetic spacing given to reference tokens that carry no timing
REFERENCE_TOKEN_SECONDS = 0.5

# SM-2
MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
PASSING_GRADE = 3

# Urgency tier upper bounds, in hours until the next review
URGENT_WITHIN_HOURS = 24
RECOMMENDED_WITHIN_HOURS = 48

# Mastery adjustments per attempt
MASTERY_GAIN_SCORE = 70
MASTERY_LOSS_SCORE = 50
MASTERY_GAIN = 10
MASTERY_LOSS = 5

SUPPORTED_LANGUAGES = frozenset(
    {
        "en", "en-US", "en-GB",
        "ja", "ja-JP",
        "zh", "zh-CN",
        "ru", "ru-RU",
        "es", "es-ES",
        "fr", "fr-FR",
        "de", "de-DE",
        "it", "it-IT",
        "pt", "pt-PT",
        "ar", "ar-SA",
        "he", "he-IL",
        "tr", "tr-TR",
    }
)
