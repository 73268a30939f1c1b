"""
FitTrack — Metric Calculators
BMI, age, Harris-Benedict calorie estimate and workout streaks.
Every calculator is total: missing inputs give None, never an exception.
"""

import math
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Context, Decimal, ROUND_HALF_EVEN, localcontext
from typing import Iterable, Optional

from history import Number, UserProfile, WorkoutRecord

log = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════════
# CONSTANTS
# ══════════════════════════════════════════════════════════════════════════════

ACTIVITY_MULTIPLIERS = {
    "sedentary":   1.2,
    "light":       1.375,
    "moderate":    1.55,
    "active":      1.725,
    "very_active": 1.9,
}
DEFAULT_ACTIVITY_MULTIPLIER = 1.55

# (upper bound exclusive, label)
BMI_CATEGORIES = (
    (18.5, "Underweight"),
    (25.0, "Normal"),
    (30.0, "Overweight"),
)
BMI_TOP_CATEGORY = "Obese"

DAYS_PER_YEAR = 365.25
STREAK_LOOKBACK_DAYS = 365

_ONE_DECIMAL = Decimal("0.1")

# Overflow and division problems yield Infinity or NaN instead of raising
_UNTRAPPED = Context(traps=[])


# ══════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class HealthMetrics:
    bmi: Optional[float]
    bmi_category: Optional[str]
    estimated_daily_calories: Optional[int]
    age: Optional[int]


@dataclass(frozen=True)
class ProfileStats:
    total_workouts: int
    total_minutes: int
    current_streak: int
    longest_streak: int
    last_workout_date: Optional[datetime]


# ══════════════════════════════════════════════════════════════════════════════
# ROUNDING
# ══════════════════════════════════════════════════════════════════════════════

def _decimal(value: Optional[Number]) -> Optional[Decimal]:
    """Decimal form of value; None when it is missing, NaN or infinite."""
    if value is None:
        return None
    number = value if isinstance(value, Decimal) else Decimal(str(value))
    return number if number.is_finite() else None


def round_one(value: Optional[Number]) -> Optional[float]:
    """
    Round half-to-even at one decimal, on the decimal value rather than the float.
    Values that are not finite, or too large for a float, give None.
    """
    number = _decimal(value)
    if number is None:
        return None
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the tenths
        ctx.prec = max(ctx.prec, number.adjusted() + 2)
        rounded = float(number.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_EVEN))
    return rounded if math.isfinite(rounded) else None


def progressive_weight(weight: Optional[Number], rate: Optional[Number]) -> Optional[float]:
    """weight × rate rounded to 0.1 kg; None when no usable weight was recorded."""
    weight, rate = _decimal(weight), _decimal(rate)
    if weight is None or rate is None:
        return None
    with localcontext(_UNTRAPPED):
        return round_one(weight * rate)


# ══════════════════════════════════════════════════════════════════════════════
# CALCULATORS
# ══════════════════════════════════════════════════════════════════════════════

def age(birth_date: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if birth_date is None:
        return None
    if isinstance(birth_date, datetime):
        birth_date = birth_date.date()
    today = today or datetime.now(timezone.utc).date()
    return math.floor((today - birth_date).days / DAYS_PER_YEAR)


def bmi(height_cm: Optional[Number], weight_kg: Optional[Number]) -> Optional[float]:
    """BMI = kg / m², one decimal."""
    height, weight = _decimal(height_cm), _decimal(weight_kg)
    if height is None or weight is None or height <= 0:
        return None
    with localcontext(_UNTRAPPED):
        metres = height / 100
        return round_one(weight / (metres * metres))


def bmi_category(value: Optional[Number]) -> Optional[str]:
    if value is None or not math.isfinite(value):
        return None
    for upper, label in BMI_CATEGORIES:
        if value < upper:
            return label
    return BMI_TOP_CATEGORY


def daily_calories(
    weight_kg: Optional[Number],
    height_cm: Optional[Number],
    age_years: Optional[int],
    gender: Optional[str] = None,
    activity_level: Optional[str] = None,
) -> Optional[int]:
    """
    Harris-Benedict BMR × activity multiplier, truncated.
    The male equation applies only to "male"; female, other and unset share the other one.
    """
    if weight_kg is None or height_cm is None or age_years is None:
        return None

    w, h = float(weight_kg), float(height_cm)
    if (gender or "").lower() == "male":
        bmr = 88.362 + 13.397 * w + 4.799 * h - 5.677 * age_years
    else:
        bmr = 447.593 + 9.247 * w + 3.098 * h - 4.330 * age_years

    multiplier = ACTIVITY_MULTIPLIERS.get((activity_level or "").lower(), DEFAULT_ACTIVITY_MULTIPLIER)
    calories = bmr * multiplier
    return int(calories) if math.isfinite(calories) else None


def streaks(workout_dates: Iterable[date], today: Optional[date] = None) -> tuple[int, int]:
    """
    Returns (current_streak, longest_streak) from calendar dates of completed workouts.

    The current streak is alive only if today or yesterday has a workout, and
    counts back from whichever of the two is present.
    """
    dates = sorted(set(workout_dates), reverse=True)
    if not dates:
        return 0, 0

    today = today or datetime.now(timezone.utc).date()
    yesterday = today - timedelta(days=1)
    present = set(dates)

    current = 0
    if today in present or yesterday in present:
        anchor = today if today in present else yesterday
        current = 1
        for offset in range(1, STREAK_LOOKBACK_DAYS):
            if anchor - timedelta(days=offset) in present:
                current += 1
            else:
                break

    longest = 0
    run = 1
    for newer, older in zip(dates, dates[1:]):
        if (newer - older).days == 1:
            run += 1
        else:
            longest = max(longest, run)
            run = 1
    longest = max(longest, run, current)

    return current, longest


# ══════════════════════════════════════════════════════════════════════════════
# AGGREGATES
# ══════════════════════════════════════════════════════════════════════════════

def compute_health_metrics(profile: UserProfile, today: Optional[date] = None) -> HealthMetrics:
    bmi_value = bmi(profile.height_cm, profile.weight_kg)
    age_years = age(profile.date_of_birth, today)
    return HealthMetrics(
        bmi=bmi_value,
        bmi_category=bmi_category(bmi_value),
        estimated_daily_calories=daily_calories(
            profile.weight_kg, profile.height_cm, age_years,
            profile.gender, profile.activity_level,
        ),
        age=age_years,
    )


def _utc_date(moment: datetime) -> date:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


def compute_profile_stats(
    workouts: Iterable[WorkoutRecord],
    now: Optional[datetime] = None,
) -> ProfileStats:
    """Lifetime totals and streaks over completed workouts."""
    completed = [w for w in workouts if w.is_completed]
    now = now or datetime.now(timezone.utc)

    current, longest = streaks(
        (_utc_date(w.started_at) for w in completed),
        today=_utc_date(now),
    )
    last = max((w.started_at for w in completed), default=None)

    log.debug(f"Profile stats: {len(completed)} workouts, streak {current}/{longest}")
    return ProfileStats(
        total_workouts=len(completed),
        total_minutes=sum(w.duration_minutes or 0 for w in completed),
        current_streak=current,
        longest_streak=longest,
        last_workout_date=last,
    )
