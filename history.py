"""
FitTrack — Training History
Plain snapshot records handed to the engines. The engines never see ORM rows.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Union

Number = Union[int, float, Decimal]


# ══════════════════════════════════════════════════════════════════════════════
# TIME
# ══════════════════════════════════════════════════════════════════════════════

def as_utc(moment: datetime) -> datetime:
    """Aware UTC datetime. Naive values, as SQLite hands them back, are read as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def whole_minutes(started_at: datetime, ended_at: Optional[datetime]) -> Optional[int]:
    if ended_at is None:
        return None
    return int((as_utc(ended_at) - as_utc(started_at)).total_seconds() // 60)


# ══════════════════════════════════════════════════════════════════════════════
# MUSCLE GROUPS
# ══════════════════════════════════════════════════════════════════════════════

# Reference set used for balance checks, in reporting order.
MUSCLE_GROUPS = ("Chest", "Back", "Legs", "Shoulders", "Arms", "Core")

_CANONICAL = {g.casefold(): g for g in MUSCLE_GROUPS}


def canonical_muscle_group(group: Optional[str]) -> Optional[str]:
    """
    Map a free-text catalog tag onto the reference spelling ("chest" → "Chest").
    Unknown tags are returned stripped but otherwise untouched.
    """
    if group is None:
        return None
    stripped = group.strip()
    if not stripped:
        return None
    return _CANONICAL.get(stripped.casefold(), stripped)


# ══════════════════════════════════════════════════════════════════════════════
# RECORDS
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CatalogExercise:
    id: str
    name: str
    muscle_group: Optional[str] = None
    description: Optional[str] = None
    video_url: Optional[str] = None


@dataclass(frozen=True)
class ExerciseEntry:
    name: str
    sets: Optional[int] = None
    reps: Optional[int] = None
    weight: Optional[Number] = None
    duration_seconds: Optional[int] = None
    position: int = 1
    exercise_id: Optional[str] = None
    muscle_group: Optional[str] = None      # resolved from the linked catalog row
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class WorkoutRecord:
    id: str
    user_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    exercises: tuple[ExerciseEntry, ...] = ()

    @property
    def is_completed(self) -> bool:
        return self.ended_at is not None

    @property
    def duration_minutes(self) -> Optional[int]:
        return whole_minutes(self.started_at, self.ended_at)


@dataclass(frozen=True)
class UserProfile:
    height_cm: Optional[Number] = None
    weight_kg: Optional[Number] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    fitness_goal: Optional[str] = None
    activity_level: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════════
# SNAPSHOT
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TrainingHistory:
    """
    One read of a user's stored history.

    workouts  — completed workouts in the analysis window
    entries   — every exercise entry the user has logged, newest first
    catalog   — catalog exercises in storage order (name, then id)
    """
    workouts: tuple[WorkoutRecord, ...] = ()
    entries: tuple[ExerciseEntry, ...] = ()
    catalog: tuple[CatalogExercise, ...] = field(default_factory=tuple)

    def last_exercise_entry(self, name_substring: str) -> Optional[ExerciseEntry]:
        """Most recent entry whose name contains name_substring, case-insensitively."""
        needle = name_substring.casefold()
        for entry in self.entries:
            if needle in entry.name.casefold():
                return entry
        return None
