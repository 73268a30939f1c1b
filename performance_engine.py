"""
FitTrack — Performance Analyzer
Last-30-days training balance, progressive-overload suggestions and
date-ranged progress statistics.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from history import (
    MUSCLE_GROUPS, ExerciseEntry, TrainingHistory, WorkoutRecord,
    as_utc, canonical_muscle_group,
)
from metrics_engine import progressive_weight, round_one

log = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════════
# CONSTANTS
# ══════════════════════════════════════════════════════════════════════════════

ANALYSIS_WINDOW_DAYS = 30

UNDERTRAINED_RATIO = 0.5
OVERTRAINED_RATIO = 1.5

MAX_SUGGESTIONS = 5
SUGGESTION_RATE = 1.05
SUGGESTION_REASON = "5% weight increase for progressive overload"

BALANCED_FOCUS = "You are following a balanced program!"


# ══════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProgressSuggestion:
    exercise_name: str
    last_weight: Optional[float]
    last_reps: Optional[int]
    suggested_weight: Optional[float]
    suggested_reps: Optional[int]
    reason: str


@dataclass(frozen=True)
class PerformanceAnalysis:
    total_workouts: int
    average_duration_minutes: float
    muscle_group_frequency: Mapping[str, int]          # read-only view
    undertrained: tuple[str, ...]
    overtrained: tuple[str, ...]
    recommended_focus: str
    suggestions: tuple[ProgressSuggestion, ...] = ()


@dataclass(frozen=True)
class WeeklyStats:
    week_start: str         # Monday, YYYY-MM-DD
    workout_count: int
    total_minutes: int


@dataclass(frozen=True)
class MuscleGroupStats:
    muscle_group: str
    exercise_count: int


@dataclass(frozen=True)
class ProgressStats:
    total_workouts: int
    total_minutes: int
    total_exercises: int
    average_workout_minutes: float
    weekly_stats: tuple[WeeklyStats, ...] = ()
    muscle_group_stats: tuple[MuscleGroupStats, ...] = ()


# ══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def muscle_group_frequency(workouts: Iterable[WorkoutRecord]) -> dict[str, int]:
    """Entry counts per resolved muscle group. Entries without a group are skipped."""
    counts: Counter[str] = Counter()
    for workout in workouts:
        for entry in workout.exercises:
            group = canonical_muscle_group(entry.muscle_group)
            if group is not None:
                counts[group] += 1
    return dict(counts)


def week_start(moment: datetime) -> date:
    day = moment.date()
    return day - timedelta(days=day.weekday())


# ══════════════════════════════════════════════════════════════════════════════
# ANALYZER
# ══════════════════════════════════════════════════════════════════════════════

class PerformanceAnalyzer:
    """
    Aggregates a history snapshot into balance and overload signals.
    Stateless; recompute per request.
    """

    def window(
        self, workouts: Iterable[WorkoutRecord], now: datetime
    ) -> list[WorkoutRecord]:
        since = as_utc(now) - timedelta(days=ANALYSIS_WINDOW_DAYS)
        return [
            w for w in workouts
            if w.is_completed and as_utc(w.started_at) >= since
        ]

    def balance(self, frequency: dict[str, int]) -> tuple[list[str], list[str]]:
        """
        (undertrained, overtrained) relative to the mean group count.
        Reference groups that were never trained are always undertrained.
        """
        avg = sum(frequency.values()) / len(frequency) if frequency else 0.0

        undertrained = [
            g for g in MUSCLE_GROUPS
            if g not in frequency or frequency[g] < avg * UNDERTRAINED_RATIO
        ]
        overtrained = [
            g for g, count in frequency.items()
            if count > avg * OVERTRAINED_RATIO
        ]
        return undertrained, overtrained

    def suggestions(self, entries: Iterable[ExerciseEntry]) -> list[ProgressSuggestion]:
        """
        Latest weighted entry of the first MAX_SUGGESTIONS distinct exercise names,
        newest first. Entries without a rep count get no suggestion.
        """
        latest: dict[str, ExerciseEntry] = {}
        for entry in entries:
            if entry.weight is None or entry.name in latest:
                continue
            latest[entry.name] = entry
            if len(latest) == MAX_SUGGESTIONS:
                break

        result = []
        for entry in latest.values():
            if entry.reps is None:
                continue
            result.append(ProgressSuggestion(
                exercise_name=entry.name,
                last_weight=float(entry.weight),
                last_reps=entry.reps,
                suggested_weight=progressive_weight(entry.weight, SUGGESTION_RATE),
                suggested_reps=entry.reps,
                reason=SUGGESTION_REASON,
            ))
        return result

    def analyze(
        self, history: TrainingHistory, now: Optional[datetime] = None
    ) -> PerformanceAnalysis:
        now = now or datetime.now(timezone.utc)
        recent = self.window(history.workouts, now)

        total = len(recent)
        avg_duration = (
            round_one(sum(w.duration_minutes or 0 for w in recent) / total)
            if total else 0.0
        )

        frequency = muscle_group_frequency(recent)
        undertrained, overtrained = self.balance(frequency)

        if undertrained:
            focus = f"Undertrained muscle groups: {', '.join(undertrained)}"
        else:
            focus = BALANCED_FOCUS

        log.debug(
            f"Analyzed {total} workouts: frequency={frequency} "
            f"under={undertrained} over={overtrained}"
        )
        return PerformanceAnalysis(
            total_workouts=total,
            average_duration_minutes=avg_duration,
            muscle_group_frequency=MappingProxyType(frequency),
            undertrained=tuple(undertrained),
            overtrained=tuple(overtrained),
            recommended_focus=focus,
            suggestions=tuple(self.suggestions(history.entries)),
        )

    def progress_stats(
        self,
        workouts: Iterable[WorkoutRecord],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> ProgressStats:
        """Totals, per-week counts and per-muscle-group counts for [start, end]."""
        end = as_utc(end) if end else datetime.now(timezone.utc)
        start = as_utc(start) if start else end - timedelta(days=ANALYSIS_WINDOW_DAYS)

        selected = sorted(
            (w for w in workouts
             if w.is_completed and start <= as_utc(w.started_at) <= end),
            key=lambda w: as_utc(w.started_at),
        )

        total = len(selected)
        minutes = sum(w.duration_minutes or 0 for w in selected)

        weeks: dict[date, list[WorkoutRecord]] = {}
        for w in selected:
            weeks.setdefault(week_start(as_utc(w.started_at)), []).append(w)
        weekly = [
            WeeklyStats(
                week_start=monday.isoformat(),
                workout_count=len(group),
                total_minutes=sum(w.duration_minutes or 0 for w in group),
            )
            for monday, group in sorted(weeks.items())
        ]

        frequency = muscle_group_frequency(selected)
        by_group = [
            MuscleGroupStats(muscle_group=g, exercise_count=c)
            for g, c in sorted(frequency.items(), key=lambda kv: kv[1], reverse=True)
        ]

        return ProgressStats(
            total_workouts=total,
            total_minutes=minutes,
            total_exercises=sum(len(w.exercises) for w in selected),
            average_workout_minutes=round_one(minutes / total) if total else 0.0,
            weekly_stats=tuple(weekly),
            muscle_group_stats=tuple(by_group),
        )


performance_analyzer = PerformanceAnalyzer()
