"""
FitTrack — Weekly Plan Generator
Split program by day count → exercise templates per muscle group →
goal/level set-rep adjustment → progressive-overload weight per exercise.
"""

import uuid
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Optional

from history import CatalogExercise, ExerciseEntry, TrainingHistory, canonical_muscle_group
from metrics_engine import progressive_weight
from performance_engine import PerformanceAnalysis, PerformanceAnalyzer, performance_analyzer

log = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════════
# TEMPLATE TABLES
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ExerciseTemplate:
    name: str
    sets: int
    reps: int
    duration_seconds: Optional[int] = None


# Per muscle group, most important movement first
EXERCISE_TEMPLATES = MappingProxyType({
    "Chest": (
        ExerciseTemplate("Bench Press", 4, 10),
        ExerciseTemplate("Incline Dumbbell Press", 3, 12),
        ExerciseTemplate("Cable Fly", 3, 15),
    ),
    "Back": (
        ExerciseTemplate("Deadlift", 4, 8),
        ExerciseTemplate("Pull-up", 4, 10),
        ExerciseTemplate("Barbell Row", 3, 12),
        ExerciseTemplate("Lat Pulldown", 3, 12),
    ),
    "Legs": (
        ExerciseTemplate("Squat", 4, 10),
        ExerciseTemplate("Leg Press", 3, 12),
        ExerciseTemplate("Lunges", 3, 12),
        ExerciseTemplate("Leg Curl", 3, 15),
    ),
    "Shoulders": (
        ExerciseTemplate("Shoulder Press", 4, 10),
        ExerciseTemplate("Lateral Raise", 3, 15),
        ExerciseTemplate("Front Raise", 3, 12),
    ),
    "Arms": (
        ExerciseTemplate("Bicep Curl", 3, 12),
        ExerciseTemplate("Tricep Dips", 3, 12),
        ExerciseTemplate("Hammer Curl", 3, 12),
        ExerciseTemplate("Tricep Pushdown", 3, 15),
    ),
    "Core": (
        ExerciseTemplate("Plank", 3, 1, 60),
        ExerciseTemplate("Crunch", 3, 20),
        ExerciseTemplate("Leg Raise", 3, 15),
    ),
})

# days per week → ordered (day name, muscle groups)
SPLIT_PROGRAMS = MappingProxyType({
    3: (    # Push-Pull-Legs
        ("Push Day", ("Chest", "Shoulders", "Arms")),
        ("Pull Day", ("Back", "Arms")),
        ("Leg Day", ("Legs", "Core")),
    ),
    4: (    # Upper-Lower
        ("Upper Body A", ("Chest", "Back", "Shoulders")),
        ("Lower Body A", ("Legs", "Core")),
        ("Upper Body B", ("Chest", "Back", "Arms")),
        ("Lower Body B", ("Legs", "Core")),
    ),
    5: (    # Bro split
        ("Chest Day", ("Chest", "Core")),
        ("Back Day", ("Back",)),
        ("Shoulder Day", ("Shoulders", "Core")),
        ("Leg Day", ("Legs",)),
        ("Arm Day", ("Arms", "Core")),
    ),
    6: (    # PPL x2
        ("Push Day 1", ("Chest", "Shoulders", "Arms")),
        ("Pull Day 1", ("Back", "Arms")),
        ("Leg Day 1", ("Legs", "Core")),
        ("Push Day 2", ("Chest", "Shoulders", "Arms")),
        ("Pull Day 2", ("Back", "Arms")),
        ("Leg Day 2", ("Legs", "Core")),
    ),
})

MIN_DAYS, MAX_DAYS = 2, 6
DEFAULT_DAYS = 3
DEFAULT_GOAL = "general"
DEFAULT_LEVEL = "intermediate"

EXERCISES_PER_GOAL = {
    "strength":    2,   # fewer movements, heavier load
    "muscle":      3,
    "endurance":   3,
    "weight_loss": 2,   # compound movements
}
DEFAULT_EXERCISE_COUNT = 2

LEVEL_WEIGHT_RATES = {
    "beginner":     1.025,
    "intermediate": 1.05,
    "advanced":     1.025,  # slower progression near the ceiling
}
DEFAULT_WEIGHT_RATE = 1.05

GOAL_DISPLAY_NAMES = {
    "strength":    "Güç",
    "muscle":      "Kas Geliştirme",
    "endurance":   "Dayanıklılık",
    "weight_loss": "Yağ Yakımı",
}
DEFAULT_GOAL_DISPLAY_NAME = "Genel Fitness"

SPLIT_DISPLAY_NAMES = {
    3: "Push-Pull-Legs",
    4: "Upper-Lower",
    5: "Bro Split",
    6: "PPL x2",
}
DEFAULT_SPLIT_DISPLAY_NAME = "Özel"

LOW_CONSISTENCY_WORKOUTS = 8

FIRST_TIME_NOTE = "First time? Start light."


# ══════════════════════════════════════════════════════════════════════════════
# READY-MADE PLANS
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PlanTemplate:
    id: str
    name: str
    description: str
    days_per_week: int
    goal: str
    level: str
    suitable_for: str


PLAN_TEMPLATES = (
    PlanTemplate(
        "beginner-3day", "Beginner Program",
        "3 days a week of full-body training built on the basic lifts",
        3, "general", "beginner", "Ideal for people new to training",
    ),
    PlanTemplate(
        "muscle-4day", "Muscle Building",
        "4 days a week, upper-lower split",
        4, "muscle", "intermediate", "For lifters who want to add muscle mass",
    ),
    PlanTemplate(
        "strength-4day", "Strength Program",
        "4 days a week, focused on compound lifts",
        4, "strength", "intermediate", "For lifters chasing strength gains",
    ),
    PlanTemplate(
        "ppl-6day", "Push-Pull-Legs x2",
        "6 days a week, high-volume program",
        6, "muscle", "advanced", "For experienced athletes",
    ),
    PlanTemplate(
        "weightloss-3day", "Fat Loss",
        "3 days a week, metabolism-boosting program",
        3, "weight_loss", "beginner", "For people who want to lose weight",
    ),
)


# ══════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PlanRequest:
    days_per_week: int = DEFAULT_DAYS
    goal: str = DEFAULT_GOAL
    level: str = DEFAULT_LEVEL


@dataclass
class PlannedExercise:
    exercise_id: str
    name: str
    muscle_group: str
    recommended_sets: int
    recommended_reps: int
    recommended_weight: Optional[float]
    recommended_duration_seconds: Optional[int]
    notes: Optional[str]


@dataclass
class DailyPlan:
    day_number: int
    day_name: str
    focus: str
    exercises: list[PlannedExercise]


@dataclass
class WeeklyPlan:
    plan_name: str
    goal: str
    level: str
    total_days: int
    progress_note: Optional[str]
    days: list[DailyPlan] = field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════════
# RULES
# ══════════════════════════════════════════════════════════════════════════════

def resolve_days(days_per_week: Optional[int]) -> int:
    """Clamp to [2, 6]; two days is raised to three, the smallest split."""
    if days_per_week is None:
        return DEFAULT_DAYS
    days = min(max(days_per_week, MIN_DAYS), MAX_DAYS)
    return 3 if days == 2 else days


def exercise_count_for_goal(goal: Optional[str]) -> int:
    return EXERCISES_PER_GOAL.get((goal or "").lower(), DEFAULT_EXERCISE_COUNT)


def adjust_for_level(base_sets: int, base_reps: int, level: str, goal: str) -> tuple[int, int]:
    """
    Level first (volume), then goal (rep range). Goal rules read the template's
    base reps, so the level never moves the rep target.
    """
    sets, reps = base_sets, base_reps

    level = (level or "").lower()
    if level == "beginner":
        sets = max(2, base_sets - 1)
    elif level == "advanced":
        sets = base_sets + 1

    goal = (goal or "").lower()
    if goal == "strength":
        reps = min(6, base_reps)
        sets = max(4, sets)
    elif goal == "muscle":
        reps = min(max(base_reps, 8), 12)
    elif goal == "endurance":
        reps = max(15, base_reps)
        sets = max(3, sets - 1)

    return sets, reps


def weight_rate_for_level(level: Optional[str]) -> float:
    return LEVEL_WEIGHT_RATES.get((level or "").lower(), DEFAULT_WEIGHT_RATE)


def plan_name(days: int, goal: Optional[str]) -> str:
    goal_name = GOAL_DISPLAY_NAMES.get((goal or "").lower(), DEFAULT_GOAL_DISPLAY_NAME)
    split_name = SPLIT_DISPLAY_NAMES.get(days, DEFAULT_SPLIT_DISPLAY_NAME)
    return f"{goal_name} Programı ({split_name})"


def resolve_catalog_exercise(
    catalog: tuple[CatalogExercise, ...], template_name: str, muscle_group: str
) -> Optional[CatalogExercise]:
    """
    Exact (case-insensitive) name match wins; otherwise the first catalog row,
    in storage order, tagged with the same muscle group.
    """
    wanted = template_name.casefold()
    for item in catalog:
        if item.name.casefold() == wanted:
            return item
    for item in catalog:
        if canonical_muscle_group(item.muscle_group) == muscle_group:
            return item
    return None


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _format_kg(value) -> str:
    """Every recorded digit, no trailing zeros: 100.00 → "100", 12345.67 → "12345.67"."""
    return f"{_as_decimal(value).normalize():f}"


def exercise_note(last: Optional[ExerciseEntry], suggested_weight: Optional[float]) -> Optional[str]:
    if last is None:
        return FIRST_TIME_NOTE
    if suggested_weight is None or last.weight is None:
        return None

    performed = f"{_format_kg(last.weight)}kg"
    if last.reps is not None:
        performed += f" x {last.reps} reps"
    increase = _as_decimal(suggested_weight) - _as_decimal(last.weight)
    return f"Last: {performed}. Suggested increase: +{increase:.1f}kg"


def progress_note(analysis: PerformanceAnalysis) -> str:
    total = analysis.total_workouts
    if total == 0:
        return "No workouts logged yet. Start with this plan and track your progress!"
    if total < LOW_CONSISTENCY_WORKOUTS:
        times = "once" if total == 1 else f"{total} times"
        return (
            f"You trained {times} in the last 30 days. "
            "Aim for at least 3 workouts a week to stay consistent."
        )
    if analysis.undertrained:
        return (
            "Great work! Heads up: "
            f"{', '.join(analysis.undertrained)} could use more attention."
        )
    return "Excellent progress! You are following a balanced training program."


# ══════════════════════════════════════════════════════════════════════════════
# GENERATOR
# ══════════════════════════════════════════════════════════════════════════════

class PlanGenerator:

    def __init__(self, analyzer: Optional[PerformanceAnalyzer] = None):
        self.analyzer = analyzer or performance_analyzer

    def _plan_exercise(
        self,
        template: ExerciseTemplate,
        muscle_group: str,
        history: TrainingHistory,
        level: str,
        goal: str,
    ) -> PlannedExercise:
        catalog_item = resolve_catalog_exercise(history.catalog, template.name, muscle_group)
        last = history.last_exercise_entry(template.name)

        sets, reps = adjust_for_level(template.sets, template.reps, level, goal)
        suggested = progressive_weight(
            last.weight if last else None, weight_rate_for_level(level)
        )

        return PlannedExercise(
            exercise_id=catalog_item.id if catalog_item else uuid.uuid4().hex,
            name=template.name,
            muscle_group=muscle_group,
            recommended_sets=sets,
            recommended_reps=reps,
            recommended_weight=suggested,
            recommended_duration_seconds=template.duration_seconds,
            notes=exercise_note(last, suggested),
        )

    def generate(
        self,
        history: TrainingHistory,
        request: Optional[PlanRequest] = None,
        now: Optional[datetime] = None,
    ) -> WeeklyPlan:
        request = request or PlanRequest()
        goal = request.goal or DEFAULT_GOAL
        level = request.level or DEFAULT_LEVEL
        days_per_week = resolve_days(request.days_per_week)

        analysis = self.analyzer.analyze(history, now)
        per_group = exercise_count_for_goal(goal)

        days = []
        for number, (day_name, groups) in enumerate(SPLIT_PROGRAMS[days_per_week], start=1):
            exercises = [
                self._plan_exercise(template, group, history, level, goal)
                for group in groups
                for template in EXERCISE_TEMPLATES.get(group, ())[:per_group]
            ]
            days.append(DailyPlan(
                day_number=number,
                day_name=day_name,
                focus=" & ".join(groups),
                exercises=exercises,
            ))

        log.debug(f"Generated {days_per_week}-day plan (goal={goal}, level={level})")
        return WeeklyPlan(
            plan_name=plan_name(days_per_week, goal),
            goal=goal,
            level=level,
            total_days=days_per_week,
            progress_note=progress_note(analysis),
            days=days,
        )


plan_generator = PlanGenerator()
