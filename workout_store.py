"""
FitTrack — Workout Store
Async queries that read a user's training history and map it onto the
engine-side records in history.py.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from history import (
    CatalogExercise, ExerciseEntry, TrainingHistory, UserProfile, WorkoutRecord,
)
from models import Exercise, User, Workout, WorkoutExercise
from performance_engine import ANALYSIS_WINDOW_DAYS

log = logging.getLogger(__name__)


# Reference catalog: (name, muscle group, description)
CATALOG_SEED = (
    ("Bench Press",    "Chest",     "Barbell chest press on a flat bench"),
    ("Squat",          "Legs",      "Barbell back squat"),
    ("Deadlift",       "Back",      "Lifting a loaded barbell from the floor"),
    ("Pull-up",        "Back",      "Bodyweight pull on a fixed bar"),
    ("Shoulder Press", "Shoulders", "Seated or standing overhead press"),
    ("Bicep Curl",     "Arms",      "Dumbbell biceps curl"),
    ("Tricep Dips",    "Arms",      "Triceps dips on parallel bars"),
    ("Plank",          "Core",      "Isometric core hold"),
    ("Lunges",         "Legs",      "Forward stepping leg exercise"),
    ("Leg Press",      "Legs",      "Machine leg press"),
)


# ══════════════════════════════════════════════════════════════════════════════
# ROW MAPPING
# ══════════════════════════════════════════════════════════════════════════════

def to_catalog_exercise(row: Exercise) -> CatalogExercise:
    return CatalogExercise(
        id=str(row.id),
        name=row.name,
        muscle_group=row.muscle_group,
        description=row.description,
        video_url=row.video_url,
    )


def to_exercise_entry(row: WorkoutExercise) -> ExerciseEntry:
    return ExerciseEntry(
        name=row.name,
        sets=row.sets,
        reps=row.reps,
        weight=row.weight,
        duration_seconds=row.duration_seconds,
        position=row.position,
        exercise_id=str(row.exercise_id) if row.exercise_id is not None else None,
        muscle_group=row.exercise.muscle_group if row.exercise is not None else None,
        created_at=row.created_at,
    )


def to_workout_record(row: Workout) -> WorkoutRecord:
    return WorkoutRecord(
        id=str(row.id),
        user_id=str(row.user_id),
        started_at=row.started_at,
        ended_at=row.ended_at,
        exercises=tuple(to_exercise_entry(e) for e in row.exercises),
    )


def to_user_profile(user: User) -> UserProfile:
    return UserProfile(
        height_cm=user.height_cm,
        weight_kg=user.weight_kg,
        gender=user.gender,
        date_of_birth=user.date_of_birth,
        fitness_goal=user.fitness_goal,
        activity_level=user.activity_level,
    )


# ══════════════════════════════════════════════════════════════════════════════
# QUERIES
# ══════════════════════════════════════════════════════════════════════════════

async def list_completed_workouts(
    db: AsyncSession,
    user_id: int,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
) -> list[WorkoutRecord]:
    """Ended workouts started in [since, until], newest first, entries and catalog rows loaded."""
    query = (
        select(Workout)
        .where(Workout.user_id == user_id, Workout.ended_at.is_not(None))
        .options(selectinload(Workout.exercises).selectinload(WorkoutExercise.exercise))
        .order_by(Workout.started_at.desc())
    )
    if since is not None:
        query = query.where(Workout.started_at >= since)
    if until is not None:
        query = query.where(Workout.started_at <= until)

    result = await db.execute(query)
    return [to_workout_record(w) for w in result.scalars().all()]


async def list_catalog_exercises(db: AsyncSession) -> list[CatalogExercise]:
    """Catalog ordered by name, then id, so muscle-group fallbacks are stable."""
    result = await db.execute(select(Exercise).order_by(Exercise.name, Exercise.id))
    return [to_catalog_exercise(e) for e in result.scalars().all()]


def _history_query(user_id: int):
    return (
        select(WorkoutExercise)
        .join(Workout, WorkoutExercise.workout_id == Workout.id)
        .where(Workout.user_id == user_id)
        .options(selectinload(WorkoutExercise.exercise))
        .order_by(WorkoutExercise.created_at.desc(), WorkoutExercise.id.desc())
    )


async def list_exercise_history(db: AsyncSession, user_id: int) -> list[ExerciseEntry]:
    """Every entry the user has logged, in-progress workouts included, newest first."""
    result = await db.execute(_history_query(user_id))
    return [to_exercise_entry(e) for e in result.scalars().all()]


async def load_training_history(
    db: AsyncSession, user_id: int, now: Optional[datetime] = None
) -> TrainingHistory:
    """Single snapshot read for the analyzer and the plan generator."""
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=ANALYSIS_WINDOW_DAYS)

    workouts = await list_completed_workouts(db, user_id, since)
    entries = await list_exercise_history(db, user_id)
    catalog = await list_catalog_exercises(db)

    log.debug(
        f"Loaded history for user {user_id}: {len(workouts)} workouts, "
        f"{len(entries)} entries, {len(catalog)} catalog rows"
    )
    return TrainingHistory(
        workouts=tuple(workouts),
        entries=tuple(entries),
        catalog=tuple(catalog),
    )


# ══════════════════════════════════════════════════════════════════════════════
# SEEDING
# ══════════════════════════════════════════════════════════════════════════════

async def seed_catalog(db: AsyncSession) -> int:
    """Insert the reference catalog into an empty exercises table. Returns rows added."""
    count = (await db.execute(select(func.count(Exercise.id)))).scalar_one()
    if count:
        return 0

    for name, group, description in CATALOG_SEED:
        db.add(Exercise(name=name, muscle_group=group, description=description))
    await db.flush()
    return len(CATALOG_SEED)
