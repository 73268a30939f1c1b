"""
FitTrack — API Routes
All endpoint implementations.
"""

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List
import logging

from database import get_db
from models import User, Workout, WorkoutExercise, Exercise
from schemas import (
    UserRegisterSchema, UserLoginSchema, TokenResponseSchema, RefreshTokenSchema,
    ProfileSchema, ProfileStatsSchema, UpdateProfileSchema, ChangePasswordSchema,
    LogWeightSchema, LogWeightResponseSchema, HealthMetricsSchema,
    Gender, FitnessGoal, ActivityLevel, coerce_choice,
    CreateWorkoutSchema, AddExerciseSchema, WorkoutSchema, ExerciseSchema,
    ProgressStatsSchema, WeeklyStatsSchema, MuscleGroupStatsSchema,
    GeneratePlanSchema, WeeklyPlanSchema, DailyPlanSchema, PlannedExerciseSchema,
    PerformanceAnalysisSchema, ProgressSuggestionSchema, PlanTemplateSchema,
    MessageSchema,
)
from auth_service import (
    create_user, authenticate_user, issue_tokens, change_password,
    refresh_session, token_user_id, get_user_by_id,
)
from metrics_engine import bmi, bmi_category
from plan_engine import PlanRequest, PLAN_TEMPLATES
from workout_store import to_user_profile
import training_service

log = logging.getLogger(__name__)
bearer_scheme = HTTPBearer()


# ══════════════════════════════════════════════════════════════════════════════
# AUTH DEPENDENCY
# ══════════════════════════════════════════════════════════════════════════════

async def current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency — validate JWT and return authenticated user."""
    try:
        user_id = token_user_id(credentials.credentials)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    user = await get_user_by_id(db, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or deactivated.")
    return user


# ══════════════════════════════════════════════════════════════════════════════
# AUTH ROUTER
# ══════════════════════════════════════════════════════════════════════════════

auth_router = APIRouter()


@auth_router.post("/register", response_model=TokenResponseSchema, status_code=201)
async def register(data: UserRegisterSchema, db: AsyncSession = Depends(get_db)):
    try:
        user = await create_user(db, data)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return issue_tokens(user)


@auth_router.post("/login", response_model=TokenResponseSchema)
async def login(data: UserLoginSchema, db: AsyncSession = Depends(get_db)):
    try:
        user = await authenticate_user(db, data.email, data.password)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return issue_tokens(user)


@auth_router.post("/refresh", response_model=TokenResponseSchema)
async def refresh(data: RefreshTokenSchema, db: AsyncSession = Depends(get_db)):
    """Trade a refresh token for a new token pair."""
    try:
        user = await refresh_session(db, data.refresh_token)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return issue_tokens(user)


# ══════════════════════════════════════════════════════════════════════════════
# PROFILE ROUTER
# ══════════════════════════════════════════════════════════════════════════════

profile_router = APIRouter()


async def _profile_response(db: AsyncSession, user: User) -> ProfileSchema:
    stats = await training_service.compute_profile_stats(db, user.id)
    return ProfileSchema(
        id=user.id,
        email=user.email,
        name=user.name,
        height_cm=user.height_cm,
        weight_kg=user.weight_kg,
        gender=user.gender,
        date_of_birth=user.date_of_birth,
        fitness_goal=user.fitness_goal,
        activity_level=user.activity_level,
        profile_image_url=user.profile_image_url,
        created_at=user.created_at,
        updated_at=user.updated_at,
        stats=ProfileStatsSchema(
            total_workouts=stats.total_workouts,
            total_minutes=stats.total_minutes,
            current_streak=stats.current_streak,
            longest_streak=stats.longest_streak,
            last_workout_date=stats.last_workout_date,
        ),
    )


@profile_router.get("", response_model=ProfileSchema)
async def get_profile(
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _profile_response(db, user)


@profile_router.put("", response_model=ProfileSchema)
async def update_profile(
    data: UpdateProfileSchema,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update only the fields present in the request body."""
    fields = data.model_dump(exclude_unset=True)

    if fields.get("name") is not None:
        user.name = fields["name"]
    if fields.get("height_cm") is not None:
        user.height_cm = Decimal(str(fields["height_cm"]))
    if fields.get("weight_kg") is not None:
        user.weight_kg = Decimal(str(fields["weight_kg"]))
    if fields.get("gender") is not None:
        user.gender = coerce_choice(fields["gender"], Gender)
    if fields.get("date_of_birth") is not None:
        user.date_of_birth = fields["date_of_birth"]
    if fields.get("fitness_goal") is not None:
        user.fitness_goal = coerce_choice(fields["fitness_goal"], FitnessGoal)
    if fields.get("activity_level") is not None:
        user.activity_level = coerce_choice(fields["activity_level"], ActivityLevel)
    if fields.get("profile_image_url") is not None:
        user.profile_image_url = fields["profile_image_url"]

    await db.flush()
    await db.refresh(user)
    return await _profile_response(db, user)


@profile_router.post("/change-password", response_model=MessageSchema)
async def post_change_password(
    data: ChangePasswordSchema,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await change_password(db, user, data.current_password, data.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MessageSchema(message="Password changed.")


@profile_router.get("/health-metrics", response_model=HealthMetricsSchema)
async def get_health_metrics(user: User = Depends(current_user)):
    """BMI, BMI category, estimated daily calories and age from the stored profile."""
    metrics = training_service.compute_health_metrics(to_user_profile(user))
    return HealthMetricsSchema(
        bmi=metrics.bmi,
        bmi_category=metrics.bmi_category,
        estimated_daily_calories=metrics.estimated_daily_calories,
        age=metrics.age,
    )


@profile_router.post("/log-weight", response_model=LogWeightResponseSchema)
async def log_weight(
    data: LogWeightSchema,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    user.weight_kg = Decimal(str(data.weight_kg))
    await db.flush()

    bmi_value = bmi(user.height_cm, user.weight_kg)
    return LogWeightResponseSchema(
        message="Weight logged.",
        weight_kg=data.weight_kg,
        bmi=bmi_value,
        bmi_category=bmi_category(bmi_value),
    )


# ══════════════════════════════════════════════════════════════════════════════
# WORKOUTS ROUTER
# ══════════════════════════════════════════════════════════════════════════════

workouts_router = APIRouter()


async def _get_owned_workout(db: AsyncSession, workout_id: int, user: User) -> Workout:
    result = await db.execute(
        select(Workout)
        .where(Workout.id == workout_id, Workout.user_id == user.id)
        .options(selectinload(Workout.exercises))
    )
    workout = result.scalar_one_or_none()
    if not workout:
        raise HTTPException(status_code=404, detail="Workout not found.")
    return workout


@workouts_router.get("", response_model=List[WorkoutSchema])
async def list_workouts(
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Workout)
        .where(Workout.user_id == user.id)
        .options(selectinload(Workout.exercises))
        .order_by(Workout.started_at.desc())
    )
    return [WorkoutSchema.model_validate(w) for w in result.scalars().all()]


@workouts_router.get("/{workout_id}", response_model=WorkoutSchema)
async def get_workout(
    workout_id: int,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    workout = await _get_owned_workout(db, workout_id, user)
    return WorkoutSchema.model_validate(workout)


@workouts_router.post("", response_model=WorkoutSchema, status_code=201)
async def start_workout(
    data: Optional[CreateWorkoutSchema] = Body(None),
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    workout = Workout(
        user_id=user.id,
        name=(data.name if data and data.name else "Workout"),
        started_at=datetime.now(timezone.utc),
    )
    db.add(workout)
    await db.flush()

    workout = await _get_owned_workout(db, workout.id, user)
    return WorkoutSchema.model_validate(workout)


@workouts_router.patch("/{workout_id}/end", response_model=WorkoutSchema)
async def end_workout(
    workout_id: int,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    workout = await _get_owned_workout(db, workout_id, user)
    if workout.ended_at is not None:
        raise HTTPException(status_code=400, detail="This workout has already ended.")

    workout.ended_at = datetime.now(timezone.utc)
    await db.flush()
    return WorkoutSchema.model_validate(workout)


@workouts_router.post("/{workout_id}/exercises", response_model=WorkoutSchema)
async def add_exercise(
    workout_id: int,
    data: AddExerciseSchema,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    workout = await _get_owned_workout(db, workout_id, user)

    if data.exercise_id is not None and await db.get(Exercise, data.exercise_id) is None:
        raise HTTPException(status_code=404, detail="Catalog exercise not found.")

    workout.exercises.append(WorkoutExercise(
        exercise_id=data.exercise_id,
        name=data.name,
        sets=data.sets,
        reps=data.reps,
        weight=Decimal(str(data.weight)) if data.weight is not None else None,
        duration_seconds=data.duration_seconds,
        position=len(workout.exercises) + 1,
    ))
    await db.flush()

    workout = await _get_owned_workout(db, workout_id, user)
    return WorkoutSchema.model_validate(workout)


@workouts_router.delete("/{workout_id}", status_code=204)
async def delete_workout(
    workout_id: int,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    workout = await _get_owned_workout(db, workout_id, user)
    await db.delete(workout)
    await db.flush()


# ══════════════════════════════════════════════════════════════════════════════
# EXERCISE CATALOG ROUTER
# ══════════════════════════════════════════════════════════════════════════════

exercises_router = APIRouter()


@exercises_router.get("", response_model=List[ExerciseSchema])
async def list_exercises(
    muscle_group: Optional[str] = Query(None),
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Exercise).order_by(Exercise.name)
    if muscle_group:
        query = query.where(Exercise.muscle_group == muscle_group)
    result = await db.execute(query)
    return [ExerciseSchema.model_validate(e) for e in result.scalars().all()]


@exercises_router.get("/muscle-groups", response_model=List[str])
async def list_muscle_groups(
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Exercise.muscle_group)
        .where(Exercise.muscle_group.is_not(None))
        .distinct()
        .order_by(Exercise.muscle_group)
    )
    return list(result.scalars().all())


@exercises_router.get("/{exercise_id}", response_model=ExerciseSchema)
async def get_exercise(
    exercise_id: int,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    exercise = await db.get(Exercise, exercise_id)
    if not exercise:
        raise HTTPException(status_code=404, detail="Exercise not found.")
    return ExerciseSchema.model_validate(exercise)


# ══════════════════════════════════════════════════════════════════════════════
# STATS ROUTER
# ══════════════════════════════════════════════════════════════════════════════

stats_router = APIRouter()


@stats_router.get("/progress", response_model=ProgressStatsSchema)
async def get_progress(
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """Progress over [from, to]; defaults to the last 30 days."""
    stats = await training_service.progress_report(db, user.id, date_from, date_to)
    return ProgressStatsSchema(
        total_workouts=stats.total_workouts,
        total_minutes=stats.total_minutes,
        total_exercises=stats.total_exercises,
        average_workout_minutes=stats.average_workout_minutes,
        weekly_stats=[
            WeeklyStatsSchema(
                week_start=w.week_start,
                workout_count=w.workout_count,
                total_minutes=w.total_minutes,
            )
            for w in stats.weekly_stats
        ],
        muscle_group_stats=[
            MuscleGroupStatsSchema(muscle_group=m.muscle_group, exercise_count=m.exercise_count)
            for m in stats.muscle_group_stats
        ],
    )


# ══════════════════════════════════════════════════════════════════════════════
# WORKOUT PLAN ROUTER
# ══════════════════════════════════════════════════════════════════════════════

plan_router = APIRouter()


@plan_router.post("/generate", response_model=WeeklyPlanSchema)
async def generate_plan(
    data: Optional[GeneratePlanSchema] = Body(None),
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Build a weekly plan from the user's recent history.

    goal:  strength / muscle / endurance / weight_loss / general
    level: beginner / intermediate / advanced
    """
    data = data or GeneratePlanSchema()
    try:
        plan = await training_service.generate_weekly_plan(
            db, user.id,
            PlanRequest(days_per_week=data.days_per_week, goal=data.goal, level=data.level),
        )
    except Exception as e:
        log.error(f"Plan generation failed for user {user.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Plan generation failed. Please try again.")

    days_out = []
    for d in plan.days:
        exs = [
            PlannedExerciseSchema(
                exercise_id=e.exercise_id, name=e.name, muscle_group=e.muscle_group,
                recommended_sets=e.recommended_sets, recommended_reps=e.recommended_reps,
                recommended_weight=e.recommended_weight,
                recommended_duration_seconds=e.recommended_duration_seconds,
                notes=e.notes,
            )
            for e in d.exercises
        ]
        days_out.append(DailyPlanSchema(
            day_number=d.day_number, day_name=d.day_name, focus=d.focus, exercises=exs,
        ))

    return WeeklyPlanSchema(
        plan_name=plan.plan_name,
        goal=plan.goal,
        level=plan.level,
        total_days=plan.total_days,
        progress_note=plan.progress_note,
        days=days_out,
    )


@plan_router.get("/analysis", response_model=PerformanceAnalysisSchema)
async def get_analysis(
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """Last-30-days balance report with progressive-overload suggestions."""
    analysis = await training_service.analyze_performance(db, user.id)
    return PerformanceAnalysisSchema(
        total_workouts_last_30_days=analysis.total_workouts,
        average_workout_duration=analysis.average_duration_minutes,
        muscle_group_frequency=dict(analysis.muscle_group_frequency),
        undertrained_muscles=list(analysis.undertrained),
        overtrained_muscles=list(analysis.overtrained),
        recommended_focus=analysis.recommended_focus,
        suggestions=[
            ProgressSuggestionSchema(
                exercise_name=s.exercise_name,
                last_weight=s.last_weight,
                last_reps=s.last_reps,
                suggested_weight=s.suggested_weight,
                suggested_reps=s.suggested_reps,
                reason=s.reason,
            )
            for s in analysis.suggestions
        ],
    )


@plan_router.get("/templates", response_model=List[PlanTemplateSchema])
async def get_plan_templates(user: User = Depends(current_user)):
    """Ready-made plan presets."""
    return [
        PlanTemplateSchema(
            id=t.id, name=t.name, description=t.description,
            days_per_week=t.days_per_week, goal=t.goal, level=t.level,
            suitable_for=t.suitable_for,
        )
        for t in PLAN_TEMPLATES
    ]
