"""
FitTrack — Pydantic Schemas
Request/response models for all API endpoints.
"""

from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, List, Dict
from datetime import date, datetime
from enum import Enum


# ══════════════════════════════════════════════════════════════════════════════
# AUTH
# ══════════════════════════════════════════════════════════════════════════════

class UserRegisterSchema(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: Optional[str] = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return v.lower()


class UserLoginSchema(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserPublicSchema(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TokenResponseSchema(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserPublicSchema


class RefreshTokenSchema(BaseModel):
    refresh_token: str


# ══════════════════════════════════════════════════════════════════════════════
# PROFILE
# ══════════════════════════════════════════════════════════════════════════════

class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class FitnessGoal(str, Enum):
    weight_loss = "weight_loss"
    muscle_gain = "muscle_gain"
    maintain = "maintain"
    endurance = "endurance"


class ActivityLevel(str, Enum):
    sedentary = "sedentary"          # desk job, no exercise
    light = "light"                  # 1–3 days/week
    moderate = "moderate"            # 3–5 days/week
    active = "active"                # 6–7 days/week
    very_active = "very_active"      # athlete / manual labor


def coerce_choice(value: Optional[str], choices: type[Enum]) -> Optional[str]:
    """Lower-cased member value, or None for anything unrecognised."""
    if value is None:
        return None
    lowered = value.lower()
    return lowered if lowered in {c.value for c in choices} else None


class ProfileStatsSchema(BaseModel):
    total_workouts: int
    total_minutes: int
    current_streak: int
    longest_streak: int
    last_workout_date: Optional[datetime] = None


class ProfileSchema(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    fitness_goal: Optional[str] = None
    activity_level: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    stats: Optional[ProfileStatsSchema] = None


class UpdateProfileSchema(BaseModel):
    """Partial update. Omitted fields are left unchanged; unknown enum values are stored as null."""
    name: Optional[str] = Field(None, max_length=100)
    height_cm: Optional[float] = Field(None, ge=50, le=300)
    weight_kg: Optional[float] = Field(None, ge=20, le=500)
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    fitness_goal: Optional[str] = None
    activity_level: Optional[str] = None
    profile_image_url: Optional[str] = Field(None, max_length=500)


class ChangePasswordSchema(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)


class LogWeightSchema(BaseModel):
    weight_kg: float = Field(..., ge=20, le=500)


class LogWeightResponseSchema(BaseModel):
    message: str
    weight_kg: float
    bmi: Optional[float] = None
    bmi_category: Optional[str] = None


class HealthMetricsSchema(BaseModel):
    bmi: Optional[float] = None
    bmi_category: Optional[str] = None       # Underweight / Normal / Overweight / Obese
    estimated_daily_calories: Optional[int] = None
    age: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════════════
# WORKOUTS
# ══════════════════════════════════════════════════════════════════════════════

class CreateWorkoutSchema(BaseModel):
    name: Optional[str] = Field(None, max_length=100)


class AddExerciseSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    sets: Optional[int] = Field(None, ge=0)
    reps: Optional[int] = Field(None, ge=0)
    weight: Optional[float] = Field(None, ge=0)
    duration_seconds: Optional[int] = Field(None, ge=0)
    exercise_id: Optional[int] = None


class WorkoutExerciseSchema(BaseModel):
    id: int
    name: str
    sets: Optional[int] = None
    reps: Optional[int] = None
    weight: Optional[float] = None
    duration_seconds: Optional[int] = None
    position: int

    class Config:
        from_attributes = True


class WorkoutSchema(BaseModel):
    id: int
    name: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    exercises: List[WorkoutExerciseSchema] = []

    class Config:
        from_attributes = True


class ExerciseSchema(BaseModel):
    """Catalog exercise."""
    id: int
    name: str
    description: Optional[str] = None
    video_url: Optional[str] = None
    muscle_group: Optional[str] = None

    class Config:
        from_attributes = True


# ══════════════════════════════════════════════════════════════════════════════
# STATS
# ══════════════════════════════════════════════════════════════════════════════

class WeeklyStatsSchema(BaseModel):
    week_start: str
    workout_count: int
    total_minutes: int


class MuscleGroupStatsSchema(BaseModel):
    muscle_group: str
    exercise_count: int


class ProgressStatsSchema(BaseModel):
    total_workouts: int
    total_minutes: int
    total_exercises: int
    average_workout_minutes: float
    weekly_stats: List[WeeklyStatsSchema]
    muscle_group_stats: List[MuscleGroupStatsSchema]


# ══════════════════════════════════════════════════════════════════════════════
# WORKOUT PLAN
# ══════════════════════════════════════════════════════════════════════════════

class GeneratePlanSchema(BaseModel):
    # Out-of-range day counts are clamped and unknown goals/levels fall back to defaults
    days_per_week: int = 3
    goal: str = Field("general", description="strength / muscle / endurance / weight_loss / general")
    level: str = Field("intermediate", description="beginner / intermediate / advanced")


class PlannedExerciseSchema(BaseModel):
    exercise_id: str
    name: str
    muscle_group: str
    recommended_sets: int
    recommended_reps: int
    recommended_weight: Optional[float] = None
    recommended_duration_seconds: Optional[int] = None
    notes: Optional[str] = None


class DailyPlanSchema(BaseModel):
    day_number: int
    day_name: str
    focus: str          # e.g. "Chest & Shoulders & Arms"
    exercises: List[PlannedExerciseSchema]


class WeeklyPlanSchema(BaseModel):
    plan_name: str
    goal: str
    level: str
    total_days: int
    progress_note: Optional[str] = None
    days: List[DailyPlanSchema]


class ProgressSuggestionSchema(BaseModel):
    exercise_name: str
    last_weight: Optional[float] = None
    last_reps: Optional[int] = None
    suggested_weight: Optional[float] = None
    suggested_reps: Optional[int] = None
    reason: str


class PerformanceAnalysisSchema(BaseModel):
    total_workouts_last_30_days: int
    average_workout_duration: float
    muscle_group_frequency: Dict[str, int]
    undertrained_muscles: List[str]
    overtrained_muscles: List[str]
    recommended_focus: str
    suggestions: List[ProgressSuggestionSchema]


class PlanTemplateSchema(BaseModel):
    id: str
    name: str
    description: str
    days_per_week: int
    goal: str
    level: str
    suitable_for: str


# ══════════════════════════════════════════════════════════════════════════════
# GENERIC
# ══════════════════════════════════════════════════════════════════════════════

class MessageSchema(BaseModel):
    message: str
    detail: Optional[str] = None
