"""
FitTrack — Training Service
The operations the HTTP layer calls. Each one reads a single history snapshot
from the workout store and hands it to the engines.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from history import UserProfile, as_utc
from metrics_engine import HealthMetrics, ProfileStats
import metrics_engine
from performance_engine import ANALYSIS_WINDOW_DAYS, PerformanceAnalysis, ProgressStats, performance_analyzer
from plan_engine import PlanRequest, WeeklyPlan, plan_generator
import workout_store

log = logging.getLogger(__name__)


async def generate_weekly_plan(
    db: AsyncSession, user_id: int, request: Optional[PlanRequest] = None
) -> WeeklyPlan:
    now = datetime.now(timezone.utc)
    history = await workout_store.load_training_history(db, user_id, now)
    plan = plan_generator.generate(history, request, now)
    log.info(f"Generated plan '{plan.plan_name}' for user {user_id}")
    return plan


async def analyze_performance(db: AsyncSession, user_id: int) -> PerformanceAnalysis:
    now = datetime.now(timezone.utc)
    history = await workout_store.load_training_history(db, user_id, now)
    analysis = performance_analyzer.analyze(history, now)
    log.info(
        f"Performance analysis for user {user_id}: "
        f"{analysis.total_workouts} workouts, undertrained={list(analysis.undertrained)}"
    )
    return analysis


def compute_health_metrics(profile: UserProfile, today: Optional[date] = None) -> HealthMetrics:
    return metrics_engine.compute_health_metrics(profile, today)


async def compute_profile_stats(db: AsyncSession, user_id: int) -> ProfileStats:
    workouts = await workout_store.list_completed_workouts(db, user_id)
    return metrics_engine.compute_profile_stats(workouts)


async def progress_report(
    db: AsyncSession,
    user_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> ProgressStats:
    # Query parameters may arrive without an offset; as_utc reads them as UTC
    end = as_utc(end) if end else datetime.now(timezone.utc)
    start = as_utc(start) if start else end - timedelta(days=ANALYSIS_WINDOW_DAYS)
    workouts = await workout_store.list_completed_workouts(db, user_id, start, end)
    return performance_analyzer.progress_stats(workouts, start, end)
