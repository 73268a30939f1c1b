"""
FitTrack — Workout Store Tests
Store queries and training service operations against an in-memory SQLite database.
Run with: pytest test_workout_store.py -v
"""

import pytest
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import selectinload
from sqlalchemy.pool import StaticPool

from database import Base
from history import as_utc
from models import Exercise, User, Workout, WorkoutExercise


BASE = datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc)


@asynccontextmanager
async def sqlite_session():
    # one shared connection so every query sees the same in-memory database
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with sessions() as session:
            yield session
    finally:
        await engine.dispose()


async def add_user(db, email="lifter@example.com") -> User:
    user = User(email=email, hashed_password="not-a-real-hash")
    db.add(user)
    await db.flush()
    return user


async def catalog_row(db, name):
    result = await db.execute(select(Exercise).where(Exercise.name == name).order_by(Exercise.id))
    return result.scalars().first()


def logged(name, at, exercise=None, weight=None, reps=None, sets=3):
    return WorkoutExercise(
        name=name, sets=sets, reps=reps,
        weight=Decimal(str(weight)) if weight is not None else None,
        exercise=exercise, created_at=at,
    )


async def add_workout(db, user, started_at, minutes=60, ended=True, entries=()):
    workout = Workout(
        user_id=user.id,
        name="Session",
        started_at=started_at,
        ended_at=started_at + timedelta(minutes=minutes) if ended else None,
    )
    for position, row in enumerate(entries, start=1):
        row.position = position
        workout.exercises.append(row)
    db.add(workout)
    await db.flush()
    return workout


async def settle(db):
    """Commit and forget loaded rows so reads come back from storage."""
    await db.commit()
    db.expunge_all()


# ══════════════════════════════════════════════════════════════════════════════
# CATALOG
# ══════════════════════════════════════════════════════════════════════════════

class TestCatalog:

    def setup_method(self):
        import workout_store
        self.store = workout_store

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self):
        async with sqlite_session() as db:
            assert await self.store.seed_catalog(db) == 10
            await db.commit()
            assert await self.store.seed_catalog(db) == 0
            catalog = await self.store.list_catalog_exercises(db)
            assert len(catalog) == 10

    @pytest.mark.asyncio
    async def test_ordered_by_name_then_id(self):
        async with sqlite_session() as db:
            await self.store.seed_catalog(db)
            db.add(Exercise(name="Bench Press", muscle_group="Chest", description="Dumbbell variant"))
            await settle(db)

            catalog = await self.store.list_catalog_exercises(db)
            assert [c.name for c in catalog] == [
                "Bench Press", "Bench Press", "Bicep Curl", "Deadlift", "Leg Press",
                "Lunges", "Plank", "Pull-up", "Shoulder Press", "Squat", "Tricep Dips",
            ]
            assert [c.id for c in catalog[:2]] == ["1", "11"]

    @pytest.mark.asyncio
    async def test_resolution_follows_storage_order(self):
        from plan_engine import resolve_catalog_exercise
        async with sqlite_session() as db:
            await self.store.seed_catalog(db)
            db.add(Exercise(name="Bench Press", muscle_group="Chest", description="Dumbbell variant"))
            await settle(db)
            catalog = tuple(await self.store.list_catalog_exercises(db))

        assert resolve_catalog_exercise(catalog, "bench press", "Chest").id == "1"
        # no name match: first row of the group in name order
        assert resolve_catalog_exercise(catalog, "Romanian Deadlift", "Back").name == "Deadlift"
        assert resolve_catalog_exercise(catalog, "Hip Thrust", "Legs").name == "Leg Press"
        assert resolve_catalog_exercise(catalog, "Farmer Walk", "Cardio") is None


# ══════════════════════════════════════════════════════════════════════════════
# WORKOUTS
# ══════════════════════════════════════════════════════════════════════════════

class TestCompletedWorkouts:

    def setup_method(self):
        import workout_store
        self.store = workout_store

    @pytest.mark.asyncio
    async def test_only_ended_newest_first(self):
        async with sqlite_session() as db:
            user = await add_user(db)
            await add_workout(db, user, BASE - timedelta(days=3), minutes=60)
            await add_workout(db, user, BASE - timedelta(days=1), minutes=45)
            await add_workout(db, user, BASE - timedelta(hours=1), ended=False)
            await settle(db)

            records = await self.store.list_completed_workouts(db, user.id)

        assert len(records) == 2
        assert all(r.is_completed for r in records)
        assert [as_utc(r.started_at) for r in records] == [
            BASE - timedelta(days=1), BASE - timedelta(days=3),
        ]
        assert [r.duration_minutes for r in records] == [45, 60]

    @pytest.mark.asyncio
    async def test_since_and_until_bounds(self):
        async with sqlite_session() as db:
            user = await add_user(db)
            await add_workout(db, user, BASE - timedelta(days=40))
            await add_workout(db, user, BASE - timedelta(days=10))
            await add_workout(db, user, BASE - timedelta(days=2))
            await settle(db)

            since = await self.store.list_completed_workouts(
                db, user.id, since=BASE - timedelta(days=30),
            )
            bounded = await self.store.list_completed_workouts(
                db, user.id, since=BASE - timedelta(days=30), until=BASE - timedelta(days=5),
            )

        assert [as_utc(r.started_at) for r in since] == [
            BASE - timedelta(days=2), BASE - timedelta(days=10),
        ]
        assert [as_utc(r.started_at) for r in bounded] == [BASE - timedelta(days=10)]

    @pytest.mark.asyncio
    async def test_entries_carry_catalog_group(self):
        async with sqlite_session() as db:
            await self.store.seed_catalog(db)
            user = await add_user(db)
            squat = await catalog_row(db, "Squat")
            await add_workout(db, user, BASE - timedelta(days=1), entries=[
                logged("Squat", BASE, exercise=squat, weight=120, reps=5),
                logged("Cable Fly", BASE),
            ])
            await settle(db)

            [record] = await self.store.list_completed_workouts(db, user.id)

        first, second = record.exercises
        assert (first.name, first.muscle_group, first.exercise_id) == ("Squat", "Legs", str(squat.id))
        assert first.weight == Decimal("120")
        assert (second.name, second.muscle_group, second.exercise_id) == ("Cable Fly", None, None)

    @pytest.mark.asyncio
    async def test_other_users_excluded(self):
        async with sqlite_session() as db:
            user = await add_user(db)
            other = await add_user(db, email="someone@example.com")
            await add_workout(db, user, BASE - timedelta(days=1))
            await add_workout(db, other, BASE - timedelta(days=1))
            await add_workout(db, other, BASE - timedelta(days=2))
            await settle(db)

            records = await self.store.list_completed_workouts(db, user.id)

        assert [r.user_id for r in records] == [str(user.id)]


class TestStoredWorkoutDuration:

    @pytest.mark.asyncio
    async def test_ending_a_reloaded_workout(self):
        from schemas import WorkoutSchema
        async with sqlite_session() as db:
            user = await add_user(db)
            await add_workout(db, user, BASE - timedelta(minutes=50), ended=False)
            await settle(db)

            result = await db.execute(
                select(Workout).options(selectinload(Workout.exercises))
            )
            workout = result.scalars().one()
            workout.ended_at = BASE
            await db.flush()

            schema = WorkoutSchema.model_validate(workout)

        assert schema.duration_minutes == 50


# ══════════════════════════════════════════════════════════════════════════════
# EXERCISE HISTORY
# ══════════════════════════════════════════════════════════════════════════════

class TestExerciseHistory:

    def setup_method(self):
        import workout_store
        self.store = workout_store

    @pytest.mark.asyncio
    async def test_newest_first_including_in_progress(self):
        async with sqlite_session() as db:
            user = await add_user(db)
            await add_workout(db, user, BASE - timedelta(days=2), entries=[
                logged("Bench Press", BASE - timedelta(days=2), weight=95, reps=8),
            ])
            await add_workout(db, user, BASE - timedelta(days=5), entries=[
                logged("Bench Press", BASE - timedelta(days=5), weight=90, reps=8),
            ])
            await add_workout(db, user, BASE - timedelta(hours=1), ended=False, entries=[
                logged("Bench Press", BASE - timedelta(minutes=30), weight=100, reps=6),
            ])
            await settle(db)

            entries = await self.store.list_exercise_history(db, user.id)

        assert [e.weight for e in entries] == [Decimal("100"), Decimal("95"), Decimal("90")]

    @pytest.mark.asyncio
    async def test_same_timestamp_latest_row_first(self):
        async with sqlite_session() as db:
            user = await add_user(db)
            workout = await add_workout(db, user, BASE - timedelta(hours=2))
            for row in (logged("Squat", BASE, weight=100, reps=5),
                        logged("Squat", BASE, weight=110, reps=3)):
                row.workout_id = workout.id
                db.add(row)
                await db.flush()
            await settle(db)

            entries = await self.store.list_exercise_history(db, user.id)

        assert [e.weight for e in entries] == [Decimal("110"), Decimal("100")]

    @pytest.mark.asyncio
    async def test_other_users_excluded(self):
        async with sqlite_session() as db:
            user = await add_user(db)
            other = await add_user(db, email="someone@example.com")
            await add_workout(db, other, BASE - timedelta(days=1), entries=[
                logged("Deadlift", BASE - timedelta(days=1), weight=180, reps=3),
            ])
            await settle(db)

            assert await self.store.list_exercise_history(db, user.id) == []


class TestTrainingHistorySnapshot:

    @pytest.mark.asyncio
    async def test_window_limits_workouts_not_entries(self):
        import workout_store
        async with sqlite_session() as db:
            await workout_store.seed_catalog(db)
            user = await add_user(db)
            await add_workout(db, user, BASE - timedelta(days=45), entries=[
                logged("Deadlift", BASE - timedelta(days=45), weight=160, reps=5),
            ])
            await add_workout(db, user, BASE - timedelta(days=3), entries=[
                logged("Squat", BASE - timedelta(days=3), weight=120, reps=5),
            ])
            await settle(db)

            history = await workout_store.load_training_history(db, user.id, now=BASE)

        assert [as_utc(w.started_at) for w in history.workouts] == [BASE - timedelta(days=3)]
        assert [e.name for e in history.entries] == ["Squat", "Deadlift"]
        assert history.last_exercise_entry("dead").weight == Decimal("160")
        assert len(history.catalog) == 10


# ══════════════════════════════════════════════════════════════════════════════
# TRAINING SERVICE
# ══════════════════════════════════════════════════════════════════════════════

class TestTrainingService:

    def setup_method(self):
        import training_service
        import workout_store
        self.service = training_service
        self.store = workout_store
        self.now = datetime.now(timezone.utc)

    async def _bench_history(self, db):
        await self.store.seed_catalog(db)
        user = await add_user(db)
        bench = await catalog_row(db, "Bench Press")
        started = self.now - timedelta(days=2)
        await add_workout(db, user, started, minutes=50, entries=[
            logged("Bench Press", started, exercise=bench, weight=100, reps=8),
        ])
        await add_workout(db, user, self.now - timedelta(days=45), minutes=30)
        await settle(db)
        return user

    @pytest.mark.asyncio
    async def test_plan_progresses_logged_weight(self):
        async with sqlite_session() as db:
            user = await self._bench_history(db)
            plan = await self.service.generate_weekly_plan(db, user.id)

        bench = [e for day in plan.days for e in day.exercises if e.name == "Bench Press"]
        assert bench
        assert bench[0].exercise_id == "1"
        assert bench[0].recommended_weight == 105.0
        assert bench[0].notes == "Last: 100kg x 8 reps. Suggested increase: +5.0kg"
        assert plan.progress_note.startswith("You trained once in the last 30 days")

    @pytest.mark.asyncio
    async def test_analysis_reads_recent_window(self):
        async with sqlite_session() as db:
            user = await self._bench_history(db)
            analysis = await self.service.analyze_performance(db, user.id)

        assert analysis.total_workouts == 1
        assert analysis.average_duration_minutes == pytest.approx(50.0)
        assert analysis.muscle_group_frequency == {"Chest": 1}

    @pytest.mark.asyncio
    async def test_profile_stats_cover_all_time(self):
        async with sqlite_session() as db:
            user = await self._bench_history(db)
            stats = await self.service.compute_profile_stats(db, user.id)

        assert stats.total_workouts == 2
        assert stats.total_minutes == 80
        assert as_utc(stats.last_workout_date) == self.now - timedelta(days=2)

    @pytest.mark.asyncio
    async def test_progress_report_defaults_to_recent_window(self):
        async with sqlite_session() as db:
            user = await self._bench_history(db)
            stats = await self.service.progress_report(db, user.id)

        assert stats.total_workouts == 1
        assert stats.total_minutes == 50
        assert stats.total_exercises == 1

    @pytest.mark.asyncio
    async def test_progress_report_queries_only_its_window(self, monkeypatch):
        calls = []

        async def list_completed_workouts(db, user_id, since=None, until=None):
            calls.append((user_id, since, until))
            return []

        monkeypatch.setattr(self.store, "list_completed_workouts", list_completed_workouts)
        end = datetime(2026, 10, 19, 12, 0)

        stats = await self.service.progress_report(None, 7, end=end)

        assert calls == [(
            7,
            datetime(2026, 9, 19, 12, 0, tzinfo=timezone.utc),
            datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc),
        )]
        assert stats.total_workouts == 0

    @pytest.mark.asyncio
    async def test_progress_report_default_range_is_bounded(self, monkeypatch):
        calls = []

        async def list_completed_workouts(db, user_id, since=None, until=None):
            calls.append((since, until))
            return []

        monkeypatch.setattr(self.store, "list_completed_workouts", list_completed_workouts)

        await self.service.progress_report(None, 7)

        [(since, until)] = calls
        assert since is not None
        assert until - since == timedelta(days=30)
