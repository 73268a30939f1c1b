from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import time
import logging

from config import settings

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
log = logging.getLogger(__name__)

def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        version="1.0.0",
        description="Workout logging, health metrics and weekly plan generation.",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        response.headers["X-Process-Time-Ms"] = f"{elapsed:.2f}"
        return response

    @app.on_event("startup")
    async def startup():
        from database import init_db, session_scope
        from workout_store import seed_catalog
        import models  # ensure all models are registered
        await init_db()
        log.info("Database tables created.")
        if settings.SEED_CATALOG:
            async with session_scope() as db:
                added = await seed_catalog(db)
            if added:
                log.info(f"Seeded {added} catalog exercises.")

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "ok", "version": "1.0.0"}

    from routes import (
        auth_router, profile_router, workouts_router,
        exercises_router, stats_router, plan_router,
    )
    app.include_router(auth_router, prefix="/auth", tags=["Auth"])
    app.include_router(profile_router, prefix="/profile", tags=["Profile"])
    app.include_router(workouts_router, prefix="/workouts", tags=["Workouts"])
    app.include_router(exercises_router, prefix="/exercises", tags=["Exercises"])
    app.include_router(stats_router, prefix="/stats", tags=["Stats"])
    app.include_router(plan_router, prefix="/workout-plan", tags=["Workout Plan"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
