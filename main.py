import logging

from fastapi import FastAPI, APIRouter

from config import get_settings
from db import engine, Base
from errors import register_error_handlers
from users.auth import auth_backend, fastapi_users
from users.schemas import UserRead, UserCreate, UserUpdate
from tutoring.locks import KeyedLocks
from tutoring.router import router as sessions_router
from tutors.router import router as tutors_router

settings = get_settings()

logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

app = FastAPI(title="Tutoring Scheduler")
app.state.tutor_locks = KeyedLocks()
register_error_handlers(app)

# Main API Router
api_router = APIRouter(prefix="/api/v1")

# Auth Routes
api_router.include_router(
    fastapi_users.get_auth_router(auth_backend),
    prefix="/auth/jwt",
    tags=["auth"],
)

api_router.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
    prefix="/auth",
    tags=["auth"],
)

api_router.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"],
)

# Tutor Routes
api_router.include_router(
    tutors_router,
    prefix="/tutors",
    tags=["tutors"]
)

# Session Routes
api_router.include_router(
    sessions_router,
    prefix="/sessions",
    tags=["sessions"]
)

# Mount the API router to the main app
app.include_router(api_router)


@app.on_event("startup")
async def on_startup():
    # Not needed if you setup a migration system like Alembic
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@app.get("/")
def main():
    return {"message": "Tutoring scheduler is running"}
