# main.py
import logging
import sys, asyncio
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from config.settings import settings
from database.connection import create_all_tables, engine

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ----- Windows event loop policy -----
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


# ----- Startup -----
@asynccontextmanager
async def lifespan(app: FastAPI):
    from modules.meeting.migrations import run_startup_migrations
    from modules.security.bootstrap import ensure_default_admin

    logger.info("Creating all database tables...")
    create_all_tables()
    run_startup_migrations(engine)
    ensure_default_admin()
    logger.info("Meeting rooms API ready")
    yield


# ----- App instance -----
app = FastAPI(title="Meeting Rooms API", version="1.0.0", lifespan=lifespan)


# ----- Middlewares -----
class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence: anything unexpected becomes a generic 500 without internals."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(
                {"detail": "An unexpected error occurred. Please try again later."},
                status_code=500,
            )


app.add_middleware(ExceptionHandlerMiddleware)

# ----- Routers -----
from modules.security.auth_routes import router as auth_router
from modules.rooms.routes import rooms as rooms_router, features as features_router
from modules.meeting.routes import router as meetings_router
from modules.meeting.files_routes import router as files_router
from modules.users.routes import router as users_router
from modules.notifications.routes import router as notifications_router

app.include_router(auth_router)
app.include_router(rooms_router)
app.include_router(features_router)
app.include_router(meetings_router)
app.include_router(files_router)
app.include_router(users_router)
app.include_router(notifications_router)


@app.get("/", include_in_schema=False)
def root():
    return {"name": "Meeting Rooms API", "docs": "/docs"}


# ----- Entrypoint -----
if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=5000, reload=True)
