from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from userhub.modules.settings import settings
from userhub.modules.logging_config import configure_logging
from userhub.modules.database import connect_to_db, disconnect_from_db, init_db, health_check
from userhub.modules.users.api import user_router, register_exception_handlers

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await connect_to_db()
    if settings.DB_INIT_SCHEMA:
        await init_db()
    yield
    # Shutdown
    await disconnect_from_db()

app = FastAPI(title="UserHub", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(user_router)


@app.get("/")
async def root():
    return {"status": "online", "system": "UserHub"}


@app.get("/health")
async def health():
    if await health_check():
        return {"status": "ok", "database": "connected"}
    return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
