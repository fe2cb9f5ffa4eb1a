import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from admin.router import router as admin_router
from core.config import settings
from core.handlers import register_exception_handlers
from core.init_db import init_db
from core.logging_config import configure_logging
from core.rate_limit import limiter
from memberships.router import router as membership_router
from transactions.main import router as transaction_router
from users.auth import router as auth_router
from users.users import router as users_router

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if not settings.ADMIN_KEY:
        logger.warning("ADMIN_KEY is not set; admin endpoints will reject every request")
    yield


app = FastAPI(title="Coin Ledger API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.state.limiter = limiter
register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(transaction_router)
app.include_router(membership_router)
app.include_router(admin_router)


@app.get("/api/health")
def health_check():
    return {"ok": True, "message": "Server is running"}
