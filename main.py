"""Main FastAPI application"""
import os
import logging
import logging.config
from datetime import date
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from routes import router as api_router
from models.user import User
from services import users_service
from services.errors import CostManagerError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

load_dotenv() # Searches current dir and parents

# --- Unified Logging Configuration with Rich ---
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            # RichHandler renders time and level itself
            "format": "%(name)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "class": "rich.logging.RichHandler",
            "formatter": "default",
            "level": "DEBUG",
            "rich_tracebacks": True,
            "show_time": True,
            "show_path": False,
            "log_time_format": "%Y-%m-%d %H:%M:%S",
            "markup": False
        },
    },
    "loggers": {
        "uvicorn": {
             "handlers": ["default"],
             "level": "INFO",
             "propagate": False,
        },
        "uvicorn.error": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.access": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
        "": { # Root logger for our application
            "handlers": ["default"],
            "level": os.getenv("LOG_LEVEL", "INFO").upper(),
            "propagate": False,
        },
    },
}

logging.config.dictConfig(LOGGING_CONFIG)
logger = logging.getLogger(__name__)

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "cost_manager")
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))
MAX_BODY_SIZE = int(os.getenv("MAX_BODY_SIZE", str(64 * 1024)))  # 64KB limit
BODY_LIMITED_PATHS = {"/api/add"}
RATE_LIMIT = os.getenv("RATE_LIMIT", "60/minute")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "false").lower() == "true"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
SEED_DEFAULT_USER = os.getenv("SEED_DEFAULT_USER", "true").lower() == "true"

DEFAULT_USER = User(
    id=os.getenv("DEFAULT_USER_ID", "123123"),
    first_name=os.getenv("DEFAULT_USER_FIRST_NAME", "mosh"),
    last_name=os.getenv("DEFAULT_USER_LAST_NAME", "israeli"),
    birthday=date.fromisoformat(os.getenv("DEFAULT_USER_BIRTHDAY", "1990-01-01")),
    marital_status=os.getenv("DEFAULT_USER_MARITAL_STATUS", "single"),
)

# Application state to hold the database client and handle
app_state = {}

# --- Rate Limiter Setup ---
limiter = Limiter(key_func=get_remote_address, default_limits=[RATE_LIMIT], enabled=RATE_LIMIT_ENABLED)

# --- Middleware for Request Body Size Limit ---
class LimitBodySizeMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path in BODY_LIMITED_PATHS:
            content_length_header = request.headers.get("content-length")
            if content_length_header:
                try:
                    content_length = int(content_length_header)
                    if content_length > MAX_BODY_SIZE:
                        logger.warning(f"Request rejected: body size {content_length} exceeds limit {MAX_BODY_SIZE}.")
                        return JSONResponse({"error": f"Request body exceeds {MAX_BODY_SIZE} bytes."}, status_code=413)
                except ValueError:
                    logger.warning("Request rejected: Invalid Content-Length header.")
                    return JSONResponse({"error": "Invalid Content-Length header."}, status_code=400)

        response = await call_next(request)
        return response

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Connect to MongoDB
    logger.info(f"Connecting to MongoDB database '{DB_NAME}'...")
    try:
        app_state["db_client"] = AsyncIOMotorClient(MONGODB_URI, serverSelectionTimeoutMS=MONGO_TIMEOUT_MS)
        app_state["db"] = app_state["db_client"][DB_NAME]
        await app_state["db_client"].admin.command('ping')
        logger.info(f"Successfully connected to MongoDB database: {DB_NAME}")
    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        if app_state.get("db_client"):
            app_state["db_client"].close()
        app_state["db_client"] = None
        app_state["db"] = None

    # Bootstrap failures leave the connection usable
    if app_state.get("db") is not None:
        try:
            await users_service.ensure_indexes(app_state["db"])
            if SEED_DEFAULT_USER:
                await users_service.ensure_default_user(app_state["db"], DEFAULT_USER)
        except Exception as e:
            logger.error(f"MongoDB bootstrap (indexes / default user) failed: {e}")

    yield # Application runs here

    # Shutdown: Close MongoDB connection
    if app_state.get("db_client"):
        logger.info("Closing MongoDB connection...")
        app_state["db_client"].close()
        logger.info("MongoDB connection closed.")

app = FastAPI(
    title="Cost Manager API",
    description="API for recording costs, per-user totals and monthly reports.",
    version="1.0.0",
    lifespan=lifespan
)

# --- Rate Limiter State and Handler ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Error Handlers: every failure is answered as {"error": message} ---
@app.exception_handler(CostManagerError)
async def cost_manager_error_handler(request: Request, exc: CostManagerError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    problems = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    ]
    logger.warning(f"Invalid request to {request.url.path}: {problems}")
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "Invalid request."})

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=getattr(exc, "headers", None))

# --- Middleware (Order Matters) ---
# 1. Rate Limiter Middleware
app.add_middleware(SlowAPIMiddleware)
# 2. CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# 3. Body Size Limit Middleware
app.add_middleware(LimitBodySizeMiddleware)

app.include_router(api_router, prefix="/api", tags=["api"])

# Make app state accessible via middleware
@app.middleware("http")
async def add_app_config_to_request(request: Request, call_next):
    """Adds the database handle to the request state."""
    request.state.db = app_state.get("db")
    response = await call_next(request)
    return response

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        reload=os.getenv("RELOAD", "false").lower() == "true"
    )
