import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import alembic.config
import alembic.command

from app.ai_feature.errors import InvalidInputError, QueryPipelineError
from app.ai_feature.llm_client import GroqChatClient
from app.core.config import settings
from app.core.database import engine
from app.api.router import api_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"
QUERY_PATH = "/api/query"


def run_migrations():
    """Sync function to run migrations"""
    alembic_cfg = alembic.config.Config(str(ALEMBIC_INI))
    alembic_cfg.attributes["configure_logger"] = False
    alembic.command.upgrade(alembic_cfg, "head")


# Build the shared LLM client, close it and the engine once everything is done
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Apply any pending migrations automatically when the app starts
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            await asyncio.to_thread(run_migrations)
            logger.info("Migrations applied successfully (or already up-to-date)")
        except Exception as e:
            logger.error(f"Migration error during startup: {e}")

    app.state.llm_client = GroqChatClient(
        api_key=settings.GROQ_API_KEY,
        base_url=settings.GROQ_BASE_URL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
    )
    if not settings.GROQ_API_KEY:
        logger.warning("GROQ_API_KEY is not set; /api/query will fail")

    yield
    await app.state.llm_client.aclose()
    await engine.dispose()


app = FastAPI(title="Session Ratings Q&A API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QueryPipelineError)
async def query_pipeline_error_handler(request: Request, exc: QueryPipelineError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


# A missing or malformed question body is a plain 400, same as a blank question
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    if request.url.path == QUERY_PATH:
        error = InvalidInputError()
        return JSONResponse(status_code=error.status_code, content=error.to_payload())
    return await request_validation_exception_handler(request, exc)


# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Ask questions about session ratings at POST /api/query"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT)
