# app/main.py
import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from fastapi import FastAPI, Request, status, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from neo4j.exceptions import ServiceUnavailable
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api import router as api_router
from app.db.driver import Neo4jDriver
from app.core.config import settings
from app.core.redis_client import RedisClient
from app.core.exceptions import (
    DanglingEdgeReferenceException,
    DuplicateEdgeException,
    DuplicateVertexException,
    GraphEngineException,
    GraphNotFoundException,
    InvalidWeightException,
    NoPathExistsException,
    PathLimitExceededException,
    UnknownVertexException,
)
from app.core.limiter import limiter

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

MAX_RETRIES = 10
RETRY_DELAY = 3
INITIALIZATION_GRACE_PERIOD = 30
neo4j_ready_event = asyncio.Event()

# Checked in order; the first matching class wins, anything else is a 500.
EXCEPTION_STATUS_CODES: list[tuple[type[GraphEngineException], int]] = [
    (DuplicateVertexException, status.HTTP_409_CONFLICT),
    (DuplicateEdgeException, status.HTTP_409_CONFLICT),
    (DanglingEdgeReferenceException, status.HTTP_400_BAD_REQUEST),
    (UnknownVertexException, status.HTTP_400_BAD_REQUEST),
    (InvalidWeightException, 422),
    (PathLimitExceededException, 422),
    (GraphNotFoundException, status.HTTP_404_NOT_FOUND),
    (NoPathExistsException, status.HTTP_404_NOT_FOUND),
]

@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup Logic ---
    startup_task = asyncio.create_task(_initialize_neo4j())

    try:
        await asyncio.wait_for(asyncio.shield(startup_task), timeout=INITIALIZATION_GRACE_PERIOD)
    except asyncio.TimeoutError:
        logger.warning(
            "Neo4j initialization is taking longer than expected. "
            "Continuing startup while initialization finishes in the background."
        )
    except Exception as exc:
        logger.error("Neo4j initialization task raised an unexpected error: %s", exc)

    try:
        yield
    finally:
        # --- Shutdown Logic ---
        if not startup_task.done():
            startup_task.cancel()
            with suppress(asyncio.CancelledError):
                await startup_task

        await Neo4jDriver.close_driver()
        await RedisClient.close_client()
        logger.info("Closed Neo4j and Redis connections.")

async def _initialize_neo4j():
    """Verify Neo4j connectivity and ensure the graph schema exists."""
    neo4j_ready_event.clear()
    for attempt in range(MAX_RETRIES):
        try:
            logger.info("Initializing Neo4j (attempt %d/%d)...", attempt + 1, MAX_RETRIES)
            driver = await Neo4jDriver.get_driver()
            await driver.verify_connectivity()
            await _ensure_schema(driver)
            logger.info("Neo4j initialization complete.")
            neo4j_ready_event.set()
            return
        except ServiceUnavailable as exc:
            if attempt + 1 == MAX_RETRIES:
                logger.error("Could not connect to Neo4j after %d attempts. Last error: %s", MAX_RETRIES, exc)
                raise
            backoff = RETRY_DELAY * (attempt + 1)
            logger.warning("Neo4j not ready (%s). Retrying in %d seconds...", exc, backoff)
            await asyncio.sleep(backoff)

async def _ensure_schema(driver):
    """Ensure uniqueness constraints and the graph-membership index exist before serving traffic."""
    async with driver.session() as session:
        await session.run("CREATE CONSTRAINT graph_id IF NOT EXISTS FOR (g:Graph) REQUIRE g.id IS UNIQUE")
        await session.run("CREATE CONSTRAINT vertex_id IF NOT EXISTS FOR (v:Vertex) REQUIRE v.id IS UNIQUE")
        await session.run("CREATE INDEX vertex_graph_id IF NOT EXISTS FOR (v:Vertex) ON (v.graphId)")
    logger.info("Database constraints and indexes are configured.")


app = FastAPI(
    title="Geo Path Graph API",
    description="Stores geographic graphs and answers shortest-path and all-paths queries.",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Content-Type", "Idempotency-Key"],
)

@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    # Offending inputs are not echoed back: a NaN or Infinity literal cannot be rendered as JSON.
    errors = [{key: value for key, value in error.items() if key != "input"} for error in exc.errors()]
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})

@app.exception_handler(GraphEngineException)
async def graph_engine_exception_handler(request: Request, exc: GraphEngineException):
    status_code = next(
        (code for exc_type, code in EXCEPTION_STATUS_CODES if isinstance(exc, exc_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error("Graph operation failed: %s", exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"message": exc.message, "error": exc.code},
    )

app.include_router(api_router.router)

@app.get("/")
async def root():
    return {"message": "Welcome to the Geo Path Graph API"}

@app.get("/healthz", tags=["Health"], status_code=status.HTTP_200_OK)
async def health_check():
    """Returns the operational status of the service."""
    return {
        "status": "ok",
        "neo4j_ready": neo4j_ready_event.is_set(),
    }

@app.get("/redis-health", tags=["Health"], status_code=status.HTTP_200_OK)
async def redis_health_check():
    """Lightweight Redis readiness probe."""
    redis_client = RedisClient.get_client()
    try:
        pong = await redis_client.ping()
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Redis unavailable: {exc}"
        ) from exc
    return {"status": "ok", "ping": pong}
