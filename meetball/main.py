from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from meetball import __version__
from meetball.database import Base, SessionLocal, engine
import meetball.models  # noqa: F401  # Register ORM tables on Base.metadata
from meetball.routers import meetings as meetings_router
from meetball.services.errors import StoreError
from meetball.utils.logging_config import setup_logging

logger = logging.getLogger("meetball")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    Base.metadata.create_all(bind=engine)
    logger.info("Meetball %s ready; tables checked.", __version__)
    yield
    logger.info("Meetball shutting down.")


app = FastAPI(
    title="Meetball",
    description="Availability polling: propose days, collect slots, read the heatmap.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(meetings_router.router)


def _detail(status_code: int, detail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _detail(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error. Please check logs.",
    )


@app.exception_handler(StoreError)
async def store_exception_handler(request: Request, exc: StoreError):
    logger.error("Store error on %s: %s", request.url.path, exc.message)
    return _detail(status.HTTP_503_SERVICE_UNAVAILABLE, exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if exc.status_code >= 500:
        logger.error("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail)
    else:
        logger.info("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail)
    return _detail(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = [err["msg"] for err in exc.errors()]
    logger.warning("Rejected payload on %s: %s", request.url.path, messages)
    return _detail(status.HTTP_422_UNPROCESSABLE_ENTITY, messages)


@app.get("/health", tags=["healthcheck"])
def health_check():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check could not reach the database: %s", exc)
        raise HTTPException(status_code=503, detail="Database connection failed")
    finally:
        db.close()
    return {"status": "healthy", "database": "connected", "version": __version__}
