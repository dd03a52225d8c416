import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from scriptura.errors import ClientError, ScripturaError

from .bible import router as bible_router
from .dependencies import close_clients
from .middleware import LoggingMiddleware
from .settings import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_clients()
    logger.info("Closed upstream and speech clients")


app = FastAPI(title="Scriptura API", version="0.1.0", lifespan=lifespan)
app.add_middleware(LoggingMiddleware)

# CORS middleware (allow all origins; the API is public and read-only apart from audio generation)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ScripturaError)
async def scriptura_error_handler(request: Request, exc: ScripturaError) -> JSONResponse:
    if isinstance(exc, ClientError):
        logger.info(f"Rejected {request.method} {request.url.path}: {exc}")
    else:
        logger.error(f"Failed {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    missing = ", ".join(".".join(str(p) for p in err["loc"][1:]) for err in exc.errors())
    return JSONResponse(status_code=400, content={"error": f"Invalid or missing fields: {missing}"})


@app.exception_handler(ValidationError)
async def model_validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
    return JSONResponse(status_code=400, content={"error": f"Invalid fields: {fields}"})


app.include_router(bible_router)


@app.get("/api/health", tags=["Utility"])
async def health() -> dict[str, str]:
    """Return basic service health status."""
    return {"status": "ok"}


@app.get("/", tags=["Utility"])
async def root() -> dict[str, str]:
    return {"status": "Scriptura API is running"}
