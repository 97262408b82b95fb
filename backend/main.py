import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_settings
from db.database import init_db
from disguiser.errors import DisguiseError
from api.routes import disguise, vault

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Disguiser API")

    if settings.target_database_url == settings.vault_database_url:
        logger.warning(
            "Target and vault share one database URL. The vault tables will "
            "live next to the application's own tables."
        )

    await init_db()
    yield
    logger.info("Shutting down Disguiser API")


app = FastAPI(
    title="Disguiser",
    description="Reversible data disguising with an undo vault",
    version="0.1.0",
    lifespan=lifespan,
)

cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Requested-With"],
)


@app.exception_handler(DisguiseError)
async def disguise_error_handler(request: Request, exc: DisguiseError):
    logger.info("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def invalid_json_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Please provide valid Json input", "errors": jsonable_encoder(exc.errors())},
    )


app.include_router(disguise.router, prefix="/disguise", tags=["disguise"])
app.include_router(vault.router, prefix="/vault", tags=["vault"])


@app.get("/api/health")
async def health():
    return {"status": "ok"}
