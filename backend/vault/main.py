import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vault.auth import TokenIssuer
from vault.config import Settings, settings as default_settings
from vault.database import make_session_factory
from vault.encryption import FieldCipher
from vault.errors import VaultError
from vault.gateway import PersistenceGateway, SqlGateway
from vault.routers import auth, export, flights, records
from vault.services.aviationstack import FlightLookup

logger = logging.getLogger(__name__)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(VaultError)
    async def vault_error_handler(request: Request, exc: VaultError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Field locations and messages only, never the submitted values
        errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder({"message": "Invalid input", "errors": errors}),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("[app] unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(
    gateway: Optional[PersistenceGateway] = None,
    flight_lookup: Optional[FlightLookup] = None,
    config: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the API. Tests pass their own gateway (usually InMemoryGateway) and
    flight lookup; by default both are built from settings.
    """
    config = config or default_settings
    logging.basicConfig(level=config.log_level.upper())

    if gateway is None:
        gateway = SqlGateway(make_session_factory(config.database_url), FieldCipher(config.encryption_key))
        if config.database_url.startswith("sqlite"):
            # Local dev convenience; PostgreSQL schemas come from Alembic
            gateway.create_all()

    if flight_lookup is None:
        flight_lookup = FlightLookup(
            api_key=config.aviationstack_api_key,
            base_url=config.aviationstack_base_url,
            timeout=config.aviationstack_timeout,
            demo_mode=config.flight_lookup_demo_mode,
        )

    app = FastAPI(title="Personal Data Vault API", version="0.1.0")
    app.state.gateway = gateway
    app.state.flight_lookup = flight_lookup
    app.state.tokens = TokenIssuer(
        config.jwt_secret,
        algorithm=config.jwt_algorithm,
        expires_minutes=config.jwt_expires_minutes,
    )
    app.state.bcrypt_rounds = config.bcrypt_rounds

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_error_handlers(app)

    app.include_router(auth.router)
    for router in records.routers:
        app.include_router(router)
    app.include_router(flights.router)
    app.include_router(export.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def get_application() -> FastAPI:
    """uvicorn factory entry point: `uvicorn vault.main:get_application --factory`."""
    return create_app()
