import asyncio
import math
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel

from config import (
    ConfigurationError,
    ServerSettings,
    SimulationConfig,
    load_server_settings,
)
from distributions import (
    CsvDistributionProvider,
    DistributionProvider,
    InMemoryDistributionProvider,
)
from errors import (
    AmountOverflow,
    DistributionNotFound,
    InvalidResults,
    LengthMismatch,
    NaNInvalid,
    NegativeValue,
    SimulationError,
)
from simulation import InvestmentSimulator, Snapshot, aggregate


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str


class DistributionsResponse(BaseModel):
    distributions: List[str]


ERROR_STATUS_CODES: Dict[type, int] = {
    NegativeValue: 422,
    LengthMismatch: 422,
    DistributionNotFound: 404,
    NaNInvalid: 400,
    AmountOverflow: 400,
    InvalidResults: 400,
}


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging(log_file: Optional[str] = "server.log") -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        level="INFO",
        colorize=True,
    )
    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
            level="INFO",
            rotation="10 MB",
        )


def _load_provider(settings: ServerSettings) -> DistributionProvider:
    try:
        return CsvDistributionProvider.from_directory(settings.distributions_dir)
    except ConfigurationError as e:
        logger.warning(f"No historical distributions loaded: {e}")
        return InMemoryDistributionProvider()


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    provider: Optional[DistributionProvider] = None,
    settings: Optional[ServerSettings] = None,
) -> FastAPI:
    """
    Builds the API. ``provider`` is used as-is when given; otherwise the
    distributions are loaded from ``settings.distributions_dir`` at startup.
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        app_settings = settings or load_server_settings()
        _configure_logging(app_settings.log_file)
        logger.info("Investment Simulator API starting up")
        _app.state.provider = provider if provider is not None else _load_provider(app_settings)
        yield
        logger.info("Investment Simulator API shutting down")

    app = FastAPI(
        title="Investment Simulator API",
        description="Simulates the year-by-year growth of an investment with contributions and annual returns.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _safe_float(value: float) -> Optional[float]:
    """Convert NaN / Inf to None so JSON serialisation stays valid."""
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _json_safe(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        k: _safe_float(v) if isinstance(v, float) else v for k, v in payload.items()
    }


def _run_simulation(
    config: SimulationConfig, provider: DistributionProvider
) -> Tuple[List[Snapshot], Dict[str, Any]]:
    """Synchronous work -- called via ``asyncio.to_thread``."""
    simulator = InvestmentSimulator(config, provider=provider)
    snapshots, investment_result = simulator.run_and_aggregate()
    return snapshots, _json_safe(investment_result.model_dump())


async def _simulate_or_raise(
    request: Request, config: SimulationConfig
) -> Tuple[List[Snapshot], Dict[str, Any]]:
    logger.info(f"Received simulation request for scenario '{config.Nickname}'")
    try:
        result = await asyncio.to_thread(
            _run_simulation, config, request.app.state.provider
        )
    except SimulationError as e:
        status_code = ERROR_STATUS_CODES.get(type(e), 400)
        logger.warning(f"Simulation for '{config.Nickname}' rejected ({status_code}): {e}")
        raise HTTPException(status_code=status_code, detail=str(e))

    logger.info(f"Simulation complete for '{config.Nickname}'")
    return result


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

def _register_routes(app: FastAPI) -> None:
    @app.get("/check", response_model=HealthResponse)
    async def health_check():
        return {"status": "ok"}

    @app.get("/distributions", response_model=DistributionsResponse)
    async def list_distributions(request: Request):
        return {"distributions": request.app.state.provider.names()}

    @app.post("/simulate")
    async def simulate(request: Request, body: SimulationConfig):
        """Run the simulation and return the aggregated investment result."""
        _, result = await _simulate_or_raise(request, body)
        return result

    @app.post("/simulate/snapshots")
    async def simulate_snapshots(request: Request, body: SimulationConfig):
        """Run the simulation and return every yearly snapshot plus the aggregate."""
        snapshots, result = await _simulate_or_raise(request, body)
        return {
            "snapshots": [_json_safe(s.result().model_dump()) for s in snapshots],
            "result": result,
        }


app = create_app()


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

def serve(settings: Optional[ServerSettings] = None) -> None:
    settings = settings or load_server_settings()
    _configure_logging(settings.log_file)
    uvicorn.run("server:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    serve()
