import pytest
from fastapi.testclient import TestClient
from loguru import logger

from config import ServerSettings
from distributions import InMemoryDistributionProvider
from server import create_app


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    # Entry points bind sinks to the captured streams of the test that ran them.
    logger.remove()


@pytest.fixture()
def provider() -> InMemoryDistributionProvider:
    return InMemoryDistributionProvider(
        {
            "sp500": [0.10, -0.05, 0.20, 0.07],
            "flat": [0.03],
        }
    )


@pytest.fixture()
def client(provider):
    app = create_app(provider=provider, settings=ServerSettings(log_file=None))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def scenario() -> dict:
    return {
        "scenario": "Baseline",
        "deposit": 10000,
        "years": 3,
        "annual_contributions": 3600,
        "return_rates": 0.05,
    }
