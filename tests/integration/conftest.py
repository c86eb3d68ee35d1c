"""
Integration fixtures: the HTTP and WebSocket routers served over
TestClient, wired to the in-memory collaborator fakes.
"""

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from kitsu_verify.api.routes import router as http_router
from kitsu_verify.api.websocket import router as websocket_router
from kitsu_verify.domain.orchestrator import VerificationOrchestrator


@pytest.fixture
def app(orchestrator: VerificationOrchestrator) -> FastAPI:
    """Test application without lifespan; collaborators are fakes."""
    test_app = FastAPI()
    test_app.include_router(http_router)
    test_app.include_router(websocket_router)
    test_app.state.orchestrator = orchestrator
    return test_app


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """
    Client sharing one event loop between HTTP calls and open sockets,
    so a webhook can answer on a socket opened by the same test.
    """
    with TestClient(app) as test_client:
        yield test_client
