"""Tests for observability middleware."""

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from code_retriever.core.metrics import metrics
from code_retriever.core.middleware import ObservabilityMiddleware


@pytest.fixture
def app():
    test_app = FastAPI()
    test_app.add_middleware(ObservabilityMiddleware)

    @test_app.get("/test")
    async def test_endpoint():
        return {"message": "ok"}

    @test_app.get("/error")
    async def error_endpoint():
        raise ValueError("Test error")

    return test_app


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


def test_middleware_adds_request_id(client):
    response = client.get("/test")
    assert len(response.headers["x-request-id"]) > 0


def test_middleware_preserves_provided_request_id(client):
    response = client.get("/test", headers={"X-Request-ID": "test-123-456"})
    assert response.headers["x-request-id"] == "test-123-456"


def test_middleware_increments_request_count(client):
    initial_count = metrics.total_requests
    client.get("/test")
    assert metrics.total_requests == initial_count + 1


def test_middleware_records_latency(client):
    client.get("/test")
    assert metrics._latencies[-1] >= 0


def test_middleware_counts_server_errors(client):
    initial_requests = metrics.total_requests
    initial_errors = metrics.total_errors
    response = client.get("/error")
    assert response.status_code == 500
    assert metrics.total_requests == initial_requests + 1
    assert metrics.total_errors == initial_errors + 1


def test_middleware_logs_forwarded_ip(client, caplog):
    caplog.set_level(logging.INFO, logger="code_retriever.core.middleware")
    client.get("/test", headers={"X-Forwarded-For": "203.0.113.7"})
    lines = [r.getMessage() for r in caplog.records if "path=/test" in r.getMessage()]
    assert lines
    assert "ip=203.0.113.7" in lines[-1]
    assert "status=200" in lines[-1]
