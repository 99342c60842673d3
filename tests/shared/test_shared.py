"""
Unit tests for the shared helpers.
"""

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from shared.base_service import BaseService
from shared.config import get_config
from shared.errors import ConflictError, ExternalServiceError, TaskManagerException
from shared.tracing import trace_operation


@pytest.fixture
def exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer(exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider.get_tracer("test")


class TestTraceOperation:
    """Test cases for trace_operation."""

    def test_attributes_skip_none(self, tracer, exporter):
        """Test None attributes are not set."""
        with trace_operation(tracer, "TaskService.GetTask", **{"task.id": "t1", "task.owner": None}):
            pass

        span = exporter.get_finished_spans()[0]
        assert span.name == "TaskService.GetTask"
        assert dict(span.attributes) == {"task.id": "t1"}

    def test_failure_marks_span_once(self, tracer, exporter):
        """Test a raised error sets ERROR status and one exception event."""
        with pytest.raises(ConflictError):
            with trace_operation(tracer, "UserService.CreateUser"):
                raise ConflictError("dup")

        span = exporter.get_finished_spans()[0]
        assert span.status.status_code == StatusCode.ERROR
        assert [event.name for event in span.events] == ["exception"]


class TestErrors:
    """Test cases for the error taxonomy."""

    def test_status_override(self):
        """Test an explicit status wins over the class default."""
        exc = TaskManagerException("NOT_FOUND", "gone", status_code=404)
        assert exc.status_code == 404
        assert exc.to_response().model_dump()["code"] == "NOT_FOUND"

    def test_external_service_message(self):
        """Test the service name prefixes the message."""
        exc = ExternalServiceError("todo", "service unavailable")
        assert exc.message == "todo: service unavailable"
        assert exc.status_code == 502


class TestBaseService:
    """Test cases for the common HTTP scaffolding."""

    @pytest.fixture
    def client(self):
        service = BaseService("example", 9000, config=get_config("example", 9000))

        @service.app.get("/boom")
        async def boom():
            raise RuntimeError("unexpected")

        @service.app.get("/conflict")
        async def conflict():
            raise ConflictError("Already exists")

        with TestClient(service.app, raise_server_exceptions=False) as client:
            yield client

    def test_request_id_echoed(self, client):
        """Test an inbound request id is returned unchanged."""
        response = client.get("/health", headers={"X-Request-ID": "req-1"})
        assert response.headers["X-Request-ID"] == "req-1"

    def test_request_id_generated(self, client):
        """Test a request id is assigned when absent."""
        assert client.get("/health").headers["X-Request-ID"]

    def test_taxonomy_error_rendering(self, client):
        """Test taxonomy errors render with their own status."""
        response = client.get("/conflict")
        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_unexpected_error_is_500(self, client):
        """Test unhandled exceptions become INTERNAL_ERROR."""
        response = client.get("/boom")
        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"

    def test_metrics_endpoint(self, client):
        """Test the Prometheus export is served."""
        client.get("/health")
        assert "http_requests_total" in client.get("/metrics").text
