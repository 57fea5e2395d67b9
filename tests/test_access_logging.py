"""Tests for access logging middleware."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import structlog
from starlette.requests import Request
from starlette.responses import Response
from subway.middleware.access_logging import REQUEST_ID_HEADER, AccessLoggingMiddleware


class TestAccessLoggingMiddleware:
    """Tests for AccessLoggingMiddleware."""

    @pytest.fixture
    def middleware(self) -> AccessLoggingMiddleware:
        """Create middleware instance."""
        return AccessLoggingMiddleware(MagicMock())

    @pytest.fixture
    def mock_request(self) -> MagicMock:
        """Create mock request."""
        request = MagicMock(spec=Request)
        request.method = "POST"
        request.url.path = "/api/v1/lines/abc/sections"
        request.client.host = "127.0.0.1"
        request.headers = {}
        return request

    async def test_logs_request_with_structlog(
        self, middleware: AccessLoggingMiddleware, mock_request: MagicMock
    ) -> None:
        """Test that middleware logs one http_request event."""
        response = Response(status_code=201)
        call_next = AsyncMock(return_value=response)

        with patch("subway.middleware.access_logging.logger") as mock_logger:
            result = await middleware.dispatch(mock_request, call_next)

        assert result == response
        mock_logger.info.assert_called_once()
        call_args = mock_logger.info.call_args
        assert call_args[0][0] == "http_request"
        assert call_args[1]["method"] == "POST"
        assert call_args[1]["path"] == "/api/v1/lines/abc/sections"
        assert call_args[1]["status_code"] == 201
        assert "duration_ms" in call_args[1]
        assert call_args[1]["client_ip"] == "127.0.0.1"

    async def test_handles_missing_client(self, middleware: AccessLoggingMiddleware, mock_request: MagicMock) -> None:
        """Test that middleware handles a missing client."""
        mock_request.client = None
        call_next = AsyncMock(return_value=Response(status_code=200))

        with patch("subway.middleware.access_logging.logger") as mock_logger:
            await middleware.dispatch(mock_request, call_next)

        assert mock_logger.info.call_args[1]["client_ip"] == "unknown"

    async def test_reuses_incoming_request_id(
        self, middleware: AccessLoggingMiddleware, mock_request: MagicMock
    ) -> None:
        """Test that a caller-supplied request id is echoed back."""
        mock_request.headers = {REQUEST_ID_HEADER: "req-42"}
        call_next = AsyncMock(return_value=Response(status_code=200))

        with patch("subway.middleware.access_logging.logger"):
            result = await middleware.dispatch(mock_request, call_next)

        assert result.headers[REQUEST_ID_HEADER] == "req-42"

    async def test_generates_request_id(self, middleware: AccessLoggingMiddleware, mock_request: MagicMock) -> None:
        """Test that a request id is generated when none is supplied."""
        call_next = AsyncMock(return_value=Response(status_code=200))

        with patch("subway.middleware.access_logging.logger"):
            result = await middleware.dispatch(mock_request, call_next)

        assert len(result.headers[REQUEST_ID_HEADER]) == 32

    async def test_request_id_bound_during_request(
        self, middleware: AccessLoggingMiddleware, mock_request: MagicMock
    ) -> None:
        """Test that downstream code sees the request id in structlog contextvars."""
        mock_request.headers = {REQUEST_ID_HEADER: "req-7"}
        seen: dict[str, object] = {}

        async def call_next(request: Request) -> Response:
            seen.update(structlog.contextvars.get_contextvars())
            return Response(status_code=200)

        with patch("subway.middleware.access_logging.logger"):
            await middleware.dispatch(mock_request, call_next)

        assert seen["request_id"] == "req-7"
        assert "request_id" not in structlog.contextvars.get_contextvars()
