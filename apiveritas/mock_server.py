"""Mock HTTP server that replays canned JSON responses."""

from __future__ import annotations

import json
import logging
import secrets
import threading
import time
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .exceptions import MockServerError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_USERS = {"admin": "secret"}
METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def mock_file_name(method: str, path: str) -> str:
    """Map ``GET /users/1/`` to ``GET_users_1``."""
    clean = path.strip("/").replace("/", "_")
    return f"{method.upper()}_{clean}"


def create_mock_app(mock_dir: str | Path, users: Optional[dict[str, str]] = None) -> FastAPI:
    """
    Build the mock application.

    Every request must carry basic auth credentials from ``users``. The
    response body is the JSON file named after the method and path.
    """
    mock_dir = Path(mock_dir)
    users = DEFAULT_USERS if users is None else users
    security = HTTPBasic()

    if not mock_dir.is_dir():
        logger.warning("Mock directory does not exist: %s", mock_dir)

    def authenticate(credentials: HTTPBasicCredentials = Depends(security)) -> str:
        expected = users.get(credentials.username)
        if expected is None or not secrets.compare_digest(
            credentials.password.encode("utf-8"), expected.encode("utf-8")
        ):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Basic"},
            )
        return credentials.username

    app = FastAPI(title="ApiVeritas mock server")

    @app.api_route("/{path:path}", methods=METHODS)
    async def serve(path: str, request: Request, user: str = Depends(authenticate)):
        name = mock_file_name(request.method, path)
        logger.info("Incoming: %s /%s", request.method, path)

        mock_file = mock_dir / f"{name}.json"
        if not mock_file.is_file():
            logger.warning("No match found for %s /%s", request.method, path)
            return PlainTextResponse(
                f"No mock response found for {request.method} /{path}",
                status_code=status.HTTP_404_NOT_FOUND,
            )

        try:
            content = json.loads(mock_file.read_text(encoding="utf-8"))
        except ValueError:
            logger.error("Invalid JSON in mock file: %s", mock_file.name)
            return PlainTextResponse(
                "Invalid mock JSON file",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        logger.info("Matched to file: %s", mock_file.name)
        return JSONResponse(content)

    return app


class MockServer:
    """Runs the mock app with uvicorn on a background thread."""

    def __init__(
        self,
        mock_dir: str | Path,
        port: int = DEFAULT_PORT,
        host: str = "127.0.0.1",
        users: Optional[dict[str, str]] = None
    ):
        self.port = port
        self.app = create_mock_app(mock_dir, users)
        self._server = uvicorn.Server(
            uvicorn.Config(self.app, host=host, port=port, log_level="warning")
        )
        self._thread: Optional[threading.Thread] = None

    def start(self, timeout: float = 10.0):
        self._thread = threading.Thread(target=self._server.run, name="mock-server", daemon=True)
        self._thread.start()

        deadline = time.monotonic() + timeout
        while not self._server.started:
            if not self._thread.is_alive():
                raise MockServerError("Mock server exited during startup", self.port)
            if time.monotonic() > deadline:
                raise MockServerError(f"Mock server did not start within {timeout}s", self.port)
            time.sleep(0.05)

        logger.info("Mock server is running at http://localhost:%d", self.port)

    def stop(self, timeout: float = 10.0):
        if self._thread is None:
            return
        self._server.should_exit = True
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise MockServerError("Mock server did not stop in time", self.port)
        self._thread = None
        logger.info("Mock server stopped.")

    def __enter__(self) -> MockServer:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
