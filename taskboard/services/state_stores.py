"""Durable stores for the raw board state.

A state store knows how to load and save one ``RawState`` document. It does
not validate or repair what it loads; that is the reconciler's job.
``save`` reports failure by returning False so that the session can roll back
the optimistic change. ``load`` returns None when nothing is stored yet.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Protocol

import httpx

from taskboard.core import db_client
from taskboard.core.config import constants, settings
from taskboard.core.errors import StateStoreError
from taskboard.core.logging import span
from taskboard.domain.board import RawState


logger = logging.getLogger(__name__)


# HTTP status code constants for error handling
HTTP_CLIENT_ERROR_START = 400
HTTP_CLIENT_ERROR_END = 500


class StateStore(Protocol):
    """Load and save one raw board document."""

    async def load(self) -> RawState | None: ...

    async def save(self, raw: RawState) -> bool: ...


class JsonFileStateStore:
    """Board state kept in a local JSON file.

    Writes go to a temporary file that is then renamed over the target, so a
    crash mid-write leaves the previous state intact.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or settings.state_file_path)

    def _read(self) -> RawState | None:
        if not self.path.exists():
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Failed to read {self.path}: {e}"
            raise StateStoreError(msg) from e
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(
                "State file is not valid JSON, starting fresh", extra={"path": str(self.path), "error": str(e)}
            )
            return None
        if not isinstance(data, dict):
            logger.warning("State file does not hold a JSON object, starting fresh", extra={"path": str(self.path)})
            return None
        return data

    def _write(self, raw: RawState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(json.dumps(raw, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    async def load(self) -> RawState | None:
        with span("json_state_store.load"):
            return await asyncio.to_thread(self._read)

    async def save(self, raw: RawState) -> bool:
        with span("json_state_store.save"):
            try:
                await asyncio.to_thread(self._write, raw)
            except (OSError, TypeError, ValueError) as e:
                logger.error("Failed to write state file", extra={"path": str(self.path), "error": str(e)})
                return False
            return True


class SqliteStateStore:
    """Board state kept as one JSON document in a SQLite key/value table."""

    def __init__(self, db_path: str | None = None, key: str | None = None) -> None:
        self.db_path = db_path
        self.key = key or settings.board_id
        self._initialized = False

    async def _ensure_schema(self) -> None:
        if not self._initialized:
            await db_client.init_db(db_path=self.db_path)
            self._initialized = True

    async def load(self) -> RawState | None:
        with span("sqlite_state_store.load"):
            await self._ensure_schema()
            return await db_client.get_state(key=self.key, db_path=self.db_path)

    async def save(self, raw: RawState) -> bool:
        with span("sqlite_state_store.save"):
            try:
                await self._ensure_schema()
                await db_client.put_state(key=self.key, value=raw, db_path=self.db_path)
            except StateStoreError as e:
                logger.error("Failed to save state to SQLite", extra={"key": self.key, "error": str(e)})
                return False
            return True

    async def close(self) -> None:
        await db_client.close_connection(db_path=self.db_path)


class HttpStateStore:
    """Board state kept as a document on a remote REST service.

    ``GET {base_url}/boards/{board_id}`` loads the document (404 means none
    yet) and ``PUT`` replaces it. Server errors and network failures are
    retried with exponential backoff; client errors are not.
    """

    def __init__(
        self,
        base_url: str | None = None,
        board_id: str | None = None,
        *,
        api_key: str | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        base_url = base_url or settings.require_credential("remote_state_url", "Remote state service")
        self.base_url = base_url.rstrip("/")
        self.board_id = board_id or settings.board_id
        self.api_key = api_key if api_key is not None else settings.remote_api_key
        self.max_retries = max(1, max_retries if max_retries is not None else settings.save_max_retries)
        self.retry_delay = retry_delay if retry_delay is not None else settings.save_retry_delay_seconds
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url}/boards/{self.board_id}"

    def _client(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        return httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS, headers=headers, transport=self._transport)

    async def _request(self, method: str, **kwargs: object) -> httpx.Response:
        """Send a request, retrying server errors and network failures.

        Returns the first response that is not a server error.

        Raises:
            StateStoreError: If every attempt failed
        """
        last_error = "no attempt made"
        for attempt in range(self.max_retries):
            try:
                async with self._client() as client:
                    response = await client.request(method, self.url, **kwargs)
                if response.status_code < HTTP_CLIENT_ERROR_END:
                    return response
                last_error = f"Server error: {response.status_code}"
            except httpx.HTTPError as e:
                last_error = f"{type(e).__name__}: {e!s}"

            logger.warning(
                "Remote state request failed",
                extra={"method": method, "attempt": attempt + 1, "error": last_error},
            )
            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.retry_delay * (2**attempt))

        msg = f"{method} {self.url} failed after {self.max_retries} attempts: {last_error}"
        raise StateStoreError(msg)

    async def load(self) -> RawState | None:
        with span("http_state_store.load"):
            response = await self._request("GET")
            if response.status_code == constants.HTTP_NOT_FOUND:
                logger.info("No remote state yet", extra={"board_id": self.board_id})
                return None
            if response.status_code >= HTTP_CLIENT_ERROR_START:
                msg = f"Client error loading board {self.board_id}: {response.status_code} {response.text}"
                raise StateStoreError(msg)
            try:
                data = response.json()
            except ValueError as e:
                msg = f"Remote state for board {self.board_id} is not valid JSON"
                raise StateStoreError(msg) from e
            if not isinstance(data, dict):
                logger.warning("Remote state is not a JSON object, starting fresh", extra={"board_id": self.board_id})
                return None
            return data

    async def save(self, raw: RawState) -> bool:
        with span("http_state_store.save"):
            try:
                response = await self._request("PUT", json=raw)
            except StateStoreError as e:
                logger.error("Failed to save remote state", extra={"board_id": self.board_id, "error": str(e)})
                return False
            if HTTP_CLIENT_ERROR_START <= response.status_code < HTTP_CLIENT_ERROR_END:
                logger.error(
                    "Remote state service rejected save",
                    extra={"board_id": self.board_id, "status_code": response.status_code},
                )
                return False
            return True


def create_state_store() -> StateStore:
    """Build the state store selected by ``settings.state_backend``."""
    if settings.state_backend == "sqlite":
        return SqliteStateStore()
    if settings.state_backend == "http":
        return HttpStateStore()
    return JsonFileStateStore()
