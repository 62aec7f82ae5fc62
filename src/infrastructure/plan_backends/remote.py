from __future__ import annotations

import json
import logging
import os
import socket
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from domain.errors import StorageUnavailableError
from infrastructure.plan_backends.backend import PlanBackend

logger = logging.getLogger(__name__)


class RemoteDocumentPlanBackend(PlanBackend):
    """
    Talks to a hosted document store over HTTP.

    Contract:
      GET  {base_url}/scopes/{scope}/plans -> {"plans": [...]} (404 means no plans yet)
      PUT  {base_url}/scopes/{scope}/plans <- {"plans": [...]}
    """

    name = "remote"

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("PLAN_STORE_URL", "http://127.0.0.1:8787")).rstrip("/")
        self.api_key = api_key or os.getenv("PLAN_STORE_API_KEY", "")
        self.timeout_seconds = timeout_seconds or float(os.getenv("PLAN_STORE_TIMEOUT_SECONDS", "10"))

    def list(self, scope_key: str) -> list[dict[str, Any]]:
        try:
            body = self._request("GET", scope_key)
        except urllib.error.HTTPError as exc:
            if exc.code == 404:
                return []
            raise StorageUnavailableError(f"Plan store returned HTTP {exc.code} for scope {scope_key!r}") from exc

        records = body.get("plans") if isinstance(body, dict) else body
        if not isinstance(records, list):
            raise StorageUnavailableError(f"Expected plan records list from plan store, got {type(records).__name__}")
        return [row for row in records if isinstance(row, dict)]

    def put(self, scope_key: str, records: list[dict[str, Any]]) -> None:
        try:
            self._request("PUT", scope_key, {"plans": records})
        except urllib.error.HTTPError as exc:
            raise StorageUnavailableError(f"Plan store returned HTTP {exc.code} for scope {scope_key!r}") from exc

    def _url(self, scope_key: str) -> str:
        return f"{self.base_url}/scopes/{urllib.parse.quote(scope_key, safe='')}/plans"

    def _request(self, method: str, scope_key: str, payload: dict[str, Any] | None = None) -> Any:
        started = time.perf_counter()
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        req = urllib.request.Request(
            url=self._url(scope_key),
            data=json.dumps(payload).encode("utf-8") if payload is not None else None,
            headers=headers,
            method=method,
        )

        try:
            logger.info(
                "RemoteDocumentPlanBackend request start method=%s base_url=%s timeout=%.1fs",
                method,
                self.base_url,
                self.timeout_seconds,
            )
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError:
            raise
        except (socket.timeout, urllib.error.URLError, TimeoutError, ConnectionError) as exc:
            elapsed = time.perf_counter() - started
            logger.warning("RemoteDocumentPlanBackend request failed after %.2fs: %s", elapsed, exc)
            raise StorageUnavailableError(f"Plan store unreachable at {self.base_url}: {exc}") from exc

        elapsed = time.perf_counter() - started
        logger.info("RemoteDocumentPlanBackend request complete in %.2fs response_chars=%d", elapsed, len(raw))
        if not raw.strip():
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageUnavailableError(f"Plan store returned malformed JSON: {exc}") from exc
