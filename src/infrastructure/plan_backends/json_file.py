from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from domain.errors import StorageUnavailableError
from infrastructure.plan_backends.backend import PlanBackend

logger = logging.getLogger(__name__)


class JsonFilePlanBackend(PlanBackend):
    """One JSON document per scope under a directory; writes go through a temp file and rename."""

    name = "file"

    def __init__(self, directory: str | Path | None = None) -> None:
        self._directory = Path(directory or os.getenv("PLAN_STORE_DIR", ".plans"))

    def list(self, scope_key: str) -> list[dict[str, Any]]:
        path = self._path_for(scope_key)
        if not path.exists():
            return []
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("JsonFilePlanBackend read failed path=%s: %s", path, exc)
            raise StorageUnavailableError(f"Unable to read plans for scope {scope_key!r}: {exc}") from exc

        records = payload.get("plans") if isinstance(payload, dict) else payload
        if not isinstance(records, list):
            raise StorageUnavailableError(
                f"Expected a list of plan records in {path}, got {type(records).__name__}"
            )
        return [row for row in records if isinstance(row, dict)]

    def put(self, scope_key: str, records: list[dict[str, Any]]) -> None:
        path = self._path_for(scope_key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps({"scope": scope_key, "plans": records}, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("JsonFilePlanBackend write failed path=%s: %s", path, exc)
            raise StorageUnavailableError(f"Unable to write plans for scope {scope_key!r}: {exc}") from exc
        logger.info("JsonFilePlanBackend wrote scope=%s records=%d", scope_key, len(records))

    def _path_for(self, scope_key: str) -> Path:
        # Scope keys are opaque (session ids, cookies...), so never use them as file names directly.
        digest = hashlib.sha256(scope_key.encode("utf-8")).hexdigest()[:32]
        return self._directory / f"plans-{digest}.json"
