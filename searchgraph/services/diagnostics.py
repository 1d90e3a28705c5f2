"""JSON artifacts written as a side effect of a planning run."""
from __future__ import annotations

import dataclasses
import json
import time
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, tuple)):
        return list(value)
    return str(value)


class DiagnosticsWriter:
    def __init__(self, log_dir: str | Path = "logs", *, enabled: bool = True):
        self.log_dir = Path(log_dir)
        self.enabled = enabled

    def save(self, kind: str, data: Any) -> Path | None:
        if not self.enabled:
            return None
        path = self.log_dir / f"{kind}_{int(time.time() * 1000)}.json"
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(data, ensure_ascii=False, indent=2, default=_to_jsonable),
                encoding="utf-8",
            )
        except (OSError, TypeError, ValueError) as exc:
            logger.warning(f"[{kind}] Failed to save diagnostics: {exc}")
            return None
        logger.debug(f"[{kind}] Saved to {path}")
        return path
