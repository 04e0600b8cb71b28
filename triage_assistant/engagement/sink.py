"""Persist engagement responses for downstream workflow steps."""

from __future__ import annotations

import asyncio
import typing as typ
from pathlib import Path

from triage_assistant.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    from .models import EngagementResponse

logger = get_logger(__name__)

RESPONSE_FILE_NAME = "engagement-response.json"


def _write(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)


async def write_engagement_response(
    response: EngagementResponse, temp_dir: Path | str
) -> Path:
    """Write ``response`` as JSON into ``temp_dir`` and return the file path."""
    path = Path(temp_dir) / RESPONSE_FILE_NAME
    await asyncio.to_thread(_write, path, response.to_json())
    log_info(logger, "Wrote %d engagement items to %s", response.total_items, path)
    return path
