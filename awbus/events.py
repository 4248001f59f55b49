from __future__ import annotations

import json
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, TextIO


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@contextmanager
def wide_event(
    command: str,
    *,
    profile: str,
    enabled: bool,
    stream: TextIO | None = None,
) -> Iterator[dict[str, Any]]:
    """Collect one structured line describing a command run.

    Core operations add their own fields to the yielded dict. The line is
    written to stderr on exit, success or not, when ``enabled``.
    """
    start = time.time()
    event: dict[str, Any] = {
        "event": "awbus_command",
        "command": command,
        "profile": profile,
        "ts": _now_iso(),
    }
    try:
        yield event
        event.setdefault("outcome", "success")
    except Exception as exc:
        event["outcome"] = "error"
        event["error"] = {"type": type(exc).__name__, "message": str(exc)}
        raise
    finally:
        event["duration_ms"] = int((time.time() - start) * 1000)
        if enabled:
            # Never log credential material.
            out = stream if stream is not None else sys.stderr
            out.write(json.dumps(event, separators=(",", ":"), sort_keys=True, default=str) + "\n")
