# backend/gdd_studio/gdd_engine/progress.py
"""
Progress Channel encoding.

Events are plain dicts: {"type": "progress", "step": ..., "output": ...}
for intermediate updates and {"type": "result", ...} for the terminal one.
On the wire each event is one JSON object followed by a newline.
"""

import json
from typing import Any, Dict

STREAM_MEDIA_TYPE = "text/event-stream"
STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def progress_event(step: str, output: str) -> Dict[str, Any]:
    return {"type": "progress", "step": step, "output": output}


def result_event(**data: Any) -> Dict[str, Any]:
    return {"type": "result", **data}


def encode_event(event: Dict[str, Any]) -> str:
    return json.dumps(event, ensure_ascii=False) + "\n"
