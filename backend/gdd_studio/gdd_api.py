# backend/gdd_studio/gdd_api.py

import asyncio
import logging
import os
import tempfile
import uuid
from functools import lru_cache
from typing import Set

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, StreamingResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from gdd_studio.config import CONFIG
from gdd_studio.llm_client import LLMClient, build_llm_client
from gdd_studio.gdd_engine.docx_exporter import export_to_docx
from gdd_studio.gdd_engine.orchestrator.orchestrator import GDDOrchestrator
from gdd_studio.gdd_engine.progress import STREAM_HEADERS, STREAM_MEDIA_TYPE, encode_event
from gdd_studio.gdd_engine.run_store import RunStore

logger = logging.getLogger(__name__)

router = APIRouter()

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


# --------------------------------------------------------------------
# Request models
# --------------------------------------------------------------------
class GDDRequest(BaseModel):
    baseIdea: str


# --------------------------------------------------------------------
# Dependencies
# --------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_llm_client() -> LLMClient:
    return build_llm_client(CONFIG)


def get_run_store() -> RunStore:
    return RunStore(CONFIG["GDD_OUTPUT_DIR"])


# --------------------------------------------------------------------
# Background runs
# --------------------------------------------------------------------
# Detached pipeline tasks; kept referenced until they finish.
_running_tasks: Set[asyncio.Task] = set()
_END_OF_RUN = object()


async def _pump_events(orchestrator: GDDOrchestrator, base_idea: str, queue: asyncio.Queue):
    try:
        async for event in orchestrator.run(base_idea):
            await queue.put(event)
    finally:
        await queue.put(_END_OF_RUN)


def _on_run_done(task: asyncio.Task) -> None:
    _running_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("GDD generation failed", exc_info=exc)


def start_pipeline(orchestrator: GDDOrchestrator, base_idea: str):
    """
    Run the pipeline as its own task so it finishes even when the client
    goes away. Returns (task, queue of events).
    """
    queue: asyncio.Queue = asyncio.Queue()
    task = asyncio.create_task(_pump_events(orchestrator, base_idea, queue))
    _running_tasks.add(task)
    task.add_done_callback(_on_run_done)
    return task, queue


# --------------------------------------------------------------------
# Stream helper
# --------------------------------------------------------------------
async def stream_gdd_pipeline(task: asyncio.Task, queue: asyncio.Queue):
    """
    One JSON line per progress event. A failed run re-raises here, which
    cuts the stream without a result event.
    """
    while True:
        event = await queue.get()
        if event is _END_OF_RUN:
            break
        yield encode_event(event)
    # shield: closing the stream must not cancel the run
    await asyncio.shield(task)


# --------------------------------------------------------------------
# POST /generate-gdd - STREAMING
# --------------------------------------------------------------------
@router.post("/generate-gdd")
async def generate_gdd(
    payload: GDDRequest,
    llm: LLMClient = Depends(get_llm_client),
    run_store: RunStore = Depends(get_run_store),
):
    task, queue = start_pipeline(GDDOrchestrator(llm, run_store), payload.baseIdea)
    return StreamingResponse(
        stream_gdd_pipeline(task, queue),
        media_type=STREAM_MEDIA_TYPE,
        headers=STREAM_HEADERS,
    )


# --------------------------------------------------------------------
# GET /runs/{run_name}/export-docx
# --------------------------------------------------------------------
@router.get("/runs/{run_name}/export-docx")
async def export_run_docx(run_name: str, run_store: RunStore = Depends(get_run_store)):
    folder = run_store.find_run(run_name)
    if folder is None:
        raise HTTPException(404, "Run not found")

    final_gdd = folder.path / "5_final_gdd.md"
    if not final_gdd.exists():
        raise HTTPException(400, "GDD not generated yet.")

    out_path = os.path.join(tempfile.gettempdir(), f"gdd_{uuid.uuid4().hex}.docx")
    export_to_docx(final_gdd.read_text(encoding="utf-8"), out_path)

    return FileResponse(
        out_path,
        media_type=DOCX_MEDIA_TYPE,
        filename=f"{run_name}.docx",
        background=BackgroundTask(os.remove, out_path),
    )
