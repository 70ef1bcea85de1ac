from __future__ import annotations

import asyncio
import contextlib
import io
import json

import pytest
from docx import Document
from fastapi.testclient import TestClient

from gdd_studio.llm_client import LLMClient

from conftest import ART_URL, FakeOpenAI

IDEA = "a puzzle game about gravity"


def _events(response) -> list[dict]:
    return [json.loads(line) for line in response.text.splitlines() if line.strip()]


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_generate_gdd_streams_json_lines(client: TestClient, tmp_path) -> None:
    response = client.post("/generate-gdd", json={"baseIdea": IDEA})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["connection"] == "keep-alive"
    assert response.text.endswith("\n")

    events = _events(response)
    assert events[0] == {"type": "progress", "step": "base-idea", "output": IDEA}
    result = events[-1]
    assert result["type"] == "result"
    assert "<img" in result["finalGdd"]
    assert ART_URL in result["finalGdd"]
    assert result["tokenUsage"].startswith("Total Input Tokens: ")

    (run_dir,) = list(tmp_path.iterdir())
    assert run_dir.name.endswith("-a-puzzle-game-about-gravity")
    assert len(list(run_dir.iterdir())) == 21


def test_generate_gdd_requires_base_idea(client: TestClient, tmp_path) -> None:
    response = client.post("/generate-gdd", json={"idea": IDEA})
    assert response.status_code == 422
    assert list(tmp_path.iterdir()) == []


def test_stream_ends_without_result_on_provider_failure(tmp_path) -> None:
    from gdd_studio.gdd_api import get_llm_client, get_run_store
    from gdd_studio.gdd_engine.run_store import RunStore
    from gdd_studio.main import app

    failing = FakeOpenAI(
        fail_when=lambda messages, number: "discussing a game idea" in messages[0]["content"]
        and number == 3
    )
    app.dependency_overrides[get_llm_client] = lambda: LLMClient(failing)
    app.dependency_overrides[get_run_store] = lambda: RunStore(tmp_path)
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.post("/generate-gdd", json={"baseIdea": IDEA})
    finally:
        app.dependency_overrides.clear()

    events = _events(response)
    assert all(event["type"] == "progress" for event in events)
    (run_dir,) = list(tmp_path.iterdir())
    assert not list(run_dir.glob("3_gdd_iteration_*.md"))
    assert not (run_dir / "4_concept_art_prompt.txt").exists()


def test_export_docx_for_finished_run(client: TestClient, tmp_path) -> None:
    client.post("/generate-gdd", json={"baseIdea": IDEA})
    (run_dir,) = list(tmp_path.iterdir())

    response = client.get(f"/runs/{run_dir.name}/export-docx")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    )

    document = Document(io.BytesIO(response.content))
    texts = [paragraph.text for paragraph in document.paragraphs]
    assert "Game Design Document" in texts
    assert any(ART_URL in text for text in texts)


def test_export_docx_unknown_or_unfinished_run(client: TestClient, tmp_path) -> None:
    assert client.get("/runs/does-not-exist/export-docx").status_code == 404

    (tmp_path / "half-done").mkdir()
    response = client.get("/runs/half-done/export-docx")
    assert response.status_code == 400
    assert response.json()["detail"] == "GDD not generated yet."


def test_client_ui_is_served(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert "/generate-gdd" in client.get("/app.js").text


def test_run_finishes_after_client_disconnects(tmp_path) -> None:
    from gdd_studio import gdd_api
    from gdd_studio.gdd_engine.run_store import RunStore
    from gdd_studio.main import app

    body = json.dumps({"baseIdea": IDEA}).encode()
    scope = {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": "2.4"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/generate-gdd",
        "raw_path": b"/generate-gdd",
        "query_string": b"",
        "root_path": "",
        "headers": [
            (b"host", b"testserver"),
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode()),
        ],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }
    chunks: list[bytes] = []

    async def _browser_tab_closed_after_first_event() -> None:
        body_sent = False

        async def receive() -> dict:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            await asyncio.Event().wait()

        async def send(message: dict) -> None:
            if message["type"] == "http.response.body" and message.get("body"):
                if chunks:
                    raise OSError("connection reset by peer")
                chunks.append(message["body"])

        with contextlib.suppress(Exception):
            await app(scope, receive, send)
        await asyncio.gather(*list(gdd_api._running_tasks))

    app.dependency_overrides[gdd_api.get_llm_client] = lambda: LLMClient(FakeOpenAI())
    app.dependency_overrides[gdd_api.get_run_store] = lambda: RunStore(tmp_path)
    try:
        asyncio.run(_browser_tab_closed_after_first_event())
    finally:
        app.dependency_overrides.clear()

    assert len(chunks) == 1
    assert json.loads(chunks[0])["step"] == "base-idea"
    (run_dir,) = list(tmp_path.iterdir())
    assert len(list(run_dir.iterdir())) == 21
    assert (run_dir / "5_final_gdd_qa.txt").exists()
    assert (run_dir / "token_usage.txt").exists()


def test_export_docx_removes_temporary_file(
    client: TestClient, tmp_path, monkeypatch: pytest.MonkeyPatch
) -> None:
    from gdd_studio import gdd_api

    client.post("/generate-gdd", json={"baseIdea": IDEA})
    (run_dir,) = list(tmp_path.iterdir())
    scratch = tmp_path.parent / f"{tmp_path.name}-scratch"
    scratch.mkdir()
    monkeypatch.setattr(gdd_api.tempfile, "gettempdir", lambda: str(scratch))

    response = client.get(f"/runs/{run_dir.name}/export-docx")

    assert response.status_code == 200
    assert response.content[:2] == b"PK"
    assert list(scratch.iterdir()) == []
