from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from gdd_studio.llm_client import LLMClient

ART_URL = "https://images.example.test/concept-art.png"


class FakeOpenAI:
    """Test double for AsyncOpenAI: scripted chat replies keyed on the system prompt."""

    def __init__(
        self,
        *,
        prompt_tokens: int = 11,
        completion_tokens: int = 7,
        fail_when: Callable[[list[dict[str, str]], int], bool] | None = None,
    ) -> None:
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.fail_when = fail_when
        self.chat_calls: list[dict[str, Any]] = []
        self.image_calls: list[dict[str, Any]] = []
        self.counts: dict[str, int] = {}
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create_chat))
        self.images = SimpleNamespace(generate=self._generate_image)

    async def _create_chat(self, *, model: str, messages: list[dict[str, str]]) -> Any:
        await asyncio.sleep(0)  # let other tasks run between calls, like a real request
        self.chat_calls.append({"model": model, "messages": messages})
        kind = _kind_of(messages[0]["content"])
        self.counts[kind] = self.counts.get(kind, 0) + 1
        number = self.counts[kind]
        if self.fail_when is not None and self.fail_when(messages, number):
            raise RuntimeError(f"provider failure during {kind} call {number}")

        if kind == "discussion":
            content = f"Designer A: we talked it over (round {number})\nRefined idea v{number}"
        elif kind == "gdd":
            content = f"## Overview\n\nGDD draft {number} for: {messages[1]['content']}"
        elif kind == "art":
            content = "A lone astronaut flipping gravity inside a neon puzzle cube"
        else:
            content = f"QA verdict {number}: satisfactory"

        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
            usage=SimpleNamespace(
                prompt_tokens=self.prompt_tokens,
                completion_tokens=self.completion_tokens,
            ),
        )

    async def _generate_image(self, **kwargs: Any) -> Any:
        self.image_calls.append(kwargs)
        return SimpleNamespace(data=[SimpleNamespace(url=ART_URL)])


def _kind_of(system_prompt: str) -> str:
    if "discussing a game idea" in system_prompt:
        return "discussion"
    if "Game Design Document (GDD)" in system_prompt:
        return "gdd"
    if "concept artist" in system_prompt:
        return "art"
    return "qa"


def collect(agen, sink: list) -> list:
    """Drain an async generator into sink; events survive a mid-run exception."""

    async def _drain() -> None:
        async for item in agen:
            sink.append(item)

    asyncio.run(_drain())
    return sink


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def llm(fake_openai: FakeOpenAI) -> LLMClient:
    return LLMClient(fake_openai)


@pytest.fixture
def client(tmp_path, fake_openai: FakeOpenAI) -> TestClient:
    from gdd_studio.gdd_api import get_llm_client, get_run_store
    from gdd_studio.gdd_engine.run_store import RunStore
    from gdd_studio.main import app

    app.dependency_overrides[get_llm_client] = lambda: LLMClient(fake_openai)
    app.dependency_overrides[get_run_store] = lambda: RunStore(tmp_path)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
