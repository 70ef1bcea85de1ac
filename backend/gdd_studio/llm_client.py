# backend/gdd_studio/llm_client.py
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from openai import AsyncAzureOpenAI, AsyncOpenAI

from gdd_studio.config import CONFIG

logger = logging.getLogger(__name__)


@dataclass
class TokenUsage:
    """Token totals for a single run. Every model call adds to the one it is given."""

    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, input_tokens: int = 0, output_tokens: int = 0) -> None:
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens

    def summary(self) -> str:
        return (
            f"Total Input Tokens: {self.input_tokens}\n"
            f"Total Output Tokens: {self.output_tokens}"
        )


def estimate_prompt_tokens(prompt: str) -> int:
    """Image calls report no usage, so the prompt's word count stands in for it."""
    return len(prompt.split())


class LLMClient:
    """
    Thin async wrapper over the OpenAI SDK: one chat completion call and one
    image generation call. Failures are not retried and propagate to the caller.
    """

    def __init__(
        self,
        client,
        model: str = "gpt-4",
        image_model: str = "dall-e-2",
        image_size: str = "512x512",
    ):
        self.client = client
        self.model = model
        self.image_model = image_model
        self.image_size = image_size

    async def complete(self, messages: List[Dict[str, str]], usage: TokenUsage) -> str:
        logger.debug("Chat completion model=%s messages=%d", self.model, len(messages))
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
        )
        usage.add(response.usage.prompt_tokens, response.usage.completion_tokens)
        return response.choices[0].message.content

    async def generate_image(self, prompt: str, usage: TokenUsage) -> str:
        logger.debug("Image generation model=%s size=%s", self.image_model, self.image_size)
        response = await self.client.images.generate(
            model=self.image_model,
            prompt=prompt,
            n=1,
            size=self.image_size,
        )
        usage.add(input_tokens=estimate_prompt_tokens(prompt))
        return response.data[0].url


def build_llm_client(config: Optional[dict] = None) -> LLMClient:
    """
    Build the client from CONFIG. An Azure endpoint switches to AsyncAzureOpenAI,
    where model names are deployment names.
    """
    config = config or CONFIG

    if config.get("AZURE_OPENAI_ENDPOINT"):
        sdk_client = AsyncAzureOpenAI(
            azure_endpoint=config["AZURE_OPENAI_ENDPOINT"],
            api_key=config["OPENAI_API_KEY"],
            api_version=config["AZURE_OPENAI_API_VERSION"],
            max_retries=0,
        )
    else:
        sdk_client = AsyncOpenAI(api_key=config["OPENAI_API_KEY"], max_retries=0)

    return LLMClient(
        sdk_client,
        model=config["OPENAI_MODEL"],
        image_model=config["OPENAI_IMAGE_MODEL"],
        image_size=config["OPENAI_IMAGE_SIZE"],
    )
