import os
import re
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from loguru import logger
from openai import AsyncOpenAI, OpenAIError

from graph.errors import LeadQualifierError

PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class CompletionError(LeadQualifierError):
    """The completion service failed or returned nothing usable."""


def render_prompt(template: str, variables: Mapping[str, Any]) -> str:
    """
    Fill ``{{name}}`` placeholders from variables.

    Only names present in the mapping are replaced; anything else is left as
    written. Substitution is a single pass, so a value that itself contains
    ``{{...}}`` is never expanded again.
    """
    def _sub(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return PLACEHOLDER.sub(_sub, template)


class LLMClient:
    """Async client for any OpenAI-compatible chat/embedding endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        embedding_model: Optional[str] = None,
        timeout: float = 30.0,
        temperature: float = 0.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.base_url = base_url or os.getenv("OPENAI_BASE_URL")
        self.embedding_model = embedding_model or os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
        self.temperature = temperature

        if not self.api_key:
            logger.warning("No OpenAI API key provided, requests will likely be rejected")

        self.client = client or AsyncOpenAI(
            # local OpenAI-compatible servers accept any key
            api_key=self.api_key or "not-set",
            base_url=self.base_url,
            timeout=timeout,
        )

    async def complete(self, template: str, variables: Mapping[str, Any]) -> str:
        """
        Render a prompt template and return the model's reply.

        Args:
            template: Prompt with ``{{name}}`` placeholders
            variables: Values for the placeholders

        Returns:
            The generated text

        Raises:
            CompletionError: on transport/model failure or an empty reply
        """
        prompt = render_prompt(template, variables)
        message = await self.chat([{"role": "user", "content": prompt}])
        content = (message.content or "").strip()
        if not content:
            raise CompletionError(f"Model {self.model} returned an empty completion")
        return content

    async def chat(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ):
        """Run one chat completion and return the assistant message."""
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
        }
        if tools:
            kwargs["tools"] = tools

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            logger.error(f"Chat completion failed: {e}")
            raise CompletionError(str(e)) from e

        if not response.choices:
            raise CompletionError(f"Model {self.model} returned no choices")
        return response.choices[0].message

    async def stream(
        self,
        messages: List[Dict[str, Any]],
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Yield the reply to messages as it is generated."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature if temperature is None else temperature,
                stream=True,
            )
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except OpenAIError as e:
            logger.error(f"Streaming completion failed: {e}")
            raise CompletionError(str(e)) from e

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed texts with the configured embedding model."""
        try:
            response = await self.client.embeddings.create(model=self.embedding_model, input=texts)
        except OpenAIError as e:
            logger.error(f"Embedding request failed: {e}")
            raise CompletionError(str(e)) from e

        return [item.embedding for item in sorted(response.data, key=lambda d: d.index)]
