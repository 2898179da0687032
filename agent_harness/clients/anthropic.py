"""Anthropic Messages API client used by the messages backend.

Every model call of an emulated run goes through here: requests share a
moving-window rate limiter, transient API errors are retried, and the run
transcript is trimmed to whole exchanges so it fits the context window.
"""

import asyncio
import os
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

import tiktoken
from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel

from agent_harness.exceptions import ConfigurationError
from agent_harness.models.llm import ContentBlock, TextBlock, ToolResultBlock, ToolUseBlock
from agent_harness.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

CLIPPED_MARKER = "\n[output truncated]"


class AnthropicMessage(BaseModel):
    """One turn of a Messages API transcript."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


class AnthropicTool(BaseModel):
    """Function tool declaration sent with each request."""

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class AnthropicResponse:
    """Model reply converted to our content blocks."""

    content: list[ContentBlock]
    stop_reason: str | None
    usage: TokenUsage
    model: str

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    @property
    def text(self) -> str:
        return "\n".join(block.text for block in self.content if isinstance(block, TextBlock))


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 1024
    temperature: float = 0.1
    max_retries: int = 3
    retry_delay: float = 1.0
    max_retry_after: float = 120.0

    # Token budget of a run transcript
    context_window: int = 200_000
    response_headroom: int = 2_000
    max_tool_result_tokens: int = 4_000


class AnthropicRateLimiter:
    """Moving-window request and token limiter shared by all clients."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        self.limiter = MovingWindowRateLimiter(MemoryStorage())
        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def acquire(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until one more request of the given size fits both windows."""
        await self._wait_for(self.request_limit, identifier, 1)
        await self._wait_for(self.token_limit, f"{identifier}_tokens", estimated_tokens)

    async def _wait_for(self, limit: RateLimitItem, key: str, cost: int) -> None:
        if self.limiter.hit(limit, key, cost=cost):
            return

        stats = self.limiter.get_window_stats(limit, key)
        wait_time = max(0.0, stats.reset_time - time.time())
        if wait_time > 0:
            logger.warning(f"Rate limit {limit} reached for {key}, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)


def _load_tokenizer() -> tiktoken.Encoding | None:
    try:
        # Close approximation for Claude
        return tiktoken.encoding_for_model("gpt-4")
    except Exception as e:
        logger.warning(f"Tokenizer unavailable, estimating 4 characters per token: {e}")
        return None


class AnthropicClient:
    """Messages API client with rate limiting, retries and transcript budgeting."""

    rate_limiter: AnthropicRateLimiter = AnthropicRateLimiter()

    def __init__(self, api_key: str | None = None, config: AnthropicConfig | None = None):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration

        Raises:
            ConfigurationError: If no API key is available
        """
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY environment variable is required")

        self.client = AsyncAnthropic(api_key=self.api_key)
        self.config = config or AnthropicConfig()
        self.tokenizer = _load_tokenizer()

    async def close(self) -> None:
        await self.client.close()

    async def create_message(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        tools: list[AnthropicTool] | None = None,
        model: str | None = None,
    ) -> AnthropicResponse:
        """Send the run transcript and return the next assistant turn.

        Args:
            messages: Transcript so far, oldest first
            system_prompt: Agent instructions
            tools: Function tools the model may call
            model: Model override for this request

        Returns:
            The converted response

        Raises:
            ValueError: If the latest exchange alone exceeds the context window
            anthropic.APIError: If the request still fails after retries
        """
        request_params = await self._prepare_request(messages, system_prompt, tools, model)
        response = await self._request_with_retries(lambda: self.client.messages.create(**request_params))

        usage = TokenUsage()
        if response.usage:
            usage = TokenUsage(input_tokens=response.usage.input_tokens, output_tokens=response.usage.output_tokens)

        return AnthropicResponse(
            content=_convert_blocks(response.content),
            stop_reason=response.stop_reason,
            usage=usage,
            model=response.model,
        )

    async def stream_message(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        model: str | None = None,
    ) -> AsyncIterator[str]:
        """Stream the text of the next assistant turn as it is generated.

        No tools are offered, and a stream is never retried since part of the
        reply may already have been shown.
        """
        request_params = await self._prepare_request(messages, system_prompt, None, model)
        async with self.client.messages.stream(**request_params) as stream:
            async for text in stream.text_stream:
                yield text

    async def _prepare_request(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        tools: list[AnthropicTool] | None,
        model: str | None,
    ) -> dict[str, Any]:
        """Fit the transcript, wait for rate limit capacity and build the request."""
        messages = self.fit_transcript(messages, system_prompt, tools)
        estimated_tokens = self.count_tokens(system_prompt) + self.transcript_tokens(messages)
        await self.rate_limiter.acquire(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": model or self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "system": system_prompt,
            "messages": [message.model_dump(exclude_none=True) for message in messages],
        }
        if tools:
            request_params["tools"] = [tool.model_dump() for tool in tools]

        logger.debug(f"Requesting {request_params['model']}: {len(messages)} messages, ~{estimated_tokens} tokens")
        return request_params

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Retry rate limits, server errors and connection failures.

        Client errors other than 429 are raised straight away.
        """
        attempts = self.config.max_retries
        for attempt in range(1, attempts + 1):
            try:
                return await call()
            except APIStatusError as e:
                if attempt == attempts or not (e.status_code == 429 or e.status_code >= 500):
                    raise
                delay = self._backoff(attempt)
                if e.status_code == 429:
                    delay = float(e.response.headers.get("retry-after", 60))
                    if delay > self.config.max_retry_after:
                        raise
                logger.warning(f"Anthropic returned {e.status_code}, retrying in {delay:.1f}s ({attempt}/{attempts})")
                await asyncio.sleep(delay)
            except APIConnectionError as e:
                if attempt == attempts:
                    raise
                delay = self._backoff(attempt)
                logger.warning(f"Anthropic connection failed ({e}), retrying in {delay:.1f}s ({attempt}/{attempts})")
                await asyncio.sleep(delay)

        raise RuntimeError("max_retries must be at least 1")

    def _backoff(self, attempt: int) -> float:
        return self.config.retry_delay * (2 ** (attempt - 1))

    # Token budgeting

    def count_tokens(self, text: str) -> int:
        if self.tokenizer is None:
            return len(text) // 4
        return len(self.tokenizer.encode(text))

    def transcript_tokens(self, messages: list[AnthropicMessage]) -> int:
        return sum(self.count_tokens(_message_text(message)) for message in messages)

    def fit_transcript(
        self, messages: list[AnthropicMessage], system_prompt: str, tools: list[AnthropicTool] | None = None
    ) -> list[AnthropicMessage]:
        """Drop the oldest exchanges until the transcript fits the context window.

        A trimmed transcript always starts at a plain user message, so every tool
        result that is kept still follows the tool use it answers.

        Raises:
            ValueError: If even the latest exchange does not fit
        """
        if not messages:
            return messages

        budget = self.config.context_window - self.config.response_headroom - self.count_tokens(system_prompt)
        if tools:
            declarations = "".join(tool.name + tool.description + str(tool.input_schema) for tool in tools)
            budget -= self.count_tokens(declarations)

        # Suffix sums give the size of the transcript kept from each start
        kept_tokens = 0
        fits_from: int | None = None
        for index in range(len(messages) - 1, -1, -1):
            kept_tokens += self.count_tokens(_message_text(messages[index]))
            if kept_tokens > budget:
                break
            if _starts_exchange(messages[index]):
                fits_from = index

        if fits_from is None:
            raise ValueError(f"Latest exchange does not fit the {budget} token context budget")
        if fits_from:
            logger.warning(f"Dropped the oldest {fits_from} of {len(messages)} messages to fit {budget} tokens")
        return messages[fits_from:]

    def clip_tool_result(self, output: str) -> str:
        """Shorten a tool output to at most max_tool_result_tokens."""
        limit = self.config.max_tool_result_tokens
        if self.count_tokens(output) <= limit:
            return output

        if self.tokenizer is None:
            clipped = output[: limit * 4]
        else:
            clipped = self.tokenizer.decode(self.tokenizer.encode(output)[:limit])
        logger.info(f"Clipped tool output to {limit} tokens")
        return clipped + CLIPPED_MARKER


def _convert_blocks(blocks: list[Any]) -> list[ContentBlock]:
    converted: list[ContentBlock] = []
    for block in blocks:
        if block.type == "text":
            converted.append(TextBlock(text=block.text))
        elif block.type == "tool_use":
            converted.append(ToolUseBlock(id=block.id, name=block.name, input=dict(block.input)))
        else:
            logger.debug(f"Ignoring {block.type} content block")
    return converted


def _starts_exchange(message: AnthropicMessage) -> bool:
    """Whether the transcript may begin at this message."""
    if message.role != "user":
        return False
    if isinstance(message.content, str):
        return True
    return not any(isinstance(block, ToolResultBlock) for block in message.content)


def _message_text(message: AnthropicMessage) -> str:
    if isinstance(message.content, str):
        return message.content

    parts = []
    for block in message.content:
        if isinstance(block, TextBlock):
            parts.append(block.text)
        elif isinstance(block, ToolResultBlock):
            parts.append(block.content)
        elif isinstance(block, ToolUseBlock):
            parts.append(block.name + str(block.input))
    return "".join(parts)
