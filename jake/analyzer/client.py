"""
Claude API Client

Robust client for the insight and content stages:
- Chat-style message lists (system messages are lifted into `system`)
- Structured output by forcing a single tool whose input_schema is the
  requested JSON schema
- Retry with exponential backoff and a per-client circuit breaker
- Token usage and cost tracking

Failures never raise to the caller: they come back as success=False so the
stages can fall back to canned output.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import anthropic

from ..utils.config import Settings, get_settings
from ..utils.retry import (
    CircuitBreaker,
    CircuitOpenError,
    RetryConfig,
    is_retryable_error,
    retry_with_backoff,
)

logger = logging.getLogger(__name__)


@dataclass
class TokenUsage:
    """Track token usage for cost calculation."""
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def estimated_cost(self) -> float:
        """Estimate cost based on Claude Sonnet 4 pricing."""
        # Sonnet 4 pricing: $3/1M input, $15/1M output
        input_cost = (self.input_tokens / 1_000_000) * 3.0
        output_cost = (self.output_tokens / 1_000_000) * 15.0
        return input_cost + output_cost


@dataclass
class LLMResponse:
    """Response from one Claude call."""
    content: str
    usage: TokenUsage
    model: str
    stop_reason: Optional[str]
    structured: Optional[Dict[str, Any]] = None
    success: bool = True
    error: Optional[str] = None


class ClaudeClient:
    """
    Async client for Claude.

    Usage:
        llm = ClaudeClient(api_key="...")
        response = await llm.invoke(
            [{"role": "system", "content": "..."}, {"role": "user", "content": "..."}],
            response_schema={"type": "object", ...},
            schema_name="competitive_analysis",
        )
        if response.success:
            data = response.structured
    """

    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    MAX_TOKENS = 8000
    TEMPERATURE = 0.3

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        async_client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        """
        Initialize Claude client.

        Args:
            api_key: Anthropic API key
            model: Model to use (defaults to Sonnet 4)
            retry_config: Backoff settings for transient failures
            circuit_breaker: Breaker guarding this client (3 failures / 60s by default)
            async_client: Preconfigured AsyncAnthropic (tests)
        """
        if async_client is None and not api_key:
            raise ValueError("ANTHROPIC_API_KEY not provided")

        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.async_client = async_client or anthropic.AsyncAnthropic(api_key=api_key)
        self.retry_config = retry_config or RetryConfig(max_retries=2, initial_delay=2.0)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            "claude", failure_threshold=3, reset_timeout=60.0
        )

        # Track cumulative usage
        self.total_usage = TokenUsage()
        self.call_count = 0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> Optional["ClaudeClient"]:
        """Build a client, or None when no API key is configured."""
        settings = settings or get_settings()
        if not settings.ANTHROPIC_API_KEY:
            logger.warning("ANTHROPIC_API_KEY not set; AI stages will use fallback output")
            return None
        return cls(api_key=settings.ANTHROPIC_API_KEY, model=settings.CLAUDE_MODEL)

    def _should_retry(self, error: BaseException) -> bool:
        if isinstance(error, anthropic.APIConnectionError):
            return True
        return is_retryable_error(error, self.retry_config)

    async def invoke(
        self,
        messages: List[Dict[str, str]],
        response_schema: Optional[Dict[str, Any]] = None,
        schema_name: str = "structured_response",
        max_tokens: int = MAX_TOKENS,
        temperature: float = TEMPERATURE,
    ) -> LLMResponse:
        """
        Send a conversation to Claude.

        Args:
            messages: [{"role": "system"|"user"|"assistant", "content": str}]
            response_schema: JSON schema for structured output (optional)
            schema_name: Tool name used for the structured output
            max_tokens: Maximum output tokens
            temperature: Sampling temperature

        Returns:
            LLMResponse; `structured` is set when a schema was requested
        """
        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        chat = [
            {"role": m["role"], "content": m["content"]}
            for m in messages if m["role"] != "system"
        ]

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": chat,
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)

        if response_schema is not None:
            kwargs["tools"] = [{
                "name": schema_name,
                "description": f"Return the {schema_name.replace('_', ' ')} as structured data.",
                "input_schema": response_schema,
            }]
            kwargs["tool_choice"] = {"type": "tool", "name": schema_name}

        async def attempt():
            return await self.async_client.messages.create(**kwargs)

        try:
            response = await self.circuit_breaker.execute(
                lambda: retry_with_backoff(
                    attempt, self.retry_config, self._should_retry, operation="Claude call"
                )
            )
        except (anthropic.APIError, CircuitOpenError) as e:
            logger.error(f"Claude API error: {e}")
            return LLMResponse(
                content="",
                usage=TokenUsage(),
                model=self.model,
                stop_reason="error",
                success=False,
                error=str(e),
            )

        content = ""
        structured = None
        for block in response.content:
            block_type = getattr(block, "type", None)
            if block_type == "tool_use":
                structured = block.input
            elif hasattr(block, "text"):
                content += block.text

        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        self.total_usage.input_tokens += usage.input_tokens
        self.total_usage.output_tokens += usage.output_tokens
        self.call_count += 1

        logger.info(
            f"Claude call: {usage.input_tokens} in, {usage.output_tokens} out, "
            f"${usage.estimated_cost:.4f}"
        )

        if response_schema is not None and structured is None:
            return LLMResponse(
                content=content,
                usage=usage,
                model=self.model,
                stop_reason=response.stop_reason,
                success=False,
                error="No structured output in response",
            )

        return LLMResponse(
            content=content,
            usage=usage,
            model=self.model,
            stop_reason=response.stop_reason,
            structured=structured,
        )
