"""
Async OpenAI client wrapper used as the study's text-completion service.
"""

import logging
import os
from typing import Dict, List, Optional

from openai import APIError, APITimeoutError, AsyncOpenAI, RateLimitError

logger = logging.getLogger(__name__)


class CompletionError(RuntimeError):
    """The completion service could not produce a reply."""


class LLMClient:
    """
    Thin async wrapper around chat completions.

    - Low temperature: answers must stay close to the knowledge base
    - Retries rate limits and timeouts, fails fast on other API errors
    """

    MAX_OUTPUT_TOKENS = 400
    REQUEST_TIMEOUT_SECONDS = 20.0

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """
        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Model name (defaults to OPENAI_MODEL env var, then gpt-4o-mini)
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key required. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.client = AsyncOpenAI(api_key=self.api_key)
        self.model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")

        logger.info(f"LLMClient initialized with model: {self.model}")

    async def complete(
        self,
        system_prompt: str,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
        max_retries: int = 2,
    ) -> str:
        """
        Generate a reply to ``messages`` under ``system_prompt``.

        Raises:
            CompletionError: if every attempt fails or the reply is empty
        """
        payload = [{"role": "system", "content": system_prompt}, *messages]

        for attempt in range(max_retries + 1):
            try:
                logger.debug(f"Requesting completion (attempt {attempt + 1}/{max_retries + 1})")

                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=payload,
                    temperature=temperature,
                    max_tokens=self.MAX_OUTPUT_TOKENS,
                    timeout=self.REQUEST_TIMEOUT_SECONDS,
                )

                content = (response.choices[0].message.content or "").strip()
                if not content:
                    raise CompletionError("Empty response from completion service")

                usage = response.usage
                if usage is not None:
                    logger.info(
                        f"Completion successful - Tokens: {usage.prompt_tokens} in, "
                        f"{usage.completion_tokens} out"
                    )
                return content

            except RateLimitError as e:
                logger.warning(f"Rate limit hit (attempt {attempt + 1}): {e}")
                if attempt == max_retries:
                    raise CompletionError("OpenAI rate limit exceeded. Try again later.") from e

            except APITimeoutError as e:
                logger.warning(f"Timeout (attempt {attempt + 1}): {e}")
                if attempt == max_retries:
                    raise CompletionError("OpenAI request timed out. Try again later.") from e

            except APIError as e:
                logger.error(f"OpenAI API error: {e}")
                raise CompletionError(f"AI service error: {e}") from e

        raise CompletionError("Failed to get completion after all retries")
