"""Text generation against Gemini's OpenAI-compatible chat endpoint."""

import logging
import time

import openai

from moodchef import config

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a professional chef and nutritionist. "
    "Always respond with valid JSON only, without markdown or commentary."
)


class AIClientError(Exception):
    """Raised when the model cannot be reached or returns nothing."""
    pass


class GenerativeTextClient:
    """Send a prompt to the model and return the raw reply text.

    The reply is not parsed here; that is the response pipeline's job.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = config.AI_BASE_URL,
        model: str = config.AI_MODEL,
        temperature: float = config.AI_TEMPERATURE,
        top_p: float = config.AI_TOP_P,
        max_tokens: int = config.AI_MAX_TOKENS,
        timeout: float = config.AI_TIMEOUT_SECONDS,
    ):
        self.client = openai.OpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self.max_tokens = max_tokens
        self.timeout = timeout

    def generate(self, prompt: str) -> str:
        """Generate a reply for ``prompt``.

        Args:
            prompt: Full user prompt

        Returns:
            The first choice's message text

        Raises:
            AIClientError: On any API error or an empty reply
        """
        logger.info("Calling generative model", extra={"model": self.model, "prompt_length": len(prompt)})
        t0 = time.monotonic()
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                top_p=self.top_p,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )
        except openai.APITimeoutError as e:
            logger.exception("Generative model timeout", extra={"timeout_s": self.timeout})
            raise AIClientError(f"API timeout after {self.timeout} seconds: {e}") from e
        except openai.RateLimitError as e:
            logger.exception("Generative model rate limit hit")
            raise AIClientError(f"API rate limit exceeded: {e}") from e
        except openai.OpenAIError as e:
            logger.exception("Generative model API error")
            raise AIClientError(f"API error: {e}") from e

        elapsed = round(time.monotonic() - t0, 2)
        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.error("Generative model returned an empty reply", extra={"elapsed_s": elapsed})
            raise AIClientError("Model returned an empty response")

        logger.info("Generative model call successful", extra={"elapsed_s": elapsed, "response_length": len(content)})
        return content
