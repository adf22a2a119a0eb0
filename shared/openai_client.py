"""
OpenAI chat-completion client used to write reviews. Cloud-agnostic.
"""
import time
from dataclasses import dataclass, field

import openai


class GenerationError(Exception):
    """Raised when the upstream text-generation API fails."""


@dataclass
class Completion:
    text: str
    usage: dict = field(default_factory=dict)
    latency_ms: int = 0


class OpenAIClient:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        temperature: float = 0.8,
        top_p: float = 0.9,
        http_client=None,
    ):
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=30.0,
            max_retries=1,
            http_client=http_client,
        )

    async def complete(self, system: str, user: str) -> Completion:
        """Run one chat completion and return the stripped text."""
        start = time.time()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                top_p=self.top_p,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            )
        except openai.APIStatusError as e:
            raise GenerationError(f"OpenAI {e.status_code}: {e.message}") from e
        except openai.APIError as e:
            raise GenerationError(f"OpenAI error: {e}") from e

        latency_ms = int((time.time() - start) * 1000)

        text = ""
        if response.choices:
            text = (response.choices[0].message.content or "").strip()
        usage = response.usage.model_dump() if response.usage else {}

        return Completion(text=text, usage=usage, latency_ms=latency_ms)
