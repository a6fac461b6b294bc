"""LLM selector generation for the last-resort extraction tier."""

from abc import ABC, abstractmethod
from typing import Optional
import logging
import os
import re

from homescrape.errors import GenerativeFallbackFailure

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert web scraper. Analyze the HTML and provide a CSS selector "
    "to extract the requested data. Return only the CSS selector, nothing else."
)

PAGE_CONTEXTS = {
    "search": "real estate search results page",
    "detail": "real estate property detail page",
}

# ```css ... ``` or ``` ... ``` wrappers some models add despite instructions
CODE_FENCE_PATTERN = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


class BaseSelectorGenerator(ABC):
    """
    Proposes a CSS selector when every static selector has failed.

    Implementations make a single attempt per call and never retry; the
    caller owns timeouts at a higher level and treats any failure as
    "no result".
    """

    def __init__(self):
        # Statistics
        self._total_requests = 0
        self._failed_requests = 0

    @abstractmethod
    def _generate(self, description: str, document_type: str, excerpt: str) -> str:
        """Return the raw generator response."""
        pass

    def suggest_selector(
        self,
        description: str,
        document_type: str,
        excerpt: str,
    ) -> Optional[str]:
        """
        Ask for one candidate selector.

        Args:
            description: What the field means ("number of bedrooms")
            document_type: "search" or "detail"
            excerpt: Bounded prefix of the document markup

        Returns:
            A cleaned selector string

        Raises:
            GenerativeFallbackFailure: On any error or an empty response
        """
        document_type = getattr(document_type, "value", document_type)
        self._total_requests += 1
        try:
            raw = self._generate(description, document_type, excerpt)
        except GenerativeFallbackFailure:
            self._failed_requests += 1
            raise
        except Exception as e:
            self._failed_requests += 1
            raise GenerativeFallbackFailure(f"Selector generation failed: {e}") from e

        selector = parse_selector(raw)
        if not selector:
            self._failed_requests += 1
            raise GenerativeFallbackFailure("Selector generator returned an empty response")
        return selector

    def stats(self) -> dict:
        """Get request statistics."""
        return {
            "total_requests": self._total_requests,
            "failed_requests": self._failed_requests,
        }


def parse_selector(response: Optional[str]) -> Optional[str]:
    """
    Clean a model response down to a bare selector.

    Strips code fences, surrounding quotes or backticks, and anything after
    the first non-empty line.
    """
    if not response:
        return None
    text = CODE_FENCE_PATTERN.sub("", response.strip())
    for line in text.splitlines():
        line = line.strip().strip("`").strip()
        if len(line) >= 2 and line[0] == line[-1] and line[0] in "\"'":
            line = line[1:-1].strip()
        if line:
            return line
    return None


def build_selector_prompt(description: str, document_type: str, excerpt: str) -> str:
    """Build the user prompt for selector generation."""
    context = PAGE_CONTEXTS.get(document_type, f"{document_type} page")
    return (
        f"Find a CSS selector for {description} in this {context} HTML:\n\n"
        f"{excerpt}\n\n"
        f"Return only the CSS selector that would find {description}."
    )


class LLMSelectorGenerator(BaseSelectorGenerator):
    """Selector generator backed by an OpenAI or Anthropic chat model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4",
        provider: str = "openai",
        max_tokens: int = 100,
        timeout: float = 30.0,
        base_url: Optional[str] = None,
    ):
        """Initialize the generator.

        Args:
            api_key: API key for the LLM provider
            model: Model name to use
            provider: LLM provider (openai or anthropic)
            max_tokens: Maximum tokens for the response (a selector is short)
            timeout: Request timeout in seconds
            base_url: Optional API base URL (OpenAI-compatible gateways)
        """
        super().__init__()
        self.api_key = api_key or os.getenv("LLM_API_KEY")
        self.model = model
        self.provider = provider
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.base_url = base_url

        if not self.api_key:
            raise ValueError(
                "API key must be provided or set in LLM_API_KEY environment variable"
            )

    def _generate(self, description: str, document_type: str, excerpt: str) -> str:
        prompt = build_selector_prompt(description, document_type, excerpt)
        response = self._call_llm(prompt)
        logger.debug(f"LLM proposed selector for {description!r}: {response!r}")
        return response

    def _call_llm(self, prompt: str) -> str:
        """Call the configured provider once.

        Args:
            prompt: The prompt to send

        Returns:
            LLM response text
        """
        if self.provider == "openai":
            return self._call_openai(prompt)
        elif self.provider == "anthropic":
            return self._call_anthropic(prompt)
        else:
            raise ValueError(f"Unsupported provider: {self.provider}")

    def _call_openai(self, prompt: str) -> str:
        """Call OpenAI API.

        Args:
            prompt: The prompt to send

        Returns:
            Response text
        """
        try:
            import openai
        except ImportError:
            raise ImportError(
                "openai package not installed. Install with: pip install openai"
            )

        client = openai.OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )
        response = client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content

    def _call_anthropic(self, prompt: str) -> str:
        """Call Anthropic API.

        Args:
            prompt: The prompt to send

        Returns:
            Response text
        """
        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic package not installed. Install with: pip install anthropic"
            )

        client = anthropic.Anthropic(
            api_key=self.api_key,
            timeout=self.timeout,
            max_retries=0,
        )
        response = client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.content[0].text


class MockSelectorGenerator(BaseSelectorGenerator):
    """
    Deterministic generator for testing.

    Returns a fixed selector per field description (or a default), or
    raises when configured to fail. Every call is recorded.
    """

    def __init__(
        self,
        selectors: Optional[dict[str, str]] = None,
        default: Optional[str] = None,
        fail: bool = False,
    ):
        super().__init__()
        self.selectors = selectors or {}
        self.default = default
        self.fail = fail
        self.calls: list[tuple[str, str, str]] = []

    def _generate(self, description: str, document_type: str, excerpt: str) -> str:
        self.calls.append((description, document_type, excerpt))
        if self.fail:
            raise GenerativeFallbackFailure("Mock generator configured to fail")
        return self.selectors.get(description, self.default) or ""


def get_generator(
    provider: str = "openai",
    api_key: Optional[str] = None,
    **kwargs,
) -> BaseSelectorGenerator:
    """
    Get a selector generator instance.

    Args:
        provider: openai, anthropic, or mock
        api_key: API key for the provider
        **kwargs: Additional generator options

    Returns:
        Configured generator instance
    """
    provider = provider.lower()

    if provider in ("openai", "anthropic"):
        return LLMSelectorGenerator(api_key=api_key, provider=provider, **kwargs)
    elif provider == "mock":
        # LLM transport options (model, timeout, ...) do not apply to the mock
        mock_options = {k: v for k, v in kwargs.items() if k in ("selectors", "default", "fail")}
        return MockSelectorGenerator(**mock_options)
    else:
        raise ValueError(f"Unknown selector generator provider: {provider}")
