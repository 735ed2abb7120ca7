"""
LLM Engine - Model factory for the strategy explainer.
Supports OpenAI-compatible cloud APIs and local Ollama-style servers.
Uses centralized configuration from config.py.
"""

from typing import Literal, Optional
from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, SystemMessage
import logging

from config import get_settings
from prompts import get_strategy_system_prompt

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Factory class for creating LLM clients with different backends.
    Uses centralized configuration from config.py.
    """

    def __init__(
        self,
        mode: Literal["cloud", "local"] = "cloud",
        model_name: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None
    ):
        """
        Initialize the LLM client.

        Args:
            mode: "cloud" for OpenAI-compatible APIs, "local" for Ollama/local server
            model_name: Model name (e.g., "gpt-4o-mini", "deepseek-chat")
            base_url: Base URL for API
            api_key: API key
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
        """
        self.mode = mode
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

        self.llm = self._create_llm(base_url, api_key)

    def _create_llm(self, base_url: Optional[str], api_key: Optional[str]) -> ChatOpenAI:
        """Create a ChatOpenAI instance based on the mode."""
        settings = get_settings()

        if self.mode == "cloud":
            url = base_url or settings.openai_base_url
            model = self.model_name or settings.openai_model
            key = api_key or settings.openai_api_key

            if not key:
                raise ValueError("API key not found. Set OPENAI_API_KEY environment variable.")
            if not model:
                raise ValueError("Model name not found. Set OPENAI_MODEL environment variable.")

            logger.info(f"Initializing Cloud LLM: {model} at {url or 'OpenAI official'}")
            return ChatOpenAI(
                model=model,
                api_key=key,
                base_url=url,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )

        elif self.mode == "local":
            model = self.model_name or settings.local_model
            url = base_url or settings.local_llm_url
            key = api_key or "ollama"

            logger.info(f"Initializing Local LLM: {model} at {url}")
            return ChatOpenAI(
                model=model,
                base_url=url,
                api_key=key,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        else:
            raise ValueError(f"Invalid mode: {self.mode}. Must be 'cloud' or 'local'.")

    def invoke(self, message: str, system_message: Optional[str] = None) -> str:
        """
        Invoke the LLM with a message.

        Args:
            message: User message
            system_message: Optional custom system message (defaults to the
                strategy educator prompt)

        Returns:
            LLM response as string
        """
        messages = [
            SystemMessage(content=system_message or get_strategy_system_prompt()),
            HumanMessage(content=message),
        ]
        response = self.llm.invoke(messages)
        return response.content


def create_default_client() -> LLMClient:
    """Cloud client when OpenAI is configured, local client otherwise."""
    settings = get_settings()
    mode = "cloud" if settings.is_openai_configured else "local"
    return LLMClient(mode=mode)
