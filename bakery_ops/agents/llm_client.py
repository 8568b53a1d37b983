#!/usr/bin/env python3
"""
Chat-completion client for the bakery agents.

Posts OpenAI-compatible chat-completion requests with tool definitions.
"""

import requests
from typing import Any, Dict, List, Optional
from ..app.config import Config
from ..utils.logger import get_logger

logger = get_logger()


class LLMUnavailable(Exception):
    """Raised when the chat-completion API cannot produce a reply."""


class ChatCompletionClient:
    """Client for OpenAI chat completions with function calling."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key or Config.OPENAI_API_KEY
        self.model = model or Config.OPENAI_MODEL
        self.api_base_url = Config.OPENAI_API_BASE_URL

        if not self.api_key:
            raise ValueError("OpenAI API key is required")

    def complete(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Run one chat-completion round.

        Args:
            messages: Conversation so far, system prompt first
            tools: Function definitions the model may call

        Returns:
            The assistant message (``content`` and optional ``tool_calls``)
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": messages,
            "max_completion_tokens": Config.LLM_MAX_TOKENS,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"

        try:
            response = requests.post(self.api_base_url, headers=headers, json=payload, timeout=Config.LLM_TIMEOUT)
            if response.status_code != 200:
                logger.error(f"Chat completion error {response.status_code}: {response.text[:500]}")
                response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise LLMUnavailable(f"Chat completion request failed: {e}") from e

        choices = data.get("choices") or []
        if not choices or "message" not in choices[0]:
            raise LLMUnavailable(f"Unexpected chat completion response: {data}")
        return choices[0]["message"]
