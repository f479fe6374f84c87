"""OpenAI API integration for NekoTasks.

This module wraps the chat completions endpoint with tool calling, used by the
assistant to turn natural-language requests into tasks, events and labels.
"""

import os
import logging
from typing import Any, Dict, List, Optional
from openai import OpenAI, APIError
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Default chat model; override with OPENAI_MODEL
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class AssistantUnavailableError(RuntimeError):
    """Raised when the assistant cannot reach a model (no key, quota, API failure)."""


class OpenAIClient:
    """Client for OpenAI chat completions with tool calling."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY environment variable.
            model: Chat model. If None, reads OPENAI_MODEL or uses the default.

        Note:
            If no API key is available the client still initializes and reports
            itself unavailable. This allows graceful degradation.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL)
        self.client = None

        if self.api_key:
            self.client = OpenAI(api_key=self.api_key)
        else:
            logger.warning("OPENAI_API_KEY not found in environment. The assistant will not be available.")

    def is_available(self) -> bool:
        return self.client is not None

    def complete(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]] = None):
        """Run one chat completion turn.

        Args:
            messages: Conversation so far, in chat completions format
            tools: Function tool schemas the model may call

        Returns:
            The response message (``content`` and optional ``tool_calls``)

        Raises:
            AssistantUnavailableError: If the client is not configured or the API call fails
        """
        if not self.client:
            raise AssistantUnavailableError("OpenAI API key is not configured")

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.3,  # Tool arguments should be stable
        }
        if tools:
            kwargs["tools"] = tools

        try:
            response = self.client.chat.completions.create(**kwargs)
        except APIError as e:
            error_code = getattr(e, 'code', None)
            status_code = getattr(e, 'status_code', None)

            if error_code == 'insufficient_quota':
                logger.warning("OpenAI API quota insufficient. Please check billing/payment method in OpenAI dashboard.")
            elif status_code == 429:
                logger.warning("OpenAI API rate limit exceeded. Please wait before retrying.")
            else:
                logger.error(f"OpenAI API error: {status_code or 'unknown'} ({error_code or 'unknown'})")

            # Don't log full error message as it might contain sensitive info
            raise AssistantUnavailableError("The assistant is temporarily unavailable") from e

        message = response.choices[0].message
        logger.debug(f"OpenAI returned {len(message.tool_calls or [])} tool call(s)")
        return message
