"""Assistant pipeline: one chat session with tool calling.

The session is built lazily on the first message so the system prompt carries
the current date. ``reset_session`` clears the conversation; the next message
starts a fresh one.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from nekotasks.assistant.prompt import build_system_prompt
from nekotasks.assistant.tools import TOOL_SCHEMAS, ToolExecutionContext, execute_tool
from nekotasks.integrations.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

# Upper bound on model round trips per user message
MAX_TOOL_ROUNDS = 5


class AssistantPipeline:
    """Runs user messages through the model and executes requested tools."""

    def __init__(self, client: Optional[OpenAIClient] = None, max_tool_rounds: int = MAX_TOOL_ROUNDS):
        self.client = client or OpenAIClient()
        self.max_tool_rounds = max_tool_rounds
        self.messages: List[Dict[str, Any]] = []

    def is_available(self) -> bool:
        return self.client.is_available()

    def reset_session(self) -> None:
        self.messages = []

    def send(self, message: str, db: Session) -> Dict[str, Any]:
        """Send a user message and return the reply plus the items created.

        Rows staged by tools are committed once, after the model has finished
        the turn. If the turn fails, staged rows are rolled back.

        Returns:
            Dict with ``reply`` (assistant text) and ``created`` (descriptions of created items)

        Raises:
            AssistantUnavailableError: If the model cannot be reached
        """
        history_len = len(self.messages)
        if not self.messages:
            self.messages.append({"role": "system", "content": build_system_prompt()})
        self.messages.append({"role": "user", "content": message})

        context = ToolExecutionContext(db=db)
        try:
            reply = self._run_turn(context)
        except Exception:
            db.rollback()
            del self.messages[history_len:]
            raise

        if context.created_items:
            try:
                db.commit()
                logger.info(f"Assistant created {len(context.created_items)} item(s)")
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to save assistant-created items: {type(e).__name__}: {str(e)}")
                raise

        return {"reply": reply, "created": list(context.created_items)}

    def _run_turn(self, context: ToolExecutionContext) -> str:
        for _ in range(self.max_tool_rounds):
            response = self.client.complete(self.messages, TOOL_SCHEMAS)
            tool_calls = getattr(response, "tool_calls", None) or []

            if not tool_calls:
                reply = (response.content or "").strip()
                self.messages.append({"role": "assistant", "content": reply})
                return reply

            self.messages.append({
                "role": "assistant",
                "content": response.content,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.function.name, "arguments": call.function.arguments},
                    }
                    for call in tool_calls
                ],
            })
            for call in tool_calls:
                result = execute_tool(call.function.name, call.function.arguments, context)
                logger.debug(f"Tool {call.function.name} -> {result}")
                self.messages.append({"role": "tool", "tool_call_id": call.id, "content": result})

        logger.warning(f"Assistant did not finish within {self.max_tool_rounds} tool rounds")
        reply = "Done." if context.created_items else "Sorry, I couldn't complete that request."
        self.messages.append({"role": "assistant", "content": reply})
        return reply
