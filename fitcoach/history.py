"""
CONVERSATION HISTORY CONDENSER
==============================

The server keeps no history; clients send the recent turns with each request.
condense_history() shrinks them before sending: only the last 3 messages, user
text cut to 100 characters, assistant text reduced to the workout-relevant
lines (joined with " | "). Assistant messages with nothing relevant are dropped.
"""

import re
from typing import List, Optional

from fitcoach.models import ChatMessage

RECENT_MESSAGES = 3
MAX_USER_CHARS = 100
MAX_LINE_CHARS = 80

_KEYWORDS = ("workout", "exercises", "muscle", "equipment", "minute", "duration", "sets", "reps", "##")
_NUMBERED = re.compile(r"^\d+\.")


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _key_lines(content: str) -> Optional[str]:
    lines = []
    for line in content.split("\n"):
        line = line.strip()
        if any(keyword in line for keyword in _KEYWORDS) or _NUMBERED.match(line):
            lines.append(_truncate(line, MAX_LINE_CHARS))
    return " | ".join(lines) if lines else None


def condense_history(messages: Optional[List[ChatMessage]]) -> List[ChatMessage]:
    condensed: List[ChatMessage] = []
    for message in (messages or [])[-RECENT_MESSAGES:]:
        if message.role == "user":
            condensed.append(message.model_copy(update={"content": _truncate(message.content, MAX_USER_CHARS)}))
        elif message.role == "assistant":
            summary = _key_lines(message.content)
            if summary:
                condensed.append(message.model_copy(update={"content": summary}))
    return condensed
