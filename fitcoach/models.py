"""
DATA MODELS MODULE
==================

This file defines the Pydantic models used for API requests, responses, and
the values passed between pipeline stages. FastAPI uses them to validate
incoming JSON and to serialize responses. Field names are snake_case in Python
and camelCase on the wire (populate_by_name accepts both).

MODELS:
  ChatMessage           - One message in a conversation (role + content).
  ChatRequest           - Body of POST /chat and POST /chat/stream.
  ChatResponse          - The coached reply returned by both chat endpoints.
  WorkoutIntent         - Classified intent plus extracted workout parameters.
  IntentDetectionResponse - Intent + shouldCallTools + guardrail decision.
  ToolCall / ToolResult - Tool invocation emitted by the model and its outcome.
  ModelResponse         - Normalized reply from the model gateway.
  Failure               - Error half of Result[T] = Union[T, Failure].
  StreamEvent           - One staged event of POST /chat/stream.
"""

import math
import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from config import MAX_MESSAGE_LENGTH


class CamelModel(BaseModel):
    """Base model: camelCase JSON keys, snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==============================================================================
# RESULT / ERRORS
# ==============================================================================

class ErrorCode(str, Enum):
    MODEL_NOT_SUPPORTED = "MODEL_NOT_SUPPORTED"
    API_KEY_MISSING = "API_KEY_MISSING"
    NO_RESPONSE = "NO_RESPONSE"
    MODEL_ERROR = "MODEL_ERROR"
    INTENT_DETECTION_ERROR = "INTENT_DETECTION_ERROR"
    WORKOUT_GENERATION_ERROR = "WORKOUT_GENERATION_ERROR"
    MODELS_ERROR = "MODELS_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class Failure(BaseModel):
    """
    Failure half of a Result. Stages return this instead of raising for
    expected failure modes, so the caller decides whether to recover.
    """
    error: str
    code: Optional[str] = None
    details: Optional[Any] = None


T = TypeVar("T")
Result = Union[T, Failure]


def failure(error: str, code: Optional[ErrorCode] = None, details: Any = None) -> Failure:
    return Failure(error=error, code=code.value if code else None, details=details)


def is_failure(value: Any) -> bool:
    return isinstance(value, Failure)


# ==============================================================================
# MESSAGE AND REQUEST/RESPONSE MODELS
# ==============================================================================

Role = Literal["system", "user", "assistant", "tool"]


class ChatMessage(CamelModel):
    """
    A single message in a conversation. Order defines chronology; the
    orchestrator only appends, never edits existing entries.
    """
    role: Role
    content: str
    tool_call_id: Optional[str] = None  # Only for role == "tool".


class ChatRequest(CamelModel):
    """
    Request body for POST /chat and POST /chat/stream.

    - message: Required, 1-2000 characters.
    - model: Optional logical model name (see GET /chat/models).
    - conversation_history: Optional caller-condensed prior turns.
    - session_id: Optional. If omitted, the server mints one and returns it.
      The server keeps no history for it; echo it on the next request.
    """
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    model: Optional[str] = None
    conversation_history: Optional[List[ChatMessage]] = None
    session_id: Optional[str] = None


class ChatResponse(CamelModel):
    """
    The terminal artifact of one orchestration run. Never stored.

    detailed_exercises holds ExerciseDB records passed through as-is, with
    sets/reps/rest merged in.
    """
    coach_talk: str = Field(..., min_length=1)
    detailed_exercises: Optional[List[Dict[str, Any]]] = None
    model: str
    session_id: str
    requires_clarification: Optional[bool] = None
    clarification_question: Optional[str] = None
    timestamp: Optional[str] = None


class AvailableModels(CamelModel):
    models: List[str]
    default_model: str
    model_info: Optional[Dict[str, Dict[str, Any]]] = None


# ==============================================================================
# INTENT MODELS
# ==============================================================================

IntentType = Literal["workout_generation", "exercise_lookup", "exercise_variation", "clarification_needed"]

_LEADING_NUMBER = re.compile(r"\s*[-+]?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?")


class ExtractedParams(CamelModel):
    target_muscles: Optional[List[str]] = None
    body_parts: Optional[List[str]] = None
    equipment: Optional[List[str]] = None
    duration: Optional[int] = None
    intensity: Optional[str] = None
    num_exercises: Optional[int] = None
    avoid_muscles: Optional[List[str]] = None
    injury_description: Optional[str] = None
    is_variation_request: Optional[bool] = None
    previous_exercise_context: Optional[str] = None
    search: Optional[str] = None

    @field_validator("target_muscles", "body_parts", "equipment", "avoid_muscles", mode="before")
    @classmethod
    def _as_list(cls, value):
        # "chest" is read as ["chest"].
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("duration", "num_exercises", mode="before")
    @classmethod
    def _whole_number(cls, value):
        # Models sometimes answer 20.0, "20" or "20 minutes".
        if value is None or isinstance(value, (bool, int)):
            return value
        if isinstance(value, str):
            match = _LEADING_NUMBER.match(value)
            if not match:
                raise ValueError(f"no number in {value!r}")
            value = float(match.group(0))
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("number must be finite")
            return int(value)
        return value


class WorkoutIntent(CamelModel):
    type: IntentType
    confidence: float = Field(..., ge=0.0, le=1.0)
    extracted_params: Optional[ExtractedParams] = None
    missing_params: Optional[List[str]] = None


class Guardrail(CamelModel):
    violation: bool
    reason: str = ""


class IntentDetectionResponse(CamelModel):
    intent: WorkoutIntent
    should_call_tools: bool
    guardrail: Guardrail


# ==============================================================================
# MODEL GATEWAY / TOOL MODELS
# ==============================================================================

class ToolFunction(CamelModel):
    name: str
    arguments: str  # Raw JSON text, parsed by the tool orchestrator.


class ToolCall(CamelModel):
    id: str
    type: Literal["function"] = "function"
    function: ToolFunction


class ToolResult(CamelModel):
    tool_call_id: str
    result: Any
    ignored_filters: Optional[Dict[str, List[str]]] = None


class Usage(CamelModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ModelResponse(CamelModel):
    content: str
    model: str
    tool_calls: Optional[List[ToolCall]] = None
    usage: Optional[Usage] = None


class ChatOptions(CamelModel):
    """Options for one ModelGateway.chat call. None means provider default."""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    model: Optional[str] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None


class WorkoutQuery(CamelModel):
    """Arguments of the get_workout_exercises tool."""
    target_muscles: Optional[List[str]] = None
    body_parts: Optional[List[str]] = None
    equipment: Optional[List[str]] = None
    search: Optional[str] = None
    num_exercises: Optional[int] = None
    is_variation_request: Optional[bool] = None
    previous_exercise_context: Optional[str] = None


# ==============================================================================
# STREAMING
# ==============================================================================

StreamEventType = Literal["intent_detected", "tools_calling", "tools_executed", "final_response", "error"]


class StreamEvent(CamelModel):
    type: StreamEventType
    data: Any = None
    session_id: str
