"""
INTENT CLASSIFIER MODULE
========================

Asks a fast, low-temperature model to classify the user's message and extract
workout parameters, then parses the JSON out of its free-text reply.

FLOW:
  1. [INTENT_DETECTION_PROMPT, ...last 3 history messages, user message]
  2. ModelGateway.chat() with INTENT_MODEL, temperature 0.1
  3. parse_intent_response(): strip code fences, take the first balanced JSON
     object, require an "intent" object and a boolean "shouldCallTools"
  4. apply_exercise_count(): numExercises = floor(duration / 4), else 5

FAIL CLOSED:
  A model failure or an unparsable reply yields default_intent(), whose
  guardrail violation is true. An ambiguous classification never proceeds
  to unconstrained generation.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from config import DEFAULT_NUM_EXERCISES, INTENT_HISTORY_WINDOW, INTENT_MODEL, MINUTES_PER_EXERCISE
from fitcoach.models import (
    ChatMessage,
    ChatOptions,
    ErrorCode,
    ExtractedParams,
    Failure,
    Guardrail,
    IntentDetectionResponse,
    Result,
    WorkoutIntent,
    failure,
    is_failure,
)
from fitcoach.prompts import INTENT_DETECTION_PROMPT

logger = logging.getLogger("fitcoach")

_FENCE = re.compile(r"```(?:json|JSON)?")


# ==============================================================================
# RESPONSE PARSER
# ==============================================================================

def find_json_object(text: str) -> Optional[str]:
    """Return the first balanced {...} block in text (braces inside strings ignored)."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        # Unbalanced from this brace on; try the next one.
        start = text.find("{", start + 1)
    return None


def lenient_params(raw: Any) -> Tuple[ExtractedParams, List[str]]:
    """
    Validate extracted params one field at a time. Fields that still fail after
    coercion are dropped (and returned by name) so one bad value does not sink
    the classification.
    """
    if not isinstance(raw, dict):
        return ExtractedParams(), ["extractedParams"]

    kept: Dict[str, Any] = {}
    dropped: List[str] = []
    for key, value in raw.items():
        try:
            ExtractedParams.model_validate({key: value})
        except ValidationError:
            dropped.append(key)
            continue
        kept[key] = value
    return ExtractedParams.model_validate(kept), dropped


def parse_intent_response(text: Optional[str]) -> Result[IntentDetectionResponse]:
    """
    Parse the classifier's reply into an IntentDetectionResponse.

    Returns a Failure (code INTENT_DETECTION_ERROR) when no JSON object is found,
    the JSON is invalid, "intent" is not an object, "shouldCallTools" is not a
    boolean, or the intent type/confidence do not validate. Unusable extracted
    params are dropped, not fatal. A missing guardrail means no violation.
    """
    if not text or not text.strip():
        return failure("Empty intent response", ErrorCode.INTENT_DETECTION_ERROR)

    candidate = find_json_object(_FENCE.sub("", text))
    if candidate is None:
        return failure("No JSON object in intent response", ErrorCode.INTENT_DETECTION_ERROR, text)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        return failure("Invalid JSON in intent response", ErrorCode.INTENT_DETECTION_ERROR, str(e))

    if not isinstance(data.get("intent"), dict) or not isinstance(data.get("shouldCallTools"), bool):
        return failure("Intent response is missing intent or shouldCallTools", ErrorCode.INTENT_DETECTION_ERROR, data)

    guardrail = data.get("guardrail")
    if not isinstance(guardrail, dict):
        guardrail = {"violation": False, "reason": ""}

    intent = dict(data["intent"])
    if intent.get("extractedParams") is not None:
        intent["extractedParams"], dropped = lenient_params(intent["extractedParams"])
        if dropped:
            logger.info("Dropped unusable extracted params: %s", dropped)
    missing = intent.get("missingParams")
    if isinstance(missing, str):
        intent["missingParams"] = [missing]
    elif missing is not None and not isinstance(missing, list):
        intent.pop("missingParams")

    try:
        return IntentDetectionResponse.model_validate({
            "intent": intent,
            "shouldCallTools": data["shouldCallTools"],
            "guardrail": guardrail,
        })
    except ValidationError as e:
        return failure("Intent response failed validation", ErrorCode.INTENT_DETECTION_ERROR, str(e))


def apply_exercise_count(intent: WorkoutIntent) -> WorkoutIntent:
    """numExercises = floor(duration / 4) when a duration is known, else 5 if unset."""
    params = intent.extracted_params or ExtractedParams()
    if params.duration is not None:
        count = params.duration // MINUTES_PER_EXERCISE
    elif params.num_exercises is None:
        count = DEFAULT_NUM_EXERCISES
    else:
        count = params.num_exercises
    return intent.model_copy(update={"extracted_params": params.model_copy(update={"num_exercises": count})})


def default_intent(reason: str = "Could not parse intent, defaulting to rejection") -> IntentDetectionResponse:
    return IntentDetectionResponse(
        intent=WorkoutIntent(type="workout_generation", confidence=0.5),
        should_call_tools=False,
        guardrail=Guardrail(violation=True, reason=reason),
    )


# ==============================================================================
# INTENT SERVICE
# ==============================================================================

class IntentService:
    def __init__(self, model_gateway, model: str = INTENT_MODEL, history_window: int = INTENT_HISTORY_WINDOW):
        self.model_gateway = model_gateway
        self.model = model
        self.history_window = history_window

    def detect_intent(
        self,
        message: str,
        conversation_history: Optional[List[ChatMessage]] = None,
    ) -> Result[IntentDetectionResponse]:
        try:
            history = list(conversation_history or [])
            window = history[-self.history_window:] if self.history_window > 0 else []
            messages = [
                ChatMessage(role="system", content=INTENT_DETECTION_PROMPT),
                *window,
                ChatMessage(role="user", content=message),
            ]

            response = self.model_gateway.chat(
                messages,
                ChatOptions(model=self.model, temperature=0.1, max_tokens=500),
            )
            if is_failure(response):
                logger.warning("Intent model failed (%s): %s", response.code, response.error)
                return default_intent()

            parsed = parse_intent_response(response.content)
            if isinstance(parsed, Failure):
                logger.warning("Falling back to default intent: %s | raw: %s", parsed.error, response.content)
                return default_intent()

            return parsed.model_copy(update={"intent": apply_exercise_count(parsed.intent)})
        except Exception as e:
            logger.error("Intent detection error: %s", e, exc_info=True)
            return failure("Intent detection failed", ErrorCode.INTENT_DETECTION_ERROR, str(e))
