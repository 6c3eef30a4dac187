"""
CHAT SERVICE MODULE
===================

Top-level coordinator of one coaching turn. Stateless across requests: all
conversation state arrives in the ChatRequest.

STATES:
  START -> INTENT_CHECK -> GUARDRAIL_REJECTED | CLARIFY | GENERATE -> DONE

  - INTENT_CHECK: IntentService.detect_intent(). A Failure here goes straight
    to the fallback reply (model "fallback").
  - GUARDRAIL_REJECTED: guardrail.violation is true; fixed policy text, model "guardrail".
  - CLARIFY: intent type clarification_needed; bullet list of the missing
    parameters, model "clarification".
  - GENERATE: two-pass generation.
      1. [structured workout prompt, ...history, user message], tools advertised,
         tool_choice auto, temperature 0.7, max tokens 1000.
      2. With tool calls: execute them, append one assistant message per result
         (result JSON verbatim), then call again over
         build_final_messages(messages, final prompt) with no tools,
         temperature 0.5, max tokens 800.
      3. Without tool calls: the first reply is the answer.
    Model or tool failures surface as a Failure (MODEL_ERROR /
    WORKOUT_GENERATION_ERROR), not as fallback text.

STREAMING:
  stream_chat() yields StreamEvents (intent_detected, tools_calling,
  tools_executed, final_response, error). chat() runs the same generator and
  returns its final ChatResponse or Failure.
"""

import json
import logging
import random
import string
import time
from typing import Any, Dict, Iterator, List, Optional

from config import DEFAULT_INTENSITY, WORKOUT_METADATA
from fitcoach.models import (
    ChatMessage,
    ChatOptions,
    ChatRequest,
    ChatResponse,
    ErrorCode,
    Failure,
    Result,
    StreamEvent,
    ToolResult,
    WorkoutIntent,
    failure,
    is_failure,
)
from fitcoach.prompts import (
    FALLBACK_RESPONSE_MESSAGE,
    GUARDRAIL_VIOLATION_MESSAGE,
    build_clarification_request,
    build_final_response_prompt,
    build_structured_workout_prompt,
)
from fitcoach.utils.time_info import get_timestamp

logger = logging.getLogger("fitcoach")

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id() -> str:
    """session_<epoch millis>_<7 lowercase alphanumerics>"""
    suffix = "".join(random.choice(_SUFFIX_ALPHABET) for _ in range(7))
    return f"session_{int(time.time() * 1000)}_{suffix}"


def build_final_messages(messages: List[ChatMessage], system_prompt: str) -> List[ChatMessage]:
    """
    Messages for the second generation pass: the leading system message of the
    first pass is replaced by system_prompt; everything after it (history, user
    message, tool result messages) is kept in order. The input is not modified.
    """
    rest = messages[1:] if messages and messages[0].role == "system" else list(messages)
    return [ChatMessage(role="system", content=system_prompt), *rest]


def tool_result_message(tool_result: ToolResult) -> ChatMessage:
    content = "Here are the exercise results:\n" + json.dumps(tool_result.result, indent=2)
    if tool_result.ignored_filters:
        content += (
            "\n\nIgnored filters (not in the exercise database vocabulary):\n"
            + json.dumps(tool_result.ignored_filters, indent=2)
        )
    return ChatMessage(role="assistant", content=content)


def with_workout_metadata(exercise: Dict[str, Any], intensity: Optional[str]) -> Dict[str, Any]:
    """Copy of an exercise record with sets/reps/rest added where missing."""
    metadata = WORKOUT_METADATA.get((intensity or "").lower(), WORKOUT_METADATA[DEFAULT_INTENSITY])
    merged = dict(exercise)
    for key, value in metadata.items():
        merged.setdefault(key, value)
    return merged


class ChatService:
    def __init__(self, model_gateway, intent_service, tool_orchestrator):
        self.model_gateway = model_gateway
        self.intent_service = intent_service
        self.tool_orchestrator = tool_orchestrator

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chat(self, request: ChatRequest) -> Result[ChatResponse]:
        # The last event is always final_response (ChatResponse) or error (Failure).
        final: Optional[StreamEvent] = None
        for event in self.stream_chat(request):
            final = event
        return final.data

    def stream_chat(self, request: ChatRequest) -> Iterator[StreamEvent]:
        session_id = request.session_id or generate_session_id()

        try:
            detection = self.intent_service.detect_intent(request.message, request.conversation_history)
            if is_failure(detection):
                logger.error("Intent detection failed: %s", detection.error)
                yield self._event("final_response", self._fallback(session_id), session_id)
                return

            logger.info(
                "Intent detected: %s (confidence %.2f, guardrail %s)",
                detection.intent.type,
                detection.intent.confidence,
                detection.guardrail.violation,
            )
            yield self._event("intent_detected", detection, session_id)

            if detection.guardrail.violation:
                logger.info("Guardrail rejected message: %s", detection.guardrail.reason)
                yield self._event("final_response", self._guardrail(session_id), session_id)
                return

            if detection.intent.type == "clarification_needed":
                yield self._event("final_response", self._clarification(session_id, detection.intent), session_id)
                return

            yield from self._generate(request, session_id, detection.intent)
        except Exception as e:
            logger.error("Chat service error: %s", e, exc_info=True)
            yield self._event("final_response", self._fallback(session_id), session_id)

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def _generate(self, request: ChatRequest, session_id: str, intent: WorkoutIntent) -> Iterator[StreamEvent]:
        messages = [
            ChatMessage(role="system", content=build_structured_workout_prompt(intent)),
            *(request.conversation_history or []),
            ChatMessage(role="user", content=request.message),
        ]

        first = self.model_gateway.chat(messages, ChatOptions(
            temperature=0.7,
            max_tokens=1000,
            model=request.model,
            tools=self.tool_orchestrator.get_available_tools(),
            tool_choice="auto",
        ))
        if is_failure(first):
            yield self._event("error", self._model_failure(first), session_id)
            return

        if not first.tool_calls:
            yield self._event("final_response", ChatResponse(
                coach_talk=first.content,
                detailed_exercises=[],
                model=first.model,
                session_id=session_id,
                timestamp=get_timestamp(),
            ), session_id)
            return

        yield self._event("tools_calling", first.tool_calls, session_id)

        try:
            tool_results = self.tool_orchestrator.process_tool_calls(first.tool_calls)
        except Exception as e:
            logger.error("Tool processing failed: %s", e, exc_info=True)
            yield self._event(
                "error",
                failure("Failed to generate workout", ErrorCode.WORKOUT_GENERATION_ERROR, str(e)),
                session_id,
            )
            return

        exercises = self._collect_exercises(tool_results, intent)
        yield self._event("tools_executed", {
            "results": len(tool_results),
            "exercises": len(exercises),
            "errors": [r.tool_call_id for r in tool_results if isinstance(r.result, dict) and "error" in r.result],
        }, session_id)

        grounded = messages + [tool_result_message(result) for result in tool_results]
        final = self.model_gateway.chat(
            build_final_messages(grounded, build_final_response_prompt(intent)),
            ChatOptions(temperature=0.5, max_tokens=800, model=request.model),
        )
        if is_failure(final):
            yield self._event("error", self._model_failure(final), session_id)
            return

        yield self._event("final_response", ChatResponse(
            coach_talk=final.content,
            detailed_exercises=exercises,
            model=final.model,
            session_id=session_id,
            timestamp=get_timestamp(),
        ), session_id)

    def _collect_exercises(self, tool_results: List[ToolResult], intent: WorkoutIntent) -> List[Dict[str, Any]]:
        params = intent.extracted_params
        intensity = params.intensity if params else None
        exercises = [
            with_workout_metadata(exercise, intensity)
            for result in tool_results
            if isinstance(result.result, list)
            for exercise in result.result
        ]
        if params and params.num_exercises is not None:
            exercises = exercises[:max(params.num_exercises, 0)]
        return exercises

    def _guardrail(self, session_id: str) -> ChatResponse:
        return ChatResponse(
            coach_talk=GUARDRAIL_VIOLATION_MESSAGE,
            model="guardrail",
            session_id=session_id,
            timestamp=get_timestamp(),
        )

    def _clarification(self, session_id: str, intent: WorkoutIntent) -> ChatResponse:
        question = build_clarification_request(intent.missing_params)
        return ChatResponse(
            coach_talk=question,
            model="clarification",
            session_id=session_id,
            requires_clarification=True,
            clarification_question=question,
            timestamp=get_timestamp(),
        )

    def _fallback(self, session_id: str) -> ChatResponse:
        return ChatResponse(
            coach_talk=FALLBACK_RESPONSE_MESSAGE,
            model="fallback",
            session_id=session_id,
            timestamp=get_timestamp(),
        )

    @staticmethod
    def _model_failure(cause: Failure) -> Failure:
        logger.error("Workout generation model call failed (%s): %s", cause.code, cause.error)
        return failure(
            "Failed to generate workout",
            ErrorCode.MODEL_ERROR,
            {"cause": cause.code, "error": cause.error, "details": cause.details},
        )

    @staticmethod
    def _event(event_type: str, data: Any, session_id: str) -> StreamEvent:
        return StreamEvent(type=event_type, data=data, session_id=session_id)
