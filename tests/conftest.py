"""
Shared pytest fixtures and fakes for the coaching pipeline tests.

Services take their collaborators through constructors, so tests hand them
small fakes instead of patching network clients:

  FakeGateway        - scripted ModelGateway (records every chat() call)
  FakeExerciseClient - canned ExerciseDB results (records every lookup)
"""

import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from config import INTENT_MODEL
from fitcoach.models import ChatMessage, ChatOptions, ModelResponse, ToolCall, ToolFunction, WorkoutQuery
from fitcoach.services.exercise_service import ExerciseLookup


# ===== BUILDERS =====

def make_exercise(index: int) -> Dict[str, Any]:
    return {
        "exerciseId": f"ex{index:04d}",
        "name": f"exercise {index}",
        "gifUrl": f"https://static.exercisedb.dev/media/ex{index:04d}.gif",
        "targetMuscles": ["pectorals"],
        "bodyParts": ["chest"],
        "equipments": ["dumbbell"],
        "secondaryMuscles": ["triceps"],
        "instructions": [f"Step:1 do exercise {index}"],
    }


def intent_reply(
    intent_type: str = "workout_generation",
    params: Optional[Dict[str, Any]] = None,
    violation: bool = False,
    missing: Optional[List[str]] = None,
) -> str:
    """A classifier reply the way models usually produce it: fenced JSON."""
    payload = {
        "intent": {"type": intent_type, "confidence": 0.95, "extractedParams": params or {}},
        "shouldCallTools": not violation,
        "guardrail": {"violation": violation, "reason": "Not fitness-related" if violation else ""},
    }
    if missing is not None:
        payload["intent"]["missingParams"] = missing
    return "```json\n" + json.dumps(payload) + "\n```"


def tool_call(arguments: str, call_id: str = "call_1", name: str = "get_workout_exercises") -> ToolCall:
    return ToolCall(id=call_id, function=ToolFunction(name=name, arguments=arguments))


def model_response(content: str = "", tool_calls: Optional[List[ToolCall]] = None, model: str = "test-model") -> ModelResponse:
    return ModelResponse(content=content, model=model, tool_calls=tool_calls)


# ===== FAKES =====

class FakeGateway:
    """
    Stand-in for ModelGateway.

    Intent classification calls (options.model == INTENT_MODEL) are answered
    with intent_response; every other call pops the next entry of responses.
    """

    def __init__(self, intent_response=None, responses=None, handler: Optional[Callable] = None):
        self.intent_response = intent_response
        self.responses = list(responses or [])
        self.handler = handler
        self.calls: List[tuple] = []

    def chat(self, messages: List[ChatMessage], options: Optional[ChatOptions] = None):
        options = options or ChatOptions()
        self.calls.append((list(messages), options))
        if self.handler is not None:
            return self.handler(messages, options)
        if options.model == INTENT_MODEL:
            return self.intent_response
        return self.responses.pop(0)

    @property
    def generation_calls(self) -> List[tuple]:
        return [call for call in self.calls if call[1].model != INTENT_MODEL]


class FakeExerciseClient:
    def __init__(self, exercises=None, ignored=None, error: Optional[Exception] = None):
        self.exercises = exercises if exercises is not None else [make_exercise(i) for i in range(8)]
        self.ignored = ignored or {}
        self.error = error
        self.queries: List[WorkoutQuery] = []

    def lookup(self, params: WorkoutQuery) -> ExerciseLookup:
        self.queries.append(params)
        if self.error is not None:
            raise self.error
        limit = params.num_exercises or 8
        return ExerciseLookup(exercises=self.exercises[:limit], ignored_filters=dict(self.ignored))

    def get_workout_exercises(self, params: WorkoutQuery):
        return self.lookup(params).exercises


# ===== FIXTURES =====

@pytest.fixture
def exercises() -> List[Dict[str, Any]]:
    return [make_exercise(i) for i in range(12)]


@pytest.fixture
def sample_history() -> List[ChatMessage]:
    return [
        ChatMessage(role="user", content="hi coach"),
        ChatMessage(role="assistant", content="Hello! What do you want to train?"),
        ChatMessage(role="user", content="15 min abs"),
        ChatMessage(role="assistant", content="## Abs workout | 3 exercises"),
        ChatMessage(role="user", content="thanks"),
    ]
