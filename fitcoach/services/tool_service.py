"""
TOOL ORCHESTRATOR MODULE
========================

Declares the tools advertised to the model and executes the tool calls the
model emits. Each call is handled on its own: bad JSON, invalid arguments or an
unknown tool name produce an inline {"error": ...} result for that call only,
and results come back in the same order as the calls.
"""

import json
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from fitcoach.models import ToolCall, ToolResult, WorkoutQuery
from fitcoach.services.exercise_service import ExerciseLookupClient

logger = logging.getLogger("fitcoach")

GET_WORKOUT_EXERCISES = "get_workout_exercises"

WORKOUT_EXERCISES_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": GET_WORKOUT_EXERCISES,
        "description": "Get filtered exercises for a workout plan using the ExerciseDB filter endpoint",
        "parameters": {
            "type": "object",
            "properties": {
                "targetMuscles": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of target muscle groups (e.g., ['chest', 'biceps', 'triceps'])",
                },
                "bodyParts": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of body parts (e.g., ['upper arms', 'chest', 'back'])",
                },
                "equipment": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of available equipment (e.g., ['dumbbell', 'barbell', 'body weight'])",
                },
                "search": {
                    "type": "string",
                    "description": "Optional exercise name search term (e.g., 'crunch', 'bench press')",
                },
                "numExercises": {
                    "type": "integer",
                    "description": "Number of exercises to return (default: 8)",
                },
                "isVariationRequest": {
                    "type": "boolean",
                    "description": "Whether this is a request for exercise variations",
                },
                "previousExerciseContext": {
                    "type": "string",
                    "description": "Context about previously provided exercises for variation requests",
                },
            },
            "required": [],
        },
    },
}


class ToolOrchestrator:
    def __init__(self, exercise_client: ExerciseLookupClient):
        self.exercise_client = exercise_client

    def get_available_tools(self) -> List[Dict[str, Any]]:
        return [WORKOUT_EXERCISES_TOOL]

    def process_tool_calls(self, tool_calls: List[ToolCall]) -> List[ToolResult]:
        return [self._process(call) for call in tool_calls]

    def _process(self, call: ToolCall) -> ToolResult:
        name = call.function.name
        logger.info("Processing tool call %s: %s(%s)", call.id, name, call.function.arguments)

        if name != GET_WORKOUT_EXERCISES:
            return ToolResult(tool_call_id=call.id, result={"error": f"Unknown tool: {name}"})

        try:
            args = json.loads(call.function.arguments or "{}")
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("Malformed arguments for tool call %s: %s", call.id, e)
            return ToolResult(tool_call_id=call.id, result={"error": f"Invalid tool arguments: {e}"})

        if not isinstance(args, dict):
            return ToolResult(tool_call_id=call.id, result={"error": "Invalid tool arguments: expected a JSON object"})

        try:
            query = WorkoutQuery.model_validate(args)
        except ValidationError as e:
            logger.warning("Invalid arguments for tool call %s: %s", call.id, e)
            return ToolResult(
                tool_call_id=call.id,
                result={"error": "Invalid tool arguments", "details": e.errors(include_url=False, include_context=False)},
            )

        try:
            lookup = self.exercise_client.lookup(query)
        except Exception as e:
            logger.error("Error executing tool call %s: %s", call.id, e, exc_info=True)
            return ToolResult(tool_call_id=call.id, result={"error": f"Failed to execute tool: {e}"})

        return ToolResult(
            tool_call_id=call.id,
            result=lookup.exercises,
            ignored_filters=lookup.ignored_filters or None,
        )
