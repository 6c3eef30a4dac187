"""
SERVICES PACKAGE
=================

Business logic lives here. The API layer (fitcoach.main) calls these services;
they don't handle HTTP, only the coaching pipeline.

MODULES:
    model_service    - ModelGateway: one chat completion per call over the model registry
    exercise_service - ExerciseLookupClient: ExerciseDB filter queries, never raises
    tool_service     - ToolOrchestrator: tool schema + tool call execution
    intent_service   - IntentService: intent classification, fail-closed parsing
    chat_service     - ChatService: intent -> guardrail -> clarify / generate pipeline
"""
