"""
HTTP tests for the FastAPI app. The lifespan is not run; services are
injected with app.dependency_overrides.
"""

import json
import re

import pytest
from fastapi.testclient import TestClient

from fitcoach.main import app, get_chat_service, get_model_gateway
from fitcoach.models import ErrorCode, StreamEvent, failure
from fitcoach.services.chat_service import ChatService
from fitcoach.services.intent_service import IntentService
from fitcoach.services.model_service import ModelGateway, build_model_registry
from fitcoach.services.tool_service import ToolOrchestrator

from conftest import FakeExerciseClient, FakeGateway, intent_reply, model_response, tool_call

CHEST_INTENT = intent_reply(params={"targetMuscles": ["chest"], "duration": 20})


def chat_service_with(gateway):
    return ChatService(gateway, IntentService(gateway), ToolOrchestrator(FakeExerciseClient()))


def workout_gateway():
    return FakeGateway(
        intent_response=model_response(CHEST_INTENT),
        responses=[
            model_response(tool_calls=[tool_call('{"targetMuscles": ["chest"]}')], model="openai/gpt-oss-120b"),
            model_response("## Chest Blueprint", model="openai/gpt-oss-120b"),
        ],
    )


def sse_events(body: str):
    frames = [frame for frame in body.split("\n\n") if frame]
    assert all(frame.startswith("data: ") for frame in frames)
    return [frame[len("data: "):] for frame in frames]


@pytest.fixture
def client():
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def use_service(service):
    app.dependency_overrides[get_chat_service] = lambda: service


class TestChat:
    def test_workout_reply_in_camel_case(self, client):
        use_service(chat_service_with(workout_gateway()))
        response = client.post("/chat", json={"message": "20 min chest workout"})

        assert response.status_code == 200
        body = response.json()
        assert body["coachTalk"] == "## Chest Blueprint"
        assert body["model"] == "openai/gpt-oss-120b"
        assert re.match(r"^session_\d+_[a-z0-9]+$", body["sessionId"])
        assert len(body["detailedExercises"]) == 5
        assert body["detailedExercises"][0]["sets"] == 3
        assert "coach_talk" not in body
        assert "requiresClarification" not in body

    def test_session_id_round_trip(self, client):
        use_service(chat_service_with(FakeGateway(intent_response=model_response(intent_reply(violation=True)))))
        first = client.post("/chat", json={"message": "fix my javascript error"}).json()
        second = client.post("/chat", json={"message": "and css?", "sessionId": first["sessionId"]}).json()
        assert first["model"] == "guardrail"
        assert second["sessionId"] == first["sessionId"]

    def test_history_in_camel_case_is_accepted(self, client):
        gateway = workout_gateway()
        use_service(chat_service_with(gateway))
        client.post("/chat", json={
            "message": "20 min chest workout",
            "conversationHistory": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "## Hello"}],
        })
        intent_messages, _ = gateway.calls[0]
        assert [m.content for m in intent_messages[1:]] == ["hi", "## Hello", "20 min chest workout"]

    def test_model_failure_is_a_500_envelope(self, client):
        def handler(messages, options):
            if options.model == "DeepSeek Chat":
                return failure("API key not configured for model DeepSeek Chat", ErrorCode.API_KEY_MISSING)
            return model_response(CHEST_INTENT)

        use_service(chat_service_with(FakeGateway(handler=handler)))
        response = client.post("/chat", json={"message": "20 min chest workout", "model": "DeepSeek Chat"})

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "MODEL_ERROR"
        assert body["error"] == "Failed to generate workout"
        assert body["details"]["cause"] == "API_KEY_MISSING"

    @pytest.mark.parametrize("payload", [{}, {"message": ""}, {"message": "x" * 2001}, {"message": 42}])
    def test_validation_failure(self, client, payload):
        use_service(chat_service_with(FakeGateway()))
        response = client.post("/chat", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]

    def test_max_length_message_is_accepted(self, client):
        use_service(chat_service_with(FakeGateway(intent_response=model_response(intent_reply(violation=True)))))
        assert client.post("/chat", json={"message": "x" * 2000}).status_code == 200

    def test_unhandled_exception(self, client):
        class Exploding:
            def chat(self, request):
                raise RuntimeError("boom")

        use_service(Exploding())
        response = client.post("/chat", json={"message": "hi"})
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestChatStream:
    def test_events_and_done_marker(self, client):
        use_service(chat_service_with(workout_gateway()))
        response = client.post("/chat/stream", json={"message": "20 min chest workout", "sessionId": "session_1_abc"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.text.endswith("data: [DONE]\n\n")

        payloads = sse_events(response.text)
        assert payloads[-1] == "[DONE]"
        events = [json.loads(p) for p in payloads[:-1]]
        assert [e["type"] for e in events] == ["intent_detected", "tools_calling", "tools_executed", "final_response"]
        assert {e["sessionId"] for e in events} == {"session_1_abc"}
        assert events[0]["data"]["intent"]["extractedParams"]["numExercises"] == 5
        assert events[-1]["data"]["coachTalk"] == "## Chest Blueprint"

    def test_exception_mid_stream_becomes_error_event(self, client):
        class HalfBroken:
            def stream_chat(self, request):
                yield StreamEvent(type="intent_detected", data={"ok": True}, session_id="session_1_abc")
                raise RuntimeError("connection reset")

        use_service(HalfBroken())
        response = client.post("/chat/stream", json={"message": "hi"})

        payloads = sse_events(response.text)
        assert payloads[-1] == "[DONE]"
        error = json.loads(payloads[-2])
        assert error["type"] == "error"
        assert error["sessionId"] == "session_1_abc"
        assert error["data"]["code"] == "WORKOUT_GENERATION_ERROR"

    def test_validation_failure(self, client):
        use_service(chat_service_with(FakeGateway()))
        assert client.post("/chat/stream", json={"message": ""}).status_code == 400


class TestModelsAndHealth:
    def test_models(self, client):
        gateway = ModelGateway(build_model_registry(groq_api_key="gsk-test"))
        app.dependency_overrides[get_model_gateway] = lambda: gateway

        body = client.get("/chat/models").json()
        assert body["defaultModel"] == "GPT OSS 120b"
        assert "Llama Guard 4" not in body["models"]
        assert body["modelInfo"]["GPT OSS 120b"]["available"] is True
        assert body["modelInfo"]["DeepSeek Chat"]["available"] is False

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "ok"
        assert body["timestamp"].endswith("Z")

    def test_root_lists_endpoints(self, client):
        assert "/chat/stream" in client.get("/").json()["endpoints"]

    def test_uninitialized_service(self, client):
        assert client.post("/chat", json={"message": "hi"}).status_code == 503
