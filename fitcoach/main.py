"""
FITCOACH MAIN API
=================

This module defines the FastAPI application and all HTTP endpoints.

ENDPOINTS:
  GET  /             - Returns API name and list of endpoints.
  GET  /api/health   - Liveness probe: {"message": "ok", "timestamp": ...}.
  POST /chat         - One coaching turn; returns a ChatResponse, or the failure
                       envelope {error, code, details} with HTTP 500.
  POST /chat/stream  - Same pipeline as server-sent events, one JSON event per
                       "data:" line, terminated by "data: [DONE]".
  GET  /chat/models  - User-selectable models, the default model and model info.

ERRORS:
  Invalid request bodies return 400 {"error": "Validation failed", "details": [...]}.
  Unhandled exceptions return 500 {"error": "Internal server error"}.

SESSION:
  If you omit sessionId, the server mints one (session_<millis>_<suffix>) and
  returns it; send it back on the next request. The server stores no history:
  send the recent turns in conversationHistory.

STARTUP:
  The lifespan function is the composition root: it builds the model registry
  from config and wires ModelGateway, ExerciseLookupClient, ToolOrchestrator,
  IntentService and ChatService through their constructors.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Iterator

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from config import DEEPSEEK_API_KEY, DEFAULT_MODEL, GEMINI_API_KEY, GROQ_API_KEY, LOG_LEVEL, PORT
from fitcoach.models import ChatRequest, ErrorCode, StreamEvent, failure, is_failure
from fitcoach.services.chat_service import ChatService
from fitcoach.services.exercise_service import ExerciseLookupClient
from fitcoach.services.intent_service import IntentService
from fitcoach.services.model_service import ModelGateway, build_model_registry
from fitcoach.services.tool_service import ToolOrchestrator
from fitcoach.utils.time_info import get_timestamp


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("fitcoach")


# -----------------------------------------------------------------------------
# GLOBAL SERVICE REFERENCES
# -----------------------------------------------------------------------------
# Set during startup (lifespan) and handed to route handlers through the
# dependency functions below (tests override those dependencies).
model_gateway: ModelGateway = None
chat_service: ChatService = None


# -------------------------------------------------------------------------
# LIFESPAN (STARTUP / SHUTDOWN)
# -------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the services once, in dependency order:
      1. ModelRegistry (immutable) -> ModelGateway
      2. ExerciseLookupClient -> ToolOrchestrator
      3. IntentService (uses the gateway)
      4. ChatService (gateway + intent + tools)
    """
    global model_gateway, chat_service

    logger.info("=" * 60)
    logger.info("FitCoach - Starting Up...")
    logger.info("=" * 60)

    try:
        registry = build_model_registry(
            groq_api_key=GROQ_API_KEY,
            deepseek_api_key=DEEPSEEK_API_KEY,
            gemini_api_key=GEMINI_API_KEY,
            default_model=DEFAULT_MODEL,
        )
        model_gateway = ModelGateway(registry)

        exercise_client = ExerciseLookupClient()
        tool_orchestrator = ToolOrchestrator(exercise_client)
        intent_service = IntentService(model_gateway)
        chat_service = ChatService(model_gateway, intent_service, tool_orchestrator)

        logger.info("Service Status:")
        for provider, key in (("groq", GROQ_API_KEY), ("deepseek", DEEPSEEK_API_KEY), ("gemini", GEMINI_API_KEY)):
            logger.info("    - %s: %s", provider, "Ready" if key else "No API key (models disabled)")
        logger.info("    - Default model: %s", DEFAULT_MODEL)
        logger.info("FitCoach is online on port %s", PORT)
        logger.info("=" * 60)

        yield

        logger.info("FitCoach shut down.")

    except Exception as e:
        logger.error(f"Fatal error during startup: {e}", exc_info=True)
        raise


# -------------------------------------------------------------------------
# FASTAPI APP, CORS AND ERROR HANDLERS
# -------------------------------------------------------------------------
app = FastAPI(
    title="FitCoach API",
    description="AI fitness coach: intent detection, guardrails and ExerciseDB-grounded workouts",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(error.get("loc", [])), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
    logger.warning("Validation failed on %s: %s", request.url.path, details)
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "code": ErrorCode.VALIDATION_ERROR.value, "details": details},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def get_chat_service() -> ChatService:
    if not chat_service:
        raise HTTPException(status_code=503, detail="Chat service not initialized")
    return chat_service


def get_model_gateway() -> ModelGateway:
    if not model_gateway:
        raise HTTPException(status_code=503, detail="Model gateway not initialized")
    return model_gateway


def _jsonable(value):
    return jsonable_encoder(value, by_alias=True, exclude_none=True)


def _failure_response(result) -> JSONResponse:
    return JSONResponse(status_code=500, content=_jsonable(result))


def format_sse(event: StreamEvent) -> str:
    payload = {"type": event.type, "data": _jsonable(event.data), "sessionId": event.session_id}
    return f"data: {json.dumps(payload)}\n\n"


# =========================================================================
# API ENDPOINTS
# =========================================================================

@app.get("/")
async def root():
    """Return the API name and a short description of each endpoint (for discovery)."""
    return {
        "message": "FitCoach API",
        "endpoints": {
            "/chat": "Coaching chat (intent detection, guardrail, exercise lookup)",
            "/chat/stream": "Same as /chat as server-sent events",
            "/chat/models": "Selectable models and the default model",
            "/api/health": "Liveness probe",
        }
    }


@app.get("/api/health")
async def health():
    return {"message": "ok", "timestamp": get_timestamp()}


@app.post("/chat")
def chat(request: ChatRequest, service: ChatService = Depends(get_chat_service)):
    """
    One coaching turn.

    REQUEST BODY:
    {
        "message": "20 min chest workout",
        "model": "GPT OSS 120b",
        "conversationHistory": [{"role": "user", "content": "..."}],
        "sessionId": "optional-session-id"
    }

    RESPONSE:
    {
        "coachTalk": "## Chest Blueprint ...",
        "detailedExercises": [{"exerciseId": "...", "name": "...", "sets": 3, "reps": "8-12", "rest": "90s"}],
        "model": "openai/gpt-oss-120b",
        "sessionId": "session_1738750000000_k3j9x2a",
        "timestamp": "..."
    }
    """
    result = service.chat(request)
    if is_failure(result):
        return _failure_response(result)
    return JSONResponse(content=_jsonable(result))


@app.post("/chat/stream")
def chat_stream(request: ChatRequest, service: ChatService = Depends(get_chat_service)):
    """
    Streaming variant of /chat. Events, in order as they happen:
      intent_detected, tools_calling, tools_executed, final_response | error
    followed by "data: [DONE]". If the client disconnects, no further events are
    written; calls already in flight finish on their own.
    """
    def events() -> Iterator[str]:
        session_id = request.session_id or ""
        try:
            for event in service.stream_chat(request):
                session_id = event.session_id
                yield format_sse(event)
        except Exception as e:
            logger.error("Stream error: %s", e, exc_info=True)
            error = failure("Internal server error", ErrorCode.WORKOUT_GENERATION_ERROR, str(e))
            yield format_sse(StreamEvent(type="error", data=error, session_id=session_id))
        yield "data: [DONE]\n\n"

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.get("/chat/models")
def models(gateway: ModelGateway = Depends(get_model_gateway)):
    result = gateway.get_available_models()
    if is_failure(result):
        return _failure_response(result)
    return JSONResponse(content=_jsonable(result))


# -------------------------------------------------------------------------
# STANDALONE RUN (python -m fitcoach.main)
# -------------------------------------------------------------------------
def run():
    """Start the uvicorn server (same as run.py); used if someone does python -m fitcoach.main"""
    uvicorn.run(
        "fitcoach.main:app",
        host="0.0.0.0",
        port=PORT,
        reload=True,
        log_level="info"
    )

if __name__ == "__main__":
    run()
