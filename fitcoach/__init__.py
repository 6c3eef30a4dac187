"""
FITCOACH APPLICATION PACKAGE
============================

Backend of the fitness coaching chat: classifies the user's intent, calls an
LLM provider, looks up exercises through a tool call and returns a coached reply
with exercise cards.

  from fitcoach.main import app
  from fitcoach.models import ChatRequest
  from fitcoach.services.chat_service import ChatService

FILE STRUCTURE:
  fitcoach/
    __init__.py   - This file; marks 'fitcoach' as a package.
    main.py       - FastAPI app and HTTP endpoints (/chat, /chat/stream, /chat/models, /api/health).
    models.py     - Pydantic models for requests, responses and pipeline values.
    prompts.py    - System prompts and fixed replies.
    vocabulary.py - ExerciseDB controlled vocabulary and synonym mapping.
    history.py    - Conversation history condenser used by clients.
    services/     - Model gateway, exercise lookup, tools, intent and chat services.
    utils/        - Helpers: retry with backoff, timestamps.
"""
