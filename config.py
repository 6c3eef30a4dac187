"""
CONFIGURATION MODULE
====================

PURPOSE:
  Central place for the fitness coach settings: provider API keys, the default
  model, the ExerciseDB endpoint and the fixed tuning numbers the pipeline uses.

WHAT THIS FILE DOES:
  - Loads environment variables from .env (so API keys stay out of code).
  - Exposes GROQ_API_KEY, DEEPSEEK_API_KEY, GEMINI_API_KEY and DEFAULT_MODEL.
    A missing key only disables the models of that provider.
  - Defines the ExerciseDB base URL, timeout and page cap.
  - Defines message length, intent history window and exercise count rules.

  The model registry itself is NOT built here. fitcoach.main builds it once at
  startup from these values (build_model_registry) and hands it to the
  ModelGateway, so tests can build their own registry.

USAGE:
  Import what you need: `from config import GROQ_API_KEY, DEFAULT_MODEL`
"""

import os
from dotenv import load_dotenv


# -----------------------------------------------------------------------------
# ENVIRONMENT
# -----------------------------------------------------------------------------
# Load environment variables from .env file (if it exists).
load_dotenv()


# -----------------------------------------------------------------------------
# SERVER
# -----------------------------------------------------------------------------
PORT = int(os.getenv("PORT", "3001"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


# ============================================================================
# LLM PROVIDER CONFIGURATION
# ============================================================================
# Groq serves the GPT OSS / Llama models, DeepSeek and Gemini are reached via
# their OpenAI-compatible endpoints. Keys are optional one by one: selecting a
# model whose provider has no key returns API_KEY_MISSING.

GROQ_API_KEY = os.getenv("GROQ_API_KEY", "").strip()
DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY", "").strip()
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()

# Logical model name (registry key) used when a request names no model.
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "").strip() or "GPT OSS 120b"

# Fast model used for intent classification.
INTENT_MODEL = "Llama 3.1 Instant"

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000

# ============================================================================
# EXERCISEDB CONFIGURATION
# ============================================================================
# The public ExerciseDB v1 API. The filter endpoint accepts at most 25 results
# per page.

EXERCISEDB_BASE_URL = os.getenv("EXERCISEDB_BASE_URL", "https://www.exercisedb.dev/api/v1").rstrip("/")
EXERCISEDB_TIMEOUT = float(os.getenv("EXERCISEDB_TIMEOUT", "10"))
EXERCISEDB_MAX_LIMIT = 25

# Exercises returned by one lookup when the caller does not say.
DEFAULT_EXERCISE_LIMIT = 8

# ============================================================================
# CONVERSATION RULES
# ============================================================================
# Maximum length (characters) for a single user message.
MAX_MESSAGE_LENGTH = 2000

# Trailing history messages the intent classifier sees.
INTENT_HISTORY_WINDOW = 3

# numExercises = floor(duration / MINUTES_PER_EXERCISE); 5 when no duration.
MINUTES_PER_EXERCISE = 4
DEFAULT_NUM_EXERCISES = 5

# Sets/reps/rest merged into each exercise card, keyed by intensity.
WORKOUT_METADATA = {
    "beginner": {"sets": 2, "reps": "12-15", "rest": "60s"},
    "intermediate": {"sets": 3, "reps": "8-12", "rest": "90s"},
    "advanced": {"sets": 4, "reps": "6-10", "rest": "120s"},
}
DEFAULT_INTENSITY = "intermediate"
