"""
RUN SCRIPT - Start the FitCoach server
======================================

PURPOSE:
  Single entry point to start the backend.

WHAT IT DOES:
  - Imports the FastAPI app from fitcoach.main.
  - Runs it with uvicorn on host 0.0.0.0 and PORT from .env (default 3001).
  - reload=True means any change to Python files will restart the server (handy for development).

USAGE:
  python run.py

  Then use the API from the chat frontend or `python test.py`.
  API docs: http://localhost:3001/docs

NOTE:
  Before running, set at least GROQ_API_KEY in .env (DEEPSEEK_API_KEY and
  GEMINI_API_KEY enable the other models).
"""

import uvicorn

from config import PORT

# ------------------------------------------------------------------------------
# ENTRY POINT
# ------------------------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "fitcoach.main:app",  # String path to the FastAPI app instance (module:variable).
        host="0.0.0.0",       # Listen on all network interfaces so other devices can connect.
        port=PORT,
        reload=True           # Auto-restart when .py files change (useful during development).
    )
