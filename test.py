"""
FITCOACH TEST CLIENT - Interactive chat against a running server
================================================================

PURPOSE:
Command-line interface for trying the coaching API without the frontend.
Messages go to POST /chat, or to POST /chat/stream in stream mode, where each
pipeline stage (intent, tool calls, final answer) is printed as it arrives.

USAGE:
    python test.py

    Make sure the server is running first: python run.py

COMMANDS:
    /models        - List selectable models
    /model <name>  - Use a model (e.g. /model Llama 3.3 Versatile)
    /stream        - Toggle streaming mode
    /clear         - Start a new session (drops history and sessionId)
    /quit or /exit - Exit

HOW IT WORKS:
The server keeps no history. This client remembers the turns, sends the
condensed recent history (fitcoach.history.condense_history) with every
message and echoes the sessionId the server minted on the first turn.
"""

import json

import requests

from config import PORT
from fitcoach.history import condense_history
from fitcoach.models import ChatMessage


# -----------------------------------------------------------------------------
# CONFIGURATION
# -----------------------------------------------------------------------------
BASE_URL = f"http://localhost:{PORT}"
SESSION_ID = None
MODEL = None
STREAM = False
HISTORY = []


# -----------------------------------------------------------------------------
# UI HELPERS
# -----------------------------------------------------------------------------

def print_header():
    print("\n" + "=" * 60)
    print("🏋️  FitCoach - Workout Chat")
    print("=" * 60)
    print("\nCommands:")
    print("  /models        - List models")
    print("  /model <name>  - Select a model")
    print("  /stream        - Toggle streaming")
    print("  /clear         - Start new session")
    print("  /quit          - Exit")
    print("=" * 60 + "\n")


def get_user_input():
    """Get user's input - a message or a command."""
    try:
        return input("\nYou: ").strip()
    except (KeyboardInterrupt, EOFError):
        return None


def format_reply(data):
    """Coach text followed by one line per exercise card."""
    output = data.get("coachTalk", "")
    for i, exercise in enumerate(data.get("detailedExercises") or [], 1):
        sets = exercise.get("sets", "?")
        reps = exercise.get("reps", "?")
        output += f"\n  {i}. {exercise.get('name', 'Exercise')} - {sets} x {reps}, rest {exercise.get('rest', '?')}"
    return output


# -----------------------------------------------------------------------------
# API CALLS
# -----------------------------------------------------------------------------

def _request_body(message):
    body = {
        "message": message,
        "conversationHistory": [m.model_dump(by_alias=True, exclude_none=True) for m in condense_history(HISTORY)],
    }
    if SESSION_ID:
        body["sessionId"] = SESSION_ID
    if MODEL:
        body["model"] = MODEL
    return body


def _remember(message, reply):
    HISTORY.append(ChatMessage(role="user", content=message))
    HISTORY.append(ChatMessage(role="assistant", content=reply))


def send_message(message):
    """POST /chat and return the formatted reply (or an error line)."""
    global SESSION_ID

    try:
        response = requests.post(f"{BASE_URL}/chat", json=_request_body(message), timeout=90)
        data = response.json()
        if response.status_code == 200:
            SESSION_ID = data.get("sessionId", SESSION_ID)
            _remember(message, data.get("coachTalk", ""))
            return f"[{data.get('model')}] " + format_reply(data)
        code = f" ({data['code']})" if data.get("code") else ""
        return f"❌ {data.get('error', response.status_code)}{code}"

    except requests.exceptions.ConnectionError:
        return "❌ Cannot connect to backend. Start it with: python run.py"
    except requests.exceptions.Timeout:
        return "❌ Request timed out. Try again."
    except ValueError:
        return f"❌ Unexpected response: {response.status_code} - {response.text}"


def stream_message(message):
    """POST /chat/stream and print each event as it arrives."""
    global SESSION_ID

    try:
        with requests.post(f"{BASE_URL}/chat/stream", json=_request_body(message), stream=True, timeout=90) as response:
            for line in response.iter_lines(decode_unicode=True):
                if not line or not line.startswith("data: "):
                    continue
                payload = line[len("data: "):]
                if payload == "[DONE]":
                    break
                event = json.loads(payload)
                SESSION_ID = event.get("sessionId") or SESSION_ID
                kind, data = event.get("type"), event.get("data")
                if kind == "intent_detected":
                    print(f"\n  · intent: {data['intent']['type']} (guardrail: {data['guardrail']['violation']})")
                elif kind == "tools_calling":
                    print(f"  · calling: {', '.join(call['function']['name'] for call in data)}")
                elif kind == "tools_executed":
                    print(f"  · exercises found: {data['exercises']}")
                elif kind == "final_response":
                    _remember(message, data.get("coachTalk", ""))
                    print(f"\n🤖 [{data.get('model')}] " + format_reply(data))
                elif kind == "error":
                    print(f"\n❌ {data.get('error')} ({data.get('code')})")

    except requests.exceptions.ConnectionError:
        print("❌ Cannot connect to backend. Start it with: python run.py")
    except requests.exceptions.Timeout:
        print("❌ Request timed out. Try again.")


def list_models():
    try:
        data = requests.get(f"{BASE_URL}/chat/models", timeout=10).json()
    except requests.exceptions.RequestException as e:
        return f"❌ Error: {e}"
    lines = []
    for name in data.get("models", []):
        info = (data.get("modelInfo") or {}).get(name, {})
        marker = "*" if name == data.get("defaultModel") else " "
        status = "" if info.get("available", True) else " (no API key)"
        lines.append(f" {marker} {name}{status} - {info.get('description', '')}")
    return "\n".join(lines)


# -----------------------------------------------------------------------------
# MAIN LOOP
# -----------------------------------------------------------------------------

def main():
    global SESSION_ID, MODEL, STREAM

    print_header()
    print("💡 Tip: try '20 min chest workout with dumbbells'.\n")

    while True:
        user_input = get_user_input()
        if user_input is None or user_input in ["/quit", "/exit"]:
            print("\n👋 Goodbye!")
            break
        if not user_input:
            continue

        if user_input == "/models":
            print(list_models())
        elif user_input.startswith("/model "):
            MODEL = user_input[len("/model "):].strip() or None
            print(f"✅ Using model: {MODEL or 'server default'}")
        elif user_input == "/stream":
            STREAM = not STREAM
            print(f"✅ Streaming {'on' if STREAM else 'off'}")
        elif user_input == "/clear":
            SESSION_ID = None
            HISTORY.clear()
            print("\n🔄 Session cleared. Starting fresh!")
        elif user_input.startswith("/"):
            print(f"❌ Unknown command: {user_input}")
        elif STREAM:
            stream_message(user_input)
        else:
            print("🤖 Coach: ", end="", flush=True)
            print(send_message(user_input))


# Run the interactive loop when this file is executed (python test.py).
if __name__ == "__main__":
    main()
