"""
TIME INFORMATION UTILITY
========================

Wall-clock timestamps for API payloads (ChatResponse.timestamp and the
/api/health probe). This is the only non-deterministic value in a chat reply.
"""

import datetime


def get_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string, e.g. 2026-02-05T10:15:30.123Z."""
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
