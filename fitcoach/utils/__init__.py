"""
UTILITIES PACKAGE
=================

Helpers used by the services (no HTTP, no business logic):

  time_info - get_timestamp(): ISO-8601 UTC timestamp for responses and health checks.
  retry     - with_retry(fn): calls fn(); on failure retries with exponential backoff (ExerciseDB).
"""
