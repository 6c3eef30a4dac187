"""
EXERCISE LOOKUP MODULE
======================

Client for the ExerciseDB filter API. One lookup = one GET /exercises/filter
request built from the vocabulary-validated muscle / body part / equipment
filters, an optional free-text search, a result-count cap and a default sort.

FAILURE POLICY:
  This client never raises to its caller. Transport errors are retried with
  with_retry() and then logged; the lookup returns an empty list so the chat
  pipeline can still produce a coached answer.

DROPPED TERMS:
  Filter terms outside the ExerciseDB vocabulary are not sent. lookup() reports
  them in ExerciseLookup.ignored_filters so the tool layer can tell the model.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from config import DEFAULT_EXERCISE_LIMIT, EXERCISEDB_BASE_URL, EXERCISEDB_MAX_LIMIT, EXERCISEDB_TIMEOUT
from fitcoach.models import WorkoutQuery
from fitcoach.utils.retry import with_retry
from fitcoach.vocabulary import validate_terms

logger = logging.getLogger("fitcoach")

# Extra muscles searched when the user asks for variations of a previous workout.
VARIATION_MUSCLES = {
    "chest": ["shoulders", "triceps"],
    "legs": ["glutes", "calves"],
    "back": ["rear deltoids", "biceps"],
}


@dataclass
class ExerciseLookup:
    exercises: List[Dict[str, Any]] = field(default_factory=list)
    ignored_filters: Dict[str, List[str]] = field(default_factory=dict)


class ExerciseLookupClient:
    """
    get_workout_exercises(params) -> list of ExerciseDB records (never raises).
    lookup(params) -> ExerciseLookup with the records and the dropped filter terms.

    Without an injected session every request goes through requests.get, so
    the client can be shared by the request threadpool.
    """

    def __init__(
        self,
        base_url: str = EXERCISEDB_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = EXERCISEDB_TIMEOUT,
        max_retries: int = 2,
        retry_delay: float = 0.5,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def get_workout_exercises(self, params: WorkoutQuery) -> List[Dict[str, Any]]:
        return self.lookup(params).exercises

    def lookup(self, params: WorkoutQuery) -> ExerciseLookup:
        limit = params.num_exercises if params.num_exercises and params.num_exercises > 0 else DEFAULT_EXERCISE_LIMIT
        limit = min(limit, EXERCISEDB_MAX_LIMIT)

        target_muscles = list(params.target_muscles or [])
        if params.is_variation_request and params.previous_exercise_context:
            context = params.previous_exercise_context.lower()
            for keyword, extra in VARIATION_MUSCLES.items():
                if keyword in context:
                    target_muscles.extend(extra)

        muscles, dropped_muscles = validate_terms(target_muscles, "targetMuscles")
        body_parts, dropped_parts = validate_terms(params.body_parts, "bodyParts")
        equipment, dropped_equipment = validate_terms(params.equipment, "equipment")

        ignored = {
            key: terms
            for key, terms in (
                ("targetMuscles", dropped_muscles),
                ("bodyParts", dropped_parts),
                ("equipment", dropped_equipment),
            )
            if terms
        }
        if ignored:
            logger.info("Ignored filters outside the ExerciseDB vocabulary: %s", ignored)

        query: Dict[str, Any] = {
            "offset": 0,
            "limit": limit,
            "sortBy": "name",
            "sortOrder": "asc",
        }
        if muscles:
            query["muscles"] = ",".join(muscles)
        if body_parts:
            query["bodyParts"] = ",".join(body_parts)
        if equipment:
            query["equipment"] = ",".join(equipment)
        if params.search and params.search.strip():
            query["search"] = params.search.strip()

        exercises = self._fetch(query)
        return ExerciseLookup(exercises=exercises[:limit], ignored_filters=ignored)

    def _fetch(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/exercises/filter"
        try:
            response = with_retry(
                lambda: self._get(url, query),
                max_retries=self.max_retries,
                initial_delay=self.retry_delay,
                retry_on=(requests.ConnectionError, requests.Timeout),
            )
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching exercises from ExerciseDB: %s", e)
            return []

        data = payload.get("data", []) if isinstance(payload, dict) else payload
        if not isinstance(data, list):
            logger.warning("Unexpected ExerciseDB payload: %r", type(data).__name__)
            return []

        logger.info("ExerciseDB returned %s exercises for %s", len(data), query)
        return [item for item in data if isinstance(item, dict)]

    def _get(self, url: str, query: Dict[str, Any]) -> requests.Response:
        http = self.session if self.session is not None else requests
        response = http.get(url, params=query, timeout=self.timeout)
        response.raise_for_status()
        return response
