"""
Tests for the ExerciseDB client. The HTTP session is a MagicMock, so these
tests check the query that would go on the wire and the never-raise policy.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from fitcoach.models import WorkoutQuery
from fitcoach.services.exercise_service import ExerciseLookupClient

from conftest import make_exercise

BASE_URL = "https://exercisedb.test/api/v1"


def fake_response(payload=None, status_error=None, json_error=None):
    response = MagicMock()
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session(exercises):
    session = MagicMock()
    session.get.return_value = fake_response({"success": True, "data": exercises})
    return session


@pytest.fixture
def client(session):
    return ExerciseLookupClient(base_url=BASE_URL + "/", session=session, timeout=5, retry_delay=0)


def sent_query(session):
    args, kwargs = session.get.call_args
    return args[0], kwargs["params"]


class TestQuery:
    def test_filters_are_validated_and_joined(self, client, session):
        client.get_workout_exercises(WorkoutQuery(
            target_muscles=["Chest", "triceps"],
            equipment=["dumbbells", "body weight"],
            body_parts=["upper arms"],
            search="  press ",
            num_exercises=4,
        ))

        url, query = sent_query(session)
        assert url == BASE_URL + "/exercises/filter"
        assert query == {
            "offset": 0,
            "limit": 4,
            "sortBy": "name",
            "sortOrder": "asc",
            "muscles": "chest,triceps",
            "bodyParts": "upper arms",
            "equipment": "dumbbell,body weight",
            "search": "press",
        }
        assert session.get.call_args.kwargs["timeout"] == 5

    def test_empty_filters_are_omitted(self, client, session):
        client.get_workout_exercises(WorkoutQuery(target_muscles=["banana"], search="   "))
        _, query = sent_query(session)
        assert "muscles" not in query
        assert "search" not in query

    @pytest.mark.parametrize("requested, limit", [(None, 8), (0, 8), (-3, 8), (3, 3), (25, 25), (100, 25)])
    def test_limit(self, client, session, requested, limit):
        client.get_workout_exercises(WorkoutQuery(num_exercises=requested))
        assert sent_query(session)[1]["limit"] == limit

    def test_variation_request_adds_related_muscles(self, client, session):
        client.get_workout_exercises(WorkoutQuery(
            target_muscles=["chest"],
            is_variation_request=True,
            previous_exercise_context="Previous chest workout: bench press, push-ups",
        ))
        assert sent_query(session)[1]["muscles"] == "chest,shoulders,triceps"


class TestResults:
    def test_results_are_capped_at_the_limit(self, client):
        assert len(client.get_workout_exercises(WorkoutQuery(num_exercises=5))) == 5

    def test_records_pass_through_unchanged(self, client, exercises):
        assert client.get_workout_exercises(WorkoutQuery(num_exercises=1)) == [exercises[0]]

    def test_list_payload_is_accepted(self, client, session):
        session.get.return_value = fake_response([make_exercise(1), "junk", make_exercise(2)])
        assert client.get_workout_exercises(WorkoutQuery()) == [make_exercise(1), make_exercise(2)]

    def test_ignored_filters_are_reported(self, client):
        lookup = client.lookup(WorkoutQuery(target_muscles=["chest", "toes"], equipment=["rope swing"]))
        assert lookup.ignored_filters == {"targetMuscles": ["toes"], "equipment": ["rope swing"]}

    def test_nothing_ignored(self, client):
        assert client.lookup(WorkoutQuery(target_muscles=["chest"])).ignored_filters == {}


class TestFailures:
    def test_connection_error_is_retried(self, client, session, exercises):
        session.get.side_effect = [requests.ConnectionError("reset"), fake_response({"data": exercises})]
        assert len(client.get_workout_exercises(WorkoutQuery(num_exercises=3))) == 3
        assert session.get.call_count == 2

    def test_persistent_timeout_returns_empty(self, client, session):
        session.get.side_effect = requests.Timeout("slow")
        assert client.get_workout_exercises(WorkoutQuery()) == []
        assert session.get.call_count == 2

    def test_http_error_returns_empty_without_retry(self, client, session):
        session.get.return_value = fake_response(status_error=requests.HTTPError("503 Server Error"))
        assert client.get_workout_exercises(WorkoutQuery()) == []
        assert session.get.call_count == 1

    def test_invalid_json_returns_empty(self, client, session):
        session.get.return_value = fake_response(json_error=ValueError("Expecting value"))
        assert client.get_workout_exercises(WorkoutQuery()) == []

    def test_unexpected_payload_returns_empty(self, client, session):
        session.get.return_value = fake_response({"data": "nope"})
        assert client.get_workout_exercises(WorkoutQuery()) == []


def test_without_session_each_request_uses_requests_get(exercises):
    client = ExerciseLookupClient(base_url=BASE_URL, timeout=3, retry_delay=0)
    with patch("fitcoach.services.exercise_service.requests.get") as get:
        get.return_value = fake_response({"data": exercises})
        assert len(client.get_workout_exercises(WorkoutQuery(num_exercises=2))) == 2
        client.get_workout_exercises(WorkoutQuery(num_exercises=2))

    assert get.call_count == 2
    assert get.call_args.args[0] == BASE_URL + "/exercises/filter"
    assert get.call_args.kwargs["timeout"] == 3
    assert client.session is None
