"""Test the ListenBrainz HTTP wrapper"""

import json

import pytest
import requests
import responses

from listenbrainz_client import (
    ListenBrainzAuthError, ListenBrainzClient, ListenBrainzNetworkError,
    ListenBrainzResponseError,
)
from conftest import API

LISTEN = {"listened_at": 1700000000, "track_metadata": {"artist_name": "A", "track_name": "T", "release_name": "R"}}


@pytest.fixture
def lb():
    return ListenBrainzClient("secret-token", API, timeout=3)


@responses.activate
def test_submit_single_listen(lb):
    responses.add(responses.POST, f"{API}/1/submit-listens", json={"status": "ok"}, status=200)

    lb.submit_listen("single", [LISTEN])

    request = responses.calls[0].request
    assert request.headers["Authorization"] == "Token secret-token"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.body) == {"listen_type": "single", "payload": [LISTEN]}


@responses.activate
def test_submit_feedback(lb):
    responses.add(responses.POST, f"{API}/1/feedback/recording-feedback", json={"status": "ok"})

    lb.submit_feedback("rec-mbid", -1)

    assert json.loads(responses.calls[0].request.body) == {"recording_mbid": "rec-mbid", "score": -1}


@responses.activate
def test_non_2xx_raises(lb):
    responses.add(responses.POST, f"{API}/1/submit-listens", json={"error": "bad"}, status=400)

    with pytest.raises(ListenBrainzResponseError) as exc:
        lb.submit_listen("single", [LISTEN])
    assert exc.value.status == 400


@responses.activate
def test_unauthorized_raises_auth_error(lb):
    responses.add(responses.POST, f"{API}/1/submit-listens", status=401)

    with pytest.raises(ListenBrainzAuthError):
        lb.submit_listen("playing_now", [LISTEN])


@responses.activate
def test_network_failure_raises(lb):
    responses.add(responses.POST, f"{API}/1/submit-listens",
                  body=requests.ConnectionError("unreachable"))

    with pytest.raises(ListenBrainzNetworkError):
        lb.submit_listen("single", [LISTEN])


def test_rejects_bad_arguments(lb):
    with pytest.raises(ValueError):
        lb.submit_listen("scrobble", [LISTEN])
    with pytest.raises(ValueError):
        lb.submit_listen("single", [LISTEN, LISTEN])
    with pytest.raises(ValueError):
        lb.submit_feedback("rec", 2)


def test_requires_token():
    with pytest.raises(ValueError):
        ListenBrainzClient("")
