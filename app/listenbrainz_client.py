import json
import logging

import requests

log = logging.getLogger("listenbrainz")

DEFAULT_API_URL = "https://api.listenbrainz.org"

LISTEN_SINGLE = "single"
LISTEN_PLAYING_NOW = "playing_now"
LISTEN_IMPORT = "import"
LISTEN_TYPES = (LISTEN_SINGLE, LISTEN_PLAYING_NOW, LISTEN_IMPORT)

# Custom error classes so callers can branch
class ListenBrainzError(Exception): ...
class ListenBrainzNetworkError(ListenBrainzError): ...

class ListenBrainzResponseError(ListenBrainzError):
    def __init__(self, status: int, message: str):
        super().__init__(f"HTTP {status}: {message}")
        self.status = status

class ListenBrainzAuthError(ListenBrainzResponseError): ...


def encode(obj) -> bytes:
    """Compact UTF-8 JSON, shared by the wire and the on-disk cache."""
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), allow_nan=False).encode("utf-8")


class ListenBrainzClient:
    """Thin wrapper over the ListenBrainz HTTP API for listens and feedback.

    Every call either returns normally or raises a ListenBrainzError; there is
    no retry here, callers decide whether to cache or drop.
    """

    def __init__(self, token: str, api_url: str = DEFAULT_API_URL, timeout: float = 10,
                 session: requests.Session | None = None):
        if not token:
            raise ValueError("Missing ListenBrainz user token")
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, endpoint: str, body: dict) -> None:
        # Encoding errors are programming errors and propagate untouched
        data = encode(body)
        headers = {
            "Authorization": f"Token {self.token}",
            "Content-Type": "application/json",
        }
        try:
            resp = self.session.post(f"{self.api_url}{endpoint}", data=data,
                                     headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ListenBrainzNetworkError(str(e)) from e

        if resp.status_code in (401, 403):
            raise ListenBrainzAuthError(resp.status_code, resp.text)
        if not 200 <= resp.status_code < 300:
            raise ListenBrainzResponseError(resp.status_code, resp.text)

    def submit_listen(self, listen_type: str, payloads: list[dict]) -> None:
        """POST one envelope of listens to /1/submit-listens."""
        if listen_type not in LISTEN_TYPES:
            raise ValueError(f"Unknown listen type: {listen_type!r}")
        if listen_type != LISTEN_IMPORT and len(payloads) != 1:
            raise ValueError(f"{listen_type} submissions carry exactly one listen")
        log.debug("Submitting %s with %d listen(s)", listen_type, len(payloads))
        self._post("/1/submit-listens", {"listen_type": listen_type, "payload": payloads})

    def submit_feedback(self, recording_mbid: str, score: int) -> None:
        """Love (+1), hate (-1) or clear (0) a recording."""
        if score not in (-1, 0, 1):
            raise ValueError(f"Feedback score must be -1, 0 or 1, got {score!r}")
        self._post("/1/feedback/recording-feedback",
                   {"recording_mbid": recording_mbid, "score": score})
