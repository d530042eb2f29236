from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import AuthenticationError, DecodeError, TransportError
from .resources import Assignment, Summary, User
from .subjects import Subject

logger = logging.getLogger(__name__)

BASE_URL = "https://api.wanikani.com/v2"
API_REVISION = "20170710"


class WaniKaniClient:
    """
    Blocking client for the WaniKani v2 API.

    Every call either returns a decoded record or raises ``TransportError`` /
    ``DecodeError``. Nothing is retried. ``transport`` can be replaced with an
    ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = BASE_URL,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_token = api_token
        self._http = httpx.Client(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_token}",
                "Wanikani-Revision": API_REVISION,
            },
            transport=transport,
        )
        # Character images live on a CDN and must not receive the token.
        self._assets = httpx.Client(transport=transport, follow_redirects=True)

    def close(self) -> None:
        self._http.close()
        self._assets.close()

    def __enter__(self) -> "WaniKaniClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        logger.debug("%s %s -> %s", method, url, response.status_code)
        if response.status_code == 401:
            raise AuthenticationError("Authentication failed: the API token was rejected")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Request to {url} failed with status code: {response.status_code}"
            ) from e
        return response

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self._request("GET", url, params=params)
        try:
            body = response.json()
        except ValueError as e:
            raise DecodeError(f"Response from {url} is not valid JSON") from e
        if not isinstance(body, dict):
            raise DecodeError(f"Response from {url} is not a JSON object")
        return body

    def authenticate(self) -> None:
        """Raise ``AuthenticationError`` unless the token is accepted."""
        self._request("GET", "/user")

    def fetch_user(self) -> User:
        return User.from_api(self._get_json("/user"))

    def fetch_summary(self) -> Summary:
        return Summary.from_api(self._get_json("/summary"))

    def fetch_subject(self, subject_id: int) -> Subject:
        logger.debug("Fetching subject %s", subject_id)
        return Subject.from_api(self._get_json(f"/subjects/{subject_id}"))

    def fetch_assignments(self, **filters: Any) -> List[Assignment]:
        """
        Fetch every assignment matching ``filters``, following pagination.

        Boolean filters are sent the way the API expects them
        (``immediately_available_for_review=true``).
        """
        params = {
            key: str(value).lower() if isinstance(value, bool) else value
            for key, value in filters.items()
        }
        assignments: List[Assignment] = []
        url: Optional[str] = "/assignments"
        while url:
            body = self._get_json(url, params=params)
            try:
                assignments.extend(Assignment.from_api(item) for item in body["data"])
                url = body.get("pages", {}).get("next_url")
            except (KeyError, AttributeError, TypeError) as e:
                raise DecodeError(f"Malformed assignment collection: {e}") from e
            # next_url already carries the query string
            params = None
        return assignments

    def fetch_review_assignments(self) -> List[Assignment]:
        return self.fetch_assignments(immediately_available_for_review=True)

    def fetch_lesson_assignments(self) -> List[Assignment]:
        return self.fetch_assignments(immediately_available_for_lessons=True)

    def submit_review(
        self,
        assignment_id: int,
        incorrect_meaning_answers: int,
        incorrect_reading_answers: int,
    ) -> None:
        payload = {
            "review": {
                "assignment_id": assignment_id,
                "incorrect_meaning_answers": incorrect_meaning_answers,
                "incorrect_reading_answers": incorrect_reading_answers,
            }
        }
        logger.info(
            "Submitting review for assignment %s (meaning misses=%s, reading misses=%s)",
            assignment_id,
            incorrect_meaning_answers,
            incorrect_reading_answers,
        )
        self._request("POST", "/reviews", json=payload)

    def fetch_image(self, url: str) -> bytes:
        logger.debug("GET %s", url)
        try:
            response = self._assets.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"Could not fetch image {url}: {e}") from e
        return response.content
