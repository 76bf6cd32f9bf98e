"""GitHub REST implementation of the review gateway using urllib."""

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from email.message import Message as HTTPMessage
from typing import IO, Any

from autogit.core.credentials import Credential
from autogit.core.errors import (
    MalformedResponseError,
    MergeBlockedError,
    ReviewApiError,
    TooManyRedirectsError,
    TransientNetworkError,
)
from autogit.core.remote_url import RepoLocation
from autogit.gateway.github.abc import ReviewGateway
from autogit.gateway.github.types import MergeMethod, PullRequestRef, PullRequestState

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5

DEFAULT_REQUEST_TIMEOUT = 30.0

_REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})

# Merge refused: 405 not mergeable, 409 head branch moved
_MERGE_BLOCKED_CODES = frozenset({405, 409})


class _NoRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Surface redirects as HTTPError so the client can follow them itself."""

    def redirect_request(
        self,
        req: urllib.request.Request,
        fp: IO[bytes],
        code: int,
        msg: str,
        headers: HTTPMessage,
        newurl: str,
    ) -> None:
        return None


def build_opener() -> urllib.request.OpenerDirector:
    return urllib.request.build_opener(_NoRedirectHandler())


def api_base_url(host: str) -> str:
    if host == "github.com":
        return "https://api.github.com"
    return f"https://{host}/api/v3"


def _error_message(body: str, fallback: str) -> str:
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body or fallback
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return body or fallback


def _decode_body(status: int, raw: bytes, url: str) -> Any:
    if not raw:
        return {}
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedResponseError(
            f"body from {url} is not JSON: {e}", status_code=status
        ) from e


def _pr_number(data: Any) -> int:
    if not isinstance(data, dict):
        raise MalformedResponseError(f"expected a pull request object, got {type(data).__name__}")
    try:
        return int(data["number"])
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponseError("pull request has no valid number") from e


def _parse_pr_state(data: Any) -> PullRequestState:
    number = _pr_number(data)
    return PullRequestState(
        number=number,
        head_branch=data.get("head", {}).get("ref", ""),
        base_branch=data.get("base", {}).get("ref", ""),
        mergeable=data.get("mergeable"),
        mergeable_reason=data.get("mergeable_state") or "unknown",
        merged=bool(data.get("merged", False)),
        state=data.get("state", ""),
        url=data.get("html_url", ""),
    )


class RealGitHubReviews(ReviewGateway):
    """Pull request operations against the GitHub REST API."""

    def __init__(
        self,
        *,
        credential: Credential,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        opener: urllib.request.OpenerDirector | None = None,
    ) -> None:
        self._credential = credential
        self._timeout = timeout
        self._opener = opener if opener is not None else build_opener()

    def create_pr(
        self, location: RepoLocation, *, head: str, base: str, title: str, body: str
    ) -> PullRequestRef:
        data = self._request(
            "POST",
            location,
            f"/repos/{location.full_name}/pulls",
            payload={"title": title, "head": head, "base": base, "body": body},
        )
        number = _pr_number(data)
        return PullRequestRef(number=number, url=data.get("html_url", ""))

    def find_open_prs(
        self, location: RepoLocation, *, head: str, base: str
    ) -> list[PullRequestRef]:
        query = urllib.parse.urlencode(
            {"state": "open", "head": f"{location.owner}:{head}", "base": base}
        )
        data = self._request("GET", location, f"/repos/{location.full_name}/pulls?{query}")
        if not isinstance(data, list):
            raise MalformedResponseError(f"expected a list of pull requests for {head}")
        return [
            PullRequestRef(number=_pr_number(item), url=item.get("html_url", ""))
            for item in data
            if item.get("head", {}).get("ref") == head and item.get("base", {}).get("ref") == base
        ]

    def get_pr(self, location: RepoLocation, number: int) -> PullRequestState:
        data = self._request("GET", location, f"/repos/{location.full_name}/pulls/{number}")
        return _parse_pr_state(data)

    def merge_pr(self, location: RepoLocation, number: int, *, method: MergeMethod) -> None:
        try:
            self._request(
                "PUT",
                location,
                f"/repos/{location.full_name}/pulls/{number}/merge",
                payload={"merge_method": method},
            )
        except ReviewApiError as e:
            if e.status_code in _MERGE_BLOCKED_CODES:
                raise MergeBlockedError(f"PR #{number} is not mergeable: {e.message}") from e
            raise

    def _request(
        self,
        method: str,
        location: RepoLocation,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Send one API request, following redirects up to MAX_REDIRECTS.

        Raises:
            TransientNetworkError: On timeout, connection failure or 5xx
            TooManyRedirectsError: If the redirect chain exceeds MAX_REDIRECTS
            ReviewApiError: On any other non-2xx response
            MalformedResponseError: If a 2xx body is not JSON
        """
        url = api_base_url(location.host) + path
        origin_host = urllib.parse.urlsplit(url).hostname
        data = json.dumps(payload).encode("utf-8") if payload is not None else None

        for _ in range(MAX_REDIRECTS + 1):
            headers = {
                "Accept": "application/vnd.github+json",
                "User-Agent": "autogit",
            }
            # Never forward the credential to a different host
            if urllib.parse.urlsplit(url).hostname == origin_host:
                headers["Authorization"] = self._credential.authorization_header()
            if data is not None:
                headers["Content-Type"] = "application/json"

            request = urllib.request.Request(url, data=data, headers=headers, method=method)
            logger.debug("%s %s", method, url)
            try:
                with self._opener.open(request, timeout=self._timeout) as response:
                    status = response.status
                    raw = response.read()
            except urllib.error.HTTPError as e:
                if e.code in _REDIRECT_CODES:
                    location_header = e.headers.get("Location") if e.headers else None
                    if not location_header:
                        raise ReviewApiError(e.code, "Redirect without Location header") from e
                    url = urllib.parse.urljoin(url, location_header)
                    continue
                body = e.read().decode("utf-8") if e.fp else ""
                message = _error_message(body, str(e.reason))
                if e.code >= 500:
                    raise TransientNetworkError(f"HTTP {e.code} from {url}: {message}") from e
                raise ReviewApiError(e.code, message) from e
            except urllib.error.URLError as e:
                raise TransientNetworkError(f"Connection to {url} failed: {e.reason}") from e
            except TimeoutError as e:
                raise TransientNetworkError(
                    f"Request to {url} timed out after {self._timeout}s"
                ) from e
            except (http.client.HTTPException, ConnectionError) as e:
                raise TransientNetworkError(f"Reading response from {url} failed: {e!r}") from e
            return _decode_body(status, raw, url)

        raise TooManyRedirectsError(f"Exceeded {MAX_REDIRECTS} redirects requesting {path}")
