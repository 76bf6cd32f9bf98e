"""Tests for the urllib GitHub client using a stub opener."""

import http.client
import io
import json
import urllib.error
import urllib.request
from email.message import Message
from typing import Any

import pytest

from autogit.core.credentials import resolve_credential
from autogit.core.errors import (
    MalformedResponseError,
    MergeBlockedError,
    ReviewApiError,
    TooManyRedirectsError,
    TransientNetworkError,
)
from autogit.core.remote_url import RepoLocation
from autogit.gateway.github.real import MAX_REDIRECTS, RealGitHubReviews, api_base_url

LOCATION = RepoLocation(host="github.com", owner="octo", repo="widgets")


def _redirect(url: str, location: str, code: int = 307) -> urllib.error.HTTPError:
    headers = Message()
    headers["Location"] = location
    return urllib.error.HTTPError(url, code, "Temporary Redirect", headers, None)


def _http_error(url: str, code: int, body: dict[str, Any]) -> urllib.error.HTTPError:
    fp = io.BytesIO(json.dumps(body).encode("utf-8"))
    return urllib.error.HTTPError(url, code, "error", Message(), fp)


class StubResponse(io.BytesIO):
    status = 200


class StubOpener:
    """Replays scripted responses.

    Each item is raw bytes, an exception, or a JSON-able body.
    """

    def __init__(self, responses: list[Any]) -> None:
        self._responses = list(responses)
        self.requests: list[urllib.request.Request] = []

    def open(self, request: urllib.request.Request, timeout: float) -> StubResponse:
        self.requests.append(request)
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, bytes):
            return StubResponse(item)
        return StubResponse(json.dumps(item).encode("utf-8"))


def _client(opener: StubOpener, secret: str = "ghp_abc") -> RealGitHubReviews:
    return RealGitHubReviews(
        credential=resolve_credential(secret),
        timeout=5.0,
        opener=opener,  # type: ignore[arg-type]
    )


def test_create_pr_posts_json_with_token_scheme() -> None:
    opener = StubOpener([{"number": 7, "html_url": "https://github.com/octo/widgets/pull/7"}])

    ref = _client(opener).create_pr(LOCATION, head="auto-x", base="main", title="t", body="b")

    assert ref.number == 7
    request = opener.requests[0]
    assert request.get_method() == "POST"
    assert request.full_url == "https://api.github.com/repos/octo/widgets/pulls"
    assert request.get_header("Authorization") == "token ghp_abc"
    assert json.loads(request.data) == {"title": "t", "head": "auto-x", "base": "main", "body": "b"}


def test_fine_grained_token_uses_bearer() -> None:
    opener = StubOpener([[]])

    _client(opener, "github_pat_xyz").find_open_prs(LOCATION, head="auto-x", base="main")

    assert opener.requests[0].get_header("Authorization") == "Bearer github_pat_xyz"


def test_find_open_prs_filters_by_head_and_base() -> None:
    opener = StubOpener(
        [
            [
                {"number": 1, "html_url": "u1", "head": {"ref": "auto-x"}, "base": {"ref": "main"}},
                {"number": 2, "html_url": "u2", "head": {"ref": "auto-x"}, "base": {"ref": "dev"}},
            ]
        ]
    )

    refs = _client(opener).find_open_prs(LOCATION, head="auto-x", base="main")

    assert [r.number for r in refs] == [1]
    assert "head=octo%3Aauto-x" in opener.requests[0].full_url
    assert "state=open" in opener.requests[0].full_url


def test_get_pr_parses_mergeability() -> None:
    opener = StubOpener(
        [
            {
                "number": 3,
                "mergeable": None,
                "mergeable_state": "unknown",
                "merged": False,
                "state": "open",
                "head": {"ref": "auto-x"},
                "base": {"ref": "main"},
                "html_url": "u3",
            }
        ]
    )

    state = _client(opener).get_pr(LOCATION, 3)

    assert state.mergeable is None
    assert state.mergeable_reason == "unknown"
    assert state.head_branch == "auto-x"
    assert not state.is_conflicting


def test_redirects_are_followed_without_leaking_credential() -> None:
    api = "https://api.github.com/repos/octo/widgets/pulls/3"
    opener = StubOpener(
        [
            _redirect(api, "/repositories/1/pulls/3"),
            _redirect(api, "https://mirror.example.com/pulls/3"),
            {"number": 3, "mergeable": True, "mergeable_state": "clean"},
        ]
    )

    state = _client(opener).get_pr(LOCATION, 3)

    assert state.mergeable is True
    urls = [r.full_url for r in opener.requests]
    assert urls[1] == "https://api.github.com/repositories/1/pulls/3"
    assert opener.requests[1].get_header("Authorization") == "token ghp_abc"
    assert urls[2] == "https://mirror.example.com/pulls/3"
    assert opener.requests[2].get_header("Authorization") is None


def test_redirect_chain_is_bounded() -> None:
    api = "https://api.github.com/x"
    opener = StubOpener([_redirect(api, f"/hop/{i}") for i in range(MAX_REDIRECTS + 1)])

    with pytest.raises(TooManyRedirectsError):
        _client(opener).get_pr(LOCATION, 3)

    assert len(opener.requests) == MAX_REDIRECTS + 1


def test_server_errors_are_transient() -> None:
    opener = StubOpener([_http_error("u", 502, {"message": "Bad Gateway"})])

    with pytest.raises(TransientNetworkError, match="Bad Gateway"):
        _client(opener).get_pr(LOCATION, 3)


def test_connection_failure_is_transient() -> None:
    opener = StubOpener([urllib.error.URLError("connection refused")])

    with pytest.raises(TransientNetworkError, match="connection refused"):
        _client(opener).get_pr(LOCATION, 3)


def test_client_errors_carry_status() -> None:
    opener = StubOpener([_http_error("u", 422, {"message": "A pull request already exists"})])

    with pytest.raises(ReviewApiError) as exc_info:
        _client(opener).create_pr(LOCATION, head="h", base="main", title="t", body="b")

    assert exc_info.value.status_code == 422
    assert exc_info.value.message == "A pull request already exists"


@pytest.mark.parametrize("code", [405, 409])
def test_merge_refusal_is_merge_blocked(code: int) -> None:
    opener = StubOpener([_http_error("u", code, {"message": "Pull Request is not mergeable"})])

    with pytest.raises(MergeBlockedError, match="not mergeable"):
        _client(opener).merge_pr(LOCATION, 3, method="squash")


def test_merge_sends_method() -> None:
    opener = StubOpener([{"merged": True}])

    _client(opener).merge_pr(LOCATION, 3, method="rebase")

    request = opener.requests[0]
    assert request.get_method() == "PUT"
    assert json.loads(request.data) == {"merge_method": "rebase"}


def test_api_base_url_for_enterprise_hosts() -> None:
    assert api_base_url("github.com") == "https://api.github.com"
    assert api_base_url("git.corp.example") == "https://git.corp.example/api/v3"


def test_non_json_success_body_is_malformed_response() -> None:
    opener = StubOpener([b"<html>proxy login</html>"])

    with pytest.raises(MalformedResponseError, match="is not JSON") as exc_info:
        _client(opener).get_pr(LOCATION, 7)

    assert exc_info.value.status_code == 200


def test_created_pr_without_number_is_malformed_response() -> None:
    opener = StubOpener([{"html_url": "https://github.com/octo/widgets/pull/7"}])

    with pytest.raises(MalformedResponseError, match="no valid number"):
        _client(opener).create_pr(LOCATION, head="auto-x", base="main", title="t", body="b")


def test_pr_listing_that_is_not_a_list_is_malformed_response() -> None:
    opener = StubOpener([{"message": "unexpected"}])

    with pytest.raises(MalformedResponseError, match="list of pull requests"):
        _client(opener).find_open_prs(LOCATION, head="auto-x", base="main")


def test_truncated_response_is_transient() -> None:
    opener = StubOpener([http.client.IncompleteRead(b"{\"num")])

    with pytest.raises(TransientNetworkError, match="Reading response"):
        _client(opener).get_pr(LOCATION, 7)
