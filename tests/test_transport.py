from urllib.parse import parse_qs, urlsplit

import pytest
from requests import PreparedRequest, Response
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from docfetch.transport import AuthTransport


class RecordingAdapter(BaseAdapter):
    def __init__(self):
        super().__init__()
        self.sent = None
        self.closed = False

    def send(self, request, **kwargs):
        self.sent = request
        response = Response()
        response.status_code = 200
        response.request = request
        response._content = b""
        return response

    def close(self):
        self.closed = True


def make_request(url, headers=None):
    request = PreparedRequest()
    request.method = "GET"
    request.url = url
    request.headers = CaseInsensitiveDict(headers or {})
    return request


@pytest.mark.parametrize(
    "url, github_token, client_id, client_secret, query_id, query_secret, authorization",
    [
        ("https://api.github.com/", "token", "", "", "", "", "token token"),
        ("https://api.github.com/", "", "12345", "secret", "12345", "secret", ""),
        ("http://www.example.com/", "token", "", "", "", "", ""),
        ("http://www.example.com/", "", "12345", "secret", "", "", ""),
        ("http://api.github.com/", "token", "", "", "", "", ""),
        ("http://api.github.com/", "", "12345", "secret", "", "", ""),
        ("//api.github.com/", "token", "", "", "", "", ""),
        ("//api.github.com/", "", "12345", "secret", "", "", ""),
    ],
)
def test_github_auth(url, github_token, client_id, client_secret, query_id, query_secret, authorization):
    base = RecordingAdapter()
    transport = AuthTransport(
        github_token=github_token,
        github_client_id=client_id,
        github_client_secret=client_secret,
        base=base,
    )
    response = transport.send(make_request(url))
    assert response.status_code == 200

    query = parse_qs(urlsplit(base.sent.url).query)
    assert query.get("client_id", [""])[0] == query_id
    assert query.get("client_secret", [""])[0] == query_secret
    assert (base.sent.headers.get("Authorization") or "") == authorization


def test_client_credentials_appended_to_existing_query():
    base = RecordingAdapter()
    transport = AuthTransport(github_client_id="12345", github_client_secret="secret", base=base)
    transport.send(make_request("https://api.github.com/repos?page=2"))
    query = parse_qs(urlsplit(base.sent.url).query)
    assert query == {"page": ["2"], "client_id": ["12345"], "client_secret": ["secret"]}


def test_client_credentials_preferred_over_token():
    base = RecordingAdapter()
    transport = AuthTransport(
        github_token="token", github_client_id="12345", github_client_secret="secret", base=base
    )
    transport.send(make_request("https://api.github.com/"))
    assert "Authorization" not in base.sent.headers
    assert parse_qs(urlsplit(base.sent.url).query)["client_id"] == ["12345"]


def test_user_agent_set_on_copy_only():
    base = RecordingAdapter()
    transport = AuthTransport(user_agent="docbot", base=base)
    original = make_request("http://www.example.com/", {"User-Agent": "orig"})
    transport.send(original)
    assert base.sent.headers["User-Agent"] == "docbot"
    assert original.headers["User-Agent"] == "orig"
    assert base.sent is not original


def test_original_request_is_not_modified():
    base = RecordingAdapter()
    transport = AuthTransport(github_token="token", base=base)
    original = make_request("https://api.github.com/")
    transport.send(original)
    assert "Authorization" not in original.headers
    assert base.sent.headers["Authorization"] == "token token"


def test_untouched_request_passed_through():
    base = RecordingAdapter()
    transport = AuthTransport(base=base)
    original = make_request("https://api.github.com/")
    transport.send(original)
    assert base.sent is original


def test_close_closes_base():
    base = RecordingAdapter()
    transport = AuthTransport(base=base)
    transport.close()
    assert base.closed is True