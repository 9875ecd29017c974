"""A requests adapter that adds GitHub API credentials and a user agent."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from requests import PreparedRequest, Response
from requests.adapters import BaseAdapter, HTTPAdapter
from requests.structures import CaseInsensitiveDict

_GITHUB_API_HOST = "api.github.com"


class AuthTransport(BaseAdapter):
    """Authenticates requests to the GitHub API over HTTPS.

    When both a token and client credentials are set, the client
    credentials are used.
    """

    def __init__(
        self,
        user_agent: str = "",
        github_token: str = "",
        github_client_id: str = "",
        github_client_secret: str = "",
        base: BaseAdapter | None = None,
    ) -> None:
        super().__init__()
        self.user_agent = user_agent
        self.github_token = github_token
        self.github_client_id = github_client_id
        self.github_client_secret = github_client_secret
        self._base = base

    @property
    def base(self) -> BaseAdapter:
        if self._base is None:
            self._base = HTTPAdapter()
        return self._base

    @staticmethod
    def _copy(request: PreparedRequest) -> PreparedRequest:
        clone = request.copy()
        if clone.headers is None:
            clone.headers = CaseInsensitiveDict()
        return clone

    def send(self, request: PreparedRequest, **kwargs) -> Response:
        """Send ``request`` through the base adapter, adding credentials where due."""
        outgoing: PreparedRequest | None = None
        if self.user_agent:
            outgoing = self._copy(request)
            outgoing.headers["User-Agent"] = self.user_agent

        parts = urlsplit(request.url or "")
        host = parts.netloc.rpartition("@")[2]
        if host == _GITHUB_API_HOST and parts.scheme == "https":
            if self.github_client_id and self.github_client_secret:
                if outgoing is None:
                    outgoing = self._copy(request)
                credentials = (
                    f"client_id={self.github_client_id}"
                    f"&client_secret={self.github_client_secret}"
                )
                query = f"{parts.query}&{credentials}" if parts.query else credentials
                outgoing.url = urlunsplit(parts._replace(query=query))
            elif self.github_token:
                if outgoing is None:
                    outgoing = self._copy(request)
                outgoing.headers["Authorization"] = f"token {self.github_token}"

        return self.base.send(outgoing if outgoing is not None else request, **kwargs)

    def close(self) -> None:
        """Close the base adapter and its connections."""
        if self._base is not None:
            self._base.close()