from __future__ import annotations

import logging
import re
import threading
from typing import Iterator

import httpx

from ocireferrers.oci.errors import (
    AuthenticationError,
    ContentSizeMismatch,
    NotFoundError,
    OperationCancelled,
    RegistryError,
)
from ocireferrers.oci.request import Request

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(30.0)

_CHALLENGE_PARAM_RE = re.compile(r'(\w+)="([^"]*)"')


def _parse_www_auth(www_authenticate: str) -> tuple[str, dict[str, str]]:
    """Parse the WWW-Authenticate header into the scheme and its parameters"""
    scheme, _, params = www_authenticate.strip().partition(" ")
    return scheme.lower(), dict(_CHALLENGE_PARAM_RE.findall(params))


class BearerAuth:
    """Attaches HTTP Bearer Authentication to the given Request object."""

    def __init__(self, token: str):
        self.token = token

    def __call__(self, request):
        request.headers["Authorization"] = f"Bearer {self.token}"
        return request


class ContentStream:
    """Body of a registry response.

    Whoever receives a ContentStream owns it and must close it,
    either explicitly or by using it as a context manager.
    """

    def __init__(self, response: httpx.Response):
        self._response = response

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def closed(self) -> bool:
        return self._response.is_closed

    def read(self) -> bytes:
        return self._response.read()

    def iter_bytes(self, chunk_size: int | None = None) -> Iterator[bytes]:
        return self._response.iter_bytes(chunk_size)

    def close(self):
        self._response.close()


def _error_message(request: Request, response: httpx.Response) -> str:
    message = f"unexpected status code {request}: {response.status_code} {response.reason_phrase}"
    response.read()
    try:
        errors = response.json().get("errors") or []
    except (ValueError, AttributeError):
        return message
    details = "; ".join(
        f"{e.get('code', 'UNKNOWN')}: {e.get('message', '')}"
        for e in errors
        if isinstance(e, dict)
    )
    if details:
        message += f" - Server message: {details}"
    return message


class Client:
    """Client for the OCI registry API."""

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: httpx.Timeout | float | None = DEFAULT_TIMEOUT,
    ):
        self.username = username
        self.password = password
        self._transport = transport
        self._timeout = timeout
        self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def session(self) -> httpx.Client:
        if self._session is None:
            self._session = httpx.Client(
                follow_redirects=True,
                max_redirects=2,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._session

    def close(self):
        if self._session is not None:
            self._session.close()
            self._session = None

    def authenticate(self, www_authenticate: str, scope: str | None = None):
        """Answer an authentication challenge

        Bearer challenges use the token api, with basic authentication
        when credentials are available and anonymously otherwise.

        ref: https://distribution.github.io/distribution/spec/auth/token/
        """
        scheme, challenge = _parse_www_auth(www_authenticate)
        logger.debug("Authentication challenge: %s %s", scheme, challenge)
        if scheme == "basic":
            if not self.password:
                raise AuthenticationError(
                    "Registry requires authentication, "
                    "provide a username and/or password."
                )
            return httpx.BasicAuth(self.username or "", self.password)
        if scheme != "bearer" or "realm" not in challenge:
            raise AuthenticationError(
                f"Unsupported authentication challenge: {www_authenticate!r}"
            )

        params = {"service": challenge.get("service", "")}
        if scope := scope or challenge.get("scope"):
            params["scope"] = scope
        auth = None
        if self.password:
            params["account"] = self.username or ""
            auth = (self.username or "", self.password)
        response = self.session.get(challenge["realm"], params=params, auth=auth)
        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Token request to {challenge['realm']} was rejected "
                f"({response.status_code})"
            )
        response.raise_for_status()
        body = response.json()
        token = body.get("token") or body.get("access_token")
        if not token:
            raise AuthenticationError(f"No token returned by {challenge['realm']}")
        return BearerAuth(token)

    def _send(self, request: Request, media_type: str) -> httpx.Response:
        http_request = self.session.build_request(
            request.method,
            request.url,
            params=request.query,
            # Signature tags hold a manifest, not an index
            headers={"Accept": f"{media_type}, */*", **request.headers},
        )
        response = self.session.send(http_request, stream=True)
        if response.status_code != 401:
            return response

        www_authenticate = response.headers.get("WWW-Authenticate", "")
        response.close()
        if not www_authenticate:
            raise AuthenticationError(f"{request} returned 401 without a challenge")
        auth = self.authenticate(www_authenticate, scope=request.scope)
        response = self.session.send(http_request, auth=auth, stream=True)
        if response.status_code == 401:
            response.close()
            raise AuthenticationError(f"{request} is not authorized")
        return response

    def open(
        self,
        request: Request,
        media_type: str,
        size: int = 0,
        allow_fallback: bool = True,
        cancel: threading.Event | None = None,
    ) -> tuple[ContentStream, int]:
        """Send `request` and return the response body with its length

        With `allow_fallback` a 404 raises NotFoundError so the caller can
        try elsewhere, otherwise it raises RegistryError like any other
        failed status. A non-zero `size` must match the returned length.
        The response is closed before any error is raised.
        """
        if cancel is not None and cancel.is_set():
            raise OperationCancelled(f"{request} cancelled")

        logger.debug("Sending %s", request)
        response = self._send(request, media_type)
        try:
            if response.status_code == 404 and allow_fallback:
                raise NotFoundError(f"content at {request} not found")
            if not response.is_success:
                raise RegistryError(
                    _error_message(request, response), response.status_code
                )
            length = response.headers.get("Content-Length")
            if length is None:
                # Chunked response, the body has to be read to know its size
                length = len(response.read())
            else:
                length = int(length)
            if size and size != length:
                raise ContentSizeMismatch(expected=size, actual=length)
        except Exception:
            response.close()
            raise
        return ContentStream(response), length
