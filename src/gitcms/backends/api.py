"""
HTTP transport shared by the Git backends.

One :class:`ApiClient` talks to a single host: REST calls through
:meth:`ApiClient.fetch_api` and GraphQL queries through
:meth:`ApiClient.fetch_graphql`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Literal

import requests

logger = logging.getLogger(__name__)

ResponseType = Literal["json", "text", "blob"]

GRAPHQL_VARIABLE_RE = re.compile(r"\$(\w+)\s*:")


class BackendError(Exception):
    """Error returned by a backend API, or raised while reaching it."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(message)


class BackendAuthError(BackendError):
    """The token was rejected."""


class ApiClient:
    """Client for one backend host.

    Args:
        api_root: REST API root, e.g. ``https://gitlab.com/api/v4``
        graphql_api_root: GraphQL endpoint; defaults to ``{api_root}/graphql``
        token: Access token sent as a bearer token
        default_variables: Variables merged into every GraphQL call when the
            query declares them (``fullPath``, ``owner``, ``repo``, ``branch``)
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        api_root: str,
        graphql_api_root: str | None = None,
        token: str | None = None,
        default_variables: dict[str, Any] | None = None,
        timeout: float = 30,
    ):
        self.api_root = api_root.rstrip("/")
        self.graphql_api_root = graphql_api_root or f"{self.api_root}/graphql"
        self.token = token
        self.default_variables = dict(default_variables or {})
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": "gitcms"})
        if token:
            self._session.headers.update({"Authorization": f"Bearer {token}"})

    def _request(
        self,
        method: str,
        url: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method, url, json=body, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise BackendError(f"Request failed: {e}") from e

        if response.status_code == 401:
            raise BackendAuthError("Invalid or expired token", status_code=401)

        if not response.ok:
            try:
                error_data = response.json()
                message = error_data.get("message", response.text)
            except Exception:
                error_data = None
                message = response.text
            raise BackendError(
                f"API error ({response.status_code}): {message}",
                status_code=response.status_code,
                response=error_data,
            )

        return response

    def fetch_api(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        response_type: ResponseType = "json",
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make a REST request.

        Args:
            path: Path relative to the API root, or an absolute URL
            method: HTTP method
            body: JSON body
            response_type: ``json``, ``text`` or ``blob`` (bytes)
            headers: Extra request headers

        Returns:
            Decoded response

        Raises:
            BackendError: On network errors or non-2xx responses
        """
        url = path if path.startswith(("https://", "http://")) else (
            f"{self.api_root}/{path.lstrip('/')}"
        )
        response = self._request(method, url, body, headers)

        if response_type == "blob":
            return response.content
        if response_type == "text":
            return response.text
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise BackendError(
                f"Invalid JSON from {path}", status_code=response.status_code
            ) from e

    def fetch_graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a GraphQL query.

        Default variables are only sent when the query declares them.

        Returns:
            The ``data`` member of the response

        Raises:
            BackendError: On network errors, non-2xx responses or GraphQL errors
        """
        declared = set(GRAPHQL_VARIABLE_RE.findall(query))
        payload_variables = {
            key: value for key, value in self.default_variables.items() if key in declared
        }
        payload_variables.update(variables or {})

        response = self._request(
            "POST", self.graphql_api_root, {"query": query, "variables": payload_variables}
        )
        try:
            result = response.json()
        except json.JSONDecodeError as e:
            raise BackendError("Invalid JSON from GraphQL API", response.status_code) from e

        if result.get("errors"):
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in result["errors"]
            )
            raise BackendError(
                f"GraphQL error: {messages}",
                status_code=response.status_code,
                response=result,
            )

        data: dict[str, Any] = result.get("data") or {}
        return data
