"""Tests for gitcms.backends.api module."""

from __future__ import annotations

from unittest.mock import patch

import pytest
import requests

from gitcms.backends.api import ApiClient, BackendAuthError, BackendError


@pytest.fixture
def client():
    return ApiClient(
        "https://git.example.com/api/v4/",
        token="secret",
        default_variables={"fullPath": "owner/repo", "branch": "main"},
    )


class TestApiClientInit:
    """ApiClient construction."""

    def test_bearer_token(self, client):
        assert client._session.headers["Authorization"] == "Bearer secret"

    def test_no_token(self):
        client = ApiClient("https://git.example.com/api")
        assert "Authorization" not in client._session.headers

    def test_graphql_root_defaults_to_api_root(self):
        client = ApiClient("https://git.example.com/api/")
        assert client.graphql_api_root == "https://git.example.com/api/graphql"


class TestFetchApi:
    """Tests for ApiClient.fetch_api()."""

    def test_json(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(json_data={"id": 1})
            assert client.fetch_api("/user") == {"id": 1}

        args, kwargs = mock_request.call_args
        assert args == ("GET", "https://git.example.com/api/v4/user")
        assert kwargs["timeout"] == 30

    def test_absolute_url(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(json_data={})
            client.fetch_api("https://other.example.com/x")
        assert mock_request.call_args[0][1] == "https://other.example.com/x"

    def test_empty_body(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(status_code=204)
            assert client.fetch_api("/thing", method="DELETE") == {}

    def test_text(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(content=b"hello")
            assert client.fetch_api("/raw", response_type="text") == "hello"

    def test_blob(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(content=b"\x89PNG")
            assert client.fetch_api("/raw", response_type="blob") == b"\x89PNG"

    def test_unauthorized(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(status_code=401)
            with pytest.raises(BackendAuthError) as exc_info:
                client.fetch_api("/user")
        assert exc_info.value.status_code == 401

    def test_error_message_from_body(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(
                status_code=404, json_data={"message": "404 Project Not Found"}
            )
            with pytest.raises(BackendError) as exc_info:
                client.fetch_api("/projects/x")
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "API error (404): 404 Project Not Found"
        assert exc_info.value.response == {"message": "404 Project Not Found"}

    def test_error_without_json(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            response = make_response(status_code=500, text="Internal error")
            response.json.side_effect = ValueError("no json")
            mock_request.return_value = response
            with pytest.raises(BackendError, match="Internal error"):
                client.fetch_api("/x")

    def test_network_error(self, client):
        with patch("requests.Session.request") as mock_request:
            mock_request.side_effect = requests.ConnectionError("refused")
            with pytest.raises(BackendError, match="Request failed"):
                client.fetch_api("/x")


class TestFetchGraphql:
    """Tests for ApiClient.fetch_graphql()."""

    def test_returns_data(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(json_data={"data": {"project": {"id": 1}}})
            assert client.fetch_graphql("query { project { id } }") == {"project": {"id": 1}}

        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://git.example.com/api/v4/graphql")

    def test_only_declared_variables_sent(self, client, make_response):
        query = "query ($fullPath: ID!, $paths: [String!]!) { x }"
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(json_data={"data": {}})
            client.fetch_graphql(query, {"paths": ["a"]})

        payload = mock_request.call_args.kwargs["json"]
        assert payload["variables"] == {"fullPath": "owner/repo", "paths": ["a"]}

    def test_explicit_variables_win(self, client, make_response):
        query = "query ($branch: String) { x }"
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(json_data={"data": {}})
            client.fetch_graphql(query, {"branch": "dev"})
        assert mock_request.call_args.kwargs["json"]["variables"] == {"branch": "dev"}

    def test_graphql_errors(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(
                json_data={"errors": [{"message": "Field 'x' doesn't exist"}, "boom"]}
            )
            with pytest.raises(BackendError) as exc_info:
                client.fetch_graphql("query { x }")
        assert exc_info.value.message == "GraphQL error: Field 'x' doesn't exist; boom"

    def test_missing_data(self, client, make_response):
        with patch("requests.Session.request") as mock_request:
            mock_request.return_value = make_response(json_data={"data": None})
            assert client.fetch_graphql("query { x }") == {}
