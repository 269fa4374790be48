"""Tests for scopecache.auth.client_credentials.ClientCredentialsProducer."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from scopecache.auth import ClientCredentialsProducer
from scopecache.exceptions import ConfigurationError, ErrorKind, ProducerError
from scopecache.models import TokenConfig

_POST = "scopecache.auth.client_credentials.httpx.post"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_token_config(**kwargs: object) -> TokenConfig:
    """Build a TokenConfig with sensible defaults overridden by kwargs."""
    defaults: dict[str, object] = {
        "token_url": "https://accounts.example.com/api/token",
        "client_id_source": "env:CLIENT_ID",
        "client_secret_source": "env:CLIENT_SECRET",
    }
    defaults.update(kwargs)
    return TokenConfig(**defaults)  # type: ignore[arg-type]


def _mock_response(
    payload: object | None = None,
    status_code: int = 200,
) -> MagicMock:
    """Create a mock httpx.Response carrying *payload* as JSON."""
    if payload is None:
        payload = {"access_token": "test-access-token", "token_type": "Bearer", "expires_in": 3600}

    mock_response = MagicMock(spec=httpx.Response)
    mock_response.status_code = status_code
    mock_response.json.return_value = payload
    mock_response.text = str(payload)

    if status_code >= 400:
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            message=f"HTTP {status_code}",
            request=MagicMock(),
            response=mock_response,
        )
    return mock_response


@pytest.fixture
def credentials_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CLIENT_ID", "my-client-id")
    monkeypatch.setenv("CLIENT_SECRET", "my-client-secret")


# ---------------------------------------------------------------------------
# Configuration validation
# ---------------------------------------------------------------------------


class TestValidateConfig:
    def test_complete_config_has_no_problems(self) -> None:
        assert ClientCredentialsProducer(_make_token_config()).validate_config() == []

    def test_missing_fields_reported(self) -> None:
        producer = ClientCredentialsProducer(TokenConfig())
        problems = producer.validate_config()
        assert len(problems) == 3
        assert any("token.token_url" in p for p in problems)
        assert any("token.client_id_source" in p for p in problems)
        assert any("token.client_secret_source" in p for p in problems)

    def test_fetch_with_missing_fields_raises_without_request(self) -> None:
        producer = ClientCredentialsProducer(_make_token_config(token_url=None))
        with patch(_POST) as mock_post:
            with pytest.raises(ConfigurationError, match="token_url"):
                producer.fetch_token()
        mock_post.assert_not_called()

    def test_unresolvable_credential_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CLIENT_ID", raising=False)
        producer = ClientCredentialsProducer(_make_token_config())
        with patch(_POST) as mock_post:
            with pytest.raises(ConfigurationError, match="CLIENT_ID"):
                producer()
        mock_post.assert_not_called()


# ---------------------------------------------------------------------------
# Token fetch
# ---------------------------------------------------------------------------


class TestFetchToken:
    def test_returns_access_token_bytes(self, credentials_env: None) -> None:
        mock_resp = _mock_response({"access_token": "fetched-token"})
        with patch(_POST, return_value=mock_resp):
            assert ClientCredentialsProducer(_make_token_config())() == b"fetched-token"

    def test_posts_client_credentials_grant(self, credentials_env: None) -> None:
        with patch(_POST, return_value=_mock_response()) as mock_post:
            ClientCredentialsProducer(_make_token_config(timeout=5.0)).fetch_token()

        mock_post.assert_called_once()
        call = mock_post.call_args
        assert call.args[0] == "https://accounts.example.com/api/token"
        assert call.kwargs["data"] == {"grant_type": "client_credentials"}
        assert call.kwargs["auth"] == ("my-client-id", "my-client-secret")
        assert call.kwargs["headers"] == {"Accept": "application/json"}
        assert call.kwargs["timeout"] == 5.0

    def test_scopes_joined_with_spaces(self, credentials_env: None) -> None:
        with patch(_POST, return_value=_mock_response()) as mock_post:
            ClientCredentialsProducer(
                _make_token_config(scopes=["read", "write"])
            ).fetch_token()
        assert mock_post.call_args.kwargs["data"]["scope"] == "read write"

    def test_returns_full_response(self, credentials_env: None) -> None:
        body = {"access_token": "t", "expires_in": 60, "token_type": "Bearer"}
        with patch(_POST, return_value=_mock_response(body)):
            assert ClientCredentialsProducer(_make_token_config()).fetch_token() == body

    def test_file_credential_source(self, tmp_path) -> None:
        secret = tmp_path / "secret.txt"
        secret.write_text("file-secret\n", encoding="utf-8")
        config = _make_token_config(
            client_id_source=f"file:{secret}", client_secret_source=f"file:{secret}"
        )
        with patch(_POST, return_value=_mock_response()) as mock_post:
            ClientCredentialsProducer(config).fetch_token()
        assert mock_post.call_args.kwargs["auth"] == ("file-secret", "file-secret")


class TestFetchTokenFailures:
    def test_http_error_status(self, credentials_env: None) -> None:
        mock_resp = _mock_response({"error": "invalid_client"}, status_code=401)
        with patch(_POST, return_value=mock_resp):
            with pytest.raises(ProducerError, match="401") as exc_info:
                ClientCredentialsProducer(_make_token_config())()
        assert exc_info.value.kind is ErrorKind.PRODUCER
        assert exc_info.value.exit_code == 7

    def test_transport_error(self, credentials_env: None) -> None:
        with patch(_POST, side_effect=httpx.ConnectError("connection refused")):
            with pytest.raises(ProducerError, match="connection refused"):
                ClientCredentialsProducer(_make_token_config())()

    def test_timeout(self, credentials_env: None) -> None:
        with patch(_POST, side_effect=httpx.ReadTimeout("timed out")):
            with pytest.raises(ProducerError, match="timed out"):
                ClientCredentialsProducer(_make_token_config())()

    def test_invalid_json(self, credentials_env: None) -> None:
        mock_resp = _mock_response()
        mock_resp.json.side_effect = ValueError("Expecting value")
        with patch(_POST, return_value=mock_resp):
            with pytest.raises(ProducerError, match="not valid JSON"):
                ClientCredentialsProducer(_make_token_config())()

    def test_missing_access_token(self, credentials_env: None) -> None:
        with patch(_POST, return_value=_mock_response({"token_type": "Bearer"})):
            with pytest.raises(ProducerError, match="access_token"):
                ClientCredentialsProducer(_make_token_config())()

    def test_non_object_response(self, credentials_env: None) -> None:
        with patch(_POST, return_value=_mock_response(["access_token"])):
            with pytest.raises(ProducerError, match="access_token"):
                ClientCredentialsProducer(_make_token_config())()
