"""OAuth2 Client Credentials token producer.

:class:`ClientCredentialsProducer` performs the non-interactive Client
Credentials grant (:rfc:`6749` section 4.4): it POSTs
``grant_type=client_credentials`` to the configured ``token_url`` with the
client id and secret in an HTTP Basic ``Authorization`` header and returns the
``access_token`` from the JSON response.

The producer does no caching of its own. Wrap it in
:class:`~scopecache.auth.token.TokenProvider` (or any
:class:`~scopecache.cache.aside.CacheAside`) so the endpoint is only hit when
the stored token is stale.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from scopecache.config import resolve_credential
from scopecache.exceptions import ConfigurationError, ProducerError
from scopecache.models import TokenConfig

logger = logging.getLogger(__name__)


class ClientCredentialsProducer:
    """Zero-argument callable that fetches a fresh access token.

    Args:
        token_config: Token endpoint and credential sources.

    Example::

        produce = ClientCredentialsProducer(TokenConfig(
            token_url="https://accounts.example.com/api/token",
            client_id_source="env:CLIENT_ID",
            client_secret_source="env:CLIENT_SECRET",
        ))
        token = produce().decode()
    """

    def __init__(self, token_config: TokenConfig) -> None:
        self._config = token_config

    def __call__(self) -> bytes:
        token_data = self.fetch_token()
        return str(token_data["access_token"]).encode("utf-8")

    def validate_config(self) -> list[str]:
        """Return human-readable problems with the token configuration. Empty if valid."""
        errors: list[str] = []
        if not self._config.token_url:
            errors.append("Client credentials flow requires 'token.token_url'")
        if not self._config.client_id_source:
            errors.append("Client credentials flow requires 'token.client_id_source'")
        if not self._config.client_secret_source:
            errors.append("Client credentials flow requires 'token.client_secret_source'")
        return errors

    def fetch_token(self) -> dict[str, Any]:
        """POST to the token endpoint and return the parsed JSON response.

        Raises:
            ConfigurationError: If required settings are missing or a
                credential source cannot be resolved.
            ProducerError: If the request fails, the endpoint answers with a
                non-2xx status, or ``access_token`` is absent.
        """
        problems = self.validate_config()
        if problems:
            raise ConfigurationError("; ".join(problems))
        assert self._config.token_url is not None
        assert self._config.client_id_source is not None
        assert self._config.client_secret_source is not None

        client_id = resolve_credential(self._config.client_id_source)
        client_secret = resolve_credential(self._config.client_secret_source)

        data: dict[str, str] = {"grant_type": "client_credentials"}
        if self._config.scopes:
            data["scope"] = " ".join(self._config.scopes)

        logger.debug("Requesting token from %s", self._config.token_url)
        try:
            response = httpx.post(
                self._config.token_url,
                data=data,
                auth=(client_id, client_secret),
                headers={"Accept": "application/json"},
                timeout=self._config.timeout,
            )
            response.raise_for_status()
            token_data: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as exc:
            raise ProducerError(
                f"Token request failed with status {exc.response.status_code}: "
                f"{exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProducerError(f"Token request failed: {exc}") from exc
        except ValueError as exc:
            raise ProducerError(f"Token response is not valid JSON: {exc}") from exc

        if not isinstance(token_data, dict) or "access_token" not in token_data:
            raise ProducerError("Token response missing 'access_token' field")

        return token_data
