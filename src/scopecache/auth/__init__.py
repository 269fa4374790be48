"""Credential producers and the cached token provider.

* :class:`ClientCredentialsProducer` -- fetches an OAuth2 client-credentials
  access token with :mod:`httpx`.
* :class:`TokenProvider` -- reuses that token from the file cache until its
  TTL runs out.
"""

from scopecache.auth.client_credentials import ClientCredentialsProducer
from scopecache.auth.token import TokenProvider, token_cache_key

__all__ = ["ClientCredentialsProducer", "TokenProvider", "token_cache_key"]
