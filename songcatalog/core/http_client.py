# songcatalog/core/http_client.py
"""
Global HTTP client manager for connection reuse.
The enrichment client shares a single httpx.AsyncClient instance across requests.
"""

import httpx


class HttpClientManager:
    """
    Singleton HTTP client manager that provides a shared AsyncClient.

    Features:
    - HTTP/2 support for multiplexing
    - Connection pooling (10 keepalive, 20 max)
    - Configurable timeout, set once at startup
    """
    _client: httpx.AsyncClient | None = None
    timeout: float = 10.0

    @classmethod
    def configure(cls, timeout: float) -> None:
        """Set the timeout used when the shared client is (re)created."""
        cls.timeout = timeout

    @classmethod
    def get_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client instance."""
        if cls._client is None or cls._client.is_closed:
            limits = httpx.Limits(
                max_keepalive_connections=10,
                max_connections=20
            )
            cls._client = httpx.AsyncClient(
                http2=True,  # requires httpx[http2]
                timeout=cls.timeout,
                limits=limits,
                headers={
                    'User-Agent': 'SongCatalog/1.0',
                    'Accept': 'application/json'
                }
            )
        return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the shared client. Call on app shutdown."""
        if cls._client is not None and not cls._client.is_closed:
            await cls._client.aclose()
            cls._client = None
