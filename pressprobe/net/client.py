"""Shared HTTP client construction."""

import httpx

from pressprobe import __version__

DEFAULT_USER_AGENT = f"Mozilla/5.0 (compatible; PressProbe/{__version__})"
DEFAULT_TIMEOUT = 5.0


def create_client(
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
    verify: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the AsyncClient shared by every probe in one run.

    Args:
        timeout: Default per-request timeout in seconds.
        user_agent: User-Agent header value.
        verify: Verify TLS certificates.
        transport: Optional transport (tests pass ``httpx.MockTransport``).

    Returns:
        Configured client. The caller owns it and must close it.
    """
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": user_agent},
        follow_redirects=True,
        verify=verify,
        transport=transport,
    )
