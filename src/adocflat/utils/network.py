#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/adocflat/utils/network.py
"""Secure fetching of remote include targets.

Functions
---------
- is_network_disabled: Check the global network kill switch
- validate_url_security: Scheme, HTTPS, host allowlist and private IP checks
- create_secure_http_client: Create an httpx client validating every hop
- fetch_content_securely: Stream a URL's body with a size limit
"""

from __future__ import annotations

import ipaddress
import logging
import os
import socket
from typing import Any, Sequence
from urllib.parse import urlparse

from adocflat.constants import DEFAULT_USER_AGENT, DISABLE_NETWORK_ENV_VAR
from adocflat.exceptions import DependencyError, ResourceError, SecurityError

logger = logging.getLogger(__name__)


def is_network_disabled() -> bool:
    """Check if network access is globally disabled via environment variable.

    Returns
    -------
    bool
        True if ``ADOCFLAT_DISABLE_NETWORK`` is set to a truthy value

    """
    return os.getenv(DISABLE_NETWORK_ENV_VAR, "").lower() in ("true", "1", "yes", "on")


def _is_private_or_reserved_ip(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


def _resolve_hostname_to_ips(hostname: str) -> list[ipaddress.IPv4Address | ipaddress.IPv6Address]:
    try:
        infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror as e:
        raise SecurityError(f"Failed to resolve hostname {hostname}: {e}", path=hostname, original_error=e) from e
    ips = []
    for info in infos:
        address = info[4][0]
        try:
            ips.append(ipaddress.ip_address(address.split("%", 1)[0]))
        except ValueError:
            logger.debug(f"Ignoring unparseable address {address} for {hostname}")
    return ips


def validate_url_security(
    url: str,
    allowed_hosts: Sequence[str] | None = None,
    require_https: bool = True,
    block_private_networks: bool = True,
) -> None:
    """Validate a URL before any request is made.

    Parameters
    ----------
    url : str
        URL to validate
    allowed_hosts : sequence of str, optional
        Hostnames allowed to be fetched; None allows every host
    require_https : bool, default True
        Reject plain HTTP URLs
    block_private_networks : bool, default True
        Reject hosts resolving to private, loopback or reserved addresses

    Raises
    ------
    SecurityError
        If the URL fails validation

    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise SecurityError(f"Unsupported URL scheme: {parsed.scheme or '(none)'}", path=url)
    if require_https and parsed.scheme != "https":
        raise SecurityError(f"HTTPS required but got: {parsed.scheme}", path=url)

    hostname = (parsed.hostname or "").lower().rstrip(".")
    if not hostname:
        raise SecurityError("URL missing hostname", path=url)

    if allowed_hosts is not None and hostname not in {host.lower().rstrip(".") for host in allowed_hosts}:
        raise SecurityError(f"Hostname not in allowlist: {hostname}", path=url)

    if block_private_networks:
        for ip in _resolve_hostname_to_ips(hostname):
            if _is_private_or_reserved_ip(ip):
                raise SecurityError(
                    f"Access to private/reserved IP address blocked: {ip} (hostname: {hostname})", path=url
                )

    logger.debug(f"URL security validation passed for: {url}")


def create_secure_http_client(
    timeout: float,
    allowed_hosts: Sequence[str] | None = None,
    require_https: bool = True,
    block_private_networks: bool = True,
    user_agent: str | None = None,
) -> Any:
    """Create an httpx client that validates every request, including redirects.

    Raises
    ------
    DependencyError
        If httpx is not installed

    """
    try:
        import httpx
    except ImportError as e:
        raise DependencyError(
            "Remote includes",
            missing_packages=[("httpx", ">=0.27")],
            install_command="pip install adocflat[http]",
            original_import_error=e,
        ) from e

    def validate_request_url(request: Any) -> None:
        validate_url_security(
            str(request.url),
            allowed_hosts=allowed_hosts,
            require_https=require_https,
            block_private_networks=block_private_networks,
        )

    return httpx.Client(
        timeout=timeout,
        follow_redirects=True,
        event_hooks={"request": [validate_request_url]},
        headers={"User-Agent": user_agent or DEFAULT_USER_AGENT},
    )


def fetch_content_securely(
    url: str,
    timeout: float,
    max_size_bytes: int,
    allowed_hosts: Sequence[str] | None = None,
    require_https: bool = True,
    block_private_networks: bool = True,
    user_agent: str | None = None,
) -> bytes:
    """Fetch a URL's body with streaming size validation.

    Parameters
    ----------
    url : str
        URL to fetch
    timeout : float
        Request timeout in seconds
    max_size_bytes : int
        Maximum allowed response size
    allowed_hosts : sequence of str, optional
        Hostname allowlist
    require_https : bool, default True
        Reject plain HTTP URLs
    block_private_networks : bool, default True
        Reject hosts resolving to private addresses
    user_agent : str, optional
        User-Agent header value

    Returns
    -------
    bytes
        Response body

    Raises
    ------
    SecurityError
        If network access is disabled, the URL fails validation, or the
        response is too large
    ResourceError
        If the request fails

    """
    if is_network_disabled():
        raise SecurityError(f"Network access is disabled via {DISABLE_NETWORK_ENV_VAR}", path=url)

    validate_url_security(
        url, allowed_hosts=allowed_hosts, require_https=require_https, block_private_networks=block_private_networks
    )

    client = create_secure_http_client(
        timeout=timeout,
        allowed_hosts=allowed_hosts,
        require_https=require_https,
        block_private_networks=block_private_networks,
        user_agent=user_agent,
    )
    import httpx

    try:
        with client:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                chunks = []
                total_size = 0
                for chunk in response.iter_bytes(chunk_size=8192):
                    total_size += len(chunk)
                    if total_size > max_size_bytes:
                        raise SecurityError(
                            f"Response too large: exceeded {max_size_bytes} bytes during streaming", path=url
                        )
                    chunks.append(chunk)
    except SecurityError:
        raise
    except httpx.HTTPError as e:
        raise ResourceError(f"HTTP request failed for {url}: {e}", path=url, original_error=e) from e

    logger.debug(f"Fetched {total_size} bytes from {url}")
    return b"".join(chunks)
