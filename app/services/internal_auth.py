from __future__ import annotations

import ipaddress
import secrets
from functools import lru_cache

from fastapi import Request

INTERNAL_TOKEN_HEADER = "X-Internal-Token"

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


@lru_cache(maxsize=32)
def parse_networks(networks_text: str) -> tuple[IPNetwork, ...]:
    """Parse a comma separated list of addresses and CIDR ranges, skipping junk."""
    networks: list[IPNetwork] = []
    for raw_entry in networks_text.split(","):
        entry = raw_entry.strip()
        if not entry:
            continue
        try:
            # A bare address becomes a single-host network.
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            continue
    return tuple(networks)


def _normalize_ip(value: str | None) -> str | None:
    candidate = (value or "").strip()
    if not candidate:
        return None
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def ip_in_networks(*, client_ip: str | None, networks_text: str) -> bool:
    if client_ip is None:
        return False
    try:
        parsed_ip = ipaddress.ip_address(client_ip)
    except ValueError:
        return False
    return any(parsed_ip in network for network in parse_networks(networks_text))


def resolve_client_ip(request: Request, *, trusted_proxies: str = "") -> str | None:
    peer_ip = _normalize_ip(request.client.host if request.client is not None else None)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if not forwarded_for or not ip_in_networks(client_ip=peer_ip, networks_text=trusted_proxies):
        return peer_ip
    # Only the first hop reported by a trusted proxy is considered.
    return _normalize_ip(forwarded_for.split(",", maxsplit=1)[0])


def has_valid_internal_token(request: Request, *, expected_token: str) -> bool:
    received = request.headers.get(INTERNAL_TOKEN_HEADER)
    if not expected_token or not received:
        return False
    return secrets.compare_digest(expected_token, received)


def internal_access_denial(
    request: Request,
    *,
    expected_token: str,
    allowlist: str,
    trusted_proxies: str = "",
) -> tuple[str | None, str | None]:
    """Return ``(reason, client_ip)``; the reason is ``None`` when access is granted."""
    client_ip = resolve_client_ip(request, trusted_proxies=trusted_proxies)
    if not ip_in_networks(client_ip=client_ip, networks_text=allowlist):
        return "ip_not_allowed", client_ip
    if not has_valid_internal_token(request, expected_token=expected_token):
        return "invalid_credentials", client_ip
    return None, client_ip
