# app/utils/ip_utils.py
"""
Client IP extraction, validation and trusted-IP matching.

IP addresses change (mobile networks, VPNs, dynamic leases), so matching is a
convenience for skipping the magic-link step, never the only safeguard: the
login governor and the per-account auto-login switch still apply.
"""

import ipaddress
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional

import requests
from fastapi import Request

from app.core.config import settings

logger = logging.getLogger(__name__)

UNKNOWN_IP = "unknown"

# Most reliable first
IP_HEADERS = (
    "cf-connecting-ip",      # Cloudflare
    "x-real-ip",             # nginx
    "x-forwarded-for",       # standard proxy chain, client first
    "x-client-ip",
    "x-cluster-client-ip",
    "x-forwarded",
    "forwarded-for",
    "forwarded",             # RFC 7239
)

_IPV4_RE = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)

_PRIVATE_PATTERNS = (
    re.compile(r"^127\."),
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[01])\."),
    re.compile(r"^192\.168\."),
    re.compile(r"^169\.254\."),
    re.compile(r"^::1$"),
    re.compile(r"^f[cd][0-9a-f]{2}:", re.IGNORECASE),
    re.compile(r"^fe80:", re.IGNORECASE),
)


def is_ipv4(ip: Optional[str]) -> bool:
    return isinstance(ip, str) and bool(_IPV4_RE.match(ip))


def is_ipv6(ip: Optional[str]) -> bool:
    if not isinstance(ip, str) or ":" not in ip or "%" in ip:
        return False
    try:
        ipaddress.IPv6Address(ip)
    except ValueError:
        return False
    return True


def is_valid_ip(ip: Optional[str]) -> bool:
    """True for a dotted-quad IPv4 address or a well-formed IPv6 address."""
    return is_ipv4(ip) or is_ipv6(ip)


def is_private_ip(ip: Optional[str]) -> bool:
    """Loopback, RFC 1918, link-local and IPv6 unique-local addresses."""
    if not is_valid_ip(ip):
        return False
    return any(pattern.match(ip) for pattern in _PRIVATE_PATTERNS)


def _strip_node_port(node: str) -> str:
    # 192.0.2.60:4711  /  [2001:db8::1]:4711  /  [2001:db8::1]
    if node.startswith("["):
        return node[1:].partition("]")[0]
    if node.count(":") == 1:
        return node.partition(":")[0]
    return node


def _candidate_from_header(name: str, value: str) -> str:
    first = value.split(",")[0].strip()
    if name == "forwarded" and "for=" in first.lower():
        # for=192.0.2.60;proto=http  /  for="[2001:db8::1]:4711"
        for part in first.split(";"):
            key, _, val = part.strip().partition("=")
            if key.lower() == "for":
                return _strip_node_port(val.strip().strip('"'))
    return first


def extract_ip_address(headers: Mapping[str, str], remote_addr: Optional[str] = None) -> str:
    """
    Best-effort client IP from proxy headers, falling back to the peer address.

    Invalid header values are skipped. Returns "unknown" when nothing usable
    is present.
    """
    lowered = {str(k).lower(): v for k, v in headers.items()}

    for header in IP_HEADERS:
        value = lowered.get(header)
        if not value:
            continue
        ip = _candidate_from_header(header, value)
        if is_valid_ip(ip):
            return ip

    if remote_addr and is_valid_ip(remote_addr):
        return remote_addr

    logger.warning("Unable to extract a valid IP address from request")
    return UNKNOWN_IP


def get_client_ip(request: Request) -> str:
    """Extract real client IP (handles proxies/load balancers)"""
    remote_addr = request.client.host if request.client else None
    return extract_ip_address(request.headers, remote_addr)


def get_user_agent(request: Request) -> Optional[str]:
    user_agent = request.headers.get("user-agent")
    return user_agent[:512] if user_agent else None


@dataclass
class TrustMatch:
    is_match: bool
    matched_record: Optional[Any] = None
    match_type: str = "none"  # exact | subnet | none


def _record_ip(record: Any) -> Optional[str]:
    if isinstance(record, dict):
        return record.get("ip")
    return getattr(record, "ip", None)


def check_trusted_ip(
    current_ip: Optional[str],
    trusted_records: Optional[Iterable[Any]],
    tolerance: Optional[int] = None,
) -> TrustMatch:
    """
    Match the current IP against an account's trusted records.

    Exact matches win. Otherwise an IPv4 address matches a record in the same
    /24 whose last octet is within `tolerance` (first such record in stored
    order).
    """
    records = list(trusted_records or [])
    if not current_ip or current_ip == UNKNOWN_IP or not records:
        return TrustMatch(is_match=False)

    for record in records:
        if _record_ip(record) == current_ip:
            return TrustMatch(is_match=True, matched_record=record, match_type="exact")

    if not is_ipv4(current_ip):
        return TrustMatch(is_match=False)

    if tolerance is None:
        tolerance = settings.SUBNET_OCTET_TOLERANCE

    current_octets = current_ip.split(".")
    current_subnet = current_octets[:3]
    current_last = int(current_octets[3])

    for record in records:
        trusted_ip = _record_ip(record)
        if not is_ipv4(trusted_ip):
            continue
        trusted_octets = trusted_ip.split(".")
        if trusted_octets[:3] != current_subnet:
            continue
        if abs(current_last - int(trusted_octets[3])) <= tolerance:
            return TrustMatch(is_match=True, matched_record=record, match_type="subnet")

    return TrustMatch(is_match=False)


def get_geolocation(ip_address: str) -> Optional[Dict[str, Any]]:
    """
    Get geolocation from IP address using the free ip-api.com service.
    Returns None for private/unknown addresses or on any lookup failure.
    """
    if not is_valid_ip(ip_address) or is_private_ip(ip_address):
        return None

    try:
        response = requests.get(f"http://ip-api.com/json/{ip_address}", timeout=3)
        if response.status_code != 200:
            return None
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Geolocation lookup failed for {ip_address}: {e}")
        return None

    if data.get("status") != "success":
        return None

    return {
        "country": data.get("country"),
        "region": data.get("regionName"),
        "city": data.get("city"),
        "latitude": data.get("lat"),
        "longitude": data.get("lon"),
        "timezone": data.get("timezone"),
        "isp": data.get("isp"),
    }
