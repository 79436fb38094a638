"""
Local network identity: best-effort IPv4 addresses for the host and the pod.

Each resolver walks a chain of strategies (environment override, interface
table, UDP route probe) and falls back to ``UNKNOWN``. Nothing here raises.
"""
import ipaddress
import logging
import os
import socket

import psutil

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

# Any routable address works: connect() on a UDP socket sends nothing,
# it only makes the kernel pick the outbound interface.
PROBE_ADDR = ("8.8.8.8", 80)
PROBE_TIMEOUT = 2.0


def _first_ipv4(addrs):
    """Return the first non-loopback IPv4 address in ``addrs`` (psutil snicaddr list)."""
    for addr in addrs:
        if addr.family != socket.AF_INET:
            continue
        if ipaddress.ip_address(addr.address).is_loopback:
            continue
        return addr.address
    return None


def interface_ipv4(name):
    """Look up interface ``name`` and return its first non-loopback IPv4 address, or None."""
    try:
        addrs = psutil.net_if_addrs().get(name)
    except (OSError, psutil.Error) as e:
        logger.debug("Interface table unavailable: %s", e)
        return None
    if addrs is None:
        logger.debug("Interface %s not found", name)
        return None
    return _first_ipv4(addrs)


def default_route_ipv4():
    """Local address the OS would use to reach the outside world, or None."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.settimeout(PROBE_TIMEOUT)
            s.connect(PROBE_ADDR)
            return s.getsockname()[0]
    except OSError as e:
        logger.debug("UDP route probe failed: %s", e)
        return None


def resolve_host_ip(interface=""):
    """Host IP: ``HOST_IP`` override, then ``interface``, then the default route."""
    ip = os.environ.get("HOST_IP")
    if ip:
        return ip

    if interface:
        ip = interface_ipv4(interface)
        if ip:
            return ip

    return default_route_ipv4() or UNKNOWN


def resolve_pod_ip():
    """Pod IP: ``POD_IP`` override, then the first IPv4 address on any interface."""
    ip = os.environ.get("POD_IP")
    if ip:
        return ip

    try:
        table = psutil.net_if_addrs()
    except (OSError, psutil.Error) as e:
        logger.debug("Interface table unavailable: %s", e)
        return UNKNOWN

    for addrs in table.values():
        ip = _first_ipv4(addrs)
        if ip:
            return ip
    return UNKNOWN
