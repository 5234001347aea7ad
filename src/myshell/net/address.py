"""
Best effort lookup of this machine's LAN and public addresses.
"""
import logging
import os
import socket
from typing import Optional

import requests  # pylint: disable=import-error

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_IP_URL = "http://checkip.amazonaws.com/"


def get_local_ip() -> Optional[str]:
    """Return the LAN address of this machine, or None if it is unknown."""
    udp = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # No packet is sent, connecting only selects the outgoing interface
        udp.connect(("10.255.255.255", 1))
        address = udp.getsockname()[0]
    except OSError:
        try:
            address = socket.gethostbyname(socket.gethostname())
        except OSError:
            return None
    finally:
        udp.close()

    if address.startswith("127.") or address == "0.0.0.0":
        return None
    return address


def get_public_ip(timeout: float = 2.0) -> Optional[str]:
    """Return the public address of the router, or None if unreachable."""
    url = os.getenv("MYSHELL_PUBLIC_IP_URL", DEFAULT_PUBLIC_IP_URL)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.debug("Public address lookup failed: %s", e)
        return None
    return response.text.strip() or None
