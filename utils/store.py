"""
Redis store clients, one per device type.

The client map is built once before any worker starts and handed out as a
read-only mapping, so workers share it without locking.
"""

import logging
from types import MappingProxyType
from typing import Mapping, Optional

import redis
from redis.backoff import NoBackoff
from redis.retry import Retry

from utils.config import settings
from utils.errors import ConfigurationError

logger = logging.getLogger(__name__)


def parse_address(address: str) -> tuple[str, int]:
    """
    Split a "host:port" store address.

    Args:
        address: Address such as "127.0.0.1:33013"

    Returns:
        Tuple of (host, port)

    Raises:
        ConfigurationError: If the address is malformed
    """
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ConfigurationError(f"Invalid store address {address!r}, expected host:port")

    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ConfigurationError(f"Invalid store port in {address!r}")

    return host, port_number


def create_client(address: str, socket_timeout: Optional[float] = None) -> redis.Redis:
    """
    Create a Redis client for one store address.

    The client's own retry is disabled; the cache writer owns the retry budget.
    Connections are opened lazily on first write.
    """
    host, port = parse_address(address)
    timeout = socket_timeout or settings.STORE_SOCKET_TIMEOUT
    return redis.Redis(
        host=host,
        port=port,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        retry=Retry(NoBackoff(), 0),
        decode_responses=False,
        encoding_errors="surrogateescape",
    )


def build_clients(
    addresses: Mapping[str, str],
    socket_timeout: Optional[float] = None,
) -> Mapping[str, redis.Redis]:
    """
    Build the read-only device type -> client map.

    Args:
        addresses: Device type to "host:port" address
        socket_timeout: Per-operation socket timeout in seconds

    Returns:
        Immutable mapping of device type to Redis client

    Raises:
        ConfigurationError: If any address is malformed
    """
    clients = {
        dev_type: create_client(address, socket_timeout)
        for dev_type, address in addresses.items()
    }
    logger.debug("Store clients ready: %s", ", ".join(f"{k}={addresses[k]}" for k in clients))
    return MappingProxyType(clients)


def close_clients(clients: Mapping[str, redis.Redis]) -> None:
    """Close every client's connection pool."""
    for dev_type, client in clients.items():
        try:
            client.close()
        except redis.RedisError as e:
            logger.warning("Failed to close store client", extra={"dev_type": dev_type, "error": str(e)})
