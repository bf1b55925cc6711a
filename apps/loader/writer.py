"""
Cache writer - stores encoded records in the Redis store for their device type.

Writes are retried with a fixed delay. Encoding failures and unknown device
types are not retried. None of these failures escape: the writer reports
success or failure and the file processor counts the line.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping

import redis
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_fixed

from utils import codec
from utils.config import Settings
from utils.errors import SerializationError, UnknownDeviceType
from utils.schemas import AppsInstalled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for a single store write."""

    max_attempts: int = 5
    delay: float = 0.2
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    @classmethod
    def from_settings(cls, config: Settings) -> "RetryPolicy":
        return cls(max_attempts=config.STORE_MAX_ATTEMPTS, delay=config.STORE_RETRY_DELAY)

    def retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception_type(redis.RedisError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.delay),
            sleep=self.sleep,
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        )


DEFAULT_RETRY_POLICY = RetryPolicy()


def insert_appsinstalled(
    record: AppsInstalled,
    clients: Mapping[str, redis.Redis],
    dry: bool = False,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> bool:
    """
    Write one record to the store for its device type.

    Args:
        record: Parsed record
        clients: Device type -> store client map
        dry: If True, only log the record and report success
        policy: Retry budget for the store write

    Returns:
        True if the record was stored (or logged in dry mode), False otherwise
    """
    key = record.key

    if dry:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s -> %s", key, codec.encode_text(record))
        return True

    try:
        payload = codec.encode(record)
        client = _resolve_client(record, clients)
    except SerializationError as e:
        logger.warning("Could not serialize record: %s", e)
        return False
    except UnknownDeviceType as e:
        logger.warning("%s", e)
        return False

    try:
        policy.retrying()(client.set, key, payload)
    except redis.RedisError as e:
        logger.warning(
            "Could not write to store: %s (%d attempts)",
            record.dev_type,
            policy.max_attempts,
            extra={"key": key, "error": str(e)},
        )
        return False

    return True


def _resolve_client(record: AppsInstalled, clients: Mapping[str, redis.Redis]) -> redis.Redis:
    try:
        return clients[record.dev_type]
    except KeyError:
        raise UnknownDeviceType(f"Unexpected device type: {record.dev_type!r}") from None
