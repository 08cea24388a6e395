"""
OPERATORS App - Per-operator tier locks

At most one tier transition may be in flight per operator. The lock
lives in the Django cache (Redis in production) so it holds across
worker processes; cache.add is the atomic "set if absent".

Requests for different operators never contend: keys are per operator.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from typing import Optional

from django.conf import settings
from django.core.cache import cache as default_cache

from operators.services.exceptions import OperatorBusy

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = 'tier-lock'


class OperatorLockManager:
    """
    Keyed, lease-based exclusive locks.

    ttl bounds how long a crashed holder can keep an operator locked;
    wait bounds how long a caller queues before failing with OperatorBusy.
    """

    def __init__(
        self,
        cache=None,
        ttl: Optional[int] = None,
        wait: Optional[float] = None,
        poll_interval: float = 0.05,
    ):
        self.cache = cache or default_cache
        self.ttl = ttl if ttl is not None else getattr(settings, 'TIER_LOCK_TTL_SECONDS', 30)
        self.wait = wait if wait is not None else getattr(settings, 'TIER_LOCK_WAIT_SECONDS', 5)
        self.poll_interval = poll_interval

    @staticmethod
    def key_for(operator_id) -> str:
        return f"{LOCK_KEY_PREFIX}:{operator_id}"

    def acquire(self, operator_id) -> str:
        """Acquire the operator's lock; returns the holder token."""
        key = self.key_for(operator_id)
        token = uuid.uuid4().hex
        started = time.monotonic()

        while not self.cache.add(key, token, self.ttl):
            waited = time.monotonic() - started
            if waited >= self.wait:
                logger.warning(
                    f"[TIERS] Lock busy for operator {operator_id} after {waited:.2f}s"
                )
                raise OperatorBusy(operator_id, waited)
            time.sleep(self.poll_interval)

        return token

    def release(self, operator_id, token: str) -> None:
        """
        Release only if we still hold it (the lease may have expired).

        get + delete is not atomic: a lease expiring between the two calls
        can drop the next holder's lock. Mutual exclusion is therefore not
        the last line: DatabaseOperatorDirectory.update_tier is a
        compare-and-swap on the expected tier, so an overlapping holder
        gets TierUpdateConflict (CONFLICT) instead of a double apply.
        Keep TIER_LOCK_TTL_SECONDS well above a transition's duration.
        """
        key = self.key_for(operator_id)
        if self.cache.get(key) == token:
            self.cache.delete(key)
        else:
            logger.warning(
                f"[TIERS] Lock lease for operator {operator_id} expired before release"
            )

    def is_locked(self, operator_id) -> bool:
        return self.cache.get(self.key_for(operator_id)) is not None

    @contextmanager
    def hold(self, operator_id):
        token = self.acquire(operator_id)
        try:
            yield token
        finally:
            self.release(operator_id, token)
