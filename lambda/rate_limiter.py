"""Per-client request limiting: a short cooldown plus an hourly quota."""

import logging
import math
import time
from datetime import datetime, timezone

from config import (
    RATE_LIMIT_COOLDOWN_SECONDS,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_MAX_TRACKED_CLIENTS,
    RATE_LIMIT_WINDOW_SECONDS,
)

logger = logging.getLogger(__name__)


class RateLimiter:
    """In-memory limiter, one instance per process.

    State is per warm Lambda container, so limits are approximate across
    containers.
    """

    def __init__(self, max_requests=RATE_LIMIT_MAX_REQUESTS,
                 window_seconds=RATE_LIMIT_WINDOW_SECONDS,
                 cooldown_seconds=RATE_LIMIT_COOLDOWN_SECONDS,
                 max_tracked=RATE_LIMIT_MAX_TRACKED_CLIENTS,
                 clock=time.time):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cooldown_seconds = cooldown_seconds
        self.max_tracked = max_tracked
        self.clock = clock
        self._clients = {}

    def check(self, client_id):
        """Record a request from client_id if it is allowed.

        Returns dict with 'allowed' and, when refused, 'reason', 'messageKey'
        and 'meta' for the response body.
        """
        now = self.clock()
        entry = self._clients.get(client_id) or {'count': 0, 'start': now, 'last': None}

        if entry['last'] is not None and now - entry['last'] < self.cooldown_seconds:
            time_left = math.ceil(self.cooldown_seconds - (now - entry['last']))
            return {
                'allowed': False,
                'reason': 'COOLDOWN_ACTIVE',
                'messageKey': 'ERROR_COOLDOWN',
                'meta': {'timeLeft': time_left},
            }

        if now - entry['start'] > self.window_seconds:
            entry['start'] = now
            entry['count'] = 0

        if entry['count'] >= self.max_requests:
            reset_at = datetime.fromtimestamp(entry['start'] + self.window_seconds, timezone.utc)
            logger.info(f'Rate limit exceeded for {client_id}')
            return {
                'allowed': False,
                'reason': 'RATE_LIMIT_EXCEEDED',
                'messageKey': 'ERROR_RATE_LIMIT',
                'meta': {'resetTime': reset_at.isoformat()},
            }

        entry['count'] += 1
        entry['last'] = now
        self._clients[client_id] = entry

        if len(self._clients) > self.max_tracked:
            self._prune(now)

        return {'allowed': True}

    def remaining(self, client_id):
        entry = self._clients.get(client_id)
        if entry is None or self.clock() - entry['start'] > self.window_seconds:
            return self.max_requests
        return max(0, self.max_requests - entry['count'])

    def _prune(self, now):
        stale = [
            cid for cid, entry in self._clients.items()
            if now - entry['start'] > self.window_seconds * 2
        ]
        for cid in stale:
            del self._clients[cid]
        if stale:
            logger.info(f'Pruned {len(stale)} stale rate limit entries')
