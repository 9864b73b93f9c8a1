from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Iterator, List, Optional

from .floors import floor_label
from .interface import Request

logger = logging.getLogger(__name__)


class RequestQueue:
    """FIFO of pending car requests.

    Anonymous hall calls are deduplicated on (floor, direction, type);
    rider-bound requests are always admitted. Requests expire after
    ``timeout`` seconds or as soon as their rider stops waiting.
    """

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout
        self._pending: Deque[Request] = deque()

    def __len__(self) -> int:
        return len(self._pending)

    def __iter__(self) -> Iterator[Request]:
        return iter(list(self._pending))

    def has_equivalent(self, request: Request) -> bool:
        return any(
            existing.floor == request.floor
            and existing.going_up == request.going_up
            and existing.request_type is request.request_type
            and not existing.is_bound
            for existing in self._pending
        )

    def admit(self, request: Request) -> bool:
        if not request.is_bound and self.has_equivalent(request):
            return False
        self._pending.append(request)
        return True

    def force(self, request: Request) -> None:
        self._pending.append(request)

    def pop(self) -> Optional[Request]:
        if not self._pending:
            return None
        return self._pending.popleft()

    def requeue(self, request: Request) -> None:
        self._pending.append(request)

    def is_stale(self, request: Request, now: float) -> bool:
        if request.rider is not None and not request.rider.awaiting_car:
            return True
        return request.age(now) > self.timeout

    def purge(self, now: float) -> List[Request]:
        kept: Deque[Request] = deque()
        dropped: List[Request] = []
        for request in self._pending:
            if self.is_stale(request, now):
                dropped.append(request)
                logger.debug("Dropping stale %s request at floor %s", request.request_type.value, floor_label(request.floor))
            else:
                kept.append(request)
        self._pending = kept
        if dropped:
            logger.info("Purged %d stale request(s)", len(dropped))
        return dropped

    def clear(self) -> None:
        self._pending.clear()
