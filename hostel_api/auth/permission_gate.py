"""
Permission evaluation raced against a timeout.

``PermissionGate.evaluate`` runs one check per permission concurrently and
grants access when any of them succeeds. The checks race a timer: when the
timer wins the request is denied and the checks are left to finish on their
own. Whatever they eventually return (or raise) is dropped.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, TypeVar

from hostel_api.models.shared.enums import Permission

logger = logging.getLogger(__name__)

T = TypeVar("T")

PermissionChecker = Callable[[int, Permission], Awaitable[bool]]


class EvaluationTimeout(Exception):
    """The permission checks did not finish within the allotted time"""


def _discard_result(task: asyncio.Future) -> None:
    # Mark a late exception as retrieved so it is not reported as unhandled
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Late permission check failed after timeout: {task.exception()!r}")


async def first_of(awaitable: Awaitable[T], timeout: float) -> T:
    """
    Await ``awaitable`` unless ``timeout`` seconds pass first.

    On timeout ``EvaluationTimeout`` is raised and the underlying task keeps
    running without being cancelled; its outcome is discarded.
    """
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if task in done:
        return task.result()

    task.add_done_callback(_discard_result)
    raise EvaluationTimeout(f"permission check exceeded {timeout}s")


class PermissionGate:
    def __init__(self, checker: PermissionChecker, timeout: float = 5.0):
        self._checker = checker
        self.timeout = timeout

    async def _check_all(self, user_id: int, permissions: Iterable[Permission]) -> bool:
        results = await asyncio.gather(*(self._checker(user_id, p) for p in permissions))
        return any(results)

    async def evaluate(self, user_id: int, permissions: Iterable[Permission]) -> bool:
        """
        True when ``user_id`` holds at least one of ``permissions``.

        A timeout counts as a denial. Exceptions raised by the checker
        propagate to the caller.
        """
        permissions = list(permissions)
        if not permissions:
            return False
        try:
            return await first_of(self._check_all(user_id, permissions), self.timeout)
        except EvaluationTimeout:
            logger.warning(
                f"Permission check for user {user_id} timed out after {self.timeout}s; denying"
            )
            return False
