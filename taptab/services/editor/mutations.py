"""
Optimistic mutation command.

A mutation runs in four steps:

1. cancel in-flight fetches and snapshot every affected cache key
2. apply the local projection to the cache
3. await the backend call
4. on failure restore each snapshot verbatim (removing keys that did not
   exist), publish an error notification and return a failed result;
   on success invalidate the affected keys

``run`` never raises: backend errors are reported through the returned
``MutationResult``.
"""

import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

from taptab.services.backend.base import BackendError
from taptab.services.editor.notifier import Notifier
from taptab.services.editor.query_cache import Key, QueryCache

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "temp_"


def generate_temp_id() -> str:
    """Placeholder id for optimistically created rows."""
    return f"{TEMP_ID_PREFIX}{uuid.uuid4()}"


def is_temp_id(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(TEMP_ID_PREFIX)


@dataclass
class MutationResult:
    """
    Outcome of an optimistic mutation.

    Attributes:
        success: Whether the backend accepted the change
        data: Backend response (e.g. the created row)
        error_message: Error description if the mutation failed
    """
    success: bool
    data: Any = None
    error_message: Optional[str] = None


class OptimisticMutation:
    """
    Example:
        >>> mutation = OptimisticMutation(
        ...     cache, notifier,
        ...     keys=[("categories", rid)],
        ...     apply=lambda c: c.set_data(("categories", rid), lambda rows: rows + [temp]),
        ...     commit=lambda: backend.insert("categories", values),
        ...     invalidate=lambda data: [("categories", rid)],
        ...     error_title="Failed to create category",
        ... )
        >>> result = await mutation.run()
    """

    def __init__(
        self,
        cache: QueryCache,
        notifier: Notifier,
        keys: Iterable[Key],
        apply: Callable[[QueryCache], None],
        commit: Callable[[], Awaitable[Any]],
        invalidate: Optional[Callable[[Any], Awaitable[None]]] = None,
        error_title: str = "Update failed",
    ):
        self.cache = cache
        self.notifier = notifier
        self.keys = list(keys)
        self.apply = apply
        self.commit = commit
        self.invalidate = invalidate
        self.error_title = error_title
        self._snapshots: dict[Key, tuple[bool, Any]] = {}

    def _snapshot(self) -> None:
        for key in self.keys:
            self.cache.cancel(key)
            self._snapshots[key] = (self.cache.has(key), copy.deepcopy(self.cache.get_data(key)))

    def _rollback(self) -> None:
        for key, (existed, data) in self._snapshots.items():
            if existed:
                self.cache.set_data(key, data)
            else:
                self.cache.remove(key)

    async def run(self) -> MutationResult:
        self._snapshot()
        self.apply(self.cache)

        try:
            data = await self.commit()
        except BackendError as e:
            self._rollback()
            self.notifier.error(self.error_title, e.message)
            return MutationResult(success=False, error_message=e.message)
        except Exception as e:
            logger.exception(f"{self.error_title}: unexpected error")
            self._rollback()
            self.notifier.error(self.error_title, str(e))
            return MutationResult(success=False, error_message=str(e))

        if self.invalidate is not None:
            try:
                await self.invalidate(data)
            except BackendError as e:
                logger.warning(f"Invalidation after '{self.error_title}' failed: {e}")

        return MutationResult(success=True, data=data)
