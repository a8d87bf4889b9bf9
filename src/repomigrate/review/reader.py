"""Read-only access to review state, memoized for the duration of a run."""

import logging

from repomigrate.exceptions import ReviewLookupError
from repomigrate.observability import Tracer, create_tracer
from repomigrate.observability.attributes import ATTR_REVIEW_ID, ATTR_REVIEW_STATUS
from repomigrate.protocols import ReviewApi
from repomigrate.retry import RetryConfig, RetryError, retry_async
from repomigrate.review.models import ReviewRecord

logger = logging.getLogger(__name__)


class ReviewStateReader:
    """
    Fetches review records through a ReviewApi.

    Lookups never mutate remote state. Each remote id is fetched at most
    once until ``clear()`` is called; the workflow runner clears the memo
    at the end of every run.

    Transient lookup failures are retried with the configured budget.
    When the budget is exhausted a non-transient ReviewLookupError is
    raised, which fails the change being migrated.

    Example:
        >>> reader = ReviewStateReader(api, RetryConfig(max_retries=3))
        >>> if await reader.is_landed("I8473b95934b5732ac55d26311a706c9c2bde9940"):
        ...     print("nothing to do")
    """

    def __init__(
        self,
        api: ReviewApi,
        retry_config: RetryConfig | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._api = api
        self._retry_config = retry_config or RetryConfig()
        self._memo: dict[str, ReviewRecord] = {}
        self._stats = {"lookups": 0, "memo_hits": 0}

    async def fetch(self, remote_id: str) -> ReviewRecord:
        """
        Get the review record for ``remote_id``.

        Args:
            remote_id: Review-system identifier (e.g. a Change-Id)

        Returns:
            The review record

        Raises:
            ReviewLookupError: If the lookup fails permanently or the retry
                budget is exhausted
        """
        if remote_id in self._memo:
            self._stats["memo_hits"] += 1
            return self._memo[remote_id]

        with self._tracer.span(
            "repomigrate.review.fetch",
            {ATTR_REVIEW_ID: remote_id},
        ) as span:
            self._stats["lookups"] += 1
            try:
                record = await retry_async(
                    lambda: self._api.get_change(remote_id),
                    config=self._retry_config,
                    operation_name=f"review lookup {remote_id}",
                )
            except RetryError as e:
                if span:
                    span.record_exception(e)
                raise ReviewLookupError(
                    remote_id,
                    f"gave up after {e.attempts} attempts: {e.last_error}",
                    transient=False,
                ) from e

            if span:
                span.set_attribute(ATTR_REVIEW_STATUS, record.status.value)

        logger.debug(
            f"Review {remote_id} is {record.status.value}",
            extra={"review_id": remote_id, "status": record.status.value},
        )
        self._memo[remote_id] = record
        return record

    async def is_landed(self, remote_id: str) -> bool:
        """Whether the review was merged or abandoned."""
        return (await self.fetch(remote_id)).is_landed

    def clear(self) -> None:
        """Forget memoized records."""
        self._memo.clear()

    def get_stats(self) -> dict[str, int]:
        return dict(self._stats)


__all__ = ["ReviewStateReader"]
