"""ExecutionCoordinator: cache-first, bounded-concurrency period analysis.

Batches run strictly one after another; jobs inside a batch share a thread
pool of ``max_concurrency`` workers. A batch settles only when every job in it
has produced an analysis (real, cached or placeholder). The next batch then
starts, which caps peak load at the cost of idle workers while a batch's
slowest job finishes.
"""

from __future__ import annotations

import concurrent.futures
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

from ..cache import ChronicleCache
from ..config import ChronicleConfig
from ..exceptions import ChronicleError, DataGap, InputError, RetriesExhausted
from ..logging_config import get_logger
from ..planning.models import Period, Strategy
from ..planning.planner import period_revision
from ..sources.artifacts import ArtifactCatalog
from ..sources.models import Artifact, ArtifactKind, CommitRange
from ..sources.protocols import CommitSource, TextOracle
from .aggregate import aggregate
from .analyzer import PeriodAnalyzer, placeholder_analysis
from .batching import plan_batches
from .models import AggregatedResult, CacheStatus, ExecutionSummary, PeriodAnalysis
from .retry import call_pool, call_with_timeout, retry_transient

logger = get_logger(__name__)

ProgressCallback = Optional[Callable[[int, int], None]]


@dataclass(frozen=True)
class _JobOutcome:
    analysis: PeriodAnalysis
    retries: int = 0


class ExecutionCoordinator:
    """Run period jobs and aggregate their results.

    Args:
        commit_source: Commit retrieval collaborator
        oracle: Text oracle for classification and similarity
        config: Resolved configuration
        cache: Keyed store; opened at the start of run() and closed at the end
        catalog: Artifact catalog, or None to skip matching
        sleep: Backoff sleeper, injectable for tests
        on_progress: Called with (settled periods, total periods) after each batch
    """

    def __init__(
        self,
        commit_source: CommitSource,
        oracle: TextOracle,
        config: ChronicleConfig,
        cache: Optional[ChronicleCache] = None,
        catalog: Optional[ArtifactCatalog] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: ProgressCallback = None,
    ):
        self.source = commit_source
        self.oracle = oracle
        self.config = config
        self.cache = cache if cache is not None else ChronicleCache(enabled=False)
        self.catalog = catalog
        self.sleep = sleep
        self.on_progress = on_progress
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop after the current batch; in-flight jobs still finish."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def run(
        self,
        periods: Sequence[Period],
        strategy: Strategy,
        warnings: Sequence[str] = (),
        commit_range: Optional[CommitRange] = None,
    ) -> AggregatedResult:
        """Analyze ``periods`` batch by batch and aggregate the results.

        Args:
            periods: Planned periods, chronological
            strategy: Strategy the periods were planned with
            warnings: Planner warnings carried into the summary
            commit_range: Requested history range; commits outside it are
                never fetched, even when a period window extends past it
        """
        fingerprint = self.config.fingerprint()
        execution = self.config.execution

        self.cache.open(fingerprint)
        calls = call_pool(execution.max_concurrency)
        try:
            candidates, gaps = self._load_candidates(calls)
            analyzer = PeriodAnalyzer(
                self.source,
                self.oracle,
                matching=self.config.matching if candidates else None,
                candidates=candidates,
                timeout=execution.call_timeout_seconds,
                commit_range=commit_range,
                executor=calls,
            )

            batches = plan_batches(periods, execution.max_concurrency)
            results: dict[int, _JobOutcome] = {}
            batches_run = 0

            with concurrent.futures.ThreadPoolExecutor(
                max_workers=execution.max_concurrency, thread_name_prefix="chronicle-period"
            ) as pool:
                for number, batch in enumerate(batches, start=1):
                    if self._cancelled.is_set():
                        logger.warning(
                            f"Run cancelled; skipping {len(batches) - number + 1} remaining batches"
                        )
                        break

                    futures = {
                        pool.submit(self._run_job, periods[i], analyzer, fingerprint): i
                        for i in batch
                    }
                    concurrent.futures.wait(futures)
                    # Reassemble by period index, never by completion order
                    for future, index in futures.items():
                        results[index] = future.result()

                    batches_run += 1
                    logger.debug(f"Batch {number}/{len(batches)} settled ({len(batch)} periods)")
                    if self.on_progress is not None:
                        self.on_progress(len(results), len(periods))
        finally:
            calls.shutdown(wait=False, cancel_futures=True)
            self.cache.close()

        outcomes = [results[i] for i in sorted(results)]
        analyses = [o.analysis for o in outcomes]
        summary = ExecutionSummary(
            retries=sum(o.retries for o in outcomes),
            placeholders=sum(1 for a in analyses if a.is_placeholder),
            cache_hits=sum(1 for a in analyses if a.cache is CacheStatus.HIT),
            cache_misses=sum(1 for a in analyses if a.cache is CacheStatus.MISS),
            batches=batches_run,
            data_gaps=tuple(gaps),
            warnings=tuple(warnings) + tuple(str(c) for c in self.cache.conflicts),
            cancelled=self._cancelled.is_set() and len(results) < len(periods),
        )
        if summary.placeholders:
            logger.warning(f"{summary.placeholders} periods could not be analyzed")

        return aggregate(analyses, strategy, fingerprint, summary)

    def _run_job(self, period: Period, analyzer: PeriodAnalyzer, fingerprint: str) -> _JobOutcome:
        revision = period_revision(period)
        cached = self.cache.get_period(fingerprint, period.id, revision)
        if cached is not None:
            return _JobOutcome(replace(cached, cache=CacheStatus.HIT))

        execution = self.config.execution
        retries: list[int] = []
        try:
            analysis = retry_transient(
                lambda: analyzer.analyze(period),
                max_retries=execution.max_retries,
                backoff_base=execution.backoff_base_seconds,
                backoff_max=execution.backoff_max_seconds,
                on_retry=lambda attempt, error, delay: retries.append(attempt),
                sleep=self.sleep,
            )
        except RetriesExhausted as e:
            logger.warning(f"{period.id}: {e}; using placeholder")
            return _JobOutcome(placeholder_analysis(period, str(e.last_error)), len(retries))
        except InputError:
            raise
        except Exception as e:
            logger.error(f"{period.id}: analysis failed: {e}", exc_info=not isinstance(e, ChronicleError))
            return _JobOutcome(placeholder_analysis(period, str(e)), len(retries))

        self.cache.set_period(fingerprint, period.id, revision, analysis)
        return _JobOutcome(analysis, len(retries))

    def _load_candidates(
        self, calls: Optional[concurrent.futures.Executor] = None
    ) -> tuple[list[Artifact], list[str]]:
        """Fetch every configured artifact kind once for the whole run.

        Any failure is a DataGap: matching is skipped for the run and the
        references stay empty.
        """
        matching = self.config.matching
        if not matching.enabled:
            return [], [str(DataGap("matching disabled"))]
        if self.catalog is None:
            return [], [str(DataGap("no artifact source configured"))]

        execution = self.config.execution
        candidates: list[Artifact] = []
        for kind_name in matching.kinds:
            kind = ArtifactKind(kind_name)
            try:
                artifacts = retry_transient(
                    lambda: call_with_timeout(
                        lambda: self.catalog.current(kind),
                        execution.call_timeout_seconds,
                        f"list {kind.value}",
                        calls,
                    ),
                    max_retries=execution.max_retries,
                    backoff_base=execution.backoff_base_seconds,
                    backoff_max=execution.backoff_max_seconds,
                    sleep=self.sleep,
                )
            except (RetriesExhausted, ChronicleError) as e:
                reason = e.reason if isinstance(e, DataGap) else str(e)
                gap = DataGap(reason, kind=kind.value)
                logger.warning(f"{gap}; skipping artifact matching for this run")
                return [], [str(gap)]
            candidates.extend(artifacts)

        logger.debug(f"Loaded {len(candidates)} candidate artifacts")
        return candidates, []
