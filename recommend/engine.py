"""
Recommendation engine for related government datasets

Runs independent strategies in parallel against the dataset store and
merges their candidates into one deduplicated, ranked list.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from enum import Enum
from typing import List, Dict, Optional, Sequence, Iterable, Any

from catalog.models import Recommendation, StructuredQuery
from recommend.strategies import (
    RecommendationSeed,
    RecommendationStrategy,
    DirectRelationStrategy,
    DomainStrategy,
    AgencyStrategy,
    KeywordStrategy,
    LiveDataStrategy,
    TrendingStrategy
)
from search.query_processor import QueryProcessor
from storage.base import DatasetStore
from utils.logging_config import get_contextual_logger, log_strategy_outcome

logger = logging.getLogger(__name__)


DEFAULT_LIMIT = 5
COMPLEMENTARY_PER_SEED = 2
COMPLEMENTARY_LIMIT = 5


class InvalidRecommendationRequest(ValueError):
    """Raised when a recommendation request is missing its seed or names an unknown kind"""
    pass


class RecommendationKind(str, Enum):
    RELATED = 'related'
    SEARCH = 'search'
    TRENDING = 'trending'
    COMPLEMENTARY = 'complementary'


def merge_recommendations(candidate_lists: Iterable[Sequence[Recommendation]],
                          limit: Optional[int] = DEFAULT_LIMIT,
                          exclude_ids: Iterable[str] = ()) -> List[Recommendation]:
    """
    Merge strategy outputs into a single ranked list

    The first occurrence of a dataset wins, excluded ids are dropped, and the
    result is sorted by descending score (stable) and truncated.

    Args:
        candidate_lists: Strategy outputs in priority order
        limit: Maximum recommendations to keep (None keeps all)
        exclude_ids: Dataset ids that must not appear

    Returns:
        Deduplicated recommendations, highest score first
    """
    excluded = set(exclude_ids)
    seen = set()
    unique = []

    for candidates in candidate_lists:
        for recommendation in candidates:
            dataset_id = recommendation.dataset.id
            if dataset_id in seen:
                continue
            seen.add(dataset_id)

            if dataset_id not in excluded:
                unique.append(recommendation)

    unique.sort(key=lambda recommendation: recommendation.score, reverse=True)

    return unique if limit is None else unique[:limit]


class RecommendationEngine:
    """
    Produces ranked dataset recommendations

    Supports four request kinds: related (seed dataset), search (domains
    and keywords of a query), trending (no seed) and complementary (a set
    of datasets). Every strategy fetch is bounded by a timeout; a strategy
    that fails or times out contributes nothing.
    """

    def __init__(self,
                 store: DatasetStore,
                 query_processor: Optional[QueryProcessor] = None,
                 timeout: float = 5.0,
                 max_workers: int = 4):
        """
        Initialize recommendation engine

        Args:
            store: Dataset store to read candidates from
            query_processor: Interpreter used when a search request only has text
            timeout: Seconds to wait for the strategies of one request
            max_workers: Maximum strategies run at once
        """
        self.store = store
        self.query_processor = query_processor or QueryProcessor()
        self.timeout = timeout
        self.max_workers = max(1, max_workers)

        self.direct_relation = DirectRelationStrategy(store)
        self.domain = DomainStrategy(store)
        self.agency = AgencyStrategy(store)
        self.keyword = KeywordStrategy(store)
        self.live_data = LiveDataStrategy(store)
        self.trending_strategy = TrendingStrategy(store)

    def _produce(self, strategy: RecommendationStrategy, seed: RecommendationSeed) -> List[Recommendation]:
        start = time.time()
        candidates = strategy.produce(seed)
        log_strategy_outcome(logger, strategy.name, len(candidates), time.time() - start)
        return candidates

    def _deadline(self) -> float:
        return time.monotonic() + self.timeout

    def _fetch_seed(self, dataset_id: str, deadline: float):
        """Load a seed dataset, waiting no longer than the request deadline"""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='recommend-seed')
        try:
            future = executor.submit(self.store.find_by_id, dataset_id)
            return future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FuturesTimeoutError:
            raise TimeoutError(f"seed lookup timed out after {self.timeout}s")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _run_strategies(self,
                        strategies: Sequence[RecommendationStrategy],
                        seed: RecommendationSeed,
                        deadline: Optional[float] = None) -> List[List[Recommendation]]:
        """
        Fan strategies out in parallel and collect their outputs in order

        Args:
            strategies: Strategies in priority order
            seed: What the strategies recommend from
            deadline: time.monotonic() value shared by the whole request

        Returns:
            One candidate list per strategy, empty where it failed
        """
        if not strategies:
            return []

        start = time.time()
        if deadline is None:
            deadline = self._deadline()
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(strategies)),
            thread_name_prefix='recommend'
        )
        futures = [(strategy, executor.submit(self._produce, strategy, seed)) for strategy in strategies]
        results = []

        try:
            for strategy, future in futures:
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    results.append(future.result(timeout=remaining))
                except FuturesTimeoutError:
                    log_strategy_outcome(logger, strategy.name, 0, time.time() - start,
                                         error=f"timed out after {self.timeout}s")
                    results.append([])
                except Exception as e:
                    log_strategy_outcome(logger, strategy.name, 0, time.time() - start, error=str(e))
                    results.append([])
        finally:
            # Do not block on strategies that overran the deadline
            executor.shutdown(wait=False, cancel_futures=True)

        return results

    def related(self, dataset_id: str, limit: int = DEFAULT_LIMIT,
                deadline: Optional[float] = None) -> List[Recommendation]:
        """
        Recommendations for a specific dataset

        Args:
            dataset_id: Seed dataset identifier
            limit: Maximum recommendations
            deadline: Shared request deadline (a fresh one if None)

        Returns:
            Ranked recommendations (empty when the seed is unknown)
        """
        if deadline is None:
            deadline = self._deadline()

        try:
            dataset = self._fetch_seed(dataset_id, deadline)
        except Exception as e:
            logger.warning(f"Could not load seed dataset {dataset_id}: {e}")
            return []

        if dataset is None:
            logger.info(f"Seed dataset {dataset_id} not found")
            return []

        candidate_lists = self._run_strategies(
            [self.direct_relation, self.domain, self.agency],
            RecommendationSeed(dataset=dataset),
            deadline
        )
        return merge_recommendations(candidate_lists, limit)

    def for_search(self,
                   query: Optional[str] = None,
                   domains: Optional[Sequence[str]] = None,
                   keywords: Optional[Sequence[str]] = None,
                   limit: int = DEFAULT_LIMIT) -> List[Recommendation]:
        """
        Recommendations for a search context

        When only query text is given, its domains and keywords come from
        interpreting it.
        """
        if query and not domains and not keywords:
            structured = self.query_processor.interpret(query)
            domains = structured.domains
            keywords = structured.keywords

        seed = RecommendationSeed(domains=tuple(domains or ()), keywords=tuple(keywords or ()))
        candidate_lists = self._run_strategies([self.domain, self.keyword, self.live_data], seed)
        return merge_recommendations(candidate_lists, limit)

    def for_structured_query(self, structured_query: StructuredQuery,
                             limit: int = DEFAULT_LIMIT) -> List[Recommendation]:
        return self.for_search(domains=structured_query.domains,
                               keywords=structured_query.keywords,
                               limit=limit)

    def trending(self, limit: int = DEFAULT_LIMIT) -> List[Recommendation]:
        candidate_lists = self._run_strategies([self.trending_strategy], RecommendationSeed(limit=limit))
        return merge_recommendations(candidate_lists, limit)

    def complementary(self, dataset_ids: Sequence[str], limit: int = COMPLEMENTARY_LIMIT) -> List[Recommendation]:
        """
        Datasets that complement a selection, never including the selection itself

        Args:
            dataset_ids: Selected dataset identifiers
            limit: Maximum recommendations

        Returns:
            Ranked recommendations excluding the selected ids
        """
        seed_ids = list(dict.fromkeys(dataset_ids))
        # one deadline for the whole selection
        deadline = self._deadline()
        candidate_lists = [
            self.related(dataset_id, COMPLEMENTARY_PER_SEED, deadline=deadline)
            for dataset_id in seed_ids
        ]
        return merge_recommendations(candidate_lists, limit, exclude_ids=seed_ids)

    def recommend(self, kind: str, params: Optional[Dict[str, Any]] = None) -> List[Recommendation]:
        """
        Dispatch a recommendation request

        Args:
            kind: related, search, trending or complementary
            params: dataset_id, query, domains, keywords, dataset_ids, limit

        Returns:
            Ranked recommendations

        Raises:
            InvalidRecommendationRequest: unknown kind, missing seed or bad limit
        """
        params = params or {}

        try:
            kind = RecommendationKind(kind)
        except ValueError:
            raise InvalidRecommendationRequest(f"Invalid recommendation type: {kind}")

        limit = self._parse_limit(params.get('limit'), kind)
        request_logger = get_contextual_logger(__name__, recommendation_kind=kind.value)

        if kind is RecommendationKind.RELATED:
            dataset_id = params.get('dataset_id')
            if not dataset_id:
                raise InvalidRecommendationRequest('dataset_id is required for related recommendations')
            recommendations = self.related(dataset_id, limit)

        elif kind is RecommendationKind.SEARCH:
            recommendations = self.for_search(
                query=params.get('query'),
                domains=params.get('domains'),
                keywords=params.get('keywords'),
                limit=limit
            )

        elif kind is RecommendationKind.TRENDING:
            recommendations = self.trending(limit)

        else:
            dataset_ids = [dataset_id for dataset_id in (params.get('dataset_ids') or []) if dataset_id]
            if not dataset_ids:
                raise InvalidRecommendationRequest('dataset_ids are required for complementary recommendations')
            recommendations = self.complementary(dataset_ids, limit)

        request_logger.info(f"Produced {len(recommendations)} {kind.value} recommendations",
                            extra={'ctx_recommendation_count': len(recommendations)})
        return recommendations

    def _parse_limit(self, value, kind: RecommendationKind) -> int:
        default = COMPLEMENTARY_LIMIT if kind is RecommendationKind.COMPLEMENTARY else DEFAULT_LIMIT
        if value is None or value == '':
            return default

        try:
            limit = int(value)
        except (TypeError, ValueError):
            raise InvalidRecommendationRequest(f"limit must be an integer, got {value!r}")

        if limit < 1:
            raise InvalidRecommendationRequest('limit must be at least 1')

        return limit
