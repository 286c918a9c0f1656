"""
Independent recommendation strategies

Each strategy turns a seed into a list of candidate recommendations using
read-only store lookups. Store errors propagate to the engine, which
degrades the failing strategy to an empty list.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from catalog.models import Dataset, Recommendation, Strategy
from recommend.similarity import calculate_similarity
from storage.base import DatasetStore

logger = logging.getLogger(__name__)


DIRECT_RELATION_SCORE = 1.0
DOMAIN_SIMILARITY_THRESHOLD = 0.3
DOMAIN_SIMILARITY_FACTOR = 0.8
DOMAIN_CONTEXT_SCORE = 0.7
AGENCY_SIMILARITY_FACTOR = 0.6
KEYWORD_BASE_SCORE = 0.5
KEYWORD_MATCH_BONUS = 0.1
LIVE_DATA_SCORE = 0.6
TRENDING_RELATION_WEIGHT = 10

DIRECT_RELATION_FALLBACK = 'Direct relationship'
LIVE_DATA_REASON = 'Live data available'
TRENDING_REASON = 'Trending dataset based on relationships'


@dataclass
class RecommendationSeed:
    """What a recommendation request starts from"""
    dataset: Optional[Dataset] = None
    domains: Sequence[str] = ()
    keywords: Sequence[str] = ()
    limit: int = 5


class RecommendationStrategy(ABC):
    """Base class for strategies with a uniform produce(seed) contract"""

    name = 'strategy'

    def __init__(self, store: DatasetStore):
        self.store = store

    @abstractmethod
    def produce(self, seed: RecommendationSeed) -> List[Recommendation]:
        """Build candidate recommendations for a seed"""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class DirectRelationStrategy(RecommendationStrategy):
    """One recommendation per relation touching the seed dataset, in either direction"""

    name = 'direct-relation'

    def produce(self, seed: RecommendationSeed) -> List[Recommendation]:
        if seed.dataset is None:
            return []

        seed_id = seed.dataset.id
        recommendations = []

        for relation in self.store.get_relations(seed_id):
            related = relation.counterpart(seed_id)
            if related is None:
                related = self.store.find_by_id(relation.counterpart_id(seed_id))
            if related is None or related.id == seed_id:
                continue

            recommendations.append(Recommendation(
                dataset=related,
                score=DIRECT_RELATION_SCORE,
                reason=f"{relation.relation_type}: {relation.description or DIRECT_RELATION_FALLBACK}",
                strategy=Strategy.RELATED
            ))

        return recommendations


class DomainStrategy(RecommendationStrategy):
    """
    Datasets sharing a domain with the seed

    For a dataset seed the candidates come from its primary domain and are
    kept only above the similarity threshold. For a search context the
    first context domain is used with a flat score.
    """

    name = 'domain'

    def __init__(self, store: DatasetStore, candidate_limit: int = 10):
        super().__init__(store)
        self.candidate_limit = candidate_limit

    def produce(self, seed: RecommendationSeed) -> List[Recommendation]:
        if seed.dataset is not None:
            return self._similar_in_domain(seed.dataset)

        if seed.domains:
            return self._popular_in_domain(seed.domains[0])

        return []

    def _similar_in_domain(self, dataset: Dataset) -> List[Recommendation]:
        domain = dataset.primary_domain
        if not domain:
            return []

        recommendations = []
        for candidate in self.store.find_by_domain(domain, exclude_id=dataset.id, limit=self.candidate_limit):
            similarity = calculate_similarity(dataset, candidate)
            if similarity > DOMAIN_SIMILARITY_THRESHOLD:
                recommendations.append(Recommendation(
                    dataset=candidate,
                    score=similarity * DOMAIN_SIMILARITY_FACTOR,
                    reason=f"Same domain: {domain}",
                    strategy=Strategy.DOMAIN
                ))

        return recommendations

    def _popular_in_domain(self, domain: str) -> List[Recommendation]:
        return [
            Recommendation(
                dataset=candidate,
                score=DOMAIN_CONTEXT_SCORE,
                reason=f"Popular in {domain} domain",
                strategy=Strategy.DOMAIN
            )
            for candidate in self.store.find_by_domain(domain, limit=self.candidate_limit)
        ]


class AgencyStrategy(RecommendationStrategy):
    """Other datasets from the seed dataset's agency"""

    name = 'agency'

    def __init__(self, store: DatasetStore, candidate_limit: int = 5):
        super().__init__(store)
        self.candidate_limit = candidate_limit

    def produce(self, seed: RecommendationSeed) -> List[Recommendation]:
        dataset = seed.dataset
        if dataset is None or not dataset.agency_id:
            return []

        agency_name = dataset.agency_name or dataset.agency_id

        return [
            Recommendation(
                dataset=candidate,
                score=calculate_similarity(dataset, candidate) * AGENCY_SIMILARITY_FACTOR,
                reason=f"From same agency: {agency_name}",
                strategy=Strategy.AGENCY
            )
            for candidate in self.store.find_by_agency(
                dataset.agency_id, exclude_id=dataset.id, limit=self.candidate_limit
            )
        ]


class KeywordStrategy(RecommendationStrategy):
    """Datasets whose keywords contain any seed keyword"""

    name = 'keyword'

    def __init__(self, store: DatasetStore, candidate_limit: int = 8):
        super().__init__(store)
        self.candidate_limit = candidate_limit

    def produce(self, seed: RecommendationSeed) -> List[Recommendation]:
        keywords = [keyword.lower() for keyword in seed.keywords if keyword]
        if not keywords:
            return []

        recommendations = []
        for candidate in self.store.find_by_keywords(keywords, limit=self.candidate_limit):
            candidate_keywords = [keyword.lower() for keyword in candidate.keywords]
            matches = sum(
                1 for keyword in keywords
                if any(keyword in candidate_keyword for candidate_keyword in candidate_keywords)
            )

            recommendations.append(Recommendation(
                dataset=candidate,
                score=KEYWORD_BASE_SCORE + matches * KEYWORD_MATCH_BONUS,
                reason=f"Matches {matches} search terms",
                strategy=Strategy.KEYWORD
            ))

        return recommendations


class LiveDataStrategy(RecommendationStrategy):
    """
    Constant boost for API-accessible datasets

    Runs alongside the keyword strategy regardless of the query, so live
    sources stay discoverable.
    """

    name = 'live-data'

    def __init__(self, store: DatasetStore, candidate_limit: int = 3):
        super().__init__(store)
        self.candidate_limit = candidate_limit

    def produce(self, seed: RecommendationSeed) -> List[Recommendation]:
        return [
            Recommendation(
                dataset=candidate,
                score=LIVE_DATA_SCORE,
                reason=LIVE_DATA_REASON,
                strategy=Strategy.KEYWORD
            )
            for candidate in self.store.find_api_accessible(limit=self.candidate_limit)
        ]


class TrendingStrategy(RecommendationStrategy):
    """Most recently updated datasets, scored by how connected they are"""

    name = 'trending'

    def produce(self, seed: RecommendationSeed) -> List[Recommendation]:
        return [
            Recommendation(
                dataset=dataset,
                score=TRENDING_RELATION_WEIGHT * dataset.relation_count,
                reason=TRENDING_REASON,
                strategy=Strategy.TRENDING
            )
            for dataset in self.store.find_recently_updated(limit=seed.limit)
        ]
