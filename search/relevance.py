"""
Rule-based relevance scoring of datasets against a query
"""

import logging
from typing import Iterable, List, Sequence

from catalog.models import Dataset, RankedDataset

logger = logging.getLogger(__name__)


NAME_MATCH_WEIGHT = 100
DESCRIPTION_MATCH_WEIGHT = 50
KEYWORD_MATCH_WEIGHT = 25
TAG_MATCH_WEIGHT = 20
RELATION_WEIGHT = 10


def _lower(value) -> str:
    return value.lower() if isinstance(value, str) else ''


def _strings(values) -> List[str]:
    if not isinstance(values, (list, tuple, set, frozenset)):
        return []
    return [value.lower() for value in values if isinstance(value, str)]


def calculate_relevance_score(dataset: Dataset, query: str, search_terms: Iterable[str]) -> int:
    """
    Score a dataset against a raw query and its extracted keywords

    Exact and substring matches outrank fuzzy ones, and well-connected
    datasets get a boost. A malformed field contributes nothing.

    Args:
        dataset: Candidate dataset
        query: Raw query text
        search_terms: Keywords extracted from the query

    Returns:
        Additive relevance score
    """
    score = 0
    query_lower = _lower(query)

    if query_lower:
        if query_lower in _lower(getattr(dataset, 'name', None)):
            score += NAME_MATCH_WEIGHT

        if query_lower in _lower(getattr(dataset, 'description', None)):
            score += DESCRIPTION_MATCH_WEIGHT

    dataset_keywords = _strings(getattr(dataset, 'keywords', None))
    for term in _strings(list(search_terms or [])):
        if not term:
            continue
        if any(term in keyword or keyword in term for keyword in dataset_keywords if keyword):
            score += KEYWORD_MATCH_WEIGHT

    if query_lower:
        for tag in _strings(getattr(dataset, 'tags', None)):
            if query_lower in tag:
                score += TAG_MATCH_WEIGHT

    try:
        score += RELATION_WEIGHT * dataset.relation_count
    except (AttributeError, TypeError):
        pass

    return score


def rank_datasets(datasets: Sequence[Dataset], query: str, search_terms: Iterable[str]) -> List[RankedDataset]:
    """
    Score and sort datasets, highest relevance first

    The sort is stable, so equal scores keep the store's order.
    """
    terms = list(search_terms or [])
    ranked = [
        RankedDataset(dataset=dataset, relevance_score=calculate_relevance_score(dataset, query, terms))
        for dataset in datasets
    ]
    ranked.sort(key=lambda item: item.relevance_score, reverse=True)

    logger.debug(f"Ranked {len(ranked)} datasets for query: {query}")
    return ranked
