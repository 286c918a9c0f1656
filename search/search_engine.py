"""
Dataset search: interpret a query, fetch candidates and rank them
"""

import logging
from typing import Optional

from catalog.models import SearchResponse
from search.query_processor import QueryProcessor
from search.relevance import rank_datasets
from storage.base import DatasetStore

logger = logging.getLogger(__name__)


class DatasetSearchEngine:
    """
    Free-text search over the dataset catalogue

    The interpreter's keywords and domains widen the store lookup; the
    relevance scorer then orders what comes back.
    """

    def __init__(self,
                 store: DatasetStore,
                 query_processor: Optional[QueryProcessor] = None,
                 result_limit: int = 20):
        """
        Initialize search engine

        Args:
            store: Dataset store to search
            query_processor: Query interpreter (default tables if None)
            result_limit: Maximum candidates fetched from the store
        """
        self.store = store
        self.query_processor = query_processor or QueryProcessor()
        self.result_limit = result_limit

    def search(self,
               query: str,
               domain_filter: Optional[str] = None,
               agency_filter: Optional[str] = None) -> SearchResponse:
        """
        Search datasets

        Args:
            query: Raw search text
            domain_filter: Only datasets in this domain
            agency_filter: Only datasets of the agency with this code

        Returns:
            SearchResponse with the structured query, ranked results,
            related terms and suggestions. A store failure yields no results.
        """
        structured = self.query_processor.interpret(query)
        related_terms = self.query_processor.get_related_terms(query, structured)
        suggestions = self.query_processor.generate_suggestions(query, structured)

        terms = [query.strip()] + list(structured.keywords) + list(structured.domains)
        terms = [term for term in terms if term and term.strip()]

        if not terms:
            # without terms the store would return the whole catalogue
            logger.info(f"Search for '{query}' has no usable terms")
            candidates = []
        else:
            try:
                candidates = self.store.find_by_text_match(
                    terms,
                    domain_filter=domain_filter,
                    agency_filter=agency_filter,
                    limit=self.result_limit
                )
            except Exception as e:
                logger.warning(f"Dataset store unavailable for query '{query}': {e}")
                candidates = []

        results = rank_datasets(candidates, query, structured.keywords)

        logger.info(f"Search for '{query}' returned {len(results)} datasets "
                    f"(intent={structured.intent.value}, domains={list(structured.domains)})")

        return SearchResponse(
            query=query,
            structured_query=structured,
            results=results,
            related_terms=related_terms,
            suggestions=suggestions
        )
