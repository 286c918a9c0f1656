"""
Query understanding and relevance ranking for government dataset searches
Turns free text into a structured query and ranks candidate datasets
"""

from .query_processor import QueryProcessor, interpret
from .relevance import calculate_relevance_score, rank_datasets
from .search_engine import DatasetSearchEngine

__all__ = ['QueryProcessor', 'interpret', 'calculate_relevance_score', 'rank_datasets', 'DatasetSearchEngine']
