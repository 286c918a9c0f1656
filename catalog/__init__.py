"""
Government dataset catalogue models
Datasets, agencies, relations and the records built from them
"""

from .models import (
    Agency,
    Dataset,
    DatasetRelation,
    Intent,
    Strategy,
    StructuredQuery,
    Recommendation,
    RankedDataset,
    SearchResponse
)

__all__ = [
    'Agency',
    'Dataset',
    'DatasetRelation',
    'Intent',
    'Strategy',
    'StructuredQuery',
    'Recommendation',
    'RankedDataset',
    'SearchResponse'
]
