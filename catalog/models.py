"""
Data models for government datasets, agencies and the records produced
by query interpretation, relevance ranking and recommendations
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional, Any, Tuple
import json
import logging

logger = logging.getLogger(__name__)


# Fixed subject-area vocabulary used to classify datasets and queries
DOMAINS = (
    'labour',
    'health',
    'housing',
    'education',
    'ageing',
    'inequality',
    'population'
)

ACCESSIBILITY_PUBLIC = 'public'
ACCESSIBILITY_API = 'api'
ACCESSIBILITY_REQUEST_ONLY = 'request-only'
ACCESSIBILITY_CLASSES = (ACCESSIBILITY_PUBLIC, ACCESSIBILITY_API, ACCESSIBILITY_REQUEST_ONLY)


class Intent(str, Enum):
    """Intent classification of a free-text query"""
    SEARCH = 'search'
    COMPARISON = 'comparison'
    TREND = 'trend'


class Strategy(str, Enum):
    """Tag identifying which recommendation strategy produced a result"""
    RELATED = 'related'
    DOMAIN = 'domain'
    KEYWORD = 'keyword'
    AGENCY = 'agency'
    TRENDING = 'trending'


def parse_string_list(value: Any, field_name: str = 'field') -> List[str]:
    """
    Deserialize a stored keyword/domain set into a list of strings

    Accepts a JSON array string or an already decoded list. Anything
    malformed yields an empty list.

    Args:
        value: Raw stored value
        field_name: Name used in the warning log

    Returns:
        Deduplicated list of strings in stored order
    """
    if value is None or value == '':
        return []

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Malformed {field_name} value, using empty set: {e}")
            return []

    if not isinstance(value, (list, tuple, set)):
        logger.warning(f"Unexpected {field_name} type {type(value).__name__}, using empty set")
        return []

    return list(dict.fromkeys(item for item in value if isinstance(item, str) and item))


@dataclass
class Agency:
    """Government agency that owns datasets"""

    id: str
    code: str
    name: str
    description: Optional[str] = None
    website: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'description': self.description,
            'website': self.website
        }


@dataclass
class Dataset:
    """Represents a single dataset from the government data catalogue"""

    id: str
    name: str
    description: str = ''
    keywords: List[str] = None
    domains: List[str] = None
    tags: List[str] = None
    agency_id: Optional[str] = None
    agency: Optional[Agency] = None
    accessibility: str = ACCESSIBILITY_PUBLIC

    # Relation counts attached by the store
    incoming_relations: int = 0
    outgoing_relations: int = 0

    # Descriptive catalogue fields
    frequency: Optional[str] = None
    format: Optional[str] = None
    api_endpoint: Optional[str] = None
    download_url: Optional[str] = None
    data_portal_url: Optional[str] = None
    collection_date: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        """Initialize empty lists for None values"""
        if self.keywords is None:
            self.keywords = []
        if self.domains is None:
            self.domains = []
        if self.tags is None:
            self.tags = []
        if self.agency is not None and self.agency_id is None:
            self.agency_id = self.agency.id

    @property
    def relation_count(self) -> int:
        """Total number of relations where this dataset is source or target"""
        total = 0
        for count in (self.incoming_relations, self.outgoing_relations):
            if isinstance(count, int) and not isinstance(count, bool):
                total += count
        return total

    @property
    def primary_domain(self) -> Optional[str]:
        return self.domains[0] if self.domains else None

    @property
    def is_api_accessible(self) -> bool:
        return self.accessibility == ACCESSIBILITY_API

    @property
    def agency_name(self) -> str:
        return self.agency.name if self.agency else ''

    def to_dict(self) -> Dict[str, Any]:
        """Convert dataset to dictionary for JSON output"""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'keywords': list(self.keywords),
            'domains': list(self.domains),
            'tags': list(self.tags),
            'agency_id': self.agency_id,
            'agency': self.agency.to_dict() if self.agency else None,
            'accessibility': self.accessibility,
            'incoming_relations': self.incoming_relations,
            'outgoing_relations': self.outgoing_relations,
            'frequency': self.frequency,
            'format': self.format,
            'api_endpoint': self.api_endpoint,
            'download_url': self.download_url,
            'data_portal_url': self.data_portal_url,
            'collection_date': self.collection_date,
            'updated_at': self.updated_at
        }


@dataclass
class DatasetRelation:
    """Directed, typed edge between two datasets"""

    from_id: str
    to_id: str
    relation_type: str
    description: Optional[str] = None
    id: Optional[int] = None

    # Endpoint datasets, attached by the store when available
    from_dataset: Optional[Dataset] = None
    to_dataset: Optional[Dataset] = None

    def counterpart_id(self, dataset_id: str) -> str:
        """Identifier of the dataset at the other end of the edge"""
        return self.to_id if self.from_id == dataset_id else self.from_id

    def counterpart(self, dataset_id: str) -> Optional[Dataset]:
        """Dataset at the other end of the edge, if attached"""
        return self.to_dataset if self.from_id == dataset_id else self.from_dataset

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'from_id': self.from_id,
            'to_id': self.to_id,
            'relation_type': self.relation_type,
            'description': self.description
        }


@dataclass(frozen=True)
class StructuredQuery:
    """Interpreted form of a free-text query, immutable once built"""

    original_query: str
    keywords: Tuple[str, ...] = ()
    domains: Tuple[str, ...] = ()
    intent: Intent = Intent.SEARCH
    entities: Tuple[str, ...] = ()
    confidence: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {
            'original_query': self.original_query,
            'keywords': list(self.keywords),
            'domains': list(self.domains),
            'intent': self.intent.value,
            'entities': list(self.entities),
            'confidence': self.confidence
        }


@dataclass
class Recommendation:
    """A recommended dataset with its score and explanation"""

    dataset: Dataset
    score: float
    reason: str
    strategy: Strategy

    @property
    def dataset_id(self) -> str:
        return self.dataset.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dataset': self.dataset.to_dict(),
            'score': self.score,
            'reason': self.reason,
            'type': self.strategy.value
        }


@dataclass
class RankedDataset:
    """Dataset paired with its relevance score for a query"""

    dataset: Dataset
    relevance_score: float

    def to_dict(self) -> Dict[str, Any]:
        data = self.dataset.to_dict()
        data['relevance_score'] = self.relevance_score
        return data


@dataclass
class SearchResponse:
    """Container for ranked search results with query interpretation"""

    query: str
    structured_query: StructuredQuery
    results: List[RankedDataset] = field(default_factory=list)
    related_terms: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'query': self.query,
            'results': [result.to_dict() for result in self.results],
            'total': self.total,
            'nlp': {
                'processed_query': self.structured_query.to_dict(),
                'related_terms': list(self.related_terms),
                'suggestions': list(self.suggestions)
            }
        }
