"""
Read interface the search and recommendation core uses to reach the dataset store
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from catalog.models import Dataset, DatasetRelation


class StoreUnavailableError(Exception):
    """Raised when the dataset store cannot answer a read"""
    pass


class DatasetStore(ABC):
    """
    Abstract dataset store

    All operations are idempotent reads. Implementations raise
    StoreUnavailableError when a fetch fails.
    """

    @abstractmethod
    def find_by_text_match(self,
                           terms: Sequence[str],
                           domain_filter: Optional[str] = None,
                           agency_filter: Optional[str] = None,
                           limit: int = 20) -> List[Dataset]:
        """Datasets whose name, description, keywords, tags or domains contain any term"""

    @abstractmethod
    def find_by_id(self, dataset_id: str) -> Optional[Dataset]:
        """Dataset by identifier, or None"""

    @abstractmethod
    def find_by_domain(self, domain: str, exclude_id: Optional[str] = None, limit: int = 10) -> List[Dataset]:
        """Datasets tagged with a domain"""

    @abstractmethod
    def find_by_agency(self, agency_id: str, exclude_id: Optional[str] = None, limit: int = 5) -> List[Dataset]:
        """Datasets owned by an agency"""

    @abstractmethod
    def find_by_keywords(self, keywords: Sequence[str], limit: int = 8) -> List[Dataset]:
        """Datasets whose keyword set contains any of the keywords"""

    @abstractmethod
    def find_api_accessible(self, limit: int = 3) -> List[Dataset]:
        """Datasets with live API access"""

    @abstractmethod
    def find_recently_updated(self, limit: int = 5) -> List[Dataset]:
        """Most recently updated datasets with relation counts attached"""

    @abstractmethod
    def get_relations(self, dataset_id: str) -> List[DatasetRelation]:
        """Relations where the dataset is source or target, counterparts attached"""
