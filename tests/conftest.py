"""
Shared fixtures: an in-memory dataset store and a seeded SQLite catalogue
"""

import time
from typing import Dict, List, Optional, Sequence

import pytest

from catalog.models import Agency, Dataset, DatasetRelation
from storage.base import DatasetStore, StoreUnavailableError
from storage.database import DatabaseManager
from storage.seed import seed_database


class FakeStore(DatasetStore):
    """
    Dataset store backed by plain lists

    Individual operations can be made to fail or to stall, to exercise
    the degradation paths of the search and recommendation code.
    """

    def __init__(self, datasets: Sequence[Dataset] = (), relations: Sequence[DatasetRelation] = ()):
        self.datasets: List[Dataset] = list(datasets)
        self.relations: List[DatasetRelation] = list(relations)
        self.failures = set()
        self.delays: Dict[str, float] = {}
        self.calls: List[str] = []

    def add(self, *datasets: Dataset):
        self.datasets.extend(datasets)

    def relate(self, from_id: str, to_id: str, relation_type: str, description: Optional[str] = None):
        self.relations.append(DatasetRelation(from_id=from_id, to_id=to_id,
                                              relation_type=relation_type, description=description))

    def fail(self, operation: str):
        self.failures.add(operation)

    def stall(self, operation: str, seconds: float):
        self.delays[operation] = seconds

    def _enter(self, operation: str):
        self.calls.append(operation)
        if operation in self.delays:
            time.sleep(self.delays[operation])
        if operation in self.failures:
            raise StoreUnavailableError(f"{operation} unavailable")

    def _annotated(self, datasets: List[Dataset]) -> List[Dataset]:
        for dataset in datasets:
            dataset.incoming_relations = sum(1 for r in self.relations if r.to_id == dataset.id)
            dataset.outgoing_relations = sum(1 for r in self.relations if r.from_id == dataset.id)
        return datasets

    def _recent_first(self) -> List[Dataset]:
        return list(reversed(self.datasets))

    def find_by_text_match(self, terms, domain_filter=None, agency_filter=None, limit=20):
        self._enter('find_by_text_match')
        terms = [term.lower() for term in terms if term]
        matches = []

        for dataset in self._recent_first():
            haystack = [dataset.name, dataset.description] + dataset.keywords + dataset.tags + dataset.domains
            haystack = [value.lower() for value in haystack if value]
            if terms and not any(term in value for term in terms for value in haystack):
                continue
            if domain_filter and domain_filter not in dataset.domains:
                continue
            if agency_filter and (dataset.agency is None or dataset.agency.code != agency_filter):
                continue
            matches.append(dataset)

        return self._annotated(matches[:limit])

    def find_by_id(self, dataset_id):
        self._enter('find_by_id')
        for dataset in self.datasets:
            if dataset.id == dataset_id:
                return self._annotated([dataset])[0]
        return None

    def find_by_domain(self, domain, exclude_id=None, limit=10):
        self._enter('find_by_domain')
        matches = [d for d in self._recent_first() if domain in d.domains and d.id != exclude_id]
        return self._annotated(matches[:limit])

    def find_by_agency(self, agency_id, exclude_id=None, limit=5):
        self._enter('find_by_agency')
        matches = [d for d in self._recent_first() if d.agency_id == agency_id and d.id != exclude_id]
        return self._annotated(matches[:limit])

    def find_by_keywords(self, keywords, limit=8):
        self._enter('find_by_keywords')
        keywords = [keyword.lower() for keyword in keywords if keyword]
        matches = [
            d for d in self._recent_first()
            if any(keyword in candidate.lower() for keyword in keywords for candidate in d.keywords)
        ]
        return self._annotated(matches[:limit])

    def find_api_accessible(self, limit=3):
        self._enter('find_api_accessible')
        matches = [d for d in self._recent_first() if d.is_api_accessible and d.api_endpoint]
        return self._annotated(matches[:limit])

    def find_recently_updated(self, limit=5):
        self._enter('find_recently_updated')
        return self._annotated(self._recent_first()[:limit])

    def get_relations(self, dataset_id):
        self._enter('get_relations')
        by_id = {dataset.id: dataset for dataset in self.datasets}
        relations = []

        for relation in self.relations:
            if dataset_id not in (relation.from_id, relation.to_id):
                continue
            relations.append(DatasetRelation(
                from_id=relation.from_id,
                to_id=relation.to_id,
                relation_type=relation.relation_type,
                description=relation.description,
                from_dataset=by_id.get(relation.from_id),
                to_dataset=by_id.get(relation.to_id)
            ))

        return relations


def build_dataset(dataset_id: str, **fields) -> Dataset:
    """Dataset with sensible defaults for tests"""
    fields.setdefault('name', dataset_id.replace('-', ' ').title())
    fields.setdefault('agency_id', 'abs')
    return Dataset(id=dataset_id, **fields)


@pytest.fixture
def make_dataset():
    return build_dataset


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def abs_agency():
    return Agency(id='abs', code='ABS', name='Australian Bureau of Statistics')


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / 'data' / 'datasets.db')


@pytest.fixture
def empty_db(db_path):
    return DatabaseManager(db_path)


@pytest.fixture
def seeded_db(db_path):
    db = DatabaseManager(db_path)
    seed_database(db)
    return db
