"""
Tests for the SQLite dataset store and the seed catalogue
"""

import sqlite3

import pytest

from catalog.models import Agency, Dataset, DatasetRelation
from storage.base import StoreUnavailableError
from storage.database import DatabaseManager
from storage.seed import seed_database, AGENCIES, DATASETS, RELATIONS


class TestSeed:

    def test_seed_counts(self, empty_db):
        counts = seed_database(empty_db)

        assert counts == {'agencies': len(AGENCIES), 'datasets': len(DATASETS), 'relations': len(RELATIONS)}
        assert counts == {'agencies': 3, 'datasets': 9, 'relations': 5}

    def test_reseeding_is_idempotent(self, seeded_db):
        seed_database(seeded_db)
        stats = seeded_db.get_statistics()

        assert stats['total_datasets'] == 9
        assert stats['total_agencies'] == 3
        assert stats['total_relations'] == 5

    def test_module_catalogue_is_not_mutated(self, seeded_db):
        assert all(relation.id is None for relation in RELATIONS)


class TestReads:

    def test_find_by_id_attaches_agency_tags_and_relation_counts(self, seeded_db):
        dataset = seeded_db.find_by_id('abs-labour-force')

        assert dataset.name == 'Labour Force, Australia'
        assert dataset.agency.code == 'ABS'
        assert dataset.tags == ['labour-market', 'workforce']
        assert dataset.keywords[0] == 'employment'
        assert dataset.domains == ['labour', 'economy', 'inequality']
        assert dataset.incoming_relations == 1
        assert dataset.outgoing_relations == 1
        assert dataset.is_api_accessible

    def test_find_by_id_unknown(self, seeded_db):
        assert seeded_db.find_by_id('nope') is None

    def test_find_by_domain_excludes_seed(self, seeded_db):
        datasets = seeded_db.find_by_domain('labour', exclude_id='abs-labour-force')
        ids = {dataset.id for dataset in datasets}

        assert 'abs-labour-force' not in ids
        assert ids == {
            'abs-census',
            'aihw-aged-care-workforce',
            'doe-skills-shortages',
            'doe-apprenticeships',
            'doe-higher-education'
        }

    def test_find_by_domain_matches_whole_domain_names(self, seeded_db):
        assert {d.id for d in seeded_db.find_by_domain('skills')} == {
            'doe-skills-shortages', 'doe-apprenticeships', 'doe-higher-education'
        }
        assert seeded_db.find_by_domain('skill') == []

    def test_find_by_agency(self, seeded_db):
        datasets = seeded_db.find_by_agency('aihw', exclude_id='aihw-aged-care-workforce', limit=5)

        assert {d.id for d in datasets} == {'aihw-population-projections', 'aihw-housing-homelessness'}

    def test_find_by_keywords_substring(self, seeded_db):
        datasets = seeded_db.find_by_keywords(['homeless'])

        assert [d.id for d in datasets] == ['aihw-housing-homelessness']

    def test_find_api_accessible(self, seeded_db):
        assert [d.id for d in seeded_db.find_api_accessible()] == ['abs-labour-force']

    def test_find_recently_updated_most_recent_first(self, seeded_db):
        datasets = seeded_db.find_recently_updated(limit=3)

        assert [d.id for d in datasets] == ['doe-higher-education', 'doe-apprenticeships', 'doe-skills-shortages']

    def test_find_by_text_match_with_filters(self, seeded_db):
        matches = seeded_db.find_by_text_match(['workforce'])
        abs_only = seeded_db.find_by_text_match(['workforce'], agency_filter='ABS')
        health_only = seeded_db.find_by_text_match(['workforce'], domain_filter='health')

        assert 'aihw-aged-care-workforce' in {d.id for d in matches}
        assert {d.agency.code for d in abs_only} == {'ABS'}
        assert {d.id for d in health_only} <= {
            'aihw-aged-care-workforce', 'aihw-population-projections', 'aihw-housing-homelessness'
        }
        assert 'aihw-aged-care-workforce' in {d.id for d in health_only}

    def test_like_wildcards_are_literal(self, seeded_db):
        assert seeded_db.find_by_text_match(['%']) == []
        assert seeded_db.find_by_text_match(['_']) == []

    def test_get_relations_both_directions(self, seeded_db):
        relations = seeded_db.get_relations('aihw-aged-care-workforce')

        assert {(r.from_id, r.to_id, r.relation_type) for r in relations} == {
            ('abs-labour-force', 'aihw-aged-care-workforce', 'feeds-into'),
            ('aihw-aged-care-workforce', 'doe-skills-shortages', 'depends-on'),
        }
        for relation in relations:
            counterpart = relation.counterpart('aihw-aged-care-workforce')
            assert counterpart is not None
            assert counterpart.id == relation.counterpart_id('aihw-aged-care-workforce')


class TestMalformedAndFailures:

    def test_malformed_keywords_deserialize_to_empty(self, seeded_db):
        conn = sqlite3.connect(seeded_db.db_path)
        conn.execute("UPDATE datasets SET keywords = 'not json', domains = '{\"a\": 1}' WHERE id = 'abs-census'")
        conn.commit()
        conn.close()

        dataset = seeded_db.find_by_id('abs-census')

        assert dataset.keywords == []
        assert dataset.domains == []

    def test_read_failure_raises_store_unavailable(self, seeded_db):
        conn = sqlite3.connect(seeded_db.db_path)
        conn.execute("DROP TABLE dataset_tags")
        conn.commit()
        conn.close()

        with pytest.raises(StoreUnavailableError):
            seeded_db.find_by_id('abs-census')

    def test_write_failure_returns_false(self, empty_db):
        # no such agency, so the foreign key rejects the row
        dataset = Dataset(id='orphan', name='Orphan', agency_id='missing')

        assert empty_db.store_dataset(dataset) is False
        assert empty_db.find_by_id('orphan') is None


class TestWrites:

    def test_upsert_replaces_fields_and_tags(self, empty_db):
        empty_db.store_agency(Agency(id='abs', code='ABS', name='Australian Bureau of Statistics'))
        empty_db.store_dataset(Dataset(id='d1', name='First', agency_id='abs', tags=['a', 'b']))
        empty_db.store_dataset(Dataset(id='d1', name='Renamed', agency_id='abs', tags=['c'],
                                       keywords=['rent', 'rent']))

        dataset = empty_db.find_by_id('d1')

        assert dataset.name == 'Renamed'
        assert dataset.tags == ['c']
        assert dataset.keywords == ['rent']

    def test_store_datasets_batch(self, empty_db):
        empty_db.store_agency(Agency(id='abs', code='ABS', name='Australian Bureau of Statistics'))

        stored = empty_db.store_datasets([
            Dataset(id='d1', name='One', agency_id='abs'),
            Dataset(id='d2', name='Two', agency_id='abs')
        ])

        assert stored == 2
        assert empty_db.count_datasets() == 2

    def test_store_relation_assigns_id(self, seeded_db):
        relation = DatasetRelation(from_id='abs-census', to_id='doe-higher-education', relation_type='related-to')

        assert seeded_db.store_relation(relation) is True
        assert relation.id is not None


class TestBrowsing:

    def test_list_and_count_with_filters(self, seeded_db):
        doe = seeded_db.list_datasets(agency_code='DoE')
        housing = seeded_db.list_datasets(domain='housing')

        assert len(doe) == 3
        assert seeded_db.count_datasets(agency_code='DoE') == 3
        assert {d.id for d in housing} == {'abs-census', 'abs-household-income', 'aihw-housing-homelessness'}
        assert seeded_db.count_datasets(domain='housing') == 3

    def test_pagination(self, seeded_db):
        first_page = seeded_db.list_datasets(limit=5)
        second_page = seeded_db.list_datasets(limit=5, offset=5)

        assert len(first_page) == 5
        assert len(second_page) == 4
        assert not {d.id for d in first_page} & {d.id for d in second_page}

    def test_agencies_and_statistics(self, seeded_db):
        assert [agency.code for agency in seeded_db.get_agencies()] == ['ABS', 'AIHW', 'DoE']

        stats = seeded_db.get_statistics()

        assert stats['agencies'] == {'ABS': 3, 'AIHW': 3, 'DoE': 3}
        assert stats['accessibility'] == {'api': 1, 'public': 8}
        assert stats['domains']['labour'] == 6
        assert stats['database_size'] > 0


def test_context_manager(db_path):
    with DatabaseManager(db_path) as db:
        assert db.count_datasets() == 0
