"""
Tests for the dataset search service
"""

from catalog.models import Intent
from search.search_engine import DatasetSearchEngine


def test_results_are_ranked_and_annotated(fake_store, make_dataset):
    fake_store.add(
        make_dataset('care', name='Aged Care Workforce Data', keywords=['aged care', 'workforce'],
                     domains=['health', 'ageing', 'labour']),
        make_dataset('lf', name='Labour Force, Australia', keywords=['employment', 'workforce trends'],
                     domains=['labour'])
    )

    response = DatasetSearchEngine(fake_store).search("aged care workforce")

    assert [result.dataset.id for result in response.results] == ['care', 'lf']
    assert response.results[0].relevance_score > response.results[1].relevance_score
    assert response.total == 2
    assert response.structured_query.intent is Intent.SEARCH
    assert 'elderly care' in response.related_terms
    assert response.suggestions


def test_store_is_queried_with_query_keywords_and_domains(fake_store, make_dataset):
    fake_store.add(make_dataset('census', keywords=['population'], domains=['population']))

    response = DatasetSearchEngine(fake_store).search("demographic trends")

    # 'demographic' maps to the population domain, which the dataset carries
    assert [result.dataset.id for result in response.results] == ['census']


def test_filters_are_passed_through(fake_store, make_dataset):
    fake_store.add(
        make_dataset('h1', name='Housing one', domains=['housing']),
        make_dataset('h2', name='Housing two', domains=['health'])
    )

    response = DatasetSearchEngine(fake_store).search("housing", domain_filter='housing')

    assert [result.dataset.id for result in response.results] == ['h1']


def test_store_failure_yields_empty_results(fake_store, make_dataset):
    fake_store.add(make_dataset('h1', name='Housing'))
    fake_store.fail('find_by_text_match')

    response = DatasetSearchEngine(fake_store).search("housing affordability")

    assert response.results == []
    assert response.structured_query.domains == ('housing',)
    assert response.suggestions


def test_response_serialization(fake_store, make_dataset):
    fake_store.add(make_dataset('h1', name='Housing'))

    data = DatasetSearchEngine(fake_store).search("housing").to_dict()

    assert data['query'] == 'housing'
    assert data['total'] == 1
    assert data['results'][0]['relevance_score'] == 100
    assert data['nlp']['processed_query']['intent'] == 'search'
    assert data['nlp']['processed_query']['domains'] == ['housing']
    assert set(data['nlp']) == {'processed_query', 'related_terms', 'suggestions'}


def test_blank_query_does_not_list_the_catalogue(fake_store, make_dataset):
    fake_store.add(make_dataset('census', domains=['population']))

    response = DatasetSearchEngine(fake_store).search("   ")

    assert response.results == []
    assert 'find_by_text_match' not in fake_store.calls
