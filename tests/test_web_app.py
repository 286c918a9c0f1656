"""
Tests for the JSON API
"""

import asyncio
import time

import httpx
import pytest
from fastapi.testclient import TestClient

import web.app as web_app
from recommend.engine import RecommendationEngine
from utils.config import Settings


@pytest.fixture
def client(monkeypatch, seeded_db):
    monkeypatch.setattr(web_app, 'settings', Settings(database_path=seeded_db.db_path, store_timeout_seconds=5.0))
    monkeypatch.setattr(web_app, 'db_manager', seeded_db)
    monkeypatch.setattr(web_app, 'search_engine', None)
    monkeypatch.setattr(web_app, 'recommendation_engine', None)
    return TestClient(web_app.app)


class TestSearch:

    def test_requires_query(self, client):
        response = client.get('/api/search')

        assert response.status_code == 400
        assert 'error' in response.json()

    def test_blank_query_rejected(self, client):
        assert client.get('/api/search', params={'q': '   '}).status_code == 400

    def test_ranked_results_with_interpretation(self, client):
        response = client.get('/api/search', params={'q': 'aged care workforce'})
        data = response.json()

        assert response.status_code == 200
        assert data['results'][0]['id'] == 'aihw-aged-care-workforce'
        assert data['total'] == len(data['results'])
        scores = [result['relevance_score'] for result in data['results']]
        assert scores == sorted(scores, reverse=True)
        assert data['nlp']['processed_query']['domains'][:2] == ['labour', 'health']
        assert data['nlp']['related_terms']
        assert data['nlp']['suggestions']

    def test_agency_filter(self, client):
        data = client.get('/api/search', params={'q': 'workforce', 'agency': 'DoE'}).json()

        assert data['results']
        assert {result['agency']['code'] for result in data['results']} == {'DoE'}


class TestRecommendations:

    def test_related(self, client):
        response = client.get('/api/recommendations', params={'type': 'related', 'datasetId': 'abs-labour-force'})
        data = response.json()

        assert response.status_code == 200
        assert data['type'] == 'related'
        assert data['total'] == len(data['recommendations'])
        top = data['recommendations'][:2]
        assert {item['dataset']['id'] for item in top} == {'aihw-aged-care-workforce', 'doe-skills-shortages'}
        assert all(item['score'] == 1.0 and item['type'] == 'related' for item in top)

    def test_search_context(self, client):
        data = client.get('/api/recommendations', params={
            'type': 'search', 'domains': 'housing', 'keywords': 'rental,homeless'
        }).json()

        ids = [item['dataset']['id'] for item in data['recommendations']]
        assert 'aihw-housing-homelessness' in ids
        assert len(ids) == len(set(ids))

    def test_complementary_excludes_selection(self, client):
        data = client.get('/api/recommendations', params={
            'type': 'complementary', 'datasetIds': 'abs-labour-force,aihw-aged-care-workforce'
        }).json()

        ids = {item['dataset']['id'] for item in data['recommendations']}
        assert ids
        assert ids.isdisjoint({'abs-labour-force', 'aihw-aged-care-workforce'})

    def test_trending_limit(self, client):
        data = client.get('/api/recommendations', params={'type': 'trending', 'limit': '2'}).json()

        assert data['total'] == 2

    @pytest.mark.parametrize('params', [
        {},
        {'type': 'bogus'},
        {'type': 'related'},
        {'type': 'complementary'},
        {'type': 'trending', 'limit': 'abc'},
    ])
    def test_invalid_requests(self, client, params):
        response = client.get('/api/recommendations', params=params)

        assert response.status_code == 400
        assert 'error' in response.json()


class TestDatasets:

    def test_list_with_total(self, client):
        data = client.get('/api/datasets', params={'agency': 'ABS', 'limit': 2}).json()

        assert data['total'] == 3
        assert len(data['datasets']) == 2
        assert data['limit'] == 2
        assert data['offset'] == 0

    def test_detail_includes_relations(self, client):
        data = client.get('/api/datasets/abs-labour-force').json()

        assert data['name'] == 'Labour Force, Australia'
        directions = {relation['direction']: relation for relation in data['relations']}
        assert directions['outgoing']['dataset']['id'] == 'aihw-aged-care-workforce'
        assert directions['incoming']['dataset']['id'] == 'doe-skills-shortages'

    def test_unknown_dataset(self, client):
        response = client.get('/api/datasets/missing')

        assert response.status_code == 404

    def test_create_dataset(self, client):
        response = client.post('/api/datasets', json={
            'name': 'Disability Services',
            'agency_id': 'aihw',
            'keywords': ['disability', 'ndis'],
            'domains': ['health']
        })
        data = response.json()

        assert response.status_code == 201
        assert data['agency']['code'] == 'AIHW'
        assert client.get(f"/api/datasets/{data['id']}").status_code == 200

    def test_create_dataset_rejects_unknown_agency(self, client):
        response = client.post('/api/datasets', json={'name': 'X', 'agency_id': 'nope'})

        assert response.status_code == 400

    def test_create_dataset_rejects_bad_accessibility(self, client):
        response = client.post('/api/datasets', json={'name': 'X', 'agency_id': 'abs', 'accessibility': 'secret'})

        assert response.status_code == 400


def test_health(client):
    data = client.get('/health').json()

    assert data['status'] == 'healthy'
    assert data['total_datasets'] == 9


def test_slow_recommendations_leave_event_loop_free(monkeypatch, fake_store, make_dataset):
    fake_store.add(make_dataset('lf', domains=['labour']))
    fake_store.stall('get_relations', 1.0)
    monkeypatch.setattr(web_app, 'recommendation_engine', RecommendationEngine(fake_store, timeout=0.6))

    async def exercise():
        gaps = []
        done = asyncio.Event()

        async def ticker():
            last = time.monotonic()
            while not done.is_set():
                await asyncio.sleep(0.01)
                now = time.monotonic()
                gaps.append(now - last)
                last = now

        task = asyncio.create_task(ticker())
        transport = httpx.ASGITransport(app=web_app.app)
        async with httpx.AsyncClient(transport=transport, base_url='http://testserver') as client:
            response = await client.get('/api/recommendations', params={'type': 'related', 'datasetId': 'lf'})
        done.set()
        await task
        return response, max(gaps)

    response, longest_gap = asyncio.run(exercise())

    assert response.status_code == 200
    assert longest_gap < 0.2
