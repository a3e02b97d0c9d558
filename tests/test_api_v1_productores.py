import sys
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'backend'))

from app.main import app  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.dataset_cache import DatasetCache  # noqa: E402
from app.services.data_loader import DatasetLoader, DatasetLoadError  # noqa: E402
from fixture_loader import fixture_transport  # noqa: E402

XLSX = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class ApiV1ProductoresTests(unittest.TestCase):
    def setUp(self):
        self.calls = []
        cache = DatasetCache(settings.dataset_cache_ttl_seconds)
        app.state.dataset_cache = cache
        app.state.dataset_loader = DatasetLoader(settings, cache, transport=fixture_transport(settings, self.calls))
        self.client = TestClient(app)

    def test_health(self):
        r = self.client.get('/api/v1/health')
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertTrue(body['ok'])
        self.assertFalse(body['dataset_cached'])
        self.assertIn('x-trace-id', r.headers)

    def test_dataset_is_cached_between_requests(self):
        r = self.client.get('/api/v1/dataset')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(r.json()['eficienciaTotal']), 6)
        self.client.get('/api/v1/dataset/metrics')
        self.assertEqual(len(self.calls), 7)
        health = self.client.get('/api/v1/health').json()
        self.assertTrue(health['dataset_cached'])
        perf = self.client.get('/api/v1/health/perf').json()
        self.assertEqual(perf['dataset_cache']['hits'], 1)

    def test_metrics_contract(self):
        body = self.client.get('/api/v1/dataset/metrics').json()
        metrics = body['performanceMetrics']
        self.assertEqual(metrics['trendsAnalysis'], {'improving': 2, 'declining': 2, 'stable': 2})
        self.assertEqual(metrics['nextMonthPrediction']['totalContracts'], 145)
        self.assertEqual(body['meta']['corrected']['eficienciaTotal'], 2)
        analytics = metrics['producerAnalytics'][0]
        self.assertIn(analytics['riskLevel'], {'low', 'medium', 'high', 'critical'})

    def test_refresh_and_cache_clear(self):
        self.client.get('/api/v1/dataset/meta')
        r = self.client.post('/api/v1/dataset/refresh')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(self.calls), 14)
        r = self.client.delete('/api/v1/dataset/cache')
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.json()['ok'])

    def test_fetch_failure_is_502(self):
        with patch.object(DatasetLoader, 'load_all_data', side_effect=DatasetLoadError('eficienciaTotal', 'timeout')):
            r = self.client.get('/api/v1/dataset', headers={'x-trace-id': 'trace-1'})
        self.assertEqual(r.status_code, 502)
        body = r.json()
        self.assertEqual(body['error_code'], 'DATASET_FETCH_ERROR')
        self.assertEqual(body['details']['source'], 'eficienciaTotal')
        self.assertEqual(body['trace_id'], 'trace-1')

    def test_search(self):
        r = self.client.post(
            '/api/v1/producers/search',
            json={'minCotizaciones': 50, 'sortBy': 'Cotizaciones', 'sortDirection': 'asc', 'pageSize': 2},
        )
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body['total'], 4)
        self.assertEqual(body['total_pages'], 2)
        self.assertEqual([row['CodigoProductor'] for row in body['rows']], ['P005', 'P004'])

    def test_search_rejects_bad_payload(self):
        r = self.client.post('/api/v1/producers/search', json={'minConversion': 80, 'maxConversion': 10})
        self.assertEqual(r.status_code, 422)
        self.assertEqual(r.json()['error_code'], 'INVALID_PAYLOAD')

    def test_ranking_and_detail(self):
        top = self.client.get('/api/v1/producers/ranking/top?limit=2').json()
        self.assertEqual([p['CodigoProductor'] for p in top['topPerformers']], ['P001', 'P005'])
        detail = self.client.get('/api/v1/producers/P001')
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()['directoryName'], 'Ana Gómez Pérez')
        missing = self.client.get('/api/v1/producers/NOPE')
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()['error_code'], 'PRODUCER_NOT_FOUND')

    def test_exports(self):
        r = self.client.post('/api/v1/exports/table', json={'sheetName': 'Ranking', 'filePrefix': 'ranking_filtrado'})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.headers['content-type'], XLSX)
        self.assertIn('ranking_filtrado_Ranking.xlsx', r.headers['content-disposition'])

        r = self.client.get('/api/v1/exports/producers/P001')
        self.assertEqual(r.status_code, 200)
        self.assertIn('Productor_P001_', r.headers['content-disposition'])

        r = self.client.post('/api/v1/exports/dashboard', json={'tables': ['eficienciaTotal']})
        self.assertEqual(r.status_code, 200)
        self.assertIn('Dashboard_Productores_', r.headers['content-disposition'])

        r = self.client.get('/api/v1/exports/csv')
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.text.startswith('CodigoProductor,productor,Cotizaciones'))

    def test_export_unknown_table(self):
        r = self.client.post('/api/v1/exports/dashboard', json={'tables': ['usuarios']})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()['error_code'], 'INVALID_TABLE')
        self.assertEqual(self.calls, [])


if __name__ == '__main__':
    unittest.main()
