"""
Test suite for the Network What-If Dashboard API endpoints.
Tests REST API functionality and response formats.
"""

import pytest
import json
import threading
import time
from unittest.mock import patch, MagicMock
from network_dashboard import create_app
from network_dashboard.api import get_company_store
from network_dashboard.repository import RepositoryError


class TestCompanyAPI:
    """Test cases for company API endpoints."""

    @pytest.fixture
    def app(self, tmp_path):
        """Create test Flask application backed by a temporary store."""
        app = create_app({'COMPANY_STORE_PATH': str(tmp_path / 'companies.json')})
        app.config['TESTING'] = True
        return app

    @pytest.fixture
    def client(self, app):
        """Create test client."""
        return app.test_client()

    def get_company(self, client, company_id='innovate-inc'):
        response = client.get(f'/api/companies/{company_id}')
        assert response.status_code == 200
        return json.loads(response.data)

    def test_health_check(self, client):
        """Test health check endpoint."""
        response = client.get('/api/healthz')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['status'] == 'healthy'
        assert 'timestamp' in data

    def test_list_companies_seeds_store(self, client, tmp_path):
        response = client.get('/api/companies')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['total'] == 2
        innovate = data['companies'][0]
        assert innovate['id'] == 'innovate-inc'
        assert innovate['nodeCounts']['warehouses'] == 1
        assert innovate['hasActiveScenario'] is False
        assert (tmp_path / 'companies.json').exists()

    def test_get_company(self, client):
        data = self.get_company(client)

        assert data['name'] == 'Innovate Inc.'
        assert data['data'] == data['baseData']
        assert data['data']['suppliers'][0]['kind'] == 'supplier'

    def test_get_unknown_company(self, client):
        response = client.get('/api/companies/nobody')

        assert response.status_code == 404
        assert json.loads(response.data)['error'] == 'Company not found'

    def test_create_company(self, client):
        response = client.post('/api/companies', json={'name': 'Acme Freight', 'description': 'Regional carrier'})

        assert response.status_code == 201
        data = json.loads(response.data)
        assert data['id'].startswith('acme-freight-')
        assert data['data']['networkName'] == 'Acme Freight Network'
        assert data['data']['networkMetrics']['otif'] == {'value': 100, 'target': 95}

    def test_create_company_validation(self, client):
        response = client.post('/api/companies', json={'name': 'No description'})

        assert response.status_code == 400

    def test_delete_company(self, client):
        response = client.delete('/api/companies/legacy-logistics')

        assert response.status_code == 200
        assert client.get('/api/companies/legacy-logistics').status_code == 404

    def test_stress_test_and_reset(self, client):
        response = client.post('/api/companies/innovate-inc/stress-tests', json={'testType': 'SUPPLIER_OUTAGE'})

        assert response.status_code == 200
        data = json.loads(response.data)
        sf = next(sup for sup in data['data']['suppliers'] if sup['id'] == 'sup-sf')
        assert sf['supplyCapacity'] == 0
        assert data['data'] != data['baseData']

        summary = json.loads(client.get('/api/companies').data)['companies'][0]
        assert summary['hasActiveScenario'] is True

        response = client.post('/api/companies/innovate-inc/reset')
        data = json.loads(response.data)
        assert data['data'] == data['baseData']

    def test_stress_test_unknown_type(self, client):
        response = client.post('/api/companies/innovate-inc/stress-tests', json={'testType': 'EARTHQUAKE'})

        assert response.status_code == 400

    def test_update_company_data(self, client):
        company = self.get_company(client)
        customers = company['data']['customers']
        customers[0]['demand'] = 9000

        response = client.patch('/api/companies/innovate-inc/data', json={'customers': customers})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['data']['customers'][0]['demand'] == 9000
        assert data['baseData']['customers'][0]['demand'] == 4500

    def test_update_company_data_unknown_field(self, client):
        response = client.patch('/api/companies/innovate-inc/data', json={'bogus': 1})

        assert response.status_code == 400

    def test_add_warehouse(self, client):
        response = client.post('/api/companies/innovate-inc/nodes', json={
            'node': {'id': 'wh-denver', 'name': 'Denver, CO', 'kind': 'warehouse'},
            'inboundIds': ['sup-sf'],
            'outboundIds': ['cust-dallas'],
        })

        assert response.status_code == 201
        data = json.loads(response.data)
        denver = next(wh for wh in data['data']['warehouses'] if wh['id'] == 'wh-denver')
        assert denver['inventoryLevel'] == 20000
        assert data['data'] == data['baseData']
        assert {'from': 'sup-sf', 'to': 'wh-denver'}.items() <= next(
            conn for conn in data['data']['connections'] if conn['to'] == 'wh-denver'
        ).items()

    def test_add_node_requires_kind(self, client):
        response = client.post('/api/companies/innovate-inc/nodes', json={'node': {'name': 'Mystery'}})

        assert response.status_code == 400

    def test_add_duplicate_node(self, client):
        response = client.post('/api/companies/innovate-inc/nodes',
                               json={'node': {'id': 'cust-nyc', 'kind': 'customer'}})

        assert response.status_code == 409

    def test_update_node(self, client):
        company = self.get_company(client)
        nyc = next(cust for cust in company['data']['customers'] if cust['id'] == 'cust-nyc')
        nyc['demand'] = 6000

        response = client.put('/api/companies/innovate-inc/nodes/cust-nyc', json={'node': nyc})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert next(c for c in data['baseData']['customers'] if c['id'] == 'cust-nyc')['demand'] == 6000

    def test_update_unknown_node(self, client):
        response = client.put('/api/companies/innovate-inc/nodes/cust-ghost', json={'node': {}})

        assert response.status_code == 404

    def test_delete_node(self, client):
        response = client.delete('/api/companies/innovate-inc/nodes/wh-chicago?type=warehouse')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['data']['warehouses'] == []
        assert all('wh-chicago' not in (conn['from'], conn['to']) for conn in data['data']['connections'])

    def test_update_connection(self, client):
        response = client.put('/api/companies/innovate-inc/connections', json={
            'from': 'wh-chicago', 'to': 'cust-nyc', 'status': 'normal', 'transitTime': 30, 'capacity': 9000,
        })

        assert response.status_code == 200
        data = json.loads(response.data)
        conn = next(c for c in data['data']['connections'] if c['from'] == 'wh-chicago')
        assert conn['utilization'] == pytest.approx(0.5)

    def test_update_unknown_connection(self, client):
        response = client.put('/api/companies/innovate-inc/connections', json={'from': 'a', 'to': 'b'})

        assert response.status_code == 404

    def test_network_target(self, client):
        response = client.put('/api/companies/innovate-inc/targets/network/orderCycleTime', json={'value': 20})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['data']['networkMetrics']['orderCycleTime']['target'] == 20
        assert data['baseData']['networkMetrics']['orderCycleTime']['target'] == 20

    def test_target_validation(self, client):
        response = client.put('/api/companies/innovate-inc/targets/network/otif', json={'value': 'high'})
        assert response.status_code == 400

        response = client.put('/api/companies/innovate-inc/targets/network/happiness', json={'value': 1})
        assert response.status_code == 400

    def test_warehouse_target(self, client):
        response = client.put('/api/companies/innovate-inc/targets/warehouses/wh-chicago/otif', json={'value': 97})

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['data']['warehouses'][0]['metrics']['otif']['target'] == 97

        response = client.put('/api/companies/innovate-inc/targets/warehouses/wh-nowhere/otif', json={'value': 97})
        assert response.status_code == 404

    def test_forecast(self, client):
        response = client.get('/api/companies/innovate-inc/forecast?days=10')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['days'] == 10
        chicago = data['warehouses'][0]
        assert chicago['warehouseId'] == 'wh-chicago'
        assert len(chicago['itemForecasts'][0]['data']) == 11
        assert data['stockoutOutlook'][0]['daysUntilStockout'] == 3
        assert data['stockoutOutlook'][0]['status'] == 'critical'

    def test_warnings(self, client):
        response = client.get('/api/companies/legacy-logistics/warnings')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert any(signal['id'] == 'sup-legacy-a' for signal in data['signals'])

    def test_persisted_across_apps(self, tmp_path):
        config = {'COMPANY_STORE_PATH': str(tmp_path / 'companies.json')}
        first = create_app(config).test_client()
        first.delete('/api/companies/legacy-logistics')

        second = create_app(config).test_client()
        data = json.loads(second.get('/api/companies').data)

        assert [company['id'] for company in data['companies']] == ['innovate-inc']

    @patch('network_dashboard.api.get_company_store')
    def test_store_unavailable(self, mock_store, client):
        """A store failure answers 503."""
        mock_store.side_effect = RepositoryError("store offline")

        response = client.get('/api/companies')

        assert response.status_code == 503
        data = json.loads(response.data)
        assert data['error'] == 'Data store unavailable'

    @patch('network_dashboard.api.get_company_store')
    def test_internal_error(self, mock_store, client):
        mock_instance = MagicMock()
        mock_instance.companies = None
        mock_store.return_value = mock_instance

        response = client.get('/api/companies')

        assert response.status_code == 500
        assert 'timestamp' in json.loads(response.data)

    def test_cors_headers(self, client):
        response = client.get('/api/healthz', headers={'Origin': 'http://localhost:5000'})

        assert response.headers['Access-Control-Allow-Origin'] == 'http://localhost:5000'

    def test_update_company_data_with_null_metrics(self, client):
        """Null metrics in a live-control edit count as zeros."""
        response = client.patch('/api/companies/innovate-inc/data', json={
            'warehouses': [{'id': 'wh-x', 'metrics': {'costPerOrder': None, 'otif': None}}],
        })

        assert response.status_code == 200
        data = json.loads(response.data)
        metrics = data['data']['warehouses'][0]['metrics']
        assert metrics['costPerOrder']['value'] == 0
        assert metrics['otif']['target'] == 0

    def test_stress_test_unknown_target(self, client):
        company = self.get_company(client)

        response = client.post('/api/companies/innovate-inc/stress-tests',
                               json={'testType': 'SUPPLIER_OUTAGE', 'targetId': 'nope'})

        assert response.status_code == 404
        assert self.get_company(client) == company

    def test_store_created_once_under_concurrency(self, app):
        """Concurrent first requests share one store."""
        created = []

        def slow_store(*args, **kwargs):
            time.sleep(0.05)
            store = MagicMock()
            created.append(store)
            return store

        results = []

        def fetch():
            with app.app_context():
                results.append(get_company_store())

        with patch('network_dashboard.api.CompanyStore', side_effect=slow_store):
            threads = [threading.Thread(target=fetch) for _ in range(4)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        assert len(created) == 1
        assert all(store is created[0] for store in results)
