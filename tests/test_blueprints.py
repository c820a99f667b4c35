"""
Tests for the planner Flask blueprint

Blueprint tests need Flask and are skipped when it is not installed.
"""

import json

import pytest

# Check if Flask is available
try:
    import flask  # noqa: F401
    FLASK_AVAILABLE = True
except ImportError:
    FLASK_AVAILABLE = False

from core.session import MeshSession

pytestmark = pytest.mark.skipif(not FLASK_AVAILABLE, reason="Flask not installed")

CENTER = {"lat": 39.8283, "lng": -98.5795}


@pytest.fixture
def app(tmp_path):
    from web.app import create_app
    app = create_app(MeshSession(center=CENTER), state_file=tmp_path / "session.json")
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def add_node(client, **body):
    response = client.post('/api/mesh/nodes', json=body)
    assert response.status_code == 201
    return response.get_json()


class TestMeshState:

    def test_empty_state(self, client):
        response = client.get('/api/mesh')
        assert response.status_code == 200
        data = response.get_json()
        assert data['nodes'] == []
        assert data['links'] == []
        assert data['summary']['health'] == "Network is waiting for nodes."

    def test_security_headers(self, client):
        response = client.get('/api/mesh')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options'] == 'SAMEORIGIN'


class TestNodes:

    def test_add_node(self, client):
        node = add_node(client, role='relay', lat=39.8283, lng=-98.5795)
        assert node['role'] == 'relay'
        assert node['label'] == 'Relay 1'
        assert node['maxRangeMeters'] == 380

    def test_add_requires_role(self, client):
        response = client.post('/api/mesh/nodes', json={'label': 'x'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'role is required'

    def test_add_bad_role(self, client):
        response = client.post('/api/mesh/nodes', json={'role': 'tank'})
        assert response.status_code == 400
        assert 'tank' in response.get_json()['error']

    def test_unknown_field(self, client):
        response = client.post('/api/mesh/nodes', json={'role': 'relay', 'colour': 'red'})
        assert response.status_code == 400

    def test_body_must_be_object(self, client):
        response = client.post('/api/mesh/nodes', data='[1]', content_type='application/json')
        assert response.status_code == 400

    def test_update_node(self, client):
        node = add_node(client, role='sensor')
        response = client.patch(f"/api/mesh/nodes/{node['id']}",
                                json={'label': 'North', 'maxRangeMeters': 300})
        assert response.status_code == 200
        assert response.get_json()['label'] == 'North'
        assert response.get_json()['maxRangeMeters'] == 300

    def test_update_string_height_is_bad_request(self, client):
        node = add_node(client, role='relay', lat=CENTER['lat'], lng=CENTER['lng'])
        add_node(client, role='relay', lat=CENTER['lat'] + 0.0004, lng=CENTER['lng'])
        response = client.patch(f"/api/mesh/nodes/{node['id']}",
                                json={'heightAboveGroundMeters': '10'})
        assert response.status_code == 400
        assert client.get('/api/mesh').get_json()['nodes'][0].get('heightAboveGroundMeters') is None
        add_node(client, role='sensor', lat=CENTER['lat'], lng=CENTER['lng'] + 0.0004)
        assert len(client.get('/api/mesh/links').get_json()['links']) == 3

    def test_update_unknown_node(self, client):
        response = client.patch('/api/mesh/nodes/ghost', json={'label': 'x'})
        assert response.status_code == 404

    def test_delete_node(self, client):
        node = add_node(client, role='sensor')
        response = client.delete(f"/api/mesh/nodes/{node['id']}")
        assert response.get_json() == {'deleted': node['id']}
        assert client.get('/api/mesh').get_json()['nodes'] == []

    def test_changes_are_persisted(self, client, app):
        add_node(client, role='relay')
        saved = json.loads(open(app.config['MESH_STATE_FILE']).read())
        assert len(saved['nodes']) == 1


class TestEnvironment:

    def test_update(self, client):
        response = client.put('/api/mesh/environment',
                              json={'terrain': 'Open', 'ewLevel': 'Low', 'primaryBand': 900})
        assert response.status_code == 200
        data = response.get_json()
        assert data['terrain'] == 'Open'
        assert data['primaryBand'] == '900'

    @pytest.mark.parametrize("reliability,status", [(0, 200), (100, 200), (101, 400)])
    def test_target_reliability_range(self, client, reliability, status):
        response = client.put('/api/mesh/environment', json={'targetReliability': reliability})
        assert response.status_code == status

    def test_invalid_terrain(self, client):
        response = client.put('/api/mesh/environment', json={'terrain': 'Swamp'})
        assert response.status_code == 400


class TestLinks:

    def setup_pair(self, client):
        a = add_node(client, role='relay', lat=39.8283, lng=-98.5795)
        b = add_node(client, role='relay', lat=39.82875, lng=-98.5795)
        return a['id'], b['id']

    def test_links(self, client):
        self.setup_pair(client)
        data = client.get('/api/mesh/links').get_json()
        assert len(data['links']) == 1
        assert data['counts']['marginal'] == 1

    def test_override(self, client):
        a, b = self.setup_pair(client)
        response = client.put(f'/api/mesh/links/{a}/{b}/override', json={'los': 'LOS'})
        assert response.status_code == 200
        data = response.get_json()
        assert data['override'] == {'distanceMeters': None, 'los': 'LOS'}
        assert data['link']['quality'] == 'good'

    def test_override_validation(self, client):
        a, b = self.setup_pair(client)
        response = client.put(f'/api/mesh/links/{a}/{b}/override', json={'distanceMeters': -5})
        assert response.status_code == 400
        response = client.put(f'/api/mesh/links/{a}/ghost/override', json={'los': 'LOS'})
        assert response.status_code == 404

    def test_clear_override(self, client):
        a, b = self.setup_pair(client)
        client.put(f'/api/mesh/links/{a}/{b}/override', json={'los': 'LOS'})
        assert client.delete(f'/api/mesh/links/{b}/{a}/override').get_json() == {'cleared': True}
        assert client.delete(f'/api/mesh/links/{a}/{b}/override').get_json() == {'cleared': False}

    def test_robustness_and_summary(self, client):
        self.setup_pair(client)
        robustness = client.get('/api/mesh/robustness').get_json()
        assert len(robustness['criticalBridges']) == 1
        summary = client.get('/api/mesh/summary').get_json()
        assert summary['risk'] == 'Watch'


class TestImportExport:

    PROJECT = {
        "source": "NodeArchitect",
        "nodes": [
            {"id": "a", "role": "relay", "lat": 39.8283, "lng": -98.5795},
            {"id": "b", "role": "relay", "lat": 39.8287, "lng": -98.5795},
        ],
    }

    def test_import_raw_document(self, client):
        response = client.post('/api/mesh/import', json=self.PROJECT)
        assert response.status_code == 200
        assert response.get_json()['data']['imported'] == 2

    def test_import_wrapped_append(self, client):
        add_node(client, role='controller', lat=39.8283, lng=-98.5790)
        response = client.post('/api/mesh/import',
                               json={'project': self.PROJECT, 'mode': 'append'})
        assert response.status_code == 200
        assert len(client.get('/api/mesh').get_json()['nodes']) == 3

    def test_import_autoplace_query(self, client):
        payload = {"source": "NodeArchitect", "nodes": [{"id": "a"}, {"id": "b"}]}
        response = client.post('/api/mesh/import?autoplace=true', json=payload)
        assert response.get_json()['status'] == 'success'

    def test_import_rejected(self, client):
        response = client.post('/api/mesh/import', json={'foo': 'bar'})
        assert response.status_code == 400
        assert 'Unsupported JSON payload' in response.get_json()['error']

    def test_import_invalid_json(self, client):
        response = client.post('/api/mesh/import', data='{bad', content_type='application/json')
        assert response.status_code == 400

    def test_export(self, client):
        client.post('/api/mesh/import', json=self.PROJECT)
        response = client.get('/api/mesh/export/mission')
        assert response.get_json()['schema'] == 'MissionProject'
        assert client.get('/api/mesh/export/geojson').get_json()['type'] == 'FeatureCollection'

    def test_export_unknown_format(self, client):
        assert client.get('/api/mesh/export/kml').status_code == 400


class TestPresets:

    def test_list(self, client):
        presets = client.get('/api/mesh/presets').get_json()['presets']
        assert [p['id'] for p in presets][0] == 'demo'

    def test_load_demo(self, client):
        data = client.post('/api/mesh/demo', json={}).get_json()
        assert len(data['nodes']) == 4
        assert data['environment']['terrain'] == 'Suburban'
        assert len(data['links']) == 6

    def test_load_named_preset(self, client):
        data = client.post('/api/mesh/demo', json={'preset': 'urban-grid'}).get_json()
        assert len(data['nodes']) == 11

    def test_unknown_preset(self, client):
        response = client.post('/api/mesh/demo', json={'preset': 'nope'})
        assert response.status_code == 400
