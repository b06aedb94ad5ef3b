"""HTTP API tests using the Flask test client."""

from dataclasses import replace

import pytest

import web_app
from assistant import AssistantError
from session import Session


class _StubAssistant:
    configured = True

    def __init__(self, error=None):
        self.error = error
        self.contexts = []

    def chat(self, messages, context):
        self.contexts.append(context)
        if self.error:
            raise AssistantError(self.error)
        return "Educational purposes only."


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(web_app, "session", Session())
    monkeypatch.setattr(web_app, "settings", replace(web_app.settings, report_delay_seconds=0))
    web_app.app.config['TESTING'] = True
    return web_app.app.test_client()


class TestCatalogEndpoints:
    def test_status(self, client):
        data = client.get('/api/status').get_json()
        assert data['materials'] == 22
        assert data['bone_sites'] == 8

    def test_catalog(self, client):
        data = client.get('/api/catalog').get_json()
        assert len(data['materials']) == 22
        assert data['bone_sites'][0]['id'] == 'femur'


class TestSelection:
    def test_change_material(self, client):
        res = client.post('/api/selection', json={'material_id': 'alumina'})
        assert res.status_code == 200
        data = res.get_json()
        assert data['material_id'] == 'alumina'
        assert web_app.session.material_id == 'alumina'
        assert 'label' in data['breakdown']

    def test_unknown_material(self, client):
        res = client.post('/api/selection', json={'material_id': 'unobtanium'})
        assert res.status_code == 404
        assert web_app.session.material_id == 'ti6al4v_eli'

    def test_weight_clamped(self, client):
        data = client.post('/api/selection', json={'weight_kg': 500}).get_json()
        assert data['weight_kg'] == 180
        data = client.post('/api/selection', json={'weight_kg': 12.5}).get_json()
        assert data['weight_kg'] == 30

    def test_weight_not_a_number(self, client):
        res = client.post('/api/selection', json={'weight_kg': "heavy"})
        assert res.status_code == 400
        assert web_app.session.weight_kg == 70

    def test_weight_non_positive_rejected(self, client):
        assert client.post('/api/selection', json={'weight_kg': 0}).status_code == 400
        assert client.post('/api/selection', json={'weight_kg': -5}).status_code == 400
        assert web_app.session.weight_kg == 70

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_weight_non_finite_rejected(self, client, literal):
        res = client.post('/api/selection', data=f'{{"weight_kg": {literal}}}',
                          content_type='application/json')
        assert res.status_code == 400
        assert web_app.session.weight_kg == 70

    def test_non_string_material_id(self, client):
        res = client.post('/api/selection', json={'material_id': ['alumina']})
        assert res.status_code == 404
        assert web_app.session.material_id == 'ti6al4v_eli'

    def test_non_string_bone_site_id(self, client):
        res = client.post('/api/selection', json={'bone_site_id': {'id': 'skull'}})
        assert res.status_code == 404
        assert web_app.session.bone_site_id == 'femur'

    def test_patient_update(self, client):
        res = client.post('/api/patient', json={'name': "Ada", 'bloodGroup': "O+", 'urgency': "HIGH"})
        assert res.status_code == 200
        assert res.get_json()['patient']['blood_group'] == "O+"
        assert web_app.session.patient.urgency == "high"

    def test_patient_bad_urgency(self, client):
        res = client.post('/api/patient', json={'urgency': "someday"})
        assert res.status_code == 400


class TestScoring:
    def test_stateless_score(self, client):
        res = client.post('/api/score', json={
            'material_id': 'ti6al4v_eli', 'bone_site_id': 'femur', 'weight_kg': 70
        })
        data = res.get_json()
        assert data['breakdown']['overall'] == 78
        assert data['breakdown']['tier'] == 'moderate'

    def test_score_does_not_touch_session(self, client):
        client.post('/api/score', json={'material_id': 'alumina', 'bone_site_id': 'skull', 'weight_kg': 90})
        assert web_app.session.material_id == 'ti6al4v_eli'
        assert web_app.session.bone_site_id == 'femur'

    def test_score_missing_ids(self, client):
        assert client.post('/api/score', json={'weight_kg': 70}).status_code == 400

    def test_score_non_string_ids(self, client):
        res = client.post('/api/score', json={
            'material_id': ['alumina'], 'bone_site_id': 'femur', 'weight_kg': 70
        })
        assert res.status_code == 404
        res = client.post('/api/score', json={
            'material_id': 'alumina', 'bone_site_id': 7, 'weight_kg': 70
        })
        assert res.status_code == 404

    def test_score_nan_weight(self, client):
        res = client.post('/api/score', content_type='application/json',
                          data='{"material_id": "alumina", "bone_site_id": "femur", "weight_kg": NaN}')
        assert res.status_code == 400

    def test_analyse_selects_best(self, client):
        data = client.post('/api/analyse').get_json()
        assert data['material_id'] == data['best_match']['material']['id']
        assert len(data['alternatives']) == 21
        assert data['best_match'] not in data['alternatives']
        assert web_app.session.has_analysed


class TestReport:
    def test_generate_and_fetch(self, client):
        res = client.post('/api/report')
        assert res.status_code == 202
        data = client.get('/api/report').get_json()
        assert not data['is_generating']
        assert data['report']['perfect_match']['material_label'] == "Ti-6Al-4V ELI"

    def test_no_breakdown(self, client):
        web_app.session.breakdown = None
        res = client.post('/api/report')
        assert res.status_code == 409
        assert client.get('/api/report').get_json()['report'] is None


class TestChat:
    def test_reply_uses_session_context(self, client, monkeypatch):
        stub = _StubAssistant()
        monkeypatch.setattr(web_app, "assistant", stub)
        res = client.post('/api/chat', json={'messages': [{'role': 'user', 'content': "hi"}]})
        assert res.get_json() == {'reply': "Educational purposes only."}
        assert "Target Bone: Femur" in stub.contexts[0]

    def test_error_maps_to_500(self, client, monkeypatch):
        monkeypatch.setattr(web_app, "assistant", _StubAssistant(error="AI error: upstream"))
        before = web_app.session.snapshot()
        res = client.post('/api/chat', json={'messages': [{'role': 'user', 'content': "hi"}]})
        assert res.status_code == 500
        assert res.get_json()['error'] == "AI error: upstream"
        assert web_app.session.snapshot() == before
