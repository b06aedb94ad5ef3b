# web_app.py - Flask web application for biomaterial compatibility matching

from flask import Flask, request, jsonify
from flask_cors import CORS
import logging
from typing import Dict, Any

from config import get_settings

settings = get_settings()

# Setup logging first
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

from assistant import AssistantError, GroqChatClient, build_context
from materials import (
    CatalogLookupError,
    InvalidInputError,
    get_bone_site,
    get_material,
    list_bone_sites,
    list_materials,
    validate_weight,
)
from patient import clamp_weight, patient_fields_from_request
from ranking import best_match
from scoring import compatibility_label, score, score_tier
from session import Session

app = Flask(__name__)
CORS(app)

session = Session()
assistant = GroqChatClient.from_settings(settings)


def _request_data() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _parse_weight(data: Dict[str, Any], key: str = 'weight_kg') -> float:
    """Read weight from request data, reject invalid values and clamp to the input range"""
    return clamp_weight(validate_weight(data.get(key, data.get('weight'))))


def _breakdown_payload(breakdown) -> Dict[str, Any]:
    payload = breakdown.to_dict()
    payload['label'] = compatibility_label(breakdown.overall)
    payload['tier'] = score_tier(breakdown.overall)
    return payload


@app.errorhandler(CatalogLookupError)
def handle_lookup_error(e):
    logger.warning(f"Lookup failed: {e}")
    return jsonify({'success': False, 'error': str(e.args[0]) if e.args else str(e)}), 404


@app.errorhandler(InvalidInputError)
def handle_invalid_input(e):
    logger.warning(f"Invalid input: {e}")
    return jsonify({'success': False, 'error': str(e)}), 400


@app.route('/api/status')
def workflow_status():
    """Get system status and available features"""
    status = {
        'assistant_available': assistant.configured,
        'materials': len(list_materials()),
        'bone_sites': len(list_bone_sites()),
        'features': [
            'Compatibility Scoring',
            'Material Ranking',
            'Results Report',
        ]
    }
    if assistant.configured:
        status['features'].append('AI Assistant')
    return jsonify(status)


@app.route('/api/catalog')
def catalog():
    """List materials and bone sites"""
    return jsonify({
        'success': True,
        'materials': [m.to_dict() for m in list_materials()],
        'bone_sites': [b.to_dict() for b in list_bone_sites()],
    })


@app.route('/api/session')
def session_state():
    """Current session inputs, breakdown, ranking and report"""
    return jsonify({'success': True, 'session': session.snapshot()})


@app.route('/api/patient', methods=['POST'])
def update_patient():
    """Update patient details"""
    fields = patient_fields_from_request(_request_data())
    patient = session.set_patient(**fields)
    return jsonify({'success': True, 'patient': patient.to_dict()})


@app.route('/api/selection', methods=['POST'])
def update_selection():
    """Change bone site, material and/or weight and return the live breakdown"""
    data = _request_data()
    weight = None
    if 'weight_kg' in data or 'weight' in data:
        weight = _parse_weight(data)

    breakdown = session.apply_input_change(
        bone_site_id=data.get('bone_site_id'),
        material_id=data.get('material_id'),
        weight_kg=weight,
    )
    return jsonify({
        'success': True,
        'bone_site_id': session.bone_site_id,
        'material_id': session.material_id,
        'weight_kg': session.weight_kg,
        'breakdown': _breakdown_payload(breakdown),
    })


@app.route('/api/score', methods=['POST'])
def score_material():
    """Score an explicit material / bone site / weight without touching the session"""
    data = _request_data()
    material_id = data.get('material_id')
    bone_site_id = data.get('bone_site_id')
    if not material_id or not bone_site_id:
        return jsonify({'success': False, 'error': 'Missing material_id or bone_site_id'}), 400

    material = get_material(material_id)
    bone = get_bone_site(bone_site_id)
    breakdown = score(material, bone, _parse_weight(data))
    return jsonify({'success': True, 'breakdown': _breakdown_payload(breakdown)})


@app.route('/api/analyse', methods=['POST'])
def analyse():
    """Rank all materials for the current bone site and weight, selecting the best"""
    ranked = session.run_analysis()
    best = best_match(ranked)
    if best is None:
        return jsonify({'success': False, 'error': 'No materials available'}), 503

    return jsonify({
        'success': True,
        'best_match': best.to_dict(),
        'alternatives': [s.to_dict() for s in ranked if s is not best],
        'material_id': session.material_id,
    })


@app.route('/api/report', methods=['POST'])
def request_report():
    """Generate the results report (delivered after a short pacing delay)"""
    token = session.generate_report(delay_seconds=settings.report_delay_seconds)
    if token is None:
        return jsonify({'success': False, 'error': 'No compatibility breakdown available'}), 409
    return jsonify({'success': True, 'request_id': token}), 202


@app.route('/api/report')
def get_report():
    """Current report (None while generating)"""
    snapshot = session.snapshot()
    return jsonify({
        'success': True,
        'is_generating': snapshot['is_generating_report'],
        'report': snapshot['report'],
    })


@app.route('/api/chat', methods=['POST'])
def chat():
    """Forward a chat conversation to the clinical assistant"""
    data = _request_data()
    messages = data.get('messages') or []
    context = build_context(session.snapshot())
    try:
        reply = assistant.chat(messages, context)
    except AssistantError as e:
        logger.error(f"Assistant error: {e}")
        return jsonify({'error': str(e)}), 500
    return jsonify({'reply': reply})


if __name__ == '__main__':
    app.run(debug=settings.debug, port=settings.port)
