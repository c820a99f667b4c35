"""
Planner Blueprint - Mesh planning session API

Exposes the app's MeshSession to a browser front-end. Request and
response bodies use the camelCase keys of the Architect JSON format.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from commands import mesh
from core.session import MeshSession
from core.presets import list_presets

logger = logging.getLogger(__name__)

planner_bp = Blueprint('planner', __name__)

NODE_FIELDS = {
    'label': 'label',
    'role': 'role',
    'band': 'band',
    'maxRangeMeters': 'max_range_m',
    'lat': 'lat',
    'lng': 'lng',
    'elevationMeters': 'elevation_m',
    'heightAboveGroundMeters': 'height_agl_m',
    'relayCandidate': 'relay_candidate',
    'carriedNodeIds': 'carried_node_ids',
    'isAirborne': 'is_airborne',
    'batteryHours': 'battery_hours',
    'power_w': 'power_w',
    'notes': 'notes',
}

ENVIRONMENT_FIELDS = {
    'terrain': 'terrain',
    'ewLevel': 'ew_level',
    'primaryBand': 'primary_band',
    'designRadiusMeters': 'design_radius_m',
    'targetReliability': 'target_reliability',
    'temperatureC': 'temperature_c',
    'windsMps': 'winds_mps',
    'altitudeBand': 'altitude_band',
}


def get_session() -> MeshSession:
    return current_app.config['MESH_SESSION']


def persist():
    """Write the session to the configured state file, if any."""
    state_file = current_app.config.get('MESH_STATE_FILE')
    if state_file:
        result = mesh.save_session(get_session(), state_file)
        if not result:
            logger.warning(result.message)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError('Request body must be a JSON object')
    return data


def _translate(data: dict, mapping: dict) -> dict:
    unknown = [k for k in data if k not in mapping]
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
    return {mapping[k]: v for k, v in data.items()}


def _mesh_state(session: MeshSession) -> dict:
    state = session.to_state_dict()
    state['links'] = [link.to_dict() for link in session.links]
    state['robustness'] = session.analyze().to_dict()
    state['summary'] = session.summary().to_dict()
    return state


@planner_bp.errorhandler(ValueError)
def handle_value_error(e):
    return jsonify({'error': str(e)}), 400


@planner_bp.errorhandler(KeyError)
def handle_key_error(e):
    return jsonify({'error': f'Unknown node: {e.args[0] if e.args else ""}'}), 404


@planner_bp.route('/mesh')
def api_mesh():
    """Full session state plus derived links, robustness and summary."""
    return jsonify(_mesh_state(get_session()))


@planner_bp.route('/mesh/nodes', methods=['POST'])
def api_add_node():
    fields = _translate(_json_body(), NODE_FIELDS)
    role = fields.pop('role', None)
    if not role:
        raise ValueError('role is required')
    node = get_session().add_node(role, **fields)
    persist()
    return jsonify(node.to_dict()), 201


@planner_bp.route('/mesh/nodes/<node_id>', methods=['PATCH'])
def api_update_node(node_id):
    fields = _translate(_json_body(), NODE_FIELDS)
    node = get_session().update_node(node_id, **fields)
    persist()
    return jsonify(node.to_dict())


@planner_bp.route('/mesh/nodes/<node_id>', methods=['DELETE'])
def api_delete_node(node_id):
    node = get_session().delete_node(node_id)
    persist()
    return jsonify({'deleted': node.id})


@planner_bp.route('/mesh/environment', methods=['PUT'])
def api_environment():
    fields = _translate(_json_body(), ENVIRONMENT_FIELDS)
    environment = get_session().set_environment(**fields)
    persist()
    return jsonify(environment.to_dict())


@planner_bp.route('/mesh/links')
def api_links():
    return jsonify(mesh.estimate(get_session()).data)


@planner_bp.route('/mesh/links/<a_id>/<b_id>/override', methods=['PUT'])
def api_set_override(a_id, b_id):
    data = _json_body()
    override = get_session().set_link_override(
        a_id, b_id,
        distance_m=data.get('distanceMeters'),
        los=data.get('los'),
    )
    persist()
    link = get_session().find_link(a_id, b_id)
    return jsonify({
        'override': override.to_dict(),
        'link': link.to_dict() if link else None,
    })


@planner_bp.route('/mesh/links/<a_id>/<b_id>/override', methods=['DELETE'])
def api_clear_override(a_id, b_id):
    removed = get_session().clear_link_override(a_id, b_id)
    persist()
    return jsonify({'cleared': removed})


@planner_bp.route('/mesh/robustness')
def api_robustness():
    return jsonify(mesh.analyze(get_session()).data)


@planner_bp.route('/mesh/summary')
def api_summary():
    return jsonify(mesh.summarize(get_session()).data)


@planner_bp.route('/mesh/import', methods=['POST'])
def api_import():
    """
    Import a project document.

    Body is either the document itself (mode/autoplace as query args) or
    {"project": {...}, "mode": "append", "autoplace": true}.
    """
    body = request.get_json(silent=True)
    if isinstance(body, dict) and 'project' in body:
        payload = body['project']
        mode = body.get('mode', 'replace')
        autoplace = bool(body.get('autoplace', False))
    else:
        payload = body
        mode = request.args.get('mode', 'replace')
        autoplace = request.args.get('autoplace', 'false').lower() in ('1', 'true', 'yes')

    if payload is None:
        return jsonify({'error': 'Invalid JSON provided. Please verify the format.'}), 400

    result = mesh.import_project(get_session(), payload, mode=mode, autoplace=autoplace)
    if not result:
        return jsonify({'error': result.message}), 400
    persist()
    return jsonify(result.to_dict())


@planner_bp.route('/mesh/export/<fmt>')
def api_export(fmt):
    result = mesh.export_project(get_session(), fmt)
    if not result:
        return jsonify({'error': result.message}), 400
    return jsonify(result.data['document'])


@planner_bp.route('/mesh/presets')
def api_presets():
    return jsonify({'presets': list_presets()})


@planner_bp.route('/mesh/demo', methods=['POST'])
def api_demo():
    data = request.get_json(silent=True) or {}
    preset = data.get('preset')
    session = get_session()
    try:
        session.load_demo(preset)
    except KeyError:
        return jsonify({'error': f'Unknown preset: {preset}'}), 400
    persist()
    return jsonify(_mesh_state(session))
