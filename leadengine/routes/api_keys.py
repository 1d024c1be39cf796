"""
Internal API key management.

    POST   /api/api-keys          issue a key; the plaintext is in this response only
    GET    /api/api-keys          list a company's keys (no secrets)
    DELETE /api/api-keys/<id>     revoke
"""
from flask import Blueprint, current_app, jsonify, request

from leadengine.errors import ValidationError

bp = Blueprint('api_keys', __name__, url_prefix='/api/api-keys')


def _service():
    return current_app.extensions['leadengine'].api_keys


@bp.route('', methods=['POST'])
def create_key():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')
    permissions = body.get('permissions')
    if permissions is not None and not isinstance(permissions, dict):
        raise ValidationError('permissions must be an object of flag → bool')

    created = _service().create_api_key(
        company_id=body.get('company_id'),
        name=body.get('name'),
        permissions=permissions,
        rate_limit_per_minute=body.get('rate_limit_per_minute'),
    )
    if not created.ok:
        raise created.error

    key, plaintext = created.value
    return jsonify({
        **key,
        'key': plaintext,
        'warning': 'Store this key now. It will not be shown again.',
    }), 201


@bp.route('', methods=['GET'])
def list_keys():
    company_id = request.args.get('company_id')
    if not company_id:
        raise ValidationError('company_id is required')
    keys = _service().list_keys(company_id)
    if not keys.ok:
        raise keys.error
    return jsonify({'api_keys': keys.value})


@bp.route('/<key_id>', methods=['DELETE'])
def revoke_key(key_id):
    revoked = _service().revoke(key_id)
    if not revoked.ok:
        raise revoked.error
    if revoked.value is None:
        return jsonify({'error': 'API key not found'}), 404
    return jsonify({'success': True, 'api_key': revoked.value})
