"""
Internal rescore routes — used by the product's own backend, not the public API.

    POST /api/ai/rescore-all   score one page of stored leads
    GET  /api/ai/rescore-all   scored / unscored counts

Callers page through a tenant by feeding next_offset back in until has_more
is false.
"""
import logging

from flask import Blueprint, current_app, jsonify, request

from leadengine.config import RESCORE_DEFAULT_LIMIT, RESCORE_MAX_LIMIT
from leadengine.errors import ValidationError

logger = logging.getLogger('routes.rescore')

bp = Blueprint('rescore', __name__, url_prefix='/api/ai')


def _int_param(body, name, default, low, high=None):
    value = body.get(name, default)
    if isinstance(value, bool):
        raise ValidationError(f'{name} must be an integer')
    if not isinstance(value, int):
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f'{name} must be an integer')
    if value < low or (high is not None and value > high):
        bounds = f'{low}..{high}' if high is not None else f'>= {low}'
        raise ValidationError(f'{name} must be {bounds}')
    return value


@bp.route('/rescore-all', methods=['POST'])
def rescore_all():
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')

    limit = _int_param(body, 'limit', RESCORE_DEFAULT_LIMIT, 1, RESCORE_MAX_LIMIT)
    offset = _int_param(body, 'offset', 0, 0)
    force = body.get('force', True)
    if not isinstance(force, bool):
        raise ValidationError('force must be a boolean')
    buyer_ids = body.get('buyer_ids')
    if buyer_ids is not None and not isinstance(buyer_ids, list):
        raise ValidationError('buyer_ids must be a list')
    company_id = body.get('company_id')

    page = current_app.extensions['leadengine'].orchestrator.rescore(
        company_id=company_id,
        limit=limit,
        offset=offset,
        force=force,
        buyer_ids=[str(b) for b in buyer_ids] if buyer_ids else None,
    )
    if not page.ok:
        raise page.error

    outcome = page.value
    logger.info("Rescore page offset=%d: %d scored, %d failed, has_more=%s",
                offset, outcome.succeeded, outcome.failed, outcome.has_more)
    return jsonify(outcome.to_dict())


@bp.route('/rescore-all', methods=['GET'])
def rescore_status():
    status = current_app.extensions['leadengine'].orchestrator.status(request.args.get('company_id'))
    if not status.ok:
        raise status.error
    return jsonify(status.value)
