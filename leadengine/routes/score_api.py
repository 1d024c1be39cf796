"""
External scoring API — /api/v1, behind the API key gateway.

    POST /api/v1/score                 score one lead (score_single)
    POST /api/v1/score/batch           up to 50 leads by id or inline (score_batch)
    POST /api/v1/webhook/lead-created  create + score + CRM push (webhook)

The authenticated key is on flask.g.api_key; its company_id scopes every
store read and write.
"""
import dataclasses
import logging

from flask import Blueprint, current_app, g, jsonify, request

from leadengine.config import BATCH_MAX_ITEMS
from leadengine.errors import PersistenceFailure, ValidationError
from leadengine.scoring.engine import score_lead, to_storage_fields
from leadengine.scoring.normalizer import normalize_lead
from leadengine.services.gateway import api_key_required
from leadengine.services.hubspot import push_lead_to_hubspot
from leadengine.services.orchestrator import LeadOutcome

logger = logging.getLogger('routes.score_api')

bp = Blueprint('score_api', __name__, url_prefix='/api/v1')


def _services():
    return current_app.extensions['leadengine']


def _json_object():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')
    return body


def _developments(company_id):
    found = _services().store.list_developments(company_id)
    return (found.value or None) if found.ok else None


@bp.route('/score', methods=['POST'])
@api_key_required('score_single')
def score_single():
    """Score one lead from a ScoreRequest and upsert the result."""
    body = _json_object()
    external_id = body.get('external_id')
    if not external_id or not isinstance(external_id, (str, int)):
        raise ValidationError('external_id is required')
    external_id = str(external_id)
    external_source = str(body.get('external_source') or 'api')
    company_id = g.api_key['company_id']

    result = score_lead(normalize_lead(body), _developments(company_id))

    saved = _services().store.save_scored_lead(company_id, external_id, external_source, body, result)
    if not saved.ok:
        raise PersistenceFailure('Failed to save score')

    logger.info("Scored %s/%s for company %s: %s", external_source, external_id,
                company_id, result.classification)
    return jsonify({'success': True, 'external_id': external_id, **result.to_dict()})


@bp.route('/score/batch', methods=['POST'])
@api_key_required('score_batch')
def score_batch():
    """
    Score up to BATCH_MAX_ITEMS leads.

    {buyer_ids: [...]} resolves leads in the caller's company and merge-writes
    the scores back; {leads: [...]} scores inline records without touching the
    store. The size cap is checked before anything is read or scored.
    """
    body = _json_object()
    buyer_ids = body.get('buyer_ids')
    leads = body.get('leads')

    if buyer_ids is not None and leads is not None:
        raise ValidationError('Provide either buyer_ids or leads, not both')
    items = buyer_ids if buyer_ids is not None else leads
    if not isinstance(items, list) or not items:
        raise ValidationError('buyer_ids or leads must be a non-empty list')
    if len(items) > BATCH_MAX_ITEMS:
        raise ValidationError(f'Batch size {len(items)} exceeds maximum of {BATCH_MAX_ITEMS}',
                              max_items=BATCH_MAX_ITEMS)

    services = _services()
    company_id = g.api_key['company_id']

    if buyer_ids is not None:
        ids = [str(b) for b in buyer_ids]
        found = services.store.get_leads(company_id, ids)
        if not found.ok:
            raise found.error
        present, missing = [], []
        for index, buyer_id in enumerate(ids):
            if buyer_id in found.value:
                present.append((index, found.value[buyer_id]))
            else:
                missing.append(LeadOutcome(index, buyer_id, error='Lead not found', kind='not_found'))
        outcome = services.orchestrator.process(present, company_id=company_id, persist=True, failed=missing)
    else:
        outcome = services.orchestrator.process(list(enumerate(leads)), company_id=company_id, persist=False)

    response = {
        'total': outcome.requested,
        'scored': outcome.succeeded,
        'failed': outcome.failed,
        'results': outcome.results,
    }
    if outcome.errors:
        response['errors'] = outcome.errors
    return jsonify(response)


@bp.route('/webhook/lead-created', methods=['POST'])
@api_key_required('webhook')
def lead_created():
    """
    Ingest one lead: create → score → persist → best-effort HubSpot push.

    Once the lead exists the response is 201 even if scoring, persisting the
    score or the CRM push went wrong; those show up under scoring.error and
    hubspot.error.
    """
    body = _json_object()
    raw = body['lead'] if isinstance(body.get('lead'), dict) else body
    record = normalize_lead(raw)
    if not (record.full_name or record.first_name or record.email):
        raise ValidationError('At least one of full_name, first_name or email is required')

    services = _services()
    company_id = g.api_key['company_id']

    created = services.store.create_lead(company_id, record, extra={'webhook_payload': raw})
    if not created.ok:
        logger.error("Webhook lead not created for company %s: %s", company_id, created.error.message)
        return jsonify({
            'success': False,
            'error': 'Failed to create lead',
            'code': 'lead_not_created',
        }), 500

    buyer_id = created.value['id']
    scored = dataclasses.replace(record, id=buyer_id, company_id=company_id)
    result = None
    try:
        result = score_lead(scored, _developments(company_id))
        scoring = {
            'quality_score': result.quality_score,
            'intent_score': result.intent_score,
            'confidence_score': result.confidence_score,
            'classification': result.classification,
            'call_priority': result.priority,
            'is_28_day_buyer': result.is_28_day_buyer,
            'is_fake_lead': result.is_fake,
        }
    except Exception as e:
        logger.error("Scoring failed for new lead %s: %s", buyer_id, e, exc_info=True)
        scoring = {'error': f'Scoring failed: {e}'}

    if result is not None:
        written = services.store.update_scores(buyer_id, to_storage_fields(result))
        if not written.ok:
            logger.error("Score for new lead %s computed but not saved: %s", buyer_id, written.error.message)
            scoring = {'error': f'Score not saved: {written.error.message}'}

    return jsonify({
        'success': True,
        'buyer_id': buyer_id,
        'scoring': scoring,
        'hubspot': _push_to_hubspot(company_id, scored, result),
    }), 201


def _push_to_hubspot(company_id, record, result):
    company = _services().store.get_company(company_id)
    token = company.value.get('hubspot_access_token') if company.ok and company.value else None
    if not token:
        return {'pushed': False, 'reason': 'HubSpot not configured'}
    if result is None:
        return {'pushed': False, 'reason': 'Lead not scored'}

    pushed = push_lead_to_hubspot(token, record, result)
    if pushed.get('success'):
        return {'pushed': True, 'hubspot_id': pushed.get('hubspot_id')}
    return {'pushed': False, 'error': pushed.get('error')}
