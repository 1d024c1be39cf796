"""
HubSpot contact push — best-effort side channel after a lead is scored.

push_lead_to_hubspot() never raises. It returns
{'success': bool, 'hubspot_id'?: str, 'error'?: str} and the caller folds that
into its own response. Timeouts and open circuits are push failures, never
scoring failures.
"""
import logging
from typing import Dict, Any

import requests

from leadengine.config import HUBSPOT_API_URL, HUBSPOT_TIMEOUT_SECONDS
from leadengine.scoring.base import LeadRecord, ScoreResult
from leadengine.services.circuit_breaker import get_breaker, CircuitOpenError

logger = logging.getLogger('services.hubspot')


def build_contact_properties(record: LeadRecord, result: ScoreResult) -> Dict[str, str]:
    """HubSpot contact properties: standard fields plus our score properties."""
    properties = {
        'firstname': record.first_name or '',
        'lastname': record.last_name or '',
        'email': record.email or '',
        'phone': record.phone or '',
        'lead_quality_score': str(result.quality_score),
        'lead_intent_score': str(result.intent_score),
        'lead_confidence_score': str(result.confidence_score),
        'lead_classification': result.classification,
        'lead_call_priority': result.priority,
    }
    if record.budget_range:
        properties['budget'] = record.budget_range
    if record.country:
        properties['country'] = record.country
    return properties


def push_lead_to_hubspot(access_token: str, record: LeadRecord, result: ScoreResult) -> Dict[str, Any]:
    """Create the contact in HubSpot. Returns a result dict, never raises."""
    url = f'{HUBSPOT_API_URL}/crm/v3/objects/contacts'
    headers = {
        'Authorization': f'Bearer {access_token}',
        'Content-Type': 'application/json',
    }
    body = {'properties': build_contact_properties(record, result)}

    try:
        response = get_breaker('hubspot').call(
            requests.post, url, headers=headers, json=body, timeout=HUBSPOT_TIMEOUT_SECONDS,
        )
    except CircuitOpenError as e:
        logger.warning("HubSpot push skipped for lead %s: %s", record.id, e)
        return {'success': False, 'error': str(e)}
    except requests.Timeout:
        logger.warning("HubSpot push timed out for lead %s", record.id)
        return {'success': False, 'error': f'HubSpot timed out after {HUBSPOT_TIMEOUT_SECONDS}s'}
    except requests.RequestException as e:
        logger.error("HubSpot push failed for lead %s: %s", record.id, e)
        return {'success': False, 'error': f'HubSpot request failed: {e}'}

    if response.status_code not in (200, 201):
        try:
            message = response.json().get('message', 'Unknown error')
        except ValueError:
            message = response.text[:200] or 'Unknown error'
        logger.error("HubSpot API error %d for lead %s: %s", response.status_code, record.id, message)
        return {'success': False, 'error': f'HubSpot API error: {response.status_code} - {message}'}

    try:
        hubspot_id = response.json().get('id')
    except ValueError:
        hubspot_id = None
    logger.info("Pushed lead %s to HubSpot as contact %s", record.id, hubspot_id)
    return {'success': True, 'hubspot_id': hubspot_id}
