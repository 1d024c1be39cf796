"""
Scoring config — YAML with hardcoded fallback.

Every point value and threshold the calculators use comes from here, so the
business can retune weights without touching the decision logic. The YAML
file only needs to carry the keys it overrides; it is deep-merged over
_default_config().
"""
import copy
import logging
import os
from typing import Dict, Any

import yaml

from leadengine.config import SCORING_CONFIG_PATH

logger = logging.getLogger('scoring.config')

_scoring_config = None


def _default_config() -> Dict[str, Any]:
    """Hardcoded fallback if YAML is missing."""
    return {
        'version': 'default',
        'quality': {
            'profile': {
                'cap': 20,
                'full_name': 4,
                'email': 4,
                'phone': 4,
                'budget': 4,
                'preferred_location': 4,
                'country': 2,
                'bedrooms': 2,
            },
            'financial': {
                'floor': -25,
                'cap': 75,
                'cash': 45,
                'mortgage': 20,
                'budget_consistent': 5,
                'min_realistic_budget': 50000,
                'proof_of_funds': 25,
                'mortgage_approved': 20,
                'mortgage_in_progress': 5,
                'mortgage_declined': -20,
                'budget_mismatch': -20,
                'mismatch_min_budget': 2000000,
                'mismatch_max_bedrooms': 1,
            },
            'verification': {
                'floor': -10,
                'cap': 20,
                'broker': 10,
                'solicitor': 10,
                'both_declined': -10,
            },
            'inventory': {
                'match': 10,
            },
        },
        'intent': {
            'timeline': {
                'within_28_days': 40,
                '0_3_months': 30,
                '3_6_months': 20,
                '6_9_months': 12,
                '9_12_months': 6,
                'unknown': 4,
            },
            'purpose': {
                'cap': 25,
                'cash': 15,
                'mortgage': 8,
                'residence': 10,
                'investment': 7,
                'dependent_studying': 8,
                'holiday_home': 4,
            },
            'engagement': {
                'cap': 20,
                'replied': 8,
                'recent_contact': 6,
                'recent_days': 14,
                'transcript': 6,
            },
            'commitment': {
                'cap': 25,
                'viewing_booked': 20,
                'viewing_intent_confirmed': 8,
            },
            'modifiers': {
                'not_proceeding': -30,
                'duplicate': -20,
            },
            'stop_comms_ceiling': 10,
        },
        'confidence': {
            'weights': {
                'completeness': 3.0,
                'verification': 3.0,
                'engagement': 3.0,
                'transcript': 1.0,
            },
            'verification_points': {
                'proof_of_funds': 5,
                'broker_confirmed': 3,
                'broker_declined': 1,
                'solicitor_confirmed': 2,
                'solicitor_declined': 1,
            },
            'engagement_points': {
                'viewing_booked': 5,
                'replied': 3,
                'last_contact': 2,
            },
            'transcript_bands': [
                {'min_chars': 500, 'value': 1.0},
                {'min_chars': 200, 'value': 0.7},
                {'min_chars': 50, 'value': 0.4},
                {'min_chars': 1, 'value': 0.2},
            ],
        },
        'classification': {
            'hot_quality_min': 70,
            'hot_intent_min': 70,
            'qualified_quality_min': 55,
            'qualified_intent_min': 45,
            'min_confidence': 4.0,
            'nurture_intent_min': 30,
        },
        'risk': {
            'stale_after_days': 30,
        },
    }


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_scoring_config(path: str = None) -> Dict[str, Any]:
    """Load scoring config from YAML (cached). Falls back to defaults."""
    global _scoring_config
    if _scoring_config is not None and path is None:
        return _scoring_config

    config_path = path or SCORING_CONFIG_PATH
    config = _default_config()
    if os.path.exists(config_path):
        try:
            with open(config_path) as f:
                config = _deep_merge(config, yaml.safe_load(f) or {})
            logger.info("Loaded scoring config v%s from %s", config.get('version'), config_path)
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load scoring config from %s: %s, using defaults", config_path, e)
            config = _default_config()
    else:
        logger.warning("Scoring config not found at %s, using defaults", config_path)

    if path is None:
        _scoring_config = config
    return config
