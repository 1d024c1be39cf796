"""
Health routes — liveness for the load balancer plus circuit breaker state.
"""
from flask import Blueprint, jsonify

from leadengine.services.circuit_breaker import get_all_breakers

bp = Blueprint('health', __name__)


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/health')
def api_health():
    """Circuit breaker state for every outbound integration."""
    services = {name: cb.get_health() for name, cb in get_all_breakers().items()}
    degraded = [name for name, svc in services.items() if svc['state'] != 'closed']
    return jsonify({
        'status': 'degraded' if degraded else 'healthy',
        'services': services,
    })


@bp.route('/api/health/<service>/reset', methods=['POST'])
def reset_circuit(service):
    breakers = get_all_breakers()
    if service not in breakers:
        return jsonify({'error': f'Unknown service: {service}'}), 404
    breakers[service].reset()
    return jsonify({'ok': True, 'service': service})
