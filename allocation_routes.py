"""
Allocation API Module
Endpoints for booking systems and dispatch integrations
"""

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
import logging

from services import AllocationService, AllocationRequest, InvalidAllocationRequest

logger = logging.getLogger(__name__)

# Create allocation API blueprint
allocation_bp = Blueprint('allocation', __name__, url_prefix='/api/v1/allocation')


def get_current_actor_id():
    """Get the acting user/integration id from the JWT identity"""
    identity = get_jwt_identity()
    if identity is None:
        return None
    try:
        return int(identity)
    except (TypeError, ValueError):
        return None


@allocation_bp.route('/allocate', methods=['POST'])
@jwt_required()
def allocate_trip():
    """Allocate the best vehicle and driver for a trip"""
    try:
        allocation_request = AllocationRequest.from_dict(request.get_json(silent=True))
    except InvalidAllocationRequest as e:
        return jsonify({
            'success': False,
            'error': e.code.value,
            'message': 'Invalid allocation request',
            'details': e.errors
        }), 400

    result = AllocationService().allocate(allocation_request, actor_id=get_current_actor_id())

    # Allocation outcomes are always a 200; clients branch on 'success'
    return jsonify(result.to_dict())


@allocation_bp.route('/release/<int:vehicle_id>/<int:driver_id>', methods=['POST'])
@jwt_required()
def release_allocation(vehicle_id, driver_id):
    """Release a vehicle and driver after trip completion or cancellation"""
    try:
        AllocationService().release(vehicle_id, driver_id)

        return jsonify({
            'success': True,
            'message': f'Vehicle {vehicle_id} and driver {driver_id} released'
        })

    except Exception as e:
        logger.error(f"Error in release_allocation: {str(e)}")
        return jsonify({
            'success': False,
            'error': 'INTERNAL_ERROR',
            'message': 'Internal server error'
        }), 500


@allocation_bp.route('/history/<int:trip_id>', methods=['GET'])
@jwt_required()
def allocation_history(trip_id):
    """Get allocation history for a trip, most recent first"""
    try:
        history = AllocationService().history(trip_id)

        return jsonify({
            'success': True,
            'trip_id': trip_id,
            'history': history
        })

    except Exception as e:
        logger.error(f"Error in allocation_history: {str(e)}")
        return jsonify({
            'success': False,
            'error': 'INTERNAL_ERROR',
            'message': 'Internal server error'
        }), 500
