# backend/routes/machines.py
from flask import Blueprint, request, jsonify
from models import db, Machine, Fabric, MACHINE_TYPES
import logging
import random

machines_bp = Blueprint('machines', __name__)
logger = logging.getLogger(__name__)


@machines_bp.route('', methods=['GET'])
def get_machines():
    """Get all machines"""
    try:
        machines = Machine.query.order_by(Machine.id).all()
        return jsonify([machine.to_dict() for machine in machines])
    except Exception as e:
        logger.error(f"Error fetching machines: {str(e)}")
        return jsonify({'error': 'Failed to fetch machines'}), 500


@machines_bp.route('', methods=['POST'])
def create_machine():
    """
    Create a machine and link the fabrics it can knit.
    The fabric side sees the link through Fabric.machines.
    """
    data = request.get_json(silent=True) or {}

    name = (data.get('Name') or '').strip()
    if not name:
        return jsonify({'error': 'Machine name is required'}), 400

    machine_type = (data.get('Type') or '').strip() or None
    if machine_type and machine_type not in MACHINE_TYPES:
        return jsonify({'error': f"Type must be one of: {', '.join(MACHINE_TYPES)}"}), 400

    fabric_ids = data.get('Fabrics') or []
    if not isinstance(fabric_ids, list):
        return jsonify({'error': 'Fabrics must be a list of fabric ids'}), 400

    try:
        fabric_ids = [int(fid) for fid in fabric_ids]
    except (TypeError, ValueError):
        return jsonify({'error': 'Fabrics must be a list of fabric ids'}), 400

    try:
        fabrics = Fabric.query.filter(Fabric.id.in_(fabric_ids)).all() if fabric_ids else []
        missing = sorted(set(fabric_ids) - {fabric.id for fabric in fabrics})
        if missing:
            return jsonify({'error': f'Unknown fabric ids: {missing}'}), 400

        machine = Machine(
            name=name,
            type=machine_type,
            dia_gauge=(data.get('Dia_Gauge') or '').strip() or None,
            fabrics=fabrics
        )
        db.session.add(machine)
        db.session.commit()

        logger.info(f"Machine {machine.id} '{machine.name}' added with {len(fabrics)} fabrics")
        return jsonify(machine.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error adding machine: {str(e)}")
        return jsonify({'error': f'Failed to add machine: {str(e)}'}), 500


@machines_bp.route('/suggest', methods=['GET'])
def suggest_machines():
    """Machines that can knit the selected fabric, plus one picked as the best fit"""
    fabric_id = request.args.get('fabric_id', type=int)
    if not fabric_id:
        return jsonify({'error': 'fabric_id parameter is required'}), 400

    fabric = db.session.get(Fabric, fabric_id)
    if fabric is None:
        return jsonify({'error': 'No such fabric!'}), 404

    suggested = list(fabric.machines)
    best = random.choice(suggested) if suggested else None
    return jsonify({
        'fabric': fabric.id,
        'suggested_machines': [machine.to_dict() for machine in suggested],
        'best_machine': best.to_dict() if best else None
    })


@machines_bp.route('/<int:machine_id>/orders', methods=['GET'])
def get_machine_orders(machine_id):
    machine = db.session.get(Machine, machine_id)
    if machine is None:
        return jsonify({'error': 'No such machine found!'}), 404
    return jsonify([order.to_dict() for order in machine.orders])
