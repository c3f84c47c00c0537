# backend/routes/orders.py
from flask import Blueprint, request, jsonify
from models import db, Order, Machine, Fabric
import logging

orders_bp = Blueprint('orders', __name__)
logger = logging.getLogger(__name__)


def _parse_amount(value):
    """Whole kilograms; accepts ints, integral floats and numeric strings"""
    if isinstance(value, bool):
        raise ValueError('amount must be a number')
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError('amount must be a whole number of kg')
        return int(value)
    return int(str(value).strip())


def _parse_id(value):
    if isinstance(value, bool):
        raise ValueError('id must be an integer')
    return int(value)


@orders_bp.route('', methods=['GET'])
def get_orders():
    """All orders, optionally only those scheduled on one machine"""
    try:
        query = Order.query
        machine_id = request.args.get('machine_id', type=int)
        if machine_id:
            query = query.filter_by(machine_id=machine_id)
        orders = query.order_by(Order.id).all()
        return jsonify([order.to_dict() for order in orders])
    except Exception as e:
        logger.error(f"Error fetching orders: {str(e)}")
        return jsonify({'error': 'Failed to fetch orders'}), 500


@orders_bp.route('', methods=['POST'])
def create_order():
    """Create an order and append it to the chosen machine's schedule"""
    data = request.get_json(silent=True) or {}

    if not data.get('machine_id'):
        return jsonify({'error': 'Please select a machine before submitting the order.'}), 400

    customer = (data.get('customer') or '').strip()
    if not customer:
        return jsonify({'error': 'Customer name is required'}), 400
    if not data.get('fabric_id'):
        return jsonify({'error': 'Please select a fabric'}), 400

    try:
        amount = _parse_amount(data.get('amount'))
    except (TypeError, ValueError):
        return jsonify({'error': 'Amount must be a whole number of kg'}), 400
    if amount <= 0:
        return jsonify({'error': 'Amount must be greater than zero'}), 400

    try:
        machine_id = _parse_id(data['machine_id'])
        fabric_id = _parse_id(data['fabric_id'])
    except (TypeError, ValueError):
        return jsonify({'error': 'machine_id and fabric_id must be ids'}), 400

    machine = db.session.get(Machine, machine_id)
    if machine is None:
        logger.error(f"No such machine found: {machine_id}")
        return jsonify({'error': 'No such machine found!'}), 404
    fabric = db.session.get(Fabric, fabric_id)
    if fabric is None:
        return jsonify({'error': 'No such fabric!'}), 404

    try:
        order = Order(customer=customer, fabric=fabric, amount=amount, machine=machine)
        db.session.add(order)
        db.session.commit()

        logger.info(f"New order {order.id} appended to machine {machine.id}")
        return jsonify(order.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error submitting order: {str(e)}")
        return jsonify({'error': f'Failed to submit order: {str(e)}'}), 500
