from flask import Blueprint, request, jsonify, current_app
from decimal import Decimal
from quickbite import db
from quickbite.models.models import Store, Meal, Order, OrderItem, Message
from quickbite.routes.guards import login_required, can_manage_store
from quickbite.routes.stores import booked_counts
from quickbite.services.order_flow import (
    advance, InvalidTransition, PAYMENT_SUBMITTED, CANCELLED, STUDENT_CANCELLABLE,
)
from quickbite.services.pickup_slots import store_slots

orders_bp = Blueprint('orders', __name__)


def can_view_order(user, order):
    return order.student_id == user.id or can_manage_store(user, order.store)


def _load_order(user, order_id):
    order = db.session.get(Order, order_id)
    if not order:
        return None, (jsonify({'error': 'Order not found'}), 404)
    if not can_view_order(user, order):
        return None, (jsonify({'error': 'Unauthorized'}), 403)
    return order, None


@orders_bp.route('/api/orders', methods=['POST'])
@login_required
def create_order(user):
    """Place a pre-order for a pickup slot"""
    try:
        data = request.get_json(silent=True) or {}

        # Validate required fields
        for field in ('store_id', 'pickup_time', 'items'):
            if not data.get(field):
                return jsonify({'error': f'Missing required field: {field}'}), 400

        store = db.session.get(Store, data['store_id'])
        if not store or not store.is_active:
            return jsonify({'error': 'Store not found'}), 404

        pickup_time = str(data['pickup_time']).strip()
        slot = next((s for s in store_slots(store.category) if s['time'] == pickup_time), None)
        if slot is None:
            return jsonify({'error': f'Invalid pickup time: {pickup_time}'}), 400
        if slot['limit'] and booked_counts(store.id).get(pickup_time, 0) >= slot['limit']:
            return jsonify({'error': 'This pickup slot is full'}), 409

        order = Order(
            student_id=user.id,
            store_id=store.id,
            pickup_time=pickup_time,
            notes=data.get('notes'),
            total_amount=Decimal('0'),
        )
        total = Decimal('0')
        for entry in data['items']:
            if not isinstance(entry, dict) or entry.get('meal_id') is None:
                return jsonify({'error': 'Every item needs a meal_id'}), 400
            try:
                quantity = int(entry.get('quantity', 1))
            except (TypeError, ValueError):
                quantity = 0
            if quantity < 1:
                return jsonify({'error': 'Quantity must be at least 1'}), 400

            meal = db.session.get(Meal, entry.get('meal_id'))
            if not meal or meal.store_id != store.id or not meal.is_available:
                return jsonify({'error': f"Meal {entry.get('meal_id')} is not available"}), 400

            # Snapshot of the unit price at order time
            order.items.append(OrderItem(meal_id=meal.id, quantity=quantity, price=meal.price))
            total += Decimal(meal.price) * quantity

        order.total_amount = total
        db.session.add(order)
        db.session.commit()

        current_app.logger.info(f"Order {order.id} placed at store {store.id} for {pickup_time}")
        return jsonify(order.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@orders_bp.route('/api/orders', methods=['GET'])
@login_required
def list_orders(user):
    """Orders placed by the signed-in student"""
    try:
        orders = (Order.query.filter_by(student_id=user.id)
                  .order_by(Order.created_at.desc(), Order.id.desc()).all())
        return jsonify([order.to_dict() for order in orders]), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@orders_bp.route('/api/orders/<int:order_id>', methods=['GET'])
@login_required
def get_order(user, order_id):
    try:
        order, error = _load_order(user, order_id)
        if error:
            return error
        return jsonify(order.to_dict()), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@orders_bp.route('/api/orders/<int:order_id>/payment-proof', methods=['POST'])
@login_required
def submit_payment_proof(user, order_id):
    """Attach a payment screenshot and hand the order to the store"""
    try:
        order = db.session.get(Order, order_id)
        if not order:
            return jsonify({'error': 'Order not found'}), 404
        if order.student_id != user.id:
            return jsonify({'error': 'Unauthorized'}), 403

        data = request.get_json(silent=True) or {}
        if not data.get('payment_proof_url'):
            return jsonify({'error': 'Missing required field: payment_proof_url'}), 400

        advance(order, PAYMENT_SUBMITTED)
        order.payment_proof_url = data['payment_proof_url']
        db.session.commit()
        return jsonify(order.to_dict()), 200

    except InvalidTransition as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 409
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@orders_bp.route('/api/orders/<int:order_id>/cancel', methods=['POST'])
@login_required
def cancel_order(user, order_id):
    try:
        order = db.session.get(Order, order_id)
        if not order:
            return jsonify({'error': 'Order not found'}), 404
        if order.student_id != user.id:
            return jsonify({'error': 'Unauthorized'}), 403
        if order.status not in STUDENT_CANCELLABLE:
            return jsonify({'error': f'Order can no longer be cancelled ({order.status})'}), 409

        advance(order, CANCELLED)
        db.session.commit()
        return jsonify(order.to_dict()), 200

    except InvalidTransition as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 409
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@orders_bp.route('/api/orders/<int:order_id>/messages', methods=['GET'])
@login_required
def get_messages(user, order_id):
    """Conversation thread of an order, oldest first"""
    try:
        order, error = _load_order(user, order_id)
        if error:
            return error
        return jsonify([message.to_dict() for message in order.messages]), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@orders_bp.route('/api/orders/<int:order_id>/messages', methods=['POST'])
@login_required
def post_message(user, order_id):
    try:
        order, error = _load_order(user, order_id)
        if error:
            return error

        data = request.get_json(silent=True) or {}
        content = str(data.get('content') or '').strip()
        if not content:
            return jsonify({'error': 'Message content is required'}), 400

        message = Message(order_id=order.id, sender_id=user.id, content=content)
        db.session.add(message)
        db.session.commit()
        return jsonify(message.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500
