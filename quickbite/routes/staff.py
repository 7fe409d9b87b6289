from flask import Blueprint, request, jsonify, current_app
from decimal import Decimal, InvalidOperation
from quickbite import db
from quickbite.models.models import Meal, Order, OrderItem, ROLE_STAFF
from quickbite.routes.guards import roles_required, staff_store
from quickbite.services.order_flow import advance, InvalidTransition, ALL_STATUSES
from quickbite.services.pickup_slots import encode_slot_config

staff_bp = Blueprint('staff', __name__)

STORE_FIELDS = ('name', 'description', 'banner_image_url', 'logo_url', 'qr_code_url')
MEAL_FIELDS = ('name', 'description', 'image_url', 'is_available', 'category')


def _parse_price(value):
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return price if price >= 0 else None


@staff_bp.route('/api/staff/store', methods=['GET'])
@roles_required(ROLE_STAFF)
def get_my_store(user):
    try:
        store = staff_store(user)
        if not store:
            return jsonify({'error': 'No store linked to this account'}), 404
        return jsonify(store.to_dict()), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@staff_bp.route('/api/staff/store', methods=['PUT'])
@roles_required(ROLE_STAFF)
def update_my_store(user):
    """Update store details; pickup slots are encoded into the category"""
    try:
        store = staff_store(user)
        if not store:
            return jsonify({'error': 'No store linked to this account'}), 404

        data = request.get_json(silent=True) or {}
        for field in STORE_FIELDS:
            if field in data:
                setattr(store, field, data[field])

        if 'pickup_slots' in data:
            slots = data['pickup_slots'] or []
            store.category = encode_slot_config(slots) if slots else data.get('category')
        elif 'category' in data:
            store.category = data['category']

        if not store.name:
            return jsonify({'error': 'Store name is required'}), 400

        db.session.commit()
        return jsonify(store.to_dict()), 200

    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@staff_bp.route('/api/staff/orders', methods=['GET'])
@roles_required(ROLE_STAFF)
def get_store_orders(user):
    """Orders for the staff member's store, newest first"""
    try:
        store = staff_store(user)
        if not store:
            return jsonify({'error': 'No store linked to this account'}), 404

        query = Order.query.filter_by(store_id=store.id)
        status = request.args.get('status')
        if status:
            query = query.filter_by(status=status)
        orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
        return jsonify([order.to_dict() for order in orders]), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@staff_bp.route('/api/staff/orders/<int:order_id>/status', methods=['PATCH'])
@roles_required(ROLE_STAFF)
def update_order_status(user, order_id):
    try:
        store = staff_store(user)
        order = db.session.get(Order, order_id)
        if not order:
            return jsonify({'error': 'Order not found'}), 404
        if not store or order.store_id != store.id:
            return jsonify({'error': 'Unauthorized'}), 403

        status = (request.get_json(silent=True) or {}).get('status')
        if status not in ALL_STATUSES:
            return jsonify({'error': f'Invalid status: {status}'}), 400

        previous = order.status
        advance(order, status)
        db.session.commit()

        current_app.logger.info(f"Order {order.id} moved from {previous} to {status}")
        return jsonify(order.to_dict()), 200

    except InvalidTransition as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 409
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@staff_bp.route('/api/staff/meals', methods=['GET'])
@roles_required(ROLE_STAFF)
def get_my_meals(user):
    try:
        store = staff_store(user)
        if not store:
            return jsonify({'error': 'No store linked to this account'}), 404
        meals = Meal.query.filter_by(store_id=store.id).order_by(Meal.name).all()
        return jsonify([meal.to_dict() for meal in meals]), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@staff_bp.route('/api/staff/meals', methods=['POST'])
@roles_required(ROLE_STAFF)
def create_meal(user):
    """Add a meal to the menu"""
    try:
        store = staff_store(user)
        if not store:
            return jsonify({'error': 'No store linked to this account'}), 404

        data = request.get_json(silent=True) or {}
        if not data.get('name') or data.get('price') is None:
            return jsonify({'error': 'Missing required fields: name, price'}), 400

        price = _parse_price(data['price'])
        if price is None:
            return jsonify({'error': 'Price must be a non-negative number'}), 400

        meal = Meal(
            store_id=store.id,
            name=data['name'].strip(),
            description=data.get('description'),
            price=price,
            image_url=data.get('image_url'),
            is_available=data.get('is_available', True),
            category=data.get('category'),
        )
        db.session.add(meal)
        db.session.commit()
        return jsonify(meal.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@staff_bp.route('/api/staff/meals/<int:meal_id>', methods=['PATCH'])
@roles_required(ROLE_STAFF)
def update_meal(user, meal_id):
    try:
        store = staff_store(user)
        meal = db.session.get(Meal, meal_id)
        if not meal:
            return jsonify({'error': 'Meal not found'}), 404
        if not store or meal.store_id != store.id:
            return jsonify({'error': 'Unauthorized'}), 403

        data = request.get_json(silent=True) or {}
        for field in MEAL_FIELDS:
            if field in data:
                setattr(meal, field, data[field])
        if 'price' in data:
            price = _parse_price(data['price'])
            if price is None:
                db.session.rollback()
                return jsonify({'error': 'Price must be a non-negative number'}), 400
            meal.price = price

        db.session.commit()
        return jsonify(meal.to_dict()), 200

    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@staff_bp.route('/api/staff/meals/<int:meal_id>', methods=['DELETE'])
@roles_required(ROLE_STAFF)
def delete_meal(user, meal_id):
    """Delete a meal; one that appears on past orders is only hidden"""
    try:
        store = staff_store(user)
        meal = db.session.get(Meal, meal_id)
        if not meal:
            return jsonify({'error': 'Meal not found'}), 404
        if not store or meal.store_id != store.id:
            return jsonify({'error': 'Unauthorized'}), 403

        if OrderItem.query.filter_by(meal_id=meal.id).first():
            meal.is_available = False
            message = 'Meal hidden from the menu'
        else:
            db.session.delete(meal)
            message = 'Meal deleted'
        db.session.commit()
        return jsonify({'success': True, 'message': message}), 200

    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500
