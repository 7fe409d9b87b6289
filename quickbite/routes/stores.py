from flask import Blueprint, jsonify
from sqlalchemy import func
from quickbite import db
from quickbite.models.models import Store, Meal, Order
from quickbite.models.rating import Rating
from quickbite.services.order_flow import CANCELLED
from quickbite.services.pickup_slots import slot_availability
from datetime import datetime, timedelta

stores_bp = Blueprint('stores', __name__)


def rating_summary(store_ids):
    """Average rating and count per store id"""
    if not store_ids:
        return {}
    rows = (db.session.query(Rating.store_id, func.avg(Rating.rating), func.count(Rating.id))
            .filter(Rating.store_id.in_(store_ids))
            .group_by(Rating.store_id)
            .all())
    return {store_id: (avg, count) for store_id, avg, count in rows}


def booked_counts(store_id, day=None):
    """Non-cancelled orders per pickup slot placed on the given UTC day"""
    start = datetime.combine(day or datetime.utcnow().date(), datetime.min.time())
    rows = (db.session.query(Order.pickup_time, func.count(Order.id))
            .filter(Order.store_id == store_id,
                    Order.status != CANCELLED,
                    Order.created_at >= start,
                    Order.created_at < start + timedelta(days=1))
            .group_by(Order.pickup_time)
            .all())
    return {pickup_time: count for pickup_time, count in rows}


@stores_bp.route('/api/stores', methods=['GET'])
def list_stores():
    """List active stores with their ratings"""
    try:
        stores = Store.query.filter_by(is_active=True).order_by(Store.name).all()
        summary = rating_summary([s.id for s in stores])
        return jsonify([
            store.to_dict(*summary.get(store.id, (0, 0))) for store in stores
        ]), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@stores_bp.route('/api/stores/<int:store_id>', methods=['GET'])
def get_store(store_id):
    try:
        store = db.session.get(Store, store_id)
        if not store:
            return jsonify({'error': 'Store not found'}), 404

        avg, count = rating_summary([store.id]).get(store.id, (0, 0))
        return jsonify(store.to_dict(avg, count)), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@stores_bp.route('/api/stores/<int:store_id>/meals', methods=['GET'])
def get_store_meals(store_id):
    """Available meals of a store"""
    try:
        if not db.session.get(Store, store_id):
            return jsonify({'error': 'Store not found'}), 404

        meals = (Meal.query.filter_by(store_id=store_id, is_available=True)
                 .order_by(Meal.category, Meal.name).all())
        return jsonify([meal.to_dict() for meal in meals]), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@stores_bp.route('/api/stores/<int:store_id>/pickup-slots', methods=['GET'])
def get_pickup_slots(store_id):
    """Pickup slots with today's remaining capacity"""
    try:
        store = db.session.get(Store, store_id)
        if not store:
            return jsonify({'error': 'Store not found'}), 404

        return jsonify(slot_availability(store.category, booked_counts(store.id))), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500
