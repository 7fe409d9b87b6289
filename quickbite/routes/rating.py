from flask import Blueprint, request, jsonify
from sqlalchemy.exc import IntegrityError
from quickbite import db
from quickbite.models.models import Store, Order
from quickbite.models.rating import Rating, ReviewReport
from quickbite.routes.guards import login_required

rating_bp = Blueprint('rating', __name__)

DUPLICATE_RATING = 'You have already rated this order'


@rating_bp.route('/api/stores/<int:store_id>/reviews', methods=['GET'])
def get_store_reviews(store_id):
    """Get all reviews for a store"""
    try:
        if not db.session.get(Store, store_id):
            return jsonify({'error': 'Store not found'}), 404

        reviews = (Rating.query.filter_by(store_id=store_id)
                   .order_by(Rating.created_at.desc(), Rating.id.desc()).all())
        return jsonify([review.to_dict() for review in reviews]), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@rating_bp.route('/api/stores/<int:store_id>/reviews', methods=['POST'])
@login_required
def submit_review(user, store_id):
    """Submit a new rating"""
    try:
        store = db.session.get(Store, store_id)
        if not store:
            return jsonify({'error': 'Store not found'}), 404

        data = request.get_json(silent=True) or {}
        if 'rating' not in data:
            return jsonify({'error': 'Missing required field: rating'}), 400

        # Validate rating range
        rating_value = data['rating']
        if isinstance(rating_value, bool) or not isinstance(rating_value, int) or not (1 <= rating_value <= 5):
            return jsonify({'error': 'Rating must be between 1 and 5'}), 400

        order_id = data.get('order_id')
        if order_id is not None:
            order = db.session.get(Order, order_id)
            if not order or order.store_id != store.id:
                return jsonify({'error': 'Order not found for this store'}), 404
            if order.student_id != user.id:
                return jsonify({'error': 'Unauthorized'}), 403
            if Rating.query.filter_by(order_id=order.id, user_id=user.id).first():
                return jsonify({'error': DUPLICATE_RATING}), 409

        image_urls = data.get('image_urls') or []
        if not isinstance(image_urls, list):
            return jsonify({'error': 'image_urls must be a list'}), 400

        review = Rating(
            store_id=store.id,
            user_id=user.id,
            order_id=order_id,
            rating=rating_value,
            comment=data.get('comment'),
            image_urls=image_urls,
        )
        db.session.add(review)
        db.session.commit()

        return jsonify(review.to_dict()), 201

    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': DUPLICATE_RATING}), 409
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@rating_bp.route('/api/reviews/<int:review_id>/report', methods=['POST'])
@login_required
def report_review(user, review_id):
    """Flag a review for moderation"""
    try:
        review = db.session.get(Rating, review_id)
        if not review:
            return jsonify({'error': 'Review not found'}), 404

        reason = str((request.get_json(silent=True) or {}).get('reason') or '').strip()
        if not reason:
            return jsonify({'error': 'Missing required field: reason'}), 400

        report = ReviewReport(review_id=review.id, reporter_id=user.id, reason=reason)
        db.session.add(report)
        db.session.commit()
        return jsonify(report.to_dict()), 201

    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500
