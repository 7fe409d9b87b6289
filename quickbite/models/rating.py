from datetime import datetime
from quickbite import db

REPORT_PENDING = 'pending'
REPORT_REVIEWED = 'reviewed'
REPORT_DISMISSED = 'dismissed'
REPORT_STATUSES = (REPORT_PENDING, REPORT_REVIEWED, REPORT_DISMISSED)


class Rating(db.Model):
    __tablename__ = 'ratings'
    __table_args__ = (
        db.UniqueConstraint('order_id', 'user_id', name='uq_ratings_order_user'),
        db.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_ratings_range'),
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey('stores.id'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=True)
    rating = db.Column(db.Integer, nullable=False)  # 1-5 stars
    comment = db.Column(db.Text, nullable=True)
    image_urls = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationship with user
    user = db.relationship('User', backref=db.backref('ratings', lazy=True))

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'user_id': self.user_id,
            'user_email': self.user.email if self.user else None,
            'order_id': self.order_id,
            'rating': self.rating,
            'comment': self.comment,
            'image_urls': self.image_urls or [],
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class ReviewReport(db.Model):
    __tablename__ = 'review_reports'

    id = db.Column(db.Integer, primary_key=True)
    review_id = db.Column(db.Integer, db.ForeignKey('ratings.id'), nullable=False)
    reporter_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), default=REPORT_PENDING, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    review = db.relationship('Rating', backref=db.backref('reports', lazy=True))

    def to_dict(self):
        return {
            'id': self.id,
            'review_id': self.review_id,
            'reporter_id': self.reporter_id,
            'reason': self.reason,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'review': self.review.to_dict() if self.review else None,
        }
