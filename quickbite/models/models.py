from quickbite import db
from datetime import datetime
import uuid

ROLE_STUDENT = 'student'
ROLE_STAFF = 'staff'
ROLE_ADMIN = 'admin'

APPLICATION_PENDING = 'pending'
APPLICATION_APPROVED = 'approved'
APPLICATION_REJECTED = 'rejected'


def normalize_email(email):
    return str(email or '').strip().lower()


def _money(value):
    return float(value) if value is not None else None


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    role = db.Column(db.String(20), default=ROLE_STUDENT, nullable=False)
    store_id = db.Column(db.Integer, nullable=True)  # staff only, the store they run
    first_name = db.Column(db.String(255))
    last_name = db.Column(db.String(255))
    profile_image_url = db.Column(db.String(512))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'role': self.role,
            'store_id': self.store_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'profile_image_url': self.profile_image_url,
            'created_at': _iso(self.created_at),
        }


class Store(db.Model):
    __tablename__ = 'stores'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.Text)  # plain category, or "CFG:" + pickup slot JSON
    banner_image_url = db.Column(db.String(512))
    logo_url = db.Column(db.String(512))
    qr_code_url = db.Column(db.String(512))
    is_active = db.Column(db.Boolean, default=True)
    owner_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    meals = db.relationship('Meal', backref='store', lazy=True, cascade='all, delete-orphan')
    orders = db.relationship('Order', backref='store', lazy=True)

    def to_dict(self, average_rating=None, rating_count=None):
        from quickbite.services.pickup_slots import parse_slot_config, display_category

        config = parse_slot_config(self.category)
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'category': display_category(self.category),
            'pickup_slots': config['slots'] if config else [],
            'banner_image_url': self.banner_image_url,
            'logo_url': self.logo_url,
            'qr_code_url': self.qr_code_url,
            'is_active': self.is_active,
            'owner_id': self.owner_id,
            'created_at': _iso(self.created_at),
        }
        if average_rating is not None or rating_count is not None:
            data['average_rating'] = round(float(average_rating or 0), 2)
            data['rating_count'] = int(rating_count or 0)
        return data


class Meal(db.Model):
    __tablename__ = 'meals'

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey('stores.id'), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    image_url = db.Column(db.String(512))
    is_available = db.Column(db.Boolean, default=True)
    category = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'name': self.name,
            'description': self.description,
            'price': _money(self.price),
            'image_url': self.image_url,
            'is_available': self.is_available,
            'category': self.category,
        }


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey('stores.id'), nullable=False)
    status = db.Column(db.String(50), default='pending_payment', nullable=False)
    pickup_time = db.Column(db.String(50), nullable=False)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_proof_url = db.Column(db.String(512))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    items = db.relationship('OrderItem', backref='order', lazy=True, cascade='all, delete-orphan')
    messages = db.relationship('Message', backref='order', lazy=True, cascade='all, delete-orphan',
                               order_by='Message.created_at')
    student = db.relationship('User', foreign_keys=[student_id])

    def to_dict(self, include_items=True):
        data = {
            'id': self.id,
            'student_id': self.student_id,
            'store_id': self.store_id,
            'store_name': self.store.name if self.store else None,
            'status': self.status,
            'pickup_time': self.pickup_time,
            'total_amount': _money(self.total_amount),
            'payment_proof_url': self.payment_proof_url,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False)
    meal_id = db.Column(db.Integer, db.ForeignKey('meals.id'), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price = db.Column(db.Numeric(10, 2), nullable=False)  # unit price at order time

    meal = db.relationship('Meal')

    def to_dict(self):
        return {
            'id': self.id,
            'meal_id': self.meal_id,
            'meal_name': self.meal.name if self.meal else None,
            'quantity': self.quantity,
            'price': _money(self.price),
        }


class Message(db.Model):
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False)
    sender_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    sender = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'order_id': self.order_id,
            'sender_id': self.sender_id,
            'sender_email': self.sender.email if self.sender else None,
            'sender_role': self.sender.role if self.sender else None,
            'content': self.content,
            'created_at': _iso(self.created_at),
        }


class MerchantApplication(db.Model):
    __tablename__ = 'merchant_applications'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    store_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(100))
    status = db.Column(db.String(20), default=APPLICATION_PENDING, nullable=False)
    user_id = db.Column(db.String(36), nullable=True)
    reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'store_name': self.store_name,
            'description': self.description,
            'category': self.category,
            'status': self.status,
            'user_id': self.user_id,
            'reason': self.reason,
            'created_at': _iso(self.created_at),
        }


class ApprovedStaff(db.Model):
    """Staff credential kept beside the identity provider"""
    __tablename__ = 'approved_staff'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_salt = db.Column(db.String(64), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


class RejectedStaff(db.Model):
    __tablename__ = 'rejected_staff'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    store_name = db.Column(db.String(255))
    reason = db.Column(db.Text)
    application_id = db.Column(db.Integer)
    rejected_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'store_name': self.store_name,
            'reason': self.reason,
            'application_id': self.application_id,
            'rejected_at': _iso(self.rejected_at),
        }
