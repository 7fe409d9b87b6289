from functools import wraps
from flask import jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
from quickbite import db
from quickbite.models.models import User, Store, ROLE_STAFF, ROLE_ADMIN


def current_user():
    """The users row behind the bearer token, or None"""
    user_id = get_jwt_identity()
    if not user_id:
        return None
    return db.session.get(User, user_id)


def roles_required(*roles):
    """Require a valid token whose user holds one of `roles`"""
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                return jsonify({'error': 'User not found'}), 401
            if roles and user.role not in roles:
                return jsonify({'error': 'Forbidden'}), 403
            return fn(user, *args, **kwargs)
        return wrapper
    return decorator


def login_required(fn):
    return roles_required()(fn)


def staff_store(user):
    """The store a staff member runs, falling back to the first one they own"""
    if user.store_id:
        store = db.session.get(Store, user.store_id)
        if store:
            return store
    return Store.query.filter_by(owner_id=user.id).order_by(Store.id).first()


def can_manage_store(user, store):
    if user.role == ROLE_ADMIN:
        return True
    return user.role == ROLE_STAFF and store is not None and (
        store.owner_id == user.id or store.id == user.store_id
    )
