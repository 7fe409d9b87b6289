import uuid
from decimal import Decimal
import pytest
from flask_jwt_extended import create_access_token
from config import TestingConfig
from quickbite import create_app, db
from quickbite.models.models import User, Store, Meal, ROLE_STUDENT, ROLE_STAFF
from quickbite.services.auth_admin import AuthAdminError


class FakeAuthAdmin:
    """In-memory stand-in for the identity provider admin API"""

    def __init__(self):
        self.users = {}
        self.passwords = {}
        self.links = []
        self.invites = []
        self.deleted = []
        self.fail_links = False
        self.fail_invites = False

    def add_user(self, email, password='secret123'):
        user = {'id': str(uuid.uuid4()), 'email': email.lower()}
        self.users[user['id']] = user
        self.passwords[user['id']] = password
        return user

    def find_user_by_email(self, email):
        target = str(email or '').strip().lower()
        return next((u for u in self.users.values() if u['email'] == target), None)

    def create_user(self, email, password, email_confirm=True):
        if self.find_user_by_email(email):
            raise AuthAdminError('A user with this email address has already been registered', 422)
        return self.add_user(email, password)

    def update_user(self, user_id, **attributes):
        if user_id not in self.users:
            raise AuthAdminError('User not found', 404)
        if 'password' in attributes:
            self.passwords[user_id] = attributes['password']
        return self.users[user_id]

    def delete_user(self, user_id):
        if user_id not in self.users:
            raise AuthAdminError('User not found', 404)
        del self.users[user_id]
        self.passwords.pop(user_id, None)
        self.deleted.append(user_id)

    def generate_link(self, email, link_type='magiclink', data=None):
        if self.fail_links:
            raise AuthAdminError('link generation failed', 500)
        self.links.append({'email': email, 'type': link_type, 'data': data or {}})
        return {}

    def invite_user(self, email, data=None):
        if self.fail_invites:
            raise AuthAdminError('invite failed', 500)
        self.invites.append({'email': email, 'data': data or {}})
        return {}

    def sign_in_with_password(self, email, password):
        user = self.find_user_by_email(email)
        if not user or self.passwords.get(user['id']) != password:
            raise AuthAdminError('Invalid login credentials', 400)
        return {'access_token': 'provider-token', 'user': user}


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    app.extensions['auth_admin'] = FakeAuthAdmin()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_admin(app):
    return app.extensions['auth_admin']


@pytest.fixture
def make_user(app):
    def _make_user(email, role=ROLE_STUDENT):
        user = User(email=email, role=role)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def headers_for(app):
    def _headers_for(user):
        token = create_access_token(identity=user.id, additional_claims={'role': user.role})
        return {'Authorization': f'Bearer {token}'}
    return _headers_for


@pytest.fixture
def store_with_meals(app, make_user):
    """A staff-run store with two meals"""
    owner = make_user('owner@quickbite.test', ROLE_STAFF)
    store = Store(name='Noodle House', description='Ramen', category='Asian', owner_id=owner.id)
    store.meals.append(Meal(name='Tonkotsu Ramen', price=Decimal('145.00'), category='Ramen'))
    store.meals.append(Meal(name='Gyoza', price=Decimal('65.00'), category='Sides'))
    db.session.add(store)
    db.session.commit()
    owner.store_id = store.id
    db.session.commit()
    return store
