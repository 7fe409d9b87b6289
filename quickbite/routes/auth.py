from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import create_access_token
from quickbite import db
from quickbite.models.models import normalize_email
from quickbite.routes.guards import login_required
from quickbite.services import accounts
from quickbite.services.auth_admin import AuthAdminError, get_auth_admin
from datetime import timedelta

auth_bp = Blueprint('auth', __name__)


def issue_token(user):
    return create_access_token(
        identity=user.id,
        additional_claims={'role': user.role},
        expires_delta=timedelta(hours=current_app.config.get('JWT_ACCESS_TOKEN_HOURS', 24)),
    )


@auth_bp.route('/api/auth/login', methods=['POST'])
def login():
    """Login with the identity provider and issue an API token"""
    try:
        data = request.get_json(silent=True) or {}

        # Validate required fields
        if not data.get('email') or not data.get('password'):
            return jsonify({
                'success': False,
                'error': 'Email and password are required'
            }), 400

        email = normalize_email(data['email'])
        try:
            session = get_auth_admin().sign_in_with_password(email, data['password'])
        except AuthAdminError as e:
            if e.status_code and e.status_code < 500:
                return jsonify({
                    'success': False,
                    'error': 'Invalid email or password'
                }), 401
            raise

        auth_user = session.get('user') or {}
        if not auth_user.get('id'):
            return jsonify({
                'success': False,
                'error': 'Identity provider returned no user'
            }), 500

        user = accounts.user_for_sign_in(auth_user)

        return jsonify({
            'success': True,
            'message': 'Login successful',
            'user': user.to_dict(),
            'access_token': issue_token(user)
        }), 200

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Login failed: {e}")
        return jsonify({
            'success': False,
            'error': f'Login failed: {str(e)}'
        }), 500


@auth_bp.route('/api/auth/user', methods=['GET'])
@login_required
def get_user(user):
    """Get the signed-in user"""
    return jsonify({
        'success': True,
        'user': user.to_dict()
    }), 200


@auth_bp.route('/api/auth/logout', methods=['POST'])
@login_required
def logout(user):
    """Tokens are stateless; the client discards its copy"""
    return jsonify({
        'success': True,
        'message': 'Logged out successfully'
    }), 200
