from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import inspect
from quickbite import db
from quickbite.services import accounts
from quickbite.services.accounts import AccountError
from quickbite.services.notification_service import NotificationService, NotificationError

internal_bp = Blueprint('internal', __name__)

REQUIRED_TABLES = ('users', 'stores', 'merchant_applications', 'approved_staff')


def text(body, status=200):
    return current_app.response_class(body, status=status, mimetype='text/plain')


def _body():
    return request.get_json(silent=True) or {}


@internal_bp.route('/check-email-exists', methods=['GET', 'POST'])
def check_email_exists():
    """Report whether an email is taken anywhere in the account system"""
    try:
        email = request.args.get('email') if request.method == 'GET' else _body().get('email')
        if not email:
            return jsonify({'error': 'missing email'}), 400

        result = accounts.find_email_conflict(email)
        return jsonify(result.to_dict())

    except Exception as e:
        current_app.logger.error(f"check-email-exists failed: {e}")
        return jsonify({'error': str(e)}), 500


@internal_bp.route('/confirm-admin', methods=['POST'])
def confirm_admin():
    """Create or update an allow-listed admin account"""
    try:
        data = _body()
        accounts.confirm_admin(data.get('email'), data.get('password'))
        return text('ok')

    except AccountError as e:
        db.session.rollback()
        return text(e.message, e.status_code)
    except Exception as e:
        db.session.rollback()
        return text(str(e), 500)


@internal_bp.route('/health', methods=['GET'])
def health():
    try:
        existing = set(inspect(db.engine).get_table_names())
        missing = [name for name in REQUIRED_TABLES if name not in existing]
        return jsonify({'ok': not missing, 'missing': missing})
    except Exception as e:
        return jsonify({'ok': False, 'error': str(e)}), 500


@internal_bp.route('/login-approved-staff', methods=['POST'])
def login_approved_staff():
    try:
        data = _body()
        accounts.login_approved_staff(data.get('email'), data.get('password'))
        return text('ok')

    except AccountError as e:
        db.session.rollback()
        return text(e.message, e.status_code)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Staff login failed: {e}")
        return text(str(e), 500)


@internal_bp.route('/ping', methods=['GET'])
def ping():
    if not current_app.config.get('SUPABASE_URL') or not current_app.config.get('SUPABASE_SERVICE_KEY'):
        return text('no-admin', 404)
    return text('ok')


@internal_bp.route('/provision-staff', methods=['POST'])
def provision_staff():
    """Approve the latest application for an email"""
    try:
        data = _body()
        accounts.approve_application(data.get('email'), data.get('password'))
        return text('ok')

    except AccountError as e:
        db.session.rollback()
        return text(e.message, e.status_code)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Provisioning failed: {e}")
        return text(str(e), 500)


@internal_bp.route('/send-approval-email', methods=['POST'])
def send_approval_email():
    try:
        data = _body()
        email = data.get('email')
        if not email:
            return text('missing email', 400)

        NotificationService().send_approval_email(email, data.get('storeName'))
        return text('ok')

    except NotificationError as e:
        return text(str(e), 500)
    except Exception as e:
        current_app.logger.error(f"[Email] Error: {e}")
        return text(str(e), 500)


@internal_bp.route('/send-rejection-email', methods=['POST'])
def send_rejection_email():
    data = _body()
    email = data.get('email')
    if not email:
        return text('missing email', 400)

    try:
        NotificationService().send_rejection_email(email, data.get('storeName'), data.get('reason'))
    except Exception as e:
        current_app.logger.warning(f"Rejection email error: {e}")
    return text('ok')


@internal_bp.route('/delete-approved-staff', methods=['POST'])
def delete_approved_staff():
    try:
        accounts.delete_staff_account(_body().get('email'))
        return text('ok')

    except AccountError as e:
        db.session.rollback()
        return text(e.message, e.status_code)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting approved staff: {e}")
        return text(str(e), 500)


@internal_bp.route('/register', methods=['POST'])
def register():
    """Register a new student account"""
    try:
        data = _body()
        accounts.register(data.get('email'), data.get('password'))
        return jsonify({'message': 'Account created'}), 200

    except AccountError as e:
        db.session.rollback()
        return jsonify({'error': e.message}), e.status_code
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Registration error: {e}")
        return jsonify({'error': str(e)}), 500


@internal_bp.route('/submit-merchant-app', methods=['POST'])
def submit_merchant_app():
    try:
        data = _body()
        accounts.submit_merchant_application(
            data.get('email'),
            data.get('storeName'),
            data.get('password'),
            description=data.get('description'),
            category=data.get('category'),
        )
        return text('ok')

    except AccountError as e:
        db.session.rollback()
        return text(e.message, e.status_code)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Submit merchant app error: {e}")
        return text(str(e), 500)
