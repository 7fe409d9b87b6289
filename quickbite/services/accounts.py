"""
Account-state reconciliation across the identity provider and the
users, merchant_applications and approved_staff tables.

Every workflow here is a sequence of existence checks and upserts that
runs without a cross-call transaction. A second request can slip in
between a uniqueness check and the insert that follows it; the unique
constraints on users.email and approved_staff.email are the only hard
guard against that.
"""
import secrets
from flask import current_app
from quickbite import db
from quickbite.models.models import (
    User, Store, Meal, Order, OrderItem, Message,
    MerchantApplication, ApprovedStaff, RejectedStaff,
    ROLE_STUDENT, ROLE_STAFF, ROLE_ADMIN,
    APPLICATION_PENDING, APPLICATION_APPROVED, APPLICATION_REJECTED,
    normalize_email,
)
from quickbite.models.rating import Rating, ReviewReport
from quickbite.services import credentials
from quickbite.services.auth_admin import AuthAdminError, get_auth_admin
from quickbite.services.notification_service import NotificationService

SOURCE_AUTH = 'auth'
SOURCE_USER = 'user'
SOURCE_APPLICATION = 'merchant_application'
SOURCE_STAFF = 'approved_staff'

CHECK_ORDER = (SOURCE_AUTH, SOURCE_USER, SOURCE_APPLICATION, SOURCE_STAFF)
REGISTRATION_ORDER = (SOURCE_USER, SOURCE_APPLICATION, SOURCE_STAFF, SOURCE_AUTH)

MIN_PASSWORD_LENGTH = 6


class AccountError(Exception):
    """A business-rule failure carrying the HTTP status to report"""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class EmailCheck:
    def __init__(self, exists=False, source=None, message=None, detail=None):
        self.exists = exists
        self.source = source
        self.message = message
        self.detail = detail  # role or application status behind the match

    def to_dict(self):
        result = {'exists': self.exists}
        if self.exists:
            result['type'] = self.source
            result['message'] = self.message
        return result


def latest_application(email, status=None):
    query = MerchantApplication.query.filter_by(email=normalize_email(email))
    if status:
        query = query.filter_by(status=status)
    return query.order_by(MerchantApplication.created_at.desc(), MerchantApplication.id.desc()).first()


def _check_auth(email):
    user = get_auth_admin().find_user_by_email(email)
    if user:
        return EmailCheck(True, SOURCE_AUTH,
                          "This email is already registered in our authentication system.")


def _check_user(email):
    user = User.query.filter_by(email=email).first()
    if user:
        role = user.role or 'user'
        return EmailCheck(True, SOURCE_USER, f"This email is already registered as {role}.", role)


def _check_application(email):
    app = (MerchantApplication.query
           .filter(MerchantApplication.email == email,
                   MerchantApplication.status.in_([APPLICATION_PENDING, APPLICATION_APPROVED]))
           .order_by(MerchantApplication.created_at.desc())
           .first())
    if app:
        return EmailCheck(True, SOURCE_APPLICATION,
                          f"This email already has a {app.status} merchant application.", app.status)


def _check_staff(email):
    if ApprovedStaff.query.filter_by(email=email).first():
        return EmailCheck(True, SOURCE_STAFF, "This email is already registered as approved staff.")


_CHECKS = {
    SOURCE_AUTH: _check_auth,
    SOURCE_USER: _check_user,
    SOURCE_APPLICATION: _check_application,
    SOURCE_STAFF: _check_staff,
}


def find_email_conflict(email, order=CHECK_ORDER):
    """Check every account source in `order`; the first match wins"""
    email = normalize_email(email)
    for source in order:
        found = _CHECKS[source](email)
        if found:
            return found
    return EmailCheck()


def _upsert_user(user_id, email, role):
    user = db.session.get(User, user_id)
    if user is None:
        user = User.query.filter_by(email=email).first()
        if user is not None and user.id != user_id:
            current_app.logger.warning(f"users row for {email} has id {user.id}, identity id is {user_id}")
    if user is None:
        user = User(id=user_id, email=email)
        db.session.add(user)
    user.email = email
    user.role = role
    return user


def _ensure_store(user, application):
    """Create the applicant's store unless they already own one"""
    store = Store.query.filter_by(owner_id=user.id).order_by(Store.id).first()
    if store is None:
        store = Store(
            name=application.store_name,
            description=application.description,
            category=application.category,
            owner_id=user.id,
        )
        db.session.add(store)
        db.session.flush()
        current_app.logger.info(f"Created store {store.id} for {user.email}")
    else:
        store.is_active = True
    user.store_id = store.id
    return store


def _stage_credentials(email, password):
    salt, password_hash = credentials.hash_password(password)
    cred = ApprovedStaff.query.filter_by(email=email).first()
    if cred:
        cred.password_salt = salt
        cred.password_hash = password_hash
    else:
        db.session.add(ApprovedStaff(email=email, password_salt=salt, password_hash=password_hash))


def submit_merchant_application(email, store_name, password, description=None, category=None):
    if not email or not store_name or not password:
        raise AccountError("missing email, storeName or password")

    email = normalize_email(email)
    conflict = find_email_conflict(email)
    if conflict.exists:
        if conflict.source in (SOURCE_AUTH, SOURCE_USER):
            raise AccountError("This email is already registered as a user. Please use a different "
                               "email or log in with your existing account.")
        if conflict.source == SOURCE_APPLICATION and conflict.detail == APPLICATION_APPROVED:
            raise AccountError("This email already has an approved merchant application. "
                               "Please use a different email.")
        if conflict.source == SOURCE_APPLICATION:
            raise AccountError("This email already has a pending merchant application. "
                               "Please wait for approval or use a different email.")
        raise AccountError("This email is already registered as staff. Please use a different email.")

    # Password is staged now and becomes the staff credential on approval
    _stage_credentials(email, password)

    application = MerchantApplication(
        email=email,
        store_name=str(store_name).strip(),
        description=str(description) if description else None,
        category=category,
        status=APPLICATION_PENDING,
    )
    db.session.add(application)
    db.session.commit()
    current_app.logger.info(f"Merchant application {application.id} saved for {email}")
    return application


def approve_application(email, password=None, application=None):
    """Provision a staff account for `application`, or the latest one for the email"""
    if not email:
        raise AccountError("missing email")

    email = normalize_email(email)
    password_provided = isinstance(password, str) and len(password) > 0
    auth_admin = get_auth_admin()
    cred = ApprovedStaff.query.filter_by(email=email).first()

    auth_user = auth_admin.find_user_by_email(email)
    if auth_user is None:
        if password_provided:
            auth_user = auth_admin.create_user(email, password)
        elif cred is not None:
            # The staged hash stays the credential; the identity password is synced at first staff login
            auth_user = auth_admin.create_user(email, secrets.token_urlsafe(32))
        else:
            raise AccountError("No password available for new staff user. The applicant should "
                               "have provided a password during application.")

    user = _upsert_user(auth_user['id'], email, ROLE_STAFF)

    if cred is None:
        salt, password_hash = (credentials.hash_password(password) if password_provided
                               else credentials.random_password_hash())
        db.session.add(ApprovedStaff(email=email, password_salt=salt, password_hash=password_hash))
    elif password_provided:
        cred.password_salt, cred.password_hash = credentials.hash_password(password)

    if application is None:
        application = latest_application(email)
    store = None
    if application:
        application.status = APPLICATION_APPROVED
        application.user_id = user.id
        store = _ensure_store(user, application)

    db.session.commit()
    current_app.logger.info(f"Approved staff account for {email}")
    return {
        'user_id': user.id,
        'store_id': store.id if store else None,
        'application_id': application.id if application else None,
    }


def reject_application(application, reason=None):
    if application.status == APPLICATION_REJECTED:
        return application

    email = application.email
    application.status = APPLICATION_REJECTED
    application.reason = reason
    db.session.add(RejectedStaff(
        email=email,
        store_name=application.store_name,
        reason=reason,
        application_id=application.id,
    ))
    # Revokes the staff login path
    ApprovedStaff.query.filter_by(email=email).delete()
    db.session.commit()

    try:
        user = User.query.filter_by(email=email).first()
        if user and user.role == ROLE_STAFF:
            user.role = ROLE_STUDENT
            user.store_id = None
            for store in Store.query.filter_by(owner_id=user.id).all():
                store.is_active = False
            db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.warning(f"Could not demote user {email} after rejection: {e}")

    try:
        NotificationService().send_rejection_email(email, application.store_name, reason)
    except Exception as e:
        current_app.logger.warning(f"Rejection email error: {e}")

    return application


def login_approved_staff(email, password):
    if not email or not password:
        raise AccountError("missing email or password")

    email = normalize_email(email)
    application = latest_application(email)
    if application is None:
        raise AccountError("no approved application found", 403)
    if application.status == APPLICATION_REJECTED:
        raise AccountError("application rejected", 403)
    if application.status == APPLICATION_PENDING:
        raise AccountError("application pending approval", 403)
    if application.status != APPLICATION_APPROVED:
        raise AccountError("application not approved", 403)

    cred = ApprovedStaff.query.filter_by(email=email).first()
    if cred is None:
        raise AccountError("not approved", 404)
    if not credentials.verify_password(password, cred.password_salt, cred.password_hash):
        raise AccountError("invalid password", 401)

    auth_admin = get_auth_admin()
    auth_user = auth_admin.find_user_by_email(email)
    if auth_user:
        auth_admin.update_user(auth_user['id'], password=password, email_confirm=True)
    else:
        auth_user = auth_admin.create_user(email, password)
    if not auth_user.get('id'):
        raise AccountError("no user id", 500)

    user = _upsert_user(auth_user['id'], email, ROLE_STAFF)
    _ensure_store(user, application)
    db.session.commit()
    return user


def confirm_admin(email, password):
    if not email or not password:
        raise AccountError("missing email or password")

    email = normalize_email(email)
    allowed = current_app.config.get('ADMIN_EMAILS') or []
    if allowed and email not in allowed:
        raise AccountError("email is not on the admin allow-list", 403)

    auth_admin = get_auth_admin()
    auth_user = auth_admin.find_user_by_email(email)
    if auth_user:
        auth_admin.update_user(auth_user['id'], password=password, email_confirm=True)
    else:
        auth_user = auth_admin.create_user(email, password)
    if not auth_user.get('id'):
        raise AccountError("no user id", 500)

    user = _upsert_user(auth_user['id'], email, ROLE_ADMIN)
    db.session.commit()
    return user


def register(email, password):
    if not email or not password:
        raise AccountError("Email and password are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AccountError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    email = normalize_email(email)
    conflict = find_email_conflict(email, order=REGISTRATION_ORDER)
    if conflict.exists:
        if conflict.source == SOURCE_USER:
            raise AccountError(f"This email is already registered as {conflict.detail}. Please use a "
                               "different email or log in with your existing account.")
        if conflict.source == SOURCE_APPLICATION:
            raise AccountError(f"This email already has a{'n' if conflict.detail == APPLICATION_APPROVED else ''} "
                               f"{conflict.detail} merchant application. Please use a different email.")
        if conflict.source == SOURCE_STAFF:
            raise AccountError("This email is already registered as staff. Please use a different email.")
        raise AccountError("This email is already registered. Please use a different email or "
                           "log in with your existing account.")

    auth_admin = get_auth_admin()
    try:
        auth_user = auth_admin.create_user(email, password)
    except AuthAdminError as e:
        if 'already' in str(e) or 'exists' in str(e):
            raise AccountError("This email is already registered. Please use a different email or "
                               "log in with your existing account.")
        raise

    try:
        user = _upsert_user(auth_user['id'], email, ROLE_STUDENT)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error saving user to database: {e}")
        try:
            auth_admin.delete_user(auth_user['id'])
        except AuthAdminError as cleanup_error:
            current_app.logger.error(f"Failed to cleanup auth user: {cleanup_error}")
        raise AccountError(f"Failed to save user: {e}", 500)

    NotificationService().send_welcome_email(email)
    return user


def user_for_sign_in(auth_user):
    """Find or create the users row behind an identity-provider sign-in"""
    email = normalize_email(auth_user.get('email'))
    user = User.query.filter_by(email=email).first()
    if user is None:
        allowed = current_app.config.get('ADMIN_EMAILS') or []
        role = ROLE_ADMIN if email in allowed else ROLE_STUDENT
        user = User(id=auth_user['id'], email=email, role=role)
        db.session.add(user)
        db.session.commit()
    return user


def delete_staff_account(email):
    """Remove a staff account together with its stores and everything under them"""
    if not email:
        raise AccountError("missing email")

    email = normalize_email(email)
    auth_admin = get_auth_admin()
    auth_user = auth_admin.find_user_by_email(email)
    user = db.session.get(User, auth_user['id']) if auth_user else None
    if user is None:
        user = User.query.filter_by(email=email).first()

    if user is not None:
        store_ids = [s.id for s in Store.query.filter_by(owner_id=user.id).all()]
        for store_id in set(store_ids):
            order_ids = [o.id for o in Order.query.filter_by(store_id=store_id).all()]
            rating_ids = [r.id for r in Rating.query.filter_by(store_id=store_id).all()]
            if rating_ids:
                ReviewReport.query.filter(ReviewReport.review_id.in_(rating_ids)).delete(synchronize_session=False)
                Rating.query.filter(Rating.id.in_(rating_ids)).delete(synchronize_session=False)
            if order_ids:
                Message.query.filter(Message.order_id.in_(order_ids)).delete(synchronize_session=False)
                OrderItem.query.filter(OrderItem.order_id.in_(order_ids)).delete(synchronize_session=False)
                Order.query.filter(Order.id.in_(order_ids)).delete(synchronize_session=False)
            Meal.query.filter_by(store_id=store_id).delete(synchronize_session=False)

        Store.query.filter_by(owner_id=user.id).delete(synchronize_session=False)
        Message.query.filter_by(sender_id=user.id).delete(synchronize_session=False)
        ReviewReport.query.filter_by(reporter_id=user.id).delete(synchronize_session=False)
        User.query.filter_by(id=user.id).delete(synchronize_session=False)

    if auth_user:
        try:
            auth_admin.delete_user(auth_user['id'])
        except AuthAdminError as e:
            current_app.logger.warning(f"Failed to delete auth user: {e}")

    ApprovedStaff.query.filter_by(email=email).delete(synchronize_session=False)
    MerchantApplication.query.filter_by(email=email).delete(synchronize_session=False)
    db.session.commit()
    current_app.logger.info(f"Deleted staff account and store data for {email}")
