# Notification service for transactional email
import requests
from flask import current_app
from markupsafe import escape
from quickbite.services.auth_admin import AuthAdminError, get_auth_admin

RESEND_API_URL = 'https://api.resend.com/emails'


class NotificationError(Exception):
    pass


class NotificationService:
    def __init__(self):
        self.api_key = current_app.config.get('RESEND_API_KEY')
        self.from_email = current_app.config.get('MAIL_FROM')

    def send_email(self, to_email, subject, body):
        """Send email through the HTTP mail API"""
        try:
            if not self.api_key:
                current_app.logger.warning("Mail API key not configured, skipping email")
                return False

            response = requests.post(
                RESEND_API_URL,
                json={
                    'from': self.from_email,
                    'to': [to_email],
                    'subject': subject,
                    'html': body,
                },
                headers={'Authorization': f'Bearer {self.api_key}'},
                timeout=10,
            )
            if response.status_code >= 400:
                current_app.logger.error(f"Mail API rejected email to {to_email}: {response.text}")
                return False

            current_app.logger.info(f"Email sent successfully to {to_email}")
            return True

        except requests.RequestException as e:
            current_app.logger.error(f"Failed to send email to {to_email}: {e}")
            return False

    def send_welcome_email(self, email):
        """Best effort; a failure never blocks registration"""
        message = ("Welcome to QuickBite! Your account has been created successfully. "
                   "You can now log in to start ordering.")
        if self.send_email(email, "Welcome to QuickBite", f"<p>{message}</p>"):
            return True
        try:
            get_auth_admin().generate_link(email, data={'welcome': True, 'message': message})
            current_app.logger.info("[Email] Welcome email sent successfully")
            return True
        except AuthAdminError as e:
            current_app.logger.warning(f"[Email] Welcome email failed (non-critical): {e}")
            return False

    def send_approval_email(self, email, store_name=None):
        """Raises NotificationError when no delivery method succeeded"""
        message = _approval_message(store_name)
        body = f"""
        <html>
        <body>
            <h2>Application Approved</h2>
            <p>{_approval_message(escape(store_name) if store_name else None)}</p>
            <p>Best regards,<br>QuickBite Team</p>
        </body>
        </html>
        """
        if self.send_email(email, "Your QuickBite merchant application was approved", body):
            return True

        auth_admin = get_auth_admin()
        data = {'storeName': store_name or '', 'message': message}

        if auth_admin.find_user_by_email(email):
            current_app.logger.info("[Email] User already exists, generating magic link...")
            try:
                auth_admin.generate_link(email, data=data)
            except AuthAdminError as e:
                raise NotificationError(f"Failed to send email: {e}")
            return True

        current_app.logger.info("[Email] User doesn't exist, sending invitation...")
        try:
            auth_admin.invite_user(email, data=data)
            return True
        except AuthAdminError as invite_error:
            current_app.logger.error(f"[Email] Invitation failed: {invite_error}")
            try:
                auth_admin.generate_link(email, data=data)
            except AuthAdminError as link_error:
                current_app.logger.error(f"[Email] Magic link fallback also failed: {link_error}")
                raise NotificationError(f"Failed to send email: {invite_error or link_error}")
            current_app.logger.info("[Email] Magic link fallback succeeded")
            return True

    def send_rejection_email(self, email, store_name=None, reason=None):
        """Best effort; returns whether the notice went out"""
        message = _rejection_message(store_name, reason)
        html = _rejection_message(escape(store_name) if store_name else None, escape(reason) if reason else None)
        if self.send_email(email, "Your QuickBite merchant application", f"<p>{html}</p>"):
            return True
        try:
            get_auth_admin().generate_link(email, data={
                'storeName': store_name or '',
                'rejected': True,
                'reason': reason or 'Application not approved at this time.',
                'message': message,
            })
            return True
        except AuthAdminError as e:
            current_app.logger.warning(f"Could not send rejection email: {e}")
            return False


def _approval_message(store_name):
    return (f"Your merchant application{f' for {store_name}' if store_name else ''} "
            "has been approved! You can now log in to your merchant dashboard.")


def _rejection_message(store_name, reason):
    return (f"Your merchant application{f' for {store_name}' if store_name else ''} "
            f"has been rejected.{f' Reason: {reason}' if reason else ''}")
