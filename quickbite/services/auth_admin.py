# Admin client for the hosted identity provider (Supabase Auth / GoTrue)
import requests
from flask import current_app
from typing import Dict, List, Optional

PAGE_SIZE = 1000


class AuthAdminError(Exception):
    """Raised when the identity provider rejects a call or is unreachable"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class AuthAdminClient:
    def __init__(self, base_url: str, service_key: str, anon_key: str = '', timeout: int = 10):
        if not base_url or not service_key:
            raise AuthAdminError('Missing SUPABASE_URL or SUPABASE_SERVICE_KEY')
        self.base_url = base_url.rstrip('/')
        self.service_key = service_key
        self.anon_key = anon_key or service_key
        self.timeout = timeout
        self.session = requests.Session()

    def _headers(self, key=None):
        key = key or self.service_key
        return {
            'apikey': key,
            'Authorization': f'Bearer {key}',
            'Content-Type': 'application/json',
        }

    def _request(self, method, path, key=None, **kwargs) -> Dict:
        url = f'{self.base_url}/auth/v1{path}'
        try:
            response = self.session.request(
                method, url, headers=self._headers(key), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise AuthAdminError(f'Identity provider unreachable: {e}')

        if response.status_code >= 400:
            raise AuthAdminError(_error_message(response), response.status_code)
        if not response.content:
            return {}
        return response.json()

    def list_users(self, page: int = 1, per_page: int = PAGE_SIZE) -> List[Dict]:
        data = self._request('GET', '/admin/users', params={'page': page, 'per_page': per_page})
        return data.get('users', [])

    def find_user_by_email(self, email: str) -> Optional[Dict]:
        """Scan every page of users for a case-insensitive email match"""
        target = str(email or '').strip().lower()
        page = 1
        while True:
            users = self.list_users(page=page)
            for user in users:
                if str(user.get('email') or '').strip().lower() == target:
                    return user
            if len(users) < PAGE_SIZE:
                return None
            page += 1

    def create_user(self, email: str, password: str, email_confirm: bool = True) -> Dict:
        return self._request('POST', '/admin/users', json={
            'email': email,
            'password': password,
            'email_confirm': email_confirm,
        })

    def update_user(self, user_id: str, **attributes) -> Dict:
        return self._request('PUT', f'/admin/users/{user_id}', json=attributes)

    def delete_user(self, user_id: str) -> None:
        self._request('DELETE', f'/admin/users/{user_id}')

    def generate_link(self, email: str, link_type: str = 'magiclink', data: Optional[Dict] = None) -> Dict:
        return self._request('POST', '/admin/generate_link', json={
            'type': link_type,
            'email': email,
            'data': data or {},
        })

    def invite_user(self, email: str, data: Optional[Dict] = None) -> Dict:
        return self._request('POST', '/invite', json={'email': email, 'data': data or {}})

    def sign_in_with_password(self, email: str, password: str) -> Dict:
        """Password grant; returns the session payload including the user"""
        return self._request(
            'POST', '/token', key=self.anon_key,
            params={'grant_type': 'password'},
            json={'email': email, 'password': password},
        )


def _error_message(response):
    try:
        payload = response.json()
    except ValueError:
        return response.text or f'HTTP {response.status_code}'
    for key in ('msg', 'message', 'error_description', 'error'):
        if payload.get(key):
            return str(payload[key])
    return f'HTTP {response.status_code}'


def get_auth_admin():
    """Return the app's identity-provider client, creating it on first use"""
    client = current_app.extensions.get('auth_admin')
    if client is None:
        config = current_app.config
        client = AuthAdminClient(
            config.get('SUPABASE_URL'),
            config.get('SUPABASE_SERVICE_KEY'),
            anon_key=config.get('SUPABASE_ANON_KEY'),
            timeout=config.get('SUPABASE_TIMEOUT', 10),
        )
        current_app.extensions['auth_admin'] = client
    return client
