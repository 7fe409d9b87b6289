import pytest
from quickbite import db
from quickbite.models.models import User, Store, MerchantApplication, ROLE_STAFF


def post(client, path, payload, prefix='/api'):
    return client.post(f'{prefix}/{path}', json=payload)


def apply(client, email='chef@quickbite.test', password='grill-master'):
    return post(client, 'submit-merchant-app', {
        'email': email,
        'storeName': 'Burger Station',
        'password': password,
        'description': 'Burgers and fries',
    })


@pytest.mark.parametrize('prefix', ['/api', '/api/_internal'])
def test_ping_under_both_prefixes(client, prefix):
    response = client.get(f'{prefix}/ping')

    assert response.status_code == 200
    assert response.get_data(as_text=True) == 'ok'


def test_ping_without_service_credential(app, client):
    app.config['SUPABASE_SERVICE_KEY'] = ''

    response = client.get('/api/ping')

    assert response.status_code == 404
    assert response.get_data(as_text=True) == 'no-admin'


def test_health_lists_no_missing_tables(client):
    response = client.get('/api/health')

    assert response.status_code == 200
    assert response.get_json() == {'ok': True, 'missing': []}


def test_check_email_requires_email(client):
    response = client.post('/api/check-email-exists', json={})

    assert response.status_code == 400


def test_check_email_get_and_post(client, auth_admin):
    auth_admin.add_user('taken@quickbite.test')

    by_query = client.get('/api/check-email-exists?email=taken@quickbite.test').get_json()
    by_body = client.post('/api/check-email-exists', json={'email': 'free@quickbite.test'}).get_json()

    assert by_query['exists'] is True
    assert by_query['type'] == 'auth'
    assert by_body == {'exists': False}


def test_register_then_duplicate(client):
    first = post(client, 'register', {'email': 'eater@quickbite.test', 'password': 'secret1'})
    second = post(client, 'register', {'email': 'eater@quickbite.test', 'password': 'secret1'})

    assert first.status_code == 200
    assert first.get_json() == {'message': 'Account created'}
    assert second.status_code == 400
    assert 'already registered as student' in second.get_json()['error']


def test_register_validates_password(client):
    response = post(client, 'register', {'email': 'eater@quickbite.test', 'password': '123'})

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Password must be at least 6 characters'


def test_submit_then_duplicate(client):
    first = apply(client)
    second = apply(client)

    assert first.status_code == 200
    assert first.get_data(as_text=True) == 'ok'
    assert second.status_code == 400
    assert 'pending merchant application' in second.get_data(as_text=True)


def test_submit_missing_fields(client):
    response = post(client, 'submit-merchant-app', {'email': 'chef@quickbite.test'})

    assert response.status_code == 400
    assert response.get_data(as_text=True) == 'missing email, storeName or password'


def test_staff_login_waits_for_approval(client):
    apply(client)

    response = post(client, 'login-approved-staff', {'email': 'chef@quickbite.test', 'password': 'grill-master'})

    assert response.status_code == 403
    assert response.get_data(as_text=True) == 'application pending approval'


def test_provision_then_login(client):
    apply(client)

    provisioned = post(client, 'provision-staff', {'email': 'chef@quickbite.test'})
    bad = post(client, 'login-approved-staff', {'email': 'chef@quickbite.test', 'password': 'nope'})
    good = post(client, 'login-approved-staff', {'email': 'chef@quickbite.test', 'password': 'grill-master'})

    assert provisioned.status_code == 200
    assert bad.status_code == 401
    assert good.status_code == 200
    user = User.query.filter_by(email='chef@quickbite.test').one()
    assert user.role == ROLE_STAFF
    assert Store.query.filter_by(owner_id=user.id).count() == 1


def test_provision_without_password_or_credential(client):
    db.session.add(MerchantApplication(email='legacy@quickbite.test', store_name='Old'))
    db.session.commit()

    response = post(client, 'provision-staff', {'email': 'legacy@quickbite.test'})

    assert response.status_code == 400
    assert 'No password available' in response.get_data(as_text=True)


def test_confirm_admin_allow_list(client):
    allowed = post(client, 'confirm-admin', {'email': 'admin@quickbite.test', 'password': 'pw123456'})
    refused = post(client, 'confirm-admin', {'email': 'someone@quickbite.test', 'password': 'pw123456'})

    assert allowed.status_code == 200
    assert refused.status_code == 403
    assert User.query.filter_by(email='admin@quickbite.test').one().role == 'admin'


def test_approval_email_invites_new_user(client, auth_admin):
    response = post(client, 'send-approval-email', {'email': 'chef@quickbite.test', 'storeName': 'Burger Station'})

    assert response.status_code == 200
    assert auth_admin.invites[0]['email'] == 'chef@quickbite.test'


def test_approval_email_falls_back_to_magic_link(client, auth_admin):
    auth_admin.fail_invites = True

    response = post(client, 'send-approval-email', {'email': 'chef@quickbite.test'})

    assert response.status_code == 200
    assert auth_admin.links[0]['email'] == 'chef@quickbite.test'


def test_approval_email_fails_when_every_method_fails(client, auth_admin):
    auth_admin.fail_invites = True
    auth_admin.fail_links = True

    response = post(client, 'send-approval-email', {'email': 'chef@quickbite.test'})

    assert response.status_code == 500


def test_rejection_email_always_ok(client, auth_admin):
    auth_admin.fail_links = True

    response = post(client, 'send-rejection-email', {'email': 'chef@quickbite.test', 'reason': 'No permit'},
                    prefix='/api/_internal')

    assert response.status_code == 200
    assert response.get_data(as_text=True) == 'ok'


def test_delete_approved_staff(client, auth_admin):
    apply(client)
    post(client, 'provision-staff', {'email': 'chef@quickbite.test'})

    response = post(client, 'delete-approved-staff', {'email': 'chef@quickbite.test'})

    assert response.status_code == 200
    assert auth_admin.find_user_by_email('chef@quickbite.test') is None
    assert MerchantApplication.query.count() == 0
    assert Store.query.count() == 0


@pytest.fixture
def sent_mail(app, monkeypatch):
    from quickbite.services import notification_service
    app.config['RESEND_API_KEY'] = 're_test'
    sent = []

    class Accepted:
        status_code = 200
        text = ''

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.append(json)
        return Accepted()

    monkeypatch.setattr(notification_service.requests, 'post', fake_post)
    return sent


PHISHING_NAME = '<a href="https://evil.example/login">Reset your password</a>'


def test_rejection_email_escapes_store_name_and_reason(client, sent_mail):
    response = post(client, 'send-rejection-email', {
        'email': 'chef@quickbite.test', 'storeName': PHISHING_NAME, 'reason': '<script>x()</script>',
    })

    html = sent_mail[0]['html']
    assert response.status_code == 200
    assert '&lt;a href=' in html
    assert '<a href' not in html
    assert '<script>' not in html


def test_approval_email_escapes_store_name(client, sent_mail):
    response = post(client, 'send-approval-email', {'email': 'chef@quickbite.test', 'storeName': PHISHING_NAME})

    html = sent_mail[0]['html']
    assert response.status_code == 200
    assert '&lt;a href=' in html
    assert '<a href' not in html
