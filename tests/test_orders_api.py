import pytest
from quickbite import db
from quickbite.models.models import User, Store, Order, ROLE_STAFF
from quickbite.services.pickup_slots import encode_slot_config


@pytest.fixture
def student(make_user):
    return make_user('eater@quickbite.test')


@pytest.fixture
def owner(store_with_meals):
    return User.query.filter_by(email='owner@quickbite.test').one()


def place_order(client, headers, store, pickup_time='11:00 AM', quantity=2):
    ramen, gyoza = sorted(store.meals, key=lambda m: m.name, reverse=True)
    return client.post('/api/orders', headers=headers, json={
        'store_id': store.id,
        'pickup_time': pickup_time,
        'items': [
            {'meal_id': ramen.id, 'quantity': quantity},
            {'meal_id': gyoza.id, 'quantity': 1},
        ],
        'notes': 'Extra chili',
    })


def test_store_listing_includes_rating_summary(client, store_with_meals):
    response = client.get('/api/stores')

    stores = response.get_json()
    assert response.status_code == 200
    assert stores[0]['name'] == 'Noodle House'
    assert stores[0]['average_rating'] == 0
    assert stores[0]['rating_count'] == 0


def test_store_meals(client, store_with_meals):
    response = client.get(f'/api/stores/{store_with_meals.id}/meals')

    assert {meal['name'] for meal in response.get_json()} == {'Tonkotsu Ramen', 'Gyoza'}


def test_unknown_store(client):
    assert client.get('/api/stores/999').status_code == 404


def test_order_total_is_computed_from_menu_prices(client, headers_for, student, store_with_meals):
    response = place_order(client, headers_for(student), store_with_meals)

    order = response.get_json()
    assert response.status_code == 201
    assert order['status'] == 'pending_payment'
    assert order['total_amount'] == 355.0
    assert {item['price'] for item in order['items']} == {145.0, 65.0}


def test_order_requires_login(client, store_with_meals):
    assert client.post('/api/orders', json={}).status_code == 401


def test_order_rejects_unknown_slot(client, headers_for, student, store_with_meals):
    response = place_order(client, headers_for(student), store_with_meals, pickup_time='3:15 AM')

    assert response.status_code == 400


def test_full_slot_is_refused(client, headers_for, student, store_with_meals):
    store_with_meals.category = encode_slot_config([{'time': '11:00 AM', 'limit': 1}])
    db.session.commit()
    headers = headers_for(student)

    first = place_order(client, headers, store_with_meals)
    second = place_order(client, headers, store_with_meals)
    slots = client.get(f'/api/stores/{store_with_meals.id}/pickup-slots').get_json()

    assert first.status_code == 201
    assert second.status_code == 409
    assert slots == [{'time': '11:00 AM', 'limit': 1, 'booked': 1, 'remaining': 0, 'available': False}]


def test_cancelled_orders_free_their_slot(client, headers_for, student, store_with_meals):
    store_with_meals.category = encode_slot_config([{'time': '11:00 AM', 'limit': 1}])
    db.session.commit()
    headers = headers_for(student)

    order_id = place_order(client, headers, store_with_meals).get_json()['id']
    client.post(f'/api/orders/{order_id}/cancel', headers=headers)

    assert place_order(client, headers, store_with_meals).status_code == 201


def test_student_flow_to_claimed(client, headers_for, student, owner, store_with_meals):
    student_headers = headers_for(student)
    staff_headers = headers_for(owner)
    order_id = place_order(client, student_headers, store_with_meals).get_json()['id']

    proof = client.post(f'/api/orders/{order_id}/payment-proof', headers=student_headers,
                        json={'payment_proof_url': 'https://cdn.test/proof.png'})
    assert proof.get_json()['status'] == 'payment_submitted'

    for status in ('confirmed', 'ready', 'claimed'):
        response = client.patch(f'/api/staff/orders/{order_id}/status', headers=staff_headers,
                                json={'status': status})
        assert response.status_code == 200
        assert response.get_json()['status'] == status

    reopen = client.patch(f'/api/staff/orders/{order_id}/status', headers=staff_headers,
                          json={'status': 'cancelled'})
    assert reopen.status_code == 409


def test_staff_cannot_skip_steps(client, headers_for, student, owner, store_with_meals):
    order_id = place_order(client, headers_for(student), store_with_meals).get_json()['id']

    response = client.patch(f'/api/staff/orders/{order_id}/status', headers=headers_for(owner),
                            json={'status': 'ready'})

    assert response.status_code == 409
    assert db.session.get(Order, order_id).status == 'pending_payment'


def test_student_cannot_cancel_confirmed_order(client, headers_for, student, owner, store_with_meals):
    student_headers = headers_for(student)
    order_id = place_order(client, student_headers, store_with_meals).get_json()['id']
    client.post(f'/api/orders/{order_id}/payment-proof', headers=student_headers,
                json={'payment_proof_url': 'https://cdn.test/proof.png'})
    client.patch(f'/api/staff/orders/{order_id}/status', headers=headers_for(owner),
                 json={'status': 'confirmed'})

    response = client.post(f'/api/orders/{order_id}/cancel', headers=student_headers)

    assert response.status_code == 409


def test_orders_are_private(client, headers_for, make_user, student, store_with_meals):
    order_id = place_order(client, headers_for(student), store_with_meals).get_json()['id']
    stranger = make_user('stranger@quickbite.test')
    other_staff = make_user('rival@quickbite.test', ROLE_STAFF)

    assert client.get(f'/api/orders/{order_id}', headers=headers_for(stranger)).status_code == 403
    assert client.patch(f'/api/staff/orders/{order_id}/status', headers=headers_for(other_staff),
                        json={'status': 'cancelled'}).status_code == 403


def test_students_cannot_use_staff_endpoints(client, headers_for, student):
    assert client.get('/api/staff/orders', headers=headers_for(student)).status_code == 403


def test_order_messages(client, headers_for, student, owner, store_with_meals):
    order_id = place_order(client, headers_for(student), store_with_meals).get_json()['id']

    client.post(f'/api/orders/{order_id}/messages', headers=headers_for(student),
                json={'content': 'Running 5 minutes late'})
    client.post(f'/api/orders/{order_id}/messages', headers=headers_for(owner),
                json={'content': 'No problem'})
    thread = client.get(f'/api/orders/{order_id}/messages', headers=headers_for(student)).get_json()

    assert [m['content'] for m in thread] == ['Running 5 minutes late', 'No problem']
    assert thread[1]['sender_role'] == 'staff'


def test_staff_store_and_menu(client, headers_for, owner, store_with_meals):
    headers = headers_for(owner)

    updated = client.put('/api/staff/store', headers=headers, json={
        'description': 'Hot noodles',
        'pickup_slots': [{'time': '12:00 PM', 'limit': 3}],
    })
    created = client.post('/api/staff/meals', headers=headers, json={'name': 'Pad Thai', 'price': '110.00'})
    meal_id = created.get_json()['id']
    patched = client.patch(f'/api/staff/meals/{meal_id}', headers=headers, json={'price': 99.5})
    deleted = client.delete(f'/api/staff/meals/{meal_id}', headers=headers)

    assert updated.status_code == 200
    assert updated.get_json()['pickup_slots'] == [{'time': '12:00 PM', 'limit': 3}]
    assert updated.get_json()['category'] is None
    assert created.status_code == 201
    assert patched.get_json()['price'] == 99.5
    assert deleted.get_json()['message'] == 'Meal deleted'
    assert db.session.get(Store, store_with_meals.id).description == 'Hot noodles'


def test_staff_store_rejects_bad_slots(client, headers_for, owner, store_with_meals):
    response = client.put('/api/staff/store', headers=headers_for(owner),
                          json={'pickup_slots': [{'time': '', 'limit': 2}]})

    assert response.status_code == 400
