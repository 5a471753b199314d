"""Tests for the HTTP API."""

import uuid

import pytest
from aiohttp.test_utils import TestClient, TestServer

from gymhub.database.models import UserStatus
from gymhub.services.accounts import AccountService
from gymhub.webapp.server import create_webapp


@pytest.fixture
async def client(session_maker, settings):
    app = create_webapp(session_maker, settings)
    async with TestClient(TestServer(app)) as client:
        yield client


@pytest.fixture
def accounts(session_maker) -> AccountService:
    return AccountService(session_maker, bcrypt_rounds=4)


async def login(client, email: str, password: str) -> dict:
    resp = await client.post('/api/auth/login', json={'email': email, 'password': password})
    assert resp.status == 200
    data = (await resp.json())['data']
    return {'Authorization': f"Bearer {data['token']}"}


@pytest.fixture
async def admin_headers(client, accounts):
    await accounts.create_trainer(
        name='Gym Admin',
        email='admin@fitnesshub.com',
        password='adminpass',
        role='admin',
        specialization='Site Administration',
    )
    return await login(client, 'admin@fitnesshub.com', 'adminpass')


@pytest.fixture
def user_headers(client, accounts):
    """Factory signing in a fresh client account."""
    counter = {'n': 0}

    async def _make(status: UserStatus = UserStatus.ACTIVE) -> dict:
        counter['n'] += 1
        email = f"client{counter['n']}@example.com"
        await accounts.create_user(f"Client {counter['n']}", email, 'pw', status=status)
        return await login(client, email, 'pw')

    return _make


class TestAuthApi:
    """Tests for signup and login."""

    async def test_health(self, client):
        resp = await client.get('/health')
        assert resp.status == 200
        assert await resp.json() == {'status': 'ok'}

    async def test_signup_then_login(self, client):
        resp = await client.post('/api/auth/signup', json={
            'name': 'New Client', 'email': 'new@example.com', 'password': 'pw',
        })
        assert resp.status == 201
        body = await resp.json()
        assert body['data']['status'] == 'pending'

        resp = await client.post('/api/auth/login', json={'email': 'new@example.com', 'password': 'pw'})
        data = (await resp.json())['data']
        assert data['role'] == 'user'
        assert data['status'] == 'pending'
        assert data['token']

    async def test_signup_duplicate(self, client):
        payload = {'name': 'A', 'email': 'a@example.com', 'password': 'pw'}
        assert (await client.post('/api/auth/signup', json=payload)).status == 201
        assert (await client.post('/api/auth/signup', json=payload)).status == 409

    async def test_signup_missing_fields(self, client):
        resp = await client.post('/api/auth/signup', json={'email': 'a@example.com'})
        assert resp.status == 400

    async def test_invalid_json(self, client):
        resp = await client.post('/api/auth/login', data='not json')
        assert resp.status == 400

    async def test_bad_credentials(self, client):
        resp = await client.post('/api/auth/login', json={'email': 'x@example.com', 'password': 'pw'})
        assert resp.status == 401


class TestBookingApi:
    """Tests for booking endpoints."""

    async def test_book_list_cancel(self, client, user_headers, make_class):
        gym_class = await make_class(capacity=2)
        headers = await user_headers()

        resp = await client.post(f'/api/classes/{gym_class.id}/book', headers=headers)
        assert resp.status == 201
        booking = (await resp.json())['data']
        assert booking['class_id'] == gym_class.id

        resp = await client.get('/api/bookings', headers=headers)
        bookings = (await resp.json())['data']
        assert [b['id'] for b in bookings] == [booking['id']]
        assert bookings[0]['class']['available_slots'] == 1
        assert bookings[0]['class']['trainer_name'] == 'Alice Johnson'

        resp = await client.delete(f"/api/bookings/{booking['id']}", headers=headers)
        assert resp.status == 200

        resp = await client.get('/api/classes')
        classes = (await resp.json())['data']
        assert classes[0]['available_slots'] == 2

    async def test_full_class_conflict(self, client, user_headers, make_class):
        gym_class = await make_class(capacity=1)
        first = await user_headers()
        second = await user_headers()

        assert (await client.post(f'/api/classes/{gym_class.id}/book', headers=first)).status == 201
        resp = await client.post(f'/api/classes/{gym_class.id}/book', headers=second)

        assert resp.status == 409
        body = await resp.json()
        assert body['code'] == 'class_full'
        assert body['error'] == 'Class is already full.'

    async def test_double_booking_conflict(self, client, user_headers, make_class):
        gym_class = await make_class()
        headers = await user_headers()

        await client.post(f'/api/classes/{gym_class.id}/book', headers=headers)
        resp = await client.post(f'/api/classes/{gym_class.id}/book', headers=headers)

        assert resp.status == 409
        assert (await resp.json())['code'] == 'already_booked'

    async def test_pending_user_forbidden(self, client, user_headers, make_class):
        gym_class = await make_class()
        headers = await user_headers(status=UserStatus.PENDING)

        resp = await client.post(f'/api/classes/{gym_class.id}/book', headers=headers)

        assert resp.status == 403
        assert (await resp.json())['code'] == 'account_not_active'

    async def test_unknown_class(self, client, user_headers):
        headers = await user_headers()

        resp = await client.post('/api/classes/9999/book', headers=headers)

        assert resp.status == 404
        assert (await resp.json())['code'] == 'class_not_found'

    async def test_bad_class_id(self, client, user_headers):
        headers = await user_headers()
        resp = await client.post('/api/classes/abc/book', headers=headers)
        assert resp.status == 400

    async def test_cancel_someone_elses_booking(self, client, user_headers, make_class):
        gym_class = await make_class()
        owner = await user_headers()
        intruder = await user_headers()
        resp = await client.post(f'/api/classes/{gym_class.id}/book', headers=owner)
        booking_id = (await resp.json())['data']['id']

        resp = await client.delete(f'/api/bookings/{booking_id}', headers=intruder)

        assert resp.status == 403
        assert (await resp.json())['code'] == 'unauthorized'

    async def test_cancel_missing_booking(self, client, user_headers):
        headers = await user_headers()
        resp = await client.delete('/api/bookings/4242', headers=headers)
        assert resp.status == 404

    async def test_requires_token(self, client, make_class):
        gym_class = await make_class()

        resp = await client.post(f'/api/classes/{gym_class.id}/book')
        assert resp.status == 401

        resp = await client.post(
            f'/api/classes/{gym_class.id}/book', headers={'Authorization': 'Bearer forged.token'}
        )
        assert resp.status == 401

    async def test_staff_cannot_book(self, client, admin_headers, make_class):
        gym_class = await make_class()
        resp = await client.post(f'/api/classes/{gym_class.id}/book', headers=admin_headers)
        assert resp.status == 403


class TestAdminApi:
    """Tests for administration endpoints."""

    async def test_create_class(self, client, admin_headers, trainer):
        resp = await client.post('/api/classes', headers=admin_headers, json={
            'name': 'HIIT Cardio Blast',
            'category': 'Cardio',
            'date': '2030-01-15',
            'start_time': '17:00',
            'end_time': '17:45',
            'capacity': 20,
            'trainer_id': str(trainer.id),
        })

        assert resp.status == 201
        data = (await resp.json())['data']
        assert data['available_slots'] == 20
        assert data['start_time'] == '17:00'
        assert data['trainer_name'] == 'Alice Johnson'

    async def test_create_class_invalid(self, client, admin_headers, trainer):
        payload = {
            'name': 'Broken',
            'category': 'Cardio',
            'date': '2030-01-15',
            'start_time': '17:00',
            'end_time': '16:00',
            'capacity': 20,
            'trainer_id': str(trainer.id),
        }
        resp = await client.post('/api/classes', headers=admin_headers, json=payload)
        assert resp.status == 400

        resp = await client.post('/api/classes', headers=admin_headers, json={**payload, 'date': 'soon'})
        assert resp.status == 400

    async def test_user_cannot_create_class(self, client, user_headers, trainer):
        headers = await user_headers()
        resp = await client.post('/api/classes', headers=headers, json={})
        assert resp.status == 403

    async def test_approve_user(self, client, admin_headers, accounts):
        user = await accounts.signup('Client', 'client@example.com', 'pw')

        resp = await client.get('/api/users', headers=admin_headers)
        assert [u['status'] for u in (await resp.json())['data']] == ['pending']

        resp = await client.patch(
            f'/api/users/{user.id}/status', headers=admin_headers, json={'status': 'active'}
        )
        assert resp.status == 200
        assert (await resp.json())['data']['status'] == 'active'

        resp = await client.patch(
            f'/api/users/{user.id}/status', headers=admin_headers, json={'status': 'banned'}
        )
        assert resp.status == 400

    async def test_trainer_lifecycle(self, client, admin_headers):
        resp = await client.post('/api/trainers', headers=admin_headers, json={
            'name': 'Charlie Brown',
            'email': 'charlie@fitnesshub.com',
            'password': 'trainerpass',
            'specialization': 'Cardio & Endurance',
            'experience': 3,
        })
        assert resp.status == 201
        trainer_id = (await resp.json())['data']['id']

        resp = await client.post('/api/trainers', headers=admin_headers, json={
            'name': 'Copy', 'email': 'charlie@fitnesshub.com', 'password': 'x', 'specialization': 'x',
        })
        assert resp.status == 409

        resp = await client.get('/api/trainers')
        assert 'Charlie Brown' in [t['name'] for t in (await resp.json())['data']]

        resp = await client.delete(f'/api/trainers/{trainer_id}', headers=admin_headers)
        assert resp.status == 200

        resp = await client.get('/api/trainers')
        assert 'Charlie Brown' not in [t['name'] for t in (await resp.json())['data']]


class TestAccountChecks:
    """Tokens are only honoured while the account behind them still qualifies."""

    async def test_deactivated_admin_loses_access(self, client, admin_headers, accounts):
        admin = next(t for t in await accounts.list_trainers() if t.email == 'admin@fitnesshub.com')
        await accounts.deactivate_trainer(admin.id)

        resp = await client.post('/api/trainers', headers=admin_headers, json={
            'name': 'Late Hire', 'email': 'late@fitnesshub.com', 'password': 'x', 'specialization': 'x',
        })

        assert resp.status == 401
        assert 'Late Hire' not in [t.name for t in await accounts.list_trainers()]

    async def test_demoted_admin_forbidden(self, client, admin_headers, accounts):
        admin = next(t for t in await accounts.list_trainers() if t.email == 'admin@fitnesshub.com')
        await accounts.update_trainer(admin.id, role='trainer')

        resp = await client.get('/api/users', headers=admin_headers)

        assert resp.status == 403

    async def test_approval_applies_to_existing_token(self, client, user_headers, accounts, make_class):
        gym_class = await make_class()
        headers = await user_headers(status=UserStatus.PENDING)
        users = await accounts.list_users()

        await accounts.update_user_status(users[0].id, UserStatus.ACTIVE)
        resp = await client.post(f'/api/classes/{gym_class.id}/book', headers=headers)

        assert resp.status == 201


class TestInputValidation:
    """Wrongly typed JSON fields are rejected with 400."""

    async def test_signup_numeric_password(self, client):
        resp = await client.post('/api/auth/signup', json={
            'name': 'Client', 'email': 'client@example.com', 'password': 123,
        })
        assert resp.status == 400

    async def test_signup_non_text_email(self, client):
        resp = await client.post('/api/auth/signup', json={
            'name': 'Client', 'email': 42, 'password': 'pw',
        })
        assert resp.status == 400

    async def test_login_non_text_email(self, client):
        resp = await client.post('/api/auth/login', json={'email': ['a@example.com'], 'password': 'pw'})
        assert resp.status == 400

    async def test_create_trainer_non_text_name(self, client, admin_headers):
        resp = await client.post('/api/trainers', headers=admin_headers, json={
            'name': {'first': 'Bob'}, 'email': 'bob@fitnesshub.com', 'password': 'x', 'specialization': 'x',
        })
        assert resp.status == 400

    async def test_create_class_non_text_name(self, client, admin_headers, trainer):
        resp = await client.post('/api/classes', headers=admin_headers, json={
            'name': 5,
            'category': 'Cardio',
            'date': '2030-01-15',
            'start_time': '17:00',
            'end_time': '18:00',
            'capacity': 10,
            'trainer_id': str(trainer.id),
        })
        assert resp.status == 400


class TestAdminAccountsApi:
    """Tests for admin-created users and trainer edits."""

    async def test_create_active_user(self, client, admin_headers):
        resp = await client.post('/api/users', headers=admin_headers, json={
            'name': 'Walk-in', 'email': 'walkin@example.com', 'password': 'pw', 'status': 'active',
        })

        assert resp.status == 201
        assert (await resp.json())['data']['status'] == 'active'

        resp = await client.post('/api/auth/login', json={'email': 'walkin@example.com', 'password': 'pw'})
        assert (await resp.json())['data']['status'] == 'active'

    async def test_create_user_defaults_to_pending(self, client, admin_headers):
        resp = await client.post('/api/users', headers=admin_headers, json={
            'name': 'Walk-in', 'email': 'walkin@example.com', 'password': 'pw',
        })
        assert (await resp.json())['data']['status'] == 'pending'

    async def test_create_user_errors(self, client, admin_headers, user_headers):
        payload = {'name': 'Walk-in', 'email': 'walkin@example.com', 'password': 'pw'}
        assert (await client.post('/api/users', headers=admin_headers, json=payload)).status == 201
        assert (await client.post('/api/users', headers=admin_headers, json=payload)).status == 409

        resp = await client.post('/api/users', headers=admin_headers, json={**payload, 'status': 'vip'})
        assert resp.status == 400

        headers = await user_headers()
        assert (await client.post('/api/users', headers=headers, json=payload)).status == 403

    async def test_update_trainer(self, client, admin_headers, trainer):
        resp = await client.patch(f'/api/trainers/{trainer.id}', headers=admin_headers, json={
            'specialization': 'Pilates', 'experience': 6,
        })

        assert resp.status == 200
        data = (await resp.json())['data']
        assert data['specialization'] == 'Pilates'
        assert data['experience'] == 6

    async def test_update_trainer_errors(self, client, admin_headers, trainer):
        missing = f'/api/trainers/{uuid.uuid4()}'
        assert (await client.patch(missing, headers=admin_headers, json={'name': 'X'})).status == 404

        url = f'/api/trainers/{trainer.id}'
        resp = await client.patch(url, headers=admin_headers, json={'email': 'admin@fitnesshub.com'})
        assert resp.status == 409

        resp = await client.patch(url, headers=admin_headers, json={'is_active': False})
        assert resp.status == 400

        resp = await client.patch(url, headers=admin_headers, json={'role': 'owner'})
        assert resp.status == 400

        resp = await client.patch('/api/trainers/abc', headers=admin_headers, json={'name': 'X'})
        assert resp.status == 400
