"""HTTP API for the gym web client."""

import json
import logging
import uuid
from datetime import date, time

from aiohttp import web
from sqlalchemy.exc import SQLAlchemyError

from gymhub.config import Settings, get_settings
from gymhub.database.models import (
    ADMIN_ROLES,
    USER_ROLE,
    AdminRole,
    ClassBooking,
    GymClass,
    Trainer,
    User,
    UserStatus,
)
from gymhub.database.session import get_session_maker
from gymhub.services.accounts import (
    AccountError,
    AccountNotFound,
    AccountService,
    EmailAlreadyRegistered,
    InvalidCredentials,
    TRAINER_FIELDS,
)
from gymhub.services.booking import BookingError, BookingService
from gymhub.services.schedule import ScheduleError, ScheduleService
from gymhub.services.security import AuthProvider, Principal

logger = logging.getLogger(__name__)

AUTH_PROVIDER = web.AppKey('auth_provider', AuthProvider)
ACCOUNT_SERVICE = web.AppKey('account_service', AccountService)
BOOKING_SERVICE = web.AppKey('booking_service', BookingService)
SCHEDULE_SERVICE = web.AppKey('schedule_service', ScheduleService)

BOOKING_ERROR_STATUS = {
    BookingError.USER_NOT_FOUND: 404,
    BookingError.CLASS_NOT_FOUND: 404,
    BookingError.BOOKING_NOT_FOUND: 404,
    BookingError.ACCOUNT_NOT_ACTIVE: 403,
    BookingError.UNAUTHORIZED: 403,
    BookingError.CLASS_FULL: 409,
    BookingError.ALREADY_BOOKED: 409,
    BookingError.STORAGE_UNAVAILABLE: 503,
}


# Serialization

def _class_to_dict(gym_class: GymClass) -> dict:
    return {
        'id': gym_class.id,
        'name': gym_class.name,
        'category': gym_class.category,
        'description': gym_class.description,
        'date': gym_class.class_date.isoformat(),
        'start_time': gym_class.start_time.strftime('%H:%M'),
        'end_time': gym_class.end_time.strftime('%H:%M'),
        'capacity': gym_class.capacity,
        'available_slots': gym_class.available_slots,
        'trainer_id': str(gym_class.trainer_id),
        'trainer_name': gym_class.trainer_name,
    }


def _booking_to_dict(booking: ClassBooking, with_class: bool = False) -> dict:
    data = {
        'id': booking.id,
        'class_id': booking.class_id,
        'user_id': str(booking.user_id),
        'booking_date': booking.booking_date.isoformat(),
    }
    if with_class:
        data['class'] = _class_to_dict(booking.gym_class)
    return data


def _user_to_dict(user: User) -> dict:
    return {
        'id': str(user.id),
        'name': user.name,
        'email': user.email,
        'phone_number': user.phone_number,
        'role': user.role,
        'status': user.status,
    }


def _trainer_to_dict(trainer: Trainer) -> dict:
    return {
        'id': str(trainer.id),
        'name': trainer.name,
        'email': trainer.email,
        'role': trainer.role,
        'specialization': trainer.specialization,
        'experience': trainer.experience,
        'schedule': trainer.schedule,
        'phone_number': trainer.phone_number,
        'bio': trainer.bio,
    }


# Request helpers

def _error(message: str, status: int, **extra) -> web.Response:
    return web.json_response({'error': message, **extra}, status=status)


async def _read_json(request: web.Request) -> dict | None:
    try:
        body = await request.json()
    except json.JSONDecodeError:
        return None
    return body if isinstance(body, dict) else None


async def _get_principal(request: web.Request) -> Principal | None:
    principal = request.app[AUTH_PROVIDER].resolve(request.headers.get('Authorization'))
    if principal is None:
        return None
    return await request.app[ACCOUNT_SERVICE].current_principal(principal)


async def _require(request: web.Request, *roles: str) -> Principal:
    """Resolve the caller and check their current role.

    Raises:
        web.HTTPUnauthorized: no valid token, or the account is gone or deactivated
        web.HTTPForbidden: current role not in ``roles``
    """
    principal = await _get_principal(request)
    if not principal:
        raise web.HTTPUnauthorized(
            text=json.dumps({'error': 'Unauthorized'}), content_type='application/json'
        )
    if roles and principal.role not in roles:
        raise web.HTTPForbidden(
            text=json.dumps({'error': 'Forbidden'}), content_type='application/json'
        )
    return principal


def _parse_int(value: str) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


@web.middleware
async def storage_error_middleware(request: web.Request, handler):
    """Turn unexpected database failures into 503 responses."""
    try:
        return await handler(request)
    except (SQLAlchemyError, OSError):
        logger.exception(f'Storage failure handling {request.method} {request.path}')
        return _error('Service temporarily unavailable', 503)


# Handlers

async def health_handler(request: web.Request) -> web.Response:
    return web.json_response({'status': 'ok'})


async def api_signup(request: web.Request) -> web.Response:
    """Register a client account (pending approval)."""
    body = await _read_json(request)
    if body is None:
        return _error('Invalid JSON', 400)

    try:
        user = await request.app[ACCOUNT_SERVICE].signup(
            name=body.get('name', ''),
            email=body.get('email', ''),
            password=body.get('password', ''),
            phone_number=body.get('phone_number'),
        )
    except EmailAlreadyRegistered as e:
        return _error(str(e), 409)
    except AccountError as e:
        return _error(str(e), 400)

    return web.json_response({
        'success': True,
        'data': {'id': str(user.id), 'role': user.role, 'status': user.status},
    }, status=201)


async def api_login(request: web.Request) -> web.Response:
    """Exchange credentials for a session token."""
    body = await _read_json(request)
    if body is None:
        return _error('Invalid JSON', 400)

    try:
        principal = await request.app[ACCOUNT_SERVICE].login(
            body.get('email', ''), body.get('password', '')
        )
    except InvalidCredentials as e:
        return _error(str(e), 401)
    except AccountError as e:
        return _error(str(e), 400)

    token = request.app[AUTH_PROVIDER].issue_token(principal)
    return web.json_response({
        'success': True,
        'data': {**principal.to_dict(), 'token': token},
    })


async def api_list_classes(request: web.Request) -> web.Response:
    classes = await request.app[SCHEDULE_SERVICE].list_classes()
    return web.json_response({
        'success': True,
        'data': [_class_to_dict(c) for c in classes],
    })


async def api_create_class(request: web.Request) -> web.Response:
    """Create a class (admins only)."""
    await _require(request, *ADMIN_ROLES)
    body = await _read_json(request)
    if body is None:
        return _error('Invalid JSON', 400)

    try:
        class_date = date.fromisoformat(body['date'])
        start_time = time.fromisoformat(body['start_time'])
        end_time = time.fromisoformat(body['end_time'])
        capacity = int(body['capacity'])
        trainer_id = uuid.UUID(str(body['trainer_id']))
    except (KeyError, TypeError, ValueError) as e:
        return _error(f'Invalid class data: {e}', 400)

    try:
        gym_class = await request.app[SCHEDULE_SERVICE].create_class(
            name=body.get('name', ''),
            category=body.get('category', ''),
            class_date=class_date,
            start_time=start_time,
            end_time=end_time,
            capacity=capacity,
            trainer_id=trainer_id,
            description=body.get('description'),
        )
    except ScheduleError as e:
        return _error(str(e), 400)

    return web.json_response({'success': True, 'data': _class_to_dict(gym_class)}, status=201)


async def api_book_class(request: web.Request) -> web.Response:
    """Book a slot in a class for the calling user."""
    principal = await _require(request, USER_ROLE)
    class_id = _parse_int(request.match_info['class_id'])
    if class_id is None:
        return _error('Invalid class id', 400)

    result = await request.app[BOOKING_SERVICE].book_class(class_id, principal.id)
    if not result.success:
        return _error(result.error.message, BOOKING_ERROR_STATUS[result.error], code=result.error.value)

    return web.json_response({
        'success': True,
        'data': _booking_to_dict(result.booking),
    }, status=201)


async def api_cancel_booking(request: web.Request) -> web.Response:
    """Cancel one of the calling user's bookings."""
    principal = await _require(request, USER_ROLE)
    booking_id = _parse_int(request.match_info['booking_id'])
    if booking_id is None:
        return _error('Invalid booking id', 400)

    result = await request.app[BOOKING_SERVICE].cancel_class(booking_id, principal.id)
    if not result.success:
        return _error(result.error.message, BOOKING_ERROR_STATUS[result.error], code=result.error.value)

    return web.json_response({'success': True})


async def api_list_bookings(request: web.Request) -> web.Response:
    principal = await _require(request, USER_ROLE)
    user_id = _parse_uuid(principal.id)
    if user_id is None:
        return _error('Invalid user data', 400)

    bookings = await request.app[SCHEDULE_SERVICE].list_user_bookings(user_id)
    return web.json_response({
        'success': True,
        'data': [_booking_to_dict(b, with_class=True) for b in bookings],
    })


async def api_list_trainers(request: web.Request) -> web.Response:
    trainers = await request.app[ACCOUNT_SERVICE].list_trainers()
    return web.json_response({
        'success': True,
        'data': [_trainer_to_dict(t) for t in trainers],
    })


async def api_create_trainer(request: web.Request) -> web.Response:
    """Create a trainer or admin account (admins only)."""
    await _require(request, *ADMIN_ROLES)
    body = await _read_json(request)
    if body is None:
        return _error('Invalid JSON', 400)

    try:
        experience = int(body.get('experience', 0))
    except (TypeError, ValueError):
        return _error('Experience must be a number', 400)

    try:
        trainer = await request.app[ACCOUNT_SERVICE].create_trainer(
            name=body.get('name', ''),
            email=body.get('email', ''),
            password=body.get('password', ''),
            role=body.get('role', AdminRole.TRAINER.value),
            specialization=body.get('specialization', ''),
            experience=experience,
            schedule=body.get('schedule', ''),
            phone_number=body.get('phone_number'),
            bio=body.get('bio'),
        )
    except EmailAlreadyRegistered as e:
        return _error(str(e), 409)
    except AccountError as e:
        return _error(str(e), 400)

    return web.json_response({'success': True, 'data': _trainer_to_dict(trainer)}, status=201)


async def api_update_trainer(request: web.Request) -> web.Response:
    """Edit a trainer or admin account (admins only)."""
    await _require(request, *ADMIN_ROLES)
    trainer_id = _parse_uuid(request.match_info['trainer_id'])
    if trainer_id is None:
        return _error('Invalid trainer id', 400)

    body = await _read_json(request)
    if body is None:
        return _error('Invalid JSON', 400)

    unknown = set(body) - TRAINER_FIELDS
    if unknown:
        return _error(f"Unknown trainer fields: {', '.join(sorted(unknown))}", 400)

    try:
        trainer = await request.app[ACCOUNT_SERVICE].update_trainer(trainer_id, **body)
    except AccountNotFound as e:
        return _error(str(e), 404)
    except EmailAlreadyRegistered as e:
        return _error(str(e), 409)
    except AccountError as e:
        return _error(str(e), 400)

    return web.json_response({'success': True, 'data': _trainer_to_dict(trainer)})


async def api_delete_trainer(request: web.Request) -> web.Response:
    await _require(request, *ADMIN_ROLES)
    trainer_id = _parse_uuid(request.match_info['trainer_id'])
    if trainer_id is None:
        return _error('Invalid trainer id', 400)

    try:
        await request.app[ACCOUNT_SERVICE].deactivate_trainer(trainer_id)
    except AccountNotFound as e:
        return _error(str(e), 404)

    return web.json_response({'success': True})


async def api_list_users(request: web.Request) -> web.Response:
    await _require(request, *ADMIN_ROLES)
    users = await request.app[ACCOUNT_SERVICE].list_users()
    return web.json_response({
        'success': True,
        'data': [_user_to_dict(u) for u in users],
    })


async def api_create_user(request: web.Request) -> web.Response:
    """Create a client account directly, optionally already approved (admins only)."""
    await _require(request, *ADMIN_ROLES)
    body = await _read_json(request)
    if body is None:
        return _error('Invalid JSON', 400)

    try:
        user = await request.app[ACCOUNT_SERVICE].create_user(
            name=body.get('name', ''),
            email=body.get('email', ''),
            password=body.get('password', ''),
            phone_number=body.get('phone_number'),
            status=body.get('status', UserStatus.PENDING.value),
        )
    except EmailAlreadyRegistered as e:
        return _error(str(e), 409)
    except AccountError as e:
        return _error(str(e), 400)

    return web.json_response({'success': True, 'data': _user_to_dict(user)}, status=201)


async def api_update_user_status(request: web.Request) -> web.Response:
    """Approve or suspend a client (admins only)."""
    await _require(request, *ADMIN_ROLES)
    user_id = _parse_uuid(request.match_info['user_id'])
    if user_id is None:
        return _error('Invalid user id', 400)

    body = await _read_json(request)
    if body is None:
        return _error('Invalid JSON', 400)

    try:
        user = await request.app[ACCOUNT_SERVICE].update_user_status(user_id, body.get('status'))
    except AccountNotFound as e:
        return _error(str(e), 404)
    except AccountError as e:
        return _error(str(e), 400)

    return web.json_response({'success': True, 'data': _user_to_dict(user)})


def create_webapp(session_maker=None, settings: Settings | None = None) -> web.Application:
    """Create and configure the web application."""
    settings = settings or get_settings()
    session_maker = session_maker or get_session_maker()

    app = web.Application(middlewares=[storage_error_middleware])
    app[AUTH_PROVIDER] = AuthProvider(settings.secret_key, settings.token_ttl_minutes * 60)
    app[ACCOUNT_SERVICE] = AccountService(session_maker, bcrypt_rounds=settings.bcrypt_rounds)
    app[BOOKING_SERVICE] = BookingService(session_maker)
    app[SCHEDULE_SERVICE] = ScheduleService(session_maker)

    app.router.add_get('/health', health_handler)

    # Auth
    app.router.add_post('/api/auth/signup', api_signup)
    app.router.add_post('/api/auth/login', api_login)

    # Classes and bookings
    app.router.add_get('/api/classes', api_list_classes)
    app.router.add_post('/api/classes', api_create_class)
    app.router.add_post('/api/classes/{class_id}/book', api_book_class)
    app.router.add_get('/api/bookings', api_list_bookings)
    app.router.add_delete('/api/bookings/{booking_id}', api_cancel_booking)

    # Administration
    app.router.add_get('/api/trainers', api_list_trainers)
    app.router.add_post('/api/trainers', api_create_trainer)
    app.router.add_patch('/api/trainers/{trainer_id}', api_update_trainer)
    app.router.add_delete('/api/trainers/{trainer_id}', api_delete_trainer)
    app.router.add_get('/api/users', api_list_users)
    app.router.add_post('/api/users', api_create_user)
    app.router.add_patch('/api/users/{user_id}/status', api_update_user_status)

    return app


async def start_webapp(
    app: web.Application, host: str = '0.0.0.0', port: int = 8080
) -> web.AppRunner | None:
    """
    Start the web application server.

    Returns None if the server fails to start (e.g., port already in use).
    """
    runner = web.AppRunner(app)
    await runner.setup()

    try:
        site = web.TCPSite(runner, host, port)
        await site.start()
        logger.info(f'Web server started at http://{host}:{port}')
        return runner
    except OSError as e:
        await runner.cleanup()
        logger.error(f'Failed to start web server on port {port}: {e}')
        return None


async def stop_webapp(runner: web.AppRunner) -> None:
    """Stop the web application server."""
    await runner.cleanup()
    logger.info('Web server stopped')
