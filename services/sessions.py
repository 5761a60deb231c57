import enum
from datetime import datetime, timedelta, timezone
from functools import wraps

from flask import current_app
from flask_login import UserMixin, current_user
from itsdangerous import BadSignature, URLSafeTimedSerializer

from errors import ForbiddenError, InvalidToken

SESSION_SALT = 'election-session'


class Role(str, enum.Enum):
    ADMIN = 'admin'
    SUBADMIN = 'subadmin'
    CANDIDATE = 'candidate'
    VOTER = 'voter'


class Capability(str, enum.Enum):
    MANAGE_ELECTION = 'manage_election'
    REVIEW_NOMINATIONS = 'review_nominations'
    MANAGE_SUBADMINS = 'manage_subadmins'
    REMOVE_VOTERS = 'remove_voters'
    VIEW_TURNOUT = 'view_turnout'
    REGISTER_VOTERS = 'register_voters'
    CAST_VOTE = 'cast_vote'
    VIEW_OWN_NOMINATION = 'view_own_nomination'


CAPABILITIES = {
    Role.ADMIN: frozenset({
        Capability.MANAGE_ELECTION,
        Capability.REVIEW_NOMINATIONS,
        Capability.MANAGE_SUBADMINS,
        Capability.REMOVE_VOTERS,
        Capability.VIEW_TURNOUT,
        Capability.REGISTER_VOTERS,
    }),
    Role.SUBADMIN: frozenset({Capability.REGISTER_VOTERS}),
    Role.CANDIDATE: frozenset({Capability.VIEW_OWN_NOMINATION}),
    Role.VOTER: frozenset({Capability.CAST_VOTE}),
}


class Principal(UserMixin):
    """The caller behind a verified session token."""

    def __init__(self, subject, role, claims=None):
        self.subject = str(subject)
        self.role = Role(role)
        self.claims = claims or {}

    def get_id(self):
        return f'{self.role.value}:{self.subject}'

    def can(self, capability):
        return capability in CAPABILITIES[self.role]


def _serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=SESSION_SALT)


def session_ttl(role):
    return timedelta(seconds=current_app.config[f'SESSION_TTL_{Role(role).name}'])


def issue_session(subject, role, **claims):
    """Signs a role scoped session token."""
    role = Role(role)
    payload = dict(claims, sub=str(subject), role=role.value)
    return {
        'token': _serializer().dumps(payload),
        'role': role.value,
        'expiresIn': int(session_ttl(role).total_seconds()),
    }


def load_session(token):
    try:
        payload, signed_at = _serializer().loads(token, return_timestamp=True)
        role = Role(payload.pop('role'))
        subject = payload.pop('sub')
    except (BadSignature, KeyError, ValueError, TypeError, AttributeError):
        raise InvalidToken()

    if datetime.now(timezone.utc) - signed_at > session_ttl(role):
        raise InvalidToken('Session has expired. Please log in again.')

    return Principal(subject, role, payload)


def principal_from_request(request):
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    try:
        return load_session(token.strip())
    except InvalidToken:
        return None


def requires(capability):
    """Rejects the request unless the session role grants ``capability``."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                raise InvalidToken('Login required.')
            if not current_user.can(capability):
                raise ForbiddenError()
            return view(*args, **kwargs)
        return wrapped
    return decorator
