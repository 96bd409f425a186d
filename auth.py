"""
Identity and Role Helpers
Resolves the calling actor from the session and answers role questions.

Login itself belongs to the external identity provider, which stores
``user_id`` and ``user_role`` in the Flask session. This module only reads
them; everything downstream receives an explicit Actor.
"""
from dataclasses import dataclass
from functools import wraps
from typing import Optional
from flask import session, jsonify, g
import logging

from database.models import ROLES, ROLE_SUPER_ADMIN, ROLE_MANAGER

logger = logging.getLogger(__name__)

# Roles allowed to act on timers and tasks they do not own
ELEVATED_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_MANAGER})


@dataclass(frozen=True)
class Actor:
    """The authenticated identity performing an operation"""
    user_id: str
    role: str

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES


def get_current_actor() -> Optional[Actor]:
    """
    Build the Actor for the current request from the session

    Returns:
        Actor, or None when the session carries no usable identity
    """
    user_id = session.get('user_id')
    role = session.get('user_role')
    if not user_id or not role:
        return None
    if role not in ROLES:
        logger.warning(f"Session for user {user_id} carries unknown role {role!r}")
        return None
    return Actor(user_id=user_id, role=role)


def login_required(f):
    """Decorator to require an identity; the actor is exposed as g.actor"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = get_current_actor()
        if actor is None:
            return jsonify({
                'success': False,
                'error': 'Unauthenticated',
                'message': 'Authentication required'
            }), 401
        g.actor = actor
        return f(*args, **kwargs)
    return decorated_function
