import logging
from functools import wraps

from flask import current_app, g, request

from .errors import Unauthenticated
from .models import RequestContext
from .sessions import SessionIssuer

__all__ = ["AuthorizationGate", "login_required"]

logger = logging.getLogger(__name__)


class AuthorizationGate:
    """Single choke point that turns a request into the acting user's id."""

    def __init__(self, sessions: SessionIssuer):
        self.sessions = sessions

    def authorize(self, context: RequestContext) -> int:
        header = (context.authorization or "").strip()
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise Unauthenticated()
        return self.sessions.validate(token.strip())


def login_required(f):
    """
    Usage:
      @login_required   -> handler runs only with a valid bearer token;
                           the acting user id is in g.user_id
    """
    @wraps(f)
    def wrapped(*args, **kwargs):
        gate = current_app.extensions["authorization_gate"]
        try:
            g.user_id = gate.authorize(RequestContext.from_request(request))
        except Unauthenticated:
            logger.info("[guard] rejected %s %s ip=%s", request.method, request.path, request.remote_addr)
            raise
        return f(*args, **kwargs)

    return wrapped
