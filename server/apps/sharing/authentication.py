"""HTTP Basic authentication for the sharing API.

Validates credentials against Django's User model and attaches the
authenticated user to the request for the views.
"""

import base64
import binascii
import functools
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Final

from django.contrib.auth import authenticate
from django.http import HttpRequest, HttpResponse, JsonResponse

if TYPE_CHECKING:
    from django.contrib.auth.models import User

logger = logging.getLogger(__name__)

_REALM: Final = 'UShare'
_BASIC_PREFIX: Final = 'basic '

_View = Callable[..., HttpResponse]


def parse_basic_credentials(header: str) -> tuple[str, str] | None:
    """Extract username and password from an Authorization header.

    Args:
        header: Raw value of the Authorization header.

    Returns:
        (username, password) tuple, or None if the header is malformed.
    """
    if not header.lower().startswith(_BASIC_PREFIX):
        return None

    encoded = header[len(_BASIC_PREFIX):].strip()
    try:
        decoded = base64.b64decode(encoded, validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError):
        return None

    username, separator, password = decoded.partition(':')
    if not separator:
        return None
    return username, password


def authenticate_request(request: HttpRequest) -> 'User | None':
    """Authenticate a request with HTTP Basic Auth credentials.

    Args:
        request: Incoming request.

    Returns:
        Active authenticated user, or None.
    """
    credentials = parse_basic_credentials(
        request.headers.get('Authorization', ''),
    )
    if credentials is None:
        return None

    username, password = credentials
    logger.debug('Authenticating user: %s', username)
    user: User | None = authenticate(
        request=request,
        username=username,
        password=password,
    )

    if user is None:
        logger.warning('Authentication failed for user: %s', username)
        return None

    if not user.is_active:
        logger.warning('Inactive user attempted login: %s', username)
        return None

    return user


def _unauthorized() -> JsonResponse:
    response = JsonResponse(
        {'status': 401, 'error': 'Authentication required'},
        status=401,
    )
    response['WWW-Authenticate'] = f'Basic realm="{_REALM}"'
    return response


def basic_auth_required(view: _View) -> _View:
    """Require HTTP Basic Auth for a view.

    The authenticated user is stored as ``request.user``.

    Args:
        view: View function to protect.

    Returns:
        Wrapped view answering 401 without valid credentials.
    """

    @functools.wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        user = authenticate_request(request)
        if user is None:
            return _unauthorized()
        request.user = user
        return view(request, *args, **kwargs)

    return wrapper
