"""JSON HTTP API for groups, memberships and files.

Views only translate between HTTP and the engine: parse input, call one
operation, map its exception to a status code.
"""

import functools
import json
import logging
from collections.abc import Callable
from typing import Any, Final

from django.core.exceptions import ValidationError
from django.http import FileResponse, HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods

from server.apps.sharing.authentication import basic_auth_required
from server.apps.sharing.dependencies import (
    get_file_operations,
    get_group_operations,
    get_user_operations,
)
from server.apps.sharing.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    SharingError,
    StoreFailureError,
)
from server.apps.sharing.models import FileInfo, Group
from server.apps.sharing.validators import validate_group_name

logger = logging.getLogger(__name__)

_View = Callable[..., HttpResponse]

_STATUS_BY_ERROR: Final[tuple[tuple[type[SharingError], int], ...]] = (
    (NotFoundError, 404),
    (PermissionDeniedError, 403),
    (ConflictError, 409),
)


def _respond(status: int, **payload: Any) -> JsonResponse:
    return JsonResponse({'status': status, **payload}, status=status)


def _error_status(error: SharingError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def json_errors(view: _View) -> _View:
    """Map engine and validation errors to JSON error responses.

    Store failures answer a generic 500; their details only go to the log.

    Args:
        view: View function to wrap.

    Returns:
        Wrapped view.
    """

    @functools.wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        try:
            return view(request, *args, **kwargs)
        except ValidationError as error:
            return _respond(400, error='; '.join(error.messages))
        except StoreFailureError:
            logger.exception('Request failed: %s %s', request.method, request.path)
            return _respond(500, error='Internal server error')
        except SharingError as error:
            return _respond(_error_status(error), error=str(error))

    return wrapper


def _read_json(request: HttpRequest) -> dict[str, Any]:
    """Parse a JSON object from the request body.

    Args:
        request: Incoming request.

    Returns:
        Decoded JSON object.

    Raises:
        ValidationError: If the body is not a JSON object.
    """
    try:
        payload = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError) as error:
        raise ValidationError('Invalid json body') from error
    if not isinstance(payload, dict):
        raise ValidationError('Invalid json body')
    return payload


def _required_field(payload: dict[str, Any], field: str) -> str:
    value = payload.get(field)
    if not isinstance(value, str) or not value:
        raise ValidationError(f'Field "{field}" is required')
    return value


def _group_payload(group: Group) -> dict[str, Any]:
    return {'id': group.pk, 'name': group.name, 'owner_id': group.owner_id}


def _file_payload(file_info: FileInfo) -> dict[str, Any]:
    return {
        'id': file_info.pk,
        'name': file_info.name,
        'owner_id': file_info.owner_id,
        'uploaded_at': file_info.created_at.isoformat(),
    }


@require_GET
def health(request: HttpRequest) -> JsonResponse:
    """Liveness probe."""
    return _respond(200)


# Users


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def users(request: HttpRequest) -> HttpResponse:
    """Register a user (POST, anonymous) or list users (GET)."""
    if request.method == 'POST':
        return _register(request)
    return _list_users(request)


@json_errors
def _register(request: HttpRequest) -> HttpResponse:
    payload = _read_json(request)
    get_user_operations().register_user(
        _required_field(payload, 'username'),
        _required_field(payload, 'password'),
    )
    return _respond(201)


@basic_auth_required
@json_errors
def _list_users(request: HttpRequest) -> HttpResponse:
    found = get_user_operations().list_users()
    return _respond(
        200,
        users=[{'id': user.pk, 'username': user.username} for user in found],
    )


@csrf_exempt
@require_http_methods(['DELETE'])
@basic_auth_required
@json_errors
def current_user(request: HttpRequest) -> HttpResponse:
    """Delete the authenticated user."""
    get_user_operations().delete_user(request.user.pk)
    return _respond(200)


# Groups


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@basic_auth_required
@json_errors
def groups(request: HttpRequest) -> HttpResponse:
    """List active groups (GET) or create a group (POST)."""
    operations = get_group_operations()
    if request.method == 'GET':
        found = operations.list_groups()
        return _respond(200, groups=[_group_payload(group) for group in found])

    group_name = _required_field(_read_json(request), 'group_name')
    validate_group_name(group_name)
    group = operations.create_group(request.user.pk, group_name)
    return _respond(201, group=_group_payload(group))


@csrf_exempt
@require_http_methods(['DELETE'])
@basic_auth_required
@json_errors
def group_detail(request: HttpRequest, group_name: str) -> HttpResponse:
    """Deactivate a group; the reaper erases it later."""
    get_group_operations().deactivate_group(request.user.pk, group_name)
    return _respond(200)


# Memberships


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@basic_auth_required
@json_errors
def members(request: HttpRequest, group_name: str) -> HttpResponse:
    """List members (GET) or add a member (POST) of a group."""
    operations = get_group_operations()
    if request.method == 'GET':
        found = operations.list_members(request.user.pk, group_name)
        return _respond(
            200,
            users=[{'id': user.pk, 'username': user.username} for user in found],
        )

    username = _required_field(_read_json(request), 'username')
    operations.add_member(request.user.pk, username, group_name)
    return _respond(201)


@csrf_exempt
@require_http_methods(['DELETE'])
@basic_auth_required
@json_errors
def member_detail(
    request: HttpRequest,
    group_name: str,
    username: str,
) -> HttpResponse:
    """Revoke a membership."""
    get_group_operations().remove_member(request.user.pk, username, group_name)
    return _respond(200)


# Files


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@basic_auth_required
@json_errors
def files(request: HttpRequest, group_name: str) -> HttpResponse:
    """List files (GET) or upload a file (POST multipart) in a group."""
    operations = get_file_operations()
    if request.method == 'GET':
        found = operations.list_files(group_name, request.user.pk)
        return _respond(200, files=[_file_payload(info) for info in found])

    uploaded = request.FILES.get('file')
    if uploaded is None:
        raise ValidationError('Problem with the file')
    file_info = operations.upload(
        group_name,
        request.user.pk,
        uploaded.name,
        uploaded,
    )
    return _respond(201, file_id=file_info.pk)


@csrf_exempt
@require_http_methods(['GET', 'DELETE'])
@basic_auth_required
@json_errors
def file_detail(
    request: HttpRequest,
    group_name: str,
    file_id: int,
) -> HttpResponse:
    """Download (GET) or delete (DELETE) a file of a group."""
    operations = get_file_operations()
    if request.method == 'DELETE':
        operations.delete(group_name, request.user.pk, file_id)
        return _respond(200)

    download = operations.download(group_name, request.user.pk, file_id)
    return FileResponse(
        download.stream,
        as_attachment=True,
        filename=download.filename,
    )
