"""Shared fixtures for sharing app tests."""

import base64

import pytest
from django.contrib.auth import get_user_model

from server.apps.sharing.dependencies import get_reaper
from server.apps.sharing.infrastructure.blob_area import BlobArea
from server.apps.sharing.infrastructure.membership_store import MembershipStore
from server.apps.sharing.logic.file_operations import FileOperations
from server.apps.sharing.logic.group_operations import GroupOperations
from server.apps.sharing.logic.reaper import Reaper
from server.apps.sharing.logic.user_operations import UserOperations

User = get_user_model()

PASSWORD = 'correct-horse-42!'


def _create_user(username):
    return User.objects.create_user(username=username, password=PASSWORD)


@pytest.fixture
def alice(db):
    """Create the user who owns most groups in the tests.

    Returns:
        User instance.
    """
    return _create_user('alice')


@pytest.fixture
def bob(db):
    """Create a second user, usually a member.

    Returns:
        User instance.
    """
    return _create_user('bob')


@pytest.fixture
def carol(db):
    """Create a third user, usually an outsider.

    Returns:
        User instance.
    """
    return _create_user('carol')


@pytest.fixture
def blob_area(tmp_path):
    """Blob area rooted in a temporary directory.

    Returns:
        BlobArea instance.
    """
    return BlobArea(location=tmp_path / 'groups')


@pytest.fixture
def store(db):
    """Membership store on the test database.

    Returns:
        MembershipStore instance.
    """
    return MembershipStore()


@pytest.fixture
def group_ops(store, blob_area):
    """Group operations wired to the temporary blob area.

    Returns:
        GroupOperations instance.
    """
    return GroupOperations(store, blob_area)


@pytest.fixture
def file_ops(store, blob_area):
    """File operations wired to the temporary blob area.

    Returns:
        FileOperations instance.
    """
    return FileOperations(store, blob_area)


@pytest.fixture
def user_ops(store, group_ops):
    """User operations with the default deletion policy.

    Returns:
        UserOperations instance.
    """
    return UserOperations(store, group_ops)


@pytest.fixture
def reaper(store, blob_area):
    """Reaper wired to the temporary blob area.

    Returns:
        Reaper instance.
    """
    return Reaper(store, blob_area, max_workers=4)


@pytest.fixture
def team(alice, bob, group_ops):
    """Group 'team-x' owned by alice with bob as a member.

    Returns:
        Group instance.
    """
    group = group_ops.create_group(alice.pk, 'team-x')
    group_ops.add_member(alice.pk, 'bob', 'team-x')
    return group


@pytest.fixture
def blob_settings(settings, tmp_path):
    """Point the configured blob storage at a temporary directory.

    Yields:
        Root path of the configured blob area.
    """
    root = tmp_path / 'configured-groups'
    settings.STORAGES = {
        **settings.STORAGES,
        'blobs': {
            'BACKEND': 'server.apps.sharing.infrastructure.blob_area.BlobArea',
            'OPTIONS': {'location': str(root)},
        },
    }
    get_reaper.cache_clear()
    yield root
    get_reaper.cache_clear()


@pytest.fixture
def basic_auth():
    """Build Basic auth headers for the test client.

    Returns:
        Callable taking a username and returning client kwargs.
    """

    def factory(username, password=PASSWORD):  # noqa: WPS430
        token = base64.b64encode(f'{username}:{password}'.encode()).decode()
        return {'HTTP_AUTHORIZATION': f'Basic {token}'}

    return factory
