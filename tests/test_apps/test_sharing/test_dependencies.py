"""Tests for engine wiring from settings."""

import pytest

from server.apps.sharing.dependencies import (
    get_blob_area,
    get_reaper,
    get_user_operations,
)
from server.apps.sharing.infrastructure.blob_area import BlobArea
from server.apps.sharing.logic.user_operations import UserDeletionPolicy
from server.apps.sharing.models import Group, GroupState


def test_blob_area_from_settings(blob_settings):
    """Test the configured storage is a BlobArea at the configured root."""
    blob_area = get_blob_area()

    assert isinstance(blob_area, BlobArea)
    assert blob_area.location == str(blob_settings)


def test_reaper_is_shared(blob_settings):
    """Test the process shares one reaper and its guard."""
    assert get_reaper() is get_reaper()


def test_invalid_deletion_policy(settings):
    """Test unknown policies fail loudly."""
    settings.SHARING_USER_DELETION_POLICY = 'shred'

    with pytest.raises(ValueError, match='shred'):
        get_user_operations()


@pytest.mark.django_db
def test_cascade_policy_from_settings(settings, blob_settings, alice):
    """Test the configured policy reaches user operations."""
    settings.SHARING_USER_DELETION_POLICY = UserDeletionPolicy.CASCADE
    Group.objects.create(name='team-x', owner=alice)

    get_user_operations().delete_user(alice.pk)

    assert Group.objects.get().state == GroupState.INACTIVE
