"""Wiring of the sharing engine from Django settings.

Views and management commands get their collaborators from here; the
engine classes themselves only receive explicit arguments.
"""

from functools import cache
from typing import cast

from django.conf import settings
from django.core.files.storage import storages

from server.apps.sharing.infrastructure.blob_area import BlobArea
from server.apps.sharing.infrastructure.membership_store import MembershipStore
from server.apps.sharing.logic.file_operations import FileOperations
from server.apps.sharing.logic.group_operations import GroupOperations
from server.apps.sharing.logic.reaper import Reaper
from server.apps.sharing.logic.user_operations import (
    UserDeletionPolicy,
    UserOperations,
)

_BLOB_STORAGE_ALIAS = 'blobs'


def get_blob_area() -> BlobArea:
    """Get the configured blob area backend.

    Returns:
        BlobArea instance from ``STORAGES['blobs']``.
    """
    return cast(BlobArea, storages[_BLOB_STORAGE_ALIAS])


def get_store() -> MembershipStore:
    """Get a membership store handle on the default database.

    Returns:
        MembershipStore instance.
    """
    return MembershipStore()


def get_group_operations() -> GroupOperations:
    """Build group operations from settings.

    Returns:
        GroupOperations instance.
    """
    return GroupOperations(get_store(), get_blob_area())


def get_file_operations() -> FileOperations:
    """Build file operations from settings.

    Returns:
        FileOperations instance.
    """
    return FileOperations(get_store(), get_blob_area())


def get_user_operations() -> UserOperations:
    """Build user operations from settings.

    Returns:
        UserOperations instance honouring SHARING_USER_DELETION_POLICY.
    """
    policy = UserDeletionPolicy(
        getattr(settings, 'SHARING_USER_DELETION_POLICY', 'preserve'),
    )
    return UserOperations(
        get_store(),
        get_group_operations(),
        deletion_policy=policy,
    )


@cache
def get_reaper() -> Reaper:
    """Get the process-wide reaper.

    A single instance per process keeps its single-flight guard shared
    between the scheduler and manual runs.

    Returns:
        Reaper instance.
    """
    return Reaper(
        get_store(),
        get_blob_area(),
        max_workers=getattr(settings, 'SHARING_REAPER_MAX_WORKERS', 8),
    )
