"""Database models for sharing app."""

from typing import ClassVar, Final, final, override

from django.conf import settings
from django.db import models

# Constants for field max lengths
_GROUP_NAME_MAX_LENGTH: Final = 256
_FILE_NAME_MAX_LENGTH: Final = 256
_STATE_MAX_LENGTH: Final = 16


class GroupState(models.TextChoices):
    """Lifecycle of a sharing group.

    ``ERASED`` is never stored: an erased group has no row at all, the
    value only describes a name that is free again.
    """

    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'
    ERASED = 'erased', 'Erased'


# Allowed lifecycle transitions, nothing leads back to ACTIVE
_TRANSITIONS: Final = {
    GroupState.ACTIVE: frozenset({GroupState.INACTIVE}),
    GroupState.INACTIVE: frozenset({GroupState.ERASED}),
    GroupState.ERASED: frozenset(),
}


def can_transition(current: GroupState, target: GroupState) -> bool:
    """Check whether a group may move from one state to another.

    Args:
        current: State the group is in.
        target: State the caller wants to reach.

    Returns:
        True if the transition is part of the lifecycle.
    """
    return target in _TRANSITIONS[current]


@final
class Group(models.Model):
    """Sharing group with its own directory in the blob area.

    The name stays reserved while the group is inactive; it is freed only
    when the reaper deletes the row.
    """

    name = models.CharField(
        max_length=_GROUP_NAME_MAX_LENGTH,
        unique=True,
        help_text='Group name, also the directory name in the blob area',
    )

    # Users may be deleted without touching their groups
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='owned_sharing_groups',
    )

    state = models.CharField(
        max_length=_STATE_MAX_LENGTH,
        choices=GroupState.choices,
        default=GroupState.ACTIVE,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Group'  # type: ignore[mutable-override]
        verbose_name_plural = 'Groups'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['name']

        constraints: ClassVar[list[models.BaseConstraint]] = [
            # Erased is represented by row absence
            models.CheckConstraint(
                condition=models.Q(
                    state__in=[GroupState.ACTIVE, GroupState.INACTIVE],
                ),
                name='sharing_group_state_stored',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.name} ({self.state})'

    @property
    def is_active(self) -> bool:
        """Whether the group still accepts members and files."""
        return self.state == GroupState.ACTIVE


@final
class Membership(models.Model):
    """Membership of a user in a sharing group."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='sharing_memberships',
    )

    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        related_name='memberships',
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Membership'  # type: ignore[mutable-override]
        verbose_name_plural = 'Memberships'  # type: ignore[mutable-override]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.UniqueConstraint(
                fields=['user', 'group'],
                name='sharing_membership_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'user {self.user_id} in group {self.group_id}'


@final
class FileInfo(models.Model):
    """Metadata of a file stored in a group's directory.

    The primary key is also the file name on disk:
    {blob_root}/{group.name}/{id}
    Neither store enforces that link, the engine keeps it consistent.
    """

    name = models.CharField(
        max_length=_FILE_NAME_MAX_LENGTH,
        help_text='Display name given by the uploader',
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='shared_files',
    )

    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        related_name='files',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File info'  # type: ignore[mutable-override]
        verbose_name_plural = 'File infos'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['id']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.group_id}/{self.pk}: {self.name}'

    @property
    def blob_name(self) -> str:
        """Name of the file inside the group directory."""
        return str(self.pk)
