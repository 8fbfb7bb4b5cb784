"""Transactional access to users, groups, memberships and file metadata."""

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, final

from django.contrib.auth import get_user_model
from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, transaction
from django.db.models import QuerySet

from server.apps.sharing.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StoreFailureError,
)
from server.apps.sharing.models import FileInfo, Group, GroupState, Membership

if TYPE_CHECKING:
    from django.contrib.auth.models import User

logger = logging.getLogger(__name__)


@final
class MembershipStore:
    """Handle to the relational store, bound to one database alias.

    Constructed explicitly and handed to the engines and the reaper.
    Every query goes through ``self.using`` so tests and deployments can
    point the whole engine at another database.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS) -> None:
        """Initialize the store handle.

        Args:
            using: Django database alias.
        """
        self.using = using

    @contextmanager
    def transaction(
        self,
        conflict_message: str = 'Conflicting concurrent update',
    ) -> Iterator[None]:
        """Run a block inside one atomic transaction.

        Domain errors raised inside the block roll the transaction back
        and propagate unchanged. Constraint violations become
        ConflictError, every other database error becomes
        StoreFailureError.

        Args:
            conflict_message: Message for ConflictError on an
                integrity violation.

        Yields:
            None.

        Raises:
            ConflictError: If a uniqueness constraint was violated.
            StoreFailureError: If the transaction failed.
        """
        try:
            with transaction.atomic(using=self.using):
                yield
        except IntegrityError as error:
            logger.warning('Integrity violation: %s', error)
            raise ConflictError(conflict_message) from error
        except DatabaseError as error:
            logger.exception('Membership store transaction failed')
            raise StoreFailureError from error

    # Query sets

    def groups(self) -> QuerySet[Group]:
        """All group rows, active and inactive."""
        return Group.objects.using(self.using)

    def memberships(self) -> QuerySet[Membership]:
        """All membership rows."""
        return Membership.objects.using(self.using)

    def file_infos(self) -> QuerySet[FileInfo]:
        """All file metadata rows."""
        return FileInfo.objects.using(self.using)

    def users(self) -> QuerySet[Any]:
        """All user rows."""
        return get_user_model().objects.using(self.using)

    # Lookups

    def get_group(self, group_name: str, *, for_update: bool = False) -> Group:
        """Load a group by name.

        Args:
            group_name: Name of the group.
            for_update: Lock the row until the transaction ends.

        Returns:
            Group instance.

        Raises:
            NotFoundError: If no group has that name.
        """
        queryset = self.groups()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(name=group_name)
        except Group.DoesNotExist as error:
            raise NotFoundError(f'Group [{group_name}] does not exist') from error

    def group_state(self, group_name: str) -> GroupState:
        """Get lifecycle state of a group name.

        Args:
            group_name: Name of the group.

        Returns:
            Stored state, or ERASED when no row exists.
        """
        state = (
            self.groups()
            .filter(name=group_name)
            .values_list('state', flat=True)
            .first()
        )
        if state is None:
            return GroupState.ERASED
        return GroupState(state)

    def get_user(self, username: str) -> 'User':
        """Load a user by username.

        Args:
            username: Login name.

        Returns:
            User instance.

        Raises:
            NotFoundError: If the user does not exist.
        """
        try:
            return self.users().get(username=username)
        except get_user_model().DoesNotExist as error:
            raise NotFoundError(f'User [{username}] does not exist') from error

    def get_user_by_id(self, user_id: int) -> 'User':
        """Load a user by id.

        Args:
            user_id: Primary key of the user.

        Returns:
            User instance.

        Raises:
            NotFoundError: If the user does not exist.
        """
        try:
            return self.users().get(pk=user_id)
        except get_user_model().DoesNotExist as error:
            raise NotFoundError(f'User with id [{user_id}] does not exist') from error

    def is_member(self, user_id: int, group: Group) -> bool:
        """Check whether a user belongs to a group.

        Args:
            user_id: Primary key of the user.
            group: Group instance.

        Returns:
            True if a membership row exists.
        """
        return self.memberships().filter(user_id=user_id, group=group).exists()

    def require_member_of_active_group(
        self,
        user_id: int,
        group_name: str,
    ) -> Group:
        """Load a group the caller may read from and write to.

        Checks run in a fixed order: existence, activeness, membership.

        Args:
            user_id: Primary key of the caller.
            group_name: Name of the group.

        Returns:
            Active Group instance the caller is a member of.

        Raises:
            NotFoundError: If the group does not exist.
            ConflictError: If the group is inactive.
            PermissionDeniedError: If the caller is not a member.
        """
        group = self.get_group(group_name)
        if not group.is_active:
            raise ConflictError(f'Group [{group_name}] is being deleted')
        if not self.is_member(user_id, group):
            raise PermissionDeniedError(
                f'You are not a member of group [{group_name}]',
            )
        return group

    def get_file_info(self, group: Group, file_id: int) -> FileInfo:
        """Load file metadata scoped to a group.

        Args:
            group: Owning group.
            file_id: Primary key of the file.

        Returns:
            FileInfo instance.

        Raises:
            NotFoundError: If the file does not exist in that group.
        """
        try:
            return self.file_infos().get(pk=file_id, group=group)
        except FileInfo.DoesNotExist as error:
            raise NotFoundError(f'File [{file_id}] does not exist') from error

    def delete_file_info(self, file_id: int) -> int:
        """Delete file metadata in its own transaction.

        Used as a compensating action when writing the blob failed.

        Args:
            file_id: Primary key of the file.

        Returns:
            Number of rows deleted.

        Raises:
            StoreFailureError: If the delete failed.
        """
        with self.transaction():
            deleted, _ = self.file_infos().filter(pk=file_id).delete()
        return deleted

    # Reaper support

    def deactivated_group_names(self) -> list[str]:
        """Get names of all groups waiting to be erased.

        Returns:
            Names of inactive groups.

        Raises:
            StoreFailureError: If the query failed.
        """
        try:
            return list(
                self.groups()
                .filter(state=GroupState.INACTIVE)
                .order_by('name')
                .values_list('name', flat=True),
            )
        except DatabaseError as error:
            logger.exception('Failed to query deactivated groups')
            raise StoreFailureError from error

    def erase_groups(self, group_names: Iterable[str]) -> int:
        """Permanently delete inactive groups in one transaction.

        Only inactive rows are touched. A name without a row is logged
        as a warning, not treated as an error.

        Args:
            group_names: Names of groups to erase.

        Returns:
            Number of groups erased.

        Raises:
            StoreFailureError: If the transaction failed.
        """
        erased = 0
        with self.transaction():
            for group_name in group_names:
                deleted = self._erase_group(group_name)
                if deleted:
                    erased += 1
                else:
                    logger.warning(
                        'Tried to erase already erased group: %s',
                        group_name,
                    )
        return erased

    def _erase_group(self, group_name: str) -> bool:
        group_ids = list(
            self.groups()
            .filter(name=group_name, state=GroupState.INACTIVE)
            .values_list('pk', flat=True),
        )
        if not group_ids:
            return False
        # File metadata and leftover memberships go with the group
        self.file_infos().filter(group_id__in=group_ids).delete()
        self.memberships().filter(group_id__in=group_ids).delete()
        self.groups().filter(pk__in=group_ids).delete()
        return True
