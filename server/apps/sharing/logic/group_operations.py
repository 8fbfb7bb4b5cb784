"""Business logic for group and membership operations."""

import logging
from typing import TYPE_CHECKING, final

from server.apps.sharing.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StoreFailureError,
)
from server.apps.sharing.models import (
    Group,
    GroupState,
    Membership,
    can_transition,
)

if TYPE_CHECKING:
    from django.contrib.auth.models import User

    from server.apps.sharing.infrastructure.blob_area import BlobArea
    from server.apps.sharing.infrastructure.membership_store import (
        MembershipStore,
    )

logger = logging.getLogger(__name__)


@final
class GroupOperations:
    """Group lifecycle and membership mutations.

    Each mutation runs in a single store transaction. Only group creation
    touches the blob area; deactivation leaves the directory to the
    reaper.
    """

    def __init__(self, store: 'MembershipStore', blob_area: 'BlobArea') -> None:
        """Initialize with explicit collaborators.

        Args:
            store: Membership store handle.
            blob_area: Blob area storage backend.
        """
        self._store = store
        self._blob_area = blob_area

    def create_group(self, owner_id: int, group_name: str) -> Group:
        """Create a group owned (and joined) by the caller.

        Order: create directory, insert rows, remove the directory again
        if the transaction fails. An existing directory always means the
        name is taken, it is never removed or reused here.

        Args:
            owner_id: Primary key of the creating user.
            group_name: Name of the new group.

        Returns:
            Created Group instance.

        Raises:
            ConflictError: If a group with that name exists in any state.
            StoreFailureError: If the directory or the transaction failed.
        """
        self._create_directory(group_name)

        try:
            with self._store.transaction(
                conflict_message=f'Group [{group_name}] already exists',
            ):
                if self._store.groups().filter(name=group_name).exists():
                    raise ConflictError(f'Group [{group_name}] already exists')

                logger.info(
                    'Creating group [%s] with owner [%d]',
                    group_name,
                    owner_id,
                )
                group = self._store.groups().create(
                    name=group_name,
                    owner_id=owner_id,
                    state=GroupState.ACTIVE,
                )
                self._store.memberships().create(
                    user_id=owner_id,
                    group=group,
                )
        except Exception:
            logger.exception(
                'Group creation failed, rolling back directory: %s',
                group_name,
            )
            self._blob_area.rollback_group_dir(group_name)
            raise

        logger.info('Group [%s] created (ID: %d)', group_name, group.pk)
        return group

    def _create_directory(self, group_name: str) -> None:
        """Create the group directory.

        Args:
            group_name: Name of the new group.

        Raises:
            ConflictError: If the directory already exists.
            StoreFailureError: If the filesystem failed.
        """
        try:
            self._blob_area.create_group_dir(group_name)
        except FileExistsError as error:
            raise ConflictError(
                f'Group [{group_name}] already exists',
            ) from error
        except OSError as error:
            raise StoreFailureError(
                f'Could not create directory for group [{group_name}]',
            ) from error

    def add_member(
        self,
        acting_user_id: int,
        username: str,
        group_name: str,
    ) -> Membership:
        """Add a user to a group.

        Args:
            acting_user_id: Primary key of the caller, must own the group.
            username: User to add.
            group_name: Target group.

        Returns:
            Created Membership instance.

        Raises:
            NotFoundError: If the group or user does not exist.
            ConflictError: If the group is inactive or the user already
                is a member.
            PermissionDeniedError: If the caller does not own the group.
            StoreFailureError: If the transaction failed.
        """
        conflict = f'User [{username}] is already a member of [{group_name}]'
        with self._store.transaction(conflict_message=conflict):
            group = self._load_active_group(group_name)
            if group.owner_id != acting_user_id:
                raise PermissionDeniedError(
                    'Only the group owner can add members to the group',
                )

            user = self._store.get_user(username)
            if self._store.is_member(user.pk, group):
                raise ConflictError(conflict)

            logger.info(
                'Creating membership for user [%d] in group [%d]',
                user.pk,
                group.pk,
            )
            membership = self._store.memberships().create(
                user=user,
                group=group,
            )

        logger.info('User [%s] added to group [%s]', username, group_name)
        return membership

    def remove_member(
        self,
        acting_user_id: int,
        username: str,
        group_name: str,
    ) -> None:
        """Revoke a membership.

        The owner may remove anybody but themself (ownership transfer is
        not supported); other members may only remove themselves.

        Args:
            acting_user_id: Primary key of the caller.
            username: Member to remove.
            group_name: Target group.

        Raises:
            NotFoundError: If the group, user or membership does not exist.
            ConflictError: If the group is inactive or the owner tries to
                leave their own group.
            PermissionDeniedError: If a non-owner removes somebody else.
            StoreFailureError: If the transaction failed.
        """
        with self._store.transaction():
            group = self._load_active_group(group_name)
            user = self._store.get_user(username)

            is_owner = group.owner_id == acting_user_id
            is_self = user.pk == acting_user_id
            if not is_owner and not is_self:
                raise PermissionDeniedError(
                    'Only the group owner can revoke membership of other members',
                )
            if is_owner and is_self:
                raise ConflictError(
                    'The group owner cannot remove their own membership',
                )

            logger.info(
                'Revoking membership for user [%d] in group [%d]',
                user.pk,
                group.pk,
            )
            deleted, _ = (
                self._store.memberships()
                .filter(user=user, group=group)
                .delete()
            )
            if not deleted:
                raise NotFoundError('Membership not found')

        logger.info('User [%s] removed from group [%s]', username, group_name)

    def deactivate_group(self, acting_user_id: int, group_name: str) -> Group:
        """Soft-delete a group: revoke all memberships, mark inactive.

        The directory and file metadata stay until the reaper erases the
        group; the name stays reserved until then.

        Args:
            acting_user_id: Primary key of the caller, must own the group.
            group_name: Group to deactivate.

        Returns:
            Updated Group instance.

        Raises:
            NotFoundError: If the group does not exist.
            ConflictError: If the group is already inactive.
            PermissionDeniedError: If the caller does not own the group.
            StoreFailureError: If the transaction failed.
        """
        with self._store.transaction():
            group = self._load_active_group(group_name)
            if group.owner_id != acting_user_id:
                raise PermissionDeniedError(
                    'Only the group owner can delete the group',
                )
            self._deactivate(group)

        return group

    def deactivate_owned_groups(self, owner_id: int) -> int:
        """Deactivate every active group owned by a user.

        Must be called inside an open store transaction.

        Args:
            owner_id: Primary key of the owner.

        Returns:
            Number of groups deactivated.
        """
        owned = list(
            self._store.groups()
            .select_for_update()
            .filter(owner_id=owner_id, state=GroupState.ACTIVE),
        )
        for group in owned:
            self._deactivate(group)
        return len(owned)

    def _deactivate(self, group: Group) -> None:
        if not can_transition(GroupState(group.state), GroupState.INACTIVE):
            raise ConflictError(f'Group [{group.name}] is being deleted')

        logger.info('Revoking all memberships in group [%s]', group.name)
        revoked, _ = self._store.memberships().filter(group=group).delete()

        group.state = GroupState.INACTIVE
        group.save(using=self._store.using, update_fields=['state', 'updated_at'])
        logger.info(
            'Group [%s] set to inactive (%d memberships revoked)',
            group.name,
            revoked,
        )

    def _load_active_group(self, group_name: str) -> Group:
        group = self._store.get_group(group_name, for_update=True)
        if not group.is_active:
            raise ConflictError(f'Group [{group_name}] is being deleted')
        return group

    def list_groups(self) -> list[Group]:
        """List all active groups.

        Returns:
            Active groups ordered by name.

        Raises:
            StoreFailureError: If the query failed.
        """
        with self._store.transaction():
            return list(self._store.groups().filter(state=GroupState.ACTIVE))

    def list_members(self, caller_id: int, group_name: str) -> list['User']:
        """List members of a group the caller belongs to.

        Args:
            caller_id: Primary key of the caller.
            group_name: Group to inspect.

        Returns:
            Member users ordered by username.

        Raises:
            NotFoundError: If the group does not exist.
            ConflictError: If the group is inactive.
            PermissionDeniedError: If the caller is not a member.
            StoreFailureError: If the query failed.
        """
        with self._store.transaction():
            group = self._store.require_member_of_active_group(
                caller_id,
                group_name,
            )
            member_ids = self._store.memberships().filter(
                group=group,
            ).values_list('user_id', flat=True)
            return list(
                self._store.users()
                .filter(pk__in=list(member_ids))
                .order_by('username'),
            )

    def group_state(self, group_name: str) -> GroupState:
        """Get lifecycle state of a group name.

        Args:
            group_name: Name to inspect.

        Returns:
            ACTIVE, INACTIVE, or ERASED when no row exists.

        Raises:
            StoreFailureError: If the query failed.
        """
        with self._store.transaction():
            return self._store.group_state(group_name)
