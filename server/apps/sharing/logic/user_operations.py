"""Business logic for user registration and deletion."""

import enum
import logging
from typing import TYPE_CHECKING, final

from django.contrib.auth.hashers import make_password

from server.apps.sharing.exceptions import ConflictError
from server.apps.sharing.validators import validate_password, validate_username

if TYPE_CHECKING:
    from django.contrib.auth.models import User

    from server.apps.sharing.infrastructure.membership_store import (
        MembershipStore,
    )
    from server.apps.sharing.logic.group_operations import GroupOperations

logger = logging.getLogger(__name__)


class UserDeletionPolicy(enum.StrEnum):
    """What deleting a user does to their memberships and groups."""

    # Only the user row goes, memberships and owned groups stay behind
    PRESERVE = 'preserve'
    # Memberships are revoked and owned groups deactivated
    CASCADE = 'cascade'


@final
class UserOperations:
    """Registration, listing and deletion of users."""

    def __init__(
        self,
        store: 'MembershipStore',
        groups: 'GroupOperations',
        deletion_policy: UserDeletionPolicy = UserDeletionPolicy.PRESERVE,
    ) -> None:
        """Initialize with explicit collaborators.

        Args:
            store: Membership store handle.
            groups: Group operations used for cascading deletes.
            deletion_policy: Behaviour of delete_user.
        """
        self._store = store
        self._groups = groups
        self._deletion_policy = deletion_policy

    def register_user(self, username: str, password: str) -> 'User':
        """Create a new user with a hashed password.

        Args:
            username: Login name.
            password: Plain text password.

        Returns:
            Created user.

        Raises:
            ValidationError: If username or password format is invalid.
            ConflictError: If the username is taken.
            StoreFailureError: If the transaction failed.
        """
        validate_username(username)
        validate_password(password)

        conflict = 'A user with the same username exists'
        with self._store.transaction(conflict_message=conflict):
            if self._store.users().filter(username=username).exists():
                raise ConflictError(conflict)

            logger.info('Creating user [%s]', username)
            user = self._store.users().create(
                username=username,
                password=make_password(password),
            )

        logger.info('User [%s] created (ID: %d)', username, user.pk)
        return user

    def delete_user(self, user_id: int) -> None:
        """Delete a user according to the configured policy.

        With PRESERVE, memberships and owned groups keep pointing at the
        deleted id. With CASCADE, the same transaction revokes all
        memberships and deactivates owned groups, which the reaper then
        erases.

        Args:
            user_id: Primary key of the user.

        Raises:
            NotFoundError: If the user does not exist.
            StoreFailureError: If the transaction failed.
        """
        with self._store.transaction():
            user = self._store.get_user_by_id(user_id)

            if self._deletion_policy == UserDeletionPolicy.CASCADE:
                deactivated = self._groups.deactivate_owned_groups(user_id)
                revoked, _ = (
                    self._store.memberships().filter(user_id=user_id).delete()
                )
                logger.info(
                    'Cascading deletion of user [%d]: %d groups deactivated, '
                    '%d memberships revoked',
                    user_id,
                    deactivated,
                    revoked,
                )

            logger.info('Deleting user with id [%d]', user_id)
            user.delete(using=self._store.using)

        logger.info('User with id [%d] is deleted', user_id)

    def list_users(self) -> list['User']:
        """List all users.

        Returns:
            Users ordered by username.

        Raises:
            StoreFailureError: If the query failed.
        """
        with self._store.transaction():
            return list(self._store.users().order_by('username'))
