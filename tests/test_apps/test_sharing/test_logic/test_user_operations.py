"""Tests for user registration and deletion."""

import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from server.apps.sharing.exceptions import ConflictError, NotFoundError
from server.apps.sharing.logic.user_operations import (
    UserDeletionPolicy,
    UserOperations,
)
from server.apps.sharing.models import Group, GroupState, Membership

User = get_user_model()


@pytest.mark.django_db
class TestRegisterUser:
    """Tests for register_user."""

    def test_register(self, user_ops):
        """Test the password is stored hashed."""
        user = user_ops.register_user('new_member', 'secret-pass1!')

        assert user.username == 'new_member'
        assert user.password != 'secret-pass1!'
        assert user.check_password('secret-pass1!')

    def test_register_taken(self, user_ops):
        """Test usernames are unique."""
        user_ops.register_user('new_member', 'secret-pass1!')

        with pytest.raises(ConflictError):
            user_ops.register_user('new_member', 'other-pass1!')

    def test_register_invalid_username(self, user_ops):
        """Test malformed usernames are rejected before any write."""
        with pytest.raises(ValidationError):
            user_ops.register_user('bad name', 'secret-pass1!')

        assert not User.objects.exists()

    def test_register_weak_password(self, user_ops):
        """Test weak passwords are rejected."""
        with pytest.raises(ValidationError):
            user_ops.register_user('new_member', 'password')


@pytest.mark.django_db
class TestDeleteUser:
    """Tests for delete_user under both policies."""

    def test_delete_preserve(self, team, alice, bob, user_ops):
        """Test the default policy only removes the user row."""
        user_ops.delete_user(bob.pk)

        assert not User.objects.filter(pk=bob.pk).exists()
        assert Membership.objects.filter(user_id=bob.pk).exists()

    def test_delete_owner_preserve(self, team, alice, user_ops):
        """Test owned groups outlive their owner by default."""
        user_ops.delete_user(alice.pk)

        group = Group.objects.get(name='team-x')
        assert group.state == GroupState.ACTIVE
        assert group.owner_id == alice.pk

    def test_delete_cascade(self, team, alice, bob, store, group_ops):
        """Test cascading revokes memberships and deactivates owned groups."""
        user_ops = UserOperations(
            store,
            group_ops,
            deletion_policy=UserDeletionPolicy.CASCADE,
        )
        group_ops.create_group(bob.pk, 'bobs-room')

        user_ops.delete_user(bob.pk)

        assert not Membership.objects.filter(user_id=bob.pk).exists()
        assert Group.objects.get(name='bobs-room').state == GroupState.INACTIVE
        assert Group.objects.get(name='team-x').state == GroupState.ACTIVE

    def test_delete_unknown(self, user_ops):
        """Test deleting a user that does not exist."""
        with pytest.raises(NotFoundError):
            user_ops.delete_user(12345)

    def test_list_users(self, alice, bob, carol, user_ops):
        """Test users are listed by username."""
        usernames = [user.username for user in user_ops.list_users()]

        assert usernames == ['alice', 'bob', 'carol']
