"""Tests for the membership store."""

from unittest.mock import patch

import pytest
from django.db import DatabaseError, IntegrityError

from server.apps.sharing.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StoreFailureError,
)
from server.apps.sharing.models import FileInfo, Group, GroupState, Membership


@pytest.mark.django_db
class TestTransaction:
    """Tests for error translation of store transactions."""

    def test_integrity_error_becomes_conflict(self, store):
        """Test constraint violations surface as ConflictError."""
        with pytest.raises(ConflictError, match='taken'):
            with store.transaction(conflict_message='taken'):
                raise IntegrityError('UNIQUE constraint failed')

    def test_database_error_becomes_store_failure(self, store):
        """Test other database errors surface as retryable failures."""
        with pytest.raises(StoreFailureError) as exc_info:
            with store.transaction():
                raise DatabaseError('disk I/O error')

        assert exc_info.value.retryable
        assert isinstance(exc_info.value.__cause__, DatabaseError)

    def test_domain_errors_propagate_and_roll_back(self, store, alice):
        """Test domain errors leave no partial writes behind."""
        with pytest.raises(NotFoundError):
            with store.transaction():
                store.groups().create(name='team-x', owner=alice)
                raise NotFoundError('nope')

        assert not Group.objects.exists()


@pytest.mark.django_db
class TestLookups:
    """Tests for store lookups."""

    def test_group_state_of_missing_group(self, store):
        """Test a name without a row reports ERASED."""
        assert store.group_state('team-x') == GroupState.ERASED

    def test_group_state_of_inactive_group(self, store, alice):
        """Test the stored state is returned."""
        Group.objects.create(
            name='team-x',
            owner=alice,
            state=GroupState.INACTIVE,
        )

        assert store.group_state('team-x') == GroupState.INACTIVE

    def test_get_missing_user(self, store):
        """Test unknown users raise NotFoundError."""
        with pytest.raises(NotFoundError):
            store.get_user('nobody')

    def test_require_member_order(self, store, alice, carol):
        """Test inactive wins over missing membership."""
        Group.objects.create(
            name='team-x',
            owner=alice,
            state=GroupState.INACTIVE,
        )

        with pytest.raises(ConflictError):
            store.require_member_of_active_group(carol.pk, 'team-x')

    def test_require_member_rejects_outsider(self, store, alice, carol):
        """Test non-members of an active group are denied."""
        group = Group.objects.create(name='team-x', owner=alice)
        Membership.objects.create(user=alice, group=group)

        with pytest.raises(PermissionDeniedError):
            store.require_member_of_active_group(carol.pk, 'team-x')

        assert store.require_member_of_active_group(alice.pk, 'team-x') == group

    def test_get_file_info_scoped_to_group(self, store, alice):
        """Test a file id from another group is not found."""
        first = Group.objects.create(name='team-x', owner=alice)
        second = Group.objects.create(name='team-y', owner=alice)
        file_info = FileInfo.objects.create(
            name='a.txt',
            owner=alice,
            group=first,
        )

        assert store.get_file_info(first, file_info.pk) == file_info
        with pytest.raises(NotFoundError):
            store.get_file_info(second, file_info.pk)


@pytest.mark.django_db
class TestReaperSupport:
    """Tests for listing and erasing deactivated groups."""

    def test_deactivated_group_names(self, store, alice):
        """Test only inactive groups are listed, sorted by name."""
        Group.objects.create(name='zeta', owner=alice, state=GroupState.INACTIVE)
        Group.objects.create(name='alpha', owner=alice, state=GroupState.INACTIVE)
        Group.objects.create(name='active', owner=alice)

        assert store.deactivated_group_names() == ['alpha', 'zeta']

    def test_deactivated_group_names_failure(self, store):
        """Test query failures become StoreFailureError."""
        with patch.object(
            Group.objects,
            'using',
            side_effect=DatabaseError('gone'),
        ), pytest.raises(StoreFailureError):
            store.deactivated_group_names()

    def test_erase_groups(self, store, alice, bob):
        """Test erasing removes the group and everything attached."""
        group = Group.objects.create(
            name='team-x',
            owner=alice,
            state=GroupState.INACTIVE,
        )
        Membership.objects.create(user=bob, group=group)
        FileInfo.objects.create(name='a.txt', owner=bob, group=group)

        assert store.erase_groups(['team-x']) == 1

        assert not Group.objects.exists()
        assert not Membership.objects.exists()
        assert not FileInfo.objects.exists()

    def test_erase_skips_active_and_missing(self, store, alice):
        """Test active groups are never erased and missing ones are fine."""
        Group.objects.create(name='team-x', owner=alice)

        assert store.erase_groups(['team-x', 'ghost-group']) == 0
        assert Group.objects.filter(name='team-x').exists()

    def test_delete_file_info(self, store, alice):
        """Test deleting metadata by id."""
        group = Group.objects.create(name='team-x', owner=alice)
        file_info = FileInfo.objects.create(
            name='a.txt',
            owner=alice,
            group=group,
        )

        assert store.delete_file_info(file_info.pk) == 1
        assert store.delete_file_info(file_info.pk) == 0
