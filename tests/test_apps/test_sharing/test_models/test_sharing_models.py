"""Tests for sharing models."""

import pytest
from django.db import IntegrityError

from server.apps.sharing.models import (
    FileInfo,
    Group,
    GroupState,
    Membership,
    can_transition,
)


class TestGroupLifecycle:
    """Tests for allowed group state transitions."""

    @pytest.mark.parametrize(('current', 'target'), [
        (GroupState.ACTIVE, GroupState.INACTIVE),
        (GroupState.INACTIVE, GroupState.ERASED),
    ])
    def test_forward_transitions_allowed(self, current, target):
        """Test the lifecycle only moves forward one step at a time."""
        assert can_transition(current, target)

    @pytest.mark.parametrize(('current', 'target'), [
        (GroupState.INACTIVE, GroupState.ACTIVE),
        (GroupState.ERASED, GroupState.ACTIVE),
        (GroupState.ERASED, GroupState.INACTIVE),
        (GroupState.ACTIVE, GroupState.ERASED),
        (GroupState.ACTIVE, GroupState.ACTIVE),
    ])
    def test_other_transitions_rejected(self, current, target):
        """Test nothing leads back to ACTIVE and no step is skipped."""
        assert not can_transition(current, target)


@pytest.mark.django_db
class TestGroupModel:
    """Tests for Group model."""

    def test_defaults_to_active(self, alice):
        """Test new groups start active."""
        group = Group.objects.create(name='team-x', owner=alice)

        assert group.state == GroupState.ACTIVE
        assert group.is_active
        assert str(group) == 'team-x (active)'

    def test_name_unique_across_states(self, alice):
        """Test an inactive group still reserves its name."""
        Group.objects.create(
            name='team-x',
            owner=alice,
            state=GroupState.INACTIVE,
        )

        with pytest.raises(IntegrityError):
            Group.objects.create(name='team-x', owner=alice)

    def test_erased_state_not_storable(self, alice):
        """Test ERASED is represented by row absence only."""
        with pytest.raises(IntegrityError):
            Group.objects.create(
                name='team-x',
                owner=alice,
                state=GroupState.ERASED,
            )

    def test_owner_deletion_keeps_group(self, alice):
        """Test deleting the owner row leaves the group untouched."""
        group = Group.objects.create(name='team-x', owner=alice)
        owner_id = alice.pk

        alice.delete()

        group.refresh_from_db()
        assert group.owner_id == owner_id


@pytest.mark.django_db
class TestMembershipModel:
    """Tests for Membership model."""

    def test_duplicate_membership_rejected(self, alice, bob):
        """Test a user joins a group at most once."""
        group = Group.objects.create(name='team-x', owner=alice)
        Membership.objects.create(user=bob, group=group)

        with pytest.raises(IntegrityError):
            Membership.objects.create(user=bob, group=group)

    def test_group_delete_cascades(self, alice, bob):
        """Test memberships and file records go with their group row."""
        group = Group.objects.create(name='team-x', owner=alice)
        Membership.objects.create(user=bob, group=group)
        FileInfo.objects.create(name='a.txt', owner=bob, group=group)

        group.delete()

        assert not Membership.objects.exists()
        assert not FileInfo.objects.exists()


@pytest.mark.django_db
class TestFileInfoModel:
    """Tests for FileInfo model."""

    def test_blob_name_is_primary_key(self, alice):
        """Test the blob name on disk is the record id."""
        group = Group.objects.create(name='team-x', owner=alice)
        file_info = FileInfo.objects.create(
            name='report.pdf',
            owner=alice,
            group=group,
        )

        assert file_info.blob_name == str(file_info.pk)
        assert str(file_info) == f'{group.pk}/{file_info.pk}: report.pdf'
