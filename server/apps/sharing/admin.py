"""Django admin configuration for sharing app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.sharing.models import FileInfo, Group, Membership


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin[Group]):
    """Admin interface for Group model.

    Read-mostly: lifecycle changes go through the API so the blob area
    stays in sync.
    """

    list_display = [
        'name',
        'owner_id',
        'state',
        'member_count',
        'created_at',
    ]

    list_filter = [
        'state',
        'created_at',
    ]

    search_fields = [
        'name',
    ]

    readonly_fields = [
        'name',
        'owner',
        'state',
        'created_at',
        'updated_at',
    ]

    def member_count(self, obj: Group) -> int:
        """Count members of the group.

        Args:
            obj: Group instance.

        Returns:
            Number of memberships.
        """
        return obj.memberships.count()
    member_count.short_description = 'Members'  # type: ignore[attr-defined]


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin[Membership]):
    """Admin interface for Membership model."""

    list_display = [
        'group',
        'user_id',
        'created_at',
    ]

    list_filter = [
        'group__state',
    ]

    search_fields = [
        'group__name',
    ]

    readonly_fields = [
        'user',
        'group',
        'created_at',
        'updated_at',
    ]

    def get_queryset(self, request: HttpRequest) -> QuerySet[Membership]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('group')


@admin.register(FileInfo)
class FileInfoAdmin(admin.ModelAdmin[FileInfo]):
    """Admin interface for FileInfo model."""

    list_display = [
        'id',
        'name',
        'group',
        'owner_id',
        'created_at',
    ]

    list_filter = [
        'created_at',
    ]

    search_fields = [
        'name',
        'group__name',
    ]

    readonly_fields = [
        'name',
        'owner',
        'group',
        'created_at',
    ]

    def get_queryset(self, request: HttpRequest) -> QuerySet[FileInfo]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('group')
