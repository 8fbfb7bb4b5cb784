"""URL routes of the sharing API."""

from django.urls import path

from server.apps.sharing import views

app_name = 'sharing'

urlpatterns = [
    # Users
    path('users/', views.users, name='users'),
    path('users/me/', views.current_user, name='current-user'),

    # Groups and memberships
    path('groups/', views.groups, name='groups'),
    path('groups/<str:group_name>/', views.group_detail, name='group-detail'),
    path(
        'groups/<str:group_name>/members/',
        views.members,
        name='members',
    ),
    path(
        'groups/<str:group_name>/members/<str:username>/',
        views.member_detail,
        name='member-detail',
    ),

    # Files
    path('groups/<str:group_name>/files/', views.files, name='files'),
    path(
        'groups/<str:group_name>/files/<int:file_id>/',
        views.file_detail,
        name='file-detail',
    ),
]
