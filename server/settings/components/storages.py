"""Django storage configuration.

User content lives in the blob area: one directory per sharing group,
one file per stored object named by its database id.
"""

from typing import Any, Final

from server.settings.components import BASE_DIR, config

# Storage configuration dictionary
# Uses the blob area for group files, local storage for static files
STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'blobs': {
        'BACKEND': 'server.apps.sharing.infrastructure.blob_area.BlobArea',
        'OPTIONS': {
            'location': config(
                'SHARING_BLOB_ROOT',
                default=str(BASE_DIR.joinpath('var', 'groups')),
            ),
            'directory_permissions_mode': 0o755,
            'file_permissions_mode': 0o644,
        },
    },
    'staticfiles': {
        # Keep static files separate from group files
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}
