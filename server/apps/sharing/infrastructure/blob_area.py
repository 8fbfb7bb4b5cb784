"""Filesystem storage backend for group files."""

import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Final, final

from django.core.files.base import File as DjangoFile
from django.core.files.storage import FileSystemStorage

logger = logging.getLogger(__name__)

_COPY_BUFFER_SIZE: Final = 64 * 1024


@final
class BlobArea(FileSystemStorage):
    """Blob area: one flat directory per group, one file per stored object.

    Layout is {location}/{group_name}/{file_id} with no extension and no
    nested directories. Extends Django's FileSystemStorage with:
    - Group directory lifecycle (create, recursive remove)
    - Exclusive blob writes that never create the group directory
    - Enhanced error logging
    """

    def group_path(self, group_name: str) -> Path:
        """Get absolute path of a group directory.

        Args:
            group_name: Name of the group.

        Returns:
            Path inside the blob area root.

        Raises:
            SuspiciousFileOperation: If the name escapes the root.
        """
        return Path(self.path(group_name))

    def blob_path(self, group_name: str, file_id: int) -> Path:
        """Get absolute path of a stored object.

        Args:
            group_name: Name of the owning group.
            file_id: Database id of the file.

        Returns:
            Path inside the group directory.
        """
        return Path(self.path(f'{group_name}/{file_id}'))

    def ensure_root(self) -> None:
        """Create the blob area root if it does not exist yet."""
        Path(self.location).mkdir(parents=True, exist_ok=True)

    def create_group_dir(self, group_name: str) -> None:
        """Create the directory of a new group.

        Args:
            group_name: Name of the group.

        Raises:
            FileExistsError: If the directory already exists.
            OSError: If the directory cannot be created.
        """
        self.ensure_root()
        group_dir = self.group_path(group_name)
        try:
            group_dir.mkdir(mode=self.directory_permissions_mode or 0o777)
        except FileExistsError:
            logger.warning('Group directory already exists: %s', group_dir)
            raise
        except OSError:
            logger.exception('Failed to create group directory: %s', group_dir)
            raise
        logger.info('Created group directory: %s', group_dir)

    def remove_group_dir(self, group_name: str) -> bool:
        """Recursively remove a group directory.

        A directory that is already gone counts as success.

        Args:
            group_name: Name of the group.

        Returns:
            True if something was removed, False if it was already absent.

        Raises:
            OSError: If removal fails.
        """
        group_dir = self.group_path(group_name)
        try:
            shutil.rmtree(group_dir)
        except FileNotFoundError:
            logger.debug('Group directory already absent: %s', group_dir)
            return False
        except OSError:
            logger.exception('Failed to remove group directory: %s', group_dir)
            raise
        logger.info('Removed group directory: %s', group_dir)
        return True

    def rollback_group_dir(self, group_name: str) -> None:
        """Remove a group directory after a failed DB transaction.

        This is a best-effort operation - if removal fails, the error
        is logged but not raised. An orphaned directory keeps its name
        reserved until an operator removes it.

        Args:
            group_name: Name of the group.
        """
        try:
            logger.warning('Rolling back group directory: %s', group_name)
            self.remove_group_dir(group_name)
        except OSError:
            logger.exception(
                'Failed to roll back group directory (orphaned): %s',
                group_name,
            )

    def group_dir_exists(self, group_name: str) -> bool:
        """Check whether a group directory exists.

        Args:
            group_name: Name of the group.

        Returns:
            True if the directory exists.
        """
        return self.group_path(group_name).is_dir()

    def list_group_dirs(self) -> list[str]:
        """List names of all group directories.

        Returns:
            Sorted directory names, empty if the root does not exist.
        """
        root = Path(self.location)
        if not root.is_dir():
            return []
        return sorted(entry.name for entry in root.iterdir() if entry.is_dir())

    def write_blob(
        self,
        group_name: str,
        file_id: int,
        content: BinaryIO | DjangoFile | bytes,
    ) -> int:
        """Write content of a file into its group directory.

        Never creates the group directory and never overwrites an
        existing blob.

        Args:
            group_name: Name of the owning group.
            file_id: Database id of the file.
            content: Bytes or a binary file-like object.

        Returns:
            Number of bytes written.

        Raises:
            OSError: If the group directory is missing or the write fails.
        """
        target = self.blob_path(group_name, file_id)
        logger.info('Writing blob: %s', target)
        try:
            with target.open('xb') as blob:
                if isinstance(content, bytes):
                    blob.write(content)
                else:
                    if hasattr(content, 'seek'):
                        content.seek(0)
                    shutil.copyfileobj(content, blob, _COPY_BUFFER_SIZE)
                written = blob.tell()
        except OSError:
            logger.exception('Failed to write blob: %s', target)
            raise
        if self.file_permissions_mode is not None:
            target.chmod(self.file_permissions_mode)
        return written

    def open_blob(self, group_name: str, file_id: int) -> DjangoFile:
        """Open a stored object for reading.

        Args:
            group_name: Name of the owning group.
            file_id: Database id of the file.

        Returns:
            Django File opened in binary mode. Caller closes it.

        Raises:
            FileNotFoundError: If the blob does not exist.
        """
        return self.open(f'{group_name}/{file_id}', 'rb')

    def blob_exists(self, group_name: str, file_id: int) -> bool:
        """Check whether a stored object exists.

        Args:
            group_name: Name of the owning group.
            file_id: Database id of the file.

        Returns:
            True if the blob exists.
        """
        return self.blob_path(group_name, file_id).is_file()

    def delete_blob(self, group_name: str, file_id: int) -> None:
        """Delete a stored object.

        Missing blobs are ignored, like FileSystemStorage.delete does.

        Args:
            group_name: Name of the owning group.
            file_id: Database id of the file.

        Raises:
            OSError: If deletion fails.
        """
        name = f'{group_name}/{file_id}'
        try:
            self.delete(name)
        except OSError:
            logger.exception('Failed to delete blob: %s', name)
            raise
        logger.info('Deleted blob: %s', name)
