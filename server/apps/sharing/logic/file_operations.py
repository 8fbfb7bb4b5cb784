"""Business logic for file operations inside a group."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, final

from django.core.files.base import File as DjangoFile

from server.apps.sharing.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    SharingError,
    StoreFailureError,
)
from server.apps.sharing.models import FileInfo, GroupState

if TYPE_CHECKING:
    from server.apps.sharing.infrastructure.blob_area import BlobArea
    from server.apps.sharing.infrastructure.membership_store import (
        MembershipStore,
    )

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True)
class FileDownload:
    """Metadata and an open binary stream of a downloaded file."""

    file_info: FileInfo
    stream: DjangoFile

    @property
    def filename(self) -> str:
        """Original name given by the uploader."""
        return self.file_info.name


@final
class FileOperations:
    """Upload, download, delete and list files of a group.

    Every operation first checks that the group exists, is active and
    that the caller is a member. The database commit is the durability
    boundary: blob writes and deletes after it are compensated on a
    best-effort basis only.
    """

    def __init__(self, store: 'MembershipStore', blob_area: 'BlobArea') -> None:
        """Initialize with explicit collaborators.

        Args:
            store: Membership store handle.
            blob_area: Blob area storage backend.
        """
        self._store = store
        self._blob_area = blob_area

    def upload(
        self,
        group_name: str,
        caller_id: int,
        filename: str,
        content: BinaryIO | DjangoFile | bytes,
    ) -> FileInfo:
        """Store a new file in a group.

        Transaction safety: create the DB record first (its id is the
        blob name), commit, then write the blob. If writing fails, the
        record is deleted again (rollback). The group is checked once more
        right before the write, so a group erased and re-created in between
        never receives the blob; a change after that check is not detected.

        Args:
            group_name: Target group.
            caller_id: Primary key of the uploading member.
            filename: Display name of the file.
            content: File content.

        Returns:
            Created FileInfo instance.

        Raises:
            NotFoundError: If the group does not exist.
            ConflictError: If the group is inactive.
            PermissionDeniedError: If the caller is not a member.
            StoreFailureError: If the transaction or the blob write failed.
        """
        # Step 1: Create database record (in transaction)
        with self._store.transaction():
            group = self._store.require_member_of_active_group(
                caller_id,
                group_name,
            )
            file_info = self._store.file_infos().create(
                name=filename,
                owner_id=caller_id,
                group=group,
            )
        logger.info(
            'File record created: %s (ID: %d) in group [%s]',
            filename,
            file_info.pk,
            group_name,
        )

        # Step 2: Make sure the directory still belongs to the same group
        self._require_unchanged_group(file_info, group_name)

        # Step 3: Write content to the blob area
        try:
            size = self._blob_area.write_blob(group_name, file_info.pk, content)
        except (OSError, ValueError) as error:
            logger.exception(
                'Blob write failed, rolling back file record: ID=%d',
                file_info.pk,
            )
            self._rollback_file_info(file_info)
            raise StoreFailureError(
                f'Could not save the file in group [{group_name}]',
            ) from error

        logger.info('File uploaded: ID=%d, %d bytes', file_info.pk, size)
        return file_info

    def _require_unchanged_group(
        self,
        file_info: FileInfo,
        group_name: str,
    ) -> None:
        """Check that the group of a committed record is still active.

        Args:
            file_info: Committed file record.
            group_name: Name the caller uploaded to.

        Raises:
            ConflictError: If the group was deactivated or replaced.
            StoreFailureError: If the query failed.
        """
        with self._store.transaction():
            unchanged = self._store.groups().filter(
                pk=file_info.group_id,
                name=group_name,
                state=GroupState.ACTIVE,
            ).exists()
        if unchanged:
            return

        logger.warning(
            'Group [%s] changed during upload, dropping file record: ID=%d',
            group_name,
            file_info.pk,
        )
        self._rollback_file_info(file_info)
        raise ConflictError(f'Group [{group_name}] is being deleted')

    def _rollback_file_info(self, file_info: FileInfo) -> None:
        """Delete a file record whose blob could not be written.

        This is a best-effort operation - if deletion fails, the record
        stays behind without content and downloads answer NotFound.

        Args:
            file_info: Record to delete.
        """
        try:
            self._store.delete_file_info(file_info.pk)
        except SharingError:
            logger.exception(
                'Data inconsistency: dangling file record without content '
                '(group ID: %d, file ID: %d)',
                file_info.group_id,
                file_info.pk,
            )

    def download(
        self,
        group_name: str,
        caller_id: int,
        file_id: int,
    ) -> FileDownload:
        """Open a file of a group for reading.

        Args:
            group_name: Group the file belongs to.
            caller_id: Primary key of the requesting member.
            file_id: Primary key of the file.

        Returns:
            FileDownload with an open stream; the caller closes it.

        Raises:
            NotFoundError: If the group, the file or its content is missing.
            ConflictError: If the group is inactive.
            PermissionDeniedError: If the caller is not a member.
            StoreFailureError: If the query failed.
        """
        file_info = self.get_file_info(group_name, caller_id, file_id)

        try:
            stream = self._blob_area.open_blob(group_name, file_info.pk)
        except FileNotFoundError as error:
            logger.error(  # noqa: TRY400
                'Data inconsistency: file record without content '
                '(group: %s, file ID: %d)',
                group_name,
                file_info.pk,
            )
            raise NotFoundError(
                f'Content of file [{file_id}] is not available',
            ) from error
        except OSError as error:
            logger.exception('Failed to open blob: %s/%d', group_name, file_id)
            raise StoreFailureError from error

        return FileDownload(file_info=file_info, stream=stream)

    def get_file_info(
        self,
        group_name: str,
        caller_id: int,
        file_id: int,
    ) -> FileInfo:
        """Get metadata of a file in a group.

        Args:
            group_name: Group the file belongs to.
            caller_id: Primary key of the requesting member.
            file_id: Primary key of the file.

        Returns:
            FileInfo instance.

        Raises:
            NotFoundError: If the group or the file does not exist.
            ConflictError: If the group is inactive.
            PermissionDeniedError: If the caller is not a member.
            StoreFailureError: If the query failed.
        """
        with self._store.transaction():
            group = self._store.require_member_of_active_group(
                caller_id,
                group_name,
            )
            return self._store.get_file_info(group, file_id)

    def delete(self, group_name: str, caller_id: int, file_id: int) -> None:
        """Delete a file from a group.

        Transaction safety: delete the DB record first, then the blob.
        A blob that cannot be deleted is logged and left behind; its id
        is never reused so it cannot resurface.

        Args:
            group_name: Group the file belongs to.
            caller_id: Primary key of the caller, file owner or group owner.
            file_id: Primary key of the file.

        Raises:
            NotFoundError: If the group or the file does not exist.
            ConflictError: If the group is inactive.
            PermissionDeniedError: If the caller owns neither file nor group.
            StoreFailureError: If the transaction failed.
        """
        with self._store.transaction():
            group = self._store.require_member_of_active_group(
                caller_id,
                group_name,
            )
            file_info = self._store.get_file_info(group, file_id)
            if caller_id not in {file_info.owner_id, group.owner_id}:
                raise PermissionDeniedError(
                    'Only the owner of the file or the group owner can '
                    'remove files from the group',
                )
            deleted, _ = self._store.file_infos().filter(pk=file_info.pk).delete()
            if not deleted:
                raise NotFoundError(f'File [{file_id}] does not exist')

        logger.info('File record deleted: ID=%d', file_id)

        try:
            self._blob_area.delete_blob(group_name, file_id)
        except OSError:
            # Log but don't raise - the record is gone, the blob is orphaned
            logger.exception(
                'Failed to delete blob (orphaned): %s/%d',
                group_name,
                file_id,
            )

    def list_files(self, group_name: str, caller_id: int) -> list[FileInfo]:
        """List files of a group.

        Args:
            group_name: Group to list.
            caller_id: Primary key of the requesting member.

        Returns:
            FileInfo instances ordered by id.

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
            return list(self._store.file_infos().filter(group=group))
