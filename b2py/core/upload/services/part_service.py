"""
Part upload service.

Handles b2_upload_part requests for one large-file session.
"""
from ...api.executor import ApiResponse
from ...logging import get_logger
from ...session import SessionData
from ..hashing import hash_bytes
from ..models import PartDescriptor, PendingUploadSession

logger = get_logger('b2py.upload.part')


class PartUploadOperation:
    """
    One b2_upload_part request.

    The first attempt uses the session's current part URL lease. A
    retry means the lease's token was rejected, so a fresh one is
    leased before sending again.
    """

    def __init__(self, api_client, pending: PendingUploadSession, part_number: int, data: bytes, sha1: str):
        self._api = api_client
        self._pending = pending
        self.part_number = part_number
        self.data = data
        self.sha1 = sha1
        self.attempts = 0

    async def attempt(self, session: SessionData) -> ApiResponse:
        self.attempts += 1
        if self.attempts > 1 or self._pending.target is None:
            self._pending.target = await self._api.get_upload_part_url(self._pending.file_id)
            logger.debug(f"Leased new part URL for part {self.part_number}")

        return await self._api.upload_part(
            self._pending.target,
            part_number=self.part_number,
            content_length=len(self.data),
            sha1=self.sha1,
            body=self.data
        )

    def __repr__(self) -> str:
        return f"PartUploadOperation({self._pending.file_name}#{self.part_number})"


class PartUploader:
    """Uploads parts of a large file and records their descriptors."""

    def __init__(self, api_client, pending: PendingUploadSession):
        self._api = api_client
        self._pending = pending

    async def upload_part(self, part_number: int, offset: int, data: bytes) -> PartDescriptor:
        """
        Hash and upload one part.

        Args:
            part_number: 1-based part number
            offset: Where the part starts in the file
            data: The bytes actually read for this part

        Returns:
            The recorded PartDescriptor
        """
        sha1 = hash_bytes(data)
        operation = PartUploadOperation(self._api, self._pending, part_number, data, sha1)
        await self._api.executor.execute(operation)

        part = PartDescriptor(part_number=part_number, offset=offset, length=len(data), sha1=sha1)
        self._pending.record(part)
        logger.debug(f"Part {part_number} uploaded: {len(data)} bytes, sha1 {sha1}")
        return part
