"""
Bucket resolution.

Maps human-readable bucket names to bucket ids using the cache kept
in the session, refreshing it from b2_list_buckets on a miss.
"""
from typing import List

from .api import AsyncAPIClient
from .exceptions import BucketNotFound
from .logging import get_logger
from .models import Bucket


class BucketService:
    """Resolves bucket names to ids through the session's bucket cache."""

    def __init__(self, client: AsyncAPIClient):
        self._client = client
        self._logger = get_logger('b2py.buckets')

    @property
    def cache(self):
        return self._client.session.buckets

    async def refresh(self) -> List[Bucket]:
        """
        Fetch the bucket list and update the cache.

        Returns:
            Buckets reported by the service
        """
        buckets = await self._client.list_buckets()
        for bucket in buckets:
            self.cache[bucket.bucket_name] = bucket.bucket_id
        self._logger.debug(f"Bucket cache refreshed: {len(buckets)} buckets")
        return buckets

    async def resolve(self, name: str) -> str:
        """
        Return the id of a bucket.

        The service is only asked when the name is not cached, in case
        the bucket was created since the last refresh.

        Raises:
            BucketNotFound: If the bucket does not exist
        """
        if name in self.cache:
            return self.cache[name]

        await self.refresh()

        if name not in self.cache:
            raise BucketNotFound(name)
        return self.cache[name]
