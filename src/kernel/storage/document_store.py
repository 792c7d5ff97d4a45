"""
Customize transaction document store.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.models.customize_transaction import CustomizeTransactionPost, TransactionStatus
from src.kernel.storage.errors import StorageError
from src.logging_config import get_logger

logger = get_logger(__name__)


class TransactionDocumentStore:
    """Read and write transaction documents by UUID."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, transaction_uuid: uuid.UUID) -> Optional[CustomizeTransactionPost]:
        try:
            return await self.session.get(CustomizeTransactionPost, transaction_uuid)
        except SQLAlchemyError as exc:
            raise StorageError("Could not read transaction", key=str(transaction_uuid)) from exc

    async def write(
        self,
        transaction_uuid: uuid.UUID,
        *,
        payload: Dict[str, Any],
        status: TransactionStatus,
        author_id: Optional[uuid.UUID] = None,
        stylesheet: Optional[str] = None,
    ) -> CustomizeTransactionPost:
        """
        Create or replace a transaction document in a single flush.

        The payload replaces the stored one wholesale. Concurrent writers to
        the same UUID race; the last flush wins.

        Raises:
            StorageError: If the write fails
        """
        try:
            post = await self.session.get(CustomizeTransactionPost, transaction_uuid)
            if post is None:
                post = CustomizeTransactionPost(
                    id=transaction_uuid,
                    author_id=author_id,
                )
                self.session.add(post)
            post.payload = dict(payload)
            post.status = status
            if stylesheet:
                post.stylesheet = stylesheet
            if status == TransactionStatus.PUBLISH:
                post.published_at = datetime.now(timezone.utc)
            await self.session.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to write transaction document",
                extra={"transaction": str(transaction_uuid)},
                exc_info=True,
            )
            raise StorageError("Could not write transaction", key=str(transaction_uuid)) from exc
        return post
