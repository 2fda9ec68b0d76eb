# doctalk/documents.py
"""
Owner-scoped access to stored documents.

Every query filters on the owner in the WHERE clause itself, so a record
belonging to someone else is simply not found.
"""
import logging
from typing import List, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from doctalk.errors import DocumentNotFound, PersistenceError
from doctalk.models import Document

logger = logging.getLogger(__name__)


class DocumentStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, doc: Document) -> Document:
        """Insert and commit one record; it stays committed whatever happens next."""
        try:
            self.session.add(doc)
            await self.session.commit()
            await self.session.refresh(doc)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("Failed to persist document %s (%s)", doc.id, doc.original_name)
            raise PersistenceError(f"Failed to save {doc.original_name}: {e}", filename=doc.original_name) from e
        return doc

    async def find_for_owner(self, doc_id: str, owner: str) -> Optional[Document]:
        stmt = select(Document).where(Document.id == doc_id, Document.owner == owner)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.exception("Failed to load document %s", doc_id)
            raise PersistenceError(str(e)) from e
        return result.scalar_one_or_none()

    async def get_for_owner(self, doc_id: str, owner: str) -> Document:
        doc = await self.find_for_owner(doc_id, owner)
        if doc is None:
            raise DocumentNotFound()
        return doc

    async def list_for_owner(self, owner: str) -> List[Document]:
        """Owner's documents, most recent first."""
        stmt = (
            select(Document)
            .where(Document.owner == owner)
            .order_by(Document.created_at.desc(), Document.id.desc())
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.exception("Failed to list documents for owner %s", owner)
            raise PersistenceError(str(e)) from e
        return list(result.scalars().all())

    async def delete_for_owner(self, doc_id: str, owner: str) -> str:
        """
        Delete the record only. The stored object is left in the bucket.
        """
        stmt = delete(Document).where(Document.id == doc_id, Document.owner == owner)
        try:
            result = await self.session.execute(stmt)
            if result.rowcount == 0:
                await self.session.rollback()
                raise DocumentNotFound()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("Failed to delete document %s", doc_id)
            raise PersistenceError(str(e)) from e
        logger.info("Deleted document %s for owner %s", doc_id, owner)
        return doc_id
