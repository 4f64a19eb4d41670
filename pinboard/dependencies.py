"""
FastAPI dependencies that hand engine operations their collaborators.

Routes never touch the session directly: they receive a RelationStore bound
to the request's transaction, and an uploader for image bytes.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pinboard.clients.object_storage import upload_image
from pinboard.database import get_db
from pinboard.services.posts import Uploader
from pinboard.store import RelationStore, SqlRelationStore


async def get_store(db: AsyncSession = Depends(get_db)) -> RelationStore:
    return SqlRelationStore(db)


def get_uploader() -> Uploader:
    return upload_image
