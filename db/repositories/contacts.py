"""Contact repository — ownership checks."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Contact

logger = logging.getLogger(__name__)


async def get_owned(
    session: AsyncSession, contact_id: UUID, user_id: str
) -> Optional[Contact]:
    """Return the contact if it exists, is not deleted and belongs to user_id.

    Returns None for all three miss cases alike so callers cannot tell an
    unknown contact from someone else's.
    """
    result = await session.execute(
        select(Contact)
        .where(Contact.id == contact_id)
        .where(Contact.user_id == user_id)
        .where(Contact.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()
