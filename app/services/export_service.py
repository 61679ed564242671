"""
Subscriber export and purge.

Exporting is read-only. Deleting the exported subscribers is a separate,
explicitly confirmed operation.
"""

import csv
import io

from sqlalchemy.ext.asyncio import AsyncSession

from app.db import atomic
from app.db_handlers import UserDBHandler
from app.exceptions import ValidationError
from app.services.user_service import normalize_email
from app.utils.logger import setup_logger

logger = setup_logger("export_service")

EXPORT_FIELDS = ["id", "name", "email", "phone"]

user_db_handler = UserDBHandler()


async def export_subscribed_csv(db: AsyncSession) -> tuple[str, int]:
    """Return the subscribed users as CSV text together with the row count."""
    users = await user_db_handler.list_users(subscribed=True, db=db)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_FIELDS)
    for user in users:
        writer.writerow([str(user.id), user.name, user.email, user.phone])

    logger.info(f"Exported {len(users)} subscribed users")
    return output.getvalue(), len(users)


async def purge_subscribed(
    db: AsyncSession, confirm: bool, emails: list[str] | None = None
) -> int:
    """Delete subscribed users (all, or only the given emails). Irreversible."""
    if not confirm:
        raise ValidationError("Set confirm to true to delete subscribed users")

    if emails is not None:
        emails = [normalize_email(e) for e in emails if normalize_email(e)]
        if not emails:
            return 0

    async with atomic(db):
        deleted = await user_db_handler.delete_subscribed(emails, db=db)

    logger.warning(f"Purged {deleted} subscribed users")
    return deleted
