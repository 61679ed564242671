"""Task catalog operations."""

from decimal import Decimal, InvalidOperation

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import atomic
from app.db_handlers import TaskDBHandler
from app.exceptions import ValidationError
from app.models import Task
from app.services.storage import TASK_FILES, UploadStorage
from app.utils.logger import setup_logger

logger = setup_logger("task_service")

task_db_handler = TaskDBHandler()

CENTS = Decimal("0.01")
MAX_PRICE = Decimal("9999999999.99")


def parse_price(raw: str | None) -> Decimal:
    """Parse a form price into cents precision, within what Numeric(12, 2) holds."""
    try:
        price = Decimal(str(raw).strip())
        if not price.is_finite() or price <= 0:
            raise ValidationError("Price must be a positive number")
        if price > MAX_PRICE:
            raise ValidationError(f"Price must not exceed {MAX_PRICE}")
        price = price.quantize(CENTS)
    except (InvalidOperation, ValueError) as e:
        raise ValidationError("Price must be a number") from e
    # Rounding can push a value to zero or just past the column limit.
    if price <= 0 or price > MAX_PRICE:
        raise ValidationError(f"Price must be between {CENTS} and {MAX_PRICE}")
    return price


async def create_task(
    db: AsyncSession,
    title: str | None,
    description: str | None,
    price: str | None,
    upload: UploadFile | None,
    storage: UploadStorage,
) -> Task:
    title = (title or "").strip()
    description = (description or "").strip()
    if not title or not description or not price or upload is None or not upload.filename:
        raise ValidationError("All fields including file are required")
    amount = parse_price(price)

    stored_name = await storage.save(upload, TASK_FILES)
    try:
        async with atomic(db):
            task = await task_db_handler.create(
                {
                    "title": title,
                    "description": description,
                    "price": amount,
                    "file_path": stored_name,
                },
                db=db,
            )
    except Exception:
        storage.delete(TASK_FILES, stored_name)
        raise

    logger.info(f"Created task {task.id} '{title}' priced {amount}")
    return task


async def list_tasks(db: AsyncSession) -> list[Task]:
    return await task_db_handler.list_tasks(db=db)
