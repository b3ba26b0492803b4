"""Manual block service — create, update and delete host holds."""

import logging
import uuid
from datetime import date, datetime

from stayengine.availability.intervals import BLOCK_SOURCE_MANUAL, BlockRecord
from stayengine.errors import PermissionDeniedError, ValidationError
from stayengine.services.record_store import BlockDraft, RecordStore
from stayengine.services.unit_directory import UnitDirectory

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_LABEL = "Manual block"


def require_block_permission(can_manage_blocks: bool) -> None:
    """Raise unless the upstream permission check granted block management."""
    if not can_manage_blocks:
        raise PermissionDeniedError("Not allowed to manage calendar blocks")


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


async def create_manual_block(
    store: RecordStore,
    directory: UnitDirectory,
    unit_id: uuid.UUID,
    *,
    can_manage_blocks: bool,
    start_date: date | None = None,
    end_date: date | None = None,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
    label: str | None = None,
    notes: str | None = None,
    color: str | None = None,
    created_by: str | None = None,
) -> BlockRecord:
    """Hold an inclusive date range (or an instant range) on a unit."""
    require_block_permission(can_manage_blocks)
    await directory.get_unit(unit_id)

    draft = BlockDraft(
        unit_id=unit_id,
        source=BLOCK_SOURCE_MANUAL,
        label=_clean(label) or DEFAULT_BLOCK_LABEL,
        start_date=start_date,
        end_date=end_date,
        start_at=start_at,
        end_at=end_at,
        color=color,
        notes=_clean(notes),
        created_by=created_by,
    )
    block = await store.create_block(draft)
    logger.info("Created manual block %s on unit %s", block.id, unit_id)
    return block


async def update_manual_block(
    store: RecordStore,
    block_id: uuid.UUID,
    changes: dict,
    *,
    can_manage_blocks: bool,
) -> BlockRecord:
    """Edit notes, label or color. Blank strings clear notes and label."""
    require_block_permission(can_manage_blocks)
    updates: dict = {}
    for field in ("notes", "label"):
        if field in changes and changes[field] is not None:
            updates[field] = _clean(changes[field])
    if changes.get("color") is not None:
        updates["color"] = changes["color"]
    if not updates:
        raise ValidationError("No updates provided", code="no_updates")
    return await store.update_block(block_id, updates)


async def delete_manual_block(
    store: RecordStore,
    block_id: uuid.UUID,
    *,
    can_manage_blocks: bool,
) -> BlockRecord:
    """Delete a block by id. A missing id is an error, not a no-op."""
    require_block_permission(can_manage_blocks)
    deleted = await store.delete_block(block_id)
    logger.info("Deleted block %s from unit %s", deleted.id, deleted.unit_id)
    return deleted
