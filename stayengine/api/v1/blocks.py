"""Manual block and channel import API routes.

Every mutation requires the ``X-Can-Manage-Blocks`` header set by the
upstream permission layer.
"""

import uuid

import httpx
from fastapi import APIRouter, Depends, status

from stayengine.api.deps import can_manage_blocks, get_http_client, get_record_store, get_unit_directory
from stayengine.schemas.block import (
    BlockCreate,
    BlockResponse,
    BlockUpdate,
    ChannelImportRequest,
    ChannelImportResponse,
    MessageResponse,
)
from stayengine.services.block_service import (
    create_manual_block,
    delete_manual_block,
    update_manual_block,
)
from stayengine.services.channel_import import import_channel_feed
from stayengine.services.record_store import RecordStore
from stayengine.services.unit_directory import UnitDirectory

router = APIRouter(prefix="/api/v1", tags=["blocks"])


@router.post(
    "/units/{unit_id}/blocks",
    response_model=BlockResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Block dates on a unit",
)
async def create_block(
    unit_id: uuid.UUID,
    body: BlockCreate,
    store: RecordStore = Depends(get_record_store),
    directory: UnitDirectory = Depends(get_unit_directory),
    allowed: bool = Depends(can_manage_blocks),
) -> BlockResponse:
    block = await create_manual_block(
        store,
        directory,
        unit_id,
        can_manage_blocks=allowed,
        **body.model_dump(),
    )
    return BlockResponse.model_validate(block)


@router.patch(
    "/blocks/{block_id}",
    response_model=BlockResponse,
    summary="Edit a block's label, notes or color",
)
async def update_block(
    block_id: uuid.UUID,
    body: BlockUpdate,
    store: RecordStore = Depends(get_record_store),
    allowed: bool = Depends(can_manage_blocks),
) -> BlockResponse:
    block = await update_manual_block(
        store,
        block_id,
        body.model_dump(exclude_unset=True),
        can_manage_blocks=allowed,
    )
    return BlockResponse.model_validate(block)


@router.delete(
    "/blocks/{block_id}",
    response_model=MessageResponse,
    summary="Delete a block",
)
async def delete_block(
    block_id: uuid.UUID,
    store: RecordStore = Depends(get_record_store),
    allowed: bool = Depends(can_manage_blocks),
) -> MessageResponse:
    await delete_manual_block(store, block_id, can_manage_blocks=allowed)
    return MessageResponse(message="Block deleted")


@router.post(
    "/units/{unit_id}/channel-imports",
    response_model=ChannelImportResponse,
    summary="Import a channel's iCal feed as blocks",
)
async def import_channel_calendar(
    unit_id: uuid.UUID,
    body: ChannelImportRequest,
    store: RecordStore = Depends(get_record_store),
    directory: UnitDirectory = Depends(get_unit_directory),
    client: httpx.AsyncClient = Depends(get_http_client),
    allowed: bool = Depends(can_manage_blocks),
) -> ChannelImportResponse:
    """Replace the unit's blocks for ``source`` with the feed's current events."""
    imported = await import_channel_feed(
        store,
        directory,
        client,
        unit_id,
        str(body.url),
        body.source,
        can_manage_blocks=allowed,
    )
    return ChannelImportResponse(unit_id=unit_id, source=body.source, imported=imported)
