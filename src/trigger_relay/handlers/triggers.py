"""
Module: triggers.py
Description: Per-trigger statistics and event history.

Implements:
- GET /triggers/{trigger_id}/stats: Delivery statistics
- GET /triggers/{trigger_id}/events: Most recent events first

Dependencies: FastAPI, botocore, typing
Author: Trigger Relay Team
"""

from typing import List

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi import status as status_codes

from trigger_relay.config import settings
from trigger_relay.models.event import TriggerEvent, TriggerStats
from trigger_relay.storage.dynamodb import DynamoDBTriggerRepository
from trigger_relay.utils.logger import get_logger

router = APIRouter(prefix="/triggers", tags=["triggers"])
logger = get_logger(__name__)


def get_repository() -> DynamoDBTriggerRepository:
    """Dependency to get the trigger repository."""
    return DynamoDBTriggerRepository(
        triggers_table_name=settings.triggers_table_name,
        state_table_name=settings.trigger_state_table_name,
        events_table_name=settings.trigger_events_table_name,
        region_name=settings.aws_region
    )


async def _require_trigger(repository: DynamoDBTriggerRepository, trigger_id: str) -> None:
    if await repository.get_trigger(trigger_id) is None:
        raise HTTPException(
            status_code=status_codes.HTTP_404_NOT_FOUND,
            detail=f"Trigger {trigger_id} not found"
        )


@router.get("/{trigger_id}/stats", response_model=TriggerStats)
async def get_trigger_stats(
    trigger_id: str,
    repository: DynamoDBTriggerRepository = Depends(get_repository)
) -> TriggerStats:
    """
    Delivery statistics for a trigger.

    Raises:
        HTTPException: 404 if the trigger does not exist
        HTTPException: 500 if the database operation fails
    """
    try:
        await _require_trigger(repository, trigger_id)
        stats = await repository.get_stats_by_trigger_id(trigger_id)
    except ClientError as e:
        logger.error("Failed to load trigger stats", trigger_id=trigger_id, error=str(e))
        raise HTTPException(
            status_code=status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve trigger statistics"
        )

    logger.info("Trigger stats retrieved", trigger_id=trigger_id, total_events=stats.total_events)
    return stats


@router.get("/{trigger_id}/events", response_model=List[TriggerEvent])
async def list_trigger_events(
    trigger_id: str,
    limit: int = Query(default=50, ge=1, le=100, description="Maximum number of events"),
    repository: DynamoDBTriggerRepository = Depends(get_repository)
) -> List[TriggerEvent]:
    """
    Events of a trigger, most recent first.

    Raises:
        HTTPException: 404 if the trigger does not exist
        HTTPException: 500 if the database operation fails
    """
    try:
        await _require_trigger(repository, trigger_id)
        events = await repository.list_events_by_trigger(trigger_id, limit=limit)
    except ClientError as e:
        logger.error("Failed to list trigger events", trigger_id=trigger_id, error=str(e))
        raise HTTPException(
            status_code=status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve trigger events"
        )

    return events
