"""
Module: cron.py
Description: Scheduled sweep endpoint.

Implements GET /cron/process-triggers, called by an external scheduler.
One request runs one full sweep: due triggers, the retry sweep and
retention cleanup.

Key Components:
- process_triggers(): Sweep endpoint
- verify_cron_secret(): Bearer secret check (skipped when no secret is configured)
- get_processor(): Dependency injection for the trigger processor

Dependencies: FastAPI, hmac, typing
Author: Trigger Relay Team
"""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi import status as status_codes

from trigger_relay.config import settings
from trigger_relay.processor.service import SweepSummary, TriggerProcessor, create_processor
from trigger_relay.utils.logger import get_logger

router = APIRouter(prefix="/cron", tags=["cron"])
logger = get_logger(__name__)


def get_processor() -> TriggerProcessor:
    """
    Dependency to get the trigger processor.

    Returns:
        TriggerProcessor wired from global settings
    """
    return create_processor(settings)


def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    """
    Require 'Authorization: Bearer <CRON_SECRET>' when a secret is configured.

    Raises:
        HTTPException: 401 if the header is missing or wrong
    """
    if not settings.cron_secret:
        return

    expected = f"Bearer {settings.cron_secret}"
    if authorization is None or not hmac.compare_digest(authorization, expected):
        logger.warning("Rejected cron request with invalid secret", has_header=authorization is not None)
        raise HTTPException(
            status_code=status_codes.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )


@router.get(
    "/process-triggers",
    response_model=SweepSummary,
    dependencies=[Depends(verify_cron_secret)]
)
async def process_triggers(
    processor: TriggerProcessor = Depends(get_processor)
) -> SweepSummary:
    """
    Run one sweep.

    Returns:
        SweepSummary with processed/failed/disabled trigger counts and
        fired/retried/cleaned event counts

    Example:
        GET /cron/process-triggers
        Authorization: Bearer <CRON_SECRET>

        Response (200 OK):
        {
            "triggers_processed": 4,
            "triggers_failed": 1,
            "triggers_disabled": 0,
            "events_fired": 7,
            "events_retried": 2,
            "events_cleaned": 0,
            "errors": [],
            "duration_ms": 812.4
        }
    """
    logger.info("Cron sweep requested")
    return await processor.run_sweep()
