"""
Module: worker.py
Description: Scheduler entry points.

- handler(): AWS Lambda entry point for a scheduled (EventBridge) event;
  runs one sweep and returns its summary
- run_forever(): Local periodic loop running one sweep per interval

Dependencies: asyncio, typing
Author: Trigger Relay Team
"""

import asyncio
from typing import Any, Dict, Optional

from trigger_relay.config import settings
from trigger_relay.processor.service import TriggerProcessor, create_processor
from trigger_relay.utils.logger import get_logger

logger = get_logger(__name__)


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for the scheduled sweep.

    Args:
        event: Scheduled event payload (unused beyond logging)
        context: Lambda context

    Returns:
        The sweep summary as a JSON-serializable dict
    """
    logger.info(
        "Scheduled sweep started",
        source=event.get('source') if isinstance(event, dict) else None,
        request_id=getattr(context, 'aws_request_id', None)
    )
    summary = asyncio.run(create_processor(settings).run_sweep())
    return summary.model_dump(mode='json')


async def run_forever(
    processor: Optional[TriggerProcessor] = None,
    interval_seconds: Optional[int] = None,
    max_sweeps: Optional[int] = None
) -> None:
    """
    Run sweeps back to back, one per interval.

    Args:
        processor: Processor to drive (built from settings when omitted)
        interval_seconds: Time between sweep starts (poll interval by default)
        max_sweeps: Stop after this many sweeps; run until cancelled when None
    """
    processor = processor or create_processor(settings)
    interval = interval_seconds if interval_seconds is not None else settings.poll_interval_seconds

    logger.info("Scheduler loop started", interval_seconds=interval)
    sweeps = 0
    while max_sweeps is None or sweeps < max_sweeps:
        loop_started = asyncio.get_running_loop().time()
        await processor.run_sweep()
        sweeps += 1

        if max_sweeps is not None and sweeps >= max_sweeps:
            break
        elapsed = asyncio.get_running_loop().time() - loop_started
        await asyncio.sleep(max(0.0, interval - elapsed))

    logger.info("Scheduler loop stopped", sweeps=sweeps)
