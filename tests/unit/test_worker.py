"""
Module: test_worker.py
Description: Unit tests for the scheduler entry points.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from trigger_relay import worker
from trigger_relay.processor.service import SweepSummary


class TestWorker:
    """Test cases for the Lambda handler and the local loop."""

    def test_lambda_handler_runs_one_sweep(self):
        processor = SimpleNamespace(run_sweep=AsyncMock(return_value=SweepSummary(triggers_processed=3)))

        with patch('trigger_relay.worker.create_processor', return_value=processor):
            result = worker.handler({'source': 'aws.events'}, SimpleNamespace(aws_request_id='req-1'))

        assert result['triggers_processed'] == 3
        assert result['errors'] == []
        processor.run_sweep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_run_forever_stops_after_max_sweeps(self):
        processor = SimpleNamespace(run_sweep=AsyncMock(return_value=SweepSummary()))

        await worker.run_forever(processor, interval_seconds=0, max_sweeps=3)

        assert processor.run_sweep.await_count == 3
