"""
Module: metrics.py
Description: CloudWatch custom metrics publishing.

Publishes sweep metrics to CloudWatch for monitoring polling volume,
trigger failures, circuit-breaker trips and delivery retries.

Key Components:
- MetricsClient: CloudWatch metrics client
- put_metrics(): Publish a group of counters in one call
- Graceful error handling for metrics failures
- Structured logging for metric operations

Dependencies: boto3, typing, logger
Author: Trigger Relay Team
"""

from typing import Dict, Optional

import boto3

from trigger_relay.utils.logger import get_logger

logger = get_logger(__name__)


class MetricsClient:
    """CloudWatch metrics client."""

    def __init__(self, namespace: str = "TriggerRelay", region_name: Optional[str] = None):
        """
        Initialize metrics client.

        Args:
            namespace: CloudWatch metrics namespace
            region_name: Optional AWS region override
        """
        self.namespace = namespace
        self.cloudwatch = boto3.client('cloudwatch', region_name=region_name)

        logger.info(
            "Metrics client initialized",
            namespace=namespace
        )

    def put_metrics(
        self,
        values: Dict[str, float],
        unit: str = 'Count',
        dimensions: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Publish several metrics to CloudWatch in a single request.

        Failures are logged and never raised: metrics must not break a
        sweep.

        Args:
            values: Mapping of metric name to value
            unit: Metric unit (Count, Seconds, etc.)
            dimensions: Optional metric dimensions
        """
        if not values:
            return

        try:
            metric_data = []
            for metric_name, value in values.items():
                datum = {
                    'MetricName': metric_name,
                    'Value': float(value),
                    'Unit': unit
                }
                if dimensions:
                    datum['Dimensions'] = [
                        {'Name': k, 'Value': v}
                        for k, v in dimensions.items()
                    ]
                metric_data.append(datum)

            self.cloudwatch.put_metric_data(
                Namespace=self.namespace,
                MetricData=metric_data
            )

            logger.debug(
                "Metrics published to CloudWatch",
                metrics=values,
                unit=unit,
                dimensions=dimensions,
                namespace=self.namespace
            )

        except Exception as e:
            # Don't fail the sweep if metrics fail
            logger.warning(
                "Failed to publish metrics",
                metrics=values,
                error=str(e),
                namespace=self.namespace
            )
