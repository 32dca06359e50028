"""
Module: metrics.py
Description: CloudWatch counters for webhook intake and processing.

Every counter carries a Provider dimension (and Stage when configured)
so retry pressure and permanent failures can be alarmed per courier.

Key Components:
- MetricsClient: CloudWatch publisher; failures are logged, never raised
- WEBHOOKS_RECEIVED / WEBHOOKS_PROCESSED / WEBHOOK_RETRIES_SCHEDULED /
  WEBHOOKS_FAILED: Counter names emitted by the queue

Dependencies: boto3, botocore, typing, logger
Author: Courier Webhooks Team
"""

from typing import Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from courier_webhooks.utils.logger import get_logger

logger = get_logger(__name__)

WEBHOOKS_RECEIVED = "WebhooksReceived"
WEBHOOKS_PROCESSED = "WebhooksProcessed"
WEBHOOK_RETRIES_SCHEDULED = "WebhookRetriesScheduled"
WEBHOOKS_FAILED = "WebhooksFailed"


class MetricsClient:
    """
    CloudWatch counter publisher.

    Attributes:
        namespace: CloudWatch namespace
        stage: Optional deployment stage added as a dimension
    """

    def __init__(
        self,
        namespace: str = "CourierWebhooks",
        region_name: Optional[str] = None,
        stage: Optional[str] = None
    ):
        self.namespace = namespace
        self.stage = stage
        self.cloudwatch = boto3.client('cloudwatch', region_name=region_name)

        logger.info("Metrics client initialized", namespace=namespace, stage=stage)

    def _dimensions(self, provider: str) -> List[Dict[str, str]]:
        dimensions = [{'Name': 'Provider', 'Value': provider}]
        if self.stage:
            dimensions.append({'Name': 'Stage', 'Value': self.stage})
        return dimensions

    def count(self, metric_name: str, provider: str, value: float = 1.0) -> None:
        """
        Publish a counter for one provider.

        Args:
            metric_name: One of the counter names defined in this module
            provider: Provider value, e.g. 'doordash'
            value: Amount to add (default 1)
        """
        try:
            self.cloudwatch.put_metric_data(
                Namespace=self.namespace,
                MetricData=[{
                    'MetricName': metric_name,
                    'Value': value,
                    'Unit': 'Count',
                    'Dimensions': self._dimensions(provider)
                }]
            )
        except (BotoCoreError, ClientError) as e:
            # Metrics never fail webhook intake or processing
            logger.warning(
                "Failed to publish metric",
                metric_name=metric_name,
                provider=provider,
                error=str(e)
            )
            return

        logger.debug("Metric published", metric_name=metric_name, provider=provider, value=value)
