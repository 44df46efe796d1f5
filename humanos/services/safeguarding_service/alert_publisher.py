"""Safeguarding alert publisher.

Alerts go to a Kinesis stream consumed by the human safeguarding team's
tooling, so notification keeps working even if the coach service is
degraded. Publishing is best-effort: a failure never changes the reply
the student receives, it is logged at CRITICAL for manual follow-up.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

ESCALATION_EVENT = "safeguarding.escalation"
EMERGENCY_EVENT = "safeguarding.emergency"


@dataclass(frozen=True)
class SafeguardingAlert:
    """Immutable alert for the human safeguarding team.

    content is the student's message truncated for transport. When the
    trauma flag could not be persisted, flag_persisted is False and flag
    carries the full record so it is not lost.
    """
    event_id: str
    student_id: str
    student_id_hash: str
    flag_id: str
    severity: int
    category: str
    content: str
    response: str
    event_type: str = ESCALATION_EVENT
    urgent: bool = False
    flag_persisted: bool = True
    flag: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_kinesis_payload(self) -> Dict[str, Any]:
        """Convert to Kinesis record payload."""
        data = {
            "student_id": self.student_id,
            "student_id_hash": self.student_id_hash,
            "flag_id": self.flag_id,
            "severity": self.severity,
            "category": self.category,
            "content": self.content,
            "urgent": self.urgent,
            "response": self.response,
            "flag_persisted": self.flag_persisted,
        }
        if self.flag is not None:
            data["flag"] = self.flag

        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "source": "safeguarding-service",
            "data": data,
        }


class SafeguardingAlertPublisher:
    """Publishes safeguarding alerts to Kinesis.

    Failure Handling:
        - publish() never raises
        - Failures and the unavailable-client case are logged at CRITICAL
          with the payload, for manual processing
    """

    def __init__(
        self,
        stream_name: str = "humanos-safeguarding-alerts",
        enabled: bool = True,
        region: Optional[str] = None,
    ):
        """Initialize publisher.

        Args:
            stream_name: Kinesis stream name
            enabled: Whether publishing is enabled (disable for local dev)
            region: AWS region (defaults to AWS_REGION env var)
        """
        self.stream_name = stream_name
        self.enabled = enabled
        self.region = region or os.getenv("AWS_REGION", "us-east-1")
        self._kinesis_client = None

        logger.info(
            "SAFEGUARDING_PUBLISHER_INITIALIZED",
            extra={
                "stream_name": stream_name,
                "enabled": enabled,
                "region": self.region,
            }
        )

    @property
    def kinesis_client(self):
        """Lazy initialization of Kinesis client."""
        if self._kinesis_client is None and self.enabled:
            try:
                import boto3
                self._kinesis_client = boto3.client(
                    "kinesis",
                    region_name=self.region,
                )
            except Exception as e:
                logger.error(
                    "KINESIS_CLIENT_INIT_FAILED",
                    extra={"error": str(e)}
                )
        return self._kinesis_client

    def publish(self, alert: SafeguardingAlert) -> bool:
        """Publish one alert.

        Args:
            alert: Alert to deliver

        Returns:
            True if Kinesis accepted the record, False otherwise
        """
        payload = alert.to_kinesis_payload()

        if not self.enabled:
            logger.info(
                "SAFEGUARDING_ALERT_SKIPPED",
                extra={
                    "event_id": alert.event_id,
                    "event_type": alert.event_type,
                    "reason": "publishing_disabled",
                }
            )
            return False

        try:
            if self.kinesis_client is None:
                logger.critical(
                    "SAFEGUARDING_ALERT_FALLBACK_LOG",
                    extra={
                        "event_id": alert.event_id,
                        "payload": json.dumps(payload),
                        "reason": "kinesis_client_unavailable",
                        "action": "MANUAL_PROCESSING_REQUIRED",
                    }
                )
                return False

            response = self.kinesis_client.put_record(
                StreamName=self.stream_name,
                Data=json.dumps(payload),
                PartitionKey=alert.student_id_hash,  # Same student, same shard
            )

            logger.critical(
                "SAFEGUARDING_ALERT_PUBLISHED",
                extra={
                    "event_id": alert.event_id,
                    "event_type": alert.event_type,
                    "student_id_hash": alert.student_id_hash,
                    "severity": alert.severity,
                    "shard_id": response.get("ShardId"),
                    "sequence_number": response.get("SequenceNumber"),
                }
            )
            return True

        except Exception as e:
            logger.critical(
                "SAFEGUARDING_ALERT_PUBLISH_FAILED",
                extra={
                    "event_id": alert.event_id,
                    "event_type": alert.event_type,
                    "student_id_hash": alert.student_id_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                    "payload": json.dumps(payload),
                }
            )
            return False
