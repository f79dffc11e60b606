"""SQS relay configuration from environment variables or YAML."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

# Limits enforced by the ReceiveMessage API
MAX_RECEIVE_BATCH = 10
MAX_WAIT_TIME_SECONDS = 20
MAX_VISIBILITY_TIMEOUT = 43200  # 12 hours


def _split_names(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def _optional_int(value: Any) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    return int(value)


@dataclass(frozen=True)
class PollOptions:
    """ReceiveMessage parameters used on every poll.

    Frozen: the consumer reads these on every iteration and never
    expects them to change under it.
    """

    queue_url: str
    message_attribute_names: List[str] = field(default_factory=list)
    message_system_attribute_names: List[str] = field(default_factory=list)
    max_number_of_messages: int = MAX_RECEIVE_BATCH
    visibility_timeout: Optional[int] = None
    wait_time_seconds: int = MAX_WAIT_TIME_SECONDS

    def __post_init__(self) -> None:
        if not self.queue_url:
            raise ValueError("queue_url is required")
        if not 1 <= self.max_number_of_messages <= MAX_RECEIVE_BATCH:
            raise ValueError(
                f"max_number_of_messages must be between 1 and {MAX_RECEIVE_BATCH}, "
                f"got {self.max_number_of_messages}"
            )
        if not 0 <= self.wait_time_seconds <= MAX_WAIT_TIME_SECONDS:
            raise ValueError(
                f"wait_time_seconds must be between 0 and {MAX_WAIT_TIME_SECONDS}, "
                f"got {self.wait_time_seconds}"
            )
        if self.visibility_timeout is not None and not (
            0 <= self.visibility_timeout <= MAX_VISIBILITY_TIMEOUT
        ):
            raise ValueError(
                f"visibility_timeout must be between 0 and {MAX_VISIBILITY_TIMEOUT}, "
                f"got {self.visibility_timeout}"
            )

    def to_receive_request(self) -> Dict[str, Any]:
        """Build ReceiveMessage keyword arguments.

        Optional fields that are unset are left out; botocore rejects
        explicit None values.
        """
        request: Dict[str, Any] = {
            "QueueUrl": self.queue_url,
            "MaxNumberOfMessages": self.max_number_of_messages,
            "WaitTimeSeconds": self.wait_time_seconds,
        }
        if self.message_attribute_names:
            request["MessageAttributeNames"] = list(self.message_attribute_names)
        if self.message_system_attribute_names:
            request["MessageSystemAttributeNames"] = list(
                self.message_system_attribute_names
            )
        if self.visibility_timeout is not None:
            request["VisibilityTimeout"] = self.visibility_timeout
        return request

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PollOptions":
        return cls(
            queue_url=data.get("queue_url", ""),
            message_attribute_names=list(data.get("message_attribute_names") or []),
            message_system_attribute_names=list(
                data.get("message_system_attribute_names") or []
            ),
            max_number_of_messages=int(
                data.get("max_number_of_messages", MAX_RECEIVE_BATCH)
            ),
            visibility_timeout=_optional_int(data.get("visibility_timeout")),
            wait_time_seconds=int(data.get("wait_time_seconds", MAX_WAIT_TIME_SECONDS)),
        )


@dataclass
class ConsumerConfig:
    """Coordinator and worker pool configuration.

    Load from environment using ConsumerConfig.from_env() or from a YAML
    file using load_config().
    """

    poll: PollOptions

    # AWS client
    region: Optional[str] = None
    endpoint_url: Optional[str] = None

    # Worker pool
    worker_count: int = 2
    worker_queue_size: int = 1000
    supervise_interval_seconds: float = 5.0
    respawn_workers: bool = True

    # Seconds to wait after a failed ReceiveMessage call (0 disables)
    error_backoff_seconds: float = 1.0

    @classmethod
    def from_env(cls) -> "ConsumerConfig":
        """Load configuration from environment variables.

        Required environment variables:
            SQS_QUEUE_URL: URL of the queue to poll

        Optional environment variables (with defaults):
            SQS_MESSAGE_ATTRIBUTE_NAMES: comma-separated (default: none)
            SQS_MESSAGE_SYSTEM_ATTRIBUTE_NAMES: comma-separated (default: none)
            SQS_MAX_NUMBER_OF_MESSAGES: 10 (default)
            SQS_VISIBILITY_TIMEOUT: queue default when unset
            SQS_WAIT_TIME_SECONDS: 20 (default)
            AWS_REGION: boto3 default resolution when unset
            SQS_ENDPOINT_URL: custom endpoint (e.g. LocalStack)
            SQS_WORKER_COUNT: 2 (default)
            SQS_WORKER_QUEUE_SIZE: 1000 (default)
            SQS_ERROR_BACKOFF_SECONDS: 1.0 (default)

        Raises:
            ValueError: If required environment variables are missing
        """
        queue_url = os.getenv("SQS_QUEUE_URL")
        if not queue_url:
            raise ValueError("SQS_QUEUE_URL environment variable is required")

        poll = PollOptions(
            queue_url=queue_url,
            message_attribute_names=_split_names(
                os.getenv("SQS_MESSAGE_ATTRIBUTE_NAMES")
            ),
            message_system_attribute_names=_split_names(
                os.getenv("SQS_MESSAGE_SYSTEM_ATTRIBUTE_NAMES")
            ),
            max_number_of_messages=int(
                os.getenv("SQS_MAX_NUMBER_OF_MESSAGES", str(MAX_RECEIVE_BATCH))
            ),
            visibility_timeout=_optional_int(os.getenv("SQS_VISIBILITY_TIMEOUT")),
            wait_time_seconds=int(
                os.getenv("SQS_WAIT_TIME_SECONDS", str(MAX_WAIT_TIME_SECONDS))
            ),
        )

        return cls(
            poll=poll,
            region=os.getenv("AWS_REGION") or None,
            endpoint_url=os.getenv("SQS_ENDPOINT_URL") or None,
            worker_count=int(os.getenv("SQS_WORKER_COUNT", "2")),
            worker_queue_size=int(os.getenv("SQS_WORKER_QUEUE_SIZE", "1000")),
            error_backoff_seconds=float(os.getenv("SQS_ERROR_BACKOFF_SECONDS", "1.0")),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConsumerConfig":
        """Build from the `sqs:` section of a YAML config file."""
        workers = data.get("workers") or {}
        return cls(
            poll=PollOptions.from_dict(data.get("poll") or {}),
            region=data.get("region"),
            endpoint_url=data.get("endpoint_url"),
            worker_count=int(workers.get("count", 2)),
            worker_queue_size=int(workers.get("queue_size", 1000)),
            supervise_interval_seconds=float(workers.get("supervise_interval_seconds", 5.0)),
            respawn_workers=bool(workers.get("respawn", True)),
            error_backoff_seconds=float(data.get("error_backoff_seconds", 1.0)),
        )


def load_config(path: Optional[Union[str, Path]] = None) -> ConsumerConfig:
    """Load configuration from a YAML file, falling back to the environment.

    Expected YAML layout:

        sqs:
          region: eu-west-1
          poll:
            queue_url: https://sqs.eu-west-1.amazonaws.com/123/jobs
            max_number_of_messages: 10
            wait_time_seconds: 20
          workers:
            count: 4
            queue_size: 500

    Args:
        path: YAML file path. If None or the file doesn't exist, uses
            ConsumerConfig.from_env().

    Raises:
        ValueError: If the file has no `sqs` section or values are invalid
    """
    if path is None or not Path(path).exists():
        return ConsumerConfig.from_env()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    section = raw.get("sqs")
    if not isinstance(section, dict):
        raise ValueError(f"Config file {path} has no 'sqs' section")

    return ConsumerConfig.from_dict(section)
