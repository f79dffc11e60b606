"""
Entry point for running the SQS relay.

Usage:
    # Poll $SQS_QUEUE_URL with two workers that log each message
    python -m sqs_relay

    # Four workers running your own handlers
    python -m sqs_relay --workers 4 --handler myapp.workers:register

    # Preprocess in the coordinator before relaying
    python -m sqs_relay --preprocessor myapp.workers:parse_body

    # Load settings from YAML instead of the environment
    python -m sqs_relay --config config.yaml

Architecture:
    One coordinator process long-polls SQS, optionally preprocesses each
    message, relays it to every worker process, and deletes each batch
    with a single DeleteMessageBatch call. Workers only receive.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

import boto3
from dotenv import load_dotenv
from prometheus_client import start_http_server

from core.logging import get_logger, log_with_context, setup_logging
from sqs_relay.config import ConsumerConfig, load_config
from sqs_relay.consumer import SQSConsumer
from sqs_relay.events import PREPROCESSOR_ERROR, RELAY_ERROR, SQS_ERROR
from sqs_relay.pool import WorkerPool, default_log_settings, resolve_target
from sqs_relay.relay import WorkerRegistry

DEFAULT_HANDLER = "sqs_relay.handlers:log_messages"

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Relay SQS messages to a pool of worker processes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m sqs_relay --workers 4 --handler myapp.workers:register
    python -m sqs_relay --config config.yaml --metrics-port 9090
        """,
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML config file with an 'sqs' section (default: environment variables)",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of worker processes (default: from config, 2)",
    )

    parser.add_argument(
        "--handler",
        type=str,
        default=DEFAULT_HANDLER,
        help=f"Worker target as module:function (default: {DEFAULT_HANDLER})",
    )

    parser.add_argument(
        "--preprocessor",
        type=str,
        default=None,
        help="Message preprocessor as module:function, run in the coordinator",
    )

    parser.add_argument(
        "--metrics-port",
        type=int,
        default=8000,
        help="Port for Prometheus metrics server (default: 8000, 0 disables)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from LOG_DIR env var or ./logs)",
    )

    return parser.parse_args(argv)


def create_sqs_client(config: ConsumerConfig):
    """Build the boto3 SQS client from config."""
    kwargs = {}
    if config.region:
        kwargs["region_name"] = config.region
    if config.endpoint_url:
        kwargs["endpoint_url"] = config.endpoint_url
    return boto3.client("sqs", **kwargs)


def setup_signal_handlers(loop: asyncio.AbstractEventLoop, consumer: SQSConsumer) -> None:
    """
    First SIGINT/SIGTERM pauses polling so the current batch completes and
    is deleted. A second signal cancels every task.
    """
    stopping = {"requested": False}

    def handle_signal(sig):
        if not stopping["requested"]:
            stopping["requested"] = True
            logger.info(f"Received signal {sig.name}, finishing current batch...")
            consumer.pause_polling()
        else:
            logger.warning("Received second signal, forcing immediate shutdown...")
            for task in asyncio.all_tasks(loop):
                task.cancel()

    if sys.platform == "win32":
        logger.debug("Signal handlers not supported on Windows, using KeyboardInterrupt")
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))


def _log_error_event(event_name: str):
    def handler(evt) -> None:
        log_with_context(
            logger,
            logging.DEBUG,
            f"{event_name} event",
            event=event_name,
            operation=getattr(evt, "operation", None),
            worker_id=getattr(evt, "worker_id", None),
        )

    return handler


async def run_relay(config: ConsumerConfig, pool: WorkerPool, consumer: SQSConsumer) -> None:
    """Run the supervisor and poll loop until polling is paused."""
    supervisor = asyncio.create_task(
        pool.supervise(
            interval=config.supervise_interval_seconds,
            respawn=config.respawn_workers,
        )
    )
    try:
        await consumer.start_polling()
    finally:
        supervisor.cancel()
        try:
            await supervisor
        except asyncio.CancelledError:
            pass


def main(argv: Optional[list] = None) -> None:
    """Main entry point."""
    global logger
    args = parse_args(argv)

    load_dotenv()

    log_level = getattr(logging, args.log_level)
    json_logs = os.getenv("JSON_LOGS", "true").lower() in ("true", "1", "yes")
    log_dir = Path(args.log_dir or os.getenv("LOG_DIR", "logs"))
    log_settings = default_log_settings(log_dir, log_level, json_logs)

    setup_logging(
        name="sqs_relay",
        stage="coordinator",
        worker_id=os.getenv("WORKER_ID", "coordinator"),
        **log_settings,
    )
    logger = get_logger(__name__)

    try:
        config = load_config(args.config)
        preprocessor = resolve_target(args.preprocessor) if args.preprocessor else None
        resolve_target(args.handler)
    except (ValueError, ImportError) as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    if args.workers is not None:
        config.worker_count = args.workers

    if args.metrics_port:
        logger.info(f"Starting metrics server on port {args.metrics_port}")
        start_http_server(args.metrics_port)

    registry = WorkerRegistry()
    pool = WorkerPool(
        target=args.handler,
        size=config.worker_count,
        registry=registry,
        queue_size=config.worker_queue_size,
        log_settings=log_settings,
    )
    consumer = SQSConsumer(
        sqs_client=create_sqs_client(config),
        poll_options=config.poll,
        registry=registry,
        message_preprocessor=preprocessor,
        error_backoff_seconds=config.error_backoff_seconds,
    )
    for event_name in (SQS_ERROR, PREPROCESSOR_ERROR, RELAY_ERROR):
        consumer.on(event_name, _log_error_event(event_name))

    pool.start()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    setup_signal_handlers(loop, consumer)

    try:
        loop.run_until_complete(run_relay(config, pool, consumer))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
    except asyncio.CancelledError:
        logger.warning("Relay cancelled")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        pool.shutdown()
        loop.close()
        logger.info("SQS relay shutdown complete")


if __name__ == "__main__":
    main()
