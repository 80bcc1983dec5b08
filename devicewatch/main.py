"""Main entry point for the device monitor."""

import asyncio
import logging
import signal
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from prometheus_client import start_http_server

from devicewatch.config import settings
from devicewatch.monitor.device_monitor import CHECK_INTERVAL_SECONDS, DeviceMonitor
from devicewatch.monitor.inventory import DeviceConfigError, load_devices
from devicewatch.scheduler.job_scheduler import shutdown_scheduler, start_scheduler
from devicewatch.version import __version__

logger = logging.getLogger(__name__)


def configure_logging():
    """Configure logging based on settings.

    Logs go to stderr, leaving stdout to the status table, and to a rotating
    log file when LOG_FILE is set.
    """
    log_level = getattr(logging, settings.log_level.upper())

    handlers = [logging.StreamHandler(sys.stderr)]
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            settings.log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        ))

    if settings.log_format == "json":
        from pythonjsonlogger.json import JsonFormatter

        class CustomJsonFormatter(JsonFormatter):
            """Custom JSON formatter with additional fields."""

            def add_fields(self, log_record, record, message_dict):
                super().add_fields(log_record, record, message_dict)
                log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
                log_record["level"] = record.levelname
                log_record["logger"] = record.name
                log_record["service"] = "devicewatch"

        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    logging.root.handlers = []
    for handler in handlers:
        handler.setFormatter(formatter)
        logging.root.addHandler(handler)
    logging.root.setLevel(log_level)

    # Reduce noise from third-party loggers; httpx logs URLs containing the bot token
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def run(monitor: DeviceMonitor) -> None:
    """Run monitoring cycles until SIGINT or SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on Windows; Ctrl+C surfaces as KeyboardInterrupt
            pass

    start_scheduler(monitor)
    try:
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        monitor.stop()
        shutdown_scheduler()


def main() -> int:
    """Run the application.

    Returns:
        Process exit code: 0 after a requested shutdown, 1 on startup failure.
    """
    configure_logging()

    logger.info("Starting devicewatch v%s", __version__)

    if not settings.telegram_configured:
        logger.error(
            "Telegram bot token or chat ID is missing "
            "(set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID in the environment or .env)"
        )
        return 1

    try:
        devices = load_devices(settings.devices_file)
        tcp_fallback_ports = settings.tcp_fallback_ports_list
    except (DeviceConfigError, ValueError) as e:
        logger.error("Error reading config: %s", e)
        return 1

    logger.info("Devices file: %s (%d devices)", settings.devices_file, len(devices))
    logger.info("Check interval: %d seconds", CHECK_INTERVAL_SECONDS)
    logger.info("Probe concurrency: %d", settings.probe_concurrency)
    if tcp_fallback_ports:
        logger.info("TCP fallback ports: %s", tcp_fallback_ports)

    if settings.metrics_port:
        try:
            start_http_server(settings.metrics_port)
        except OSError as e:
            logger.error("Could not start metrics server on port %d: %s", settings.metrics_port, e)
            return 1
        logger.info("Prometheus metrics on port %d", settings.metrics_port)

    monitor = DeviceMonitor(
        devices,
        tcp_fallback_ports=tcp_fallback_ports,
        probe_concurrency=settings.probe_concurrency,
    )

    try:
        asyncio.run(run(monitor))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
