"""
zoom-sync entry point
---------------------

    zoom-sync [--config PATH] [--log-level LEVEL] [--no-color]

Responsible for:
- loading configuration
- wiring dependencies (event bus, aggregator, providers, renderer,
  encoder, device channel, input listener, sync coordinator)
- running until a signal, a keyboard shutdown trigger or a fatal error
- graceful shutdown in handler priority order
"""

import argparse
import asyncio
import sys
from typing import List, Optional

# Set UTF-8 encoding for output before anything logs (status symbols)
if hasattr(sys.stdout, "reconfigure") and sys.stdout.encoding != "UTF-8":
    sys.stdout.reconfigure(encoding="utf-8")  # type: ignore
if hasattr(sys.stderr, "reconfigure") and sys.stderr.encoding != "UTF-8":
    sys.stderr.reconfigure(encoding="utf-8")  # type: ignore

from zoom_sync.engine import FrameEncoder, FrameRenderer, SyncCoordinator
from zoom_sync.hardware.device import create_device_channel
from zoom_sync.hardware.input import InputListener, create_keyboard_adapter
from zoom_sync.lifecycle import ShutdownCoordinator, TaskCategory, create_tracked_task
from zoom_sync.lifecycle.handlers import (
    InputShutdownHandler,
    ProviderShutdownHandler,
    SyncShutdownHandler,
    TaskCancellationHandler,
)
from zoom_sync.managers import ConfigManager
from zoom_sync.models.errors import ConfigError
from zoom_sync.providers import DataProvider, create_provider
from zoom_sync.runtime import RuntimeInfo
from zoom_sync.services import EventBus, ProviderScheduler, StateAggregator
from zoom_sync.services.middleware import log_middleware
from zoom_sync.utils.enum_helper import EnumHelper
from zoom_sync.utils.logger import configure_logger, get_logger, LogCategory, LogLevel

log = get_logger().for_category(LogCategory.SYSTEM)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="zoom-sync",
        description="Keep the Zoom65 v3 screen module in sync with host telemetry",
    )
    parser.add_argument("--config", help="path to config.yaml (default: bundled config)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=EnumHelper.list_names(LogLevel) + EnumHelper.list_names(LogLevel, lowercase=True),
        help="minimum log level",
    )
    parser.add_argument("--no-color", action="store_true", help="disable ANSI colours")
    return parser.parse_args(argv)


async def main(args: argparse.Namespace) -> int:
    """Main async entry point (dependency wiring and event loop startup)."""

    log.info("Starting zoom-sync...", **RuntimeInfo.describe())

    # ========================================================================
    # 1. INFRASTRUCTURE
    # ========================================================================

    config = ConfigManager(args.config).load()

    event_bus = EventBus()
    event_bus.add_middleware(log_middleware)

    aggregator = StateAggregator(config.freshness_thresholds(), event_bus=event_bus)

    # ========================================================================
    # 2. PROVIDERS
    # ========================================================================

    providers: List[DataProvider] = [
        create_provider(p, aggregator=aggregator)
        for p in config.providers
        if p.enabled
    ]
    scheduler = ProviderScheduler(providers, aggregator, event_bus)
    await scheduler.start()

    # ========================================================================
    # 3. RENDER PIPELINE + DEVICE
    # ========================================================================

    renderer = FrameRenderer(config.display, config.dashboard)
    encoder = FrameEncoder(config.display)
    channel = create_device_channel(config.device, timeout=config.sync.device_timeout)

    sync = SyncCoordinator(config, aggregator, renderer, encoder, channel, event_bus=event_bus)
    sync_task = create_tracked_task(sync.run(), category=TaskCategory.SYNC, description="Sync coordinator")

    # ========================================================================
    # 4. KEYBOARD TRIGGERS
    # ========================================================================

    listener: Optional[InputListener] = None
    input_task = None
    adapter = create_keyboard_adapter(config.input)
    if adapter is not None:
        listener = InputListener(adapter, config.input.triggers, event_bus=event_bus)
        input_task = create_tracked_task(
            listener.forward_to(sync.submit),
            category=TaskCategory.INPUT,
            description="Keyboard trigger listener",
        )

    # ========================================================================
    # 5. SHUTDOWN COORDINATOR
    # ========================================================================

    coordinator = ShutdownCoordinator()
    if listener is not None:
        coordinator.register(InputShutdownHandler(listener, input_task))
    coordinator.register(ProviderShutdownHandler(scheduler))
    coordinator.register(SyncShutdownHandler(sync, sync_task))
    coordinator.register(TaskCancellationHandler())

    coordinator.setup_signal_handlers(asyncio.get_running_loop())

    log.info("zoom-sync running. Waiting for exit signal...")
    await coordinator.wait_for_shutdown()
    await coordinator.shutdown_all()

    log.info("zoom-sync shut down cleanly.", reason=coordinator.reason)
    return 1 if (coordinator.reason or "").startswith("Task failure") else 0


def run(argv: Optional[List[str]] = None) -> int:
    """Console script entry"""
    args = parse_args(argv)
    configure_logger(EnumHelper.from_string(LogLevel, args.log_level), use_colors=not args.no_color)
    try:
        return asyncio.run(main(args))
    except KeyboardInterrupt:
        log.info("Keyboard interrupt received")
        return 0
    except ConfigError as e:
        log.error(f"Configuration error: {e.message}", key=e.details.get("key") if e.details else None)
        return 2


if __name__ == "__main__":
    sys.exit(run())
