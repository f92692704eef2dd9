"""
Sync Coordinator - the display sync state machine

    CONNECTING --ok--> IDLE --tick/resync--> RENDERING --> TRANSMITTING --ok--> IDLE
        |                                                      |
        +--fail--> DISCONNECTED <------- device error ---------+
                        |
                        +--backoff--> CONNECTING

Any state moves to SHUTTING_DOWN on a ShutdownSignal. The coordinator is
the only user of the device channel, so at most one transmission is ever
in flight. Requests that arrive while a pass runs are folded into a
single follow-up pass.
"""

import asyncio
import os
import time
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Deque, Dict, List, Optional, Tuple

from zoom_sync.engine.encoder import FrameEncoder
from zoom_sync.engine.renderer import AnimationAsset, FrameRenderer, ImageAsset
from zoom_sync.hardware.device.device_channel_interface import IDeviceChannel
from zoom_sync.models.commands import (
    ClearAnimationCommand,
    ClearImageCommand,
    Command,
    SetScreenCommand,
    SetSystemInfoCommand,
    SetTimeCommand,
    SetWeatherCommand,
)
from zoom_sync.models.config import SyncConfig
from zoom_sync.models.enums import DisplayMode, FieldID, FieldStatus, PayloadKind, ScreenPosition, SyncState
from zoom_sync.models.errors import DeviceError, RenderError, UnsupportedAssetError
from zoom_sync.models.events import FrameTransmittedEvent, PersistentFailureEvent, SyncStateChangedEvent
from zoom_sync.models.frame import EncodedPayload
from zoom_sync.models.signals import ControlSignal, ModeCycleSignal, ResyncSignal, ShutdownSignal
from zoom_sync.models.snapshot import Snapshot
from zoom_sync.services.event_bus import EventBus
from zoom_sync.services.provider_scheduler import backoff_delay
from zoom_sync.services.state_aggregator import StateAggregator
from zoom_sync.utils.logger import get_logger, LogCategory
from zoom_sync.utils.units import celsius_to

log = get_logger().for_category(LogCategory.SYNC)

AssetKey = Tuple[str, int, int]


@dataclass
class SyncMetrics:
    passes: int = 0
    frames_sent: int = 0
    frames_skipped: int = 0
    commands_sent: int = 0
    send_failures: int = 0
    render_failures: int = 0
    connect_failures: int = 0
    reconnects: int = 0


class SyncCoordinator:
    """
    Drives render + transmit passes against one device channel

    Control:
        submit(signal)      - ResyncSignal / ModeCycleSignal / ShutdownSignal
        request_shutdown()  - same as submitting a ShutdownSignal
        run()               - the state machine; returns after shutdown
    """

    def __init__(
        self,
        config: SyncConfig,
        aggregator: StateAggregator,
        renderer: FrameRenderer,
        encoder: FrameEncoder,
        channel: IDeviceChannel,
        event_bus: Optional[EventBus] = None,
    ):
        self.timing = config.sync
        self.assets = config.assets
        self.modes: Tuple[DisplayMode, ...] = config.modes or (DisplayMode.DASHBOARD,)
        self.mode: DisplayMode = config.initial_mode
        self.unit = config.dashboard.temperature_unit

        self.aggregator = aggregator
        self.renderer = renderer
        self.encoder = encoder
        self.channel = channel
        self.event_bus = event_bus

        self.metrics = SyncMetrics()
        self.state_history: Deque[SyncState] = deque(maxlen=200)

        self._state = SyncState.CONNECTING
        self.state_history.append(self._state)
        self._wake = asyncio.Event()
        self._shutdown = asyncio.Event()
        self._finished = asyncio.Event()
        self._running = False

        # Coalesced requests, consumed at the start of each pass
        self._resync_pending = False
        self._pending_mode: Optional[ModeCycleSignal] = None

        self._unsent: Optional[EncodedPayload] = None
        self._last_digest: Optional[str] = None
        self._asset_cache: Dict[AssetKey, EncodedPayload] = {}
        self._transmit_task: Optional[asyncio.Task] = None

        # Slot of the last upload, and a slot whose old content should be cleared
        self._uploaded_kind: Optional[PayloadKind] = None
        self._stale_slot: Optional[PayloadKind] = None

        self._connected_once = False
        self._connect_failures = 0
        self._persistent_reported = False
        self._last_device_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown.is_set()

    def submit(self, signal: ControlSignal) -> None:
        """Non-blocking; safe to call from any task on the loop"""
        if isinstance(signal, ResyncSignal):
            self._resync_pending = True
            self._wake.set()
        elif isinstance(signal, ModeCycleSignal):
            self._pending_mode = signal
            self._wake.set()
        elif isinstance(signal, ShutdownSignal):
            self.request_shutdown()
        else:
            raise TypeError(f"Unknown control signal {type(signal).__name__}")

    def request_shutdown(self) -> None:
        if self._shutdown.is_set():
            return
        log.info("Shutdown requested", state=self._state.name)
        self._shutdown.set()
        self._wake.set()

    async def stop(self, timeout: float = 10.0) -> None:
        """Request shutdown and wait for run() to return"""
        self.request_shutdown()
        if not self._running:
            return
        try:
            await asyncio.wait_for(self._finished.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            log.error("Sync loop did not stop in time", timeout=timeout)

    def _set_state(self, new_state: SyncState, reason: str = "") -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state
        self.state_history.append(new_state)
        log.debug(f"{old_state.name} → {new_state.name}", reason=reason or None)
        if self.event_bus:
            self.event_bus.publish_nowait(SyncStateChangedEvent(old_state, new_state, reason))

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        self._running = True
        self._finished.clear()
        log.info("Sync coordinator started", mode=self.mode.name, refresh=f"{self.timing.refresh_interval}s")
        try:
            while not self._shutdown.is_set():
                if self._state == SyncState.IDLE:
                    if await self._wait_for_trigger():
                        await self._sync_pass()
                elif self._state == SyncState.DISCONNECTED:
                    await self._wait_shutdown(self._reconnect_delay())
                    if not self._shutdown.is_set():
                        await self._connect()
                else:
                    await self._connect()
        finally:
            self._set_state(SyncState.SHUTTING_DOWN, "shutdown")
            try:
                await self.channel.close()
            except DeviceError as e:
                log.warn("Error releasing device", error=str(e))
            self._running = False
            self._finished.set()
            log.info("Sync coordinator stopped", **asdict(self.metrics))

    async def _wait_shutdown(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def _wait_for_trigger(self) -> bool:
        """
        Block in IDLE until a timer tick or a request

        Returns False when woken for shutdown.
        """
        if not self._resync_pending and self._pending_mode is None:
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.timing.refresh_interval)
            except asyncio.TimeoutError:
                pass
        self._wake.clear()
        return not self._shutdown.is_set()

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _reconnect_delay(self) -> float:
        if self._connect_failures >= self.timing.reconnect_attempts:
            return self.timing.persistent_retry_interval
        return min(
            self.timing.reconnect_backoff * (2 ** self._connect_failures),
            self.timing.reconnect_backoff_max,
        )

    async def _connect(self) -> bool:
        self._set_state(SyncState.CONNECTING, "connecting")
        try:
            handle = await self.channel.open()
        except DeviceError as e:
            self._connect_failures += 1
            self.metrics.connect_failures += 1
            self._last_device_error = str(e)
            log.warn("Device connection failed", error=str(e), attempt=self._connect_failures)

            if self._connect_failures >= self.timing.reconnect_attempts and not self._persistent_reported:
                self._persistent_reported = True
                log.error(
                    "Device unreachable, retrying at slow cadence",
                    attempts=self._connect_failures,
                    retry_interval=f"{self.timing.persistent_retry_interval}s",
                )
                if self.event_bus:
                    self.event_bus.publish_nowait(PersistentFailureEvent(
                        attempts=self._connect_failures,
                        last_error=self._last_device_error,
                        retry_interval=self.timing.persistent_retry_interval,
                    ))

            self._set_state(SyncState.DISCONNECTED, e.code)
            return False

        if self._connected_once:
            self.metrics.reconnects += 1
        self._connected_once = True
        self._connect_failures = 0
        self._persistent_reported = False

        # First connection and every reconnect force a pass
        self._resync_pending = True
        log.info("Device ready", path=handle.path, firmware=handle.firmware_version)
        self._set_state(SyncState.IDLE, "connected")
        return True

    # ------------------------------------------------------------------
    # Mode
    # ------------------------------------------------------------------

    def _apply_mode(self, request: ModeCycleSignal) -> None:
        if request.target_mode is not None:
            new_mode = request.target_mode
        elif self.mode in self.modes:
            new_mode = self.modes[(self.modes.index(self.mode) + 1) % len(self.modes)]
        else:
            new_mode = self.modes[0]

        if new_mode == self.mode:
            return
        log.info("Display mode changed", old=self.mode.name, new=new_mode.name)
        self.mode = new_mode
        # A payload left over from the previous mode is obsolete
        self._unsent = None

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _asset_source(self):
        if self.mode == DisplayMode.IMAGE:
            path, source_type = self.assets.image, ImageAsset
        else:
            path, source_type = self.assets.animation, AnimationAsset
        if not path:
            raise UnsupportedAssetError("", f"no {self.mode.name.lower()} asset configured")
        return source_type(path)

    @staticmethod
    def _asset_key(path: str) -> Optional[AssetKey]:
        try:
            st = os.stat(path)
        except OSError:
            return None
        return path, st.st_mtime_ns, st.st_size

    def _render_blocking(self, snapshot: Snapshot) -> EncodedPayload:
        """Runs in an executor thread"""
        if self.mode == DisplayMode.DASHBOARD:
            return self.encoder.encode(self.renderer.render(snapshot))

        source = self._asset_source()
        key = self._asset_key(source.path)
        if key is not None and key in self._asset_cache:
            return self._asset_cache[key]

        payload = self.encoder.encode(self.renderer.render(source))
        if key is not None:
            self._asset_cache = {key: payload}
        return payload

    def _render_fallback(self, error: RenderError) -> EncodedPayload:
        self.metrics.render_failures += 1
        log.warn("Render failed, showing placeholder", code=error.code, error=error.message)
        return self.encoder.encode(self.renderer.placeholder())

    async def _render(self, snapshot: Snapshot) -> EncodedPayload:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._render_blocking, snapshot)
        except RenderError as e:
            return self._render_fallback(e)

    def _slot_commands(self, kind: PayloadKind) -> List[Command]:
        """
        Commands that follow a successful upload

        The upload ends on the logo screen, so the slot screen is selected
        again. A slot left behind by a mode change is cleared.
        """
        if not self.timing.select_screen:
            return []
        commands: List[Command] = [SetScreenCommand(ScreenPosition.for_payload(kind))]
        if self._stale_slot == PayloadKind.IMAGE:
            commands.append(ClearImageCommand())
        elif self._stale_slot == PayloadKind.ANIMATION:
            commands.append(ClearAnimationCommand())
        return commands

    def _dashboard_commands(self, snapshot: Snapshot) -> List[Command]:
        if self.mode != DisplayMode.DASHBOARD or not self.timing.send_commands:
            return []

        def temp(field: FieldID) -> Optional[int]:
            value = snapshot.usable(field)
            return None if value is None else int(round(celsius_to(value, self.unit)))

        commands: List[Command] = [
            SetTimeCommand(datetime.now()),
            SetSystemInfoCommand(
                cpu_temp=temp(FieldID.CPU_TEMP),
                gpu_temp=temp(FieldID.GPU_TEMP),
                download_rate=snapshot.usable(FieldID.DOWNLOAD_RATE),
            ),
        ]

        weather = snapshot.value(FieldID.WEATHER)
        if weather is not None and snapshot.status(FieldID.WEATHER) == FieldStatus.FRESH:
            commands.append(SetWeatherCommand(
                icon=weather.icon,
                current=int(round(celsius_to(weather.temp, self.unit))),
                low=int(round(celsius_to(weather.low, self.unit))),
                high=int(round(celsius_to(weather.high, self.unit))),
            ))
        return commands

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    async def _sync_pass(self) -> None:
        forced = self._resync_pending
        self._resync_pending = False
        mode_request, self._pending_mode = self._pending_mode, None
        if mode_request is not None:
            self._apply_mode(mode_request)
            forced = True

        self.metrics.passes += 1
        snapshot = self.aggregator.current()

        if self._unsent is not None:
            # Retransmit exactly what the device missed
            payload = self._unsent
            forced = True
        else:
            self._set_state(SyncState.RENDERING, "forced" if forced else "tick")
            payload = await self._render(snapshot)
            if self._shutdown.is_set():
                log.debug("Render result dropped, shutting down")
                return

        send_frame = forced or payload.digest != self._last_digest
        commands = self._dashboard_commands(snapshot)
        if not send_frame:
            self.metrics.frames_skipped += 1
            log.debug("Content unchanged, frame not re-sent", digest=payload.digest[:8])
            if not commands:
                self._set_state(SyncState.IDLE, "unchanged")
                return

        self._set_state(SyncState.TRANSMITTING, payload.kind.name if send_frame else "commands")
        if send_frame:
            self._unsent = payload
        try:
            await self._transmit_shielded(payload if send_frame else None, commands)
        except DeviceError as e:
            self.metrics.send_failures += 1
            self._last_device_error = str(e)
            log.warn("Transmission failed, device disconnected", code=e.code, error=e.message)
            try:
                await self.channel.close()
            except DeviceError as close_error:
                log.debug("Error releasing device", error=str(close_error))
            self._set_state(SyncState.DISCONNECTED, e.code)
            return

        self._set_state(SyncState.IDLE, "sent")

    async def _transmit_shielded(self, payload: Optional[EncodedPayload], commands: List[Command]) -> None:
        """An in-flight transmission always runs to completion, even if run() is cancelled"""
        self._transmit_task = asyncio.ensure_future(self._transmit(payload, commands))
        try:
            await asyncio.shield(self._transmit_task)
        except asyncio.CancelledError:
            if not self._transmit_task.done():
                log.info("Cancelled mid-transmission, finishing the send first")
                await asyncio.wait({self._transmit_task})
            if not self._transmit_task.cancelled() and self._transmit_task.exception() is not None:
                log.warn("In-flight send failed during cancellation", error=str(self._transmit_task.exception()))
            raise
        finally:
            self._transmit_task = None

    async def _transmit(self, payload: Optional[EncodedPayload], commands: List[Command]) -> None:
        """
        Send the frame (if any) and its slot commands, then the commands

        Transient errors (timeout, rejected) are retried send_attempts
        times with exponential backoff; anything else escalates at once.
        """
        attempts = max(1, self.timing.send_attempts)
        pending = list(commands)

        for attempt in range(1, attempts + 1):
            try:
                if payload is not None:
                    started = time.monotonic()
                    await self.channel.send_frame(payload)
                    duration = time.monotonic() - started
                    self._unsent = None
                    self._last_digest = payload.digest
                    self.metrics.frames_sent += 1
                    log.info(
                        "Frame sent",
                        kind=payload.kind.name,
                        bytes=payload.size,
                        frames=payload.frame_count,
                        took=f"{duration:.2f}s",
                    )
                    if self.event_bus:
                        self.event_bus.publish_nowait(FrameTransmittedEvent(
                            kind=payload.kind,
                            size=payload.size,
                            digest=payload.digest,
                            mode=self.mode,
                            duration=duration,
                        ))
                    if self._uploaded_kind not in (None, payload.kind):
                        self._stale_slot = self._uploaded_kind
                    self._uploaded_kind = payload.kind
                    pending[:0] = self._slot_commands(payload.kind)
                    payload = None

                while pending:
                    command = pending[0]
                    await self.channel.send_command(command)
                    pending.pop(0)
                    self.metrics.commands_sent += 1
                    if isinstance(command, (ClearImageCommand, ClearAnimationCommand)):
                        self._stale_slot = None
                return

            except DeviceError as e:
                if not e.transient or attempt == attempts:
                    raise
                delay = backoff_delay(attempt, self.timing.send_backoff, self.timing.reconnect_backoff_max)
                log.debug("Send failed, retrying", code=e.code, attempt=attempt, retry_in=f"{delay:.2f}s")
                await asyncio.sleep(delay)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_metrics(self) -> dict:
        metrics = asdict(self.metrics)
        metrics.update(
            state=self._state.name,
            mode=self.mode.name,
            connect_failures_in_row=self._connect_failures,
            unsent=self._unsent is not None,
            last_device_error=self._last_device_error,
        )
        return metrics
