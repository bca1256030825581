"""Game session: the single entry point for feed messages.

One GameSession exists per connection. Every message is applied under one
lock, so a round finalization can never interleave with the roster update
it depends on. Buffered events delivered with CONNECTED are replayed
through the same path, in delivery order, with live-only alerts muted.

Usage:
    from tonstat.services import GameSession, Notification

    session = GameSession()
    session.subscribe(Notification.ROUND_ENDED, refresh_round_log)
    session.apply_raw(frame_text)
    snapshot = session.snapshot()
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ..config import Settings, get_settings
from ..exceptions import MalformedMessageError
from ..schemas.events import (
    ConnectedEvent, DeathEvent, EventType, FeedEvent, FlagEvent, ItemEvent,
    LocationEvent, LOCATION_RESET, LOCATION_SET, PageCountEvent, PlayerJoinEvent,
    PlayerLeaveEvent, RoundTypeEvent, TerrorsEvent, TrackerEvent,
    parse_event, parse_message,
)
from ..schemas.snapshot import (
    GameDataResponse, InstanceStateResponse, PlayerResponse, RoundRecordResponse,
    SessionSnapshot, StatsResponse, TerrorResponse,
)
from .context import LiveGameData, SessionContext, TerrorEntity, color_from_packed
from .escalation import Prediction
from .event_log import EventLog, describe_event
from .notifications import Notification, SessionNotifier
from .round_lifecycle import RoundLifecycleTracker
from .terror_catalog import TerrorCatalog, split_terror_names


logger = logging.getLogger(__name__)


class GameSession:
    """Applies feed messages to the per-connection state."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        catalog: Optional[TerrorCatalog] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings or get_settings()
        if catalog is None:
            catalog = TerrorCatalog()
            if self.settings.terror_catalog_path:
                catalog.load_json(self.settings.terror_catalog_path)

        self.notifier = SessionNotifier()
        self.context = SessionContext.create(self.settings, catalog=catalog,
                                             notifier=self.notifier, clock=clock)
        self.context.roster.on_change = self._roster_changed
        self.lifecycle = RoundLifecycleTracker(self.context, clock=clock)
        self.events = EventLog(self.settings.recent_events_limit, clock=clock)
        self.connected = False
        self.has_connected = False
        self._lock = threading.RLock()

        self._handlers: Dict[str, Callable[[Any], None]] = {
            EventType.CONNECTED.value: self._on_connected,
            EventType.TERRORS.value: self._on_terrors,
            EventType.ROUND_TYPE.value: self._on_round_type,
            EventType.LOCATION.value: self._on_location,
            EventType.ROUND_ACTIVE.value: self._on_round_active,
            EventType.ALIVE.value: self._on_alive,
            EventType.IS_SABOTEUR.value: self._on_saboteur,
            EventType.PAGE_COUNT.value: self._on_page_count,
            EventType.ITEM.value: self._on_item,
            EventType.PLAYER_JOIN.value: self._on_player_join,
            EventType.PLAYER_LEAVE.value: self._on_player_leave,
            EventType.DEATH.value: self._on_death,
            EventType.TRACKER.value: self._on_tracker,
            EventType.INSTANCE.value: self._on_informational,
            EventType.STATS.value: self._on_informational,
        }

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def subscribe(self, kind: Notification, handler: Callable[..., None]) -> None:
        self.notifier.subscribe(kind, handler)

    def apply_raw(self, message: str) -> bool:
        """Decode and apply one feed frame. Malformed frames are dropped."""
        try:
            data = parse_message(message)
        except MalformedMessageError as e:
            logger.warning(f"Dropping malformed message: {e}")
            return False
        self.apply(data)
        return True

    def apply(self, data: Dict[str, Any]) -> None:
        """Apply one decoded message under the session lock."""
        with self._lock:
            self._process(data)

    def _process(self, data: Dict[str, Any]) -> None:
        try:
            event = parse_event(data)
        except ValidationError as e:
            logger.warning(f"Invalid {data.get('Type', '?')} message: {e.error_count()} errors")
            self.events.add("ERROR", f"Invalid message: {data.get('Type', '?')}")
            return

        handler = self._handlers.get(event.type)
        if handler is None:
            logger.info(f"Unhandled event type: {event.type or '<missing>'}")
            self.events.add(event.type or "UNKNOWN", describe_event(event))
            return

        try:
            handler(event)
        except Exception as e:
            logger.exception(f"Error processing {event.type}")
            self.events.add("ERROR", f"Error processing {event.type}: {e}")
            return

        self.events.add(event.type, describe_event(event))

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _on_connected(self, event: ConnectedEvent) -> None:
        roster = self.context.roster
        # A CONNECTED nested in a buffer only reseeds the local player
        nested = self.notifier.replaying
        if not nested:
            known_rounds = 0
            if self.has_connected:
                known_rounds = self.lifecycle.rounds_this_connection
                self._reset_connection_state()
            self.lifecycle.start_connection(known_rounds)

        local = roster.set_local_player(event.display_name, event.user_id)
        self.connected = True
        self.has_connected = True
        logger.info(f"Connected as '{local.name}', {len(event.args)} buffered events")
        self.notifier.emit(Notification.CONNECTED, local.name)

        was_replaying = self.notifier.replaying
        self.notifier.replaying = True
        try:
            for buffered in event.args:
                self._process(buffered)
        finally:
            self.notifier.replaying = was_replaying
            if not nested:
                self.lifecycle.end_replay()

    def _reset_connection_state(self) -> None:
        """Drop instance-scoped state before a reconnect replays its buffer.

        Round history and statistics are session-wide and survive.
        """
        ctx = self.context
        logger.info("Reconnected, rebuilding instance state from the replay")
        ctx.instance.reset()
        ctx.terrors = []
        ctx.game_data = LiveGameData()
        self.notifier.emit(Notification.INSTANCE_STATE_CHANGED)
        self.notifier.emit(Notification.TERRORS_UPDATED)

    def _on_terrors(self, event: TerrorsEvent) -> None:
        ctx = self.context
        if event.is_reset:
            ctx.terrors = []
        elif event.is_set_or_reveal:
            color = color_from_packed(event.display_color)
            terrors = []
            for announced in event.announced_names():
                for name in split_terror_names(announced):
                    terrors.append(TerrorEntity(
                        name=name,
                        display_color=color,
                        stun_policy=ctx.catalog.stun_policy(name),
                    ))
            ctx.terrors = terrors
            if ctx.instance.on_terrors_updated(ctx.terror_names):
                self.notifier.emit(Notification.INSTANCE_STATE_CHANGED)
        else:
            logger.debug(f"Ignoring TERRORS command {event.command}")
            return
        self.notifier.emit(Notification.TERRORS_UPDATED)

    def _on_round_type(self, event: RoundTypeEvent) -> None:
        game_data = self.context.game_data
        label = event.label
        if event.is_start:
            game_data.round_type_display = f"{label} (started)"
            self.lifecycle.on_round_start(label)
        elif event.is_end:
            game_data.round_type_display = f"{label} (ended)"
            self.lifecycle.on_round_end(label)
        else:
            logger.debug(f"Ignoring ROUND_TYPE command {event.command}")

    def _on_location(self, event: LocationEvent) -> None:
        game_data = self.context.game_data
        if event.command == LOCATION_SET:
            game_data.map_name = event.name or "Unknown"
            game_data.map_creator = event.creator
            game_data.map_origin = event.origin
        elif event.command == LOCATION_RESET:
            game_data.clear_location()

    def _on_round_active(self, event: FlagEvent) -> None:
        self.context.game_data.round_active = event.value

    def _on_alive(self, event: FlagEvent) -> None:
        self.context.game_data.alive_signal = event.value
        self.context.roster.set_local_alive(event.value)
        self.lifecycle.on_alive_signal(event.value)

    def _on_saboteur(self, event: FlagEvent) -> None:
        game_data = self.context.game_data
        if event.value and not game_data.round_active:
            logger.debug("Saboteur flag outside an active round ignored")
            return
        game_data.saboteur = event.value

    def _on_page_count(self, event: PageCountEvent) -> None:
        self.context.game_data.page_count = max(event.value, 0)

    def _on_item(self, event: ItemEvent) -> None:
        if event.is_grab:
            self.lifecycle.add_item(event.name)

    def _on_player_join(self, event: PlayerJoinEvent) -> None:
        roster = self.context.roster
        player_id = event.resolved_id
        is_new = player_id not in roster
        record = roster.join(event.value, player_id, self.context.game_data.round_active)
        if not is_new:
            return
        self.notifier.emit(Notification.PLAYER_JOINED, record.name)
        if record.is_warning_user:
            logger.warning(f"Warning user joined: {record.name}")
            self.notifier.emit(Notification.WARNING_USER_JOINED, record.name)

    def _on_player_leave(self, event: PlayerLeaveEvent) -> None:
        self.context.roster.leave(event.value, event.player_id)

    def _on_death(self, event: DeathEvent) -> None:
        roster = self.context.roster
        record = roster.mark_dead(event.name)
        if record is not None:
            local = record.is_local
        else:
            local = roster.is_local_name(event.name)
        if local:
            self.lifecycle.on_death()

    def _on_tracker(self, event: TrackerEvent) -> None:
        if not event.has_roster:
            logger.debug("TRACKER message without a player array")
            return
        roster = self.context.roster
        diff = roster.apply_full_snapshot(event.value)
        for player_id in diff.joined:
            record = roster.players.get(player_id)
            if record is not None and record.is_warning_user:
                logger.warning(f"Warning user present: {record.name}")
                self.notifier.emit(Notification.WARNING_USER_JOINED, record.name)

    def _on_informational(self, event: FeedEvent) -> None:
        logger.debug(f"{event.type} message received")

    def _roster_changed(self) -> None:
        self.notifier.emit(Notification.PLAYER_COUNT_CHANGED)

    # ------------------------------------------------------------------
    # User actions and housekeeping
    # ------------------------------------------------------------------

    def reset_instance(self) -> None:
        with self._lock:
            self.context.instance.reset()
            self.notifier.emit(Notification.INSTANCE_STATE_CHANGED)

    def reset_statistics(self) -> None:
        with self._lock:
            self.context.statistics.reset()

    def cleanup(self) -> int:
        """Prune players and log entries older than the staleness window.

        Returns the number of players removed.
        """
        with self._lock:
            staleness = timedelta(minutes=self.settings.player_stale_minutes)
            pruned = self.context.roster.prune(staleness)
            self.events.trim(self.events.clock() - staleness)
            return len(pruned)

    def mark_disconnected(self) -> None:
        with self._lock:
            self.connected = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def instance_state(self):
        return self.context.instance.state

    def predict_next(self) -> Prediction:
        with self._lock:
            return self.context.escalation.predict_next(self.context.instance.state,
                                                        round_open=self.lifecycle.is_open)

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            ctx = self.context
            state = ctx.instance.state
            stats = ctx.statistics
            game_data = ctx.game_data
            return SessionSnapshot(
                connected=self.connected,
                local_player_name=ctx.roster.local_player_name,
                terrors=[
                    TerrorResponse(name=t.name, display_color=t.display_color,
                                   stun_policy=t.stun_policy.value)
                    for t in ctx.terrors
                ],
                players=[PlayerResponse.model_validate(p) for p in ctx.roster.players.values()],
                alive_count=ctx.roster.alive_count,
                total_count=ctx.roster.total_count,
                round_open=self.lifecycle.is_open,
                open_round_type=self.lifecycle.current.round_type if self.lifecycle.current else None,
                history=[RoundRecordResponse.model_validate(r) for r in self.lifecycle.history],
                instance=InstanceStateResponse.model_validate(state),
                prediction=self.predict_next().value,
                stats=StatsResponse(
                    total_rounds=stats.rounds.total_rounds,
                    survived_rounds=stats.rounds.survived_rounds,
                    round_type_counts=dict(stats.rounds.round_type_counts),
                    terror_type_counts=dict(stats.terrors.terror_type_counts),
                    terrors_met=stats.terrors.terrors_met,
                ),
                game_data=GameDataResponse(
                    round_type=game_data.round_type_display,
                    location=game_data.location_display,
                    round_active=game_data.round_active,
                    alive=game_data.alive_signal,
                    saboteur=game_data.saboteur,
                    page_count=game_data.page_display,
                ),
            )
