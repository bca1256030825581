"""Round lifecycle: open on ROUND_TYPE start, finalize on ROUND_TYPE end.

Two states, Idle and RoundOpen. Finalizing a round computes the survival
outcome, appends an immutable RoundRecord to the bounded history, revives
every player, and hands the record to the escalation predictor, the
instance tracker, and the statistics aggregator, in that order.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Deque, List, Optional, Tuple

from .notifications import Notification

if TYPE_CHECKING:
    from .context import SessionContext


logger = logging.getLogger(__name__)

TERROR_NAME_SEPARATOR = ", "
ITEM_SEPARATOR = ", "
NO_TERRORS = "Unknown"
NO_ITEMS = "none"
UNKNOWN_MAP = "Unknown"


@dataclass(frozen=True)
class RoundRecord:
    """A finished round. Never mutated after finalization."""
    started_at: datetime
    round_type: str
    map_name: str
    terror_names: str
    items: str
    survived: bool
    terrors: Tuple[str, ...] = ()


@dataclass
class OpenRound:
    started_at: datetime
    round_type: str
    map_name: str


class RoundLifecycleTracker:
    """Owns the single open round and the finished-round history."""

    def __init__(self, context: "SessionContext", clock: Callable[[], datetime] = datetime.now):
        self.context = context
        self.clock = clock
        self.current: Optional[OpenRound] = None
        self.items: List[str] = []
        self.died_this_round = False
        self._history: Deque[RoundRecord] = deque(maxlen=context.settings.round_history_limit)
        self.rounds_this_connection = 0
        # Replayed rounds still to skip because this session already logged them
        self._known_rounds = 0

    @property
    def is_open(self) -> bool:
        return self.current is not None

    @property
    def history(self) -> List[RoundRecord]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def discard_open_round(self) -> None:
        if self.current is not None:
            logger.info(f"Discarding open round '{self.current.round_type}'")
        self.current = None
        self.items.clear()
        self.died_this_round = False

    def start_connection(self, known_rounds: int = 0) -> None:
        """Begin a connection whose buffered replay repeats ``known_rounds``
        rounds that are already in the history."""
        self.discard_open_round()
        self.rounds_this_connection = 0
        self._known_rounds = known_rounds

    def end_replay(self) -> None:
        if self._known_rounds:
            logger.info(f"Replay ended {self._known_rounds} rounds short of the logged history")
        self._known_rounds = 0

    def on_round_start(self, label: str) -> None:
        ctx = self.context
        if self.current is not None:
            logger.warning(f"Round '{label}' started while '{self.current.round_type}' "
                           f"was still open; discarding the open round")

        self.items.clear()
        self.died_this_round = False
        self.current = OpenRound(
            started_at=self.clock(),
            round_type=label,
            map_name=ctx.game_data.map_name or UNKNOWN_MAP,
        )
        logger.info(f"Round started: {label} on {self.current.map_name}")

        if ctx.instance.on_round_start(label) is not None:
            ctx.notifier.emit(Notification.INSTANCE_STATE_CHANGED)
        ctx.notifier.emit(Notification.ROUND_STARTED, label)

    def on_death(self) -> None:
        if self.current is None:
            logger.debug("Local death outside a round ignored for outcome")
            return
        self.died_this_round = True

    def on_alive_signal(self, alive: bool) -> None:
        if not alive:
            self.on_death()

    def add_item(self, name: str) -> None:
        if name not in self.items:
            self.items.append(name)

    def on_round_end(self, label: str) -> Optional[RoundRecord]:
        """Finalize the open round. No-op (with a warning) when Idle."""
        if self.current is None:
            logger.warning(f"Round end '{label}' with no open round; ignoring")
            return None

        ctx = self.context
        open_round = self.current
        survived = self._resolve_survival()

        if ctx.terrors:
            terror_names = TERROR_NAME_SEPARATOR.join(t.name for t in ctx.terrors)
        else:
            terror_names = NO_TERRORS

        record = RoundRecord(
            started_at=open_round.started_at,
            round_type=open_round.round_type,
            map_name=open_round.map_name,
            terror_names=terror_names,
            items=ITEM_SEPARATOR.join(self.items) if self.items else NO_ITEMS,
            survived=survived,
            terrors=tuple(t.name for t in ctx.terrors),
        )
        self.rounds_this_connection += 1
        log_round = self._known_rounds == 0
        if log_round:
            self._history.append(record)
        else:
            self._known_rounds -= 1

        self.current = None
        self.died_this_round = False
        self.items.clear()

        alive_count = ctx.roster.alive_count
        ctx.roster.reset_all_alive()
        ctx.game_data.saboteur = False

        ctx.escalation.on_round_finished(ctx.instance.state, record.round_type, survived)
        ctx.instance.on_round_end(record.round_type, alive_count)
        if log_round:
            ctx.statistics.record(record)

        outcome = "survived" if survived else "died"
        if log_round:
            logger.info(f"Round logged: {record.round_type} - {outcome} - terrors: {record.terror_names}")
        else:
            logger.debug(f"Round replayed, not logged: {record.round_type} - {outcome}")

        ctx.notifier.emit(Notification.ROUND_ENDED)
        ctx.notifier.emit(Notification.INSTANCE_STATE_CHANGED)
        return record

    def _resolve_survival(self) -> bool:
        # The death flag wins over any later alive signal
        if self.died_this_round:
            return False

        local = self.context.roster.local_player
        if local is not None:
            return local.is_alive

        alive_signal = self.context.game_data.alive_signal
        if alive_signal is not None:
            return alive_signal

        logger.debug("Survival unknown at round end, recording as died")
        return False
