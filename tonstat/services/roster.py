"""Player roster for the current instance.

Reconciles two kinds of input: periodic full TRACKER snapshots and
incremental join / leave / death events. Player identity on the feed is
not always consistent between event sources (ids are sometimes missing,
names drift in spacing or punctuation), so lookups go through a ranked
matcher that tries the strictest rule first.
"""

import logging
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ..schemas.events import TrackerEntry


logger = logging.getLogger(__name__)

UNKNOWN_PLAYER = "Unknown"


class MatchRank(Enum):
    """Identity rules, strictest first."""
    EXACT_ID = 1
    EXACT_NAME = 2
    NORMALIZED_NAME = 3
    SUBSTRING = 4


LEAVE_RANKS = (MatchRank.EXACT_ID, MatchRank.EXACT_NAME, MatchRank.SUBSTRING)
DEATH_RANKS = (MatchRank.EXACT_ID, MatchRank.EXACT_NAME, MatchRank.NORMALIZED_NAME, MatchRank.SUBSTRING)


def sanitize_player_name(name: Optional[str], max_length: int = 50) -> str:
    """Strip control characters, trim, and cap overlong names."""
    if not name:
        return UNKNOWN_PLAYER
    cleaned = "".join(c for c in name if unicodedata.category(c) != "Cc").strip()
    if not cleaned:
        return UNKNOWN_PLAYER
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length - 3] + "..."
    return cleaned


def normalize_player_name(name: Optional[str]) -> str:
    """Comparison key tolerant of case, spaces, underscores and hyphens."""
    if not name:
        return ""
    return (name.strip().lower()
            .replace(" ", "")
            .replace("_", "")
            .replace("-", ""))


@dataclass
class PlayerRecord:
    name: str
    stable_id: str
    is_local: bool = False
    is_alive: bool = True
    joined_at: datetime = field(default_factory=datetime.now)
    last_seen: datetime = field(default_factory=datetime.now)
    is_warning_user: bool = False


@dataclass
class RosterDiff:
    """Membership changes produced by a full snapshot."""
    joined: List[str] = field(default_factory=list)
    left: List[str] = field(default_factory=list)
    liveness_changed: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.joined or self.left or self.liveness_changed)


class PlayerMatcher:
    """Ranked identity lookup over a roster.

    Returns the first record hit by the first rule (in the order given)
    that matches anything; within a rule, roster insertion order decides.
    """

    def __init__(self, players: Dict[str, PlayerRecord]):
        self.players = players

    def match(self, query: str, ranks: Sequence[MatchRank] = DEATH_RANKS,
              include_local: bool = True) -> Optional[PlayerRecord]:
        if not query:
            return None
        candidates = [p for p in self.players.values() if include_local or not p.is_local]
        for rank in ranks:
            for player in candidates:
                if self._hits(rank, query, player):
                    return player
        return None

    @staticmethod
    def _hits(rank: MatchRank, query: str, player: PlayerRecord) -> bool:
        if rank == MatchRank.EXACT_ID:
            return player.stable_id == query
        if rank == MatchRank.EXACT_NAME:
            return player.name == query
        if rank == MatchRank.NORMALIZED_NAME:
            key = normalize_player_name(query)
            return bool(key) and normalize_player_name(player.name) == key
        if rank == MatchRank.SUBSTRING:
            if not player.name:
                return False
            return query in player.name or player.name in query
        return False


class PlayerRoster:
    """Player identity -> liveness / metadata for one connection."""

    def __init__(
        self,
        max_name_length: int = 50,
        warning_users: Iterable[str] = (),
        clock: Callable[[], datetime] = datetime.now,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.players: Dict[str, PlayerRecord] = {}
        self.local_player_id: str = ""
        self.local_player_name: str = ""
        self.max_name_length = max_name_length
        self.warning_users = {name.strip().lower() for name in warning_users if name.strip()}
        self.clock = clock
        self.on_change = on_change
        self.matcher = PlayerMatcher(self.players)

    def __len__(self) -> int:
        return len(self.players)

    def __contains__(self, player_id: str) -> bool:
        return player_id in self.players

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def local_player(self) -> Optional[PlayerRecord]:
        if not self.local_player_id:
            return None
        return self.players.get(self.local_player_id)

    @property
    def alive_count(self) -> int:
        return sum(1 for p in self.players.values() if p.is_alive)

    @property
    def total_count(self) -> int:
        return len(self.players)

    def is_warning_user(self, name: str) -> bool:
        if not name or not self.warning_users:
            return False
        return name.strip().lower() in self.warning_users

    def is_local_name(self, name: str) -> bool:
        """Whether a death-feed name refers to the local player."""
        local = self.local_player
        if local is not None:
            matched = self.matcher.match(name, DEATH_RANKS)
            if matched is not None:
                return matched.is_local
        if not self.local_player_name:
            return False
        return normalize_player_name(name) == normalize_player_name(self.local_player_name)

    def sanitize(self, name: Optional[str]) -> str:
        return sanitize_player_name(name, self.max_name_length)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_local_player(self, name: str, player_id: str) -> PlayerRecord:
        """Clear the roster and seed it with the local player (on CONNECTED)."""
        if name and name.strip():
            name = self.sanitize(name)
        else:
            name = f"You_{player_id[:8]}"
        self.players.clear()
        self.local_player_id = player_id
        self.local_player_name = name
        now = self.clock()
        record = PlayerRecord(name=name, stable_id=player_id, is_local=True,
                              is_alive=True, joined_at=now, last_seen=now)
        self.players[player_id] = record
        logger.info(f"Local player: '{name}' ({player_id})")
        self._changed()
        return record

    def apply_full_snapshot(self, entries: Iterable[TrackerEntry]) -> RosterDiff:
        """Reconcile the roster against an authoritative tracker snapshot.

        Known ids keep their ``joined_at``; ids missing from the snapshot
        are removed, except the local player.
        """
        now = self.clock()
        diff = RosterDiff()
        seen: Dict[str, PlayerRecord] = {}

        for entry in entries:
            name = self.sanitize(entry.name)
            existing = self.players.get(entry.user_id)
            if existing is not None:
                if existing.is_alive != entry.is_alive:
                    diff.liveness_changed = True
                existing.name = name
                existing.is_alive = entry.is_alive
                existing.is_warning_user = self.is_warning_user(name)
                existing.last_seen = now
                existing.is_local = entry.user_id == self.local_player_id
                seen[entry.user_id] = existing
            else:
                seen[entry.user_id] = PlayerRecord(
                    name=name,
                    stable_id=entry.user_id,
                    is_local=bool(self.local_player_id) and entry.user_id == self.local_player_id,
                    is_alive=entry.is_alive,
                    joined_at=now,
                    last_seen=now,
                    is_warning_user=self.is_warning_user(name),
                )
                diff.joined.append(entry.user_id)

        for player_id, record in self.players.items():
            if player_id in seen:
                continue
            if record.is_local:
                seen[player_id] = record
            else:
                diff.left.append(player_id)

        self.players.clear()
        self.players.update(seen)
        logger.debug(f"Tracker snapshot: {len(self.players)} players "
                     f"(+{len(diff.joined)} / -{len(diff.left)})")
        if diff.changed:
            self._changed()
        return diff

    def join(self, name: str, player_id: str, round_active: bool) -> PlayerRecord:
        """Insert or refresh a player from a join event.

        A player joining mid-round is presumed dead (spectating) until the
        round ends.
        """
        if (not name or not name.strip()) and player_id:
            name = f"Player_{player_id[:8]}"
        name = self.sanitize(name)
        player_id = player_id or name
        now = self.clock()

        existing = self.players.get(player_id)
        if existing is not None:
            existing.name = name
            existing.last_seen = now
            existing.is_warning_user = self.is_warning_user(name)
            logger.debug(f"Player refreshed: {name}")
            return existing

        record = PlayerRecord(
            name=name,
            stable_id=player_id,
            is_local=bool(self.local_player_id) and player_id == self.local_player_id,
            is_alive=not round_active,
            joined_at=now,
            last_seen=now,
            is_warning_user=self.is_warning_user(name),
        )
        self.players[player_id] = record
        logger.info(f"Player joined: {name} (round active: {round_active}, alive: {record.is_alive})")
        self._changed()
        return record

    def leave(self, name: str, player_id: str = "") -> Optional[PlayerRecord]:
        """Remove the first non-local player matching id, exact name, or substring."""
        record = None
        if player_id:
            candidate = self.players.get(player_id)
            if candidate is not None and not candidate.is_local:
                record = candidate
        if record is None:
            record = self.matcher.match(self.sanitize(name), LEAVE_RANKS, include_local=False)
        if record is None:
            logger.warning(f"Leaving player not found: '{name}'")
            return None
        del self.players[record.stable_id]
        logger.info(f"Player left: {record.name}")
        self._changed()
        return record

    def mark_dead(self, name: str) -> Optional[PlayerRecord]:
        record = self.matcher.match(self.sanitize(name), DEATH_RANKS)
        if record is None:
            known = ", ".join(f"'{p.name}'" for p in self.players.values())
            logger.warning(f"Death for unknown player '{name}' (known: {known})")
            return None
        record.last_seen = self.clock()
        if record.is_alive:
            record.is_alive = False
            self._changed()
        return record

    def set_local_alive(self, alive: bool) -> bool:
        local = self.local_player
        if local is None:
            return False
        local.last_seen = self.clock()
        if local.is_alive == alive:
            return False
        local.is_alive = alive
        self._changed()
        return True

    def reset_all_alive(self) -> None:
        now = self.clock()
        revived = 0
        for player in self.players.values():
            if not player.is_alive:
                revived += 1
            player.is_alive = True
            player.last_seen = now
        logger.debug(f"Reset all players alive ({revived} revived)")
        if revived:
            self._changed()

    def prune(self, staleness: timedelta = timedelta(minutes=60)) -> List[PlayerRecord]:
        cutoff = self.clock() - staleness
        stale = [p for p in self.players.values()
                 if p.last_seen < cutoff and not p.is_local and p.stable_id != self.local_player_id]
        for player in stale:
            logger.info(f"Pruning stale player: {player.name}")
            del self.players[player.stable_id]
        if stale:
            self._changed()
        return stale

    def clear(self) -> None:
        self.players.clear()
        self.local_player_id = ""
        self.local_player_name = ""

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()
