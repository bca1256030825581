"""Connection-scoped instance state and one-way unlock tracking.

Unlock flags (the four moons, the three birds) only ever go from False to
True; the only way back is ``InstanceTracker.reset``, which replaces the
whole state.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .round_classifier import MoonVariant, is_midnight, moon_variant_of


logger = logging.getLogger(__name__)


# Bird terrors, matched case-insensitively against active terror names
BIG_BIRD_KEYWORDS = ("big bird", "ビッグバード")
JUDGEMENT_BIRD_KEYWORDS = ("judgement bird", "judgment bird", "ジャッジメントバード")
PUNISHING_BIRD_KEYWORDS = ("punishing bird", "パニッシングバード")


@dataclass
class InstanceState:
    """Derived facts about the current instance (used for round prediction)."""

    # Heuristic: this client created the room
    is_instance_owner: bool = False

    # Defaults to True to account for joining an instance already in progress
    special_unlocked: bool = True

    # Normal rounds since the last special (2 means "at cap")
    normal_round_count: int = 0

    last_round_type: str = ""
    current_round_type: str = ""

    # Instance-wide survival estimate, only known once ownership is inferred
    estimated_survival_count: int = 0
    survived_round_tally: int = 0

    # Bird encounters
    met_big_bird: bool = False
    met_judgement_bird: bool = False
    met_punishing_bird: bool = False

    # Moon unlocks
    blood_moon_unlocked: bool = False
    twilight_unlocked: bool = False
    mystic_moon_unlocked: bool = False
    solstice_unlocked: bool = False

    midnight_survived: bool = False

    # Set at round start when the open round is a moon's first appearance
    first_occurrence_moon: Optional[MoonVariant] = None

    @property
    def all_birds_met(self) -> bool:
        return self.met_big_bird and self.met_judgement_bird and self.met_punishing_bird

    @property
    def all_moons_unlocked(self) -> bool:
        return self.blood_moon_unlocked and self.twilight_unlocked and self.mystic_moon_unlocked

    def is_moon_unlocked(self, variant: MoonVariant) -> bool:
        return getattr(self, MOON_FLAGS[variant])


MOON_FLAGS = {
    MoonVariant.BLOOD_MOON: "blood_moon_unlocked",
    MoonVariant.TWILIGHT: "twilight_unlocked",
    MoonVariant.MYSTIC_MOON: "mystic_moon_unlocked",
    MoonVariant.SOLSTICE: "solstice_unlocked",
}

BIRD_FLAGS = (
    (BIG_BIRD_KEYWORDS, "met_big_bird"),
    (JUDGEMENT_BIRD_KEYWORDS, "met_judgement_bird"),
    (PUNISHING_BIRD_KEYWORDS, "met_punishing_bird"),
)


class InstanceTracker:
    """Owns the InstanceState and applies unlock rules to it."""

    def __init__(self) -> None:
        self.state = InstanceState()

    def reset(self) -> InstanceState:
        """Replace the state with a fresh one (user-initiated)."""
        self.state = InstanceState()
        logger.info("Instance state reset")
        return self.state

    def on_round_start(self, label: str) -> Optional[MoonVariant]:
        """Record the open round; unlock a moon on its first appearance.

        Returns the moon variant when this round is its first occurrence.
        """
        state = self.state
        state.current_round_type = label
        state.first_occurrence_moon = None

        variant = moon_variant_of(label)
        if variant is None or state.is_moon_unlocked(variant):
            return None

        setattr(state, MOON_FLAGS[variant], True)
        state.first_occurrence_moon = variant
        logger.info(f"{variant.value} unlocked (first occurrence)")
        return variant

    def on_terrors_updated(self, names: Iterable[str]) -> bool:
        """Flag bird encounters as soon as the terrors are announced."""
        state = self.state
        changed = False
        for name in names:
            lowered = name.lower()
            for keywords, flag in BIRD_FLAGS:
                if getattr(state, flag):
                    continue
                if any(keyword in lowered for keyword in keywords):
                    setattr(state, flag, True)
                    changed = True
                    logger.info(f"Bird encountered: {name}")
        return changed

    def on_round_end(self, label: str, alive_count: int) -> bool:
        """Apply round-end unlock rules. ``alive_count`` is taken before the
        roster's round-end revive."""
        state = self.state
        changed = False

        if is_midnight(label) and alive_count > 0:
            if not state.midnight_survived:
                state.midnight_survived = True
                changed = True
            if not state.blood_moon_unlocked:
                state.blood_moon_unlocked = True
                changed = True
                logger.info("Blood Moon unlocked (Midnight survived)")

        state.first_occurrence_moon = None
        return changed
