"""Escalation cycle predictor.

The game alternates a guaranteed normal slot with a slot that may draw
from the special pool. Nothing on the feed says which slot a round filled,
so this module infers it from the sequence of finished round labels and
keeps a single bounded counter: how many normal rounds have elapsed since
the last special one.

Transitions per finished round (N = counter before the round):

    category            N=0   N=1   N>=2
    baseline-normal      1     2     0   (third normal: owner heuristic)
    override             1     1     0
    moon, first seen     1     1     0
    moon, repeat         0     0     0
    ordinary special     0     0     0

Override rounds at N=1 stay at 1: their slot cannot be derived from the
label, and this is a known approximation of the game's selection rules.
"""

import logging
from enum import Enum
from typing import Optional

from .instance_tracker import InstanceState
from .round_classifier import RoundCategory, classify_round, moon_variant_of


logger = logging.getLogger(__name__)

NORMAL_COUNT_CAP = 2


class CycleCategory(Enum):
    """Finished-round classification used by the transition table."""
    BASELINE_NORMAL = "baseline_normal"
    OVERRIDE = "override"
    MOON_FIRST = "moon_first"
    MOON_REPEAT = "moon_repeat"
    ORDINARY_SPECIAL = "ordinary_special"


class Prediction(Enum):
    TWILIGHT = "Twilight"
    MYSTIC_MOON = "Mystic Moon"
    SOLSTICE = "Solstice"
    NORMAL_ONLY = "normal only"
    NORMAL = "normal"
    NORMAL_OR_SPECIAL = "normal or special"
    SPECIAL = "special"


class EscalationPredictor:
    """Advances the normal-round counter and predicts the next round."""

    def __init__(self, mystic_moon_threshold: int = 15):
        self.mystic_moon_threshold = mystic_moon_threshold

    @staticmethod
    def categorize(state: InstanceState, label: str) -> CycleCategory:
        category = classify_round(label)
        if category == RoundCategory.BASELINE_NORMAL:
            return CycleCategory.BASELINE_NORMAL
        if category == RoundCategory.OVERRIDE:
            return CycleCategory.OVERRIDE
        if category == RoundCategory.MOON_VARIANT:
            variant = moon_variant_of(label)
            if variant is not None and state.first_occurrence_moon == variant:
                return CycleCategory.MOON_FIRST
            return CycleCategory.MOON_REPEAT
        return CycleCategory.ORDINARY_SPECIAL

    def on_round_finished(self, state: InstanceState, label: str, survived: bool) -> CycleCategory:
        """Apply one finished round to the cycle counter."""
        was_owner = state.is_instance_owner
        if survived:
            state.survived_round_tally += 1
            if was_owner:
                state.estimated_survival_count += 1

        category = self.categorize(state, label)
        before = state.normal_round_count
        at_cap = before >= NORMAL_COUNT_CAP

        if category == CycleCategory.BASELINE_NORMAL:
            if at_cap:
                state.normal_round_count = 0
                self._third_normal(state)
            else:
                state.normal_round_count = before + 1
        elif category in (CycleCategory.OVERRIDE, CycleCategory.MOON_FIRST):
            state.normal_round_count = 0 if at_cap else 1
        else:
            state.normal_round_count = 0

        if category in (CycleCategory.MOON_FIRST, CycleCategory.MOON_REPEAT,
                        CycleCategory.ORDINARY_SPECIAL):
            state.special_unlocked = True

        state.last_round_type = label
        logger.info(f"Round finished: {label} ({category.value}), "
                    f"normal count {before} -> {state.normal_round_count}")
        return category

    @staticmethod
    def _third_normal(state: InstanceState) -> None:
        # Three baseline rounds in a row: the special slot came up empty,
        # so the pool is still locked and this client most likely opened
        # the room.
        state.is_instance_owner = True
        state.special_unlocked = False
        state.estimated_survival_count = state.survived_round_tally
        logger.info(f"Instance owner inferred, estimated survivals {state.estimated_survival_count}")

    def predict_next(self, state: InstanceState, round_open: bool = False) -> Prediction:
        """Predict the category of the next round, in priority order."""
        if state.all_birds_met and not state.twilight_unlocked:
            return Prediction.TWILIGHT
        if (state.estimated_survival_count >= self.mystic_moon_threshold
                and not state.mystic_moon_unlocked):
            return Prediction.MYSTIC_MOON
        if state.all_moons_unlocked and not state.solstice_unlocked:
            return Prediction.SOLSTICE
        if not state.special_unlocked:
            return Prediction.NORMAL_ONLY

        reference: Optional[str]
        if round_open and state.current_round_type:
            reference = state.current_round_type
            pending = 1
        else:
            reference = state.last_round_type
            pending = 0

        if not reference:
            return Prediction.NORMAL_OR_SPECIAL

        category = classify_round(reference)
        if category in (RoundCategory.ORDINARY_SPECIAL, RoundCategory.MOON_VARIANT):
            return Prediction.NORMAL
        if category == RoundCategory.OVERRIDE:
            return Prediction.NORMAL_OR_SPECIAL
        if state.normal_round_count + pending >= NORMAL_COUNT_CAP:
            return Prediction.SPECIAL
        return Prediction.NORMAL_OR_SPECIAL
