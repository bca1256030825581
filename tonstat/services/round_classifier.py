"""Round type classification.

Round labels arrive localized (English or Japanese, depending on the game
client). Classification is a keyword table lookup: case-insensitive
substring match unless the entry asks for an exact label match. Tables are
checked in precedence order, so baseline-normal wins if a label ever
matches more than one group.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


class RoundCategory(Enum):
    """Slot behaviour of a round type in the selection cycle."""
    BASELINE_NORMAL = "baseline_normal"    # Only ever fills the guaranteed normal slot
    MOON_VARIANT = "moon_variant"          # One of the four rare moons
    OVERRIDE = "override"                  # Can fill either slot
    ORDINARY_SPECIAL = "ordinary_special"  # General special pool


class MoonVariant(Enum):
    BLOOD_MOON = "Blood Moon"
    TWILIGHT = "Twilight"
    MYSTIC_MOON = "Mystic Moon"
    SOLSTICE = "Solstice"


@dataclass(frozen=True)
class RoundKeyword:
    keyword: str
    exact: bool = False

    def matches(self, lowered_label: str) -> bool:
        if self.exact:
            return lowered_label.strip() == self.keyword
        return self.keyword in lowered_label


def _kw(*keywords: str, exact: bool = False) -> Tuple[RoundKeyword, ...]:
    return tuple(RoundKeyword(k.lower(), exact) for k in keywords)


BASELINE_NORMAL_KEYWORDS = (
    _kw("classic", "クラシック", "走れ")
    + _kw("run", exact=True)
)

MOON_VARIANT_KEYWORDS: Dict[MoonVariant, Tuple[RoundKeyword, ...]] = {
    MoonVariant.BLOOD_MOON: _kw("blood moon", "ブラッドムーン"),
    MoonVariant.TWILIGHT: _kw("twilight", "トワイライト"),
    MoonVariant.MYSTIC_MOON: _kw("mystic moon", "ミスティックムーン"),
    MoonVariant.SOLSTICE: _kw("solstice", "ソルスティス"),
}

OVERRIDE_KEYWORDS = _kw(
    "ghost", "ゴースト",
    "8 pages", "8ページ",
    "unbound", "アンバウンド",
)

ORDINARY_SPECIAL_KEYWORDS = _kw(
    "alternate", "オルタネイト",
    "punished", "パニッシュ",
    "cracked", "狂気",
    "sabotage", "サボタージュ",
    "fog", "霧",
    "bloodbath", "ブラッドバス",
    "double trouble", "ダブルトラブル",
    "midnight", "ミッドナイト",
)

MIDNIGHT_KEYWORDS = _kw("midnight", "ミッドナイト")


def _any_match(keywords: Tuple[RoundKeyword, ...], lowered: str) -> bool:
    return any(k.matches(lowered) for k in keywords)


def moon_variant_of(label: str) -> Optional[MoonVariant]:
    lowered = (label or "").lower()
    for variant, keywords in MOON_VARIANT_KEYWORDS.items():
        if _any_match(keywords, lowered):
            return variant
    return None


def is_midnight(label: str) -> bool:
    return _any_match(MIDNIGHT_KEYWORDS, (label or "").lower())


def classify_round(label: str) -> RoundCategory:
    """Map a round label to its category.

    Labels that match no table are treated as part of the special pool.
    """
    lowered = (label or "").lower()
    if _any_match(BASELINE_NORMAL_KEYWORDS, lowered):
        return RoundCategory.BASELINE_NORMAL
    if moon_variant_of(lowered) is not None:
        return RoundCategory.MOON_VARIANT
    if _any_match(OVERRIDE_KEYWORDS, lowered):
        return RoundCategory.OVERRIDE
    return RoundCategory.ORDINARY_SPECIAL


def is_special(label: str) -> bool:
    """True for rounds drawn from the special pool (moons included)."""
    return classify_round(label) in (RoundCategory.MOON_VARIANT, RoundCategory.ORDINARY_SPECIAL)


def keyword_table() -> List[Tuple[str, RoundCategory]]:
    """Flattened (keyword, category) view in precedence order."""
    rows = [(k.keyword, RoundCategory.BASELINE_NORMAL) for k in BASELINE_NORMAL_KEYWORDS]
    for keywords in MOON_VARIANT_KEYWORDS.values():
        rows.extend((k.keyword, RoundCategory.MOON_VARIANT) for k in keywords)
    rows.extend((k.keyword, RoundCategory.OVERRIDE) for k in OVERRIDE_KEYWORDS)
    rows.extend((k.keyword, RoundCategory.ORDINARY_SPECIAL) for k in ORDINARY_SPECIAL_KEYWORDS)
    return rows
