"""Terror catalog: stun policy lookup and composite-name splitting.

Stun policies come from a built-in table of community knowledge, optionally
overridden by a terrorsInfo.json catalog whose trait lists carry a free-text
"スタン" entry.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


logger = logging.getLogger(__name__)


class StunPolicy(Enum):
    """Whether stunning a terror is worthwhile."""
    SAFE = "safe"                # green - stun freely
    CAUTION = "caution"          # yellow - conditional
    FORBIDDEN = "forbidden"      # red - triggers a nasty counter
    INEFFECTIVE = "ineffective"  # grey - stun does nothing
    UNKNOWN = "unknown"          # purple - no data


class TraitCategory(Enum):
    MOVEMENT = "movement"
    ATTACK = "attack"
    SPECIAL = "special"
    SPEED = "speed"
    COUNTER = "counter"
    OTHER = "other"


# Co-op pairs announced as "A & B" are split into separate entities,
# except for names listed here which are a single terror.
UNSPLITTABLE_NAMES = ("Mona & The Mountain",)

COMPOSITE_SEPARATOR = " & "

STUN_TRAIT_KEY = "スタン"


BUILTIN_STUN_POLICIES: Dict[str, StunPolicy] = {
    # Forbidden - heavy counters
    "Atrached": StunPolicy.FORBIDDEN,
    "Charlotte": StunPolicy.FORBIDDEN,
    "Don't Touch Me": StunPolicy.FORBIDDEN,
    "Haket": StunPolicy.FORBIDDEN,
    "Hell Bell": StunPolicy.FORBIDDEN,
    "MopeMope": StunPolicy.FORBIDDEN,
    "Punishing Bird": StunPolicy.FORBIDDEN,
    "Specimen 10": StunPolicy.FORBIDDEN,
    "Sturm": StunPolicy.FORBIDDEN,
    "Tricky": StunPolicy.FORBIDDEN,
    "V2": StunPolicy.FORBIDDEN,
    "Apathy": StunPolicy.FORBIDDEN,
    "This Killer Does Not Exist": StunPolicy.FORBIDDEN,
    "Try Not To Touch Me": StunPolicy.FORBIDDEN,
    "Nameless": StunPolicy.FORBIDDEN,
    "Rewrite": StunPolicy.FORBIDDEN,
    "Blue Haket": StunPolicy.FORBIDDEN,
    "Toren's Shadow": StunPolicy.FORBIDDEN,
    "Purple Guy": StunPolicy.FORBIDDEN,

    # Caution - stun only under conditions
    "Dr. Tox": StunPolicy.CAUTION,
    "Yolm": StunPolicy.CAUTION,
    "The Batter": StunPolicy.CAUTION,
    "Pandora": StunPolicy.CAUTION,
    "Roblander": StunPolicy.CAUTION,
    "Inverted Roblander": StunPolicy.CAUTION,
    "Arrival": StunPolicy.CAUTION,

    # Safe
    "Corrupted Toys": StunPolicy.SAFE,
    "Sawrunner": StunPolicy.SAFE,
    "Demented Spongebob": StunPolicy.SAFE,
    "Dog Mimic": StunPolicy.SAFE,
    "Ao Oni": StunPolicy.SAFE,
    "Tails Doll": StunPolicy.SAFE,
    "Black Sun": StunPolicy.SAFE,
    "CENSORED": StunPolicy.SAFE,
    "WhiteNight": StunPolicy.SAFE,
    "Starved": StunPolicy.SAFE,
    "The Painter": StunPolicy.SAFE,
    "with many voices": StunPolicy.SAFE,
    "Karol_Corpse": StunPolicy.SAFE,
    "MX": StunPolicy.SAFE,
    "Dev bytes": StunPolicy.SAFE,
    "Withered Bonnie": StunPolicy.SAFE,
    "The Boys": StunPolicy.SAFE,
    "Seek": StunPolicy.SAFE,
    "Sonic": StunPolicy.SAFE,
    "Bad batter": StunPolicy.SAFE,
    "Mirror": StunPolicy.SAFE,
    "Legs": StunPolicy.SAFE,
    "Mona & The Mountain": StunPolicy.SAFE,
    "Garten Goers": StunPolicy.SAFE,
    "Specimen2": StunPolicy.SAFE,
    "Specimen 2": StunPolicy.SAFE,
    "Pale Association": StunPolicy.SAFE,
    "Toy Enforcer": StunPolicy.SAFE,
    "TBH": StunPolicy.SAFE,
    "Doombox": StunPolicy.SAFE,
    "Apocrean Harvester": StunPolicy.SAFE,
    "Arkus": StunPolicy.SAFE,
    "Cartoon Cat": StunPolicy.SAFE,
    "Shinto": StunPolicy.SAFE,
    "BFF": StunPolicy.SAFE,
    "Security": StunPolicy.SAFE,
    "The Swarm": StunPolicy.SAFE,
    "Shiteyanyo": StunPolicy.SAFE,
    "Bacteria": StunPolicy.SAFE,
    "HoovyDundy": StunPolicy.SAFE,
    "Lunatic Cultist": StunPolicy.SAFE,
    "Prisoner": StunPolicy.SAFE,
    "All-Around-Helpers": StunPolicy.SAFE,
    "Sakuya The Ripper": StunPolicy.SAFE,
    "Sakuya Izayoi": StunPolicy.SAFE,
    "Miros Birds": StunPolicy.SAFE,
    "Ink Demon": StunPolicy.SAFE,
    "Retep": StunPolicy.SAFE,
    "Those Olden Days": StunPolicy.SAFE,
    "Olden Days": StunPolicy.SAFE,
    "Spamton": StunPolicy.SAFE,
    "Wild Yet Curious Creature": StunPolicy.SAFE,
    "Manti": StunPolicy.SAFE,
    "Cubor's Revenge": StunPolicy.SAFE,
    "Origin": StunPolicy.SAFE,
    "Beyond": StunPolicy.SAFE,
    "ToN": StunPolicy.SAFE,
    "poly": StunPolicy.SAFE,
    "ドッグミミック": StunPolicy.SAFE,
    "FOX Squad": StunPolicy.SAFE,
    "Malicious Twins": StunPolicy.SAFE,
    "Parhelion's Victims": StunPolicy.SAFE,
    "Bravera": StunPolicy.SAFE,
    "MissingNo": StunPolicy.SAFE,
    "Living Shadow": StunPolicy.SAFE,
    "ペスト医師": StunPolicy.SAFE,
    "Clockey": StunPolicy.SAFE,
    "Terror of Nowhere": StunPolicy.SAFE,
    "Christian Brutal Sniper": StunPolicy.SAFE,

    # No data yet
    "The LifeBringer": StunPolicy.UNKNOWN,
    "Tragedy": StunPolicy.UNKNOWN,
    "The Observation": StunPolicy.UNKNOWN,
    "S.T.G.M": StunPolicy.UNKNOWN,
    "Monarch": StunPolicy.UNKNOWN,
    "Express Train To Hell": StunPolicy.UNKNOWN,
    "Parhelion": StunPolicy.UNKNOWN,
    "Virus": StunPolicy.UNKNOWN,
}

# Keyword -> policy for the free-text stun trait, checked in order
STUN_TEXT_KEYWORDS = [
    (("無効", "不可"), StunPolicy.INEFFECTIVE),
    (("厳禁", "禁止", "非推奨"), StunPolicy.FORBIDDEN),
    (("注意", "カウンター", "条件"), StunPolicy.CAUTION),
    (("有効", "推奨"), StunPolicy.SAFE),
]

TRAIT_CATEGORY_KEYWORDS = [
    (("追跡", "徘徊", "壁貫通", "停止"), TraitCategory.MOVEMENT),
    (("即死", "デバフ", "ダメージ", "掴み"), TraitCategory.ATTACK),
    (("テレポート", "召喚", "変身", "複数"), TraitCategory.SPECIAL),
    (("速度", "加速"), TraitCategory.SPEED),
    (("カウンター",), TraitCategory.COUNTER),
]


def split_terror_names(name: str) -> List[str]:
    """Split a composite "A & B" announcement into individual terror names."""
    if name in UNSPLITTABLE_NAMES:
        return [name]
    return [part.strip() for part in name.split(COMPOSITE_SEPARATOR) if part.strip()]


def parse_stun_text(text: str) -> StunPolicy:
    if not text:
        return StunPolicy.UNKNOWN
    lowered = text.lower()
    for keywords, policy in STUN_TEXT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return policy
    return StunPolicy.UNKNOWN


def categorize_trait(trait_type: str) -> TraitCategory:
    lowered = trait_type.lower()
    for keywords, category in TRAIT_CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return TraitCategory.OTHER


@dataclass
class TerrorTrait:
    trait_type: str
    description: str
    category: TraitCategory


@dataclass
class TerrorDetail:
    """Catalog entry for a single terror."""
    name: str
    stun_policy: StunPolicy = StunPolicy.UNKNOWN
    traits: List[TerrorTrait] = field(default_factory=list)


class TerrorCatalog:
    """Name -> stun policy / trait lookup."""

    def __init__(self, builtin: Optional[Dict[str, StunPolicy]] = None):
        self._builtin = dict(BUILTIN_STUN_POLICIES if builtin is None else builtin)
        self._builtin_lower = {name.lower(): policy for name, policy in self._builtin.items()}
        self._details: Dict[str, TerrorDetail] = {}

    def __len__(self) -> int:
        return len(self._details)

    def load_json(self, path: str) -> int:
        """Load a terrorsInfo.json catalog. Returns the number of entries added.

        A missing or unreadable file leaves the catalog unchanged.
        """
        catalog_path = Path(path)
        if not catalog_path.exists():
            logger.warning(f"Terror catalog not found: {catalog_path}")
            return 0
        try:
            with open(catalog_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read terror catalog {catalog_path}: {e}")
            return 0

        added = self.load_mapping(data)
        logger.info(f"Loaded {added} terror entries from {catalog_path}")
        return added

    def load_mapping(self, data: Dict) -> int:
        if not isinstance(data, dict):
            logger.warning("Terror catalog root is not an object, ignoring")
            return 0

        added = 0
        for key, trait_dicts in data.items():
            policy = StunPolicy.UNKNOWN
            traits: List[TerrorTrait] = []
            for trait_dict in trait_dicts if isinstance(trait_dicts, list) else []:
                if not isinstance(trait_dict, dict):
                    continue
                for trait_type, description in trait_dict.items():
                    if trait_type.lower() == STUN_TRAIT_KEY:
                        policy = parse_stun_text(str(description))
                    else:
                        traits.append(TerrorTrait(
                            trait_type=trait_type,
                            description=str(description),
                            category=categorize_trait(trait_type),
                        ))

            for name in split_terror_names(key):
                self._details[name] = TerrorDetail(name=name, stun_policy=policy, traits=list(traits))
                added += 1
        return added

    def get_detail(self, name: str) -> Optional[TerrorDetail]:
        detail = self._details.get(name)
        if detail is not None:
            return detail
        lowered = name.lower()
        for key, candidate in self._details.items():
            if key.lower() == lowered:
                return candidate
        return None

    def stun_policy(self, name: str) -> StunPolicy:
        """Catalog policy first, then the built-in table, then name rules."""
        detail = self.get_detail(name)
        if detail is not None and detail.stun_policy != StunPolicy.UNKNOWN:
            return detail.stun_policy

        builtin = self._builtin_lower.get(name.lower())
        if builtin is not None:
            return builtin

        lowered = name.lower()
        if "convict squad" in lowered:
            return StunPolicy.CAUTION if "yellow" in lowered else StunPolicy.FORBIDDEN

        return StunPolicy.UNKNOWN
