"""
PointsEngine - point calculation for completed collections

Two independent policies live here:

* ``award_points``: the administrator-configured weight formula. This is the
  only policy that writes to the ledger.
* ``preview_points``: category strategies with bonuses, used for estimates
  shown before a pickup happens.

Both are pure functions over plain values.
"""

import math
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional


@dataclass(frozen=True)
class PointsFormula:
    """Immutable snapshot of the active award parameters"""
    base_points: float
    weight_factor: float
    separation_factor: float
    configuration_id: Optional[int] = None


DEFAULT_FORMULA = PointsFormula(base_points=10, weight_factor=2, separation_factor=5)


def round_half_up(value: float) -> int:
    """Round .5 towards positive infinity, matching the stored historical awards"""
    return int(math.floor(value + 0.5))


def award_points(weight_kg: float, separated: bool, formula: Optional[PointsFormula] = None) -> int:
    """
    Points credited for a completed collection.

    base + weight_kg * weight_factor + (separation_factor if separated)
    """
    formula = formula or DEFAULT_FORMULA
    raw = formula.base_points + weight_kg * formula.weight_factor
    if separated:
        raw += formula.separation_factor
    return round_half_up(raw)


# ---------------------------------------------------------------------------
# Preview strategies
# ---------------------------------------------------------------------------

FIRST_TIME_BONUS = 50
RECURRING_BONUS = 20
HIGH_QUALITY_BONUS = 30
RECURRING_MIN_REQUESTS = 3
RECURRING_WINDOW_DAYS = 30

# Environmental campaign months get a 20% boost
CAMPAIGN_MONTHS = {4, 6, 10}
CAMPAIGN_FACTOR = 1.2

QUALITY_HIGH = 'alta'

MATERIAL_FACTORS = {
    'vidrio': 1.3,
    'glass': 1.3,
    'plastico': 1.2,
    'plastic': 1.2,
    'papel': 1.1,
    'paper': 1.1,
    'carton': 1.1,
    'cardboard': 1.1,
}


@dataclass(frozen=True)
class PointsMetadata:
    """Inputs to a preview besides the quantity"""
    material: str
    collected_at: datetime
    first_time: bool = False
    recurring: bool = False
    quality: Optional[str] = None


def normalize_material(value: str) -> str:
    """Lowercase, trim and strip accents ("Cartón" -> "carton")"""
    decomposed = unicodedata.normalize('NFKD', (value or '').strip().lower())
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def _organic_factor(metadata: PointsMetadata) -> float:
    return 1.15 if metadata.quality == QUALITY_HIGH else 1.0


def _recyclable_factor(metadata: PointsMetadata) -> float:
    return MATERIAL_FACTORS.get(normalize_material(metadata.material), 1.0)


@dataclass(frozen=True)
class PreviewStrategy:
    name: str
    base_points: int
    multiplier: float
    factor: Callable[[PointsMetadata], float] = field(compare=False)


ORGANIC_STRATEGY = PreviewStrategy('organic', 8, 1.1, _organic_factor)
RECYCLABLE_STRATEGY = PreviewStrategy('recyclable', 12, 1.2, _recyclable_factor)
ELECTRONIC_STRATEGY = PreviewStrategy('electronic', 25, 1.5, lambda metadata: 1.4)
OIL_STRATEGY = PreviewStrategy('oil', 20, 1.4, lambda metadata: 1.25)

STRATEGIES: Dict[str, PreviewStrategy] = {
    s.name: s for s in (ORGANIC_STRATEGY, RECYCLABLE_STRATEGY, ELECTRONIC_STRATEGY, OIL_STRATEGY)
}

# Material names and waste categories accepted for previews
STRATEGY_ALIASES = {
    'organicos': 'organic',
    'organico': 'organic',
    'organic': 'organic',
    'papel': 'recyclable',
    'carton': 'recyclable',
    'plastico': 'recyclable',
    'vidrio': 'recyclable',
    'reciclables': 'recyclable',
    'paper': 'recyclable',
    'cardboard': 'recyclable',
    'plastic': 'recyclable',
    'glass': 'recyclable',
    'recyclable': 'recyclable',
    'inorganic': 'recyclable',
    'electronicos': 'electronic',
    'electrodomesticos': 'electronic',
    'electronic': 'electronic',
    'hazardous': 'electronic',
    'aceites': 'oil',
    'aceite': 'oil',
    'grasas': 'oil',
    'oil': 'oil',
}


def strategy_for(material: str) -> PreviewStrategy:
    """Resolve a material name or waste category; unknown names use the recyclable strategy"""
    name = STRATEGY_ALIASES.get(normalize_material(material), RECYCLABLE_STRATEGY.name)
    return STRATEGIES[name]


def preview_bonuses(metadata: PointsMetadata) -> int:
    bonus = 0
    if metadata.first_time:
        bonus += FIRST_TIME_BONUS
    if metadata.recurring:
        bonus += RECURRING_BONUS
    if metadata.quality == QUALITY_HIGH:
        bonus += HIGH_QUALITY_BONUS
    return bonus


def temporal_factor(when: datetime) -> float:
    return CAMPAIGN_FACTOR if when.month in CAMPAIGN_MONTHS else 1.0


def preview_points(quantity: float, metadata: PointsMetadata) -> int:
    """
    Estimated points for a prospective collection.

    floor((floor(quantity * base * multiplier) + bonuses) * temporal * factor)
    """
    strategy = strategy_for(metadata.material)
    base = math.floor(quantity * strategy.base_points * strategy.multiplier)
    total = (base + preview_bonuses(metadata)) * temporal_factor(metadata.collected_at) * strategy.factor(metadata)
    return int(math.floor(total))


def preview_details(quantity: float, metadata: PointsMetadata) -> dict:
    """Preview breakdown for display"""
    strategy = strategy_for(metadata.material)
    return {
        'points': preview_points(quantity, metadata),
        'multiplier': strategy.multiplier,
        'bonuses': preview_bonuses(metadata),
        'strategy': strategy.name,
    }
