# scoring.py – Compatibility scoring engine
"""
Weighted multi-factor compatibility score of an implant material at a bone site.
Uses materials.py for the stress shielding ratio and joint load estimate.

Weights (sum = 1.0):
    0.30  Stress shielding  (SSR = E_implant / E_bone)
    0.25  Biocompatibility  (ISO 10993-5, cytotoxicity gate at 0.70)
    0.25  Osseointegration  (ISQ/BIC tier)
    0.12  Weight/load       (yield strength vs. gait load demand)
    0.08  Corrosion/wear    (i_corr / Archard K tier)
"""

from __future__ import annotations
import math
import logging
from dataclasses import dataclass, asdict
from typing import Dict, Any, Tuple

from materials import (
    BiomaterialProfile,
    BoneSiteProfile,
    peak_joint_load_n,
    stress_shielding_ratio,
    validate_weight,
)

logger = logging.getLogger(__name__)


# ---------- Constants ----------

SCORE_WEIGHTS: Dict[str, float] = {
    'stiffness': 0.30,
    'biocompatibility': 0.25,
    'osseointegration': 0.25,
    'weight_load': 0.12,
    'corrosion_wear': 0.08,
}

BIOCOMPATIBILITY_GATE = 0.70  # ISO 10993-5 pass threshold
CERAMIC_LOAD_SCORE = 70.0
BONE_AREA_FACTOR = 0.8
CORROSION_SHARE = 0.60
WEAR_SHARE = 0.40


@dataclass(frozen=True)
class RadarAxis:
    key: str
    label: str
    value: int


@dataclass(frozen=True)
class CompatibilityBreakdown:
    """Overall score plus the five rounded sub-scores (all 0-100)"""
    overall: int
    stiffness_match: int
    biocompatibility: int
    osseointegration: int
    corrosion_resistance: int  # combined corrosion/wear sub-score
    weight_load: int
    radar_axes: Tuple[RadarAxis, ...]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['radar_axes'] = [asdict(axis) for axis in self.radar_axes]
        return data


def round_half_up(value: float) -> int:
    """Round .5 upwards (display rounding, not banker's rounding)"""
    return int(math.floor(value + 0.5))


# ---------- Individual Factor Scores ----------

def stiffness_score(ssr: float) -> float:
    """
    Stiffness match from the stress shielding ratio.

        ssr <= 1       80 + 20*ssr (too soft, micro-motion risk)
        1 < ssr <= 2   100 (ideal band)
        2 < ssr <= 10  linear decay 100 -> 20
        ssr > 10       20 - 2*(ssr-10), floored at 0
    """
    if ssr <= 1.0:
        return 80.0 + ssr * 20.0
    if ssr <= 2.0:
        return 100.0
    if ssr <= 10.0:
        return max(20.0, 100.0 - ((ssr - 2.0) / 8.0) * 80.0)
    return max(0.0, 20.0 - (ssr - 10.0) * 2.0)


def biocompatibility_score(material: BiomaterialProfile, bone: BoneSiteProfile) -> float:
    """Vascularity-modulated biocompatibility; below the gate the material is rejected outright"""
    if material.biocompatibility < BIOCOMPATIBILITY_GATE:
        return 0.0
    return material.biocompatibility * bone.vascularity_factor * 100.0


def osseointegration_score(material: BiomaterialProfile) -> float:
    return material.osseointegration * 100.0


def weight_load_score(material: BiomaterialProfile, bone: BoneSiteProfile,
                      weight_kg: float) -> float:
    """
    Whether the yield strength tolerates the estimated peak joint load.

    Brittle ceramics get a flat score (compressive strength is not captured by a
    ductile yield value). Everything else, including a zero-yield non-ceramic:
        required_MPa   = load_N / max(target_yield * 0.8 * 100, 1)
        strength_ratio = yield / max(required_MPa, 1)
        score          = min(100, log10(strength_ratio + 1) * 80)
    """
    if material.is_brittle_ceramic:
        return CERAMIC_LOAD_SCORE

    load_demand_n = peak_joint_load_n(weight_kg)
    bone_area_proxy = bone.target_yield_strength * BONE_AREA_FACTOR
    required_mpa = load_demand_n / max(bone_area_proxy * 100.0, 1.0)
    strength_ratio = material.yield_strength / max(required_mpa, 1.0)
    return min(100.0, math.log10(strength_ratio + 1.0) * 80.0)


def corrosion_wear_score(material: BiomaterialProfile) -> float:
    """Corrosion (60%) and wear (40%) combined. Biodegradability does not alter it."""
    return (material.corrosion_resistance * CORROSION_SHARE +
            material.wear_resistance * WEAR_SHARE) * 100.0


# ---------- Main Scoring Function ----------

def score(material: BiomaterialProfile, bone: BoneSiteProfile,
          weight_kg: float) -> CompatibilityBreakdown:
    """
    Score one material at one bone site for a patient weight.

    Sub-scores are rounded first and the composite is computed from the rounded
    values, so the displayed sub-scores add up to the displayed overall.

    Raises:
        InvalidInputError: weight_kg is not positive
    """
    weight = validate_weight(weight_kg)

    stiffness = round_half_up(stiffness_score(stress_shielding_ratio(material, bone)))
    bio = round_half_up(biocompatibility_score(material, bone))
    osseo = round_half_up(osseointegration_score(material))
    load = round_half_up(weight_load_score(material, bone, weight))
    corr_wear = round_half_up(corrosion_wear_score(material))

    weighted = (
        stiffness * SCORE_WEIGHTS['stiffness'] +
        bio * SCORE_WEIGHTS['biocompatibility'] +
        osseo * SCORE_WEIGHTS['osseointegration'] +
        load * SCORE_WEIGHTS['weight_load'] +
        corr_wear * SCORE_WEIGHTS['corrosion_wear']
    )
    overall = min(100, max(0, round_half_up(weighted)))

    radar_axes = (
        RadarAxis('stiffnessMatch', "Stiffness Match", stiffness),
        RadarAxis('biocompatibility', "Biocompatibility", bio),
        RadarAxis('osseointegration', "Osseointegration", osseo),
        RadarAxis('corrosionResist', "Corrosion / Wear", corr_wear),
        RadarAxis('weightLoad', "Load Tolerance", load),
    )

    logger.debug(f"Scored {material.id} @ {bone.id} ({weight} kg): {overall}")

    return CompatibilityBreakdown(
        overall=overall,
        stiffness_match=stiffness,
        biocompatibility=bio,
        osseointegration=osseo,
        corrosion_resistance=corr_wear,
        weight_load=load,
        radar_axes=radar_axes,
    )


# ---------- Display Bands ----------

def compatibility_label(overall: int) -> str:
    """Headline label for a live compatibility score"""
    if overall >= 80:
        return "HIGH COMPATIBILITY"
    if overall >= 60:
        return "MODERATE MATCH"
    if overall >= 40:
        return "POOR MATCH"
    return "INCOMPATIBLE"


def score_tier(overall: int) -> str:
    """Colour tier for score display (same 80/60 thresholds as the report rank label)"""
    if overall >= 80:
        return 'high'
    if overall >= 60:
        return 'moderate'
    return 'low'
