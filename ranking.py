# ranking.py - Rank catalog materials for a bone site
"""
Applies the scoring engine to every catalog material and orders the results.
Ties keep catalog order (stable sort), so the first entry is deterministic.
"""

import logging
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Sequence

import numpy as np

from materials import BiomaterialProfile, BoneSiteProfile, validate_weight
from scoring import CompatibilityBreakdown, score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredMaterial:
    """One material paired with its breakdown for a fixed bone/weight context"""
    material: BiomaterialProfile
    breakdown: CompatibilityBreakdown

    def to_dict(self) -> Dict[str, Any]:
        return {
            'material': self.material.to_dict(),
            'breakdown': self.breakdown.to_dict(),
        }


def rank(catalog: Sequence[BiomaterialProfile], bone: BoneSiteProfile,
         weight_kg: float) -> List[ScoredMaterial]:
    """
    Score every material and sort by overall score, best first.

    Args:
        catalog: Materials in catalog order (tie-break order)
        bone: Target bone site
        weight_kg: Patient weight, must be positive

    Returns:
        List of ScoredMaterial sorted descending by breakdown.overall
    """
    weight = validate_weight(weight_kg)
    scored = [ScoredMaterial(mat, score(mat, bone, weight)) for mat in catalog]
    if not scored:
        return []

    overall = np.array([s.breakdown.overall for s in scored])
    order = np.argsort(-overall, kind='stable')
    ranked = [scored[i] for i in order]

    best = ranked[0]
    logger.info(f"Ranked {len(ranked)} materials for {bone.label} ({weight} kg): "
                f"best {best.material.id} = {best.breakdown.overall}")
    return ranked


def best_match(ranked: Sequence[ScoredMaterial]) -> Optional[ScoredMaterial]:
    """Recommended material (first entry of a ranked list)"""
    return ranked[0] if ranked else None
