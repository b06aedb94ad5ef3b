# materials.py - Biomaterial and bone-site reference catalog
"""
Centralized module for implant biomaterial and bone-site specifications.
Shared mechanics helpers (stress shielding ratio, peak joint load) are defined here
so scoring and reporting derive them the same way.

Rating fields on BiomaterialProfile are on a 0-1 scale:
    biocompatibility    -> ISO 10993-5 cytotoxicity tier (>= 0.70 = pass)
    osseointegration    -> ISQ / bone-implant contact clinical tier
    corrosionResistance -> i_corr / degradation rate tier
    wearResistance      -> Archard K tier (inverse: lower K = higher rating)
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Any


CATEGORIES = ('metal', 'ceramic', 'polymer', 'composite')

GRAVITY = 9.81  # m/s²
GAIT_LOAD_FACTOR = 3.0  # peak joint load ≈ 3× body weight during gait

DEFAULT_MATERIAL_ID = 'ti6al4v_eli'
DEFAULT_BONE_SITE_ID = 'femur'


class CatalogLookupError(KeyError):
    """Requested material or bone-site id is not in the catalog"""


class InvalidInputError(ValueError):
    """Input or catalog entry outside its documented range"""


def _check_unit(name: str, value: float, field_name: str) -> None:
    if not 0.0 <= value <= 1.0:
        raise InvalidInputError(f"{name}: {field_name} must be within [0, 1], got {value}")


@dataclass(frozen=True)
class BiomaterialProfile:
    """Implant biomaterial with mechanical and clinical rating properties"""
    id: str
    label: str
    category: str
    elastic_modulus: float  # GPa
    yield_strength: float  # MPa, 0 = no ductile yield point (brittle ceramics)
    biocompatibility: float
    osseointegration: float
    corrosion_resistance: float
    wear_resistance: float
    is_biodegradable: bool
    density: float  # g/cm³ - informational only
    color: str

    def __post_init__(self):
        if self.category not in CATEGORIES:
            raise InvalidInputError(f"{self.id}: unknown category '{self.category}'")
        if self.elastic_modulus <= 0:
            raise InvalidInputError(f"{self.id}: elastic modulus must be positive, got {self.elastic_modulus}")
        if self.yield_strength < 0:
            raise InvalidInputError(f"{self.id}: yield strength must be >= 0, got {self.yield_strength}")
        if self.density <= 0:
            raise InvalidInputError(f"{self.id}: density must be positive, got {self.density}")
        _check_unit(self.id, self.biocompatibility, 'biocompatibility')
        _check_unit(self.id, self.osseointegration, 'osseointegration')
        _check_unit(self.id, self.corrosion_resistance, 'corrosion_resistance')
        _check_unit(self.id, self.wear_resistance, 'wear_resistance')

    @property
    def ductile_yield(self) -> Optional[float]:
        """Ductile yield strength in MPa, or None when the material has no yield point"""
        return self.yield_strength if self.yield_strength > 0 else None

    @property
    def is_brittle_ceramic(self) -> bool:
        """Ceramic without a ductile yield point (relies on compressive strength)"""
        return self.category == 'ceramic' and self.ductile_yield is None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BoneSiteProfile:
    """Implant site with reference bone properties"""
    id: str
    label: str
    natural_modulus: float  # GPa, cortical reference
    target_yield_strength: float  # MPa, used as area proxy in load estimation
    vascularity_factor: float  # 0-1

    def __post_init__(self):
        if self.natural_modulus <= 0:
            raise InvalidInputError(f"{self.id}: natural modulus must be positive, got {self.natural_modulus}")
        if self.target_yield_strength <= 0:
            raise InvalidInputError(
                f"{self.id}: target yield strength must be positive, got {self.target_yield_strength}"
            )
        _check_unit(self.id, self.vascularity_factor, 'vascularity_factor')

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _material(id, label, category, E, sy, bio, osseo, corr, wear, biodeg, density, color):
    return BiomaterialProfile(
        id=id, label=label, category=category,
        elastic_modulus=E, yield_strength=sy,
        biocompatibility=bio, osseointegration=osseo,
        corrosion_resistance=corr, wear_resistance=wear,
        is_biodegradable=biodeg, density=density, color=color,
    )


# Material database (ASTM/ISO verified values). Order is significant: ties in
# ranking keep this order.
MATERIALS: Dict[str, BiomaterialProfile] = {m.id: m for m in [
    # ---- Metals ----
    _material('ti6al4v_eli', "Ti-6Al-4V ELI", 'metal', 110, 828, 0.95, 0.88, 0.97, 0.70, False, 4.43, "#4a90d9"),
    _material('ti6al7nb', "Ti-6Al-7Nb (F1295)", 'metal', 105, 800, 0.96, 0.87, 0.97, 0.70, False, 4.52, "#5ba3e8"),
    _material('cp_ti_g4', "CP-Ti Grade 4 (F67)", 'metal', 103, 480, 0.98, 0.95, 0.98, 0.60, False, 4.51, "#7ec8e3"),
    _material('cp_ti_g2', "CP-Ti Grade 2 (F67)", 'metal', 102, 275, 0.99, 0.94, 0.98, 0.55, False, 4.51, "#a8d8ea"),
    _material('cocrmo_f75', "CoCrMo (ASTM F75)", 'metal', 230, 450, 0.80, 0.72, 0.88, 0.85, False, 8.30, "#9b59b6"),
    _material('cocrw_f90', "CoCrW (ASTM F90)", 'metal', 227, 483, 0.78, 0.55, 0.87, 0.84, False, 9.10, "#8e44ad"),
    _material('ss316l', "316L SS (ASTM F138)", 'metal', 197, 240, 0.72, 0.61, 0.78, 0.72, False, 7.90, "#95a5a6"),
    _material('nitinol', "Nitinol (NiTi)", 'metal', 75, 195, 0.82, 0.50, 0.85, 0.65, False, 6.45, "#f39c12"),
    _material('porous_ta', "Porous Tantalum", 'metal', 3.0, 100, 0.97, 0.93, 0.98, 0.75, False, 2.80, "#1abc9c"),
    _material('we43_mg', "WE43 Mg Alloy", 'metal', 45, 227, 0.80, 0.72, 0.42, 0.50, True, 1.84, "#e67e22"),
    _material('az31b_mg', "AZ31B Mg Alloy", 'metal', 45.41, 252, 0.75, 0.68, 0.30, 0.48, True, 1.77, "#f1b24a"),
    # ---- Ceramics (yield_strength 0: brittle, no ductile yield) ----
    _material('hydroxyapatite', "Hydroxyapatite (HA)", 'ceramic', 80, 0, 0.99, 0.97, 1.00, 0.55, False, 3.16, "#f4d03f"),
    _material('bioglass_45s5', "45S5 Bioglass", 'ceramic', 35, 0, 0.98, 0.96, 0.50, 0.30, True, 2.70, "#45b39d"),
    _material('zirconia_ytzp', "3Y-TZP Zirconia", 'ceramic', 205, 0, 0.95, 0.72, 0.99, 0.88, False, 6.05, "#d5d8dc"),
    _material('alumina', "Alumina (Al₂O₃)", 'ceramic', 380, 0, 0.95, 0.60, 0.99, 0.92, False, 3.98, "#aab7b8"),
    _material('zta', "ZTA (Al₂O₃ + ZrO₂)", 'ceramic', 350, 0, 0.95, 0.62, 0.99, 0.95, False, 4.20, "#c0c3c4"),
    _material('silicon_nitride', "Silicon Nitride (Si₃N₄)", 'ceramic', 300, 0, 0.95, 0.90, 0.98, 0.90, False, 3.20, "#aed6f1"),
    _material('beta_tcp', "β-Tricalcium Phosphate", 'ceramic', 33, 0, 0.98, 0.88, 0.45, 0.30, True, 3.07, "#a9cce3"),
    # ---- Polymers ----
    _material('peek', "PEEK-OPTIMA", 'polymer', 3.6, 100, 0.92, 0.52, 0.99, 0.65, False, 1.32, "#27ae60"),
    _material('uhmwpe', "UHMWPE", 'polymer', 0.69, 21, 0.92, 0.30, 0.99, 0.80, False, 0.93, "#76b7b2"),
    _material('plga', "PLGA (75:25)", 'polymer', 0.9, 36.6, 0.88, 0.35, 0.30, 0.30, True, 1.34, "#58d68d"),
    _material('plla', "PLLA", 'polymer', 4.0, 60, 0.90, 0.38, 0.35, 0.32, True, 1.25, "#82e0aa"),
]}


# Bone-site database
BONE_SITES: Dict[str, BoneSiteProfile] = {b.id: b for b in [
    BoneSiteProfile('femur', "Femur", natural_modulus=17, target_yield_strength=160, vascularity_factor=0.85),
    BoneSiteProfile('tibia', "Tibia", natural_modulus=18, target_yield_strength=170, vascularity_factor=0.80),
    BoneSiteProfile('humerus', "Humerus", natural_modulus=15, target_yield_strength=130, vascularity_factor=0.78),
    BoneSiteProfile('vertebra', "Vertebra", natural_modulus=12, target_yield_strength=100, vascularity_factor=0.60),
    BoneSiteProfile('radius', "Radius", natural_modulus=14, target_yield_strength=140, vascularity_factor=0.75),
    BoneSiteProfile('mandible', "Mandible", natural_modulus=20, target_yield_strength=190, vascularity_factor=0.90),
    BoneSiteProfile('pelvis', "Pelvis", natural_modulus=16, target_yield_strength=150, vascularity_factor=0.82),
    BoneSiteProfile('skull', "Skull", natural_modulus=13, target_yield_strength=110, vascularity_factor=0.70),
]}


def get_material(material_id: str) -> BiomaterialProfile:
    """Get material specification by id"""
    if not isinstance(material_id, str):
        raise CatalogLookupError(f"Unknown material {material_id!r}")
    try:
        return MATERIALS[material_id]
    except KeyError:
        raise CatalogLookupError(f"Unknown material '{material_id}'") from None


def get_bone_site(bone_site_id: str) -> BoneSiteProfile:
    """Get bone-site specification by id"""
    if not isinstance(bone_site_id, str):
        raise CatalogLookupError(f"Unknown bone site {bone_site_id!r}")
    try:
        return BONE_SITES[bone_site_id]
    except KeyError:
        raise CatalogLookupError(f"Unknown bone site '{bone_site_id}'") from None


def list_materials() -> List[BiomaterialProfile]:
    return list(MATERIALS.values())


def list_bone_sites() -> List[BoneSiteProfile]:
    return list(BONE_SITES.values())


# ============================================================================
# MECHANICS HELPERS
# ============================================================================

def validate_weight(weight_kg: float) -> float:
    """Return weight as float, rejecting non-positive or non-finite values"""
    try:
        weight = float(weight_kg)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Patient weight must be a number, got {weight_kg!r}") from None
    if not math.isfinite(weight) or weight <= 0:
        raise InvalidInputError(f"Patient weight must be positive, got {weight_kg}")
    return weight


def stress_shielding_ratio(material: BiomaterialProfile, bone: BoneSiteProfile) -> float:
    """
    Stress Shielding Ratio.

    Formula: SSR = E_implant / E_bone
        SSR <= 2  -> low stress-shielding risk
        SSR <= 10 -> moderate
        SSR > 10  -> high
    """
    return material.elastic_modulus / bone.natural_modulus


def peak_joint_load_n(weight_kg: float) -> float:
    """Peak joint load in N during gait (≈3× body weight)"""
    return weight_kg * GRAVITY * GAIT_LOAD_FACTOR


def format_number(value: float) -> str:
    """Plain number text: integral values without a trailing .0, no exponent notation"""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return f"{value:.6f}".rstrip('0')
