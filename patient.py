# patient.py – patient context for a matching session

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any

from materials import InvalidInputError


URGENCY_LEVELS = ('critical', 'high', 'moderate', 'low')
EXPEDITED_URGENCY = ('critical', 'high')

# Weight range offered by the input controls
MIN_WEIGHT_KG = 30.0
MAX_WEIGHT_KG = 180.0
DEFAULT_WEIGHT_KG = 70.0


@dataclass
class PatientContext:
    """Display-only patient details plus the urgency classification"""
    name: str = ""
    age: str = ""  # free text, display only
    blood_group: str = ""
    tissue_type: str = ""
    urgency: str = "moderate"

    def __post_init__(self):
        self._check_urgency(self.urgency)

    @staticmethod
    def _check_urgency(urgency: str) -> None:
        if urgency not in URGENCY_LEVELS:
            raise InvalidInputError(
                f"Urgency must be one of {', '.join(URGENCY_LEVELS)}, got '{urgency}'"
            )

    @property
    def is_expedited(self) -> bool:
        """Critical or high urgency"""
        return self.urgency in EXPEDITED_URGENCY

    def update(self, **fields: Any) -> None:
        """Merge a partial update; unknown fields or a bad urgency leave the context unchanged"""
        unknown = set(fields) - set(asdict(self))
        if unknown:
            raise InvalidInputError(f"Unknown patient fields: {', '.join(sorted(unknown))}")
        if 'urgency' in fields:
            self._check_urgency(fields['urgency'])
        for key, value in fields.items():
            setattr(self, key, "" if value is None else str(value))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------- Helper Functions ----------

def _get_str(cfg: Dict[str, Any], *keys: str, default: str = "") -> str:
    """Extract string from request data with multiple possible keys"""
    for k in keys:
        if k in cfg and cfg[k] is not None:
            return str(cfg[k]).strip()
    return default


def clamp_weight(weight_kg: float) -> float:
    """Clamp a requested weight to the input control range"""
    return max(MIN_WEIGHT_KG, min(MAX_WEIGHT_KG, float(weight_kg)))


def patient_fields_from_request(cfg: Dict[str, Any]) -> Dict[str, str]:
    """
    Collect patient fields present in request data.
    Accepts snake_case and the camelCase names used by the front-end.
    """
    aliases = {
        'name': ('name',),
        'age': ('age',),
        'blood_group': ('blood_group', 'bloodGroup'),
        'tissue_type': ('tissue_type', 'tissueType'),
        'urgency': ('urgency',),
    }
    fields = {}
    for field_name, keys in aliases.items():
        if any(k in cfg for k in keys):
            value = _get_str(cfg, *keys)
            fields[field_name] = value.lower() if field_name == 'urgency' else value
    return fields
