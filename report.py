# report.py – Results report builder
"""
Builds the patient-facing results report for the best-matching material:
rank label, narrative note and suggested questions for the surgeon.
Deterministic string construction, no randomness.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Tuple

from materials import (
    BiomaterialProfile,
    BoneSiteProfile,
    format_number,
    peak_joint_load_n,
    stress_shielding_ratio,
)
from patient import PatientContext
from scoring import CompatibilityBreakdown, round_half_up


# ---------- Constants ----------

HEAVY_PATIENT_KG = 100.0
HEALING_WEEKS = 12
STIFFNESS_FLAG_THRESHOLD = 60


@dataclass(frozen=True)
class TopStat:
    label: str
    value: int


@dataclass(frozen=True)
class BestMatch:
    """Headline card for the recommended material"""
    material_label: str
    material_category: str
    material_color: str
    overall_score: int
    rank_label: str
    top_stats: Tuple[TopStat, ...]


@dataclass(frozen=True)
class ResultsReport:
    perfect_match: BestMatch
    patient_note: str
    doctor_questions: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['perfect_match']['top_stats'] = [asdict(s) for s in self.perfect_match.top_stats]
        data['doctor_questions'] = list(self.doctor_questions)
        return data


# ---------- Helper Functions ----------

def rank_label(overall: int) -> str:
    """Rank label for an overall score"""
    if overall >= 80:
        return "OPTIMAL MATCH"
    if overall >= 60:
        return "GOOD CANDIDATE"
    if overall >= 40:
        return "MARGINAL FIT"
    return "NOT RECOMMENDED"


def _stiffness_sentence(material: BiomaterialProfile, bone: BoneSiteProfile, ssr: float) -> str:
    if ssr <= 2:
        return (
            f"Its elastic modulus ({format_number(material.elastic_modulus)} GPa) closely mirrors the {bone.label} "
            f"(≈{format_number(bone.natural_modulus)} GPa), giving a Stress Shielding Ratio of {ssr:.1f} — well within "
            f"the safe range (SSR ≤ 2). Wolff's Law bone-remodelling stimulus is preserved."
        )
    if ssr <= 10:
        return (
            f"A moderate stiffness mismatch exists (SSR = {ssr:.1f}). Stress-shielding risk is present; "
            f"periodic DEXA bone-density monitoring post-surgery is recommended."
        )
    return (
        f"High stiffness mismatch detected (SSR = {ssr:.1f} > 10). Significant stress-shielding is expected. "
        f"Porous or surface-modified designs should be evaluated before proceeding."
    )


def _osseointegration_sentence(osseo: int) -> str:
    if osseo >= 80:
        return (
            f"Its osseointegration score of {osseo}/100 reflects high bone-to-implant contact (BIC > 70%) "
            f"and projected ISQ ≥ 70 at 8 weeks, supporting early loading protocols."
        )
    if osseo >= 60:
        return (
            f"Moderate osseointegration potential ({osseo}/100, ISQ 60–70). Delayed loading (6–8 weeks) "
            f"and HA surface coating may be advisable."
        )
    return (
        f"Low osseointegration score ({osseo}/100). This material is bioinert in its standard form; "
        f"surface bioactivation is strongly recommended."
    )


def _load_sentence(material: BiomaterialProfile, weight_kg: float) -> str:
    yield_mpa = format_number(material.yield_strength)
    if weight_kg >= HEAVY_PATIENT_KG:
        peak_n = round_half_up(peak_joint_load_n(weight_kg))
        return (
            f"Given the patient's weight ({format_number(weight_kg)} kg), peak joint load is ≈{peak_n} N. "
            f"The {material.label}'s yield strength of {yield_mpa} MPa provides adequate structural reserve, "
            f"but activity restriction during initial healing is advised."
        )
    return (
        f"The {material.label}'s yield strength ({yield_mpa} MPa) is well-suited to the mechanical demands "
        f"imposed by the patient's weight ({format_number(weight_kg)} kg)."
    )


def _urgency_sentence(patient: PatientContext) -> str:
    if patient.is_expedited:
        return f"Given the {patient.urgency} urgency classification, expedited surgical planning is warranted."
    return (
        f"The {patient.urgency} urgency level allows time for thorough pre-operative planning "
        f"and patient optimisation."
    )


def _questions(material: BiomaterialProfile, bone: BoneSiteProfile,
               breakdown: CompatibilityBreakdown, patient: PatientContext,
               weight_kg: float, ssr: float) -> List[str]:
    questions = [
        f"Is {material.label} the most appropriate biomaterial for my {bone.label} implant, "
        f"or are newer alternatives worth considering?",
        f"What does a Bio-Match Score of {breakdown.overall}/100 mean for my recovery timeline "
        f"and long-term implant durability?",
    ]

    if breakdown.stiffness_match < STIFFNESS_FLAG_THRESHOLD:
        questions.append(
            f"The stiffness mismatch (SSR = {ssr:.1f}) was flagged — how will stress-shielding "
            f"be monitored post-surgery?"
        )
    else:
        questions.append(
            "What imaging protocol (X-ray / CT / DEXA) will confirm osseointegration and rule out "
            "stress-shielding over the first two years?"
        )

    if material.is_biodegradable:
        questions.append(
            "This is a resorbable material — what is the expected degradation timeline relative to "
            "my bone healing, and how will structural integrity be monitored?"
        )

    questions.append(
        f"Are there activity restrictions or physiotherapy milestones I should be aware of given "
        f"the {bone.label} location and my weight ({format_number(weight_kg)} kg)?"
    )

    if patient.is_expedited:
        questions.append(
            "What is the earliest feasible surgery date, and what pre-operative steps "
            "(infection screening, nutrition) must be completed first?"
        )
    else:
        questions.append(
            "Are there lifestyle modifications (weight management, vitamin D / calcium) that could "
            "improve implant outcomes before the procedure?"
        )
    return questions


# ---------- Main Builder ----------

def build_report(material: BiomaterialProfile, bone: BoneSiteProfile,
                 breakdown: CompatibilityBreakdown, patient: PatientContext,
                 weight_kg: float) -> ResultsReport:
    """
    Build the results report for a scored material.

    Args:
        material: Recommended (or currently selected) material
        bone: Target bone site
        breakdown: Breakdown of material at bone for weight_kg
        patient: Patient context (name/age used in the note, urgency branches)
        weight_kg: Patient weight

    Returns:
        ResultsReport with headline card, narrative note and ordered questions
    """
    overall = breakdown.overall
    label = rank_label(overall)
    # Stiffness tier is re-derived from the raw ratio, not from breakdown.stiffness_match
    ssr = stress_shielding_ratio(material, bone)

    opening_subject = f"For {patient.name}, " if patient.name else "Based on the entered parameters, "
    opening = (
        f"{opening_subject}analysis indicates that **{material.label}** ({material.category}) is the "
        f"{label.lower()} for the {bone.label} implant site, achieving an overall Bio-Match Score "
        f"of **{overall}/100**."
    )

    biodegradable_note = ""
    if material.is_biodegradable:
        biodegradable_note = (
            f"⚠ This is a biodegradable material. Degradation rate must be confirmed via ASTM G31 "
            f"immersion testing against the target healing timeline ({bone.label} healing: "
            f"~{HEALING_WEEKS} weeks). "
        )

    age_note = ""
    if patient.age:
        age_note = f" The patient's age ({patient.age} yrs) should be factored into rehabilitation timelines."

    closing = (
        f"Biocompatibility index: {breakdown.biocompatibility}/100 | Corrosion resistance: "
        f"{breakdown.corrosion_resistance}/100 — both reflecting in-vivo safety per ISO 10993-5 standards."
    )

    patient_note = " ".join([
        opening,
        _stiffness_sentence(material, bone, ssr),
        _osseointegration_sentence(breakdown.osseointegration),
        biodegradable_note + _load_sentence(material, weight_kg),
        _urgency_sentence(patient) + age_note,
        closing,
    ])

    top_stats = (
        TopStat("Biocompat.", breakdown.biocompatibility),
        TopStat("Osseointegration", breakdown.osseointegration),
        TopStat("Stiffness Match", breakdown.stiffness_match),
        TopStat("Corrosion Resist.", breakdown.corrosion_resistance),
    )

    return ResultsReport(
        perfect_match=BestMatch(
            material_label=material.label,
            material_category=material.category,
            material_color=material.color,
            overall_score=overall,
            rank_label=label,
            top_stats=top_stats,
        ),
        patient_note=patient_note,
        doctor_questions=tuple(_questions(material, bone, breakdown, patient, weight_kg, ssr)),
    )


def format_report(report: ResultsReport) -> str:
    """Render a report as plain text"""
    card = report.perfect_match
    stats = "\n".join(f"  {s.label:<18} {s.value:>3}/100" for s in card.top_stats)
    questions = "\n".join(f"  {i}. {q}" for i, q in enumerate(report.doctor_questions, start=1))
    return f"""
==== BIO-MATCH REPORT ====
{card.material_label} ({card.material_category})
Score: {card.overall_score}/100  [{card.rank_label}]

{stats}

{report.patient_note}

Questions for your surgeon:
{questions}
"""
