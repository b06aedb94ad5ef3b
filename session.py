# session.py – Matching session state

from __future__ import annotations
import logging
import threading
from typing import List, Dict, Any, Optional

from materials import (
    DEFAULT_BONE_SITE_ID,
    DEFAULT_MATERIAL_ID,
    get_bone_site,
    get_material,
    list_materials,
    validate_weight,
)
from patient import PatientContext, DEFAULT_WEIGHT_KG
from ranking import ScoredMaterial, best_match, rank
from report import ResultsReport, build_report, format_report
from scoring import CompatibilityBreakdown, score

logger = logging.getLogger(__name__)


class Session:
    """
    State holder for one matching session.

    Every input mutation goes through apply_input_change(), which validates,
    commits and recomputes the current breakdown before returning. Ranking and
    report generation run only on explicit request.

    Report requests carry a token from a monotonically increasing counter; a
    pending report is applied only if its token is still the latest issued.
    """

    def __init__(self, bone_site_id: str = DEFAULT_BONE_SITE_ID,
                 material_id: str = DEFAULT_MATERIAL_ID,
                 weight_kg: float = DEFAULT_WEIGHT_KG,
                 patient: Optional[PatientContext] = None):
        self._lock = threading.RLock()
        self.patient = patient or PatientContext()
        self.bone_site_id = bone_site_id
        self.material_id = material_id
        self.weight_kg = DEFAULT_WEIGHT_KG
        self.breakdown: Optional[CompatibilityBreakdown] = None

        self.has_analysed = False
        self.ranked: List[ScoredMaterial] = []

        self.report: Optional[ResultsReport] = None
        self.is_generating_report = False
        self._report_counter = 0
        self._pending: Dict[int, ResultsReport] = {}
        self._timers: Dict[int, threading.Timer] = {}

        self.apply_input_change(bone_site_id=bone_site_id, material_id=material_id, weight_kg=weight_kg)

    # ---------- Inputs ----------

    def apply_input_change(self, bone_site_id: Optional[str] = None,
                           material_id: Optional[str] = None,
                           weight_kg: Optional[float] = None) -> CompatibilityBreakdown:
        """
        Apply any combination of input changes and recompute the breakdown.

        All given inputs are validated before anything is committed, so a failed
        change leaves selection and breakdown as they were.

        Raises:
            CatalogLookupError: unknown bone site or material id
            InvalidInputError: non-positive weight
        """
        with self._lock:
            bone = get_bone_site(bone_site_id if bone_site_id is not None else self.bone_site_id)
            material = get_material(material_id if material_id is not None else self.material_id)
            weight = validate_weight(weight_kg) if weight_kg is not None else self.weight_kg

            breakdown = score(material, bone, weight)
            self.bone_site_id = bone.id
            self.material_id = material.id
            self.weight_kg = weight
            self.breakdown = breakdown
            return breakdown

    def set_bone_site(self, bone_site_id: str) -> CompatibilityBreakdown:
        return self.apply_input_change(bone_site_id=bone_site_id)

    def set_material(self, material_id: str) -> CompatibilityBreakdown:
        return self.apply_input_change(material_id=material_id)

    def set_weight(self, weight_kg: float) -> CompatibilityBreakdown:
        return self.apply_input_change(weight_kg=weight_kg)

    def set_patient(self, **fields: Any) -> PatientContext:
        """Update patient details (no rescoring: patient fields only affect the report)"""
        with self._lock:
            self.patient.update(**fields)
            return self.patient

    def recompute(self) -> CompatibilityBreakdown:
        return self.apply_input_change()

    # ---------- Ranking ----------

    def run_analysis(self) -> List[ScoredMaterial]:
        """Rank the full catalog and select the best material"""
        with self._lock:
            bone = get_bone_site(self.bone_site_id)
            ranked = rank(list_materials(), bone, self.weight_kg)
            best = best_match(ranked)
            if best is None:
                logger.warning("Ranking produced no candidates; selection unchanged")
                return ranked
            self.ranked = ranked
            self.has_analysed = True
            self.material_id = best.material.id
            self.breakdown = best.breakdown
            logger.info(f"Analysis selected {best.material.id} ({best.breakdown.overall}/100) "
                        f"for {bone.id}")
            return ranked

    # ---------- Report ----------

    def request_report(self) -> Optional[int]:
        """
        Start a report request from the current inputs.

        Returns:
            Request token, or None when there is no breakdown to report on
        """
        with self._lock:
            if self.breakdown is None:
                logger.warning("Report requested without a breakdown; ignoring")
                return None
            material = get_material(self.material_id)
            bone = get_bone_site(self.bone_site_id)
            report = build_report(material, bone, self.breakdown, self.patient, self.weight_kg)

            self._report_counter += 1
            token = self._report_counter
            self._pending = {token: report}
            self.report = None
            self.is_generating_report = True
            logger.info(f"Report request {token} for {material.id} @ {bone.id}")
            return token

    def deliver_report(self, token: int) -> bool:
        """Apply the pending report for token; stale tokens are discarded"""
        with self._lock:
            self._timers.pop(token, None)
            if token != self._report_counter or token not in self._pending:
                logger.warning(f"Discarding stale report {token} (latest is {self._report_counter})")
                return False
            self.report = self._pending.pop(token)
            self.is_generating_report = False
            logger.info(f"Report {token} delivered")
            logger.debug(format_report(self.report))
            return True

    def generate_report(self, delay_seconds: float = 0.0) -> Optional[int]:
        """Request a report and deliver it after delay_seconds (immediately if <= 0)"""
        with self._lock:
            token = self.request_report()
            if token is None:
                return None
            if delay_seconds <= 0:
                self.deliver_report(token)
                return token
            if token != self._report_counter:
                # superseded while the request was being built
                return token
            for earlier in [t for t in self._timers if t < token]:
                self._timers.pop(earlier).cancel()
            timer = threading.Timer(delay_seconds, self.deliver_report, args=(token,))
            timer.daemon = True
            self._timers[token] = timer
            timer.start()
            return token

    # ---------- Queries ----------

    def snapshot(self) -> Dict[str, Any]:
        """Read-only copy of session state"""
        with self._lock:
            return {
                'patient': self.patient.to_dict(),
                'bone_site_id': self.bone_site_id,
                'material_id': self.material_id,
                'weight_kg': self.weight_kg,
                'breakdown': self.breakdown.to_dict() if self.breakdown else None,
                'has_analysed': self.has_analysed,
                'ranked': [s.to_dict() for s in self.ranked],
                'report': self.report.to_dict() if self.report else None,
                'is_generating_report': self.is_generating_report,
            }
