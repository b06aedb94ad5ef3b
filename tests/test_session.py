"""Session state tests: recompute on input change, ranking selection, report ordering."""

import logging
import time

import pytest

from materials import CatalogLookupError, InvalidInputError
import session as session_module
from session import Session


@pytest.fixture
def session() -> Session:
    return Session()


class TestInputs:
    def test_initial_breakdown(self, session):
        assert session.bone_site_id == 'femur'
        assert session.material_id == 'ti6al4v_eli'
        assert session.weight_kg == 70
        assert session.breakdown.overall == 78

    def test_set_material_recomputes(self, session):
        before = session.breakdown
        after = session.set_material('alumina')
        assert session.material_id == 'alumina'
        assert session.breakdown is after
        assert after != before

    def test_set_bone_site_recomputes(self, session):
        session.set_bone_site('skull')
        assert session.bone_site_id == 'skull'
        assert session.breakdown.biocompatibility < 81

    def test_set_weight_recomputes(self, session):
        session.set_material('uhmwpe')
        session.set_bone_site('vertebra')
        light = session.breakdown.weight_load
        session.set_weight(600)
        assert session.weight_kg == 600
        assert session.breakdown.weight_load < light

    def test_unknown_material_leaves_state(self, session):
        before = session.breakdown
        with pytest.raises(CatalogLookupError):
            session.set_material('unobtanium')
        assert session.material_id == 'ti6al4v_eli'
        assert session.breakdown is before

    def test_invalid_weight_leaves_state(self, session):
        before = session.breakdown
        with pytest.raises(InvalidInputError):
            session.set_weight(0)
        assert session.weight_kg == 70
        assert session.breakdown is before

    def test_partial_change_is_atomic(self, session):
        with pytest.raises(CatalogLookupError):
            session.apply_input_change(bone_site_id='tibia', material_id='nope')
        assert session.bone_site_id == 'femur'

    def test_patient_update(self, session):
        before = session.breakdown
        session.set_patient(name="Ada", urgency="critical")
        assert session.patient.name == "Ada"
        assert session.patient.is_expedited
        assert session.breakdown is before

    def test_patient_bad_urgency(self, session):
        with pytest.raises(InvalidInputError):
            session.set_patient(name="Ada", urgency="whenever")
        assert session.patient.name == ""
        assert session.patient.urgency == "moderate"


class TestAnalysis:
    def test_selects_best_match(self, session):
        session.set_material('alumina')
        ranked = session.run_analysis()
        assert session.has_analysed
        assert session.material_id == ranked[0].material.id
        assert session.breakdown == ranked[0].breakdown
        assert session.ranked == ranked

    def test_ranking_follows_bone_and_weight(self, session):
        session.set_bone_site('vertebra')
        session.set_weight(120)
        ranked = session.run_analysis()
        assert session.breakdown == session.recompute()
        assert ranked[0].breakdown.overall == max(s.breakdown.overall for s in ranked)

    def test_empty_catalog_keeps_selection(self, session, monkeypatch):
        monkeypatch.setattr(session_module, "list_materials", lambda: [])
        session.set_material('alumina')
        assert session.run_analysis() == []
        assert session.material_id == 'alumina'
        assert not session.has_analysed


class TestReport:
    def test_immediate_generation(self, session):
        token = session.generate_report(delay_seconds=0)
        assert token == 1
        assert session.report is not None
        assert not session.is_generating_report
        assert session.report.perfect_match.material_label == "Ti-6Al-4V ELI"

    def test_pending_until_delivered(self, session):
        token = session.request_report()
        assert session.is_generating_report
        assert session.report is None
        assert session.deliver_report(token)
        assert session.report is not None

    def test_stale_request_discarded(self, session):
        first = session.request_report()
        second = session.request_report()
        assert not session.deliver_report(first)
        assert session.report is None
        assert session.deliver_report(second)

    def test_late_stale_delivery_does_not_overwrite(self, session):
        session.set_patient(name="Old")
        first = session.request_report()
        session.set_patient(name="New")
        second = session.request_report()
        assert session.deliver_report(second)
        assert not session.deliver_report(first)
        assert session.report.patient_note.startswith("For New,")

    def test_regeneration_replaces_report(self, session):
        session.generate_report()
        old = session.report
        session.set_material('peek')
        session.generate_report()
        assert session.report is not old
        assert session.report.perfect_match.material_label == "PEEK-OPTIMA"

    def test_no_breakdown_is_noop(self, session):
        session.breakdown = None
        assert session.request_report() is None
        assert session.generate_report(delay_seconds=0) is None
        assert session.report is None
        assert not session.is_generating_report

    def test_delayed_delivery(self, session):
        session.generate_report(delay_seconds=0.01)
        session.generate_report(delay_seconds=0.02)
        deadline = time.time() + 2.0
        while session.report is None and time.time() < deadline:
            time.sleep(0.01)
        assert session.report is not None
        assert not session.is_generating_report

    def test_request_issued_during_generation_is_delivered(self, session, monkeypatch):
        original = session.request_report
        nested = []

        def request_then_interleave():
            token = original()
            if not nested:
                nested.append(None)
                session.set_patient(name="Newest")
                nested[0] = session.generate_report(delay_seconds=0.2)
            return token

        monkeypatch.setattr(session, "request_report", request_then_interleave)
        first = session.generate_report(delay_seconds=0.2)
        assert first == 1
        assert nested == [2]
        assert list(session._timers) == [2]

        deadline = time.time() + 2.0
        while session.report is None and time.time() < deadline:
            time.sleep(0.01)
        assert session.report is not None
        assert not session.is_generating_report
        assert session.report.patient_note.startswith("For Newest,")

    def test_superseded_timer_cancelled(self, session):
        session.generate_report(delay_seconds=5.0)
        first_timer = session._timers[1]
        session.generate_report(delay_seconds=0.01)
        assert first_timer.finished.is_set()
        assert 1 not in session._timers
        deadline = time.time() + 2.0
        while session.report is None and time.time() < deadline:
            time.sleep(0.01)
        assert session.report is not None
        assert session._timers == {}

    def test_delivery_logs_text_rendering(self, session, caplog):
        caplog.set_level(logging.DEBUG, logger="session")
        session.generate_report(delay_seconds=0)
        assert "==== BIO-MATCH REPORT ====" in caplog.text
        assert "Ti-6Al-4V ELI (metal)" in caplog.text


class TestSnapshot:
    def test_snapshot_is_copy(self, session):
        snap = session.snapshot()
        snap['material_id'] = 'alumina'
        snap['patient']['name'] = "Mallory"
        assert session.material_id == 'ti6al4v_eli'
        assert session.patient.name == ""

    def test_snapshot_contents(self, session):
        snap = session.snapshot()
        assert snap['breakdown']['overall'] == 78
        assert snap['report'] is None
        assert snap['ranked'] == []
