from datetime import date
from types import SimpleNamespace

from django.test import SimpleTestCase

from reports.services.wizard import (
    LAST_STEP,
    DecisionEntry,
    HighlightEntry,
    ReportValidationError,
    ReportWizardData,
    RiskEntry,
    WizardState,
    apply_carry_over,
    apply_scope,
    build_publish_input,
    default_wizard_data,
    format_week_range,
    select_projects,
    shift_week,
)


TODAY = date(2025, 3, 12)  # Wednesday


def _risk(**kw):
    base = dict(
        project_id=1,
        type="risk",
        description="Vendor late",
        severity="high",
        status="open",
        mitigation_notes="",
        originated_report_id=None,
        report_id=9,
    )
    base.update(kw)
    return SimpleNamespace(**base)


class PeriodAndTitleTests(SimpleTestCase):
    def test_default_is_current_monday_to_sunday(self):
        data = default_wizard_data(TODAY)
        self.assertEqual(data.period_type, "weekly")
        self.assertEqual((data.period_start, data.period_end), ("2025-03-10", "2025-03-16"))
        self.assertEqual(data.title, "Weekly Report — Mar 10 – 16, 2025")

    def test_week_range_spanning_two_months(self):
        self.assertEqual(format_week_range(date(2025, 3, 31), date(2025, 4, 6)), "Mar 31 – Apr 6, 2025")

    def test_auto_title_follows_period(self):
        data = default_wizard_data(TODAY)
        apply_scope(data, period_type="monthly", anchor=TODAY, title=data.title)
        self.assertEqual((data.period_start, data.period_end), ("2025-03-01", "2025-03-31"))
        self.assertEqual(data.title, "Monthly Report — March 2025")

        apply_scope(data, period_type="custom", period_start=date(2025, 2, 3), period_end=date(2025, 2, 14))
        self.assertEqual(data.title, "Report — Feb 3, 2025 to Feb 14, 2025")

    def test_typed_title_survives_period_change(self):
        data = default_wizard_data(TODAY)
        apply_scope(data, period_type="weekly", anchor=TODAY, title="Board update")
        apply_scope(data, period_type="monthly", anchor=TODAY, title="Board update")
        self.assertEqual(data.title, "Board update")

    def test_invalid_scope(self):
        data = default_wizard_data(TODAY)
        with self.assertRaises(ReportValidationError):
            apply_scope(data, period_type="custom", period_start=TODAY)
        with self.assertRaises(ReportValidationError):
            apply_scope(data, period_type="custom", period_start=TODAY, period_end=date(2025, 3, 1))
        with self.assertRaises(ReportValidationError):
            apply_scope(data, period_type="yearly")

    def test_shift_week(self):
        data = default_wizard_data(TODAY)
        shift_week(data, 1)
        self.assertEqual(data.period_start, "2025-03-17")
        shift_week(data, -1)
        shift_week(data, -1)
        self.assertEqual((data.period_start, data.period_end), ("2025-03-03", "2025-03-09"))
        self.assertEqual(data.title, "Weekly Report — Mar 3 – 9, 2025")


class ProjectSelectionTests(SimpleTestCase):
    def test_new_entries_seeded_from_calculated_progress(self):
        data = default_wizard_data(TODAY)
        select_projects(data, [3, 5, 3], calculated_progress={3: 140, 5: 40})
        self.assertEqual(data.selected_project_ids, [3, 5])
        self.assertEqual(data.project_data[3].progress_percent, 100)
        self.assertEqual(data.project_data[5].progress_percent, 40)

    def test_deselected_entries_are_kept(self):
        data = default_wizard_data(TODAY)
        select_projects(data, [3, 5])
        data.entry_for(5).narrative = "Halfway there"

        select_projects(data, [3])
        self.assertEqual(data.selected_project_ids, [3])
        select_projects(data, [3, 5], calculated_progress={5: 90})
        self.assertEqual(data.project_data[5].narrative, "Halfway there")
        self.assertEqual(data.project_data[5].progress_percent, 0)

    def test_session_dict_keeps_integer_project_keys(self):
        data = default_wizard_data(TODAY)
        select_projects(data, [7])
        data.risks.append(RiskEntry(description="Budget", project_id=7))

        raw = data.to_dict()
        self.assertIn("7", raw["project_data"])
        restored = ReportWizardData.from_dict(raw)
        self.assertIn(7, restored.project_data)
        self.assertEqual(restored.risks[0].id, data.risks[0].id)


class CarryOverTests(SimpleTestCase):
    def test_open_and_mitigated_risks_come_across(self):
        data = default_wizard_data(TODAY)
        previous = SimpleNamespace(id=9)
        risks = [
            _risk(description="Vendor late"),
            _risk(description="Old issue", status="resolved"),
            _risk(description="Staffing", status="mitigated", originated_report_id=4, type="blocker"),
        ]
        apply_carry_over(
            data,
            previous_report=previous,
            previous_projects=[],
            previous_risks=risks,
            active_project_ids=[],
        )
        self.assertEqual([r.description for r in data.risks], ["Vendor late", "Staffing"])
        self.assertEqual([r.originated_report_id for r in data.risks], [9, 4])
        self.assertTrue(all(r.is_carried_over for r in data.risks))
        self.assertEqual(data.risks[1].type, "blocker")
        self.assertNotEqual(data.risks[0].id, data.risks[1].id)

    def test_projects_prefilled_and_active_ones_selected(self):
        data = default_wizard_data(TODAY)
        projects = [
            SimpleNamespace(project_id=1, status="behind", client_satisfaction="neutral", progress_percent=40),
            SimpleNamespace(project_id=2, status="completed", client_satisfaction="satisfied", progress_percent=100),
        ]
        apply_carry_over(
            data,
            previous_report=SimpleNamespace(id=9),
            previous_projects=projects,
            previous_risks=[],
            active_project_ids=[1, 7],
        )
        self.assertEqual(data.selected_project_ids, [1])
        entry = data.project_data[1]
        self.assertEqual((entry.status, entry.previous_status), ("behind", "behind"))
        self.assertEqual((entry.progress_percent, entry.previous_progress), (40, 40))
        self.assertEqual(entry.progress_delta, 0)
        self.assertIn(2, data.project_data)

    def test_no_active_overlap_keeps_selection(self):
        data = default_wizard_data(TODAY)
        select_projects(data, [7])
        apply_carry_over(
            data,
            previous_report=SimpleNamespace(id=9),
            previous_projects=[
                SimpleNamespace(project_id=1, status="halted", client_satisfaction="neutral", progress_percent=10)
            ],
            previous_risks=[],
            active_project_ids=[7],
        )
        self.assertEqual(data.selected_project_ids, [7])

    def test_nothing_to_carry(self):
        data = default_wizard_data(TODAY)
        self.assertIs(
            apply_carry_over(data, previous_report=None, previous_projects=[], previous_risks=[], active_project_ids=[]),
            data,
        )
        self.assertEqual(data.risks, [])


class NavigationTests(SimpleTestCase):
    def test_only_reached_steps_can_be_jumped_to(self):
        state = WizardState(data=default_wizard_data(TODAY))
        self.assertFalse(state.jump_to_step(3))
        state.next_step()
        state.next_step()
        self.assertEqual(state.max_step_reached, 2)
        self.assertTrue(state.jump_to_step(1))
        self.assertEqual(state.step, 1)
        self.assertFalse(state.jump_to_step(3))
        state.prev_step()
        state.prev_step()
        self.assertEqual(state.step, 0)

    def test_session_values_are_clamped(self):
        raw = {"step": 9, "max_step_reached": 12, "data": default_wizard_data(TODAY).to_dict()}
        state = WizardState.from_session(raw)
        self.assertEqual((state.step, state.max_step_reached), (LAST_STEP, LAST_STEP))
        self.assertTrue(state.is_last_step)

    def test_update_rejects_unknown_fields(self):
        state = WizardState(data=default_wizard_data(TODAY))
        state.update(title="Renamed")
        self.assertEqual(state.data.title, "Renamed")
        with self.assertRaises(AttributeError):
            state.update(colour="blue")


class PublishInputTests(SimpleTestCase):
    def _data(self):
        data = default_wizard_data(TODAY)
        select_projects(data, [1, 2])
        return data

    def test_requires_title_and_projects(self):
        data = self._data()
        data.title = "   "
        with self.assertRaisesMessage(ReportValidationError, "Please provide a report title."):
            build_publish_input(data)

        data = default_wizard_data(TODAY)
        with self.assertRaisesMessage(ReportValidationError, "Please select at least one project."):
            build_publish_input(data)

    def test_decisions_continue_highlight_order(self):
        data = self._data()
        data.highlights = [HighlightEntry("Beta shipped"), HighlightEntry("  "), HighlightEntry("Hired QA", project_id=2)]
        data.decisions = [DecisionEntry("Freeze scope")]

        payload = build_publish_input(data)

        self.assertEqual(
            [(h.type, h.description, h.sort_order) for h in payload.highlights],
            [("highlight", "Beta shipped", 0), ("highlight", "Hired QA", 1), ("decision", "Freeze scope", 2)],
        )
        self.assertEqual(payload.highlights[1].project_id, 2)

    def test_blank_entries_dropped_and_progress_clamped(self):
        data = self._data()
        entry = data.entry_for(1)
        entry.progress_percent = 130
        entry.team_contributions = [
            {"member_id": 4, "member_name": "Ana", "contribution": "API"},
            {"member_id": 5, "member_name": "Bo", "contribution": "  "},
        ]
        data.risks = [RiskEntry(" "), RiskEntry(" Supplier ", originated_report_id=3, is_carried_over=True)]

        payload = build_publish_input(data)

        self.assertEqual([p.project_id for p in payload.projects], [1, 2])
        self.assertEqual([p.sort_order for p in payload.projects], [0, 1])
        self.assertEqual(payload.projects[0].progress_percent, 100)
        self.assertEqual([c["member_id"] for c in payload.projects[0].team_contributions], [4])
        self.assertEqual(len(payload.risks), 1)
        self.assertEqual((payload.risks[0].description, payload.risks[0].originated_report_id), ("Supplier", 3))
        self.assertEqual(payload.period_start, date(2025, 3, 10))
