from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from accounts.services_organizations import add_member, create_organization
from projects.enums import PaymentStatus, TaskStatus
from projects.models import Project, ProjectDeliverable, Task
from reports.models import Report, ReportRisk
from reports.services.access import ReportPermissionError
from reports.services.publish import create_report, delete_report, update_report
from reports.services.queries import previous_report_data
from reports.services.wizard import (
    LAST_STEP,
    DecisionEntry,
    HighlightEntry,
    ReportValidationError,
    RiskEntry,
    build_publish_input,
    default_wizard_data,
    load_for_edit,
    select_projects,
)


class PublishReportTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username="own_r", email="own_r@example.com", password="pw")
        self.member = User.objects.create_user(username="mem_r", email="mem_r@example.com", password="pw")
        self.outsider = User.objects.create_user(username="out_r", email="out_r@example.com", password="pw")
        self.org = create_organization(name="Report Org", creator=self.owner)
        add_member(org=self.org, user_to_add=self.member, actor=self.owner)
        self.other_org = create_organization(name="Elsewhere", creator=self.outsider)

        self.today = timezone.localdate()
        self.project = Project.objects.create(organization=self.org, owner=self.owner, name="Apollo", currency="EUR")

    def _data(self, *project_ids):
        data = default_wizard_data(self.today)
        select_projects(data, project_ids or [self.project.id])
        return data

    def test_publish_freezes_task_and_financial_numbers(self):
        Task.objects.create(project=self.project, name="Done", status=TaskStatus.DONE)
        Task.objects.create(project=self.project, name="Doing", status=TaskStatus.IN_PROGRESS)
        Task.objects.create(project=self.project, name="Late", end_date=self.today - timedelta(days=3))
        ProjectDeliverable.objects.create(project=self.project, title="Phase 1", value=Decimal("1000"), payment_status=PaymentStatus.PAID)
        ProjectDeliverable.objects.create(project=self.project, title="Phase 2", value=Decimal("500"), payment_status=PaymentStatus.INVOICED)
        ProjectDeliverable.objects.create(project=self.project, title="Phase 3", value=Decimal("250"))

        data = self._data()
        entry = data.entry_for(self.project.id)
        entry.status = "behind"
        entry.narrative = "Slower than planned."
        entry.team_contributions = [{"member_id": self.member.id, "member_name": "mem_r", "contribution": "Checkout"}]

        report = create_report(org=self.org, actor=self.member, payload=build_publish_input(data), today=self.today)

        rp = report.report_projects.get()
        self.assertEqual(rp.status, "behind")
        self.assertEqual((rp.tasks_completed, rp.tasks_in_progress, rp.tasks_overdue), (1, 1, 1))
        self.assertEqual(rp.financial_total_value, Decimal("1750"))
        self.assertEqual(rp.financial_paid_amount, Decimal("1000"))
        self.assertEqual(rp.financial_invoiced_amount, Decimal("500"))
        self.assertEqual(rp.financial_unpaid_amount, Decimal("250"))
        self.assertEqual(rp.financial_currency, "EUR")
        self.assertEqual(rp.team_contributions[0]["member_id"], self.member.id)
        self.assertEqual(report.created_by, self.member)

    def test_children_written_in_order(self):
        data = self._data()
        data.risks = [RiskEntry("Scope creep", project_id=self.project.id)]
        data.highlights = [HighlightEntry("Beta live")]
        data.decisions = [DecisionEntry("Drop feature X")]

        report = create_report(org=self.org, actor=self.owner, payload=build_publish_input(data))

        self.assertEqual(list(report.highlights.values_list("type", "sort_order")), [("highlight", 0), ("decision", 1)])
        risk = report.risks.get()
        self.assertEqual(risk.originated_report_id, report.id)
        self.assertFalse(risk.is_carried_over)

    def test_missing_origin_falls_back_to_current_report(self):
        first = create_report(org=self.org, actor=self.owner, payload=build_publish_input(self._data()))

        data = self._data()
        data.risks = [
            RiskEntry("Known", originated_report_id=first.id, is_carried_over=True),
            RiskEntry("Orphan", originated_report_id=987654, is_carried_over=True),
        ]
        second = create_report(org=self.org, actor=self.owner, payload=build_publish_input(data))

        origins = dict(second.risks.values_list("description", "originated_report_id"))
        self.assertEqual(origins, {"Known": first.id, "Orphan": second.id})
        self.assertTrue(second.risks.get(description="Known").is_carried_over)

    def test_foreign_project_is_rejected(self):
        foreign = Project.objects.create(organization=self.other_org, owner=self.outsider, name="Theirs")
        payload = build_publish_input(self._data(self.project.id, foreign.id))
        with self.assertRaises(ReportValidationError):
            create_report(org=self.org, actor=self.owner, payload=payload)
        self.assertFalse(Report.objects.exists())

    def test_foreign_risk_project_is_dropped(self):
        foreign = Project.objects.create(organization=self.other_org, owner=self.outsider, name="Theirs")
        data = self._data()
        data.risks = [RiskEntry("Cross-org", project_id=foreign.id)]
        report = create_report(org=self.org, actor=self.owner, payload=build_publish_input(data))
        self.assertIsNone(report.risks.get().project_id)

    def test_non_member_cannot_publish_or_delete(self):
        payload = build_publish_input(self._data())
        with self.assertRaises(ReportPermissionError):
            create_report(org=self.org, actor=self.outsider, payload=payload)

        report = create_report(org=self.org, actor=self.owner, payload=payload)
        with self.assertRaises(ReportPermissionError):
            delete_report(report=report, actor=self.outsider)
        delete_report(report=report, actor=self.member)
        self.assertFalse(Report.objects.exists())

    def test_update_replaces_children(self):
        second = Project.objects.create(organization=self.org, owner=self.owner, name="Zeus")
        data = self._data()
        data.risks = [RiskEntry("Old risk")]
        data.highlights = [HighlightEntry("Old highlight")]
        report = create_report(org=self.org, actor=self.owner, payload=build_publish_input(data))

        data = self._data(second.id)
        data.title = "Renamed report"
        data.highlights = [HighlightEntry("New highlight")]
        update_report(report=report, actor=self.member, payload=build_publish_input(data))

        report.refresh_from_db()
        self.assertEqual(report.title, "Renamed report")
        self.assertEqual(list(report.report_projects.values_list("project_id", flat=True)), [second.id])
        self.assertFalse(report.risks.exists())
        self.assertEqual(list(report.highlights.values_list("description", flat=True)), ["New highlight"])

    def test_load_for_edit_marks_carried_risks(self):
        first = create_report(org=self.org, actor=self.owner, payload=build_publish_input(self._data()))
        data = self._data()
        data.risks = [RiskEntry("Inherited", originated_report_id=first.id), RiskEntry("Fresh")]
        data.decisions = [DecisionEntry("Go live Friday")]
        second = create_report(org=self.org, actor=self.owner, payload=build_publish_input(data))

        state = load_for_edit(second)

        self.assertEqual(state.editing_report_id, second.id)
        self.assertEqual((state.step, state.max_step_reached), (0, LAST_STEP))
        carried = {r.description: r.is_carried_over for r in state.data.risks}
        self.assertEqual(carried, {"Inherited": True, "Fresh": False})
        self.assertEqual([d.description for d in state.data.decisions], ["Go live Friday"])
        self.assertEqual(state.data.selected_project_ids, [self.project.id])


class PreviousReportTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username="prev_o", email="prev_o@example.com", password="pw")
        self.org = create_organization(name="Prev Org", creator=self.owner)

    def _report(self, title, start):
        return Report.objects.create(
            organization=self.org,
            created_by=self.owner,
            title=title,
            period_start=start,
            period_end=start + timedelta(days=6),
        )

    def test_latest_period_wins_and_only_live_risks_are_returned(self):
        older = self._report("Older", date(2025, 3, 3))
        newer = self._report("Newer", date(2025, 3, 10))
        ReportRisk.objects.create(report=newer, description="Open", status="open")
        ReportRisk.objects.create(report=newer, description="Mitigated", status="mitigated")
        ReportRisk.objects.create(report=newer, description="Resolved", status="resolved")

        prev = previous_report_data(self.org)
        self.assertEqual(prev.report, newer)
        self.assertEqual([r.description for r in prev.risks], ["Open", "Mitigated"])

        self.assertEqual(previous_report_data(self.org, exclude_report_id=newer.id).report, older)

    def test_empty_organization(self):
        prev = previous_report_data(self.org)
        self.assertIsNone(prev.report)
        self.assertEqual(prev.risks, [])
