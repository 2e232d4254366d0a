from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from accounts.services_organizations import add_member, create_organization
from notifications.models import Notification
from projects.enums import TaskStatus
from projects.models import Project, Task
from reports.enums import ACTION_ITEM_TAG
from reports.models import Report, ReportProject
from reports.services.access import ReportPermissionError
from reports.services.action_items import create_report_action_item, normalise_priority
from reports.services.queries import open_action_items, report_action_items, weeks_open
from reports.services.wizard import ReportValidationError


class ActionItemTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username="ai_own", email="ai_own@example.com", password="pw")
        self.member = User.objects.create_user(username="ai_mem", email="ai_mem@example.com", password="pw")
        self.outsider = User.objects.create_user(username="ai_out", email="ai_out@example.com", password="pw")
        self.org = create_organization(name="Action Org", creator=self.owner)
        add_member(org=self.org, user_to_add=self.member, actor=self.owner)
        other_org = create_organization(name="Other Action Org", creator=self.outsider)

        self.project = Project.objects.create(organization=self.org, owner=self.owner, name="Hermes")
        self.foreign = Project.objects.create(organization=other_org, owner=self.outsider, name="Foreign")
        self.report = Report.objects.create(
            organization=self.org,
            created_by=self.owner,
            title="Weekly",
            period_start=date(2025, 3, 10),
            period_end=date(2025, 3, 16),
        )
        ReportProject.objects.create(report=self.report, project=self.project)

    def test_action_item_is_a_tagged_root_task(self):
        Task.objects.create(project=self.project, name="Existing", sort_order=4)

        task = create_report_action_item(
            report=self.report,
            project=self.project,
            actor=self.owner,
            name="  Call the vendor ",
            assignee=self.member,
            priority="URGENT",
            due_date=date(2025, 3, 20),
        )

        self.assertEqual(task.name, "Call the vendor")
        self.assertEqual(task.tag, ACTION_ITEM_TAG)
        self.assertEqual(task.source_report, self.report)
        self.assertIsNone(task.workstream_id)
        self.assertEqual(task.status, TaskStatus.TODO)
        self.assertEqual(task.priority, "urgent")
        self.assertEqual(task.sort_order, 5)
        self.assertEqual(task.end_date, date(2025, 3, 20))
        self.assertEqual(list(report_action_items(self.report)), [task])

    def test_assignee_is_notified_unless_self(self):
        create_report_action_item(report=self.report, project=self.project, actor=self.owner, name="A", assignee=self.member)
        create_report_action_item(report=self.report, project=self.project, actor=self.owner, name="B", assignee=self.owner)

        note = Notification.objects.get(recipient=self.member)
        self.assertEqual(note.title, "New action item: A")
        self.assertEqual(note.link_url, reverse("reports:detail", args=[self.report.id]))
        self.assertFalse(Notification.objects.filter(recipient=self.owner).exists())

    def test_validation(self):
        with self.assertRaises(ReportValidationError):
            create_report_action_item(report=self.report, project=self.project, actor=self.owner, name=" ")
        with self.assertRaises(ReportValidationError):
            create_report_action_item(report=self.report, project=self.foreign, actor=self.owner, name="X")
        with self.assertRaises(ReportValidationError):
            create_report_action_item(
                report=self.report, project=self.project, actor=self.owner, name="X", assignee=self.outsider
            )
        with self.assertRaises(ReportPermissionError):
            create_report_action_item(report=self.report, project=self.project, actor=self.outsider, name="X")
        self.assertFalse(Task.objects.filter(source_report=self.report).exists())

    def test_unknown_priority_becomes_medium(self):
        self.assertEqual(normalise_priority("whenever"), "medium")
        self.assertEqual(normalise_priority(None), "medium")
        self.assertEqual(normalise_priority(" High "), "high")

    def test_open_action_items_age_in_weeks(self):
        old = create_report_action_item(report=self.report, project=self.project, actor=self.owner, name="Old")
        done = create_report_action_item(report=self.report, project=self.project, actor=self.owner, name="Done")
        Task.objects.filter(pk=done.pk).update(status=TaskStatus.DONE)
        Task.objects.create(project=self.project, name="Plain task")

        today = timezone.localdate()
        Task.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=15))

        items = open_action_items(self.org, today)
        self.assertEqual([i.task.name for i in items], ["Old"])
        self.assertEqual(items[0].weeks_open, 2)

    def test_weeks_open_never_negative(self):
        tomorrow = timezone.now() + timedelta(days=1)
        self.assertEqual(weeks_open(tomorrow, timezone.localdate()), 0)

    def test_create_view(self):
        self.client.force_login(self.member)
        resp = self.client.post(
            reverse("reports:action_item_create", args=[self.report.id]),
            {"project": str(self.project.id), "name": "Send minutes", "priority": "high", "assignee": str(self.owner.id)},
        )
        self.assertRedirects(resp, reverse("reports:detail", args=[self.report.id]), fetch_redirect_response=False)
        task = Task.objects.get(source_report=self.report)
        self.assertEqual((task.name, task.assignee, task.priority), ("Send minutes", self.owner, "high"))

    def test_create_view_rejects_project_outside_report(self):
        other = Project.objects.create(organization=self.org, owner=self.owner, name="Not in report")
        self.client.force_login(self.member)
        self.client.post(
            reverse("reports:action_item_create", args=[self.report.id]),
            {"project": str(other.id), "name": "Nope", "priority": "high"},
        )
        self.assertFalse(Task.objects.filter(source_report=self.report).exists())
