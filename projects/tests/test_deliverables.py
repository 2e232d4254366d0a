import json
from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from accounts.services_organizations import add_member, create_organization
from projects.models import Project, ProjectDeliverable, ProjectMember
from projects.services_deliverables import (
    DeliverableValidationError,
    create_deliverable,
    delete_deliverable,
    reorder_deliverables,
    update_deliverable,
)
from projects.services_project_membership import ProjectPermissionError, add_project_member
from reports.services.stats import financial_summary


class DeliverableServiceTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username="own_d", email="own_d@example.com", password="pw")
        self.dev = User.objects.create_user(username="dev_d", email="dev_d@example.com", password="pw")
        self.org = create_organization(name="Deliver Org", creator=self.owner)
        add_member(org=self.org, user_to_add=self.dev, actor=self.owner)
        self.project = Project.objects.create(organization=self.org, owner=self.owner, name="Delivery")
        add_project_member(project=self.project, user_to_add=self.dev, role=ProjectMember.Role.MEMBER, actor=self.owner)

    def test_create_defaults_and_appends(self):
        first = create_deliverable(project=self.project, actor=self.owner, title="Spec")
        second = create_deliverable(
            project=self.project,
            actor=self.owner,
            title=" Build ",
            due_date=date(2026, 3, 1),
            value=Decimal("1200.00"),
        )
        self.assertEqual((first.sort_order, second.sort_order), (0, 1))
        self.assertEqual(first.status, "pending")
        self.assertEqual(first.payment_status, "unpaid")
        self.assertEqual(first.value, Decimal("0"))
        self.assertEqual(second.title, "Build")

    def test_validation(self):
        with self.assertRaises(DeliverableValidationError):
            create_deliverable(project=self.project, actor=self.owner, title="")
        with self.assertRaises(DeliverableValidationError):
            create_deliverable(project=self.project, actor=self.owner, title="Refund", value=Decimal("-1"))
        d = create_deliverable(project=self.project, actor=self.owner, title="Spec")
        with self.assertRaises(DeliverableValidationError):
            update_deliverable(deliverable=d, actor=self.owner, payment_status="overdue")
        with self.assertRaises(DeliverableValidationError):
            update_deliverable(deliverable=d, actor=self.owner, project=self.project)

    def test_member_without_edit_rights_is_rejected(self):
        d = create_deliverable(project=self.project, actor=self.owner, title="Spec")
        with self.assertRaises(ProjectPermissionError):
            create_deliverable(project=self.project, actor=self.dev, title="Nope")
        with self.assertRaises(ProjectPermissionError):
            update_deliverable(deliverable=d, actor=self.dev, status="completed")
        with self.assertRaises(ProjectPermissionError):
            delete_deliverable(deliverable=d, actor=self.dev)

    def test_payment_status_feeds_financial_summary(self):
        a = create_deliverable(project=self.project, actor=self.owner, title="A", value=Decimal("100"))
        b = create_deliverable(project=self.project, actor=self.owner, title="B", value=Decimal("50"))
        create_deliverable(project=self.project, actor=self.owner, title="C", value=Decimal("25"))

        update_deliverable(deliverable=a, actor=self.owner, payment_status="paid", status="completed")
        update_deliverable(deliverable=b, actor=self.owner, payment_status="invoiced")

        summary = financial_summary(self.project)
        self.assertEqual(summary.paid_amount, Decimal("100"))
        self.assertEqual(summary.invoiced_amount, Decimal("50"))
        self.assertEqual(summary.unpaid_amount, Decimal("25"))

    def test_partial_update_leaves_other_fields(self):
        d = create_deliverable(project=self.project, actor=self.owner, title="Spec", value=Decimal("10"))
        update_deliverable(deliverable=d, actor=self.owner, status="in_progress")
        d.refresh_from_db()
        self.assertEqual((d.title, d.value, d.status), ("Spec", Decimal("10"), "in_progress"))

    def test_reorder_and_delete(self):
        a = create_deliverable(project=self.project, actor=self.owner, title="A")
        b = create_deliverable(project=self.project, actor=self.owner, title="B")

        changed = reorder_deliverables(project=self.project, actor=self.owner, deliverable_ids=[b.id, a.id, 999999])

        self.assertEqual(changed, 2)
        self.assertEqual([d.title for d in self.project.deliverables.all()], ["B", "A"])

        delete_deliverable(deliverable=a, actor=self.owner)
        self.assertFalse(ProjectDeliverable.objects.filter(pk=a.pk).exists())


class DeliverableViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.owner = User.objects.create_user(username="own_dv", email="own_dv@example.com", password="pw")
        self.org = create_organization(name="Deliver View Org", creator=self.owner)
        self.project = Project.objects.create(organization=self.org, owner=self.owner, name="Board")
        self.client.force_login(self.owner)

    def test_create_from_detail_page(self):
        resp = self.client.post(
            reverse("projects:deliverable_create", args=[self.project.id]),
            {"title": "Handover", "due_date": "2026-06-30", "value": "500", "status": "pending", "payment_status": "unpaid"},
        )
        self.assertRedirects(resp, reverse("projects:detail", args=[self.project.id]))
        d = self.project.deliverables.get()
        self.assertEqual(d.title, "Handover")
        self.assertEqual(d.value, Decimal("500"))

    def test_edit_page_updates_payment_status(self):
        d = create_deliverable(project=self.project, actor=self.owner, title="Invoice me", value=Decimal("80"))
        url = reverse("projects:deliverable_update", args=[d.id])
        self.assertEqual(self.client.get(url).status_code, 200)

        resp = self.client.post(
            url,
            {"title": "Invoice me", "due_date": "", "value": "80", "status": "completed", "payment_status": "paid"},
        )

        self.assertRedirects(resp, reverse("projects:detail", args=[self.project.id]))
        d.refresh_from_db()
        self.assertEqual((d.status, d.payment_status), ("completed", "paid"))

    def test_reorder_endpoint_accepts_form_lists(self):
        a = create_deliverable(project=self.project, actor=self.owner, title="A")
        b = create_deliverable(project=self.project, actor=self.owner, title="B")
        resp = self.client.post(
            reverse("projects:deliverable_reorder", args=[self.project.id]),
            {"deliverable_ids": [b.id, a.id]},
        )
        self.assertEqual(resp.json(), {"ok": True, "changed": 2})

    def test_reorder_endpoint_rejects_bad_ids(self):
        resp = self.client.post(
            reverse("projects:deliverable_reorder", args=[self.project.id]),
            data=json.dumps({"deliverable_ids": ["x"]}),
            content_type="application/json",
        )
        self.assertEqual(resp.status_code, 400)

    def test_delete_view(self):
        d = create_deliverable(project=self.project, actor=self.owner, title="Gone")
        resp = self.client.post(reverse("projects:deliverable_delete", args=[d.id]))
        self.assertRedirects(resp, reverse("projects:detail", args=[self.project.id]))
        self.assertFalse(self.project.deliverables.exists())
