from decimal import Decimal
from unittest.mock import patch

import openai
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse

from accounts.services_organizations import add_member, create_organization
from projects.models import Project, ProjectDeliverable, ProjectMember, Task, Workstream
from projects.services.project_wizard import (
    DeliverableInput,
    MetricInput,
    ProjectInput,
    ProjectValidationError,
    StarterTaskInput,
    create_project,
    generate_starter_tasks,
)


class CreateProjectTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.alice = User.objects.create_user(username="alice_p", email="alice_p@example.com", password="pw")
        self.bob = User.objects.create_user(username="bob_p", email="bob_p@example.com", password="pw")
        self.carol = User.objects.create_user(username="carol_p", email="carol_p@example.com", password="pw")
        self.outsider = User.objects.create_user(username="out_p", email="out_p@example.com", password="pw")
        self.org = create_organization(name="Wizard Org", creator=self.alice)
        add_member(org=self.org, user_to_add=self.bob, actor=self.alice)
        add_member(org=self.org, user_to_add=self.carol, actor=self.alice)

    def test_quick_create_seeds_owner_membership(self):
        project = create_project(org=self.org, actor=self.alice, data=ProjectInput(name="  Website  "))
        self.assertEqual(project.name, "Website")
        self.assertEqual(project.owner, self.alice)
        member = ProjectMember.objects.get(project=project, user=self.alice)
        self.assertEqual(member.role, ProjectMember.Role.OWNER)

    def test_guided_create_writes_everything_and_filters_blanks(self):
        data = ProjectInput(
            name="Relaunch",
            mode="guided",
            intent="delivery",
            success_type="deliverable",
            deliverables=[
                DeliverableInput(title="Design", value=Decimal("1500.00")),
                DeliverableInput(title="   "),
            ],
            metrics=[MetricInput(name="NPS", target="40"), MetricInput(name="")],
            owner_id=self.alice.id,
            contributor_ids=[self.bob.id, self.bob.id, self.outsider.id, self.alice.id],
            stakeholder_ids=[self.carol.id, self.bob.id],
            work_structure="multistream",
            workstreams=["Design", " Build ", ""],
            starter_tasks=[
                StarterTaskInput(title="Wireframes", priority="HIGH", workstream="design"),
                StarterTaskInput(title="Set up CI", priority="bogus", workstream="Ops"),
                StarterTaskInput(title=" "),
            ],
        )
        project = create_project(org=self.org, actor=self.alice, data=data)

        self.assertEqual(list(project.deliverables.values_list("title", flat=True)), ["Design"])
        self.assertEqual(list(project.metrics.values_list("name", flat=True)), ["NPS"])

        roles = dict(ProjectMember.objects.filter(project=project).values_list("user_id", "role"))
        self.assertEqual(
            roles,
            {
                self.alice.id: ProjectMember.Role.OWNER,
                self.bob.id: ProjectMember.Role.MEMBER,
                self.carol.id: ProjectMember.Role.VIEWER,
            },
        )

        self.assertEqual(list(project.workstreams.values_list("name", flat=True)), ["Design", "Build"])
        wireframes = Task.objects.get(project=project, name="Wireframes")
        self.assertEqual(wireframes.workstream.name, "Design")
        self.assertEqual(wireframes.priority, "high")
        ci = Task.objects.get(project=project, name="Set up CI")
        self.assertIsNone(ci.workstream)
        self.assertEqual(ci.priority, "medium")
        self.assertEqual(project.tasks.count(), 2)

    def test_owner_can_be_another_org_member(self):
        project = create_project(org=self.org, actor=self.alice, data=ProjectInput(name="Delegated", owner_id=self.bob.id))
        self.assertEqual(project.owner, self.bob)
        self.assertFalse(ProjectMember.objects.filter(project=project, user=self.alice).exists())

    def test_owner_outside_org_is_rejected(self):
        with self.assertRaises(ProjectValidationError):
            create_project(org=self.org, actor=self.alice, data=ProjectInput(name="X", owner_id=self.outsider.id))
        self.assertFalse(Project.objects.exists())

    def test_validation_errors(self):
        with self.assertRaisesMessage(ProjectValidationError, "Project name is required"):
            create_project(org=self.org, actor=self.alice, data=ProjectInput(name="   "))
        with self.assertRaises(ProjectValidationError):
            create_project(org=self.org, actor=self.alice, data=ProjectInput(name="X", deadline_type="fixed"))
        with self.assertRaises(ProjectValidationError):
            create_project(org=self.org, actor=self.alice, data=ProjectInput(name="x" * 201))

    def test_failed_task_insert_rolls_back_project(self):
        data = ProjectInput(name="Atomic", starter_tasks=[StarterTaskInput(title="T1")])
        with patch("projects.services.project_wizard.Task.objects.bulk_create", side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                create_project(org=self.org, actor=self.alice, data=data)
        self.assertFalse(Project.objects.filter(name="Atomic").exists())
        self.assertFalse(Workstream.objects.exists())
        self.assertFalse(ProjectDeliverable.objects.exists())


class StarterTaskSuggestionTests(TestCase):
    def setUp(self):
        cache.clear()
        User = get_user_model()
        self.user = User.objects.create_user(username="ai_p", email="ai_p@example.com", password="pw")

    def test_suggestions_are_normalised(self):
        reply = [
            {"title": "Kickoff", "description": "Meet", "priority": "HIGH", "workstream": "build"},
            {"title": "", "priority": "low"},
            {"title": "Retro", "priority": "whenever", "workstream": "Unknown"},
            "junk",
        ]
        data = ProjectInput(name="P", workstreams=["Build"])
        with patch("projects.services.project_wizard.generate_json", return_value=reply) as mocked:
            out = generate_starter_tasks(user=self.user, data=data)

        self.assertEqual(
            out,
            [
                {"title": "Kickoff", "description": "Meet", "priority": "high", "workstream": "Build"},
                {"title": "Retro", "description": "", "priority": "medium", "workstream": ""},
            ],
        )
        self.assertEqual(mocked.call_args.kwargs["temperature"], 0.8)


class ProjectWizardViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username="wiz_v", email="wiz_v@example.com", password="pw")
        self.org = create_organization(name="View Org", creator=self.user)
        self.client.force_login(self.user)

    def test_guided_flow_creates_project(self):
        url = reverse("projects:wizard")
        self.assertEqual(self.client.get(url).status_code, 200)

        self.client.post(url, {"name": "Guided", "intent": "internal", "description": "", "client_name": ""})
        self.client.post(url, {"success_type": "metric", "deliverables": "", "metrics": "Uptime | 99.9%"})
        self.client.post(url, {"owner": str(self.user.id)})
        self.client.post(url, {"work_structure": "multistream", "workstreams": "Alpha\nBeta", "deadline_type": "none"})
        resp = self.client.post(url, {"action": "create", "starter_tasks": "First | high | Beta"})

        project = Project.objects.get(name="Guided")
        self.assertRedirects(resp, reverse("projects:detail", args=[project.id]))
        self.assertEqual(project.intent, "internal")
        self.assertEqual(project.metrics.get().target, "99.9%")
        self.assertEqual(project.tasks.get().workstream.name, "Beta")
        self.assertNotIn("pd_project_wizard", self.client.session)

    def test_cannot_jump_past_furthest_step(self):
        url = reverse("projects:wizard")
        self.client.post(url, {"name": "Jumpy", "intent": "internal", "step": "3"})
        state = self.client.session["pd_project_wizard"]
        self.assertEqual(state["step"], 0)

    def test_quick_create_view(self):
        resp = self.client.post(
            reverse("projects:create"),
            {"name": "Quick", "status": "active", "priority": "high", "currency": "eur"},
        )
        project = Project.objects.get(name="Quick")
        self.assertRedirects(resp, reverse("projects:detail", args=[project.id]))
        self.assertEqual(project.currency, "EUR")

    @patch("assistant.services.llm._get_openai_client", side_effect=openai.OpenAIError("Missing credentials"))
    def test_starter_task_provider_failure_shows_message(self, _mock):
        cache.clear()
        url = reverse("projects:wizard")
        self.client.post(url, {"name": "Offline", "intent": "internal", "description": "", "client_name": ""})
        self.client.post(url, {"success_type": "metric", "deliverables": "", "metrics": ""})
        self.client.post(url, {"owner": str(self.user.id)})
        self.client.post(url, {"work_structure": "linear", "workstreams": "", "deadline_type": "none"})

        resp = self.client.post(url, {"action": "generate_tasks", "starter_tasks": ""}, follow=True)

        self.assertEqual(resp.status_code, 200)
        self.assertIn("Failed to call OpenAI: Missing credentials", [str(m) for m in resp.context["messages"]])
        self.assertEqual(self.client.session["pd_project_wizard"]["data"]["starter_tasks"], [])
