from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase, override_settings

from accounts.services_organizations import create_organization
from assistant.services.llm import LLMResponseError
from assistant.services.rate_limit import RateLimitExceeded
from projects.enums import TaskStatus
from projects.models import Project, Task
from reports.services.ai import (
    build_narrative_prompt,
    generate_report_narrative,
    suggest_report_highlights,
    suggest_report_risks,
)
from reports.services.wizard import HighlightEntry, ProjectStatusEntry, RiskEntry


@override_settings(AI_RATE_LIMIT_MAX=50, AI_RATE_LIMIT_WINDOW_SECONDS=60)
class ReportAITests(TestCase):
    def setUp(self):
        cache.clear()
        User = get_user_model()
        self.user = User.objects.create_user(username="ai_user", email="ai_user@example.com", password="pw")
        self.org = create_organization(name="AI Org", creator=self.user)
        self.project = Project.objects.create(
            organization=self.org, owner=self.user, name="Apollo", client_name="Acme"
        )
        self.entry = ProjectStatusEntry(status="at_risk", progress_percent=55, previous_progress=40)

    def test_narrative_prompt_includes_project_facts(self):
        Task.objects.create(project=self.project, name="Ship login", status=TaskStatus.DONE)
        Task.objects.create(project=self.project, name="Payments", status=TaskStatus.IN_PROGRESS)
        self.entry.team_contributions = [{"member_id": self.user.id, "member_name": "Ana", "contribution": "Fixed SSO"}]

        prompt = build_narrative_prompt(self.project, self.entry)

        self.assertIn("Project: Apollo (Client: Acme)", prompt)
        self.assertIn("Status: at risk", prompt)
        self.assertIn("Progress: 55% (+15% from last week)", prompt)
        self.assertIn("Completed this week (1): Ship login", prompt)
        self.assertIn("Currently in progress (1): Payments", prompt)
        self.assertIn("- Ana: Fixed SSO", prompt)

    @patch("reports.services.ai.generate_text")
    def test_narrative_is_stripped(self, mock_generate):
        mock_generate.return_value = "  Apollo is tracking behind plan.\n"
        text = generate_report_narrative(user=self.user, project=self.project, entry=self.entry)
        self.assertEqual(text, "Apollo is tracking behind plan.")
        self.assertEqual(mock_generate.call_args.kwargs["user"], self.user)

    @patch("reports.services.ai.generate_text")
    def test_risk_suggestions_are_normalised(self, mock_generate):
        mock_generate.return_value = (
            "```json\n"
            '[{"type": "issue", "description": "Vendor delay", "severity": "extreme", "projectName": "Apollo"},'
            ' {"type": "blocker", "description": "   ", "severity": "high"},'
            ' {"type": "blocker", "description": "No QA capacity", "severity": "high", "projectName": "null"},'
            ' "stray"]\n'
            "```"
        )

        out = suggest_report_risks(
            user=self.user,
            projects=[("Apollo", self.entry)],
            existing_risks=[RiskEntry("Budget overrun")],
        )

        self.assertEqual(
            out,
            [
                {"type": "risk", "description": "Vendor delay", "severity": "medium", "project_name": "Apollo"},
                {"type": "blocker", "description": "No QA capacity", "severity": "high", "project_name": None},
            ],
        )
        prompt = mock_generate.call_args.kwargs["messages"][0]["content"]
        self.assertIn("Budget overrun", prompt)
        self.assertIn("- Apollo: Status=at risk, Progress=55%", prompt)

    @patch("reports.services.ai.generate_text")
    def test_unparsable_reply_raises(self, mock_generate):
        mock_generate.return_value = "Sorry, I cannot help with that."
        with self.assertRaises(LLMResponseError):
            suggest_report_risks(user=self.user, projects=[("Apollo", self.entry)])

        mock_generate.return_value = '{"description": "not a list"}'
        with self.assertRaises(LLMResponseError):
            suggest_report_highlights(user=self.user, projects=[("Apollo", self.entry)])

    @patch("reports.services.ai.generate_text")
    def test_highlight_suggestions(self, mock_generate):
        mock_generate.return_value = (
            'Here you go: [{"description": "Apollo jumped 15%", "projectName": "Apollo"}, {"description": ""}]'
        )
        out = suggest_report_highlights(
            user=self.user,
            projects=[("Apollo", self.entry)],
            existing_highlights=[HighlightEntry("Kickoff done")],
        )
        self.assertEqual(out, [{"description": "Apollo jumped 15%", "project_name": "Apollo"}])
        prompt = mock_generate.call_args.kwargs["messages"][0]["content"]
        self.assertIn("(+15%)", prompt)
        self.assertIn("Kickoff done", prompt)

    @override_settings(AI_RATE_LIMIT_MAX=1)
    @patch("reports.services.ai.generate_text", return_value="[]")
    def test_calls_are_rate_limited(self, mock_generate):
        suggest_report_highlights(user=self.user, projects=[("Apollo", self.entry)])
        with self.assertRaises(RateLimitExceeded):
            suggest_report_risks(user=self.user, projects=[("Apollo", self.entry)])
        self.assertEqual(mock_generate.call_count, 1)
