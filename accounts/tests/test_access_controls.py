from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from accounts.models import OrganizationMember
from accounts.services_organizations import ACTIVE_ORG_SESSION_KEY, add_member, create_organization


class OrganizationAccessControlTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.admin = User.objects.create_user(username="admin_ac", email="admin_ac@example.com", password="pw")
        self.member = User.objects.create_user(username="member_ac", email="member_ac@example.com", password="pw")
        self.other = User.objects.create_user(username="other_ac", email="other_ac@example.com", password="pw")

        self.org = create_organization(name="Acme", creator=self.admin)
        add_member(org=self.org, user_to_add=self.member, actor=self.admin)

    def test_non_member_cannot_open_member_list(self):
        self.client.force_login(self.other)
        resp = self.client.get(reverse("accounts:organization_members", args=[self.org.id]))
        self.assertEqual(resp.status_code, 404)

    def test_non_member_cannot_select_organization(self):
        self.client.force_login(self.other)
        resp = self.client.post(reverse("accounts:organization_select", args=[self.org.id]))
        self.assertEqual(resp.status_code, 404)
        self.assertNotIn(ACTIVE_ORG_SESSION_KEY, self.client.session)

    def test_plain_member_cannot_add_members(self):
        self.client.force_login(self.member)
        resp = self.client.post(
            reverse("accounts:organization_members", args=[self.org.id]),
            {"identifier": "other_ac", "role": "member"},
        )
        self.assertEqual(resp.status_code, 302)
        self.assertFalse(OrganizationMember.objects.filter(organization=self.org, user=self.other).exists())

    def test_admin_adds_member_by_email(self):
        self.client.force_login(self.admin)
        resp = self.client.post(
            reverse("accounts:organization_members", args=[self.org.id]),
            {"identifier": "OTHER_AC@example.com", "role": "member"},
        )
        self.assertEqual(resp.status_code, 302)
        self.assertTrue(OrganizationMember.objects.filter(organization=self.org, user=self.other).exists())

    def test_select_ignores_offsite_next(self):
        self.client.force_login(self.member)
        resp = self.client.post(
            reverse("accounts:organization_select", args=[self.org.id]),
            {"next": "https://evil.example.com/"},
        )
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(resp["Location"], reverse("accounts:dashboard"))
        self.assertEqual(self.client.session[ACTIVE_ORG_SESSION_KEY], self.org.id)

    def test_dashboard_without_organization_renders(self):
        self.client.force_login(self.other)
        resp = self.client.get(reverse("accounts:dashboard"))
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.context["org"])

    def test_login_accepts_email(self):
        resp = self.client.post(reverse("accounts:login"), {"username": "Member_AC@example.com", "password": "pw"})
        self.assertEqual(resp.status_code, 302)
        self.assertEqual(int(self.client.session["_auth_user_id"]), self.member.id)
