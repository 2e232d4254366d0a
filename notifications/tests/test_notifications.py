from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from accounts.services_organizations import add_member, create_organization
from notifications.models import Notification
from notifications.services import notify


class NotifyTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.actor = User.objects.create_user(username="actor", email="actor@example.com", password="pw")
        self.bob = User.objects.create_user(username="bob_n", email="bob_n@example.com", password="pw")
        self.org = create_organization(name="Notify Org", creator=self.actor)
        add_member(org=self.org, user_to_add=self.bob, actor=self.actor)

    def test_actor_is_skipped_and_duplicates_collapse(self):
        rows = notify(
            organization=self.org,
            recipients=[self.bob, self.actor, self.bob, None],
            actor=self.actor,
            title="Hello",
        )
        self.assertEqual(len(rows), 1)
        self.assertEqual(Notification.objects.filter(recipient=self.bob).count(), 1)
        self.assertEqual(Notification.objects.filter(recipient=self.actor).count(), 0)

    def test_inbox_shows_unread_and_marks_read(self):
        notify(organization=self.org, recipients=[self.bob], actor=self.actor, title="Ping")
        n = Notification.objects.get(recipient=self.bob)

        self.client.force_login(self.bob)
        resp = self.client.get(reverse("notifications:list"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context["unread_count"], 1)

        resp = self.client.post(reverse("notifications:set_read", args=[n.id, "read"]))
        self.assertEqual(resp.status_code, 302)
        n.refresh_from_db()
        self.assertTrue(n.is_read)

    def test_navbar_context_lists_latest_unread(self):
        for i in range(7):
            notify(organization=self.org, recipients=[self.bob], actor=self.actor, title=f"Item {i}")
        Notification.objects.filter(recipient=self.bob, title="Item 6").update(is_read=True)

        self.client.force_login(self.bob)
        bar = self.client.get(reverse("notifications:list")).context["pd_notifications"]
        self.assertEqual(bar["unread_count"], 6)
        self.assertEqual([n.title for n in bar["recent"]], ["Item 5", "Item 4", "Item 3", "Item 2", "Item 1"])

    def test_open_marks_read_and_follows_local_links_only(self):
        notify(organization=self.org, recipients=[self.bob], actor=self.actor, title="Local", link_url="/projects/")
        notify(
            organization=self.org, recipients=[self.bob], actor=self.actor, title="Off", link_url="https://evil.example.com/"
        )
        local = Notification.objects.get(title="Local")
        offsite = Notification.objects.get(title="Off")
        self.client.force_login(self.bob)

        resp = self.client.get(reverse("notifications:open", args=[local.id]))
        self.assertEqual(resp["Location"], "/projects/")
        local.refresh_from_db()
        self.assertTrue(local.is_read)

        resp = self.client.get(reverse("notifications:open", args=[offsite.id]))
        self.assertEqual(resp["Location"], reverse("notifications:list"))

    def test_other_users_notification_is_404(self):
        notify(organization=self.org, recipients=[self.bob], actor=self.actor, title="Private")
        n = Notification.objects.get(recipient=self.bob)
        self.client.force_login(self.actor)
        resp = self.client.post(reverse("notifications:set_read", args=[n.id, "read"]))
        self.assertEqual(resp.status_code, 404)

    def test_mark_all_read_blocks_offsite_next(self):
        notify(organization=self.org, recipients=[self.bob], actor=self.actor, title="One")
        self.client.force_login(self.bob)
        resp = self.client.post(reverse("notifications:mark_all_read"), {"next": "//evil.example.com/"})
        self.assertEqual(resp["Location"], reverse("notifications:list"))
        self.assertFalse(Notification.objects.filter(recipient=self.bob, is_read=False).exists())
