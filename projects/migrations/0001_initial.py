import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Project",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("client_name", models.CharField(blank=True, default="", max_length=200)),
                ("status", models.CharField(choices=[("backlog", "Backlog"), ("planned", "Planned"), ("active", "Active"), ("cancelled", "Cancelled"), ("completed", "Completed")], default="planned", max_length=20)),
                ("priority", models.CharField(choices=[("urgent", "Urgent"), ("high", "High"), ("medium", "Medium"), ("low", "Low")], default="medium", max_length=10)),
                ("progress", models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("intent", models.CharField(blank=True, choices=[("delivery", "Delivery"), ("experiment", "Experiment"), ("internal", "Internal")], default="", max_length=20)),
                ("success_type", models.CharField(choices=[("deliverable", "Deliverable"), ("metric", "Metric"), ("undefined", "Undefined")], default="undefined", max_length=20)),
                ("deadline_type", models.CharField(choices=[("none", "None"), ("target", "Target"), ("fixed", "Fixed")], default="none", max_length=10)),
                ("deadline_date", models.DateField(blank=True, null=True)),
                ("work_structure", models.CharField(choices=[("linear", "Linear"), ("milestones", "Milestones"), ("multistream", "Multiple workstreams")], default="linear", max_length=20)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="projects", to="accounts.organization")),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="owned_projects", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["organization", "status"], name="projects_org_status_idx"),
                    models.Index(fields=["organization", "updated_at"], name="projects_org_updated_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProjectMember",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(choices=[("owner", "Owner"), ("pic", "Person in charge"), ("member", "Member"), ("viewer", "Viewer")], default="member", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="members", to="projects.project")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="project_memberships", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("project", "user"), name="uq_project_member"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Workstream",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("sort_order", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="workstreams", to="projects.project")),
            ],
            options={
                "ordering": ["sort_order", "id"],
            },
        ),
        migrations.CreateModel(
            name="Task",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=500)),
                ("description", models.TextField(blank=True, default="")),
                ("status", models.CharField(choices=[("todo", "To do"), ("in-progress", "In progress"), ("done", "Done")], default="todo", max_length=20)),
                ("priority", models.CharField(choices=[("no-priority", "No priority"), ("low", "Low"), ("medium", "Medium"), ("high", "High"), ("urgent", "Urgent")], default="no-priority", max_length=20)),
                ("tag", models.CharField(blank=True, default="", max_length=100)),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("sort_order", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("assignee", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="assigned_tasks", to=settings.AUTH_USER_MODEL)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="tasks", to="projects.project")),
                ("workstream", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="tasks", to="projects.workstream")),
            ],
            options={
                "ordering": ["sort_order", "id"],
                "indexes": [
                    models.Index(fields=["project", "status"], name="tasks_project_status_idx"),
                    models.Index(fields=["assignee", "status"], name="tasks_assignee_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProjectDeliverable",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=500)),
                ("due_date", models.DateField(blank=True, null=True)),
                ("value", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=15)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("in_progress", "In progress"), ("completed", "Completed")], default="pending", max_length=20)),
                ("payment_status", models.CharField(choices=[("unpaid", "Unpaid"), ("invoiced", "Invoiced"), ("paid", "Paid")], default="unpaid", max_length=20)),
                ("sort_order", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="deliverables", to="projects.project")),
            ],
            options={
                "ordering": ["sort_order", "id"],
            },
        ),
        migrations.CreateModel(
            name="ProjectMetric",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("target", models.CharField(blank=True, default="", max_length=100)),
                ("sort_order", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="metrics", to="projects.project")),
            ],
            options={
                "ordering": ["sort_order", "id"],
            },
        ),
    ]
