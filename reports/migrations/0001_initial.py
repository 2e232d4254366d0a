import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("projects", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Report",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=300)),
                ("period_type", models.CharField(choices=[("weekly", "Weekly"), ("monthly", "Monthly"), ("custom", "Custom")], default="weekly", max_length=10)),
                ("period_start", models.DateField()),
                ("period_end", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reports_authored", to=settings.AUTH_USER_MODEL)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reports", to="accounts.organization")),
            ],
            options={
                "ordering": ["-period_start", "-id"],
                "indexes": [
                    models.Index(fields=["organization", "-period_start"], name="reports_org_period_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReportProject",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=[("on_track", "On track"), ("behind", "Behind"), ("at_risk", "At risk"), ("halted", "Halted"), ("completed", "Completed")], default="on_track", max_length=20)),
                ("previous_status", models.CharField(blank=True, choices=[("on_track", "On track"), ("behind", "Behind"), ("at_risk", "At risk"), ("halted", "Halted"), ("completed", "Completed")], default="", max_length=20)),
                ("client_satisfaction", models.CharField(choices=[("satisfied", "Satisfied"), ("neutral", "Neutral"), ("dissatisfied", "Dissatisfied")], default="satisfied", max_length=20)),
                ("previous_satisfaction", models.CharField(blank=True, choices=[("satisfied", "Satisfied"), ("neutral", "Neutral"), ("dissatisfied", "Dissatisfied")], default="", max_length=20)),
                ("progress_percent", models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ("previous_progress", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("narrative", models.TextField(blank=True, default="")),
                ("team_contributions", models.JSONField(blank=True, default=list)),
                ("financial_notes", models.TextField(blank=True, default="")),
                ("tasks_completed", models.IntegerField(default=0)),
                ("tasks_in_progress", models.IntegerField(default=0)),
                ("tasks_overdue", models.IntegerField(default=0)),
                ("financial_total_value", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=15)),
                ("financial_paid_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=15)),
                ("financial_invoiced_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=15)),
                ("financial_unpaid_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=15)),
                ("financial_currency", models.CharField(default="USD", max_length=3)),
                ("sort_order", models.IntegerField(default=0)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="report_entries", to="projects.project")),
                ("report", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="report_projects", to="reports.report")),
            ],
            options={
                "ordering": ["sort_order", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("report", "project"), name="uq_report_project"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReportRisk",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=[("blocker", "Blocker"), ("risk", "Risk")], default="risk", max_length=10)),
                ("description", models.TextField()),
                ("severity", models.CharField(choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("critical", "Critical")], default="medium", max_length=10)),
                ("status", models.CharField(choices=[("open", "Open"), ("mitigated", "Mitigated"), ("resolved", "Resolved")], default="open", max_length=10)),
                ("mitigation_notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("originated_report", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="originated_risks", to="reports.report")),
                ("project", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="report_risks", to="projects.project")),
                ("report", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="risks", to="reports.report")),
            ],
            options={
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["report", "status"], name="risks_report_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReportHighlight",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=[("highlight", "Highlight"), ("decision", "Decision")], default="highlight", max_length=10)),
                ("description", models.TextField()),
                ("sort_order", models.IntegerField(default=0)),
                ("project", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="report_highlights", to="projects.project")),
                ("report", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="highlights", to="reports.report")),
            ],
            options={
                "ordering": ["sort_order", "id"],
            },
        ),
    ]
