import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("projects", "0001_initial"),
        ("reports", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="task",
            name="source_report",
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="action_items", to="reports.report"),
        ),
        migrations.AddIndex(
            model_name="task",
            index=models.Index(fields=["source_report"], name="tasks_source_report_idx"),
        ),
    ]
