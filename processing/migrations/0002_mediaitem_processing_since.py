from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("processing", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="mediaitem",
            name="processing_since",
            field=models.DateTimeField(blank=True, null=True),
        ),
    ]
