import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Car",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("make", models.CharField(max_length=80)),
                ("model", models.CharField(max_length=80)),
                ("year", models.PositiveIntegerField()),
                ("trim", models.CharField(blank=True, max_length=80)),
                ("category", models.CharField(blank=True, max_length=40)),
                ("price_per_day", models.DecimalField(decimal_places=2, max_digits=8, validators=[django.core.validators.MinValueValidator(0)])),
                ("available", models.BooleanField(default=True)),
                ("seats", models.PositiveIntegerField(default=5)),
                ("doors", models.PositiveIntegerField(blank=True, null=True)),
                ("transmission", models.CharField(choices=[("automatic", "Automatic"), ("manual", "Manual")], default="automatic", max_length=20)),
                ("fuel_type", models.CharField(blank=True, max_length=30)),
                ("mileage_type", models.CharField(blank=True, max_length=30)),
                ("color", models.CharField(blank=True, max_length=40)),
                ("plate", models.CharField(blank=True, max_length=20)),
                ("description", models.TextField(blank=True)),
                ("features", models.JSONField(blank=True, default=list)),
                ("image", models.ImageField(blank=True, null=True, upload_to="cars/")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["make", "model", "-year"],
            },
        ),
        migrations.CreateModel(
            name="Extra",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("description", models.TextField(blank=True)),
                ("price", models.DecimalField(decimal_places=2, max_digits=8, validators=[django.core.validators.MinValueValidator(0)])),
                ("per_day", models.BooleanField(default=False)),
                ("active", models.BooleanField(default=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Location",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("value", models.SlugField(max_length=80, unique=True)),
                ("label", models.CharField(max_length=160)),
                ("delivery_fee", models.DecimalField(decimal_places=2, default=0, max_digits=8, validators=[django.core.validators.MinValueValidator(0)])),
                ("active", models.BooleanField(default=True)),
            ],
            options={
                "ordering": ["label"],
            },
        ),
    ]
