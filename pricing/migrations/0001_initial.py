from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="GlobalMOQSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("is_active", models.BooleanField(default=False)),
                (
                    "min_quantity",
                    models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)]),
                ),
            ],
            options={"verbose_name": "global MOQ setting"},
        ),
        migrations.CreateModel(
            name="PriceVisibilitySetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("hide_prices_for_guests", models.BooleanField(default=False)),
            ],
            options={"verbose_name": "price visibility setting"},
        ),
        migrations.CreateModel(
            name="ShippingSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("shipping_charge", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "free_shipping_threshold",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
            ],
            options={"verbose_name": "shipping setting"},
        ),
        migrations.CreateModel(
            name="PricingSlab",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("min_quantity", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                (
                    "unit_price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pricing_slabs",
                        to="catalog.product",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pricing_slabs",
                        to="catalog.productvariant",
                    ),
                ),
            ],
            options={
                "ordering": ["product_id", "variant_id", "min_quantity"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("variant__isnull", False)),
                        fields=("variant", "min_quantity"),
                        name="unique_slab_threshold_per_variant",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("variant__isnull", True)),
                        fields=("product", "min_quantity"),
                        name="unique_slab_threshold_per_product",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("min_quantity__gte", 1)), name="slab_min_quantity_positive"
                    ),
                    models.CheckConstraint(condition=models.Q(("unit_price__gte", 0)), name="slab_price_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="FlashSale",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("start_time", models.DateTimeField(db_index=True)),
                ("end_time", models.DateTimeField(db_index=True)),
                (
                    "discount_percentage",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                    ),
                ),
                (
                    "max_quantity",
                    models.PositiveIntegerField(blank=True, help_text="Leave empty for unlimited units.", null=True),
                ),
                ("sold_count", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("products", models.ManyToManyField(blank=True, related_name="flash_sales", to="catalog.product")),
            ],
            options={
                "ordering": ["start_time"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_time__gt", models.F("start_time"))), name="flash_sale_window_valid"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("discount_percentage__gte", 0), ("discount_percentage__lte", 100)),
                        name="flash_sale_percentage_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Coupon",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("code", models.CharField(max_length=64, unique=True)),
                ("description", models.TextField(blank=True)),
                (
                    "discount_type",
                    models.CharField(
                        choices=[("PERCENTAGE", "Percentage"), ("FIXED_AMOUNT", "Fixed amount")], max_length=16
                    ),
                ),
                (
                    "discount_value",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                ("min_order_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                (
                    "max_uses",
                    models.PositiveIntegerField(blank=True, help_text="Leave empty for unlimited uses.", null=True),
                ),
                ("uses_so_far", models.PositiveIntegerField(default=0)),
                ("start_date", models.DateTimeField()),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("brands", models.ManyToManyField(blank=True, related_name="coupons", to="catalog.brand")),
                ("categories", models.ManyToManyField(blank=True, related_name="coupons", to="catalog.category")),
                ("products", models.ManyToManyField(blank=True, related_name="coupons", to="catalog.product")),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("discount_value__gte", 0)), name="coupon_value_non_negative"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("discount_type", "PERCENTAGE"), _negated=True),
                            ("discount_value__lte", 100),
                            _connector="OR",
                        ),
                        name="coupon_percentage_at_most_100",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("end_date__isnull", True), ("end_date__gt", models.F("start_date")), _connector="OR"
                        ),
                        name="coupon_window_valid",
                    ),
                ],
            },
        ),
    ]
