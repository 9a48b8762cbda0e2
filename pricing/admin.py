"""Admin registration for pricing models.

Slabs are edited inline on their product, flash sales and coupons get their
own pages, and the store-wide settings are single-row editors.
"""

from catalog.admin import ProductAdmin
from catalog.models import Product
from django.contrib import admin, messages

from .models import (
    Coupon,
    FlashSale,
    GlobalMOQSetting,
    PriceVisibilitySetting,
    PricingSlab,
    ShippingSetting,
)


class PricingSlabInline(admin.TabularInline):
    model = PricingSlab
    extra = 0
    fields = ("variant", "min_quantity", "unit_price")
    raw_id_fields = ("variant",)


class ProductWithSlabsAdmin(ProductAdmin):
    inlines = [*ProductAdmin.inlines, PricingSlabInline]


admin.site.unregister(Product)
admin.site.register(Product, ProductWithSlabsAdmin)


@admin.register(PricingSlab)
class PricingSlabAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "variant", "min_quantity", "unit_price")
    list_filter = ("product",)
    search_fields = ("product__title", "variant__sku")
    raw_id_fields = ("product", "variant")
    list_select_related = ("product", "variant")


@admin.register(FlashSale)
class FlashSaleAdmin(admin.ModelAdmin):
    list_display = ("name", "discount_percentage", "start_time", "end_time", "sold_count", "max_quantity", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name",)
    date_hierarchy = "start_time"
    filter_horizontal = ("products",)
    readonly_fields = ("sold_count", "created_at", "updated_at")

    @admin.action(description="Deactivate selected flash sales")
    def action_deactivate(self, request, queryset):
        count = queryset.update(is_active=False)
        messages.success(request, f"Deactivated {count} flash sale(s).")

    actions = ["action_deactivate"]


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "discount_type",
        "discount_value",
        "min_order_amount",
        "uses_so_far",
        "max_uses",
        "start_date",
        "end_date",
        "is_active",
    )
    list_filter = ("is_active", "discount_type")
    search_fields = ("code", "description")
    filter_horizontal = ("categories", "products", "brands")
    readonly_fields = ("uses_so_far", "created_at", "updated_at")

    @admin.action(description="Deactivate selected coupons")
    def action_deactivate(self, request, queryset):
        count = queryset.update(is_active=False)
        messages.success(request, f"Deactivated {count} coupon(s).")

    actions = ["action_deactivate"]


class SingletonAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return not self.model.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(GlobalMOQSetting)
class GlobalMOQSettingAdmin(SingletonAdmin):
    list_display = ("min_quantity", "is_active", "updated_at")


@admin.register(PriceVisibilitySetting)
class PriceVisibilitySettingAdmin(SingletonAdmin):
    list_display = ("hide_prices_for_guests", "updated_at")


@admin.register(ShippingSetting)
class ShippingSettingAdmin(SingletonAdmin):
    list_display = ("shipping_charge", "free_shipping_threshold", "updated_at")
