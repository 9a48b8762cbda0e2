from django.contrib import admin

from .models import IdempotencyKey, Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("variant", "quantity", "base_price", "unit_price", "line_total", "price_source", "flash_sale")
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "status", "user", "subtotal", "discount", "total", "coupon_code", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("number", "email", "coupon_code")
    date_hierarchy = "created_at"
    readonly_fields = ("subtotal", "discount", "shipping", "total", "coupon", "coupon_code", "cart")
    inlines = [OrderItemInline]


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "scope", "path", "method", "response_code", "created_at")
    list_filter = ("method", "response_code", "created_at")
    search_fields = ("key", "scope", "path")
    date_hierarchy = "created_at"
