"""Pricing URL routes (v1)."""

from django.urls import path

from .views import CouponVerifyView, QuoteView, VariantPricingView

app_name = "pricing"

urlpatterns = [
    path("quote/", QuoteView.as_view(), name="pricing-quote"),
    path("coupons/verify/", CouponVerifyView.as_view(), name="coupon-verify"),
    path("variants/<int:variant_id>/", VariantPricingView.as_view(), name="variant-pricing"),
]
