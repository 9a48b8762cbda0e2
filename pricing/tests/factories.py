from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone
from factory.django import DjangoModelFactory
from pricing.models import Coupon, FlashSale, PricingSlab


class PricingSlabFactory(DjangoModelFactory):
    class Meta:
        model = PricingSlab

    product = factory.SubFactory("catalog.tests.factories.ProductFactory")
    variant = None
    min_quantity = 10
    unit_price = Decimal("9.00")


class FlashSaleFactory(DjangoModelFactory):
    class Meta:
        model = FlashSale

    name = factory.Sequence(lambda n: f"Flash sale {n}")
    start_time = factory.LazyFunction(lambda: timezone.now() - timedelta(hours=1))
    end_time = factory.LazyFunction(lambda: timezone.now() + timedelta(hours=1))
    discount_percentage = Decimal("20.00")
    max_quantity = None
    sold_count = 0
    is_active = True

    @factory.post_generation
    def products(self, create, extracted, **kwargs):
        if not create:
            return
        if extracted:
            for product in extracted:
                self.products.add(product)


class CouponFactory(DjangoModelFactory):
    class Meta:
        model = Coupon

    code = factory.Sequence(lambda n: f"SAVE{n}")
    discount_type = Coupon.TYPE_PERCENTAGE
    discount_value = Decimal("10.00")
    min_order_amount = None
    max_uses = None
    uses_so_far = 0
    start_date = factory.LazyFunction(lambda: timezone.now() - timedelta(days=1))
    end_date = factory.LazyFunction(lambda: timezone.now() + timedelta(days=1))
    is_active = True

    @factory.post_generation
    def products(self, create, extracted, **kwargs):
        if create and extracted:
            self.products.add(*extracted)

    @factory.post_generation
    def categories(self, create, extracted, **kwargs):
        if create and extracted:
            self.categories.add(*extracted)

    @factory.post_generation
    def brands(self, create, extracted, **kwargs):
        if create and extracted:
            self.brands.add(*extracted)
