"""Minimum order quantity gate.

The effective MOQ of a line is its own override when present, otherwise the
global setting when active, otherwise 1. Quantities below it are rejected,
never silently raised to the minimum.
"""

from common.choices import MOQSource

from .exceptions import BelowMinimumError
from .values import EffectiveMOQ, GlobalMOQSetting, LineItem


def resolve_moq(line_item: LineItem, global_setting: GlobalMOQSetting) -> EffectiveMOQ:
    if line_item.moq_override is not None:
        return EffectiveMOQ(min_quantity=line_item.moq_override, source=line_item.moq_override_source)
    if global_setting.is_active:
        return EffectiveMOQ(min_quantity=global_setting.min_quantity, source=MOQSource.GLOBAL)
    return EffectiveMOQ(min_quantity=1, source=MOQSource.DEFAULT)


def effective_moq(line_item: LineItem, global_setting: GlobalMOQSetting) -> int:
    return resolve_moq(line_item, global_setting).min_quantity


def validate_quantity(line_item: LineItem, effective_moq: int) -> None:
    """Raise ``BelowMinimumError`` when the line is under its minimum."""

    if line_item.quantity < effective_moq:
        raise BelowMinimumError(required=effective_moq)


def clamp_delta(current_qty: int, delta: int, effective_moq: int) -> int:
    """Apply a quantity change, rejecting results below ``effective_moq``.

    Dropping a line entirely is a removal, not a quantity change, so a result
    of zero is rejected like any other value under the minimum.
    """

    new_qty = int(current_qty) + int(delta)
    if new_qty < effective_moq:
        raise BelowMinimumError(required=effective_moq)
    return new_qty
