import pytest
from pricing.exceptions import BelowMinimumError
from pricing.moq import clamp_delta, effective_moq, resolve_moq, validate_quantity
from pricing.tests.helpers import line
from pricing.values import GlobalMOQSetting

GLOBAL_ON = GlobalMOQSetting(is_active=True, min_quantity=5)
GLOBAL_OFF = GlobalMOQSetting(is_active=False, min_quantity=5)


def test_override_wins_over_global_setting():
    moq = resolve_moq(line(moq_override=12, moq_override_source="VARIANT"), GLOBAL_ON)
    assert moq.min_quantity == 12
    assert moq.source == "VARIANT"


def test_override_may_be_lower_than_global_setting():
    assert effective_moq(line(moq_override=2), GLOBAL_ON) == 2


def test_global_setting_applies_only_when_active():
    moq = resolve_moq(line(), GLOBAL_ON)
    assert (moq.min_quantity, moq.source) == (5, "GLOBAL")
    moq = resolve_moq(line(), GLOBAL_OFF)
    assert (moq.min_quantity, moq.source) == (1, "DEFAULT")


@pytest.mark.parametrize("quantity,accepted", [(4, False), (5, True), (6, True)])
def test_validate_quantity_boundary(quantity, accepted):
    item = line(quantity=quantity)
    if accepted:
        validate_quantity(item, effective_moq(item, GLOBAL_ON))
    else:
        with pytest.raises(BelowMinimumError) as excinfo:
            validate_quantity(item, effective_moq(item, GLOBAL_ON))
        assert excinfo.value.required == 5
        assert excinfo.value.code == "below_minimum"
        assert str(excinfo.value) == "Minimum order quantity is 5 units."


def test_clamp_delta_rejects_decrease_below_minimum():
    assert clamp_delta(10, -5, 5) == 5
    assert clamp_delta(10, 3, 5) == 13
    with pytest.raises(BelowMinimumError) as excinfo:
        clamp_delta(10, -6, 5)
    assert excinfo.value.context() == {"required": 5}


def test_clamp_delta_never_floors_to_zero():
    with pytest.raises(BelowMinimumError):
        clamp_delta(1, -1, 1)
    with pytest.raises(BelowMinimumError):
        clamp_delta(3, -10, 1)
