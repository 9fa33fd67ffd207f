"""
Tests for coupon evaluation and redemption.
"""
from datetime import datetime
import pytest
from travelbuddy.core.exceptions import (
    NotFoundError, ConflictError, ValidationFailedError,
    CouponInactiveError, CouponExpiredError, CouponLimitExceededError, CouponBelowMinimumError
)
from travelbuddy.models.coupon import DiscountType
from travelbuddy.services.coupon_service import (
    compute_discount, validate_coupon, redeem_coupon, create_coupon, update_coupon
)

NOW = datetime(2025, 6, 1)


def test_percentage_discount_is_capped():
    assert compute_discount(DiscountType.PERCENTAGE, 20, 10000, max_discount=500) == 500


def test_percentage_discount_is_floored():
    assert compute_discount(DiscountType.PERCENTAGE, 15, 999) == 149


def test_fixed_discount_never_exceeds_amount():
    assert compute_discount(DiscountType.FIXED, 300, 200) == 200


def test_validate_applies_cap(db, make_coupon):
    make_coupon("SAVE20", discount_value=20, max_discount=500)
    quote = validate_coupon(db, "save20", 10000, NOW)
    assert quote.discount_amount == 500
    assert quote.final_amount == 9500


def test_validate_fixed_bigger_than_amount(db, make_coupon):
    make_coupon("FLAT300", discount_type=DiscountType.FIXED, discount_value=300)
    quote = validate_coupon(db, "FLAT300", 200, NOW)
    assert quote.discount_amount == 200
    assert quote.final_amount == 0


def test_unknown_code(db):
    with pytest.raises(NotFoundError):
        validate_coupon(db, "NOPE", 1000, NOW)


def test_inactive_coupon(db, make_coupon):
    make_coupon(is_active=False)
    with pytest.raises(CouponInactiveError):
        validate_coupon(db, "SAVE20", 1000, NOW)


def test_expired_coupon(db, make_coupon):
    make_coupon(expires_at=datetime(2025, 5, 31))
    with pytest.raises(CouponExpiredError):
        validate_coupon(db, "SAVE20", 1000, NOW)


def test_usage_limit_reached(db, make_coupon):
    make_coupon(usage_limit=3, used_count=3)
    with pytest.raises(CouponLimitExceededError):
        validate_coupon(db, "SAVE20", 1000, NOW)


def test_below_minimum(db, make_coupon):
    make_coupon(min_amount=5000)
    with pytest.raises(CouponBelowMinimumError):
        validate_coupon(db, "SAVE20", 4999, NOW)


def test_validate_does_not_consume(db, make_coupon):
    coupon = make_coupon(usage_limit=1)
    validate_coupon(db, "SAVE20", 1000, NOW)
    validate_coupon(db, "SAVE20", 1000, NOW)
    db.refresh(coupon)
    assert coupon.used_count == 0


def test_redeem_stops_at_limit(db, make_coupon):
    coupon = make_coupon(usage_limit=1)
    assert redeem_coupon(db, coupon.id) is True
    db.commit()
    assert redeem_coupon(db, coupon.id) is False
    db.commit()
    db.refresh(coupon)
    assert coupon.used_count == 1


def _coupon_data(**kwargs):
    data = {
        "code": "summer",
        "description": None,
        "discount_type": DiscountType.PERCENTAGE,
        "discount_value": 10,
        "min_amount": None,
        "max_discount": None,
        "usage_limit": None,
        "expires_at": datetime(2025, 12, 31),
        "is_active": True,
    }
    data.update(kwargs)
    return data


def test_create_normalizes_code(db, make_user):
    admin = make_user()
    coupon = create_coupon(db, _coupon_data(), admin.id, NOW)
    assert coupon.code == "SUMMER"


def test_create_rejects_duplicate_code(db, make_user, make_coupon):
    make_coupon("SUMMER")
    with pytest.raises(ConflictError):
        create_coupon(db, _coupon_data(), make_user().id, NOW)


def test_create_rejects_percentage_over_100(db, make_user):
    with pytest.raises(ValidationFailedError):
        create_coupon(db, _coupon_data(discount_value=101), make_user().id, NOW)


def test_create_rejects_past_expiry(db, make_user):
    with pytest.raises(ValidationFailedError):
        create_coupon(db, _coupon_data(expires_at=datetime(2025, 5, 1)), make_user().id, NOW)


def test_update_rejects_taken_code(db, make_coupon):
    make_coupon("TAKEN")
    coupon = make_coupon("MINE")
    with pytest.raises(ConflictError):
        update_coupon(db, coupon.id, {"code": "taken"}, NOW)


def test_update_switching_to_percentage_checks_value(db, make_coupon):
    coupon = make_coupon("FLAT", discount_type=DiscountType.FIXED, discount_value=500)
    with pytest.raises(ValidationFailedError):
        update_coupon(db, coupon.id, {"discount_type": DiscountType.PERCENTAGE}, NOW)


def test_update_rejects_usage_limit_below_used_count(db, make_coupon):
    coupon = make_coupon("BUSY", usage_limit=10, used_count=5)
    with pytest.raises(ValidationFailedError):
        update_coupon(db, coupon.id, {"usage_limit": 2}, NOW)

    db.refresh(coupon)
    assert coupon.usage_limit == 10
    assert update_coupon(db, coupon.id, {"usage_limit": 5}, NOW).usage_limit == 5
