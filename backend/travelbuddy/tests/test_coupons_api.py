"""
Tests for coupon endpoints.
"""
from datetime import datetime
from travelbuddy.models.coupon import Coupon, DiscountType
from travelbuddy.models.user import UserRole


def coupon_payload(**kwargs):
    payload = {
        "code": "welcome10",
        "discount_type": "PERCENTAGE",
        "discount_value": 10,
        "expires_at": "2099-01-01T00:00:00Z",
    }
    payload.update(kwargs)
    return payload


def test_validate_coupon(client, make_coupon):
    make_coupon("SAVE20", discount_value=20, max_discount=500)
    response = client.post("/api/coupons/validate", json={"code": "save20", "amount": 10000})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["original_amount"] == 10000
    assert data["discount_amount"] == 500
    assert data["final_amount"] == 9500
    assert data["coupon"]["code"] == "SAVE20"


def test_validate_unknown_coupon(client):
    response = client.post("/api/coupons/validate", json={"code": "NOPE", "amount": 100})
    assert response.status_code == 404


def test_validate_expired_coupon(client, make_coupon):
    make_coupon(expires_at=datetime(2020, 1, 1))
    response = client.post("/api/coupons/validate", json={"code": "SAVE20", "amount": 100})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_admin_create_coupon(client, make_user, headers):
    admin = make_user(role=UserRole.ADMIN)
    response = client.post("/api/coupons", json=coupon_payload(), headers=headers(admin))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["code"] == "WELCOME10"
    assert data["used_count"] == 0
    assert data["is_expired"] is False


def test_create_coupon_requires_admin(client, make_user, headers):
    response = client.post("/api/coupons", json=coupon_payload(), headers=headers(make_user()))
    assert response.status_code == 403


def test_create_duplicate_code(client, make_user, make_coupon, headers):
    make_coupon("WELCOME10")
    admin = make_user(role=UserRole.ADMIN)
    response = client.post("/api/coupons", json=coupon_payload(), headers=headers(admin))
    assert response.status_code == 409


def test_create_rejects_bad_values(client, make_user, headers):
    admin = make_user(role=UserRole.ADMIN)
    too_much = client.post("/api/coupons", json=coupon_payload(discount_value=150), headers=headers(admin))
    assert too_much.status_code == 400

    past = client.post("/api/coupons", json=coupon_payload(expires_at="2020-01-01T00:00:00Z"), headers=headers(admin))
    assert past.status_code == 400


def test_list_coupons(client, make_user, make_coupon, headers):
    admin = make_user(role=UserRole.ADMIN)
    make_coupon("ACTIVE1")
    make_coupon("OFF1", is_active=False)
    make_coupon("OLD1", expires_at=datetime(2020, 1, 1))

    response = client.get("/api/coupons", params={"is_active": "true"}, headers=headers(admin))
    body = response.json()["data"]
    assert body["meta"]["total"] == 2
    expired = {c["code"]: c["is_expired"] for c in body["data"]}
    assert expired == {"ACTIVE1": False, "OLD1": True}


def test_update_and_delete_coupon(client, db, make_user, make_coupon, headers):
    admin = make_user(role=UserRole.ADMIN)
    coupon = make_coupon("FLAT5", discount_type=DiscountType.FIXED, discount_value=500)

    response = client.patch(f"/api/coupons/{coupon.id}", json={"discount_value": 700}, headers=headers(admin))
    assert response.status_code == 200
    assert response.json()["data"]["discount_value"] == 700

    response = client.get(f"/api/coupons/{coupon.id}", headers=headers(admin))
    assert response.json()["data"]["code"] == "FLAT5"

    assert client.delete(f"/api/coupons/{coupon.id}", headers=headers(admin)).status_code == 200
    assert db.query(Coupon).count() == 0
    assert client.get(f"/api/coupons/{coupon.id}", headers=headers(admin)).status_code == 404


def test_update_rejects_blank_code(client, make_user, make_coupon, headers):
    admin = make_user(role=UserRole.ADMIN)
    coupon = make_coupon("KEEPME")

    response = client.patch(f"/api/coupons/{coupon.id}", json={"code": "   "}, headers=headers(admin))
    assert response.status_code == 400

    response = client.patch(f"/api/coupons/{coupon.id}", json={"code": "  new10 "}, headers=headers(admin))
    assert response.json()["data"]["code"] == "NEW10"
