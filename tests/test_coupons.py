import pytest


@pytest.fixture
def seller(make_admin):
    return make_admin("seller1")


@pytest.fixture
def shop(catalog, seller):
    shoes = catalog.category(seller, name="Shoes")
    bags = catalog.category(seller, name="Bags")
    return {
        "shoes": shoes,
        "runner": catalog.product(seller, shoes, catalog.sub_category(seller, shoes, name="Sneakers")),
        "tote": catalog.product(seller, bags, catalog.sub_category(seller, bags, name="Totes")),
    }


@pytest.fixture
def add_coupon(client, auth, seller):
    def _add(code="SAVE10", **extra):
        body = {
            "couponCode": code,
            "discountType": "percentage",
            "discountAmount": 10,
            "minimumPurchaseAmount": 100,
            "endDate": "2999-01-01T00:00:00Z",
            "status": "active",
        }
        body.update(extra)
        res = client.post("/couponCodes", json=body, headers=auth(seller))
        assert res.status_code == 200, res.text
        return res.json()["data"]
    return _add


def check(client, code, product_ids, amount=150):
    return client.post("/couponCodes/check-coupon", json={"couponCode": code, "productIds": product_ids, "purchaseAmount": amount}).json()


def test_coupon_without_scope_applies_everywhere(client, shop, add_coupon):
    add_coupon()
    res = check(client, "SAVE10", [shop["runner"], shop["tote"]])
    assert res["success"] is True
    assert res["data"]["couponCode"] == "SAVE10"


def test_category_scope(client, shop, add_coupon):
    add_coupon(applicableCategory=shop["shoes"])
    assert check(client, "SAVE10", [shop["runner"]])["success"] is True
    assert check(client, "SAVE10", [shop["runner"], shop["tote"]])["success"] is False


def test_product_scope_matches_product_id(client, shop, add_coupon):
    add_coupon(applicableProduct=shop["tote"])
    assert check(client, "SAVE10", [shop["tote"]])["success"] is True
    assert check(client, "SAVE10", [shop["runner"]])["success"] is False


@pytest.mark.parametrize("extra, amount, message", [
    ({"status": "inactive"}, 150, "Coupon is inactive."),
    ({"endDate": "2000-01-01T00:00:00Z"}, 150, "Coupon is expired."),
    ({}, 50, "Minimum purchase amount not met."),
])
def test_rejections_are_soft_failures(client, shop, add_coupon, extra, amount, message):
    add_coupon(**extra)
    res = client.post("/couponCodes/check-coupon", json={"couponCode": "SAVE10", "productIds": [shop["runner"]], "purchaseAmount": amount})
    assert res.status_code == 200
    assert res.json() == {"success": False, "message": message, "data": None}


def test_unknown_coupon(client):
    assert check(client, "NOPE", [])["message"] == "Coupon not found."


def test_coupon_rejects_unknown_discount_type(client, auth, seller):
    body = {"couponCode": "X", "discountType": "bogus", "discountAmount": 1, "endDate": "2999-01-01T00:00:00Z", "status": "active"}
    assert client.post("/couponCodes", json=body, headers=auth(seller)).status_code == 400


def test_coupon_scope_must_exist(client, auth, seller):
    body = {
        "couponCode": "GHOST", "discountType": "fixed", "discountAmount": 5, "endDate": "2999-01-01T00:00:00Z",
        "status": "active", "applicableProduct": "6553f1c2a1b2c3d4e5f60718",
    }
    res = client.post("/couponCodes", json=body, headers=auth(seller))
    assert res.status_code == 400
    assert res.json()["message"] == "Referenced product does not exist."
