from unittest import mock

import pytest
from pymongo.errors import DuplicateKeyError


@pytest.fixture
def product_id(catalog, make_admin):
    seller = make_admin("seller1")
    category_id = catalog.category(seller)
    return catalog.product(seller, category_id, catalog.sub_category(seller, category_id))


def rate(client, product_id, user, stars, review=None):
    body = {"productId": product_id, "userId": str(user["_id"]), "userName": user["name"], "rating": stars, "review": review}
    return client.post("/ratings", json=body)


def test_second_rating_updates_the_first(client, db, make_customer, product_id):
    user = make_customer()
    assert rate(client, product_id, user, 2, "meh").json()["message"] == "Rating added successfully."
    res = rate(client, product_id, user, 5, "grew on me")
    assert res.json()["message"] == "Rating updated successfully."

    stored = list(db["rating"].find({"userId": user["_id"]}))
    assert len(stored) == 1
    assert stored[0]["rating"] == 5
    assert stored[0]["review"] == "grew on me"


def test_rating_for_missing_product(client, make_customer):
    res = rate(client, "6553f1c2a1b2c3d4e5f60718", make_customer(), 4)
    assert res.status_code == 404


def test_rating_out_of_range(client, make_customer, product_id):
    assert rate(client, product_id, make_customer(), 6).status_code == 400


def test_stats(client, make_customer, product_id):
    for name, stars in (("a", 5), ("b", 4), ("c", 4)):
        rate(client, product_id, make_customer(name), stars)
    data = client.get(f"/ratings/product/{product_id}/stats").json()["data"]
    assert data["totalRatings"] == 3
    assert data["averageRating"] == 4.3
    assert data["ratingDistribution"] == {"1": 0, "2": 0, "3": 0, "4": 2, "5": 1}


def test_stats_without_ratings(client, product_id):
    data = client.get(f"/ratings/product/{product_id}/stats").json()["data"]
    assert data["averageRating"] == 0
    assert data["totalRatings"] == 0


def test_paginated_product_ratings(client, make_customer, product_id):
    for i in range(3):
        rate(client, product_id, make_customer(f"user{i}"), 3)
    data = client.get(f"/ratings/product/{product_id}", params={"page": 2, "limit": 2}).json()["data"]
    assert data["ratingCount"] == 3
    assert data["totalPages"] == 2
    assert data["currentPage"] == 2
    assert len(data["ratings"]) == 1


def test_user_rating_lookup(client, make_customer, product_id):
    user = make_customer()
    res = client.get(f"/ratings/product/{product_id}/user/{user['_id']}")
    assert res.status_code == 200
    assert res.json()["data"] is None

    rate(client, product_id, user, 3)
    res = client.get(f"/ratings/product/{product_id}/user/{user['_id']}")
    assert res.json()["data"]["rating"] == 3


def test_verified_purchase_needs_delivered_order(client, db, make_customer, product_id):
    buyer = make_customer("buyer")
    browser = make_customer("browser")
    db["order"].insert_one({
        "userId": buyer["_id"],
        "orderStatus": "delivered",
        "items": [{"productId": db["product"].find_one()["_id"], "quantity": 1, "price": 10}],
    })
    assert rate(client, product_id, buyer, 5).json()["data"]["verifiedPurchase"] is True
    assert rate(client, product_id, browser, 5).json()["data"]["verifiedPurchase"] is False


def test_update_and_delete_by_id(client, make_customer, product_id):
    rating_id = rate(client, product_id, make_customer(), 1).json()["data"]["_id"]
    res = client.put(f"/ratings/{rating_id}", json={"review": "actually fine"})
    assert res.json()["data"]["review"] == "actually fine"
    assert res.json()["data"]["rating"] == 1
    assert client.delete(f"/ratings/{rating_id}").status_code == 200
    assert client.get(f"/ratings/{rating_id}").status_code == 404


def test_concurrent_first_rating_is_reported_as_duplicate(client, db, make_customer, product_id):
    user = make_customer()
    race = DuplicateKeyError("E11000 duplicate key error collection: rating index: productId_1_userId_1")
    with mock.patch("routes.ratings.create_document", side_effect=race):
        res = rate(client, product_id, user, 4)
    assert res.status_code == 400
    assert res.json() == {"success": False, "message": "You have already rated this product.", "data": None}
    assert db["rating"].count_documents({}) == 0
