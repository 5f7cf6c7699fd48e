import pytest
from bson import ObjectId

from categories import CategoryIn, CategoryUpdate, create_category, delete_category, get_category, list_categories, update_category
from errors import DuplicateNameError, HasDependentsError, NotFoundError, ValidationError


def test_create_applies_defaults(test_db):
    created = create_category(test_db, CategoryIn(name="Rice & Grains", description="Staples"))

    assert created["name"] == "Rice & Grains"
    assert created["description"] == "Staples"
    assert created["icon"] == "ChefHat"
    assert created["image"] == ""
    assert created["status"] == "active"
    assert created["products"] == 0
    assert "id" in created and "_id" not in created


def test_create_requires_name(test_db):
    with pytest.raises(ValidationError, match="name is required"):
        create_category(test_db, CategoryIn(name="", description="x"))


def test_duplicate_name_is_rejected_case_sensitively(test_db):
    create_category(test_db, CategoryIn(name="Spices", description="desc"))

    with pytest.raises(DuplicateNameError):
        create_category(test_db, CategoryIn(name="Spices", description="other"))

    # different case is a different name
    other = create_category(test_db, CategoryIn(name="spices", description="other"))
    assert other["name"] == "spices"


def test_get_round_trip(test_db):
    created = create_category(test_db, CategoryIn(name="Seafood", description="Fresh", icon="Fish", image="sea.png"))

    fetched = get_category(test_db, created["id"])

    assert fetched["name"] == "Seafood"
    assert fetched["description"] == "Fresh"
    assert fetched["icon"] == "Fish"
    assert fetched["image"] == "sea.png"
    assert fetched["products"] == 0


def test_get_unknown_or_malformed_id(test_db):
    with pytest.raises(NotFoundError):
        get_category(test_db, str(ObjectId()))
    with pytest.raises(NotFoundError):
        get_category(test_db, "not-an-id")


def test_list_sorted_by_name_with_counts(test_db):
    soy = create_category(test_db, CategoryIn(name="Soy", description=""))
    create_category(test_db, CategoryIn(name="Coconut", description=""))
    test_db["product"].insert_one({"name": "Tofu", "category": soy["id"]})

    listed = list_categories(test_db)

    assert [c["name"] for c in listed] == ["Coconut", "Soy"]
    assert [c["products"] for c in listed] == [0, 1]


def test_update_partial_keeps_unspecified_fields(test_db):
    created = create_category(test_db, CategoryIn(name="Oil", description="Oils", icon="Droplet"))

    updated = update_category(test_db, created["id"], CategoryUpdate(description="Oils & Ghee"))

    assert updated["name"] == "Oil"
    assert updated["icon"] == "Droplet"
    assert updated["description"] == "Oils & Ghee"


def test_update_empty_name_and_icon_mean_not_provided(test_db):
    created = create_category(test_db, CategoryIn(name="Oil", description="Oils", icon="Droplet", image="a.png"))

    updated = update_category(test_db, created["id"], CategoryUpdate(name="", icon="", image=""))

    assert updated["name"] == "Oil"
    assert updated["icon"] == "Droplet"
    # image is applied even when empty
    assert updated["image"] == ""


def test_update_rename_checks_other_categories(test_db):
    first = create_category(test_db, CategoryIn(name="Sugar", description=""))
    create_category(test_db, CategoryIn(name="Honey", description=""))

    with pytest.raises(DuplicateNameError):
        update_category(test_db, first["id"], CategoryUpdate(name="Honey"))

    # keeping its own name is not a collision
    same = update_category(test_db, first["id"], CategoryUpdate(name="Sugar", status="inactive"))
    assert same["status"] == "inactive"


def test_update_unknown_category(test_db):
    with pytest.raises(NotFoundError):
        update_category(test_db, str(ObjectId()), CategoryUpdate(name="x"))


def test_delete_blocked_while_products_reference_it(test_db):
    created = create_category(test_db, CategoryIn(name="Spices", description="desc"))
    test_db["product"].insert_one({"name": "Cinnamon", "category": created["id"]})

    with pytest.raises(HasDependentsError, match="associated products"):
        delete_category(test_db, created["id"])

    assert get_category(test_db, created["id"])["products"] == 1


def test_delete_without_products(test_db):
    created = create_category(test_db, CategoryIn(name="Spices", description="desc"))

    delete_category(test_db, created["id"])

    with pytest.raises(NotFoundError):
        get_category(test_db, created["id"])


def test_routes_wrap_responses(client):
    response = client.get("/api/categories")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == []


def test_write_routes_require_token(client):
    response = client.post("/api/categories", json={"name": "Spices", "description": "desc"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Not authorized, no token"


def test_create_route_errors(client, admin_headers):
    response = client.post("/api/categories", json={"description": "no name"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Category name is required"

    client.post("/api/categories", json={"name": "Spices", "description": "desc"}, headers=admin_headers)
    response = client.post("/api/categories", json={"name": "Spices", "description": "desc"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Category with this name already exists"


def test_missing_category_routes_return_404(client, admin_headers):
    missing = str(ObjectId())

    assert client.get(f"/api/categories/{missing}").status_code == 404
    assert client.put(f"/api/categories/{missing}", json={"name": "x"}, headers=admin_headers).status_code == 404
    assert client.delete(f"/api/categories/{missing}", headers=admin_headers).status_code == 404


def test_invalid_status_is_a_bad_request(client, admin_headers):
    created = client.post("/api/categories", json={"name": "Soy", "description": ""}, headers=admin_headers).json()["data"]

    response = client.put(f"/api/categories/{created['id']}", json={"status": "archived"}, headers=admin_headers)

    assert response.status_code == 400
