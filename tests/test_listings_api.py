import json

from sqlalchemy import func, select

from app.models.interaction import Interaction
from app.models.listing import Listing, ListingViewer
from app.models.message import Message
from app.models.saved_listing import SavedListing
from tests.conftest import FakeImageStore, oversized_png_bytes, png_bytes

LOCATION = json.dumps({"region": "Western", "city": "Colombo"})


def listing_form(**overrides):
    form = {
        "vehicleType": "car",
        "model": "Corolla",
        "condition": "used",
        "year": "2019",
        "price": "18500",
        "mileage": "42000",
        "fuelType": "Petrol",
        "transmission": "Automatic",
        "location": LOCATION,
        "description": "",
    }
    form.update(overrides)
    return form


# ---------- create ----------
def test_create_lands_in_pending_even_if_client_sends_status(client, user, headers_for):
    r = client.post(
        "/api/listings",
        data=listing_form(status="Active"),
        files=[("images", ("front.png", png_bytes(), "image/png"))],
        headers=headers_for(user),
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["status"] == "Pending"
    assert body["sellerId"] == user.user_id
    assert body["viewCount"] == 0
    assert body["description"] is None
    assert len(body["images"]) == 1
    assert body["images"][0].startswith("https://blob.test/listings/")
    assert body["location"] == {"region": "Western", "city": "Colombo", "latitude": 6.9271, "longitude": 79.8612}


def test_create_uses_client_coordinates_without_geocoding(client, user, headers_for):
    location = json.dumps({"region": "Central", "city": "Kandy", "coordinates": [80.6337, 7.2906]})
    r = client.post("/api/listings", data=listing_form(location=location), headers=headers_for(user))
    assert r.status_code == 201, r.text
    assert r.json()["location"]["latitude"] == 7.2906
    assert r.json()["location"]["longitude"] == 80.6337
    assert client.app.state.geocoder.calls == []


def test_create_without_geocoder_falls_back_to_zero_point(client, user, headers_for):
    client.app.state.geocoder = None
    r = client.post("/api/listings", data=listing_form(), headers=headers_for(user))
    assert r.status_code == 201
    assert r.json()["location"]["latitude"] == 0
    assert r.json()["location"]["longitude"] == 0


def test_create_requires_authentication(client):
    r = client.post("/api/listings", data=listing_form())
    assert r.status_code == 401


def test_create_reports_every_invalid_field(client, user, headers_for):
    r = client.post(
        "/api/listings",
        data={"vehicleType": "boat", "year": "1800", "price": "-1"},
        headers=headers_for(user),
    )
    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["code"] == "validation_failed"
    fields = {e["field"] for e in detail["errors"]}
    assert {"vehicleType", "year", "price", "model", "condition", "location"} <= fields


def test_create_rejects_too_many_images(client, user, headers_for):
    files = [("images", (f"{i}.png", png_bytes(), "image/png")) for i in range(6)]
    r = client.post("/api/listings", data=listing_form(), files=files, headers=headers_for(user))
    assert r.status_code == 400
    assert "images" in {e["field"] for e in r.json()["detail"]["errors"]}


def test_create_skips_unreadable_images(client, user, headers_for):
    files = [
        ("images", ("ok.png", png_bytes(), "image/png")),
        ("images", ("notes.txt", b"definitely not an image", "text/plain")),
    ]
    r = client.post("/api/listings", data=listing_form(), files=files, headers=headers_for(user))
    assert r.status_code == 201
    assert len(r.json()["images"]) == 1


def test_create_skips_images_with_oversized_dimensions(client, user, headers_for):
    files = [
        ("images", ("ok.png", png_bytes(), "image/png")),
        ("images", ("huge.png", oversized_png_bytes(), "image/png")),
    ]
    r = client.post("/api/listings", data=listing_form(), files=files, headers=headers_for(user))
    assert r.status_code == 201, r.text
    assert len(r.json()["images"]) == 1
    assert len(client.app.state.image_store.uploaded) == 1


def test_create_survives_image_store_failure(client, user, headers_for):
    client.app.state.image_store = FakeImageStore(fail=True)
    files = [("images", ("ok.png", png_bytes(), "image/png"))]
    r = client.post("/api/listings", data=listing_form(), files=files, headers=headers_for(user))
    assert r.status_code == 201
    assert r.json()["images"] == []


# ---------- owner edit ----------
def test_owner_edit_sends_listing_back_to_pending(client, user, make_listing, headers_for):
    listing = make_listing(user, status="Active", price=20000)
    r = client.put(
        f"/api/listings/{listing.id}",
        json={"price": 15000, "status": "Active"},
        headers=headers_for(user),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "Pending"
    assert body["price"] == 15000
    assert body["model"] == "Corolla"


def test_edit_location_geocodes_new_place(client, user, make_listing, headers_for):
    listing = make_listing(user, latitude=1.0, longitude=1.0)
    r = client.put(
        f"/api/listings/{listing.id}",
        json={"location": {"region": "Southern", "city": "Galle"}},
        headers=headers_for(user),
    )
    assert r.status_code == 200
    assert r.json()["location"]["city"] == "Galle"
    assert client.app.state.geocoder.calls == [("Southern", "Galle")]


def test_edit_keeps_image_urls_as_sent(client, user, make_listing, headers_for):
    listing = make_listing(user)
    urls = ["https://blob.test", "https://blob.test/listings/b.png?sig=1"]
    r = client.put(f"/api/listings/{listing.id}", json={"images": urls}, headers=headers_for(user))
    assert r.status_code == 200, r.text
    assert r.json()["images"] == urls

    r = client.put(f"/api/listings/{listing.id}", json={"images": ["ftp://blob.test/a.png"]}, headers=headers_for(user))
    assert r.status_code == 400
    assert r.json()["detail"]["errors"][0]["field"].startswith("images")


def test_only_owner_may_edit(client, user, other_user, make_listing, headers_for):
    listing = make_listing(user)
    r = client.put(f"/api/listings/{listing.id}", json={"price": 1}, headers=headers_for(other_user))
    assert r.status_code == 403


def test_edit_cannot_change_owner(client, user, other_user, make_listing, headers_for):
    listing = make_listing(user)
    r = client.put(
        f"/api/listings/{listing.id}",
        json={"sellerId": other_user.user_id, "price": 1},
        headers=headers_for(user),
    )
    assert r.status_code == 400
    assert [e["field"] for e in r.json()["detail"]["errors"]] == ["sellerId"]


def test_edit_cannot_null_required_fields(client, user, make_listing, headers_for):
    listing = make_listing(user)
    r = client.put(
        f"/api/listings/{listing.id}",
        json={"model": None, "year": 1700},
        headers=headers_for(user),
    )
    assert r.status_code == 400
    assert {e["field"] for e in r.json()["detail"]["errors"]} == {"model", "year"}


def test_edit_missing_listing_is_404(client, user, headers_for):
    r = client.put("/api/listings/999", json={"price": 1}, headers=headers_for(user))
    assert r.status_code == 404


# ---------- moderation ----------
def test_admin_moderation(client, user, admin, make_listing, headers_for):
    listing = make_listing(user, status="Pending")
    url = f"/api/listings/{listing.id}"

    assert client.patch(url, json={"status": "Active"}, headers=headers_for(user)).status_code == 403
    assert client.patch(url, json={"status": "Active"}).status_code == 401

    r = client.patch(url, json={"status": "Sold"}, headers=headers_for(admin))
    assert r.status_code == 400
    assert r.json()["detail"]["errors"][0]["field"] == "status"

    for _ in range(2):
        r = client.patch(url, json={"status": "Active"}, headers=headers_for(admin))
        assert r.status_code == 200
        assert r.json()["status"] == "Active"

    r = client.patch(url, json={"status": "Rejected"}, headers=headers_for(admin))
    assert r.json()["status"] == "Rejected"


def test_pending_queue_is_admin_only(client, user, admin, make_listing, headers_for):
    pending = make_listing(user, status="Pending")
    make_listing(user, status="Active")

    assert client.get("/api/listings/pending").status_code == 401
    assert client.get("/api/listings/pending", headers=headers_for(user)).status_code == 403

    r = client.get("/api/listings/pending", headers=headers_for(admin))
    assert r.status_code == 200
    assert [l["listingId"] for l in r.json()] == [pending.id]


# ---------- views ----------
def test_views_count_every_visit_but_viewers_once(client, db, user, other_user, make_listing, headers_for):
    listing = make_listing(user)
    url = f"/api/listings/{listing.id}"

    client.get(url, headers=headers_for(other_user))
    r = client.get(url, headers=headers_for(other_user))
    assert r.json()["viewCount"] == 2
    assert r.json()["uniqueViewers"] == 1

    r = client.get(url)
    assert r.json()["viewCount"] == 3
    assert r.json()["uniqueViewers"] == 1
    assert r.json()["isSaved"] is None

    views = db.scalar(
        select(func.count()).select_from(Interaction).where(Interaction.user_id == other_user.user_id)
    )
    assert views == 2


def test_view_interactions_can_be_switched_off(client, db, settings, user, other_user, make_listing, headers_for):
    settings.RECORD_VIEW_INTERACTIONS = False
    listing = make_listing(user)

    r = client.get(f"/api/listings/{listing.id}", headers=headers_for(other_user))
    assert r.status_code == 200
    assert r.json()["uniqueViewers"] == 1
    assert db.scalar(select(func.count()).select_from(Interaction)) == 0


# ---------- visibility ----------
def test_non_active_listing_detail_visibility(client, user, other_user, admin, make_listing, headers_for):
    pending = make_listing(user, status="Pending")
    url = f"/api/listings/{pending.id}"

    assert client.get(url).status_code == 404
    assert client.get(url, headers=headers_for(other_user)).status_code == 404
    assert client.get(url, headers=headers_for(admin)).status_code == 200

    r = client.get(url, headers=headers_for(user))
    assert r.status_code == 200
    assert r.json()["isOwner"] is True


def test_search_visibility(client, user, other_user, make_listing, headers_for):
    active = make_listing(user, status="Active")
    pending = make_listing(user, status="Pending")
    rejected = make_listing(user, status="Rejected")
    theirs = make_listing(other_user, status="Pending")

    def ids(resp):
        assert resp.status_code == 200
        return {l["listingId"] for l in resp.json()["data"]}

    assert ids(client.get("/api/listings")) == {active.id}
    assert ids(client.get("/api/listings", headers=headers_for(user))) == {active.id, pending.id}
    assert ids(client.get("/api/listings", headers=headers_for(other_user))) == {active.id, theirs.id}
    assert ids(client.get("/api/listings?mine=true", headers=headers_for(user))) == {active.id, pending.id}
    assert rejected.id not in ids(client.get("/api/listings?mine=true", headers=headers_for(user)))

    assert client.get("/api/listings?mine=true").status_code == 401


def test_search_filters_sort_and_paging(client, user, make_listing):
    cheap = make_listing(user, model="Alto", price=3000, vehicle_type="car")
    mid = make_listing(user, model="Hiace", price=9000, vehicle_type="van", fuel_type="Diesel")
    dear = make_listing(user, model="Prado", price=40000, vehicle_type="jeep/suv", description="Corolla killer")

    r = client.get("/api/listings", params={"minPrice": 5000, "maxPrice": 40000, "sort": "priceAsc"})
    assert [l["listingId"] for l in r.json()["data"]] == [mid.id, dear.id]
    assert r.json()["total"] == 2

    r = client.get("/api/listings", params={"vehicleType": "van"})
    assert [l["listingId"] for l in r.json()["data"]] == [mid.id]

    r = client.get("/api/listings", params={"fuelType": "Diesel"})
    assert [l["listingId"] for l in r.json()["data"]] == [mid.id]

    r = client.get("/api/listings", params={"search": "corolla"})
    assert [l["listingId"] for l in r.json()["data"]] == [dear.id]

    r = client.get("/api/listings", params={"sort": "latest", "size": 2, "page": 2})
    body = r.json()
    assert body["total"] == 3
    assert [l["listingId"] for l in body["data"]] == [cheap.id]

    assert client.get("/api/listings", params={"size": 101}).status_code == 400
    assert client.get("/api/listings", params={"sort": "random"}).status_code == 400


# ---------- delete ----------
def test_delete_cascades(client, db, user, other_user, make_listing, headers_for):
    listing = make_listing(user)
    listing_id = listing.id
    headers = headers_for(other_user)

    assert client.post("/api/saved-listings", json={"listingId": listing_id}, headers=headers).status_code == 201
    assert client.post(
        "/api/interactions", json={"listingId": listing_id, "action": "like"}, headers=headers
    ).status_code == 201
    client.get(f"/api/listings/{listing_id}", headers=headers)
    r = client.post(
        "/api/messages",
        json={"receiverId": user.user_id, "content": "Still available?", "listingId": listing_id},
        headers=headers,
    )
    message_id = r.json()["messageId"]

    assert client.delete(f"/api/listings/{listing_id}", headers=headers).status_code == 403

    r = client.delete(f"/api/listings/{listing_id}", headers=headers_for(user))
    assert r.status_code == 200
    assert r.json()["listingId"] == listing_id

    db.expire_all()
    assert db.get(Listing, listing_id) is None
    for model in (SavedListing, Interaction, ListingViewer):
        assert db.scalar(select(func.count()).select_from(model).where(model.listing_id == listing_id)) == 0
    msg = db.get(Message, message_id)
    assert msg is not None
    assert msg.listing_id is None

    assert client.get(f"/api/listings/{listing_id}").status_code == 404


def test_admin_may_delete_any_listing(client, user, admin, make_listing, headers_for):
    listing = make_listing(user, status="Rejected")
    assert client.delete(f"/api/listings/{listing.id}", headers=headers_for(admin)).status_code == 200
