def test_save_list_and_remove(client, user, other_user, make_listing, headers_for):
    first = make_listing(user, model="Civic")
    second = make_listing(user, model="Swift")
    headers = headers_for(other_user)

    r = client.post("/api/saved-listings", json={"listingId": first.id}, headers=headers)
    assert r.status_code == 201
    assert r.json()["listing"]["model"] == "Civic"
    assert r.json()["listing"]["isSaved"] is True
    client.post("/api/saved-listings", json={"listingId": second.id}, headers=headers)

    r = client.get("/api/saved-listings", headers=headers)
    assert r.status_code == 200
    saved = r.json()
    assert [s["listingId"] for s in saved] == [second.id, first.id]
    assert saved[0]["listing"]["seller"]["name"] == "Seller"

    page = client.get("/api/listings", headers=headers).json()
    assert {l["listingId"]: l["isSaved"] for l in page["data"]} == {first.id: True, second.id: True}

    r = client.delete(f"/api/saved-listings/{first.id}", headers=headers)
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert [s["listingId"] for s in client.get("/api/saved-listings", headers=headers).json()] == [second.id]


def test_save_twice_is_conflict(client, user, other_user, make_listing, headers_for):
    listing = make_listing(user)
    headers = headers_for(other_user)
    assert client.post("/api/saved-listings", json={"listingId": listing.id}, headers=headers).status_code == 201

    r = client.post("/api/saved-listings", json={"listingId": listing.id}, headers=headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "listing_already_saved"


def test_save_missing_listing_is_not_found(client, user, headers_for):
    r = client.post("/api/saved-listings", json={"listingId": 12345}, headers=headers_for(user))
    assert r.status_code == 404


def test_remove_unsaved_is_not_found(client, user, make_listing, headers_for):
    listing = make_listing(user)
    r = client.delete(f"/api/saved-listings/{listing.id}", headers=headers_for(user))
    assert r.status_code == 404


def test_saved_listings_require_authentication(client):
    assert client.get("/api/saved-listings").status_code == 401
    assert client.post("/api/saved-listings", json={"listingId": 1}).status_code == 401
