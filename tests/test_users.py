from conftest import PASSWORD, auth_headers, make_video

API = "/api/v1/users"

AVATAR = ("avatar.png", b"\x89PNG avatar", "image/png")


def register(client, username="dave", email=None, files=None):
    data = {
        "fullName": "Dave Grohl",
        "email": email or f"{username}@example.com",
        "username": username,
        "password": PASSWORD,
    }
    return client.post(f"{API}/register", data=data, files=files if files is not None else {"avatar": AVATAR})


def test_register_uploads_avatar_and_hides_secrets(client, media):
    response = register(client, files={"avatar": AVATAR, "coverImage": ("cover.jpg", b"jpg", "image/jpeg")})
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["statusCode"] == 201
    user = body["data"]
    assert user["username"] == "dave"
    assert user["avatar"].startswith("https://media.example.com/")
    assert user["coverImage"]
    assert "password_hash" not in user and "refreshToken" not in user
    assert media.uploaded == ["asset-1", "asset-2"]


def test_register_requires_avatar(client):
    response = register(client, files={})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_register_duplicate_is_conflict(client, alice, media):
    response = register(client, username="alice")
    assert response.status_code == 409
    assert media.uploaded == []


def test_login_by_username_or_email(client, alice):
    response = client.post(f"{API}/login", json={"username": "alice", "password": PASSWORD})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["_id"] == str(alice.id)
    assert data["accessToken"] and data["refreshToken"]
    assert "accessToken" in response.headers.get("set-cookie", "")

    by_email = client.post(f"{API}/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert by_email.status_code == 200


def test_login_failures(client, alice):
    assert client.post(f"{API}/login", json={"username": "alice", "password": "wrong-pass"}).status_code == 401
    assert client.post(f"{API}/login", json={"username": "nobody", "password": PASSWORD}).status_code == 404
    assert client.post(f"{API}/login", json={"password": PASSWORD}).status_code == 400


def test_current_user_requires_token(client, alice):
    assert client.get(f"{API}/current-user").status_code == 401
    response = client.get(f"{API}/current-user", headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "alice@example.com"


def test_refresh_token_rotates(client, alice):
    tokens = client.post(f"{API}/login", json={"username": "alice", "password": PASSWORD}).json()["data"]
    client.cookies.clear()
    rotated = client.post(f"{API}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert rotated.status_code == 200
    assert rotated.json()["data"]["refreshToken"] != tokens["refreshToken"]

    client.cookies.clear()
    reused = client.post(f"{API}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert reused.status_code == 401


def test_logout_revokes_refresh_token(client, alice):
    tokens = client.post(f"{API}/login", json={"username": "alice", "password": PASSWORD}).json()["data"]
    client.cookies.clear()
    assert client.post(f"{API}/logout", headers=auth_headers(alice)).status_code == 200
    client.cookies.clear()
    response = client.post(f"{API}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 401


def test_change_password(client, alice):
    headers = auth_headers(alice)
    wrong = client.post(f"{API}/change-password", headers=headers,
                        json={"oldPassword": "not-it", "newPassword": "brand-new-pass"})
    assert wrong.status_code == 400
    ok = client.post(f"{API}/change-password", headers=headers,
                     json={"oldPassword": PASSWORD, "newPassword": "brand-new-pass"})
    assert ok.status_code == 200
    login = client.post(f"{API}/login", json={"username": "alice", "password": "brand-new-pass"})
    assert login.status_code == 200


def test_update_account_details(client, alice, bob):
    headers = auth_headers(alice)
    response = client.patch(f"{API}/update-account-details", headers=headers, json={"fullName": "Alice Cooper"})
    assert response.json()["data"]["fullName"] == "Alice Cooper"
    taken = client.patch(f"{API}/update-account-details", headers=headers, json={"email": "bob@example.com"})
    assert taken.status_code == 409
    empty = client.patch(f"{API}/update-account-details", headers=headers, json={})
    assert empty.status_code == 400


def test_update_avatar_destroys_previous_asset(client, alice, media):
    response = client.patch(f"{API}/update-avatar", headers=auth_headers(alice), files={"avatar": AVATAR})
    assert response.status_code == 200
    assert response.json()["data"]["avatar"] == "https://media.example.com/asset-1"
    assert media.destroyed == ["alice-avatar"]


def test_update_cover_image(client, alice, media):
    response = client.patch(f"{API}/update-coverimage", headers=auth_headers(alice),
                            files={"coverImage": ("c.jpg", b"jpg", "image/jpeg")})
    assert response.status_code == 200
    assert response.json()["data"]["coverImage"] == "https://media.example.com/asset-1"
    assert media.destroyed == []

    missing = client.patch(f"{API}/update-coverimage", headers=auth_headers(alice))
    assert missing.status_code == 400


def test_channel_profile_counts_and_flag(client, alice, bob):
    client.post(f"/api/v1/subscriptions/t-subscribe/{alice.id}", headers=auth_headers(bob))

    as_bob = client.get(f"{API}/channel/alice", headers=auth_headers(bob)).json()["data"]
    assert as_bob["subscribersCount"] == 1
    assert as_bob["channelsSubscribedToCount"] == 0
    assert as_bob["isSubscribed"] is True

    anonymous = client.get(f"{API}/channel/alice").json()["data"]
    assert anonymous["isSubscribed"] is False
    assert client.get(f"{API}/channel/nobody").status_code == 404


def test_watch_history_moves_rewatched_video_to_top(client, session, alice, bob):
    first = make_video(session, bob, title="First")
    second = make_video(session, bob, title="Second")
    headers = auth_headers(alice)
    for video in (first, second, first):
        assert client.patch(f"{API}/watch-history/{video.id}", headers=headers).status_code == 200

    history = client.get(f"{API}/watch-history", headers=headers).json()["data"]
    assert [entry["video"]["title"] for entry in history["data"]] == ["First", "Second"]
    assert history["data"][0]["video"]["owner"]["username"] == "bob"
    assert history["hasMore"] is False
