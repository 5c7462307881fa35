from conftest import auth_headers, make_user, make_video


def test_channel_stats(client, session, alice, bob):
    carol = make_user(session, "carol")
    first = make_video(session, alice, title="First", view_count=10)
    second = make_video(session, alice, title="Second", view_count=5, is_published=False)
    make_video(session, bob, title="Not mine", view_count=100)
    for fan in (bob, carol):
        client.post(f"/api/v1/subscriptions/t-subscribe/{alice.id}", headers=auth_headers(fan))
        client.patch(f"/api/v1/likes/like-video/{first.id}", headers=auth_headers(fan))
    client.patch(f"/api/v1/likes/like-video/{second.id}", headers=auth_headers(alice))
    client.post(f"/api/v1/subscriptions/t-subscribe/{bob.id}", headers=auth_headers(alice))

    stats = client.get("/api/v1/dashboard/my-dashboard", headers=auth_headers(alice)).json()["data"]
    assert stats["subscribersCount"] == 2
    assert stats["subscribedToCount"] == 1
    assert stats["totalVideos"] == 2
    assert stats["totalViews"] == 15
    assert stats["totalLikes"] == 3


def test_empty_channel_stats_are_zero(client, alice):
    stats = client.get("/api/v1/dashboard/my-dashboard", headers=auth_headers(alice)).json()["data"]
    assert stats["totalVideos"] == 0
    assert stats["totalViews"] == 0
    assert stats["totalLikes"] == 0


def test_my_videos_include_unpublished(client, session, alice, bob):
    published = make_video(session, alice, title="Live")
    make_video(session, alice, title="Draft", is_published=False)
    make_video(session, bob, title="Other")
    client.patch(f"/api/v1/likes/like-video/{published.id}", headers=auth_headers(bob))

    data = client.get("/api/v1/dashboard/my-videos", headers=auth_headers(alice),
                      params={"sortBy": "title", "sortType": "asc", "includeTotal": "true"}).json()["data"]
    assert [(v["title"], v["isPublished"], v["totalLikes"]) for v in data["data"]] == [
        ("Draft", False, 0),
        ("Live", True, 1),
    ]
    assert data["totalVideos"] == 2
    assert client.get("/api/v1/dashboard/my-videos").status_code == 401


def test_healthcheck(client):
    response = client.get("/api/v1/healthcheck")
    assert response.status_code == 200
    body = response.json()
    assert body["data"]["message"] == "OK"
    assert body["success"] is True
