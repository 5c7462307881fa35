import uuid

import pytest

from conftest import auth_headers, make_video
from vidtube.core.config import settings

API = "/api/v1/playlists"


@pytest.fixture
def playlist(client, alice):
    response = client.post(f"{API}/create-playlist", headers=auth_headers(alice),
                           json={"name": "Favourites", "description": "Best of"})
    assert response.status_code == 201
    return response.json()["data"]


def test_create_and_list(client, alice, bob, playlist):
    assert playlist["name"] == "Favourites"
    assert playlist["totalVideos"] == 0
    data = client.get(f"{API}/user/{alice.id}").json()["data"]
    assert [p["_id"] for p in data["data"]] == [playlist["_id"]]
    assert client.get(f"{API}/user/{bob.id}").json()["data"]["data"] == []
    assert client.get(f"{API}/user/{uuid.uuid4()}").status_code == 404


def test_add_and_remove_videos(client, session, alice, playlist):
    video = make_video(session, alice, title="Track")
    pid = playlist["_id"]
    added = client.post(f"{API}/{pid}/add-video/{video.id}", headers=auth_headers(alice))
    assert added.json()["data"]["totalVideos"] == 1
    duplicate = client.post(f"{API}/{pid}/add-video/{video.id}", headers=auth_headers(alice))
    assert duplicate.status_code == 409

    removed = client.post(f"{API}/{pid}/remove-video/{video.id}", headers=auth_headers(alice))
    assert removed.json()["data"]["totalVideos"] == 0
    again = client.post(f"{API}/{pid}/remove-video/{video.id}", headers=auth_headers(alice))
    assert again.status_code == 404


def test_only_owner_can_change_playlist(client, session, alice, bob, playlist):
    video = make_video(session, bob, title="Bob's")
    pid = playlist["_id"]
    assert client.post(f"{API}/{pid}/add-video/{video.id}", headers=auth_headers(bob)).status_code == 403
    assert client.patch(f"{API}/update/{pid}", headers=auth_headers(bob), json={"name": "Mine"}).status_code == 403
    assert client.delete(f"{API}/delete/{pid}", headers=auth_headers(bob)).status_code == 403


def test_detail_and_ordered_videos(client, session, alice, playlist):
    pid = playlist["_id"]
    titles = ["One", "Two", "Three"]
    for title in titles:
        video = make_video(session, alice, title=title)
        client.post(f"{API}/{pid}/add-video/{video.id}", headers=auth_headers(alice))
    hidden = make_video(session, alice, title="Hidden", is_published=False)
    client.post(f"{API}/{pid}/add-video/{hidden.id}", headers=auth_headers(alice))

    detail = client.get(f"{API}/playlist/{pid}").json()["data"]
    assert detail["owner"]["username"] == "alice"
    assert detail["totalVideos"] == 4
    assert [v["title"] for v in detail["videos"]] == titles

    first = client.get(f"{API}/playlist/{pid}/videos", params={"limit": 2}).json()["data"]
    rest = client.get(f"{API}/playlist/{pid}/videos", params={"limit": 2, "cursor": first["cursor"]}).json()["data"]
    assert [item["video"]["title"] for item in first["data"]] == ["One", "Two"]
    assert [item["video"]["title"] for item in rest["data"]] == ["Three"]
    assert [item["position"] for item in first["data"]] == [1, 2]


def test_update_and_delete(client, alice, playlist):
    pid = playlist["_id"]
    updated = client.patch(f"{API}/update/{pid}", headers=auth_headers(alice), json={"description": "Still the best"})
    assert updated.json()["data"]["description"] == "Still the best"
    assert updated.json()["data"]["name"] == "Favourites"
    assert client.patch(f"{API}/update/{pid}", headers=auth_headers(alice), json={}).status_code == 400

    assert client.delete(f"{API}/delete/{pid}", headers=auth_headers(alice)).status_code == 200
    assert client.get(f"{API}/playlist/{pid}").status_code == 404


def test_detail_lists_a_capped_preview(client, session, alice, playlist, monkeypatch):
    monkeypatch.setattr(settings, "playlist_preview_size", 2)
    pid = playlist["_id"]
    for title in ["One", "Two", "Three"]:
        video = make_video(session, alice, title=title)
        client.post(f"{API}/{pid}/add-video/{video.id}", headers=auth_headers(alice))

    detail = client.get(f"{API}/playlist/{pid}").json()["data"]
    assert [v["title"] for v in detail["videos"]] == ["One", "Two"]
    assert detail["totalVideos"] == 3


def test_user_route_takes_owner_from_path(client, alice, bob, playlist):
    response = client.get(f"{API}/user/{alice.id}", params={"userId": str(bob.id)})
    assert response.status_code == 200
    assert [p["_id"] for p in response.json()["data"]["data"]] == [playlist["_id"]]
