import uuid

from conftest import auth_headers, make_video


def test_comment_lifecycle(client, session, alice, bob):
    video = make_video(session, alice, title="Commented")
    api = "/api/v1/comments"
    created = client.post(f"{api}/add-comment/{video.id}", headers=auth_headers(bob), json={"content": "  nice  "})
    assert created.status_code == 201
    comment = created.json()["data"]
    assert comment["content"] == "nice"
    assert comment["video"] == str(video.id)

    forbidden = client.put(f"{api}/update-comment/{comment['_id']}", headers=auth_headers(alice),
                           json={"content": "edited by someone else"})
    assert forbidden.status_code == 403
    edited = client.put(f"{api}/update-comment/{comment['_id']}", headers=auth_headers(bob),
                        json={"content": "very nice"})
    assert edited.json()["data"]["content"] == "very nice"

    listing = client.get(f"{api}/all-comments/{video.id}").json()["data"]
    assert listing["hasMore"] is False
    assert listing["data"][0]["owner"]["username"] == "bob"
    assert listing["data"][0]["isLiked"] is False

    assert client.delete(f"{api}/delete-comment/{comment['_id']}", headers=auth_headers(alice)).status_code == 403
    assert client.delete(f"{api}/delete-comment/{comment['_id']}", headers=auth_headers(bob)).status_code == 200
    assert client.get(f"{api}/all-comments/{video.id}").json()["data"]["data"] == []


def test_comment_validation(client, session, alice):
    video = make_video(session, alice, title="Quiet")
    api = "/api/v1/comments"
    assert client.post(f"{api}/add-comment/{video.id}", headers=auth_headers(alice), json={"content": "   "}).status_code == 400
    assert client.post(f"{api}/add-comment/{video.id}", headers=auth_headers(alice), json={}).status_code == 400
    assert client.post(f"{api}/add-comment/{uuid.uuid4()}", headers=auth_headers(alice),
                       json={"content": "hello"}).status_code == 404
    assert client.get(f"{api}/all-comments/{uuid.uuid4()}").status_code == 404


def test_comments_paginate_newest_first(client, session, alice):
    video = make_video(session, alice, title="Busy")
    api = "/api/v1/comments"
    for i in range(5):
        client.post(f"{api}/add-comment/{video.id}", headers=auth_headers(alice), json={"content": f"c{i}"})
    first = client.get(f"{api}/all-comments/{video.id}", params={"limit": 3}).json()["data"]
    second = client.get(f"{api}/all-comments/{video.id}",
                        params={"limit": 3, "cursor": first["cursor"]}).json()["data"]
    contents = [c["content"] for c in first["data"] + second["data"]]
    assert contents == ["c4", "c3", "c2", "c1", "c0"]
    assert first["hasMore"] is True and second["hasMore"] is False


def test_tweet_lifecycle(client, alice, bob):
    api = "/api/v1/tweets"
    created = client.post(f"{api}/create-tweet", headers=auth_headers(alice), json={"content": "hello world"})
    assert created.status_code == 201
    tweet = created.json()["data"]

    mine = client.get(f"{api}/user-tweets", headers=auth_headers(alice)).json()["data"]
    assert [t["content"] for t in mine["data"]] == ["hello world"]
    assert client.get(f"{api}/user/{bob.id}").json()["data"]["data"] == []
    assert client.get(f"{api}/user/{uuid.uuid4()}").status_code == 404

    assert client.patch(f"{api}/update-tweet/{tweet['_id']}", headers=auth_headers(bob),
                        json={"content": "hijacked"}).status_code == 403
    updated = client.patch(f"{api}/update-tweet/{tweet['_id']}", headers=auth_headers(alice),
                           json={"content": "hello again"})
    assert updated.json()["data"]["content"] == "hello again"

    assert client.delete(f"{api}/delete-tweet/{tweet['_id']}", headers=auth_headers(bob)).status_code == 403
    assert client.delete(f"{api}/delete-tweet/{tweet['_id']}", headers=auth_headers(alice)).status_code == 200
    assert client.delete(f"{api}/delete-tweet/{tweet['_id']}", headers=auth_headers(alice)).status_code == 404


def test_user_tweets_route_with_owner_query(client, alice, bob):
    client.post("/api/v1/tweets/create-tweet", headers=auth_headers(alice), json={"content": "mine"})
    response = client.get(f"/api/v1/tweets/user/{alice.id}", params={"userId": str(bob.id)})
    assert response.status_code == 200
    assert [t["content"] for t in response.json()["data"]["data"]] == ["mine"]
