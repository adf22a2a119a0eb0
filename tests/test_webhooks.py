import json

import httpx

import shared.webhooks as webhooks

from conftest import run


def test_notify_posts_envelope_to_every_url():
    received = []

    def handler(request):
        received.append((str(request.url), json.loads(request.content)))
        if request.url.path == "/down":
            return httpx.Response(500)
        return httpx.Response(204)

    delivered = run(webhooks.notify(
        ["https://hooks.example.com/up", "https://hooks.example.com/down"],
        "review.generated",
        {"reviewId": 7, "storeid": "demo"},
        transport=httpx.MockTransport(handler),
    ))

    assert delivered == 1
    assert sorted(url for url, _ in received) == [
        "https://hooks.example.com/down",
        "https://hooks.example.com/up",
    ]
    envelope = received[0][1]
    assert envelope["event"] == "review.generated"
    assert envelope["data"] == {"reviewId": 7, "storeid": "demo"}
    assert envelope["sent_at"].endswith("+00:00")


def test_notify_survives_connection_errors():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    delivered = run(webhooks.notify(
        ["https://hooks.example.com/a"],
        "review.generated",
        {},
        transport=httpx.MockTransport(handler),
    ))

    assert delivered == 0


def test_notify_without_urls():
    assert run(webhooks.notify([], "review.generated", {"reviewId": 1})) == 0
