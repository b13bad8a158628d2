import io

import pytest
import requests

from app.core.config import settings
from app.infra import email, storage


class FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


def test_send_email_without_api_key(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", "")

    assert email.send_email("owner@example.com", "Hi", "<p>Hi</p>") is False


def test_send_email_posts_to_sendgrid(monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append((url, json, headers))
        return FakeResponse(202)

    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test")
    monkeypatch.setattr(settings, "sendgrid_sandbox_mode", True)
    monkeypatch.setattr(requests, "post", fake_post)

    assert email.send_email("owner@example.com", "New order", "<p>order</p>") is True
    url, payload, headers = calls[0]
    assert url == email.SENDGRID_API_URL
    assert payload["personalizations"][0]["to"] == [{"email": "owner@example.com"}]
    assert payload["mail_settings"] == {"sandbox_mode": {"enable": True}}
    assert headers["Authorization"] == "Bearer SG.test"


def test_send_email_handles_errors(monkeypatch):
    def failing_post(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test")
    monkeypatch.setattr(requests, "post", failing_post)
    assert email.send_email("owner@example.com", "x", "x") is False

    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(401, "unauthorized"))
    assert email.send_email("owner@example.com", "x", "x") is False


def test_order_notification_needs_recipient(monkeypatch):
    monkeypatch.setattr(settings, "notification_email", "")

    assert email.send_order_notification(object()) is False


@pytest.mark.parametrize("filename,expected", [("a.JPG", "jpg"), ("b.jpeg", "jpeg"), ("c.png", "png"), ("d.webp", "webp")])
def test_image_format_allowed(filename, expected):
    assert storage.image_format(filename) == expected


@pytest.mark.parametrize("filename", ["anim.gif", "noext", ""])
def test_image_format_rejected(filename):
    with pytest.raises(storage.UnsupportedImageError):
        storage.image_format(filename)


def test_upload_and_key_round_trip(fake_s3):
    url = storage.upload_product_image(io.BytesIO(b"data"), "shirt.png", "image/png")

    key = storage.key_from_url(url)
    assert key.startswith("threadscape/products/")
    assert fake_s3.objects[key] == b"data"
    assert storage.delete_image(key) is True
    assert fake_s3.deleted == [key]


def test_key_from_foreign_url():
    assert storage.key_from_url("https://images.example.com/a.jpg") == ""
