import io
import logging

from PIL import Image

from vms.services import notification_service
from vms.services.notification_service import build_review_email, notify_request_reviewed, send_email
from vms.utils.exceptions import validation_message
from vms.utils.logger import setup_logging
from vms.utils.uploads import resize_image_if_needed


def test_review_email_mentions_code_and_comments():
    subject, html, text = build_review_email("Submitter", "Abebe Kebede", "approved", "VIS123456ABC", "Bring ID")

    assert subject == "Visitor request for Abebe Kebede approved"
    assert "Approval code: VIS123456ABC" in text
    assert "<p>Reviewer comments: Bring ID</p>" in html


def test_review_email_escapes_user_text():
    subject, html, text = build_review_email(
        "Submitter", "<script>alert(1)</script>", "declined", comments="Use <b>gate</b> & ID"
    )

    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "<p>Reviewer comments: Use &lt;b&gt;gate&lt;/b&gt; &amp; ID</p>" in html
    assert "<script>alert(1)</script>" in text


def test_send_email_is_skipped_without_smtp_settings():
    assert send_email("someone@example.com", "Subject", "<p>hi</p>") is False


def test_notification_failure_is_logged_not_raised(monkeypatch, caplog):
    def broken_send(*args, **kwargs):
        raise ConnectionRefusedError("smtp down")

    monkeypatch.setattr(notification_service, "send_email", broken_send)

    with caplog.at_level(logging.ERROR):
        notify_request_reviewed("someone@example.com", "Submitter", "Abebe Kebede", "declined")

    assert "Failed to send review notification" in caplog.text


def test_validation_message_joins_and_strips_prefix():
    errors = [
        {"type": "value_error", "loc": ("body",), "msg": "Value error, Scheduled date cannot be in the past"},
        {"type": "missing", "loc": ("body", "purpose"), "msg": "Field required"},
    ]

    assert validation_message(errors) == "Scheduled date cannot be in the past. purpose: Field required"


def test_large_images_are_shrunk():
    buffer = io.BytesIO()
    Image.effect_noise((600, 600), 100).convert("RGB").save(buffer, format="JPEG", quality=95)
    original = buffer.getvalue()

    shrunk = resize_image_if_needed(original, 20_000)

    assert len(shrunk) < len(original)


def test_setup_logging_adds_a_single_handler():
    root = setup_logging("debug")
    setup_logging("info")

    handlers = [h for h in root.handlers if getattr(h, "_vms_handler", False)]
    assert len(handlers) == 1
    assert root.level == logging.INFO
