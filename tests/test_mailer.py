"""Tests for the Gmail mailer."""
import base64
import email
import unittest

import httplib2
from googleapiclient.errors import HttpError

from moneylog.reports.mailer import GmailMailer
from moneylog.utils.exceptions import DeliveryError


class FakeExec:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error

    def execute(self):
        if self.error:
            raise self.error
        return self.response


class FakeMessages:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def send(self, userId, body):
        self.calls.append((userId, body))
        return FakeExec({"id": "msg-123"}, self.error)


class FakeUsers:
    def __init__(self, messages):
        self.messages_resource = messages

    def messages(self):
        return self.messages_resource


class FakeService:
    def __init__(self, error=None):
        self.messages_resource = FakeMessages(error)

    def users(self):
        return FakeUsers(self.messages_resource)


class TestGmailMailer(unittest.TestCase):
    """Test GmailMailer without network access."""

    def _mailer(self, service):
        # Skip __init__ to avoid credential lookup
        mailer = object.__new__(GmailMailer)
        mailer.sender = "reports@example.com"
        mailer.service = service
        return mailer

    def test_send_builds_raw_message(self):
        service = FakeService()
        mailer = self._mailer(service)

        message_id = mailer.send("user@example.com", "Weekly summary", "<p>Total</p>")

        self.assertEqual(message_id, "msg-123")
        user_id, body = service.messages_resource.calls[0]
        self.assertEqual(user_id, "me")

        message = email.message_from_bytes(base64.urlsafe_b64decode(body["raw"]))
        self.assertEqual(message["to"], "user@example.com")
        self.assertEqual(message["from"], "reports@example.com")
        self.assertEqual(message["subject"], "Weekly summary")
        self.assertEqual(message.get_content_type(), "text/html")
        self.assertIn("<p>Total</p>", message.get_payload(decode=True).decode("utf-8"))

    def test_connection_error_raises_delivery_error(self):
        mailer = self._mailer(FakeService(error=ConnectionError("network down")))

        with self.assertRaises(DeliveryError):
            mailer.send("user@example.com", "Weekly summary", "<p>Total</p>")

    def test_http_error_raises_delivery_error(self):
        response = httplib2.Response({"status": "403", "reason": "Forbidden"})
        error = HttpError(response, b'{"error": {"code": 403, "message": "Delegation denied"}}')
        mailer = self._mailer(FakeService(error=error))

        with self.assertRaises(DeliveryError) as ctx:
            mailer.send("user@example.com", "Weekly summary", "<p>Total</p>")

        self.assertIn("user@example.com", str(ctx.exception))
        self.assertIn("Gmail rejected", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
