"""Email delivery through the Gmail API."""
import base64
from email.mime.text import MIMEText
from typing import Optional, Sequence

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from moneylog.utils.auth import get_credentials
from moneylog.utils.exceptions import DeliveryError
from moneylog.utils.logger import get_logger

logger = get_logger()


class GmailMailer:
    """Sends HTML emails from the configured sender mailbox.

    The underlying HTTP client is not thread-safe; create one mailer per
    worker thread.
    """

    def __init__(
        self,
        sender: str,
        service_account_path: Optional[str] = None,
        oauth_client_secrets: Optional[str] = None,
        oauth_token_path: Optional[str] = None,
        scopes: Optional[Sequence[str]] = None
    ):
        credentials = get_credentials(
            service_account_path=service_account_path,
            oauth_client_secrets=oauth_client_secrets,
            oauth_token_path=oauth_token_path,
            scopes=scopes,
            delegated_user=sender
        )
        self.sender = sender
        self.service = build("gmail", "v1", credentials=credentials, cache_discovery=False)

    def send(self, recipient: str, subject: str, body: str) -> str:
        """
        Send one HTML message.

        Returns:
            Gmail message id

        Raises:
            DeliveryError: If the API rejects the message
        """
        message = MIMEText(body, "html", "utf-8")
        message["to"] = recipient
        message["from"] = self.sender
        message["subject"] = subject
        raw = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")

        try:
            sent = self.service.users().messages().send(userId="me", body={"raw": raw}).execute()
        except HttpError as e:
            raise DeliveryError(f"Gmail rejected message to {recipient}: {e}")
        except (ConnectionError, TimeoutError, OSError) as e:
            raise DeliveryError(f"Could not reach Gmail for {recipient}: {e}")

        message_id = sent.get("id", "")
        logger.info(f"Email sent to {recipient} (id: {message_id})")
        return message_id
