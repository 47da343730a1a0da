"""
Transactional email through Amazon SES.
"""

import os
from typing import Optional

import boto3
import botocore

from utils.exceptions import EmailDeliveryError
from utils.logging import setup_logger

logger = setup_logger(__name__)

_ses_client = None


def get_ses_client():
    """Get or create the SES client with caching."""
    global _ses_client
    if _ses_client is None:
        _ses_client = boto3.client("ses", region_name=os.getenv("SES_REGION") or None)
    return _ses_client


class EmailSender:
    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        return self._client or get_ses_client()

    def send(self, to: str, sender: str, subject: str, html: str) -> Optional[str]:
        """
        Send one HTML email.

        Returns:
            The SES message id

        Raises:
            EmailDeliveryError: SES rejected the message
        """
        try:
            response = self.client.send_email(
                Source=sender,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {"Html": {"Data": html, "Charset": "UTF-8"}},
                },
            )
        except (botocore.exceptions.ClientError, botocore.exceptions.BotoCoreError) as err:
            logger.error(
                "Couldn't send email",
                extra={"to": to, "subject": subject, "error_message": str(err)},
            )
            raise EmailDeliveryError(f"Failed to send email to {to}") from err

        message_id = response.get("MessageId")
        logger.info("Email sent", extra={"to": to, "message_id": message_id})
        return message_id


email_sender = EmailSender()
