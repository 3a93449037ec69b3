from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..config import settings
from ..errors import UpstreamFailure
from .aws import boto3_client

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to: str
    subject: str
    text_body: str
    html_body: Optional[str] = None


class EmailClient:
    def send(self, message: EmailMessage) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class SesEmailClient(EmailClient):
    def __init__(self) -> None:
        self._client = boto3_client("ses")

    def send(self, message: EmailMessage) -> None:
        body: dict[str, dict[str, str]] = {"Text": {"Data": message.text_body}}
        if message.html_body:
            body["Html"] = {"Data": message.html_body}
        try:
            self._client.send_email(
                Source=settings.email_from,
                Destination={"ToAddresses": [message.to]},
                Message={"Subject": {"Data": message.subject}, "Body": body},
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("ses_send_failed to=%s error=%s", message.to, exc)
            raise UpstreamFailure("Failed to send email") from exc


class ConsoleEmailClient(EmailClient):
    """Development sink: the message only goes to the log."""

    def __init__(self) -> None:
        self.outbox: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.outbox.append(message)
        logger.info("email_console to=%s subject=%s", message.to, message.subject)
        logger.debug("email_console body=%s", message.text_body)


def get_email_client() -> EmailClient:
    if settings.environment == "production":
        return SesEmailClient()
    return ConsoleEmailClient()
