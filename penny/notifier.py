"""
Email notifier

Sends a rendered report through AWS SES and classifies the outcome.
"""

import asyncio
import logging
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum
from typing import Dict, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from .aws import create_client, error_code, error_message, is_transient
from .core import NotificationRejected, RetriesExhaustedError, TransientIOError
from .report import ReportDocument
from .retry import BackoffPolicy, Deadline, Retrier, Sleep


logger = logging.getLogger(__name__)


class SendStatus(Enum):
    """Send outcome"""
    SENT = "sent"
    REJECTED = "rejected"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass(frozen=True)
class SendOutcome:
    """
    Result of sending one document

    Attributes:
        status: Outcome class
        message_id: SES message id when sent
        reason: Rejection or failure reason
        attempts: Send attempts made
    """
    status: SendStatus
    message_id: Optional[str] = None
    reason: Optional[str] = None
    attempts: int = 0

    @property
    def sent(self) -> bool:
        return self.status is SendStatus.SENT


def build_message(document: ReportDocument, sender: str, recipients: Sequence[str]) -> MIMEMultipart:
    """MIME message with text and HTML alternatives plus attachments"""
    message = MIMEMultipart('mixed')
    message['Subject'] = document.subject
    message['From'] = sender
    message['To'] = ', '.join(recipients)

    body = MIMEMultipart('alternative')
    body.attach(MIMEText(document.text, 'plain', 'utf-8'))
    body.attach(MIMEText(document.html, 'html', 'utf-8'))
    message.attach(body)

    for attachment in document.attachments:
        subtype = attachment.content_type.partition('/')[2]
        part = MIMEApplication(attachment.content, _subtype=subtype or 'octet-stream')
        part.add_header('Content-Disposition', 'attachment', filename=attachment.filename)
        message.attach(part)

    return message


class Notifier:
    """
    SES notifier

    Throttling and connection failures are retried under the backoff policy.
    Any other SES error is a rejection and is not retried. A document that
    has been sent once is never sent again by the same notifier.
    """

    def __init__(self, sender: str, ses_client=None, region: str = "eu-west-1",
                 retry: BackoffPolicy = None, sleep: Sleep = asyncio.sleep):
        """
        Initialize notifier

        Args:
            sender: Verified sender address
            ses_client: boto3 SES client (created from region if None)
            region: AWS region for SES
            retry: Backoff for transient failures
            sleep: Coroutine used for backoff waits
        """
        self.sender = sender
        self.ses_client = ses_client or create_client('ses', region)
        self.retrier = Retrier(retry or BackoffPolicy(), sleep=sleep)
        self._outcomes: Dict[str, SendOutcome] = {}

    async def send(self, document: ReportDocument, recipients: Sequence[str],
                   deadline: Optional[Deadline] = None) -> SendOutcome:
        """
        Send a document

        Args:
            document: Rendered report
            recipients: Destination addresses
            deadline: Optional deadline for backoff waits

        Returns:
            SendOutcome
        """
        previous = self._outcomes.get(document.document_id)
        if previous is not None and previous.sent:
            logger.info("[Notifier] Document %s already sent as %s, not sending again",
                        document.document_id, previous.message_id)
            return previous

        if not recipients:
            return self._record(document, SendOutcome(SendStatus.REJECTED, reason="No recipients"))

        raw_message = build_message(document, self.sender, recipients).as_string()
        attempts = 0

        async def attempt() -> str:
            nonlocal attempts
            attempts += 1
            try:
                response = self.ses_client.send_raw_email(
                    Source=self.sender,
                    Destinations=list(recipients),
                    RawMessage={'Data': raw_message},
                )
            except (ClientError, BotoCoreError) as e:
                if is_transient(e):
                    raise TransientIOError(f"SES SendRawEmail: {e}") from e
                if isinstance(e, ClientError):
                    raise NotificationRejected(f"{error_code(e)}: {error_message(e)}") from e
                raise
            return response['MessageId']

        try:
            message_id = await self.retrier.call("send email", attempt, deadline=deadline)
        except NotificationRejected as e:
            logger.error("[Notifier] SES rejected '%s': %s", document.subject, e)
            return self._record(document, SendOutcome(SendStatus.REJECTED, reason=str(e), attempts=attempts))
        except RetriesExhaustedError as e:
            logger.error("[Notifier] Giving up on '%s': %s", document.subject, e)
            return self._record(document, SendOutcome(SendStatus.TRANSIENT_FAILURE, reason=str(e),
                                                      attempts=attempts))

        logger.info("[Notifier] Sent '%s' to %d recipients, message id %s",
                    document.subject, len(recipients), message_id)
        return self._record(document, SendOutcome(SendStatus.SENT, message_id=message_id, attempts=attempts))

    def _record(self, document: ReportDocument, outcome: SendOutcome) -> SendOutcome:
        self._outcomes[document.document_id] = outcome
        return outcome
