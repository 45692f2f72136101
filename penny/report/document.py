"""
Rendered report document
"""

import uuid
from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class Attachment:
    """File attached to the report email"""
    filename: str
    content: bytes
    content_type: str = "text/csv"


@dataclass(frozen=True)
class ReportDocument:
    """
    A report ready to send

    Attributes:
        subject: Email subject
        text: Plain text body
        html: HTML body
        attachments: Files to attach
        has_data: False for the "no data" document
        document_id: Unique id, used to avoid sending the same document twice
    """
    subject: str
    text: str
    html: str
    attachments: Tuple[Attachment, ...] = ()
    has_data: bool = True
    document_id: str = field(default_factory=lambda: str(uuid.uuid4()))
