"""
Report rendering
"""

from .document import Attachment, ReportDocument
from .csv_export import attachment_filename, encode_csv, decode_csv
from .renderer import ReportRenderer, format_amount

__all__ = ['Attachment', 'ReportDocument', 'attachment_filename', 'encode_csv', 'decode_csv',
           'ReportRenderer', 'format_amount']
