"""
Logging setup
"""

import logging

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def configure_logging(level: str = "INFO"):
    """
    Configure the root logger

    The Lambda runtime installs its own handler on the root logger; in that
    case only the level is changed.
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level.upper())
    else:
        logging.basicConfig(level=level.upper(), format=LOG_FORMAT)

    # boto3 and botocore log every request at DEBUG
    for name in ('boto3', 'botocore', 'urllib3'):
        logging.getLogger(name).setLevel(logging.WARNING)
