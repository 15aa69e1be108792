"""k8s-manager - a friendlier front end for everyday kubectl tasks."""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
