"""
REST API access: client, error taxonomy and typed resources.
"""

from dokdeck.api.client import HttpClient
from dokdeck.api.decode import Malformed, Ok, decode
from dokdeck.api.errors import ErrorKind, FieldError, RequestError, classify_http_error

__all__ = [
    "HttpClient",
    "Malformed",
    "Ok",
    "decode",
    "ErrorKind",
    "FieldError",
    "RequestError",
    "classify_http_error",
]
