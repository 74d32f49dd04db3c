"""
SOAP transport module: envelope codec, digest-authenticated HTTP and transactions
"""

from .client import SoapTransactionClient
from .codec import SoapCodec, as_list, deep_get, text_of
from .digest_auth import DigestAuthTransport, compute_digest_response, parse_challenge
from .models import ClockOffset, Credentials, Endpoint, HttpResponse, SoapResult

__all__ = [
    'SoapTransactionClient', 'SoapCodec', 'DigestAuthTransport',
    'compute_digest_response', 'parse_challenge', 'as_list', 'deep_get', 'text_of',
    'ClockOffset', 'Credentials', 'Endpoint', 'HttpResponse', 'SoapResult'
]
