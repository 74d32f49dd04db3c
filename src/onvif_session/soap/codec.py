"""
SOAP envelope encoding/decoding with optional WS-Security UsernameToken header
"""

import base64
import hashlib
import logging
import os
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union
from xml.parsers.expat import ExpatError
from xml.sax.saxutils import escape

import xmltodict

from ..errors import ParseError

logger = logging.getLogger(__name__)

SOAP_ENV_NS = "http://www.w3.org/2003/05/soap-envelope"
WSSE_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd"
WSU_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-utility-1.0.xsd"
PASSWORD_DIGEST_TYPE = (
    "http://docs.oasis-open.org/wss/2004/01/"
    "oasis-200401-wss-username-token-profile-1.0#PasswordDigest"
)
BASE64_ENCODING_TYPE = (
    "http://docs.oasis-open.org/wss/2004/01/"
    "oasis-200401-wss-soap-message-security-1.0#Base64Binary"
)

_INTER_TAG_WHITESPACE = re.compile(r">\s+<")


def text_of(node: Any) -> str:
    """Text content of a decoded node (plain string or dict with #text)"""
    if node is None:
        return ""
    if isinstance(node, dict):
        value = node.get("#text", "")
        return value if isinstance(value, str) else ""
    if isinstance(node, list):
        return text_of(node[0]) if node else ""
    return str(node)


def as_list(node: Any) -> List[Any]:
    """Decoded repeated elements are lists, single ones are not"""
    if node is None:
        return []
    return node if isinstance(node, list) else [node]


def deep_get(node: Any, path: str, default: Any = None) -> Any:
    """Dotted-path lookup in a decoded tree ('Bounds.@width')"""
    for key in path.split("."):
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return default if node is None else node


def _strip_prefix(path, key: str, value):
    # Attributes keep their qualified names (@xmlns:s, @s:mustUnderstand)
    if not key.startswith("@") and ":" in key:
        key = key.rsplit(":", 1)[1]
    return key, value


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and Z suffix"""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


class SoapCodec:
    """Stateless SOAP 1.2 envelope codec"""

    def __init__(self, nonce_size: int = 16):
        self.nonce_size = nonce_size

    # ================== ENCODING ==================

    def encode(
        self,
        body: str,
        namespaces: Optional[Dict[str, str]] = None,
        clock_offset_ms: int = 0,
        username: str = "",
        password: str = ""
    ) -> str:
        """Wrap a body fragment in a complete envelope"""
        soap = '<?xml version="1.0" encoding="UTF-8"?>'
        soap += f'<s:Envelope xmlns:s="{SOAP_ENV_NS}"'
        for prefix, uri in (namespaces or {}).items():
            soap += f' xmlns:{prefix}="{uri}"'
        soap += '>'
        soap += '<s:Header>'
        if username:
            soap += self.build_security_header(username, password, clock_offset_ms)
        soap += '</s:Header>'
        soap += f'<s:Body>{body}</s:Body>'
        soap += '</s:Envelope>'
        return _INTER_TAG_WHITESPACE.sub("><", soap)

    def build_security_header(
        self,
        username: str,
        password: str,
        clock_offset_ms: int = 0,
        nonce: Optional[bytes] = None,
        created: Optional[str] = None
    ) -> str:
        """WS-Security UsernameToken with PasswordDigest"""
        if nonce is None:
            nonce = os.urandom(self.nonce_size)
        if created is None:
            moment = datetime.now(timezone.utc) + timedelta(milliseconds=clock_offset_ms or 0)
            created = format_timestamp(moment)

        digest = self.password_digest(nonce, created, password or "")
        nonce_b64 = base64.b64encode(nonce).decode("ascii")

        return (
            f'<Security s:mustUnderstand="1" xmlns="{WSSE_NS}">'
            '<UsernameToken>'
            f'<Username>{escape(username)}</Username>'
            f'<Password Type="{PASSWORD_DIGEST_TYPE}">{digest}</Password>'
            f'<Nonce EncodingType="{BASE64_ENCODING_TYPE}">{nonce_b64}</Nonce>'
            f'<Created xmlns="{WSU_NS}">{created}</Created>'
            '</UsernameToken>'
            '</Security>'
        )

    @staticmethod
    def password_digest(nonce: bytes, created: str, password: str) -> str:
        """base64(SHA-1(nonce + created + password))"""
        sha1 = hashlib.sha1()
        sha1.update(nonce + created.encode("utf-8") + password.encode("utf-8"))
        return base64.b64encode(sha1.digest()).decode("ascii")

    # ================== DECODING ==================

    def decode(self, text: Union[str, bytes]) -> Dict[str, Any]:
        """
        Parse an envelope into nested dicts/lists.
        Namespace prefixes are stripped from element names; attributes are kept as '@name'.
        Returns the content of the root element.
        """
        try:
            parsed = xmltodict.parse(text, postprocessor=_strip_prefix)
        except (ExpatError, ValueError) as e:
            raise ParseError(f"Failed to parse the response SOAP: {e}") from e

        if not parsed:
            raise ParseError("Failed to parse the response SOAP: empty document")

        root = next(iter(parsed.values()))
        return root if isinstance(root, dict) else {}

    def extract_fault(self, tree: Dict[str, Any]) -> Optional[str]:
        """Reason text of a SOAP Fault, or None when the envelope carries no fault"""
        body = tree.get("Body") if isinstance(tree, dict) else None
        if not isinstance(body, dict) or "Fault" not in body:
            return None

        fault = body.get("Fault")
        if not isinstance(fault, dict):
            return "Unknown SOAP fault"

        reason = fault.get("Reason")
        if isinstance(reason, dict):
            text = text_of(reason.get("Text"))
            if text:
                return text

        code = fault.get("Code")
        if isinstance(code, dict):
            value = text_of(code.get("Value"))
            if value:
                subcode = code.get("Subcode")
                if isinstance(subcode, dict):
                    sub_value = text_of(subcode.get("Value"))
                    if sub_value:
                        value += " " + sub_value
                return value

        # SOAP 1.1 style faults
        fault_string = text_of(fault.get("faultstring"))
        return fault_string or "Unknown SOAP fault"
