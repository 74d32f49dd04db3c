"""
HTTP transport with transparent RFC 2617 Digest authentication
"""

import asyncio
import hashlib
import logging
import os
import re
from contextlib import asynccontextmanager
from typing import Dict, Optional, Union
from urllib.parse import urlsplit

import aiohttp

from ..errors import RequestTimeoutError, TransportError
from ..http_helper import create_device_session
from .models import HttpResponse

logger = logging.getLogger(__name__)

_CHALLENGE_PARAM = re.compile(r'([A-Za-z][\w-]*)\s*=\s*(?:"((?:[^"\\]|\\.)*)"|([^\s,]*))')

_HASHES = {
    "MD5": hashlib.md5,
    "SHA-256": hashlib.sha256,
}


def parse_challenge(header: str) -> Optional[Dict[str, str]]:
    """Parse a WWW-Authenticate Digest challenge; None for other schemes"""
    if not header:
        return None
    scheme, _, rest = header.strip().partition(" ")
    if scheme.lower() != "digest":
        return None

    params = {}
    for match in _CHALLENGE_PARAM.finditer(rest):
        quoted, bare = match.group(2), match.group(3)
        value = quoted.replace('\\"', '"') if quoted is not None else bare
        params[match.group(1).lower()] = value

    # Some devices omit the algorithm entirely
    if not params.get("algorithm"):
        params["algorithm"] = "MD5"
    return params


def _hash_function(algorithm: str):
    name = algorithm.upper()
    if name.endswith("-SESS"):
        name = name[:-5]
    if name not in _HASHES:
        raise ValueError(f"Unsupported digest algorithm: {algorithm}")
    return _HASHES[name]


def compute_digest_response(
    username: str,
    realm: str,
    password: str,
    method: str,
    uri: str,
    nonce: str,
    nc: str,
    cnonce: str,
    qop: Optional[str],
    algorithm: str = "MD5"
) -> str:
    """Digest 'response' value; deterministic for identical inputs"""
    hash_fn = _hash_function(algorithm)

    def h(data: str) -> str:
        return hash_fn(data.encode("utf-8")).hexdigest()

    ha1 = h(f"{username}:{realm}:{password}")
    if algorithm.upper().endswith("-SESS"):
        ha1 = h(f"{ha1}:{nonce}:{cnonce}")
    ha2 = h(f"{method}:{uri}")

    if qop:
        return h(f"{ha1}:{nonce}:{nc}:{cnonce}:{qop}:{ha2}")
    # RFC 2069 compatibility
    return h(f"{ha1}:{nonce}:{ha2}")


def request_uri(url: str) -> str:
    parts = urlsplit(url)
    uri = parts.path or "/"
    if parts.query:
        uri += "?" + parts.query
    return uri


class DigestAuthTransport:
    """One HTTP request, retried once with an Authorization header when challenged"""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, timeout: float = 3.0):
        self.session = session
        self.timeout = timeout
        self.nonce_count = 0

    async def send(
        self,
        method: str,
        url: str,
        body: Union[str, bytes, None] = None,
        username: str = "",
        password: str = "",
        headers: Optional[Dict[str, str]] = None
    ) -> HttpResponse:
        method = method.upper()
        data = body.encode("utf-8") if isinstance(body, str) else body
        request_headers = dict(headers or {})

        async with self._open_session() as session:
            response = await self._request(session, method, url, data, request_headers)
            if response.status != 401:
                return response

            challenge = None
            for header in response.www_authenticate:
                challenge = parse_challenge(header)
                if challenge:
                    break
            if challenge is None:
                logger.debug(f"401 from {url} without a Digest challenge")
                return response

            try:
                request_headers["Authorization"] = self.build_authorization(
                    challenge, method, request_uri(url), username, password
                )
            except ValueError as e:
                logger.warning(f"Cannot answer Digest challenge from {url}: {e}")
                return response

            logger.debug(f"Retrying {method} {url} with Digest authorization (nc={self.nonce_count:08x})")
            return await self._request(session, method, url, data, request_headers)

    def build_authorization(
        self,
        challenge: Dict[str, str],
        method: str,
        uri: str,
        username: str,
        password: str
    ) -> str:
        """Authorization header value for a parsed challenge; advances the nonce count"""
        algorithm = challenge.get("algorithm", "MD5")
        _hash_function(algorithm)

        realm = challenge.get("realm", "")
        nonce = challenge.get("nonce", "")
        qop = self._select_qop(challenge.get("qop"))
        cnonce = os.urandom(8).hex()

        self.nonce_count += 1
        nc = f"{self.nonce_count:08x}"

        response = compute_digest_response(
            username, realm, password, method, uri, nonce, nc, cnonce, qop, algorithm
        )

        fields = [
            f'username="{username}"',
            f'realm="{realm}"',
            f'nonce="{nonce}"',
            f'uri="{uri}"',
            f'algorithm={algorithm}',
        ]
        if qop:
            fields += [f'qop={qop}', f'nc={nc}', f'cnonce="{cnonce}"']
        fields.append(f'response="{response}"')
        if "opaque" in challenge:
            fields.append(f'opaque="{challenge["opaque"]}"')
        return "Digest " + ", ".join(fields)

    @staticmethod
    def _select_qop(qop: Optional[str]) -> Optional[str]:
        if not qop:
            return None
        options = [q.strip() for q in qop.split(",") if q.strip()]
        if "auth" in options:
            return "auth"
        return options[0] if options else None

    @asynccontextmanager
    async def _open_session(self):
        if self.session is not None:
            yield self.session
        else:
            async with create_device_session(self.timeout) as session:
                yield session

    async def _request(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        data: Optional[bytes],
        headers: Dict[str, str]
    ) -> HttpResponse:
        try:
            async with session.request(
                method,
                url,
                data=data,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                payload = await resp.read()
                return HttpResponse(
                    status=resp.status,
                    reason=resp.reason or "",
                    headers={k.lower(): v for k, v in resp.headers.items()},
                    body=payload,
                    www_authenticate=resp.headers.getall("WWW-Authenticate", [])
                )
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(f"{method} {url} timed out after {self.timeout}s") from e
        except (aiohttp.ClientError, OSError) as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
