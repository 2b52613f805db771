"""
HTTP client for the proof service.

Only the transport is retried (connection errors, timeouts, 5xx). An answer
from the service that the address has nothing to claim is final.
"""

import logging
import time
from typing import Optional, Union

import requests

from merkle_airdrop.config import REQUEST_TIMEOUT, RETRY_BACKOFF, RETRY_MAX
from merkle_airdrop.errors import ClaimServiceError, UnknownRecipientError
from merkle_airdrop.leaf import digest_hex, to_digest
from merkle_airdrop.proof_server import ClaimData

logger = logging.getLogger(__name__)


def fetch_claim_data(
    server_url: str,
    root: Union[bytes, str],
    address: str,
    session: Optional[requests.Session] = None,
) -> ClaimData:
    """
    GET {server_url}/api/airdrop/{root}/{address} and parse the claim.

    Raises
    ------
    UnknownRecipientError
        The service answered 404 (unknown root or address).
    ClaimServiceError
        Any other 4xx, an unparseable body, or all RETRY_MAX attempts failed.
    """
    url = f"{server_url.rstrip('/')}/api/airdrop/{digest_hex(to_digest(root))}/{address}"
    own_session = session is None
    if own_session:
        session = requests.Session()

    last_exc: Optional[Exception] = None
    try:
        for attempt in range(1, RETRY_MAX + 1):
            try:
                resp = session.get(url, timeout=REQUEST_TIMEOUT)
            except requests.RequestException as e:
                last_exc = e
            else:
                if resp.status_code == 404:
                    raise UnknownRecipientError(f"{address} has no claim under {digest_hex(to_digest(root))}")
                if 400 <= resp.status_code < 500:
                    raise ClaimServiceError(f"API call failed: {resp.status_code} {resp.reason}")
                if resp.status_code < 400:
                    try:
                        return ClaimData.from_json(resp.json())
                    except (KeyError, TypeError, ValueError) as e:
                        raise ClaimServiceError(f"malformed claim response: {e}") from e
                last_exc = ClaimServiceError(f"API call failed: {resp.status_code} {resp.reason}")

            if attempt == RETRY_MAX:
                break
            logger.warning("claim lookup attempt %d failed: %s", attempt, last_exc)
            time.sleep(RETRY_BACKOFF ** (attempt - 1))
    finally:
        if own_session:
            session.close()

    raise ClaimServiceError(f"Request failed after {RETRY_MAX} attempts: {last_exc}")
