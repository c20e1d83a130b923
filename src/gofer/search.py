"""
Gopher index-search client (item type 7).
"""

import logging

from .config import TCP_TIMEOUT
from .transport import fetch_text


logger = logging.getLogger(__name__)


def search(host: str, port: str, selector: str, query: str, timeout: float = TCP_TIMEOUT) -> str:
    """
    Send ``selector<TAB>query`` and return the reply, a directory listing.

    Raises:
        TransportError: If the server cannot be reached or read
    """
    logger.info(f"Searching {host}:{port}{selector} for {query!r}")
    return fetch_text(host, port, f"{selector}\t{query}", timeout=timeout).strip()
