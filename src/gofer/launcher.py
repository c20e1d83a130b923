"""
Browser launcher.
"""

import logging
import webbrowser


logger = logging.getLogger(__name__)


def launch_browser(url: str) -> bool:
    """
    Ask the OS to open ``url`` in the default browser.

    Failures are logged and never raised; the gateway keeps serving either way.
    """
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        logger.warning(f"Could not launch browser: {e}")
        return False

    if not opened:
        logger.warning(f"Could not launch browser for {url}")
    else:
        logger.info(f"Opened browser at {url}")
    return opened
