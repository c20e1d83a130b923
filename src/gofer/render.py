"""
HTML rendering for Gopher directories and the gateway's helper pages.

Every record is rendered by looking at its item type alone. Navigable items
become links back into the gateway, carrying everything needed to fetch the
item later; error and informational items are inert text.
"""

from html import escape
from typing import Iterable, Optional
from urllib.parse import quote, urlencode

from .config import HEARTBEAT_ENDPOINT, HEARTMON_PING_MS, PAGE_HEARTBEAT_MS, PH_DEFAULT_PORT
from .menu import DirectoryRecord, ItemTypes, NavigationContext, format_gopher_uri


BASE_STYLE = """
    :root { color-scheme: light dark; }
    body { font-family: monospace; line-height: 1.4; width: 100ch; margin: 0 auto; padding-bottom: 1ch; }
    .gopher-link { margin: 0; white-space: pre; }
    .gopher-link:last-child { margin-bottom: 1ch; }
    .gopher-error { color: red; }
    .gopher-info { color: gray; }
    .query-bar { width: 100%; margin: 1ch 0 1ch 0; }
    .query-bar form { display: flex; width: 100%; align-items: center; }
    .query-label { font-size: 1.5em; font-weight: bold; padding: 0 1ch 0 0; flex-shrink: 0; }
    input[type="text"] { font-family: monospace; font-size: 1.5em; font-weight: bold; flex-grow: 1; min-width: 0; outline: 0; }
    .results, .return { margin-top: 1ch; }
    pre { width: 100%; padding: 0 0 1ch 0; white-space: pre; }
"""


def navigation_url(item_type: str, host: str, port: str, selector: str) -> str:
    """Gateway URL that fetches (item_type, host, port, selector)."""
    return "/?" + urlencode({
        "type": item_type,
        "host": host,
        "port": port,
        "selector": selector,
    }, errors="surrogateescape")


def listing_url(context: NavigationContext) -> str:
    """URL of the directory listing that ``context`` was rendered from."""
    return navigation_url(ItemTypes.DIRECTORY, context.host, context.port, context.selector)


def ph_url(record: DirectoryRecord, return_to: str) -> str:
    port = record.port or PH_DEFAULT_PORT
    params = {"return": return_to}
    if record.selector:
        params["selector"] = record.selector
    host = quote(record.host, safe="", errors="surrogateescape")
    port = quote(port, safe="", errors="surrogateescape")
    return f"/ph/{host}:{port}?" + urlencode(params, errors="surrogateescape")


def search_url(record: DirectoryRecord, return_to: str) -> str:
    return "/search?" + urlencode({
        "host": record.host,
        "port": record.port,
        "selector": record.selector,
        "return": return_to,
    }, errors="surrogateescape")


def _line(label: str, body: str, css_class: Optional[str] = None) -> str:
    if css_class:
        label = f'<span class="{css_class}">{label}</span>'
    return f'<p class="gopher-link">{label}{body}</p>\n'


def _link(href: str, display: str) -> str:
    return f'<a href="{escape(href)}">{display}</a>'


def render_record(record: DirectoryRecord, context: NavigationContext) -> str:
    """Render one directory record as a line of HTML."""
    item_type = record.item_type
    label = escape(ItemTypes.label(item_type))
    display = escape(record.display)

    if ItemTypes.is_transparent(item_type):
        href = navigation_url(item_type, record.host, record.port, record.selector)
        return _line(label, _link(href, display))

    if item_type == ItemTypes.CSO:
        return _line(label, _link(ph_url(record, listing_url(context)), display))

    if item_type == ItemTypes.ERROR:
        return _line(label, display, "gopher-error")

    if item_type == ItemTypes.SEARCH:
        return _line(label, _link(search_url(record, listing_url(context)), display))

    if item_type == ItemTypes.INFO:
        return _line(label, display, "gopher-info")

    # Binary, image and unknown types all go through the byte pipeline.
    href = navigation_url(item_type, record.host, record.port, record.selector)
    css_class = None if item_type in ItemTypes.LABELS else "gopher-error"
    return _line(label, _link(href, display), css_class)


def heartbeat_script(interval_ms: int = PAGE_HEARTBEAT_MS) -> str:
    return f"""
<script>
  setInterval(function() {{
    fetch('{HEARTBEAT_ENDPOINT}')
    .catch(error => {{
      console.log('Error - gofer has closed unexpectedly');
    }});
  }}, {interval_ms});
</script>
"""


def _page_head(title: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{escape(title)}</title>
<style>{BASE_STYLE}</style>
</head>
<body>
"""


def render_directory(
    records: Iterable[DirectoryRecord],
    context: NavigationContext,
    embedded: bool = False
) -> str:
    """
    Render a parsed directory as HTML.

    Args:
        records: Parsed directory records, in display order
        context: Where the directory came from
        embedded: Omit the page shell so the listing can sit inside another page

    Returns:
        str: The HTML document or fragment
    """
    parts = []

    if not embedded:
        uri_value = format_gopher_uri(context, scheme=False)
        parts.append(_page_head(f"gofer - {context.host}:{context.port}{context.selector}"))
        parts.append(f"""<div class="query-bar">
<form action="/" method="GET">
<span class="query-label">gopher://</span>
<input type="text" id="uri" name="uri" value="{escape(uri_value)}" placeholder="freeshell.org:70/1/">
</form>
</div>
""")

    for record in records:
        parts.append(render_record(record, context))

    parts.append(heartbeat_script())

    if not embedded:
        parts.append("</body></html>")
    return "".join(parts)


def render_ph_page(host: str, port: str, content: str, return_url: str) -> str:
    """The PH client page: a query bar, the server's reply and a way back."""
    return _page_head(f"gofer PhClient - {host}:{port}") + f"""<div class="query-bar">
<form method="POST">
<span class="query-label">query</span>
<input type="text" name="query" autofocus>
</form>
</div>
<pre>{escape(content)}</pre>
<div class="return"><a href="{escape(return_url)}">Exit PhClient</a></div>
{heartbeat_script()}</body></html>"""


def render_search_page(inner_html: str, host: str, port: str, return_url: str) -> str:
    """The search frame; ``inner_html`` is an embedded directory listing or empty."""
    return _page_head(f"gofer search - {host}:{port}") + f"""<div class="query-bar">
<form method="POST">
<span class="query-label">query</span>
<input type="text" name="query" autofocus>
</form>
</div>
<div class="results">
{inner_html}
</div>
<div class="return"><a href="{escape(return_url)}">Exit Search</a></div>
</body></html>"""


def render_heartmon_page() -> str:
    """A small closeable window that keeps the gateway alive while open."""
    return _page_head("gofer - running") + f"""<p>close this tab or window to exit gofer</p>
<button onclick="popout()">pop out</button>
<script>
  function ping() {{
    fetch('{HEARTBEAT_ENDPOINT}').catch(() => {{ window.close(); }});
  }}
  function popout() {{
    const w = window.open("/heartmon", "gofer-heartmon", "width=240,height=240,resizable=yes");
    if (w) {{ window.close(); }}
  }}
  ping();
  setInterval(ping, {HEARTMON_PING_MS});
</script>
</body></html>"""
