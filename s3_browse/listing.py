from __future__ import annotations

import logging
from html import escape
from typing import TYPE_CHECKING
from urllib.parse import quote

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator

    from .models import StoreObject
    from .store import ObjectStore

LOG = logging.getLogger("s3_browse.listing")

DELIMITER = "/"

PAGE_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width,initial-scale=1.0">
<title>{title}</title>
<style>
*{{box-sizing:border-box;}}
body{{margin:0;padding:12px;font-family:system-ui,'Segoe UI',Roboto,Helvetica,Arial,sans-serif;}}
ul{{list-style:none;margin:0;padding:0;}}
a{{display:block;padding:5px 10px;border-radius:5px;color:#111;text-decoration:none;}}
a:hover{{background-color:#60c590;color:#fff;}}
a[href="../"]{{background-color:#cbd5e1;}}
</style>
</head>
<body>
<h1>{heading}</h1>
<ul>
{items}
</ul>
</body>
</html>
"""


async def list_all(
    store: ObjectStore, prefix: str, recursive: bool = False
) -> AsyncIterator[StoreObject]:
    """Yield every object under ``prefix``, following listing cursors.

    One store call is made per page, and only when the consumer asks for
    more entries than the pages fetched so far hold.
    """
    delimiter = None if recursive else DELIMITER
    cursor: str | None = None
    while True:
        page = await store.list(prefix, delimiter=delimiter, cursor=cursor)
        for obj in page.objects:
            yield obj
        if not page.truncated:
            break
        cursor = page.cursor


def listing_prefix(resource_path: str) -> str:
    return f"{resource_path}{DELIMITER}" if resource_path else ""


def _link(href: str, text: str) -> str:
    return f'<li><a href="{escape(href)}">{escape(text)}</a></li>'


async def render_listing(
    resource_path: str,
    objects: AsyncIterable[StoreObject],
    title: str,
) -> str:
    """Render the HTML index for ``resource_path`` from its listed objects.

    The whole page is built before returning, so a listing that fails part
    way through never produces a document.
    """
    prefix = listing_prefix(resource_path)
    items: list[str] = []
    if resource_path:
        items.append(_link("../", ".."))

    async for obj in objects:
        if obj.key == resource_path:
            continue
        href = f"/{quote(obj.key)}{DELIMITER if obj.is_collection else ''}"
        text = obj.http_metadata.content_disposition or obj.key[len(prefix) :]
        items.append(_link(href, text))

    LOG.debug("rendered listing for %r with %d links", resource_path, len(items))
    heading = f"{title} /{resource_path}" if resource_path else title
    return PAGE_TEMPLATE.format(
        title=escape(title), heading=escape(heading), items="\n".join(items)
    )
