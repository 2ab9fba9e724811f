# services/feed_parser.py
"""
XML product feed -> list of plain-dict entries.

The feed is expected to look like a Google Merchant / Atom feed:

    <feed xmlns:g="http://base.google.com/ns/1.0">
      <entry>
        <g:title>...</g:title>
        <g:price>19,99 EUR</g:price>
        ...
      </entry>
    </feed>

Namespaces are dropped, so <g:title> and <title> both come out as "title".
"""
import json
from typing import Any, Dict, List, Union

from lxml import etree

from services.errors import EmptyFeedError, FeedParseError, NoEntriesError

ATTR_PREFIX = "@_"
TEXT_KEY = "#text"

# no DTD/entity expansion, no network fetches
_PARSER_OPTS = dict(
    resolve_entities=False,
    no_network=True,
    load_dtd=False,
    huge_tree=False,
    remove_comments=True,
    remove_pis=True,
)


def _local(name: str) -> str:
    return etree.QName(name).localname


def _element_to_value(el) -> Any:
    """
    Leaf without attributes -> stripped text.
    Leaf with attributes    -> {"@_attr": ..., "#text": text}
    Element with children   -> dict of children; repeated tags become lists.
    """
    children = [c for c in el if isinstance(c.tag, str)]
    attrs = {ATTR_PREFIX + _local(k): v for k, v in el.attrib.items()}
    text = (el.text or "").strip()

    if not children and not attrs:
        return text

    node: Dict[str, Any] = dict(attrs)
    if text or not children:
        node[TEXT_KEY] = text

    for child in children:
        key = _local(child.tag)
        value = _element_to_value(child)
        if key in node:
            if not isinstance(node[key], list):
                node[key] = [node[key]]
            node[key].append(value)
        else:
            node[key] = value
    return node


def parse_feed(payload: Union[str, bytes]) -> List[Dict[str, Any]]:
    """
    Parse a feed document into a list of entry dicts.

    Raises EmptyFeedError / FeedParseError / NoEntriesError, all of which are
    client input errors.
    """
    if payload is None or not payload.strip():
        raise EmptyFeedError("Missing XML body")

    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    if isinstance(payload, str) and data.lstrip().startswith(b"<?xml"):
        # text already decoded by the transport; drop the declared encoding
        data = data.lstrip()
        data = data[data.index(b"?>") + 2:] if b"?>" in data else data

    try:
        root = etree.fromstring(data, parser=etree.XMLParser(**_PARSER_OPTS))
    except etree.XMLSyntaxError as e:
        raise FeedParseError(f"Invalid XML: {e}") from e

    if _local(root.tag) != "feed":
        raise NoEntriesError("No entries found in feed")

    entries = [
        _element_to_value(child)
        for child in root
        if isinstance(child.tag, str) and _local(child.tag) == "entry"
    ]
    if not entries:
        raise NoEntriesError("No entries found in feed")

    # an <entry/> with only text still behaves like an entry with no fields
    return [e if isinstance(e, dict) else {TEXT_KEY: e} for e in entries]


def node_text(value: Any) -> str:
    """Pull text out of whatever shape a field arrived in. Never raises."""
    if isinstance(value, list):
        value = value[0] if value else ""
    if isinstance(value, dict):
        for key in (TEXT_KEY, "_text", "_cdata"):
            if key in value:
                return str(value[key]).strip()
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(value)
    if value is None:
        return ""
    return str(value).strip()
