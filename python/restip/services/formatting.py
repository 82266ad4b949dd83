"""Display formatting for message bodies.

Message bodies are stored as the author typed them: plain text with the
host system's lightweight markup, possibly mixed with some HTML. Before a
body leaves the API it is turned into safe display HTML:

- HTML is parsed with lxml and reduced to an allowlist of tags; script-like
  elements are removed with their content, other tags are unwrapped
- ``**bold**``, ``%%italic%%``, ``__underline__`` and ``##monospace##``
  become <strong>, <em>, <u> and <code>
- bare http(s) URLs become links
- newlines become <br>

Control characters the parser cannot take are dropped first.

Formatting is idempotent: the output is already in the normalized form the
parser produces, and contains no markup markers or unlinked URLs, so
formatting it again changes nothing.
"""

import re
from html import escape

from lxml.etree import ParserError
from lxml.html import HtmlElement, fragment_fromstring, tostring

from restip.formats import xml_safe

ALLOWED_TAGS = frozenset(
    {
        "p",
        "br",
        "strong",
        "em",
        "b",
        "i",
        "u",
        "s",
        "sub",
        "sup",
        "code",
        "pre",
        "blockquote",
        "ul",
        "ol",
        "li",
        "hr",
        "a",
    }
)

# Removed together with their content
REMOVED_TAGS = frozenset(
    {"script", "style", "iframe", "object", "embed", "form", "meta", "link", "base", "svg"}
)

# Characters the HTML serializer leaves untouched in href values
SAFE_URL_CHARS = r"A-Za-z0-9\-._~:/?#@&=+,;%"
SAFE_HREF_RE = re.compile(rf"^(?:https?://|mailto:)[{SAFE_URL_CHARS}]+$", re.IGNORECASE)

# Bare URLs in escaped text; stops before an escaped angle bracket
URL_RE = re.compile(rf"https?://(?:(?!&[lg]t;)[{SAFE_URL_CHARS}])+")

# Markers never span tags or lines, so output nesting stays well-formed
MARKUP_RULES = [
    (re.compile(r"\*\*([^<>\n]+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"%%([^<>\n]+?)%%"), r"<em>\1</em>"),
    (re.compile(r"__([^<>\n]+?)__"), r"<u>\1</u>"),
    (re.compile(r"##([^<>\n]+?)##"), r"<code>\1</code>"),
]

TAG_SPLIT_RE = re.compile(r"(<[^>]*>)")
TAG_NAME_RE = re.compile(r"^<(/?)([A-Za-z0-9]+)")

# Text inside these is left alone by the markup pass
VERBATIM_TAGS = ("a", "pre")


def format_ready(body: str | None) -> str:
    """Turn a stored message body into display HTML.

    Args:
        body: The raw body as stored, or already formatted output.

    Returns:
        Sanitized HTML with markup rendered. Empty string for empty input.
    """
    if not body:
        return ""

    body = xml_safe(body.replace("\r\n", "\n").replace("\r", "\n"))
    if not body.strip():
        return ""

    try:
        root = fragment_fromstring(body, create_parent="div")
    except ParserError:
        return _render_markup(escape(body, quote=False))

    _sanitize(root)
    return _render_markup(_inner_html(root))


def _sanitize(root: HtmlElement) -> None:
    """Reduce the tree below root to allowed tags and attributes."""
    for element in list(root.iterdescendants()):
        if not isinstance(element.tag, str):
            # Comments and processing instructions
            element.drop_tree()
            continue

        tag = element.tag.lower()
        if tag in REMOVED_TAGS:
            element.drop_tree()
        elif tag not in ALLOWED_TAGS:
            element.drop_tag()
        else:
            _sanitize_attributes(element, tag)


def _sanitize_attributes(element: HtmlElement, tag: str) -> None:
    href = element.get("href") if tag == "a" else None

    for attr in list(element.attrib):
        del element.attrib[attr]

    if href and SAFE_HREF_RE.match(href.strip()):
        element.set("href", href.strip())


def _inner_html(root: HtmlElement) -> str:
    html = escape(root.text or "", quote=False)
    for child in root:
        html += tostring(child, encoding="unicode", method="html")
    return html


def _render_markup(html: str) -> str:
    """Apply markup, links and line breaks to the text between tags."""
    depth = dict.fromkeys(VERBATIM_TAGS, 0)
    parts = []

    for token in TAG_SPLIT_RE.split(html):
        if not token:
            continue

        if token.startswith("<"):
            match = TAG_NAME_RE.match(token)
            if match and match.group(2).lower() in depth:
                name = match.group(2).lower()
                depth[name] = max(depth[name] + (-1 if match.group(1) else 1), 0)
            parts.append(token)
        elif any(depth.values()):
            parts.append(token)
        else:
            parts.append(_render_text(token))

    return "".join(parts)


def _render_text(text: str) -> str:
    """Render one run of escaped text that sits outside links and <pre>."""
    rendered = []
    position = 0

    for match in URL_RE.finditer(text):
        rendered.append(_render_plain(text[position : match.start()]))
        url = match.group(0)
        rendered.append(f'<a href="{url}">{url}</a>')
        position = match.end()

    rendered.append(_render_plain(text[position:]))
    return "".join(rendered)


def _render_plain(text: str) -> str:
    for pattern, replacement in MARKUP_RULES:
        text = pattern.sub(replacement, text)
    return text.replace("\n", "<br>")
