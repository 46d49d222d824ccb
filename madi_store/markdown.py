"""
The markdown subset the chat assistant is asked to answer in.

Supported syntax, one construct per line:

    ### Heading          level-3 heading
    * item               bullet; consecutive bullets form one list
    **Product name**     bold span, anywhere inline

Every other line is plain text, and consecutive text lines are separated by
``<br>``. Raw text is HTML-escaped before it is parsed, so nothing in the
model's answer can produce markup other than what the renderer emits.
"""
import html
import re
from dataclasses import dataclass, field
from typing import List, Union

HEADING_PREFIX = "### "
BULLET_PREFIX = "* "

_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")

@dataclass
class Text:
    value: str

@dataclass
class Bold:
    value: str

Inline = Union[Text, Bold]

@dataclass
class Heading:
    children: List[Inline]

@dataclass
class BulletList:
    items: List[List[Inline]] = field(default_factory=list)

@dataclass
class Line:
    children: List[Inline]

Block = Union[Heading, BulletList, Line]

@dataclass
class Document:
    blocks: List[Block] = field(default_factory=list)

def parse_inline(text: str) -> List[Inline]:
    children: List[Inline] = []
    position = 0
    for match in _BOLD_RE.finditer(text):
        if match.start() > position:
            children.append(Text(text[position:match.start()]))
        children.append(Bold(match.group(1)))
        position = match.end()
    if position < len(text):
        children.append(Text(text[position:]))
    return children

def parse(escaped_text: str) -> Document:
    """Builds a document tree from text that has already been HTML-escaped."""
    document = Document()
    for raw_line in escaped_text.split("\n"):
        if raw_line.startswith(HEADING_PREFIX):
            document.blocks.append(Heading(parse_inline(raw_line[len(HEADING_PREFIX):])))
        elif raw_line.startswith(BULLET_PREFIX):
            item = parse_inline(raw_line[len(BULLET_PREFIX):])
            if document.blocks and isinstance(document.blocks[-1], BulletList):
                document.blocks[-1].items.append(item)
            else:
                document.blocks.append(BulletList(items=[item]))
        else:
            document.blocks.append(Line(parse_inline(raw_line)))
    return document

def _render_inline(children: List[Inline]) -> str:
    parts = []
    for child in children:
        if isinstance(child, Bold):
            parts.append(f'<strong class="product-link" role="button" tabindex="0">{child.value}</strong>')
        else:
            parts.append(child.value)
    return "".join(parts)

def render_html(document: Document) -> str:
    parts = []
    previous = None
    for block in document.blocks:
        if isinstance(block, Heading):
            parts.append(f"<h3>{_render_inline(block.children)}</h3>")
        elif isinstance(block, BulletList):
            items = "".join(f"<li>{_render_inline(item)}</li>" for item in block.items)
            parts.append(f"<ul>{items}</ul>")
        else:
            if isinstance(previous, Line):
                parts.append("<br>")
            parts.append(_render_inline(block.children))
        previous = block
    return "".join(parts)

def format_ai_response(text: str) -> str:
    """Escapes, parses and renders an assistant answer."""
    return render_html(parse(html.escape(text, quote=False)))
