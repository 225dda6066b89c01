import re
import functools
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from marko import Markdown, block
from marko.element import Element
from marko.ext.gfm import elements, renderer
from marko.helpers import MarkoExtension, render_dispatch
from marko.html_renderer import HTMLRenderer

from .value_objs import LintIssue, LintLevel, Section, SectionKind

_md = None


def heading_anchor(text: str) -> str:
    """The id given to a heading, so that it can be linked to."""
    anchor = re.sub(r"[^\w\s-]", "", text.lower()).strip()
    return re.sub(r"[\s-]+", "-", anchor)


def plain_text(element) -> str:
    """The text inside an element, with the markup stripped."""
    children = getattr(element, "children", "")
    if isinstance(children, str):
        return children
    return "".join(plain_text(child) for child in children)


class AnchoredHeadingRendererMixin:
    @render_dispatch(HTMLRenderer)  # type: ignore
    def render_heading(self, element) -> str:
        """Headings get an id so that sections can be linked to"""
        anchor = heading_anchor(plain_text(element))
        children = self.render_children(element)  # type: ignore
        return f'<h{element.level} id="{anchor}">{children}</h{element.level}>\n'

    @render_dispatch(HTMLRenderer)  # type: ignore
    def render_setext_heading(self, element) -> str:
        return self.render_heading(element)


AnchoredHeadings = MarkoExtension(renderer_mixins=[AnchoredHeadingRendererMixin])


class BootstrapRendererMixin(renderer.GFMRendererMixin):
    """Renderer that mainly inherits the original rendering code except
    altering as necessary for Bootstrap."""

    @render_dispatch(HTMLRenderer)
    def render_table(self, element):
        head, *body = element.children
        theader = "<thead>\n{}</thead>".format(self.render(head))  # type: ignore
        tbody = ""
        if body:
            tbody = "\n<tbody>\n{}</tbody>".format(
                "".join(self.render(row) for row in body)  # type: ignore
            )
        return f'<table class="table">\n{theader}{tbody}</table>'

    @render_dispatch(HTMLRenderer)
    def render_quote(self, element):
        return '<blockquote class="blockquote">\n{}</blockquote>\n'.format(
            self.render_children(element)  # type: ignore
        )


BootstrapGFM = MarkoExtension(
    elements=[
        elements.Paragraph,
        elements.Strikethrough,
        elements.Url,
        elements.Table,
        elements.TableRow,
        elements.TableCell,
    ],
    renderer_mixins=[BootstrapRendererMixin],
)


def get_markdown() -> Markdown:
    global _md
    if _md is None:
        _md = Markdown(extensions=["codehilite", BootstrapGFM, AnchoredHeadings])
    return _md


@functools.lru_cache
def render_markdown(md_str: str) -> str:
    return get_markdown().convert(md_str)


SECTION_KIND_MAP = {
    block.Heading: SectionKind.HEADING,
    block.SetextHeading: SectionKind.HEADING,
    block.Paragraph: SectionKind.PARAGRAPH,
    block.FencedCode: SectionKind.CODE_BLOCK,
    block.CodeBlock: SectionKind.CODE_BLOCK,
    block.List: SectionKind.LIST,
    block.Quote: SectionKind.QUOTE,
    block.ThematicBreak: SectionKind.THEMATIC_BREAK,
    block.HTMLBlock: SectionKind.HTML,
}


def _section_kind(element: Element) -> Optional[SectionKind]:
    # gfm subclasses the commonmark elements (eg: for paragraphs)
    for element_cls in type(element).__mro__:
        if element_cls in SECTION_KIND_MAP:
            return SECTION_KIND_MAP[element_cls]
    return None


def _block_text(element: Element) -> str:
    if isinstance(element, block.List):
        return "\n".join(plain_text(item).strip() for item in element.children)
    return plain_text(element).strip()


def extract_sections(md_str: str) -> Sequence[Section]:
    """Break a markdown document into its top-level blocks, in order.

    Blank lines and link reference definitions aren't sections.

    """
    document = get_markdown().parse(md_str)
    sections = []
    for element in document.children:
        kind = _section_kind(element)  # type: ignore
        if kind is None:
            continue
        level = None
        language = None
        if kind is SectionKind.HEADING:
            level = element.level  # type: ignore
        elif kind is SectionKind.CODE_BLOCK:
            language = getattr(element, "lang", "") or None
        sections.append(
            Section(kind, _block_text(element), level=level, language=language)  # type: ignore
        )
    return sections


def table_of_contents(md_str: str) -> List[Tuple[int, str, str]]:
    """(level, text, anchor) for each heading in the document."""
    return [
        (section.level or 1, section.text, heading_anchor(section.text))
        for section in extract_sections(md_str)
        if section.kind is SectionKind.HEADING
    ]


FENCE_REGEX = re.compile(r"^ {0,3}(`{3,}|~{3,})")

# "[text](" with no closing paren on the same line
UNCLOSED_LINK_REGEX = re.compile(r"(?<!!)\[[^\]\n]+\]\([^)\n]*$")

EMPTY_LINK_REGEX = re.compile(r"\[[^\]\n]+\]\(\s*\)")

# "[text] (http://...)" - renders as literal text rather than a link
SPACED_LINK_REGEX = re.compile(r"\[[^\]\n]+\][ \t]+\((?:https?://|/)[^)\s]*\)")


def lint_markdown(md_str: str, path: Path, line_offset: int = 0) -> List[LintIssue]:
    """Find markdown that will render badly.

    None of this is fatal - the renderer does something - but what it does is
    rarely what was meant.

    """
    issues = []
    open_fence: Optional[Tuple[int, str]] = None
    for line_number, line in enumerate(md_str.splitlines(), start=1 + line_offset):
        fence_match = FENCE_REGEX.match(line)
        if open_fence is not None:
            _, fence = open_fence
            if (
                fence_match is not None
                and fence_match.group(1)[0] == fence[0]
                and len(fence_match.group(1)) >= len(fence)
                and line.strip() == fence_match.group(1)
            ):
                open_fence = None
            continue
        if fence_match is not None:
            open_fence = (line_number, fence_match.group(1))
            continue

        if UNCLOSED_LINK_REGEX.search(line):
            issues.append(
                LintIssue(path, None, line_number, "link is never closed with ')'")
            )
        if EMPTY_LINK_REGEX.search(line):
            issues.append(LintIssue(path, None, line_number, "link has no target"))
        if SPACED_LINK_REGEX.search(line):
            issues.append(
                LintIssue(
                    path,
                    None,
                    line_number,
                    "space between ']' and '(' means this is not a link",
                )
            )

    if open_fence is not None:
        issues.append(
            LintIssue(
                path,
                None,
                open_fence[0],
                f"code fence '{open_fence[1]}' is never closed",
                LintLevel.WARNING,
            )
        )
    return issues
