import re
from markupsafe import Markup, escape

from schemas.dto import (
    Span, ListItem, NumberedStep, Paragraph,
    TitleBlock, SectionBlock, ContentBlock,
)

BULLETS = ("-", "•")
NUMBERED = re.compile(r"^\d+\.")
BOLD = re.compile(r"(\*\*.*?\*\*)")


def format_bold(text: str) -> list[Span]:
    spans = []
    for part in BOLD.split(text):
        if len(part) >= 4 and part.startswith("**") and part.endswith("**"):
            spans.append(Span(text=part[2:-2], bold=True))
        elif part:
            spans.append(Span(text=part))
    return spans


def format_lines(content: str):
    lines = []
    for line in content.split("\n"):
        if not line.strip():
            continue
        if line.startswith(BULLETS):
            lines.append(ListItem(spans=format_bold(line[1:].strip())))
        elif NUMBERED.match(line):
            lines.append(NumberedStep(spans=format_bold(line.strip())))
        else:
            lines.append(Paragraph(spans=format_bold(line.strip())))
    return lines


def format_recipe(text: str | None):
    """
    Turn the model's recipe text into a list of render blocks.

    Never raises: text that ignores the heading / label / bullet layout
    still comes back as plain content blocks.
    """
    text = (text or "").replace("\r\n", "\n")
    blocks = []
    for section in text.split("\n\n"):
        if section.startswith("##"):
            blocks.append(TitleBlock(text=section.replace("##", "", 1).strip()))
        elif section.startswith("**"):
            label, _, rest = section.partition(":")
            rest = rest.strip()
            # "**Label:**" leaves the closing marker on the remainder
            if label.count("**") == 1 and rest.startswith("**"):
                rest = rest[2:].strip()
            blocks.append(SectionBlock(
                label=label.replace("**", "").strip(),
                lines=format_lines(rest),
            ))
        else:
            blocks.append(ContentBlock(lines=format_lines(section)))
    return blocks


def _spans_html(spans) -> Markup:
    out = Markup("")
    for s in spans:
        out += Markup("<strong>%s</strong>") % s.text if s.bold else escape(s.text)
    return out


def _lines_html(lines) -> Markup:
    out = []
    in_list = False
    for line in lines:
        if line.kind == "list_item":
            if not in_list:
                out.append(Markup("<ul>"))
                in_list = True
            out.append(Markup("<li>%s</li>") % _spans_html(line.spans))
            continue
        if in_list:
            out.append(Markup("</ul>"))
            in_list = False
        css = "step" if line.kind == "numbered_step" else "text"
        out.append(Markup('<p class="%s">%s</p>') % (css, _spans_html(line.spans)))
    if in_list:
        out.append(Markup("</ul>"))
    return Markup("").join(out)


def render_html(blocks) -> Markup:
    """Render format_recipe() output as escaped HTML."""
    out = []
    for b in blocks:
        if b.kind == "title":
            out.append(Markup("<h2>%s</h2>") % b.text)
        elif b.kind == "section":
            out.append(Markup('<div class="section"><h3>%s:</h3>%s</div>') % (b.label, _lines_html(b.lines)))
        else:
            out.append(Markup('<div class="content">%s</div>') % _lines_html(b.lines))
    return Markup("\n").join(out)
