import html
import re

BULLET_RE = re.compile(r"^[-*•]\s+(.+)$")

LIST_OPEN = '<ul class="list-disc list-inside space-y-1 my-2">'


def _escape(text: str) -> str:
    return html.escape(text, quote=False)


def format_note_content(content: str) -> str:
    """
    Render plain note text as HTML.

    Lines starting with -, * or • become list items; consecutive bullets
    share one <ul>. Other lines become paragraphs and blank lines <br/>.
    """
    if not content:
        return ""

    parts = []
    in_list = False

    for line in content.split("\n"):
        trimmed = line.strip()
        bullet = BULLET_RE.match(trimmed)

        if bullet:
            if not in_list:
                parts.append(LIST_OPEN)
                in_list = True
            parts.append(f'<li class="ml-2">{_escape(bullet.group(1))}</li>')
            continue

        if in_list:
            parts.append("</ul>")
            in_list = False

        if trimmed:
            parts.append(f'<p class="my-1">{_escape(line)}</p>')
        else:
            parts.append("<br/>")

    if in_list:
        parts.append("</ul>")

    return "".join(parts)
