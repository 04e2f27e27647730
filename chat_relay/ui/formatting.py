"""HTML rendering for chat bubbles."""

import html


def bullets_to_html(text: str) -> str:
    """Render assistant text, turning ``-`` lines into list items.

    Every other line becomes a paragraph. All text is HTML-escaped.
    """
    parts: list[str] = []
    in_list = False
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped.startswith("-"):
            if not in_list:
                parts.append('<ul class="list-disc list-inside my-1 space-y-1">')
                in_list = True
            parts.append(f"<li>{html.escape(stripped[1:].strip())}</li>")
            continue
        if in_list:
            parts.append("</ul>")
            in_list = False
        if stripped:
            parts.append(f"<p>{html.escape(line)}</p>")
    if in_list:
        parts.append("</ul>")
    return "".join(parts)


def plain_to_html(text: str) -> str:
    """Escape text and keep its line breaks."""
    return html.escape(text).replace("\n", "<br>")
