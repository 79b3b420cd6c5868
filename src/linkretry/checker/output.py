"""Reading markdown-link-check output."""

import re

# markdown-link-check marks each dead link with a cross:
#   [✖] https://example.com/missing → Status: 404
DEAD_LINK = re.compile(r"^\s*\[✖\]\s+(?P<link>\S+)(?:\s+→\s+(?P<detail>.*))?$")


def parse_dead_links(output: str) -> list[str]:
    """Return the dead links reported in checker output, with their
    status detail when the checker gave one.

    Output from other checkers yields an empty list.
    """
    links = []
    for line in output.splitlines():
        match = DEAD_LINK.match(line)
        if not match:
            continue
        detail = match.group("detail")
        link = match.group("link")
        links.append(f"{link} ({detail.strip()})" if detail else link)
    return links
