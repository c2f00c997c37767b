# tisasm/tis_listing.py
import re
import logging

logger = logging.getLogger(__name__)

WORD_LINE_RE = re.compile(r'^\s*(\d+)\s*:\s*(\S+)\s*$')


def format_listing(nodes):
    """
    Renders assembled nodes as text: the node header, one '<index>: <binary>' line
    per word, then a blank line before the next node.
    """
    lines = []
    for node in nodes:
        lines.append(node["header"])
        for word in node["words"]:
            lines.append(f"{word['index']}: {word['bin']}")
        lines.append("")
    return "\n".join(lines) + ("\n" if lines else "")


def write_listing(path, nodes):
    """Writes the listing for assembled nodes to a file."""
    text = format_listing(nodes)
    with open(path, "w") as fh:
        fh.write(text)
    logger.debug(f"Wrote listing for {len(nodes)} node(s) to {path}")


def parse_listing(text):
    """
    Reads a listing back into [{"header": str, "words": [binary str, ...]}].
    Any non-blank line that is not '<index>: <word>' starts a new node.
    """
    nodes = []
    current = None
    for line in text.splitlines():
        if not line.strip():
            continue
        match = WORD_LINE_RE.match(line)
        if match and current is not None:
            current["words"].append(match.group(2))
        else:
            current = {"header": line.strip(), "words": []}
            nodes.append(current)
    return nodes


def format_error(error):
    """Location-qualified message for one assembler error: 'Error at (x,y), line N: message'."""
    if error.get("node") is None:
        return f"Error: {error['message']}"
    if error.get("line") is None:
        return f"Error at {error['node']}: {error['message']}"
    return f"Error at {error['node']}, line {error['line']}: {error['message']}"
