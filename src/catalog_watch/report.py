from .diff import ADDED, CHANGED, REMOVED, ChangeSet

# Discord rejects message content longer than this.
DEFAULT_LIMIT = 2000

MARKERS = {ADDED: "+", REMOVED: "-", CHANGED: "~"}


def _variant_text(v):
    text = f"{v.price}, {v.duration}"
    if v.description:
        text += f" [{v.description}]"
    return text


def _entry_line(e):
    items = "; ".join(_variant_text(v) for v in e.items)
    return f"- {e.family} : {e.label} ({items})"


def render_lines(changes, previous_id, current_id):
    if changes.is_empty():
        return [f"No changes detected between {previous_id} and {current_id}"]

    lines = [f"**Changes detected** between {previous_id} and {current_id}:"]

    if changes.removed_entries:
        lines += ["", "**Deletions**:"]
        lines += [_entry_line(e) for e in changes.removed_entries]

    if changes.added_entries:
        lines += ["", "**Additions**:"]
        lines += [_entry_line(e) for e in changes.added_entries]

    if changes.modified:
        lines += ["", "**Modifications**:"]
        for m in changes.modified:
            lines.append(f"- {m.key.family} : {m.key.label}")
            for c in m.changes:
                if c.kind == CHANGED:
                    body = f"{_variant_text(c.before)} -> {_variant_text(c.after)}"
                else:
                    body = _variant_text(c.after if c.kind == ADDED else c.before)
                lines.append(f"  {MARKERS[c.kind]} {body}")

    return lines


def chunk_lines(lines, limit=DEFAULT_LIMIT):
    """
    Pack lines into segments of at most `limit` characters, splitting only
    between lines. A line longer than `limit` is yielded whole, alone.
    "\\n".join() over the segments gives back "\\n".join(lines).
    """
    buf = []
    size = 0
    for line in lines:
        extra = len(line) + (1 if buf else 0)
        if buf and size + extra > limit:
            yield "\n".join(buf)
            buf, size = [], 0
            extra = len(line)
        buf.append(line)
        size += extra
    if buf:
        yield "\n".join(buf)


class Report:
    """Rendered change report; iterating it yields webhook-sized segments."""

    def __init__(self, lines, limit=DEFAULT_LIMIT):
        self.lines = list(lines)
        self.limit = limit

    @property
    def text(self):
        return "\n".join(self.lines)

    def __iter__(self):
        return chunk_lines(self.lines, self.limit)

    def __str__(self):
        return self.text


def format_report(changes: ChangeSet, previous_id, current_id, limit: int = DEFAULT_LIMIT) -> Report:
    return Report(render_lines(changes, previous_id, current_id), limit=limit)


def build_summary(changes):
    counts = {
        "entries_added": len(changes.added_entries),
        "entries_removed": len(changes.removed_entries),
        "entries_modified": len(changes.modified),
        "variants_added": 0,
        "variants_removed": 0,
        "variants_changed": 0,
    }
    for m in changes.modified:
        for c in m.changes:
            counts[f"variants_{c.kind}"] += 1
    return counts
