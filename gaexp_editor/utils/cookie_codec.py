"""
Codec for the Google Optimize `_gaexp` cookie value.

A cookie value looks like `GAX1.2.<segment>!<segment>...` where every segment
is `id.expiry.flow_id`. Decoding is tolerant: anything that does not look like
a segment is skipped, so `encode(decode(x))` is a structural round trip and
not a byte-exact one.
"""
import re
from typing import Iterable, List, Tuple, Union

COOKIE_NAME = "_gaexp"

# Format/version prefix written on every encode
FORMAT_PREFIX = "GAX1.2."

SEGMENT_SEPARATOR = "!"
FIELD_SEPARATOR = "."

_PREFIX_RE = re.compile(r"^GAX\d+\.\d+\.")
_ID_RE = re.compile(r"[A-Za-z0-9-]+")
_NUMBER_RE = re.compile(r"[0-9]+")

Record = Tuple[str, int, int]


def is_valid_id(value: str) -> bool:
    """Check whether a value is a usable experiment id."""
    return bool(value) and _ID_RE.fullmatch(value) is not None


def parse_segment(segment: str):
    """Parse a single `id.expiry.flow_id` segment, returning None when malformed."""
    parts = segment.split(FIELD_SEPARATOR)
    if len(parts) != 3:
        return None

    exp_id, expiry, flow_id = parts
    if not is_valid_id(exp_id):
        return None
    if not _NUMBER_RE.fullmatch(expiry) or not _NUMBER_RE.fullmatch(flow_id):
        return None

    return exp_id, int(expiry), int(flow_id)


def decode(raw: str) -> List[Record]:
    """Decode a cookie value into `(id, expiry, flow_id)` tuples in order of appearance."""
    if not raw:
        return []

    body = _PREFIX_RE.sub("", raw.strip(), count=1)

    records = []
    for segment in body.split(SEGMENT_SEPARATOR):
        record = parse_segment(segment.strip())
        if record is not None:
            records.append(record)
    return records


def _as_record(item) -> Record:
    if isinstance(item, tuple):
        return item
    return item.id, item.expiry, item.flow_id


def encode(records: Iterable[Union[Record, object]], prefix: str = FORMAT_PREFIX) -> str:
    """Encode records back into a cookie value. Records with an empty id are left out."""
    segments = []
    for item in records:
        exp_id, expiry, flow_id = _as_record(item)
        if not exp_id:
            continue
        segments.append(FIELD_SEPARATOR.join([exp_id, str(expiry), str(flow_id)]))
    return prefix + SEGMENT_SEPARATOR.join(segments)
