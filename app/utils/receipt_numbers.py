import enum
import re
from itertools import count
from typing import Iterable, Iterator, Optional, Tuple


class ReceiptStream(str, enum.Enum):
    BOLI = "boli"
    OUTSTANDING = "outstanding"


# Both streams share one visible sequence per year. Each 300-wide period is
# split into a 200-wide boli block followed by a 100-wide outstanding block.
BLOCK_PERIOD = 300

_BLOCK_LAYOUT = {
    ReceiptStream.BOLI: (1, 200),
    ReceiptStream.OUTSTANDING: (201, 300),
}

NUMBER_WIDTH = 5


def iter_blocks(stream: ReceiptStream) -> Iterator[Tuple[int, int]]:
    """
    Yields the inclusive (start, end) ranges owned by ``stream``, forever.

      BOLI        -> (1, 200), (301, 500), (601, 800), (901, 1100), ...
      OUTSTANDING -> (201, 300), (501, 600), (801, 900), (1101, 1200), ...
    """
    first, last = _BLOCK_LAYOUT[ReceiptStream(stream)]
    for k in count():
        offset = k * BLOCK_PERIOD
        yield first + offset, last + offset


def block_index(stream: ReceiptStream, number: int) -> Optional[int]:
    """Index of the block of ``stream`` holding ``number``, or None if it is not one of ours."""
    if number < 1:
        return None
    first, last = _BLOCK_LAYOUT[ReceiptStream(stream)]
    k, pos = divmod(number - 1, BLOCK_PERIOD)
    pos += 1
    return k if first <= pos <= last else None


def stream_of(number: int) -> Optional[ReceiptStream]:
    for stream in ReceiptStream:
        if block_index(stream, number) is not None:
            return stream
    return None


def next_number(stream: ReceiptStream, used: Iterable[int]) -> int:
    """First integer inside ``stream``'s blocks that is not in ``used``."""
    used = used if isinstance(used, (set, frozenset)) else set(used)
    for start, end in iter_blocks(stream):
        for n in range(start, end + 1):
            if n not in used:
                return n
    raise AssertionError("unreachable")  # iter_blocks never ends


# ---------------------
# Formatting
# ---------------------
def format_receipt_no(prefix: str, year: int, number: int) -> str:
    return f"{prefix}-{int(year):04d}-{int(number):0{NUMBER_WIDTH}d}"


def receipt_pattern(prefix: str) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(prefix)}-(\d{{4}})-(\d{{{NUMBER_WIDTH}}})$")


def parse_receipt_no(prefix: str, receipt_no: Optional[str]) -> Optional[Tuple[int, int]]:
    """(year, number) for a well-formed receipt number of this deployment, else None."""
    if not receipt_no:
        return None
    m = receipt_pattern(prefix).match(receipt_no.strip())
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


def fallback_suffix(epoch_ms: int) -> int:
    """Time-derived pseudo-unique number used when the used-set scan is unavailable."""
    return int(str(int(epoch_ms))[-NUMBER_WIDTH:])
