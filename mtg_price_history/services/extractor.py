"""Single-pass extraction of monthly prices from AllPrices.json.

AllPrices.json looks like:

    {"meta": {...}, "data": {"<uuid>": {"paper": {"tcgplayer": {"retail":
        {"normal": {"2025-01-15": 1.23, ...}, "foil": {...}}}, ...}}}}

The file is 1GB+, so it is never loaded whole: ijson yields one
(uuid, price blob) pair of the "data" object at a time.
"""

import gc
import gzip
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import ijson
from dateutil.relativedelta import relativedelta

from mtg_price_history.config import GC_INTERVAL, READ_BUFFER_SIZE
from mtg_price_history.errors import StreamParseError
from mtg_price_history.services.progress import CoverageStats, ProgressReporter, RunState

log = logging.getLogger(__name__)

MONTHS_COLLECTED = 6

# Probe order per date; the first path with an accepted price wins.
PRICE_PATHS: List[Tuple[str, str, str, str]] = [
    ("paper", "tcgplayer", "retail", "normal"),
    ("paper", "tcgplayer", "retail", "foil"),
    ("paper", "cardkingdom", "retail", "normal"),
    ("paper", "cardkingdom", "retail", "foil"),
]

_CENT = Decimal("0.01")


def target_dates(today: Optional[date] = None, months: int = MONTHS_COLLECTED) -> List[str]:
    """Same day-of-month for each of the last `months` months, newest first.

    Short months clamp to their last day (Mar 31 -> Feb 28).
    """
    today = today or date.today()
    return [(today - relativedelta(months=i)).isoformat() for i in range(months)]


def _path_accessor(channel: str, vendor: str, listing: str, variant: str) -> Callable[[Any, str], Any]:
    def accessor(blob, day):
        node = blob
        for key in (channel, vendor, listing, variant, day):
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node
    return accessor


PRICE_ACCESSORS: List[Tuple[str, Callable[[Any, str], Any]]] = [
    ("/".join(path[1:]), _path_accessor(*path)) for path in PRICE_PATHS
]


def coerce_price(value) -> Optional[Decimal]:
    """Return value as a Decimal if it is a finite number > 0, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return None
    try:
        price = value if isinstance(value, Decimal) else Decimal(repr(value))
    except InvalidOperation:
        return None
    if not price.is_finite() or price <= 0:
        return None
    # Must survive the float conversion in round_price (1e400 would become inf)
    if not math.isfinite(float(price)):
        return None
    return price


def round_price(value) -> float:
    """Round half-up to cents on the number's decimal text (12.345 -> 12.35)."""
    price = value if isinstance(value, Decimal) else Decimal(repr(value))
    # Default precision (28 digits) can't hold cents for huge values like 1e30
    context = Context(prec=max(28, price.adjusted() + 4))
    return float(price.quantize(_CENT, rounding=ROUND_HALF_UP, context=context))


def find_price(blob, day: str) -> Optional[Tuple[str, float]]:
    """Return (path label, rounded price) for the best source on `day`."""
    for label, accessor in PRICE_ACCESSORS:
        price = coerce_price(accessor(blob, day))
        if price is not None:
            return label, round_price(price)
    return None


@dataclass
class CardPrices:
    """Extracted prices for one card; only dates with a valid price."""
    id: str
    prices: Dict[str, float]

    def to_dict(self) -> dict:
        return {"id": self.id, "prices": dict(self.prices)}


@dataclass
class ExtractionResult:
    cards: List[CardPrices]
    coverage: List[CoverageStats]
    processed: int
    stopped_early: bool = False
    matched_paths: Dict[str, int] = field(default_factory=dict)


def _open_source(path: Path):
    if path.suffix == ".gz":
        return gzip.open(path, "rb")
    return open(path, "rb")


def iter_price_records(path: Path, buf_size: int = READ_BUFFER_SIZE) -> Iterator[Tuple[str, Any]]:
    """Yield (card uuid, price blob) for each entry of the top-level "data" object.

    Numbers come back as Decimal. Malformed JSON raises StreamParseError.
    """
    path = Path(path)
    count = 0
    try:
        source = _open_source(path)
    except OSError as e:
        raise StreamParseError(str(path), f"cannot open source file: {e}") from e

    with source as f:
        records = ijson.kvitems(f, "data", buf_size=buf_size)
        while True:
            try:
                key, value = next(records)
            except StopIteration:
                return
            except (ijson.JSONError, ValueError, EOFError, OSError) as e:
                raise StreamParseError(str(path), str(e), processed=count) from e
            count += 1
            yield key, value


def extract_prices(
    path: Path,
    dates: List[str],
    state: RunState,
    limit: Optional[int] = None,
    reporter: Optional[ProgressReporter] = None,
    diagnostics=None,
    buf_size: int = READ_BUFFER_SIZE,
) -> ExtractionResult:
    """Stream the source file once and collect monthly prices per card.

    Records without any price on the target dates are dropped. With `limit`
    set, stops cleanly after that many records (none at all for limit <= 0).
    """
    cards: List[CardPrices] = []
    matched_paths: Dict[str, int] = {}
    stopped_early = False

    for uuid, blob in iter_price_records(path, buf_size=buf_size):
        if limit is not None and state.processed >= limit:
            log.info("Reached record limit of %d, stopping", limit)
            stopped_early = True
            break

        state.processed += 1

        prices: Dict[str, float] = {}
        matches: Dict[str, str] = {}
        for day in dates:
            stats = state.coverage[day]
            stats.total += 1
            hit = find_price(blob, day) if isinstance(blob, dict) else None
            if hit is None:
                continue
            label, price = hit
            prices[day] = price
            matches[day] = label
            stats.found += 1
            matched_paths[label] = matched_paths.get(label, 0) + 1

        if prices:
            cards.append(CardPrices(id=uuid, prices=prices))
            state.valid += 1

        if diagnostics is not None:
            diagnostics.record(state.processed, uuid, blob, prices, matches)

        if reporter is not None:
            reporter.tick()

        if state.processed % GC_INTERVAL == 0:
            gc.collect()

    return ExtractionResult(
        cards=cards,
        coverage=state.coverage_list(),
        processed=state.processed,
        stopped_early=stopped_early,
        matched_paths=matched_paths,
    )
