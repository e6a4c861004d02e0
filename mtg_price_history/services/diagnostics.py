"""Per-record diagnostics for debug runs.

Debug mode is the normal extractor with a small record cap; this collects
what an operator needs to sanity-check the extraction before a full run.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from mtg_price_history.services.progress import CoverageStats
from mtg_price_history.utils import format_box

log = logging.getLogger(__name__)

# (label, exclusive upper bound) on a card's average price
PRICE_BUCKETS = [
    ("Under $1", 1),
    ("$1-$10", 10),
    ("$10-$100", 100),
    ("Over $100", None),
]

SAMPLE_SIZE = 5


def price_bucket(avg_price: float) -> str:
    for label, upper in PRICE_BUCKETS:
        if upper is None or avg_price < upper:
            return label
    return PRICE_BUCKETS[-1][0]


@dataclass
class CardSample:
    id_prefix: str
    avg_price: float = 0.0
    price_count: int = 0


@dataclass
class DebugStats:
    dates: List[str]
    histogram: Dict[str, int] = field(default_factory=lambda: {label: 0 for label, _ in PRICE_BUCKETS})
    with_prices: List[CardSample] = field(default_factory=list)
    without_prices: List[CardSample] = field(default_factory=list)

    def record(self, index: int, uuid: str, blob, prices: Dict[str, float], matches: Dict[str, str]):
        prefix = uuid[:8] + "..."
        if isinstance(blob, dict):
            log.debug("[%d] UUID: %s | Price sources: %s", index, prefix, ", ".join(blob.keys()) or "-")
        else:
            log.debug("[%d] UUID: %s | No price data structure found", index, prefix)

        if not prices:
            log.debug("[%d] UUID: %s - No price data for any target month", index, prefix)
            self.without_prices.append(CardSample(id_prefix=prefix))
            return

        values = list(prices.values())
        avg = sum(values) / len(values)
        self.histogram[price_bucket(avg)] += 1
        self.with_prices.append(CardSample(id_prefix=prefix, avg_price=avg, price_count=len(values)))

        log.debug(
            "[%d] UUID: %s | %d/%d months | Avg: $%.2f | Range: $%s-$%s",
            index, prefix, len(values), len(self.dates), avg, min(values), max(values),
        )
        for day in self.dates:
            if day in prices:
                log.debug("    %s: $%s via %s", day, prices[day], matches[day])
            else:
                log.debug("    %s: -", day)

    def summary_lines(self, coverage: List[CoverageStats]) -> List[str]:
        lines = [format_box("DEBUG SUMMARY")]
        valid = len(self.with_prices)
        lines.append(f"Cards with prices: {valid}, without: {len(self.without_prices)}")

        if valid:
            lines.append("")
            lines.append("Price ranges (by average):")
            for label, _ in PRICE_BUCKETS:
                lines.append(f"  {label:<12} {self.histogram[label]} cards")

            averages = [c.avg_price for c in self.with_prices]
            lines.append("")
            lines.append(f"Average price (6-month avg): ${sum(averages) / valid:.2f}")
            lines.append(f"Highest avg price: ${max(averages):.2f}")
            lines.append(f"Lowest avg price:  ${min(averages):.2f}")

        lines.append("")
        lines.append("Monthly data coverage:")
        for stats in coverage:
            lines.append(f"  {stats.date}: {stats.found}/{stats.total} cards ({stats.percent:.1f}%)")

        if self.with_prices:
            lines.append("")
            lines.append("Sample cards with prices:")
            top = sorted(self.with_prices, key=lambda c: c.avg_price, reverse=True)[:SAMPLE_SIZE]
            for i, card in enumerate(top, 1):
                lines.append(f"  {i}. {card.id_prefix} avg ${card.avg_price:.2f} ({card.price_count} months)")

        if self.without_prices:
            lines.append("")
            lines.append("Sample cards without prices:")
            for i, card in enumerate(self.without_prices[:SAMPLE_SIZE], 1):
                lines.append(f"  {i}. {card.id_prefix}")

        return lines
