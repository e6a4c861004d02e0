"""
Tests for debug-run diagnostics.

To run: pytest tests/test_diagnostics.py -v
"""

import logging

import pytest

from mtg_price_history.services.diagnostics import DebugStats, price_bucket
from mtg_price_history.services.progress import CoverageStats

DATES = ["2025-01-15", "2024-12-15"]


class TestPriceBucket:
    @pytest.mark.parametrize("avg, label", [
        (0.01, "Under $1"),
        (0.99, "Under $1"),
        (1.0, "$1-$10"),
        (9.99, "$1-$10"),
        (10.0, "$10-$100"),
        (100.0, "Over $100"),
        (2500.0, "Over $100"),
    ])
    def test_buckets(self, avg, label):
        assert price_bucket(avg) == label


class TestDebugStats:
    def _stats(self):
        stats = DebugStats(DATES)
        stats.record(1, "aaaaaaaa-1111", {"paper": {}}, {"2025-01-15": 0.5, "2024-12-15": 0.7},
                     {"2025-01-15": "tcgplayer/retail/normal", "2024-12-15": "tcgplayer/retail/foil"})
        stats.record(2, "bbbbbbbb-2222", {"paper": {}}, {"2025-01-15": 150.0},
                     {"2025-01-15": "cardkingdom/retail/normal"})
        stats.record(3, "cccccccc-3333", None, {}, {})
        return stats

    def test_histogram(self):
        stats = self._stats()
        assert stats.histogram == {"Under $1": 1, "$1-$10": 0, "$10-$100": 0, "Over $100": 1}
        assert [c.id_prefix for c in stats.with_prices] == ["aaaaaaaa...", "bbbbbbbb..."]
        assert [c.id_prefix for c in stats.without_prices] == ["cccccccc..."]
        assert stats.with_prices[0].avg_price == pytest.approx(0.6)
        assert stats.with_prices[0].price_count == 2

    def test_record_logs_each_card(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="mtg_price_history.services.diagnostics"):
            self._stats()
        assert "[1] UUID: aaaaaaaa..." in caplog.text
        assert "via tcgplayer/retail/foil" in caplog.text
        assert "[3] UUID: cccccccc... | No price data structure found" in caplog.text

    def test_summary(self):
        coverage = [CoverageStats("2025-01-15", 2, 3), CoverageStats("2024-12-15", 1, 3)]
        lines = self._stats().summary_lines(coverage)
        text = "\n".join(lines)

        assert "DEBUG SUMMARY" in lines[0]
        assert "Cards with prices: 2, without: 1" in text
        assert "Highest avg price: $150.00" in text
        assert "Lowest avg price:  $0.60" in text
        assert "2025-01-15: 2/3 cards (66.7%)" in text
        # Top samples ordered by average price
        top = lines.index("Sample cards with prices:")
        assert lines[top + 1].startswith("  1. bbbbbbbb...")
        assert "Sample cards without prices:" in lines

    def test_summary_without_priced_cards(self):
        stats = DebugStats(DATES)
        stats.record(1, "dddddddd-4444", {}, {}, {})
        text = "\n".join(stats.summary_lines([CoverageStats("2025-01-15", 0, 1)]))
        assert "Cards with prices: 0, without: 1" in text
        assert "Highest avg price" not in text
