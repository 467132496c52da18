import json
from datetime import date

import pytest

from conftest import SF_REPORT_TEXT
import jobs.__main__ as cli
from jobs.__main__ import main
from pipelines.model import MarketStatsResponse


def test_list_sources(capsys):
    assert main(["list-sources"]) == 0

    output = capsys.readouterr().out
    assert "waukesha_county" in output
    assert "sf: " in output
    assert "associated_bank" in output


def test_extract_report_text_file(tmp_path, capsys):
    path = tmp_path / "report.txt"
    path.write_text(SF_REPORT_TEXT, encoding="utf-8")

    assert main(["extract", str(path)]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["month"] == "2025-09"
    assert payload["metrics"]["medianPrice"] == 520000
    assert payload["metrics"]["activeListings"] == 1045


def test_extract_rates_from_html_file(tmp_path, capsys):
    path = tmp_path / "rates.html"
    path.write_text(
        "<h3>30 Year Fixed</h3><p>Interest Rate</p><p>6.375%</p><p>APR</p><p>6.512%</p>",
        encoding="utf-8",
    )

    assert main(["extract", str(path), "--source", "rates"]) == 0

    assert json.loads(capsys.readouterr().out) == {"rate": 6.375, "apr": 6.512}


def test_extract_missing_file(tmp_path):
    with pytest.raises(SystemExit):
        main(["extract", str(tmp_path / "missing.pdf")])


def test_unknown_lender_key_is_rejected():
    with pytest.raises(SystemExit, match="nope"):
        main(["rates", "--lenders", "nope"])


def test_stats_command_prints_payload(monkeypatch, capsys):
    async def fake_build_market_stats():
        return MarketStatsResponse(updated_at=date(2025, 10, 3), months={}, error="sf: fetch failed")

    monkeypatch.setattr(cli, "build_market_stats", fake_build_market_stats)

    assert main(["stats"]) == 0

    assert json.loads(capsys.readouterr().out) == {
        "updatedAt": "2025-10-03",
        "months": {},
        "error": "sf: fetch failed",
    }
