import asyncio

import pytest

from jobs.config import LENDERS
from pipelines.common import DocumentType, FetchedDocument
from pipelines.sources.lender_rates import (
    fetch_lender_rate,
    parse_rate_block,
    product_block,
    two_percents_nearby,
)

BLOCK_PATTERN = LENDERS[0].block_pattern


@pytest.mark.parametrize(
    ("block", "expected"),
    [
        ("30 Year Fixed\nInterest Rate\n6.125%\nAPR\n6.250%", (6.125, 6.25)),
        ("30 Year Fixed Rate 6.250% APR 6.125%", (6.125, 6.25)),
        ("30 yr fixed 6.125% APR: 6.250%", (6.125, 6.25)),
    ],
)
def test_parse_rate_block(block, expected):
    assert parse_rate_block(block) == expected


def test_apr_only_page_keeps_rate_empty():
    assert parse_rate_block("30 Year Fixed\nAPR 6.250%") == (None, 6.25)


def test_out_of_range_percentages_are_rejected():
    assert parse_rate_block("Interest Rate 45.5%\nAPR 46.0%") == (None, None)


def test_two_percents_nearby_orders_pair():
    assert two_percents_nearby("APR 6.500% and rate 6.375%") == (6.375, 6.5)
    assert two_percents_nearby("only 6.500% here") is None


def test_product_block_skips_other_products():
    text = "15 Year Fixed\nInterest Rate 5.500%\n30 Year Fixed\nInterest Rate 6.125%"

    block = product_block(text, BLOCK_PATTERN)

    assert block.startswith("30 Year Fixed")
    assert parse_rate_block(block) == (6.125, None)


def test_product_block_without_heading_uses_top_of_page():
    assert product_block("Interest Rate 6.125%", BLOCK_PATTERN) == "Interest Rate 6.125%"


def test_fetch_lender_rate_reads_html_page():
    page = b"""
    <html><body>
      <h3>15 Year Fixed</h3><span>Rate</span><span>5.625%</span>
      <h3>30 Year Fixed</h3>
      <div>Interest Rate</div><div>6.375%</div>
      <div>APR</div><div>6.512%</div>
    </body></html>
    """
    seen = {}

    async def fetcher(url, **kwargs):
        seen.update(kwargs)
        return FetchedDocument(
            url=url, content=page, content_type="text/html", kind=DocumentType.HTML
        )

    rate, apr = asyncio.run(
        fetch_lender_rate(LENDERS[0].url, block_pattern=BLOCK_PATTERN, fetcher=fetcher)
    )

    assert (rate, apr) == (6.375, 6.512)
    assert seen["expect"] is DocumentType.HTML


def test_apr_equal_to_rate_is_kept():
    block = (
        "30 Year Fixed Interest Rate 6.500% APR 6.500%\n"
        "15 Year Fixed Interest Rate 5.750% APR 5.900%"
    )

    assert parse_rate_block(block) == (6.5, 6.5)
