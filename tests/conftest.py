from datetime import datetime, timezone

import pytest

from jobs.config import WAUKESHA_COUNTY, RuntimeSettings
from pipelines.common import DocumentType, FetchedDocument, FetchFailure

SF_URL = WAUKESHA_COUNTY.single_family.url
CONDO_URL = WAUKESHA_COUNTY.condo.url

SF_REPORT_TEXT = """\
Market Trends Report
Waukesha County, WI
Single Family Residences   Updated through September 2025

Median Sold Price
$520,000
+4.2% MoM
Median Days in RPR
48
Months of Inventory
1.48
Active Listings
# of Properties - 1,045
Closed Sales
5.2% MoM
312
"""

CONDO_REPORT_TEXT = """\
Market Trends Report
Waukesha County, WI
Condo/Townhouse/Apt.   Updated through September 2025

Median Sold Price   $389,500
Median Days in RPR  54
Months of Inventory 2.61
Active Listings
# of Properties - 210
Closed Sales
88
"""


def text_document(url: str, text: str, *, last_modified: datetime | None = None) -> FetchedDocument:
    return FetchedDocument(
        url=url,
        content=text.encode("utf-8"),
        content_type="text/plain",
        kind=DocumentType.TEXT,
        last_modified=last_modified,
        encoding="utf-8",
    )


class FakeFetcher:
    """Serves canned documents by URL; an ``Exception`` value is raised instead."""

    def __init__(self, responses):
        self.responses = dict(responses)
        self.calls: list[str] = []

    async def __call__(self, url, **kwargs):
        self.calls.append(url)
        response = self.responses.get(url)
        if response is None:
            raise FetchFailure(f"{url} returned HTTP 404.")
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def settings():
    return RuntimeSettings(fetch_timeout=1.0, source_timeout=2.0)


@pytest.fixture()
def live_fetcher():
    return FakeFetcher(
        {
            SF_URL: text_document(
                SF_URL,
                SF_REPORT_TEXT,
                last_modified=datetime(2025, 10, 3, 9, 30, tzinfo=timezone.utc),
            ),
            CONDO_URL: text_document(
                CONDO_URL,
                CONDO_REPORT_TEXT,
                last_modified=datetime(2025, 10, 2, 18, 0, tzinfo=timezone.utc),
            ),
        }
    )


@pytest.fixture()
def failing_fetcher():
    return FakeFetcher({})
