from pathlib import Path
from types import SimpleNamespace

import pandas as pd
import pytest

from sessionkit.connectors.ga4 import GA4Auth, GA4Client


class FakeDataClient:
    """Stand-in for BetaAnalyticsDataClient serving canned rows.

    Rows are keyed by the first requested dimension and honour limit/offset so
    pagination can be exercised.
    """

    def __init__(self, tables):
        self.tables = tables
        self.requests = []

    def run_report(self, req):
        self.requests.append(req)
        dims = [d.name for d in req.dimensions]
        metrics = [m.name for m in req.metrics]
        table = self.tables.get(dims[0], [])
        page = table[req.offset: req.offset + req.limit] if req.limit else table[req.offset:]
        rows = [
            SimpleNamespace(
                dimension_values=[SimpleNamespace(value=str(r.get(d, ""))) for d in dims],
                metric_values=[SimpleNamespace(value=str(r.get(m, 0))) for m in metrics],
            )
            for r in page
        ]
        return SimpleNamespace(rows=rows, row_count=len(table))


@pytest.fixture()
def ga4_tables():
    daily = [
        {"date": "20250801", "sessions": 120, "totalUsers": 100},
        {"date": "20250802", "sessions": 80, "totalUsers": 70},
        # 2025-08-03 missing on purpose: GA omits zero days
        {"date": "20250804", "sessions": 150, "totalUsers": 110},
    ]
    channels = [
        {"sessionDefaultChannelGroup": "Organic Search", "sessions": 200, "totalUsers": 160,
         "engagedSessions": 140, "engagementRate": 0.7, "averageSessionDuration": 95.0,
         "screenPageViewsPerSession": 3.1},
        {"sessionDefaultChannelGroup": "Direct", "sessions": 100, "totalUsers": 90,
         "engagedSessions": 40, "engagementRate": 0.4, "averageSessionDuration": 40.0,
         "screenPageViewsPerSession": 1.6},
        {"sessionDefaultChannelGroup": "", "sessions": 50, "totalUsers": 30,
         "engagedSessions": 25, "engagementRate": 0.5, "averageSessionDuration": 60.0,
         "screenPageViewsPerSession": 2.0},
    ]
    sid = "customEvent:session_id"
    pageviews = []
    journeys = {
        "s1": ["/", "/pricing", "/signup"],
        "s2": ["/", "/pricing", "/signup"],
        "s3": ["/", "/pricing"],
        "s4": ["/blog", "/pricing", "/signup"],
        "s5": ["/blog"],
    }
    for session, pages in journeys.items():
        for page in pages:
            pageviews.append({"pagePath": page, sid: session, "landingPage": pages[0], "screenPageViews": 1})
    # repeated view of the same page in a session
    pageviews.append({"pagePath": "/pricing", sid: "s1", "landingPage": "/", "screenPageViews": 2})
    pageviews.append({"pagePath": "/pricing", sid: "(not set)", "landingPage": "/", "screenPageViews": 1})
    return {"date": daily, "sessionDefaultChannelGroup": channels, "pagePath": pageviews}


@pytest.fixture()
def fake_client(ga4_tables):
    auth = GA4Auth(property_id="123456", key_file=Path("service_account.json"))
    return GA4Client(auth=auth, client=FakeDataClient(ga4_tables))


@pytest.fixture()
def pageviews():
    return pd.DataFrame(
        [
            ("/", "A", "/", 1),
            ("/pricing", "A", "/", 2),
            ("/pricing", "A", "/", 1),
            ("/pricing", "B", "/pricing", 1),
            ("/", "B", "/pricing", 1),
            ("/docs", "C", "/docs", 3),
        ],
        columns=["page_path", "session_id", "landing_page", "pageviews"],
    )


@pytest.fixture()
def example_transactions():
    return {
        "A": frozenset({"ENTRANCE-x", "y"}),
        "B": frozenset({"ENTRANCE-x", "y"}),
        "C": frozenset({"ENTRANCE-x"}),
    }


@pytest.fixture()
def empty_client():
    auth = GA4Auth(property_id="1", key_file=Path("service_account.json"))
    return GA4Client(auth=auth, client=FakeDataClient({}))
