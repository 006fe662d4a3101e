#!/usr/bin/env python3
"""GA4 Data API connector.

Thin wrapper over ``BetaAnalyticsDataClient`` returning plain lists of dicts;
all reshaping happens in the pipelines.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from google.analytics.data_v1beta import BetaAnalyticsDataClient
from google.analytics.data_v1beta.types import DateRange, Dimension, Metric, RunReportRequest
from google_auth_oauthlib.flow import InstalledAppFlow

from sessionkit.config import DEFAULT_ENV_PATH, maybe_load_dotenv
from sessionkit.utils.logs import report

logger = report.settings(__file__)

GA4_KEY_DEFAULT = Path("config/ga4/service_account.json")
SCOPES = ["https://www.googleapis.com/auth/analytics.readonly"]
PAGE_SIZE = 100000

DEFAULT_SESSION_DIMENSION = "customEvent:session_id"


def yyyymmdd_to_date(s: str) -> date:
	# GA4 API returns YYYYMMDD for the "date" dimension
	return datetime.strptime(s, "%Y%m%d").date()


@dataclass
class GA4Auth:
	property_id: str
	key_file: Optional[Path] = None
	client_file: Optional[Path] = None

	@staticmethod
	def load(env_path: Path = DEFAULT_ENV_PATH) -> "GA4Auth":
		maybe_load_dotenv(env_path)
		prop = os.environ.get("GA4_PROPERTY_ID") or ""
		if not prop:
			raise RuntimeError(f"GA4_PROPERTY_ID not set (put it in {env_path})")
		if not prop.isdigit():
			raise RuntimeError(f"GA4_PROPERTY_ID must be numeric, got {prop!r}")
		key_path = Path(os.environ.get("GA4_KEY_FILE") or str(GA4_KEY_DEFAULT))
		if key_path.exists():
			os.environ.setdefault("GOOGLE_APPLICATION_CREDENTIALS", str(key_path))
			return GA4Auth(property_id=prop, key_file=key_path)
		client = os.environ.get("GA4_CLIENT_FILE")
		if client and Path(client).exists():
			return GA4Auth(property_id=prop, client_file=Path(client))
		raise RuntimeError(
			f"GA4 key not found at {key_path} and no GA4_CLIENT_FILE configured"
		)

	def credentials(self):
		"""OAuth user credentials when running from a client-secrets file.

		Returns ``None`` for service-account auth, which the client library
		picks up from ``GOOGLE_APPLICATION_CREDENTIALS``.
		"""
		if self.key_file is not None or self.client_file is None:
			return None
		logger.info("Opening browser for GA4 OAuth consent (%s)", self.client_file)
		flow = InstalledAppFlow.from_client_secrets_file(str(self.client_file), SCOPES)
		return flow.run_local_server(port=0)


class GA4Client:
	def __init__(self, auth: GA4Auth | None = None, client: Any = None) -> None:
		self.auth = auth or GA4Auth.load()
		if client is None:
			creds = self.auth.credentials()
			client = BetaAnalyticsDataClient(credentials=creds) if creds else BetaAnalyticsDataClient()
		self.client = client

	@property
	def property(self) -> str:
		return f"properties/{self.auth.property_id}"

	def run_report(self, start: date, end: date, dims: List[str], metric_names: List[str]) -> List[Dict[str, Any]]:
		"""Run a report and page through every row.

		Dimension values are returned as strings and metric values as floats,
		keyed by their API names.
		"""
		rows: List[Dict[str, Any]] = []
		offset = 0
		while True:
			req = RunReportRequest(
				property=self.property,
				date_ranges=[DateRange(start_date=start.isoformat(), end_date=end.isoformat())],
				dimensions=[Dimension(name=d) for d in dims],
				metrics=[Metric(name=m) for m in metric_names],
				limit=PAGE_SIZE,
				offset=offset,
			)
			resp = self.client.run_report(req)
			for r in resp.rows:
				out: Dict[str, Any] = {}
				for i, d in enumerate(dims):
					out[d] = r.dimension_values[i].value
				for j, m in enumerate(metric_names):
					out[m] = float(r.metric_values[j].value or 0)
				rows.append(out)
			offset += len(resp.rows)
			if not resp.rows or offset >= resp.row_count:
				break
		logger.debug("GA4 %s x %s: %d rows", dims, metric_names, len(rows))
		return rows

	def run_daily_traffic(self, start: date, end: date) -> List[Dict[str, Any]]:
		rows = self.run_report(start, end, ["date"], ["sessions", "totalUsers"])
		return [
			{
				"date": yyyymmdd_to_date(r["date"]),
				"sessions": r["sessions"],
				"users": r["totalUsers"],
			}
			for r in rows
		]

	def run_channels_report(self, start: date, end: date) -> List[Dict[str, Any]]:
		# Default Channel Grouping
		metrics = [
			"sessions",
			"totalUsers",
			"engagedSessions",
			"engagementRate",
			"averageSessionDuration",
			"screenPageViewsPerSession",
		]
		rows = self.run_report(start, end, ["sessionDefaultChannelGroup"], metrics)
		return [
			{
				"channel": r["sessionDefaultChannelGroup"] or "(not set)",
				"sessions": r["sessions"],
				"users": r["totalUsers"],
				"engaged_sessions": r["engagedSessions"],
				"engagement_rate": r["engagementRate"],
				"avg_session_duration": r["averageSessionDuration"],
				"pageviews_per_session": r["screenPageViewsPerSession"],
			}
			for r in rows
		]

	def run_pageviews(self, start: date, end: date,
					  session_dimension: str = DEFAULT_SESSION_DIMENSION) -> List[Dict[str, Any]]:
		"""Pageviews per (page, session, landing page).

		*session_dimension* is the custom dimension holding the session id.
		"""
		rows = self.run_report(
			start, end,
			["pagePath", session_dimension, "landingPage"],
			["screenPageViews"],
		)
		return [
			{
				"page_path": r["pagePath"],
				"session_id": r[session_dimension],
				"landing_page": r["landingPage"],
				"pageviews": r["screenPageViews"],
			}
			for r in rows
		]
