"""Aggregations over event documents for the admin and club dashboards."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable

from student_system.events.domain.models import Event
from student_system.events.schemas import dto

RECENT_VIEW_DAYS = 30
TOP_VIEWED_LIMIT = 5


def _buckets(counter: Counter) -> list[dto.CountBucket]:
	ordered = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
	return [dto.CountBucket(key=key, count=count) for key, count in ordered]


def _month_bounds(now: datetime) -> tuple[datetime, datetime]:
	start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
	if start.month == 12:
		end = start.replace(year=start.year + 1, month=1)
	else:
		end = start.replace(month=start.month + 1)
	return start, end


def status_statistics(events: Iterable[Event]) -> dto.StatusStatistics:
	counts = Counter(event.status_name for event in events)
	return dto.StatusStatistics(
		total_events=sum(counts.values()),
		approved_events=counts.get("approved", 0),
		pending_events=counts.get("pending", 0),
		rejected_events=counts.get("rejected", 0),
	)


def overview(events: list[Event], *, now: datetime) -> dto.EventStatsResponse:
	month_start, month_end = _month_bounds(now)
	statuses = status_statistics(events)
	return dto.EventStatsResponse(
		overview=dto.EventOverview(
			**statuses.model_dump(),
			upcoming_events=sum(1 for e in events if e.is_approved and e.start_date_time >= now),
			this_month_events=sum(1 for e in events if month_start <= e.created_at < month_end),
		),
		category_stats=_buckets(Counter(e.category for e in events)),
		event_type_stats=_buckets(Counter(e.event_type for e in events)),
	)


def creator_overview(events: list[Event], *, now: datetime) -> dto.MyEventStatsResponse:
	base = overview(events, now=now)
	total_views = sum(e.view_count for e in events)
	return dto.MyEventStatsResponse(
		**base.model_dump(),
		view_stats=dto.ViewStats(
			total_views=total_views,
			avg_views_per_event=round(total_views / len(events), 2) if events else 0.0,
			most_viewed_event=max((e.view_count for e in events), default=0),
		),
	)


def creator_detail(events: list[Event], *, now: datetime) -> dto.DetailedEventStatsResponse:
	top = sorted(events, key=lambda e: e.view_count, reverse=True)[:TOP_VIEWED_LIMIT]
	since = now - timedelta(days=RECENT_VIEW_DAYS)
	daily: Counter = Counter()
	platforms: Counter = Counter()
	for event in events:
		for view in event.views:
			platforms[view.platform] += 1
			if view.viewed_at >= since:
				daily[view.viewed_at.date().isoformat()] += 1
	return dto.DetailedEventStatsResponse(
		top_viewed_events=[
			dto.TopViewedEvent(
				id=e.id,
				title=e.title,
				view_count=e.view_count,
				start_date_time=e.start_date_time,
				is_approved=e.is_approved,
			)
			for e in top
		],
		recent_views=[dto.CountBucket(key=day, count=daily[day]) for day in sorted(daily)],
		views_by_platform=_buckets(platforms),
	)
