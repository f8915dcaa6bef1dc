"""Leaderboard windows and ranking for competition groups."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List

from app.competitions.domain.models import CompetitionPeriodType, DateRange, LeaderboardEntry, StepTotal

WEEKLY_WINDOW_DAYS = 7


def compute_window(period_type: CompetitionPeriodType, today: date) -> DateRange:
	"""Return the inclusive reporting window ending ``today``.

	Weekly is a rolling seven days, monthly is month-to-date.
	"""
	if period_type is CompetitionPeriodType.DAILY:
		return DateRange(start=today, end=today)
	if period_type is CompetitionPeriodType.WEEKLY:
		return DateRange(start=today - timedelta(days=WEEKLY_WINDOW_DAYS - 1), end=today)
	if period_type is CompetitionPeriodType.MONTHLY:
		return DateRange(start=today.replace(day=1), end=today)
	raise ValueError(f"unknown period type: {period_type}")


def _sort_key(total: StepTotal) -> tuple[int, str]:
	# Highest steps first, equal totals broken by ascending user id.
	return (-total.total_steps, str(total.user_id))


def rank(raw_totals: Iterable[StepTotal]) -> List[LeaderboardEntry]:
	ordered = sorted(raw_totals, key=_sort_key)
	return [
		LeaderboardEntry(
			rank=idx,
			user_id=total.user_id,
			display_name=total.display_name,
			total_steps=total.total_steps,
			total_distance_meters=total.total_distance_meters,
			avatar_url=total.avatar_url,
		)
		for idx, total in enumerate(ordered, start=1)
	]


class LeaderboardCalculator:
	"""Thin object wrapper so the service can take the calculator as a collaborator."""

	def compute_window(self, period_type: CompetitionPeriodType, today: date) -> DateRange:
		return compute_window(period_type, today)

	def rank(self, raw_totals: Iterable[StepTotal]) -> List[LeaderboardEntry]:
		return rank(raw_totals)
