"""Domain models for competition groups, memberships and leaderboards."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class MemberRole(str, Enum):
	"""Role of a member within a group, ordered Owner > Admin > Member."""

	OWNER = "owner"
	ADMIN = "admin"
	MEMBER = "member"

	@property
	def rank(self) -> int:
		return ROLE_RANK[self]

	def outranks(self, other: "MemberRole") -> bool:
		return self.rank > other.rank

	def at_least(self, other: "MemberRole") -> bool:
		return self.rank >= other.rank


ROLE_RANK = {MemberRole.OWNER: 3, MemberRole.ADMIN: 2, MemberRole.MEMBER: 1}


class CompetitionPeriodType(str, Enum):
	"""Reporting window used by a group's leaderboard."""

	DAILY = "daily"
	WEEKLY = "weekly"
	MONTHLY = "monthly"


class Group(BaseModel):
	"""Represents a competition group.

	``member_count`` is maintained by storage and only ever read back.
	"""

	id: UUID
	name: str
	description: Optional[str] = None
	created_by_id: UUID
	is_public: bool
	join_code: Optional[str] = None
	period_type: CompetitionPeriodType
	created_at: datetime
	member_count: int = 0

	model_config = ConfigDict(from_attributes=True)


class GroupMembership(BaseModel):
	"""Represents a membership row."""

	id: UUID
	group_id: UUID
	user_id: UUID
	role: MemberRole
	joined_at: datetime

	model_config = ConfigDict(from_attributes=True)


class User(BaseModel):
	"""Directory view of a user, enough to label members and leaderboard rows."""

	id: UUID
	display_name: str
	avatar_url: Optional[str] = None

	model_config = ConfigDict(from_attributes=True)


@dataclass(slots=True, frozen=True)
class DateRange:
	"""Inclusive date range."""

	start: date
	end: date

	def __post_init__(self) -> None:
		if self.end < self.start:
			raise ValueError("end must be on or after start")

	@property
	def days(self) -> int:
		return (self.end - self.start).days + 1


@dataclass(slots=True, frozen=True)
class StepTotal:
	"""Aggregated steps for one member over a window, as reported by storage."""

	user_id: UUID
	display_name: str
	total_steps: int
	total_distance_meters: float
	avatar_url: Optional[str] = None


@dataclass(slots=True)
class LeaderboardEntry:
	"""Ranked leaderboard row."""

	rank: int
	user_id: UUID
	display_name: str
	total_steps: int
	total_distance_meters: float
	avatar_url: Optional[str] = None
