"""Pydantic request/response schemas for competition groups."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.competitions.domain.models import CompetitionPeriodType, MemberRole


class GroupCreateRequest(BaseModel):
	name: str
	description: Optional[str] = None
	is_public: bool = False
	period_type: CompetitionPeriodType = CompetitionPeriodType.WEEKLY


class GroupUpdateRequest(BaseModel):
	name: str
	description: Optional[str] = None
	is_public: bool


class JoinGroupRequest(BaseModel):
	join_code: Optional[str] = None


class JoinByCodeRequest(BaseModel):
	code: str


class InviteMemberRequest(BaseModel):
	user_id: UUID


class UpdateMemberRoleRequest(BaseModel):
	role: MemberRole


class GroupResponse(BaseModel):
	id: UUID
	name: str
	description: Optional[str] = None
	is_public: bool
	join_code: Optional[str] = None
	period_type: CompetitionPeriodType
	member_count: int
	role: MemberRole
	created_at: datetime


class GroupListResponse(BaseModel):
	groups: List[GroupResponse] = Field(default_factory=list)


class GroupSearchResponse(BaseModel):
	id: UUID
	name: str
	description: Optional[str] = None
	member_count: int
	is_public: bool


class GroupMemberResponse(BaseModel):
	user_id: UUID
	display_name: str
	avatar_url: Optional[str] = None
	role: MemberRole
	joined_at: datetime


class LeaderboardEntrySchema(BaseModel):
	rank: int = Field(..., ge=1)
	user_id: UUID
	display_name: str
	avatar_url: Optional[str] = None
	total_steps: int
	total_distance_meters: float


class LeaderboardResponse(BaseModel):
	group_id: UUID
	period_start: date
	period_end: date
	entries: List[LeaderboardEntrySchema] = Field(default_factory=list)
