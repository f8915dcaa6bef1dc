"""Competition group API routes."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from app.competitions.api._errors import to_http_error
from app.competitions.domain.exceptions import CompetitionError
from app.competitions.domain.models import MemberRole
from app.competitions.domain.services import GroupDomainService
from app.competitions.schemas import dto
from app.infra.auth import AuthenticatedUser, get_current_user
from app.settings import settings

router = APIRouter(tags=["competitions:groups"])
_service = GroupDomainService()


@router.post("/groups", response_model=dto.GroupResponse, status_code=201)
async def create_group_endpoint(
	payload: dto.GroupCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.GroupResponse:
	try:
		return await _service.create_group(auth_user.id, payload)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.get("/groups", response_model=dto.GroupListResponse)
async def list_my_groups_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.GroupListResponse:
	try:
		return await _service.get_user_groups(auth_user.id)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.get("/groups/search", response_model=List[dto.GroupSearchResponse])
async def search_groups_endpoint(
	query: str = Query(default=""),
	limit: int = Query(default=settings.competitions_search_default_limit),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dto.GroupSearchResponse]:
	try:
		return await _service.search_public_groups(query, limit)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.post("/groups/join-by-code", response_model=dto.GroupResponse)
async def join_by_code_endpoint(
	payload: dto.JoinByCodeRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.GroupResponse:
	try:
		return await _service.join_by_code(auth_user.id, payload.code)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.get("/groups/{group_id}", response_model=dto.GroupResponse)
async def get_group_endpoint(
	group_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.GroupResponse:
	try:
		return await _service.get_group(auth_user.id, group_id)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.put("/groups/{group_id}", response_model=dto.GroupResponse)
async def update_group_endpoint(
	group_id: str,
	payload: dto.GroupUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.GroupResponse:
	try:
		return await _service.update_group(auth_user.id, group_id, payload)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.delete(
	"/groups/{group_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def delete_group_endpoint(
	group_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.delete_group(auth_user.id, group_id)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.post("/groups/{group_id}/join", response_model=dto.GroupResponse)
async def join_group_endpoint(
	group_id: str,
	payload: Optional[dto.JoinGroupRequest] = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.GroupResponse:
	try:
		return await _service.join_group(auth_user.id, group_id, payload)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.post(
	"/groups/{group_id}/leave",
	status_code=204,
	summary="Leave a group (deletes it when the sole owner leaves)",
	response_class=Response,
	response_model=None,
)
async def leave_group_endpoint(
	group_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	"""Leave a group.

	The owner can only leave once no other members remain, and leaving then deletes
	the group: later requests for it return 404.
	"""
	try:
		await _service.leave_group(auth_user.id, group_id)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.get("/groups/{group_id}/members", response_model=List[dto.GroupMemberResponse])
async def list_members_endpoint(
	group_id: str,
	role: Optional[MemberRole] = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dto.GroupMemberResponse]:
	try:
		return await _service.get_members(auth_user.id, group_id, role_filter=role)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.post("/groups/{group_id}/members", response_model=dto.GroupMemberResponse, status_code=201)
async def invite_member_endpoint(
	group_id: str,
	payload: dto.InviteMemberRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.GroupMemberResponse:
	try:
		return await _service.invite_member(auth_user.id, group_id, payload)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.delete(
	"/groups/{group_id}/members/{user_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def remove_member_endpoint(
	group_id: str,
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.remove_member(auth_user.id, group_id, user_id)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.put("/groups/{group_id}/members/{user_id}/role", response_model=dto.GroupMemberResponse)
async def update_member_role_endpoint(
	group_id: str,
	user_id: str,
	payload: dto.UpdateMemberRoleRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.GroupMemberResponse:
	try:
		return await _service.update_member_role(auth_user.id, group_id, user_id, payload)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.get("/groups/{group_id}/leaderboard", response_model=dto.LeaderboardResponse)
async def leaderboard_endpoint(
	group_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.LeaderboardResponse:
	try:
		return await _service.get_leaderboard(auth_user.id, group_id)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc


@router.post("/groups/{group_id}/regenerate-code", response_model=dto.GroupResponse)
async def regenerate_code_endpoint(
	group_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.GroupResponse:
	try:
		return await _service.regenerate_join_code(auth_user.id, group_id)
	except CompetitionError as exc:
		raise to_http_error(exc) from exc
