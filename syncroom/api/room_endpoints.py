"""
syncroom.api.room_endpoints
~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间查询 REST 接口（只读，不会创建房间）。

端点:
  - ``GET /rooms``             → 获取活跃房间列表
  - ``GET /rooms/{room_id}``   → 获取房间完整快照
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from syncroom.api.deps import get_listening_system
from syncroom.core.rate_limit import limiter
from syncroom.core.settings import settings
from syncroom.schemas.api_response import ApiResponse
from syncroom.schemas.room_info import RoomDetailData, RoomSummaryData
from syncroom.services.listening_system import ListeningSystem

router: APIRouter = APIRouter()


@router.get("/rooms", summary="获取活跃房间列表", response_model=ApiResponse[list[RoomSummaryData]])
@limiter.limit(settings.API_RATE_LIMIT)
async def list_rooms(request: Request, system: ListeningSystem = Depends(get_listening_system)):
    """返回所有存活房间（含宽限期内的空房间）的摘要。"""
    return ApiResponse.ok(data=system.list_rooms())


@router.get(
    "/rooms/{room_id}",
    summary="获取房间详情",
    response_model=ApiResponse[RoomDetailData],
    responses={404: {"description": "房间不存在"}},
)
@limiter.limit(settings.API_RATE_LIMIT)
async def room_detail(request: Request, room_id: str, system: ListeningSystem = Depends(get_listening_system)):
    """返回指定房间的成员、队列、当前曲目与投票进度。

    Args:
        request: FastAPI Request 对象（用于限流判断）。
        room_id: 房间唯一标识。
    """
    detail = system.room_detail(room_id)
    if detail is None:
        return JSONResponse(
            status_code=404,
            content=ApiResponse.fail(msg=f"房间不存在: {room_id}", code=404).model_dump(),
        )
    return ApiResponse.ok(data=detail)
