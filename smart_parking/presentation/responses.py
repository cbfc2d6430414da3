# File: smart_parking/presentation/responses.py
"""
Response encoding

Maps typed service results onto a transport status and a JSON-ready body.
The transport itself (HTTP server, CLI, message bus) is not modelled here.

Body shapes:
    {"successCode": "Success"}
    {"errorCode": "<ResultCode>"}
    {"slot": {...}} / {"slots": [...]} / {"user": {...}}
"""

from http import HTTPStatus
from typing import Any, Dict, Iterable, Optional, Tuple

from ..application.dtos import ParkingSlotDTO, UserInfoDTO
from ..application.results import OccupancyResult, QueryResult, ResultKind, ResultCode
from ..domain.models import ParkingSlot, UserInfo

Response = Tuple[HTTPStatus, Dict[str, Any]]

STATUS_BY_KIND = {
    ResultKind.OK: HTTPStatus.OK,
    ResultKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ResultKind.CONFLICT: HTTPStatus.CONFLICT,
    ResultKind.INVALID_STATE: HTTPStatus.BAD_REQUEST,
    ResultKind.INVALID_INPUT: HTTPStatus.BAD_REQUEST,
    ResultKind.FORBIDDEN: HTTPStatus.FORBIDDEN,
    ResultKind.UNAUTHORIZED: HTTPStatus.UNAUTHORIZED,
    ResultKind.UNAVAILABLE: HTTPStatus.SERVICE_UNAVAILABLE,
}


class ResponseEncoder:
    """Encodes results as (status, body) pairs"""

    @staticmethod
    def status_for(kind: ResultKind) -> HTTPStatus:
        return STATUS_BY_KIND[kind]

    @staticmethod
    def error(kind: ResultKind, code: ResultCode, message: Optional[str] = None) -> Response:
        body: Dict[str, Any] = {"errorCode": code.value}
        if message:
            body["message"] = message
        return STATUS_BY_KIND[kind], body

    @staticmethod
    def success() -> Response:
        return HTTPStatus.OK, {"successCode": ResultCode.SUCCESS.value}

    @staticmethod
    def encode_slot(slot: ParkingSlot) -> Dict[str, Any]:
        return ParkingSlotDTO.from_domain(slot).to_dict()

    def encode_occupancy(self, result: OccupancyResult) -> Response:
        if result.success:
            return self.success()
        return self.error(result.kind, result.code)

    def encode_slot_query(self, result: QueryResult) -> Response:
        if not result.success:
            return self.error(result.kind, result.code)
        if result.value is None:
            return HTTPStatus.OK, {"slot": None}
        return HTTPStatus.OK, {"slot": self.encode_slot(result.value)}

    def encode_slot_list(self, result: QueryResult) -> Response:
        if not result.success:
            return self.error(result.kind, result.code)
        slots: Iterable[ParkingSlot] = result.value or []
        return HTTPStatus.OK, {"slots": [self.encode_slot(slot) for slot in slots]}

    def encode_user(self, result: QueryResult) -> Response:
        if not result.success:
            return self.error(result.kind, result.code)
        user: UserInfo = result.value
        return HTTPStatus.OK, {"user": UserInfoDTO.from_domain(user).to_dict(exclude_none=True)}

    def encode_status(self, result: QueryResult) -> Response:
        """Results that carry no payload"""
        if result.success:
            return self.success()
        return self.error(result.kind, result.code)
