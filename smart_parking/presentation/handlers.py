# File: smart_parking/presentation/handlers.py
"""
Transport-neutral command handling

A command is a plain dictionary:

    {"type": "occupy", "data": {"slotId": "...", "stopEnd": "..."}, "token": "<jwt>"}

The handler decodes and validates `data` with the request DTOs,
authenticates the caller where the operation acts on behalf of a user,
calls the service and encodes the typed result. Any transport (HTTP
route, CLI, queue consumer) can sit in front of it.
"""

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ..application.account_service import AccountService
from ..application.dtos import (
    OccupyRequestDTO, ExtendRequestDTO, FreeRequestDTO, SlotRequestDTO,
    RadiusSearchDTO, RecoverPasswordDTO, ChangePasswordDTO
)
from ..application.occupancy_service import SlotOccupancyService
from ..application.results import ResultKind, ResultCode
from ..domain.capabilities import TokenVerifier
from ..domain.models import Principal
from .responses import ResponseEncoder, Response

UNAUTHORIZED_MESSAGE = "Token is not valid or has expired"


class ParkingCommandHandler:
    """
    Dispatches commands to the occupancy and account services

    Occupy, extend and the per-user queries require a valid token; the
    token's email claim identifies the occupier.
    """

    def __init__(
        self,
        occupancy_service: SlotOccupancyService,
        token_verifier: TokenVerifier,
        account_service: Optional[AccountService] = None,
        encoder: Optional[ResponseEncoder] = None
    ):
        self.occupancy_service = occupancy_service
        self.token_verifier = token_verifier
        self.account_service = account_service
        self.encoder = encoder or ResponseEncoder()
        self.logger = logging.getLogger(self.__class__.__name__)

        self._handlers: Dict[str, Callable[[Dict[str, Any], Optional[str]], Response]] = {
            "occupy": self._occupy,
            "extend": self._extend,
            "free": self._free,
            "get_slot": self._get_slot,
            "list_slots": self._list_slots,
            "radius_search": self._radius_search,
            "occupied_by_me": self._occupied_by_me,
        }
        if account_service is not None:
            self._handlers.update({
                "user_info": self._user_info,
                "recover_password": self._recover_password,
                "change_password": self._change_password,
            })

    @property
    def command_types(self):
        return sorted(self._handlers)

    def handle(self, command: Dict[str, Any]) -> Response:
        """Handle a command and return (status, body)"""
        command_type = command.get("type")
        handler = self._handlers.get(command_type)
        if handler is None:
            return self.encoder.error(
                ResultKind.INVALID_INPUT, ResultCode.UNKNOWN_COMMAND,
                f"Unknown command type: {command_type}"
            )

        try:
            return handler(command.get("data") or {}, command.get("token"))
        except ValidationError as e:
            self.logger.info(f"Invalid {command_type} request: {e.error_count()} error(s)")
            return self.encoder.error(ResultKind.INVALID_INPUT, ResultCode.INVALID_REQUEST, str(e))

    # ------------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------------

    def _authenticate(self, token: Optional[str]) -> Optional[Principal]:
        if not token:
            return None
        if token.lower().startswith("bearer "):
            token = token[7:].strip()
        return self.token_verifier.verify_token(token)

    def _unauthorized(self) -> Response:
        return self.encoder.error(ResultKind.UNAUTHORIZED, ResultCode.UNAUTHORIZED, UNAUTHORIZED_MESSAGE)

    # ------------------------------------------------------------------------
    # Occupancy commands
    # ------------------------------------------------------------------------

    def _occupy(self, data: Dict[str, Any], token: Optional[str]) -> Response:
        principal = self._authenticate(token)
        if principal is None:
            return self._unauthorized()
        request = OccupyRequestDTO.model_validate(data)
        result = self.occupancy_service.occupy(principal.email, request.slot_id, request.stop_end)
        return self.encoder.encode_occupancy(result)

    def _extend(self, data: Dict[str, Any], token: Optional[str]) -> Response:
        principal = self._authenticate(token)
        if principal is None:
            return self._unauthorized()
        request = ExtendRequestDTO.model_validate(data)
        result = self.occupancy_service.extend(principal.email, request.slot_id, request.stop_end)
        return self.encoder.encode_occupancy(result)

    def _free(self, data: Dict[str, Any], token: Optional[str]) -> Response:
        request = FreeRequestDTO.model_validate(data)
        return self.encoder.encode_occupancy(self.occupancy_service.free(request.slot_id))

    def _get_slot(self, data: Dict[str, Any], token: Optional[str]) -> Response:
        request = SlotRequestDTO.model_validate(data)
        return self.encoder.encode_slot_query(self.occupancy_service.get_slot(request.slot_id))

    def _list_slots(self, data: Dict[str, Any], token: Optional[str]) -> Response:
        return self.encoder.encode_slot_list(self.occupancy_service.list_slots())

    def _radius_search(self, data: Dict[str, Any], token: Optional[str]) -> Response:
        request = RadiusSearchDTO.model_validate(data)
        result = self.occupancy_service.find_slots_within_radius(request.to_center())
        return self.encoder.encode_slot_list(result)

    def _occupied_by_me(self, data: Dict[str, Any], token: Optional[str]) -> Response:
        principal = self._authenticate(token)
        if principal is None:
            return self._unauthorized()
        return self.encoder.encode_slot_query(self.occupancy_service.get_slot_occupied_by(principal.email))

    # ------------------------------------------------------------------------
    # Account commands
    # ------------------------------------------------------------------------

    def _user_info(self, data: Dict[str, Any], token: Optional[str]) -> Response:
        principal = self._authenticate(token)
        if principal is None:
            return self._unauthorized()
        return self.encoder.encode_user(self.account_service.get_user_info(principal.email))

    def _recover_password(self, data: Dict[str, Any], token: Optional[str]) -> Response:
        request = RecoverPasswordDTO.model_validate(data)
        return self.encoder.encode_status(self.account_service.recover_password(request.email))

    def _change_password(self, data: Dict[str, Any], token: Optional[str]) -> Response:
        principal = self._authenticate(token)
        if principal is None:
            return self._unauthorized()
        request = ChangePasswordDTO.model_validate(data)
        result = self.account_service.change_password(principal, request.new_password, request.old_password)
        return self.encoder.encode_status(result)
