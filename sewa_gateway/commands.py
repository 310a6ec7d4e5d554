"""Command mapping for call-button events.

A device posts ``objectId`` (its numeric id) and ``objectCmd`` (a short
string code). Each known code maps onto exactly one of four flags on the
device state; anything else is treated as a plain call for assistance.
"""

import logging
import re
from typing import Any, Dict, NamedTuple

from .models import CommandInfo, ForwardingPayload, MappedDeviceState

logger = logging.getLogger(__name__)

FLAGS = ("cancel", "bill", "call", "drinks")
FALLBACK_FLAG = "call"
UNKNOWN_DESCRIPTION = "Unknown command"
DEFAULT_FIELD_VALUE = "unknown"


class CommandSpec(NamedTuple):
    flag: str
    description: str


COMMANDS: Dict[str, CommandSpec] = {
    "0": CommandSpec("cancel", "Cancel current request"),
    "2": CommandSpec("bill", "Request bill/payment"),
    "3": CommandSpec("call", "Call waiter for assistance"),
    "4": CommandSpec("drinks", "Order drinks"),
}

_INT_RE = re.compile(r"^[+-]?[0-9]+$")


class CommandError(Exception):
    """Client-side problem with an inbound event; answered with HTTP 400."""

    error = "Bad request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingField(CommandError):
    error = "Missing required fields"


class InvalidFormat(CommandError):
    error = "Invalid request format"


def _code(cmd: Any) -> str:
    if cmd is None:
        return "null"
    if isinstance(cmd, bool):
        return "true" if cmd else "false"
    return str(cmd)


def _field(event: Dict[str, Any], name: str) -> str:
    value = event.get(name)
    return str(value) if value else DEFAULT_FIELD_VALUE


def parse_device_id(value: Any) -> int:
    if isinstance(value, bool):
        raise MissingField("objectId must be a positive integer")
    if isinstance(value, int):
        device_id = value
    elif isinstance(value, float) and value.is_integer():
        device_id = int(value)
    elif isinstance(value, str) and _INT_RE.match(value.strip()):
        try:
            device_id = int(value.strip())
        except ValueError:
            # longer than the interpreter's int digit limit
            raise MissingField("objectId must be a positive integer")
    else:
        raise MissingField("objectId must be a positive integer")
    if device_id <= 0:
        raise MissingField("objectId must be a positive integer")
    return device_id


def validate(event: Any) -> Dict[str, Any]:
    if not isinstance(event, dict):
        raise InvalidFormat("Request body must be a JSON object")
    if not event.get("objectId") or "objectCmd" not in event:
        raise MissingField("objectId and objectCmd are required")
    return event


def flag_for(code: Any) -> str:
    spec = COMMANDS.get(_code(code))
    return spec.flag if spec else FALLBACK_FLAG


def describe(code: Any) -> str:
    spec = COMMANDS.get(_code(code))
    return spec.description if spec else UNKNOWN_DESCRIPTION


def map_command(event: Dict[str, Any]) -> MappedDeviceState:
    device_id = parse_device_id(event.get("objectId"))
    code = _code(event.get("objectCmd"))
    spec = COMMANDS.get(code)
    if spec is None:
        logger.warning("Unknown command %r from device %s, defaulting to %s", code, device_id, FALLBACK_FLAG)
        flag = FALLBACK_FLAG
    else:
        flag = spec.flag
    return MappedDeviceState(deviceid=device_id, **{flag: 1})


def command_info(event: Dict[str, Any]) -> CommandInfo:
    cmd = event.get("objectCmd")
    return CommandInfo(
        received=cmd,
        tenant_code=_field(event, "tenantCode"),
        branch_code=_field(event, "branchCode"),
        channel=_field(event, "channel"),
        mapped=flag_for(cmd),
        description=describe(cmd),
    )


def queue_name(event: Dict[str, Any]) -> str:
    return f"{_field(event, 'tenantCode')}-{_field(event, 'branchCode')}"


def build_forwarding_payload(
    event: Dict[str, Any], response: Dict[str, Any], state: MappedDeviceState
) -> ForwardingPayload:
    """Wrap the response body, the original event and the derived state."""
    data = dict(response)
    data["event"] = event
    data["deviceState"] = state.wire()
    return ForwardingPayload(data=data, queue_name=queue_name(event))
