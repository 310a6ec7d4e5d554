from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

QUEUE_MESSAGE_TYPE = "SewaCall"


def utc_timestamp() -> str:
    # ISO-8601, millisecond precision, "Z" suffix
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class WireModel(BaseModel):
    """Base for bodies that travel over HTTP with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class MappedDeviceState(WireModel):
    deviceid: int
    cancel: int = 0
    bill: int = 0
    call: int = 0
    drinks: int = 0


class CommandInfo(WireModel):
    received: Any  # objectCmd exactly as sent
    tenant_code: str
    branch_code: str
    channel: str
    mapped: str  # flag name
    description: str


class CommandResponse(WireModel):
    success: bool = True
    message: str = "Command processed successfully"
    command_info: CommandInfo
    timestamp: str = Field(default_factory=utc_timestamp)


class ErrorResponse(WireModel):
    success: bool = False
    error: str
    message: Optional[str] = None
    timestamp: str = Field(default_factory=utc_timestamp)


class NotFoundResponse(WireModel):
    success: bool = False
    error: str = "Endpoint not found"
    path: str
    method: str
    available_endpoints: List[str]
    timestamp: str = Field(default_factory=utc_timestamp)


class ForwardingPayload(WireModel):
    type: str = QUEUE_MESSAGE_TYPE
    data: Dict[str, Any]
    queue_name: str
