"""Request, result, and envelope types for the Apex class manager"""
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApexOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ManageApexRequest(BaseModel):
    """
    Operation request as received from the tool call.

    ``operation`` is kept as a plain string so an unknown value reaches the
    dispatcher and is reported in the result envelope instead of failing
    model construction.
    """

    model_config = ConfigDict(populate_by_name=True)

    operation: str
    class_name: str = Field(alias="className")
    body: Optional[str] = None
    status: Optional[str] = None
    api_version: Optional[str] = Field(default=None, alias="apiVersion")


class ResolvedApexRequest(BaseModel):
    """Request with every default filled in; built before any remote call"""

    model_config = ConfigDict(frozen=True)

    operation: ApexOperation
    class_name: str
    body: Optional[str]
    status: str
    api_version: str


class SaveResult(BaseModel):
    """Normalized outcome of a Tooling create/update/delete"""

    success: bool
    id: Optional[str] = None
    errors: List[Any] = Field(default_factory=list)


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ResultEnvelope(BaseModel):
    """The single output shape of every operation, success or failure"""

    model_config = ConfigDict(populate_by_name=True)

    content: List[TextContent]
    is_error: bool = Field(default=False, alias="isError")
    error_kind: Optional[str] = Field(default=None, alias="errorKind")

    @property
    def text(self) -> str:
        return self.content[0].text

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
