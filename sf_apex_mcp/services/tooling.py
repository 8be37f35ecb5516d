"""Tooling API client used by the Apex class manager"""
import logging
from typing import Any, Dict, Protocol

from simple_salesforce import Salesforce
from simple_salesforce.exceptions import SalesforceError

from sf_apex_mcp.models import SaveResult

logger = logging.getLogger(__name__)


class MetadataServiceClient(Protocol):
    """What the manager needs from the metadata service"""

    def create(self, sobject: str, fields: Dict[str, Any]) -> SaveResult: ...

    def retrieve(self, sobject: str, record_id: str) -> Dict[str, Any]: ...

    def update(self, sobject: str, record_id: str, fields: Dict[str, Any]) -> SaveResult: ...

    def delete(self, sobject: str, record_id: str) -> SaveResult: ...

    def query(self, soql: str) -> Dict[str, Any]: ...


def _error_payload(error: SalesforceError) -> list:
    content = error.content
    if isinstance(content, list):
        return content
    if isinstance(content, dict):
        return [content]
    return [{"message": str(content), "errorCode": str(error.status)}]


class ToolingClient:
    """
    Thin adapter over ``Salesforce.toolingexecute``.

    Write calls (create/update/delete) never raise for an HTTP error reply:
    the error body is folded into ``SaveResult(success=False, errors=...)``.
    Reads (retrieve/query) let ``SalesforceError`` propagate.
    """

    def __init__(self, sf: Salesforce):
        self.sf = sf

    def create(self, sobject: str, fields: Dict[str, Any]) -> SaveResult:
        try:
            res = self.sf.toolingexecute(f"sobjects/{sobject}/", method="POST", data=fields)
        except SalesforceError as e:
            logger.debug("Tooling create %s rejected: %s", sobject, e)
            return SaveResult(success=False, errors=_error_payload(e))
        return SaveResult(
            success=bool(res.get("success")),
            id=res.get("id"),
            errors=res.get("errors") or [],
        )

    def retrieve(self, sobject: str, record_id: str) -> Dict[str, Any]:
        return self.sf.toolingexecute(f"sobjects/{sobject}/{record_id}")

    def update(self, sobject: str, record_id: str, fields: Dict[str, Any]) -> SaveResult:
        try:
            self.sf.toolingexecute(f"sobjects/{sobject}/{record_id}", method="PATCH", data=fields)
        except SalesforceError as e:
            logger.debug("Tooling update %s/%s rejected: %s", sobject, record_id, e)
            return SaveResult(success=False, id=record_id, errors=_error_payload(e))
        return SaveResult(success=True, id=record_id)

    def delete(self, sobject: str, record_id: str) -> SaveResult:
        try:
            self.sf.toolingexecute(f"sobjects/{sobject}/{record_id}", method="DELETE")
        except SalesforceError as e:
            logger.debug("Tooling delete %s/%s rejected: %s", sobject, record_id, e)
            return SaveResult(success=False, id=record_id, errors=_error_payload(e))
        return SaveResult(success=True, id=record_id)

    def query(self, soql: str) -> Dict[str, Any]:
        return self.sf.toolingexecute("query/", params={"q": soql})
