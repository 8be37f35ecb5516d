"""Create, update and delete Apex classes through the Tooling API

Update goes through a MetadataContainer because ApexClass bodies cannot be
patched directly once the class exists:

    ApexClass lookup -> MetadataContainer -> ApexClassMember
        -> ContainerAsyncRequest -> poll State until it leaves Queued/InProgress

The container is deleted again once the update finishes, whatever the
outcome (see ``cleanup_staged_metadata`` in the configuration).
"""
import json
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Union

import pydantic

from sf_apex_mcp.config import SalesforceConfig, get_config
from sf_apex_mcp.mcp.tools.utils import format_error_response, format_success_response
from sf_apex_mcp.models import (
    ApexOperation,
    ManageApexRequest,
    ResolvedApexRequest,
    ResultEnvelope,
    SaveResult,
)
from sf_apex_mcp.services.tooling import MetadataServiceClient
from sf_apex_mcp.utils.errors import (
    AmbiguousClassNameError,
    DeploymentCancelledError,
    DeploymentFailedError,
    DeploymentTimeoutError,
    NotFoundError,
    RemoteRejectionError,
)
from sf_apex_mcp.utils.retry import PollCancelled, PollPolicy, PollTimeout, poll_until
from sf_apex_mcp.utils.validators import (
    ValidationError,
    soql_quote,
    validate_apex_class_name,
    validate_apex_status,
    validate_api_version,
)

logger = logging.getLogger(__name__)

PENDING_STATES = frozenset({"Queued", "InProgress"})
COMPLETED_STATE = "Completed"

# Tooling API limit for MetadataContainer.Name
CONTAINER_NAME_MAX_LENGTH = 32


@dataclass
class StagedDeployment:
    """Remote objects created for one update"""

    container_id: str
    request_id: Optional[str] = None
    settled: bool = False


def container_name(class_name: str, now: float) -> str:
    """``{className}_{unixMillis}``, class name truncated to fit the 32-char limit"""
    suffix = f"_{int(now * 1000)}"
    return f"{class_name[:CONTAINER_NAME_MAX_LENGTH - len(suffix)]}{suffix}"


def _serialize_errors(errors: Any) -> str:
    return json.dumps(errors, default=str)


def _deployment_failure_message(status: Dict[str, Any]) -> str:
    message = f"Deployment failed with status: {status.get('State')}"

    problems = []
    details = status.get("DeployDetails") or {}
    for failure in details.get("componentFailures") or []:
        problem = failure.get("problem")
        if not problem:
            continue
        line = failure.get("lineNumber")
        problems.append(f"line {line}: {problem}" if line else problem)
    if not problems and status.get("ErrorMsg"):
        problems.append(status["ErrorMsg"])

    if problems:
        message += ". Details: " + "; ".join(problems)
    return message


class ApexClassManager:
    """
    Stateless handler for create/update/delete requests.

    Args:
        client: Tooling client (``ToolingClient`` or anything with the same methods)
        config: Configuration; defaults to the global instance
        sleep: Wait function used between status checks
        clock: Monotonic clock used for the deployment deadline
        now: Wall clock used to name metadata containers
    """

    def __init__(
        self,
        client: MetadataServiceClient,
        config: Optional[SalesforceConfig] = None,
        sleep: Optional[Callable[[float], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], float] = time.time,
    ):
        self.client = client
        self.config = config or get_config()
        self._sleep = sleep
        self._clock = clock
        self._now = now

    def handle(
        self,
        request: Union[ManageApexRequest, Dict[str, Any]],
        cancel_event: Optional[threading.Event] = None,
    ) -> ResultEnvelope:
        """Run one request and return its envelope. Never raises."""
        context = "manage_apex"
        try:
            if not isinstance(request, ManageApexRequest):
                try:
                    request = ManageApexRequest.model_validate(request)
                except pydantic.ValidationError as e:
                    raise ValidationError(f"Invalid request: {e.errors()}") from e
            context = f"{request.operation} {request.class_name}"

            resolved = self.resolve(request)

            if resolved.operation is ApexOperation.CREATE:
                text = self.create(resolved)
            elif resolved.operation is ApexOperation.UPDATE:
                text = self.update(resolved, cancel_event=cancel_event)
            else:
                text = self.delete(resolved)
        except Exception as e:
            return format_error_response(e, context=context)

        logger.info(text)
        return format_success_response(text)

    def resolve(self, request: ManageApexRequest) -> ResolvedApexRequest:
        """Validate the request and fill in default status and API version."""
        try:
            operation = ApexOperation(request.operation)
        except ValueError:
            raise ValidationError(f"Invalid operation: {request.operation}") from None

        validate_apex_class_name(request.class_name)

        status = request.status or self.config.apex_default_status
        api_version = request.api_version or self.config.apex_default_api_version

        # delete ignores status and API version
        if operation in (ApexOperation.CREATE, ApexOperation.UPDATE):
            validate_apex_status(status)
            validate_api_version(api_version)
            if not request.body:
                raise ValidationError(f"Body is required for {operation.value} operation")

        return ResolvedApexRequest(
            operation=operation,
            class_name=request.class_name,
            body=request.body,
            status=status,
            api_version=api_version,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(self, request: ResolvedApexRequest) -> str:
        result = self.client.create("ApexClass", {
            "Name": request.class_name,
            "Body": request.body,
            "Status": request.status,
            "ApiVersion": request.api_version,
        })
        self._require_success(
            result,
            f"Failed to create Apex class: {request.class_name}. Details: {_serialize_errors(result.errors)}",
        )
        return f"Successfully created Apex class: {request.class_name} with ID: {result.id}"

    def update(
        self,
        request: ResolvedApexRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        class_id = self.find_class_id(request.class_name)

        with self._staged_container(request.class_name) as staged:
            member = self.client.create("ApexClassMember", {
                "MetadataContainerId": staged.container_id,
                "ContentEntityId": class_id,
                "Body": request.body,
            })
            self._require_success(
                member, f"Failed to create ApexClassMember: {_serialize_errors(member.errors)}"
            )

            deploy = self.client.create("ContainerAsyncRequest", {
                "IsCheckOnly": False,
                "MetadataContainerId": staged.container_id,
            })
            self._require_success(
                deploy, f"Failed to deploy container: {_serialize_errors(deploy.errors)}"
            )
            staged.request_id = deploy.id
            logger.info("Deployment %s queued for %s", deploy.id, request.class_name)

            status = self._wait_for_deployment(deploy.id, cancel_event)
            staged.settled = True

            state = status.get("State")
            if state != COMPLETED_STATE:
                raise DeploymentFailedError(_deployment_failure_message(status), state=state)

        return f"Successfully updated Apex class: {request.class_name} with ID: {class_id}"

    def delete(self, request: ResolvedApexRequest) -> str:
        class_id = self.find_class_id(request.class_name)

        result = self.client.delete("ApexClass", class_id)
        self._require_success(
            result,
            f"Failed to delete Apex class: {request.class_name}. Details: {_serialize_errors(result.errors)}",
        )
        return f"Successfully deleted Apex class: {request.class_name} with ID: {class_id}"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def find_class_id(self, class_name: str) -> str:
        """Exact-name lookup; exactly one row is required."""
        soql = f"SELECT Id FROM ApexClass WHERE Name = {soql_quote(class_name)}"
        records = (self.client.query(soql) or {}).get("records") or []

        if not records:
            raise NotFoundError(f"Apex class {class_name} not found")
        if len(records) > 1:
            raise AmbiguousClassNameError(
                f"Apex class name {class_name} is ambiguous: {len(records)} classes match"
            )
        return records[0]["Id"]

    @staticmethod
    def _require_success(result: SaveResult, message: str) -> None:
        if not result.success:
            raise RemoteRejectionError(message, result.errors)

    @contextmanager
    def _staged_container(self, class_name: str) -> Iterator[StagedDeployment]:
        name = container_name(class_name, self._now())
        result = self.client.create("MetadataContainer", {"Name": name})
        self._require_success(
            result, f"Failed to create MetadataContainer: {_serialize_errors(result.errors)}"
        )
        logger.info("Created MetadataContainer %s (%s)", name, result.id)

        staged = StagedDeployment(container_id=result.id)
        try:
            yield staged
        finally:
            if self.config.cleanup_staged_metadata:
                self._release(staged)

    def _release(self, staged: StagedDeployment) -> None:
        """Best-effort abort of an unsettled deployment, then container delete."""
        if staged.request_id and not staged.settled:
            try:
                aborted = self.client.update(
                    "ContainerAsyncRequest", staged.request_id, {"State": "Aborted"}
                )
                if not aborted.success:
                    logger.warning(
                        "Could not abort deployment %s: %s",
                        staged.request_id, _serialize_errors(aborted.errors),
                    )
            except Exception as e:
                logger.warning("Could not abort deployment %s: %s", staged.request_id, e)

        try:
            deleted = self.client.delete("MetadataContainer", staged.container_id)
            if not deleted.success:
                logger.warning(
                    "Could not delete MetadataContainer %s: %s",
                    staged.container_id, _serialize_errors(deleted.errors),
                )
        except Exception as e:
            logger.warning("Could not delete MetadataContainer %s: %s", staged.container_id, e)

    def _poll_policy(self) -> PollPolicy:
        cfg = self.config
        return PollPolicy(
            interval=cfg.deploy_poll_interval_seconds,
            backoff=cfg.deploy_poll_backoff,
            max_interval=cfg.deploy_poll_max_interval_seconds,
            timeout=cfg.deploy_timeout_seconds,
            max_attempts=cfg.deploy_max_poll_attempts,
        )

    def _wait_for_deployment(
        self, request_id: str, cancel_event: Optional[threading.Event]
    ) -> Dict[str, Any]:
        def fetch() -> Dict[str, Any]:
            status = self.client.retrieve("ContainerAsyncRequest", request_id)
            logger.debug("Deployment %s state: %s", request_id, status.get("State"))
            return status

        try:
            return poll_until(
                fetch,
                lambda status: status.get("State") in PENDING_STATES,
                self._poll_policy(),
                cancel_event=cancel_event,
                sleep=self._sleep,
                clock=self._clock,
            )
        except PollTimeout as e:
            last_state = (e.last_value or {}).get("State")
            raise DeploymentTimeoutError(
                f"Deployment {request_id} did not finish: {e}; last status: {last_state}"
            ) from e
        except PollCancelled as e:
            last_state = (e.last_value or {}).get("State")
            raise DeploymentCancelledError(
                f"Deployment {request_id} polling cancelled; last status: {last_state}"
            ) from e


def handle_manage_apex(
    client: MetadataServiceClient,
    request: Union[ManageApexRequest, Dict[str, Any]],
    cancel_event: Optional[threading.Event] = None,
    config: Optional[SalesforceConfig] = None,
) -> ResultEnvelope:
    """Handle one manage-Apex request against ``client``."""
    return ApexClassManager(client, config=config).handle(request, cancel_event=cancel_event)
