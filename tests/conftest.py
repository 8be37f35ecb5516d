import itertools
from typing import Any, Dict, List, Optional

import pytest

from sf_apex_mcp.config import SalesforceConfig
from sf_apex_mcp.models import SaveResult
from sf_apex_mcp.services.apex_manager import ApexClassManager


class FakeToolingClient:
    """
    In-memory stand-in for ToolingClient.

    ``records`` is what every query returns, ``statuses`` the successive
    ContainerAsyncRequest records handed out by retrieve (the last one
    repeats), ``rejections`` maps an sobject to the errors its create fails with.
    """

    def __init__(
        self,
        records: Optional[List[Dict[str, Any]]] = None,
        statuses: Optional[List[Dict[str, Any]]] = None,
        rejections: Optional[Dict[str, List[Any]]] = None,
        delete_rejections: Optional[Dict[str, List[Any]]] = None,
    ):
        self.records = records if records is not None else []
        self.statuses = list(statuses or [{"State": "Completed"}])
        self.rejections = rejections or {}
        self.delete_rejections = delete_rejections or {}
        self.calls: List[tuple] = []
        self._ids = itertools.count(1)

    def _calls_for(self, method: str, sobject: Optional[str] = None) -> List[tuple]:
        return [c for c in self.calls if c[0] == method and (sobject is None or c[1] == sobject)]

    def created(self, sobject: str) -> List[Dict[str, Any]]:
        return [c[2] for c in self._calls_for("create", sobject)]

    def create(self, sobject: str, fields: Dict[str, Any]) -> SaveResult:
        self.calls.append(("create", sobject, fields))
        if sobject in self.rejections:
            return SaveResult(success=False, errors=self.rejections[sobject])
        return SaveResult(success=True, id=f"{sobject}-{next(self._ids)}")

    def retrieve(self, sobject: str, record_id: str) -> Dict[str, Any]:
        self.calls.append(("retrieve", sobject, record_id))
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    def update(self, sobject: str, record_id: str, fields: Dict[str, Any]) -> SaveResult:
        self.calls.append(("update", sobject, (record_id, fields)))
        return SaveResult(success=True, id=record_id)

    def delete(self, sobject: str, record_id: str) -> SaveResult:
        self.calls.append(("delete", sobject, record_id))
        if sobject in self.delete_rejections:
            return SaveResult(success=False, id=record_id, errors=self.delete_rejections[sobject])
        return SaveResult(success=True, id=record_id)

    def query(self, soql: str) -> Dict[str, Any]:
        self.calls.append(("query", None, soql))
        return {"totalSize": len(self.records), "done": True, "records": self.records}


class FakeClock:
    """Monotonic clock that only moves when sleep() is called"""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def config() -> SalesforceConfig:
    return SalesforceConfig(
        _env_file=None,
        deploy_poll_interval_seconds=1.0,
        deploy_poll_backoff=1.0,
        deploy_poll_max_interval_seconds=30.0,
        deploy_timeout_seconds=300,
        deploy_max_poll_attempts=None,
        cleanup_staged_metadata=True,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_manager(config, clock):
    def _make(client, **overrides):
        cfg = config.model_copy(update=overrides) if overrides else config
        return ApexClassManager(
            client, config=cfg, sleep=clock.sleep, clock=clock, now=lambda: 1700000000.5
        )
    return _make
