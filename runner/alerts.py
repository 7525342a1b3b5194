"""Alert Channel - one-way notifications the runner pushes to the UI."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Union

logger = logging.getLogger(__name__)

AlertType = Literal["error", "info", "success"]
DeployStage = Literal["building", "deploying", "complete"]
DeploySource = Literal["netlify", "vercel", "github"]
StageStatus = Literal["pending", "running", "complete", "failed"]


@dataclass(frozen=True)
class ActionAlert:
    """Command failure surfaced from a shell/start action."""

    type: AlertType
    title: str
    description: str
    content: str
    source: Literal["terminal", "preview"] = "terminal"


@dataclass(frozen=True)
class DatabaseAlert:
    """Database action waiting on (or informing) the user."""

    type: AlertType
    title: str
    description: str
    content: str
    action_id: str
    source: Literal["supabase"] = "supabase"


@dataclass(frozen=True)
class DeployAlert:
    """Build/deploy progress."""

    type: AlertType
    title: str
    description: str
    stage: DeployStage
    build_status: StageStatus
    deploy_status: StageStatus
    content: str = ""
    url: str | None = None
    source: DeploySource = "netlify"


Alert = Union[ActionAlert, DatabaseAlert, DeployAlert]
AlertListener = Callable[[Alert], None]


class AlertChannel:
    """Fan-out of alerts to listeners. Listeners never affect the sender."""

    def __init__(self) -> None:
        self._listeners: list[AlertListener] = []

    def subscribe(self, listener: AlertListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, alert: Alert) -> None:
        logger.debug("Alert %s: %s", alert.type, alert.title)
        for listener in list(self._listeners):
            try:
                listener(alert)
            except Exception:
                logger.exception("Alert listener failed for %r", alert.title)


def deploy_alert(
    stage: DeployStage,
    status: str,
    *,
    url: str | None = None,
    error: str | None = None,
    source: DeploySource = "netlify",
) -> DeployAlert:
    """Build the user-facing alert for a deploy stage/status pair."""
    building = stage == "building"

    if status == "failed":
        alert_type: AlertType = "error"
    elif status == "complete":
        alert_type = "success"
    else:
        alert_type = "info"

    if building:
        title = "Building Application"
    elif stage == "deploying":
        title = "Deploying Application"
    else:
        title = "Deployment Complete"

    noun, verb = ("Build", "build") if building else ("Deployment", "deploy")
    if status == "failed":
        description = f"{noun} failed"
    elif status == "running":
        description = f"{'Building' if building else 'Deploying'} your application..."
    elif status == "complete":
        description = f"{noun} completed successfully"
    else:
        description = f"Preparing to {verb} your application"

    return DeployAlert(
        type=alert_type,
        title=title,
        description=description,
        content=error or "",
        url=url,
        stage=stage,
        build_status=status if building else "complete",
        deploy_status="pending" if building else status,
        source=source,
    )
