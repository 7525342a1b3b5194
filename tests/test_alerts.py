"""Tests for the alert channel and the deploy-stage alert table."""

import pytest

from runner.alerts import ActionAlert, AlertChannel, deploy_alert


class TestAlertChannel:
    def test_fan_out_and_unsubscribe(self):
        channel = AlertChannel()
        a, b = [], []
        channel.subscribe(a.append)
        unsubscribe = channel.subscribe(b.append)

        alert = ActionAlert(type="error", title="t", description="d", content="c")
        channel.emit(alert)
        unsubscribe()
        channel.emit(alert)

        assert a == [alert, alert]
        assert b == [alert]

    def test_listener_error_is_contained(self):
        channel = AlertChannel()
        received = []

        def broken(alert):
            raise RuntimeError("ui crashed")

        channel.subscribe(broken)
        channel.subscribe(received.append)
        channel.emit(ActionAlert(type="info", title="t", description="d", content=""))

        assert len(received) == 1


class TestDeployAlert:
    @pytest.mark.parametrize(
        "stage,status,alert_type,title,description",
        [
            ("building", "pending", "info", "Building Application", "Preparing to build your application"),
            ("building", "running", "info", "Building Application", "Building your application..."),
            ("building", "complete", "success", "Building Application", "Build completed successfully"),
            ("building", "failed", "error", "Building Application", "Build failed"),
            ("deploying", "running", "info", "Deploying Application", "Deploying your application..."),
            ("deploying", "failed", "error", "Deploying Application", "Deployment failed"),
            ("complete", "complete", "success", "Deployment Complete", "Deployment completed successfully"),
        ],
    )
    def test_stage_status_table(self, stage, status, alert_type, title, description):
        alert = deploy_alert(stage, status)
        assert alert.type == alert_type
        assert alert.title == title
        assert alert.description == description

    def test_build_and_deploy_status(self):
        building = deploy_alert("building", "running")
        assert building.build_status == "running"
        assert building.deploy_status == "pending"

        deploying = deploy_alert("deploying", "failed", error="403 Forbidden", source="github")
        assert deploying.build_status == "complete"
        assert deploying.deploy_status == "failed"
        assert deploying.content == "403 Forbidden"
        assert deploying.source == "github"

    def test_defaults(self):
        alert = deploy_alert("complete", "complete")
        assert alert.content == ""
        assert alert.url is None
        assert alert.source == "netlify"
