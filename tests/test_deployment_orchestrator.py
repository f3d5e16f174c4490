"""Tests for the deployment state machine and orchestrator."""
import asyncio
import pytest
from apiforge.core.errors import EmptyBundleError, InvalidTransitionError, NotFoundError
from apiforge.deploy.orchestrator import DeploymentOrchestrator
from apiforge.deploy.platforms import PlatformRegistry, SimulatedPlatform, deployment_url
from apiforge.domain.bundle import ApiDocSummary, GeneratedFile, OutputBundle
from apiforge.domain.deployment import (
    DeploymentConfig,
    DeploymentRecord,
    DeploymentStatus,
    Platform,
    utcnow,
)


def _bundle(files=None):
    if files is None:
        files = (GeneratedFile(path="server.js", content="require('express');\n"),)
    return OutputBundle(
        files=files,
        api_doc_summary=ApiDocSummary(title="Blog API", description="Blog"),
        generated_at=utcnow(),
    )


def _config(platform="vercel", **extra):
    return DeploymentConfig.model_validate({"platform": platform, "projectName": "Blog", **extra})


def _orchestrator(adapter=None):
    registry = PlatformRegistry.default()
    if adapter is not None:
        registry = PlatformRegistry(mapping={p: adapter for p in Platform})
    return DeploymentOrchestrator(registry=registry, step_delay=0, ticks_per_step=2)


class _FailingBuild(SimulatedPlatform):
    async def build(self, config):
        raise RuntimeError("npm run build exited with code 1")


class _NoUrl(SimulatedPlatform):
    async def finalize(self, config):
        return {"region": "eu-west-1"}


def test_vercel_deployment_succeeds(collector):
    orchestrator = _orchestrator()
    record = asyncio.run(orchestrator.deploy(_bundle(), _config(), collector))

    assert record.status == DeploymentStatus.DEPLOYED
    assert record.url == "https://blog.vercel.app"
    assert record.error is None
    assert record.platform_details["region"] == "us-east-1"
    assert len(record.logs) == 5
    assert record.logs[0].startswith("Preparing deployment package: Packaged 1 files")
    assert orchestrator.get_status(record.id) == record

    percents = collector.percents
    assert percents[0] == 0
    assert percents == sorted(percents)
    assert percents.count(100) == 1 and percents[-1] == 100


def test_settings_reach_platform_details():
    record = asyncio.run(_orchestrator().deploy(_bundle(), _config("heroku", settings={"region": "eu"})))
    assert record.url == "https://blog.herokuapp.com"
    assert record.platform_details == {"platform": "heroku", "region": "eu"}


def test_failed_build_marks_record_failed(collector):
    orchestrator = _orchestrator(_FailingBuild())
    record = asyncio.run(orchestrator.deploy(_bundle(), _config(), collector))

    assert record.status == DeploymentStatus.FAILED
    assert record.error == "npm run build exited with code 1"
    assert record.url is None
    assert record.logs[-1] == "Building application: failed"
    assert 100 not in collector.percents
    assert orchestrator.get_status(record.id).status == DeploymentStatus.FAILED


def test_invalid_environment_variable_fails_deployment():
    record = asyncio.run(_orchestrator().deploy(
        _bundle(), _config(environmentVariables={"1BAD": "x", "GOOD": "y"})
    ))
    assert record.status == DeploymentStatus.FAILED
    assert "1BAD" in record.error


def test_missing_url_fails_deployment():
    record = asyncio.run(_orchestrator(_NoUrl()).deploy(_bundle(), _config()))
    assert record.status == DeploymentStatus.FAILED
    assert record.error == "Platform did not report a deployment URL"


def test_empty_bundle_is_rejected_before_any_record():
    orchestrator = _orchestrator()
    with pytest.raises(EmptyBundleError):
        asyncio.run(orchestrator.deploy(_bundle(files=()), _config()))
    assert orchestrator._records == {}


def test_every_attempt_gets_a_new_record():
    orchestrator = _orchestrator()
    first = asyncio.run(orchestrator.deploy(_bundle(), _config()))
    second = asyncio.run(orchestrator.deploy(_bundle(), _config()))

    assert first.id != second.id
    assert first.url == second.url
    assert orchestrator.get_status(first.id).status == DeploymentStatus.DEPLOYED


def test_unknown_deployment_status_raises():
    with pytest.raises(NotFoundError):
        _orchestrator().get_status("deploy-missing")


def test_cancelled_deployment_is_marked_failed(collector):
    orchestrator = DeploymentOrchestrator(step_delay=0.05, ticks_per_step=5)

    async def run():
        task = asyncio.create_task(orchestrator.deploy(_bundle(), _config(), collector))
        await asyncio.sleep(0.02)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    (record,) = orchestrator._records.values()
    assert record.status == DeploymentStatus.FAILED
    assert record.error == "Deployment cancelled"
    assert 100 not in collector.percents


def test_status_reads_in_flight_state():
    orchestrator = DeploymentOrchestrator(step_delay=0.02, ticks_per_step=2)
    seen = []

    async def run():
        task = asyncio.create_task(orchestrator.deploy(_bundle(), _config()))
        await asyncio.sleep(0.01)
        (record,) = orchestrator._records.values()
        seen.append(orchestrator.get_status(record.id).status)
        return await task

    final = asyncio.run(run())
    assert seen == [DeploymentStatus.DEPLOYING]
    assert final.status == DeploymentStatus.DEPLOYED


def test_terminal_records_cannot_move():
    record = DeploymentRecord(project_name="Blog", platform=Platform.AWS).mark_deploying()
    deployed = record.mark_deployed("https://example.com")

    with pytest.raises(InvalidTransitionError):
        deployed.mark_failed("late failure")
    with pytest.raises(InvalidTransitionError):
        record.mark_failed("boom").mark_deploying()
    assert record.status == DeploymentStatus.DEPLOYING, "records are immutable values"


def test_record_outcome_fields_are_consistent():
    with pytest.raises(ValueError):
        DeploymentRecord(project_name="Blog", platform=Platform.AWS, url="https://example.com")
    with pytest.raises(ValueError):
        DeploymentRecord(project_name="Blog", platform=Platform.AWS, status=DeploymentStatus.FAILED)


def test_deployment_urls_use_project_slug():
    assert deployment_url(Platform.VERCEL, "My Shop") == "https://my-shop.vercel.app"
    assert deployment_url(Platform.DOCKER, "My Shop") == "http://localhost:3000"


def test_registry_forgets_oldest_finished_attempts():
    orchestrator = DeploymentOrchestrator(step_delay=0, ticks_per_step=1, max_records=2)
    records = [asyncio.run(orchestrator.deploy(_bundle(), _config())) for _ in range(3)]

    with pytest.raises(NotFoundError):
        orchestrator.get_status(records[0].id)
    assert [orchestrator.get_status(r.id) for r in records[1:]] == records[1:]
    assert len(orchestrator._records) == 2


@pytest.mark.parametrize("name", ["", "   "])
def test_blank_project_name_is_rejected(name):
    with pytest.raises(ValueError, match="project name must not be empty"):
        _config(projectName=name)


def test_project_name_is_trimmed():
    config = _config(projectName="  My Shop ")
    assert config.project_name == "My Shop"
    record = asyncio.run(_orchestrator().deploy(_bundle(), config))
    assert record.url == "https://my-shop.vercel.app"
