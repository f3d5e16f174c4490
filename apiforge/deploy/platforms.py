"""Target-platform adapters used by the deployment orchestrator."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict

from apiforge.domain.bundle import OutputBundle
from apiforge.domain.deployment import DeploymentConfig, Platform
from apiforge.generators.utils import project_slug

ENV_VAR_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_URL_TEMPLATES = {
    Platform.VERCEL: "https://{slug}.vercel.app",
    Platform.AWS: "https://{slug}.execute-api.us-east-1.amazonaws.com/prod",
    Platform.HEROKU: "https://{slug}.herokuapp.com",
    Platform.AZURE: "https://{slug}.azurewebsites.net",
    Platform.GCP: "https://{slug}.web.app",
    Platform.DIGITAL_OCEAN: "https://{slug}.ondigitalocean.app",
    Platform.DOCKER: "http://localhost:3000",
}


def deployment_url(platform: Platform, project_name: str) -> str:
    return _URL_TEMPLATES[platform].format(slug=project_slug(project_name))


class PlatformAdapter:
    """One method per deployment step, called in order.

    Each step returns a short log line. Any exception fails the deployment
    with the exception message.
    """

    async def prepare(self, bundle: OutputBundle, config: DeploymentConfig) -> str:
        raise NotImplementedError

    async def configure_environment(self, config: DeploymentConfig) -> str:
        raise NotImplementedError

    async def upload(self, bundle: OutputBundle, config: DeploymentConfig) -> str:
        raise NotImplementedError

    async def build(self, config: DeploymentConfig) -> str:
        raise NotImplementedError

    async def finalize(self, config: DeploymentConfig) -> Dict[str, Any]:
        """Return the platform details stored on the deployed record; must include ``url``."""
        raise NotImplementedError


class SimulatedPlatform(PlatformAdapter):
    """Adapter that performs no network calls and derives a deterministic URL."""

    async def prepare(self, bundle: OutputBundle, config: DeploymentConfig) -> str:
        size = sum(len(f.content.encode("utf-8")) for f in bundle.files)
        return f"Packaged {len(bundle.files)} files ({size} bytes)"

    async def configure_environment(self, config: DeploymentConfig) -> str:
        for name in config.environment_variables:
            if not ENV_VAR_NAME.fullmatch(name):
                raise ValueError(f"Invalid environment variable name '{name}'")
        return f"Configured {len(config.environment_variables)} environment variables"

    async def upload(self, bundle: OutputBundle, config: DeploymentConfig) -> str:
        return f"Uploaded package to {config.platform.value}"

    async def build(self, config: DeploymentConfig) -> str:
        return "Build succeeded"

    async def finalize(self, config: DeploymentConfig) -> Dict[str, Any]:
        return {
            "url": deployment_url(config.platform, config.project_name),
            "platform": config.platform.value,
            "region": config.settings.get("region", "us-east-1"),
        }


@dataclass
class PlatformRegistry:
    mapping: Dict[Platform, PlatformAdapter]

    def get(self, platform: Platform) -> PlatformAdapter:
        return self.mapping[platform]

    @staticmethod
    def default() -> "PlatformRegistry":
        simulated = SimulatedPlatform()
        return PlatformRegistry(mapping={p: simulated for p in Platform})
