from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from apiforge.core.errors import InvalidSpecError, TemplateError
from apiforge.core.progress import ProgressReporter, ProgressSink
from apiforge.domain.bundle import GeneratedFile, OutputBundle
from apiforge.domain.deployment import utcnow
from apiforge.domain.spec import Framework, Specification, validate_specification
from apiforge.generators.base import FrameworkRenderer, make_file
from apiforge.generators.dependencies import resolve_dependencies
from apiforge.generators.docs import build_api_doc_summary, render_readme
from apiforge.generators.features import shared_feature_files
from apiforge.generators.render_express import ExpressRenderer
from apiforge.generators.render_fastapi import FastApiRenderer
from apiforge.generators.render_flask import FlaskRenderer
from apiforge.generators.render_nestjs import NestJsRenderer
from apiforge.generators.types import RenderContext, effective_features

log = logging.getLogger(__name__)


@dataclass
class RendererRegistry:
    mapping: Dict[Framework, FrameworkRenderer]

    def get(self, framework: Framework) -> FrameworkRenderer:
        renderer = self.mapping.get(framework)
        if renderer is None:
            raise TemplateError(f"No renderer registered for framework '{framework.value}'")
        return renderer

    @staticmethod
    def default() -> "RendererRegistry":
        return RendererRegistry(mapping={
            Framework.EXPRESS: ExpressRenderer(),
            Framework.NESTJS: NestJsRenderer(),
            Framework.FASTAPI: FastApiRenderer(),
            Framework.FLASK: FlaskRenderer(),
        })


class _FileSet:
    """Ordered file collection that rejects empty and duplicate paths."""

    def __init__(self):
        self._files: List[GeneratedFile] = []
        self._paths = set()

    def add(self, files: Iterable[GeneratedFile]) -> None:
        for f in files:
            if not f.path or not f.path.strip():
                raise TemplateError("Renderer produced a file with an empty path")
            if f.path in self._paths:
                raise TemplateError(f"Renderer produced duplicate path '{f.path}'")
            self._paths.add(f.path)
            self._files.append(f)

    @property
    def files(self) -> List[GeneratedFile]:
        return list(self._files)


class GenerationEngine:
    """Turns a Specification into an OutputBundle.

    Rendering is synchronous string work; the engine yields to the event loop
    between stages so progress reaches the sink and the caller can cancel.
    """

    def __init__(self, registry: Optional[RendererRegistry] = None, step_delay: float = 0.0):
        self.registry = registry or RendererRegistry.default()
        self.step_delay = step_delay

    async def generate(self, spec: Specification, progress: Optional[ProgressSink] = None) -> OutputBundle:
        reporter = ProgressReporter(progress)
        try:
            return await self._generate(spec, reporter)
        finally:
            reporter.close()

    async def _generate(self, spec: Specification, reporter: ProgressReporter) -> OutputBundle:
        reporter.report(0, "Validating specification")
        if not spec.is_generation_ready:
            raise InvalidSpecError("Framework and database must be selected before generating")
        violations = validate_specification(spec)
        if violations:
            raise InvalidSpecError("; ".join(violations))

        canonical = spec.canonical()
        renderer = self.registry.get(canonical.framework)
        ctx = RenderContext.build(canonical)
        summary = build_api_doc_summary(ctx, renderer.path_param)
        files = _FileSet()

        log.info("Generating %s project %s", canonical.framework.value, canonical.name, extra={"operation": "generate"})

        await self._stage(reporter, 10, "Generating project structure")
        files.add(self._render("base files", lambda: renderer.base_files(ctx)))

        entities = canonical.entities
        for index, entity in enumerate(entities):
            await self._stage(reporter, 20 + (40 * index) // max(len(entities), 1), f"Generating {entity.name} files")
            files.add(self._render(f"entity '{entity.name}'", lambda e=entity: renderer.entity_files(ctx, e)))

        if ctx.auth_enabled:
            await self._stage(reporter, 60, "Generating authentication")
            files.add(self._render("authentication", lambda: renderer.auth_files(ctx)))

        await self._stage(reporter, 70, "Generating features")
        for feature in effective_features(canonical):
            files.add(self._render(f"feature '{feature.value}'", lambda f=feature: renderer.feature_files(ctx, f)))
            files.add(self._render(
                f"feature '{feature.value}'",
                lambda f=feature: shared_feature_files(ctx, renderer, f, summary),
            ))

        await self._stage(reporter, 90, "Resolving dependencies")
        dependencies = resolve_dependencies(canonical.framework, canonical.database, ctx.features)
        instructions = self._render("setup instructions", lambda: renderer.setup_instructions(ctx))

        await self._stage(reporter, 95, "Writing documentation")
        files.add([make_file("README.md", render_readme(ctx, summary, dependencies, instructions), "Project documentation")])

        bundle = OutputBundle(
            files=tuple(files.files),
            dependencies=dependencies,
            setup_instructions=tuple(instructions),
            api_doc_summary=summary,
            spec_fingerprint=canonical.fingerprint(),
            generated_at=utcnow(),
        )
        reporter.complete("Generation completed")
        log.info("Generated %d files", len(bundle.files), extra={"operation": "generate"})
        return bundle

    async def _stage(self, reporter: ProgressReporter, percent: int, label: str) -> None:
        reporter.report(percent, label)
        await asyncio.sleep(self.step_delay)

    @staticmethod
    def _render(what: str, fn: Callable):
        try:
            return fn()
        except TemplateError:
            raise
        except Exception as e:
            raise TemplateError(f"Rendering {what} failed: {e}") from e
