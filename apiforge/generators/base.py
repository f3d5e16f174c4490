"""Common interface of the per-framework renderers."""
from typing import List, Tuple

from apiforge.domain.bundle import GeneratedFile
from apiforge.domain.spec import Entity, Feature, Framework
from apiforge.generators.types import EntityNames, RenderContext
from apiforge.generators.utils import kind_for_path, language_for_path


def make_file(path: str, content: str, description: str = "") -> GeneratedFile:
    if content and not content.endswith("\n"):
        content += "\n"
    return GeneratedFile(
        path=path,
        content=content,
        kind=kind_for_path(path),
        language=language_for_path(path),
        description=description,
    )


class FrameworkRenderer:
    """Renders one framework's project layout.

    Entity files are keyed by template id; the path of each depends only on
    the entity name so repeated generation yields the same path set.
    """
    framework: Framework
    runtime: str
    entity_templates: Tuple[str, ...] = ("model", "routes", "controller")
    path_param: str = ":id"
    port: int = 3000
    docker_command: str = '["npm", "start"]'

    def entity_path(self, template_id: str, names: EntityNames) -> str:
        raise NotImplementedError

    def render_entity(self, template_id: str, ctx: RenderContext, entity: Entity) -> str:
        raise NotImplementedError

    def base_files(self, ctx: RenderContext) -> List[GeneratedFile]:
        raise NotImplementedError

    def auth_files(self, ctx: RenderContext) -> List[GeneratedFile]:
        raise NotImplementedError

    def feature_files(self, ctx: RenderContext, feature: Feature) -> List[GeneratedFile]:
        return []

    def setup_instructions(self, ctx: RenderContext) -> List[str]:
        raise NotImplementedError

    def entity_files(self, ctx: RenderContext, entity: Entity) -> List[GeneratedFile]:
        names = EntityNames.of(entity.name)
        return [
            make_file(
                self.entity_path(template_id, names),
                self.render_entity(template_id, ctx, entity),
                f"{template_id.capitalize()} for {entity.name}",
            )
            for template_id in self.entity_templates
        ]
