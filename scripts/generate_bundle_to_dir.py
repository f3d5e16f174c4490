"""Script to generate a sample project bundle and write it to disk for inspection.

Usage: python scripts/generate_bundle_to_dir.py [framework] [database]
"""
import asyncio
import sys
from pathlib import Path
import yaml
from apiforge.core.progress import ProgressEvent
from apiforge.domain.spec import parse_specification
from apiforge.generators.engine import GenerationEngine

framework = sys.argv[1] if len(sys.argv) > 1 else "express"
database = sys.argv[2] if len(sys.argv) > 2 else "mongodb"

# Simple sample specification
spec = parse_specification({
    "name": "Meal Planner",
    "description": "Recipes and favorite meals",
    "framework": framework,
    "database": database,
    "authStrategy": "jwt",
    "features": ["swagger", "docker", "testing", "logging"],
    "entities": [
        {
            "name": "FavoriteMeal",
            "fields": [
                {"name": "name", "type": "string", "required": True, "description": "Name of the meal"},
                {"name": "meal_type", "type": "string", "required": True,
                 "validations": [{"type": "enum", "value": ["breakfast", "lunch", "dinner", "snacks"]}]},
            ],
        },
        {
            "name": "Recipe",
            "fields": [
                {"name": "title", "type": "string", "required": True},
                {"name": "rating", "type": "number",
                 "validations": [{"type": "min", "value": 0}, {"type": "max", "value": 5}]},
            ],
        },
    ],
    "relationships": [{"type": "one-to-many", "source": "FavoriteMeal", "target": "Recipe"}],
})


def show(event: ProgressEvent) -> None:
    print(f"  [{event.percent:3d}%] {event.label}")


bundle = asyncio.run(GenerationEngine().generate(spec, show))

# Use a persistent directory in the project
output_dir = Path(__file__).parent.parent / "test_output" / f"{framework}-{database}"
for f in bundle.files:
    target = output_dir / f.path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(f.content, encoding="utf-8")

print("=" * 60)
print("BUNDLE GENERATION")
print("=" * 60)
print(f"Files written: {len(bundle.files)}")
print(f"Dependencies: {', '.join(d.name for d in bundle.dependencies)}")
print(f"Fingerprint: {bundle.spec_fingerprint}")
print(f"\nOutput directory:")
print(f"  {output_dir.absolute()}")

openapi = bundle.file("docs/openapi.yaml")
if openapi is not None:
    document = yaml.safe_load(openapi.content)
    print(f"\nOpenAPI paths: {len(document['paths'])}")
    for path in document["paths"]:
        print(f"  {path}")
