"""Feature file sets that only depend on the runtime, not on the framework."""
from typing import List

from apiforge.domain.bundle import ApiDocSummary, GeneratedFile
from apiforge.domain.spec import Database, Feature
from apiforge.generators.base import FrameworkRenderer, make_file
from apiforge.generators.docs import render_openapi
from apiforge.generators.types import RenderContext


def render_dockerfile(renderer: FrameworkRenderer) -> str:
    """Generate Dockerfile content."""
    if renderer.runtime == "python":
        return f"""FROM python:3.11-slim

WORKDIR /app

COPY requirements.txt .
RUN pip install --no-cache-dir -r requirements.txt

COPY . .

ENV PYTHONUNBUFFERED=1

EXPOSE {renderer.port}
CMD {renderer.docker_command}
"""
    return f"""FROM node:20-alpine

WORKDIR /app

COPY package*.json ./
RUN npm ci --omit=dev

COPY . .

EXPOSE {renderer.port}
CMD {renderer.docker_command}
"""


_DB_SERVICES = {
    Database.POSTGRESQL: ("postgres", """  postgres:
    image: postgres:16
    environment:
      POSTGRES_USER: app
      POSTGRES_PASSWORD: app
      POSTGRES_DB: app
    ports:
      - "5432:5432"
    volumes:
      - db_data:/var/lib/postgresql/data
    healthcheck:
      test: ["CMD-SHELL", "pg_isready -U app -d app"]
      interval: 5s
      timeout: 5s
      retries: 5
"""),
    Database.MYSQL: ("mysql", """  mysql:
    image: mysql:8
    environment:
      MYSQL_USER: app
      MYSQL_PASSWORD: app
      MYSQL_DATABASE: app
      MYSQL_ROOT_PASSWORD: root
    ports:
      - "3306:3306"
    volumes:
      - db_data:/var/lib/mysql
    healthcheck:
      test: ["CMD", "mysqladmin", "ping", "-h", "localhost"]
      interval: 5s
      timeout: 5s
      retries: 5
"""),
    Database.MONGODB: ("mongo", """  mongo:
    image: mongo:7
    ports:
      - "27017:27017"
    volumes:
      - db_data:/data/db
    healthcheck:
      test: echo 'db.runCommand("ping").ok' | mongosh localhost:27017/test --quiet
      interval: 5s
      timeout: 5s
      retries: 5
"""),
}


def render_docker_compose(ctx: RenderContext, renderer: FrameworkRenderer) -> str:
    """Generate docker-compose.yml content."""
    service = _DB_SERVICES.get(ctx.spec.database)
    lines = [
        "services:",
        "  api:",
        "    build: .",
        "    ports:",
        f'      - "{renderer.port}:{renderer.port}"',
        "    env_file:",
        "      - .env",
    ]
    if service is None:
        return "\n".join(lines) + "\n"
    name, block = service
    lines.extend([
        "    depends_on:",
        f"      {name}:",
        "        condition: service_healthy",
        "",
    ])
    return "\n".join(lines) + "\n" + block + "\nvolumes:\n  db_data:\n"


def render_ci_workflow(renderer: FrameworkRenderer) -> str:
    if renderer.runtime == "python":
        setup = """      - uses: actions/setup-python@v5
        with:
          python-version: "3.11"
      - run: pip install -r requirements.txt
      - run: python -m pytest -q"""
    else:
        setup = """      - uses: actions/setup-node@v4
        with:
          node-version: 20
      - run: npm ci
      - run: npm test --if-present"""
    return f"""name: ci

on:
  push:
    branches: [main]
  pull_request:

jobs:
  test:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
{setup}
"""


def shared_feature_files(
    ctx: RenderContext,
    renderer: FrameworkRenderer,
    feature: Feature,
    summary: ApiDocSummary,
) -> List[GeneratedFile]:
    if feature == Feature.DOCKER:
        return [
            make_file("Dockerfile", render_dockerfile(renderer), "Container image"),
            make_file("docker-compose.yml", render_docker_compose(ctx, renderer), "Local stack"),
            make_file(".dockerignore", "node_modules\n.env\n__pycache__\n.venv\n", "Docker build exclusions"),
        ]
    if feature == Feature.CICD:
        return [make_file(".github/workflows/ci.yml", render_ci_workflow(renderer), "CI pipeline")]
    if feature == Feature.SWAGGER:
        return [make_file("docs/openapi.yaml", render_openapi(ctx, summary), "OpenAPI document")]
    return []
