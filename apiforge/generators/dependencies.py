"""Dependency list of a generated project.

The list is a pure function of (framework, database, features): framework
packages first, then the database driver, then per-feature packages in
feature declaration order. A package referenced twice keeps its first slot.
"""
from typing import Dict, Iterable, List, Tuple

from apiforge.domain.bundle import Dependency, DependencyType
from apiforge.domain.spec import Database, Feature, Framework

PROD = DependencyType.PRODUCTION
DEV = DependencyType.DEVELOPMENT

_Pkg = Tuple[str, str, DependencyType]

FRAMEWORK_PACKAGES: Dict[Framework, List[_Pkg]] = {
    Framework.EXPRESS: [
        ("express", "^4.18.2", PROD),
        ("dotenv", "^16.0.3", PROD),
        ("cors", "^2.8.5", PROD),
        ("nodemon", "^2.0.22", DEV),
    ],
    Framework.NESTJS: [
        ("@nestjs/common", "^10.0.0", PROD),
        ("@nestjs/core", "^10.0.0", PROD),
        ("@nestjs/platform-express", "^10.0.0", PROD),
        ("@nestjs/config", "^3.0.0", PROD),
        ("reflect-metadata", "^0.1.13", PROD),
        ("rxjs", "^7.8.1", PROD),
        ("class-validator", "^0.14.0", PROD),
        ("@nestjs/cli", "^10.0.0", DEV),
        ("typescript", "^5.1.3", DEV),
    ],
    Framework.FASTAPI: [
        ("fastapi", "0.115.6", PROD),
        ("uvicorn[standard]", "0.30.6", PROD),
        ("pydantic", "2.9.2", PROD),
        ("pydantic-settings", "2.5.2", PROD),
    ],
    Framework.FLASK: [
        ("flask", "3.0.3", PROD),
        ("python-dotenv", "1.0.1", PROD),
        ("gunicorn", "22.0.0", PROD),
    ],
}

_SEQUELIZE = ("sequelize", "^6.32.0", PROD)
_TYPEORM = [("@nestjs/typeorm", "^10.0.0", PROD), ("typeorm", "^0.3.17", PROD)]
_ASYNC_SQLALCHEMY = ("sqlalchemy[asyncio]", "2.0.36", PROD)
_FLASK_SQLALCHEMY = ("flask-sqlalchemy", "3.1.1", PROD)

DATABASE_PACKAGES: Dict[Tuple[Framework, Database], List[_Pkg]] = {
    (Framework.EXPRESS, Database.MONGODB): [("mongoose", "^7.0.0", PROD)],
    (Framework.EXPRESS, Database.POSTGRESQL): [_SEQUELIZE, ("pg", "^8.11.0", PROD), ("pg-hstore", "^2.3.4", PROD)],
    (Framework.EXPRESS, Database.MYSQL): [_SEQUELIZE, ("mysql2", "^3.6.0", PROD)],
    (Framework.EXPRESS, Database.SQLITE): [_SEQUELIZE, ("sqlite3", "^5.1.6", PROD)],
    (Framework.NESTJS, Database.MONGODB): [("@nestjs/mongoose", "^10.0.0", PROD), ("mongoose", "^7.0.0", PROD)],
    (Framework.NESTJS, Database.POSTGRESQL): _TYPEORM + [("pg", "^8.11.0", PROD)],
    (Framework.NESTJS, Database.MYSQL): _TYPEORM + [("mysql2", "^3.6.0", PROD)],
    (Framework.NESTJS, Database.SQLITE): _TYPEORM + [("sqlite3", "^5.1.6", PROD)],
    (Framework.FASTAPI, Database.MONGODB): [("motor", "3.6.0", PROD)],
    (Framework.FASTAPI, Database.POSTGRESQL): [_ASYNC_SQLALCHEMY, ("asyncpg", "0.30.0", PROD)],
    (Framework.FASTAPI, Database.MYSQL): [_ASYNC_SQLALCHEMY, ("aiomysql", "0.2.0", PROD)],
    (Framework.FASTAPI, Database.SQLITE): [_ASYNC_SQLALCHEMY, ("aiosqlite", "0.20.0", PROD)],
    (Framework.FLASK, Database.MONGODB): [("pymongo", "4.8.0", PROD)],
    (Framework.FLASK, Database.POSTGRESQL): [_FLASK_SQLALCHEMY, ("psycopg2-binary", "2.9.9", PROD)],
    (Framework.FLASK, Database.MYSQL): [_FLASK_SQLALCHEMY, ("pymysql", "1.1.1", PROD)],
    (Framework.FLASK, Database.SQLITE): [_FLASK_SQLALCHEMY],
}

_NODE_FEATURES: Dict[Feature, List[_Pkg]] = {
    Feature.AUTHENTICATION: [("jsonwebtoken", "^9.0.0", PROD), ("bcryptjs", "^2.4.3", PROD)],
    Feature.FILE_UPLOAD: [("multer", "^1.4.5-lts.1", PROD)],
    Feature.LOGGING: [("winston", "^3.10.0", PROD), ("morgan", "^1.10.0", PROD)],
    Feature.SWAGGER: [("swagger-ui-express", "^5.0.0", PROD), ("yamljs", "^0.3.0", PROD)],
    Feature.TESTING: [("jest", "^29.6.0", DEV), ("supertest", "^6.3.3", DEV)],
    Feature.MONITORING: [("prom-client", "^14.2.0", PROD)],
}

FEATURE_PACKAGES: Dict[Framework, Dict[Feature, List[_Pkg]]] = {
    Framework.EXPRESS: _NODE_FEATURES,
    Framework.NESTJS: {
        **_NODE_FEATURES,
        Feature.AUTHENTICATION: [
            ("@nestjs/jwt", "^10.1.0", PROD),
            ("@nestjs/passport", "^10.0.0", PROD),
            ("passport", "^0.6.0", PROD),
            ("passport-jwt", "^4.0.1", PROD),
            ("bcryptjs", "^2.4.3", PROD),
        ],
        Feature.FILE_UPLOAD: [("@types/multer", "^1.4.7", DEV)],
        Feature.LOGGING: [("winston", "^3.10.0", PROD), ("nest-winston", "^1.9.4", PROD)],
        Feature.SWAGGER: [("@nestjs/swagger", "^7.1.0", PROD)],
        Feature.TESTING: [("jest", "^29.6.0", DEV), ("@nestjs/testing", "^10.0.0", DEV), ("supertest", "^6.3.3", DEV)],
    },
    Framework.FASTAPI: {
        Feature.AUTHENTICATION: [("python-jose[cryptography]", "3.3.0", PROD), ("passlib[bcrypt]", "1.7.4", PROD)],
        Feature.FILE_UPLOAD: [("python-multipart", "0.0.9", PROD)],
        Feature.TESTING: [("pytest", "8.3.2", DEV), ("httpx", "0.27.0", DEV)],
        Feature.MONITORING: [("prometheus-client", "0.20.0", PROD)],
    },
    Framework.FLASK: {
        Feature.AUTHENTICATION: [("flask-jwt-extended", "4.6.0", PROD), ("passlib[bcrypt]", "1.7.4", PROD)],
        Feature.SWAGGER: [("flasgger", "0.9.7.1", PROD)],
        Feature.TESTING: [("pytest", "8.3.2", DEV)],
        Feature.MONITORING: [("prometheus-client", "0.20.0", PROD)],
    },
}


def resolve_dependencies(
    framework: Framework,
    database: Database,
    features: Iterable[Feature],
) -> Tuple[Dependency, ...]:
    wanted = set(features)
    packages: List[_Pkg] = list(FRAMEWORK_PACKAGES[framework])
    packages.extend(DATABASE_PACKAGES.get((framework, database), []))
    for feature in Feature:
        if feature in wanted:
            packages.extend(FEATURE_PACKAGES[framework].get(feature, []))

    seen = set()
    result = []
    for name, version, dep_type in packages:
        if name in seen:
            continue
        seen.add(name)
        result.append(Dependency(name=name, version=version, type=dep_type))
    return tuple(result)


def split_dependencies(deps: Iterable[Dependency]) -> Tuple[List[Dependency], List[Dependency]]:
    """(production, development)"""
    prod = [d for d in deps if d.type == DependencyType.PRODUCTION]
    dev = [d for d in deps if d.type == DependencyType.DEVELOPMENT]
    return prod, dev
