"""String templates for NestJS (TypeScript) projects."""
import json
from typing import List

from apiforge.domain.bundle import GeneratedFile
from apiforge.domain.spec import AuthStrategy, Database, Entity, EntityField, Feature, FieldType, Framework
from apiforge.generators.base import FrameworkRenderer, make_file
from apiforge.generators.dependencies import resolve_dependencies, split_dependencies
from apiforge.generators.types import EntityNames, RenderContext, effective_features


_TS_TYPES = {
    FieldType.NUMBER: "number",
    FieldType.INTEGER: "number",
    FieldType.BOOLEAN: "boolean",
    FieldType.DATE: "Date",
    FieldType.DATETIME: "Date",
    FieldType.ARRAY: "any[]",
    FieldType.OBJECT: "Record<string, any>",
    FieldType.JSON: "Record<string, any>",
}

_COLUMN_TYPES = {
    FieldType.NUMBER: "float",
    FieldType.INTEGER: "int",
    FieldType.BOOLEAN: "boolean",
    FieldType.DATE: "date",
    FieldType.DATETIME: "datetime",
    FieldType.ARRAY: "simple-json",
    FieldType.OBJECT: "simple-json",
    FieldType.JSON: "simple-json",
    FieldType.RICHTEXT: "text",
}

_TYPEORM_DRIVERS = {
    Database.POSTGRESQL: "postgres",
    Database.MYSQL: "mysql",
    Database.SQLITE: "sqlite",
}


def _ts_type(field: EntityField) -> str:
    return _TS_TYPES.get(field.type, "string")


def _mongoose_prop(field: EntityField) -> str:
    opts = []
    if field.required:
        opts.append("required: true")
    if field.unique:
        opts.append("unique: true")
    if field.default is not None:
        opts.append(f"default: {json.dumps(field.default)}")
    if field.type in (FieldType.ARRAY, FieldType.OBJECT, FieldType.JSON):
        opts.append("type: Object")
    args = f"{{ {', '.join(opts)} }}" if opts else ""
    return f"  @Prop({args})\n  {field.name}: {_ts_type(field)};"


def _typeorm_column(field: EntityField) -> str:
    opts = [f"type: '{_COLUMN_TYPES.get(field.type, 'varchar')}'"]
    if not field.required:
        opts.append("nullable: true")
    if field.unique:
        opts.append("unique: true")
    if field.default is not None:
        opts.append(f"default: {json.dumps(field.default)}")
    return f"  @Column({{ {', '.join(opts)} }})\n  {field.name}: {_ts_type(field)};"


def render_entity_model(ctx: RenderContext, entity: Entity) -> str:
    names = EntityNames.of(entity.name)
    if ctx.document_db:
        body = "\n\n".join(_mongoose_prop(f) for f in entity.fields)
        return f"""import {{ Prop, Schema, SchemaFactory }} from '@nestjs/mongoose';
import {{ HydratedDocument }} from 'mongoose';

export type {entity.name}Document = HydratedDocument<{entity.name}>;

@Schema({{ collection: '{names.plural_snake}', timestamps: true }})
export class {entity.name} {{
{body}
}}

export const {entity.name}Schema = SchemaFactory.createForClass({entity.name});
"""
    body = "\n\n".join(_typeorm_column(f) for f in entity.fields)
    return f"""import {{ Column, CreateDateColumn, Entity, PrimaryGeneratedColumn, UpdateDateColumn }} from 'typeorm';

@Entity('{names.plural_snake}')
export class {entity.name} {{
  @PrimaryGeneratedColumn('uuid')
  id: string;

{body}

  @CreateDateColumn()
  createdAt: Date;

  @UpdateDateColumn()
  updatedAt: Date;
}}
"""


def render_entity_controller(ctx: RenderContext, entity: Entity) -> str:
    names = EntityNames.of(entity.name)
    name = entity.name
    guard = "\n  @UseGuards(AuthGuard)" if ctx.auth_enabled else ""
    imports = "Body, Controller, Delete, Get, HttpCode, Param, Post, Put, Query"
    if ctx.auth_enabled:
        imports += ", UseGuards"
    auth_import = "\nimport { AuthGuard } from '../auth/auth.guard';" if ctx.auth_enabled else ""
    return f"""import {{ {imports} }} from '@nestjs/common';
import {{ {name}Service }} from './{names.kebab}.service';{auth_import}

@Controller('api/{names.plural_kebab}')
export class {name}Controller {{
  constructor(private readonly service: {name}Service) {{}}

  @Get()
  list(@Query('limit') limit = '100', @Query('offset') offset = '0') {{
    return this.service.list(Number(limit), Number(offset));
  }}

  @Get(':id')
  get(@Param('id') id: string) {{
    return this.service.get(id);
  }}
{guard}
  @Post()
  create(@Body() data: Record<string, any>) {{
    return this.service.create(data);
  }}
{guard}
  @Put(':id')
  update(@Param('id') id: string, @Body() data: Record<string, any>) {{
    return this.service.update(id, data);
  }}
{guard}
  @Delete(':id')
  @HttpCode(204)
  remove(@Param('id') id: string) {{
    return this.service.remove(id);
  }}
}}
"""


def render_entity_service(ctx: RenderContext, entity: Entity) -> str:
    names = EntityNames.of(entity.name)
    name = entity.name
    not_found = f"throw new NotFoundException(`{name} ${{id}} not found`);"
    if ctx.document_db:
        return f"""import {{ Injectable, NotFoundException }} from '@nestjs/common';
import {{ InjectModel }} from '@nestjs/mongoose';
import {{ Model }} from 'mongoose';
import {{ {name}, {name}Document }} from './{names.kebab}.entity';

@Injectable()
export class {name}Service {{
  constructor(@InjectModel({name}.name) private readonly model: Model<{name}Document>) {{}}

  async list(limit: number, offset: number) {{
    const [items, total] = await Promise.all([
      this.model.find().skip(offset).limit(limit).exec(),
      this.model.countDocuments().exec(),
    ]);
    return {{ items, total }};
  }}

  async get(id: string) {{
    const item = await this.model.findById(id).exec();
    if (!item) {not_found}
    return item;
  }}

  create(data: Partial<{name}>) {{
    return this.model.create(data);
  }}

  async update(id: string, data: Partial<{name}>) {{
    const item = await this.model.findByIdAndUpdate(id, data, {{ new: true }}).exec();
    if (!item) {not_found}
    return item;
  }}

  async remove(id: string) {{
    const item = await this.model.findByIdAndDelete(id).exec();
    if (!item) {not_found}
  }}
}}
"""
    return f"""import {{ Injectable, NotFoundException }} from '@nestjs/common';
import {{ InjectRepository }} from '@nestjs/typeorm';
import {{ Repository }} from 'typeorm';
import {{ {name} }} from './{names.kebab}.entity';

@Injectable()
export class {name}Service {{
  constructor(@InjectRepository({name}) private readonly repo: Repository<{name}>) {{}}

  async list(limit: number, offset: number) {{
    const [items, total] = await this.repo.findAndCount({{ skip: offset, take: limit }});
    return {{ items, total }};
  }}

  async get(id: string) {{
    const item = await this.repo.findOneBy({{ id }});
    if (!item) {not_found}
    return item;
  }}

  create(data: Partial<{name}>) {{
    return this.repo.save(this.repo.create(data));
  }}

  async update(id: string, data: Partial<{name}>) {{
    await this.get(id);
    await this.repo.update(id, data);
    return this.get(id);
  }}

  async remove(id: string) {{
    const result = await this.repo.delete(id);
    if (!result.affected) {not_found}
  }}
}}
"""


def render_entity_module(ctx: RenderContext, entity: Entity) -> str:
    names = EntityNames.of(entity.name)
    name = entity.name
    if ctx.document_db:
        orm_import = "import { MongooseModule } from '@nestjs/mongoose';"
        entity_import = f"import {{ {name}, {name}Schema }} from './{names.kebab}.entity';"
        feature = f"MongooseModule.forFeature([{{ name: {name}.name, schema: {name}Schema }}])"
    else:
        orm_import = "import { TypeOrmModule } from '@nestjs/typeorm';"
        entity_import = f"import {{ {name} }} from './{names.kebab}.entity';"
        feature = f"TypeOrmModule.forFeature([{name}])"
    return f"""import {{ Module }} from '@nestjs/common';
{orm_import}
{entity_import}
import {{ {name}Controller }} from './{names.kebab}.controller';
import {{ {name}Service }} from './{names.kebab}.service';

@Module({{
  imports: [{feature}],
  controllers: [{name}Controller],
  providers: [{name}Service],
}})
export class {name}Module {{}}
"""


def render_app_module(ctx: RenderContext) -> str:
    lines = [
        "import { Module } from '@nestjs/common';",
        "import { ConfigModule } from '@nestjs/config';",
    ]
    if ctx.document_db:
        lines.append("import { MongooseModule } from '@nestjs/mongoose';")
        root = "MongooseModule.forRoot(process.env.DATABASE_URL)"
    else:
        lines.append("import { TypeOrmModule } from '@nestjs/typeorm';")
        driver = _TYPEORM_DRIVERS[ctx.spec.database]
        target = "database: process.env.DATABASE_URL" if driver == "sqlite" else "url: process.env.DATABASE_URL"
        root = f"TypeOrmModule.forRoot({{ type: '{driver}', {target}, autoLoadEntities: true, synchronize: true }})"
    lines.append("import { HealthController } from './health.controller';")
    controllers = ["HealthController"]
    if ctx.has(Feature.MONITORING):
        lines.append("import { MetricsController } from './metrics.controller';")
        controllers.append("MetricsController")
    modules = ["ConfigModule.forRoot({ isGlobal: true })", root]
    if ctx.auth_enabled:
        lines.append("import { AuthModule } from './auth/auth.module';")
        modules.append("AuthModule")
    if ctx.has(Feature.FILE_UPLOAD):
        lines.append("import { UploadsModule } from './uploads/uploads.module';")
        modules.append("UploadsModule")
    for entity in ctx.spec.entities:
        names = EntityNames.of(entity.name)
        lines.append(f"import {{ {entity.name}Module }} from './{names.kebab}/{names.kebab}.module';")
        modules.append(f"{entity.name}Module")
    lines.extend(["", "@Module({", "  imports: ["])
    lines.extend(f"    {m}," for m in modules)
    lines.extend(["  ],", f"  controllers: [{', '.join(controllers)}],", "})", "export class AppModule {}"])
    return "\n".join(lines)


def render_main_ts(ctx: RenderContext) -> str:
    lines = ["import { NestFactory } from '@nestjs/core';"]
    if ctx.has(Feature.SWAGGER):
        lines.append("import { DocumentBuilder, SwaggerModule } from '@nestjs/swagger';")
    lines.extend([
        "import { AppModule } from './app.module';",
        "",
        "async function bootstrap() {",
        "  const app = await NestFactory.create(AppModule);",
        "  app.enableCors();",
    ])
    if ctx.has(Feature.SWAGGER):
        lines.extend([
            f"  const config = new DocumentBuilder().setTitle('{ctx.spec.name} API').setVersion('1.0.0').build();",
            "  SwaggerModule.setup('docs', app, SwaggerModule.createDocument(app, config));",
        ])
    lines.extend([
        "  await app.listen(process.env.PORT || 3000);",
        "}",
        "bootstrap();",
    ])
    return "\n".join(lines)


def render_package_json(ctx: RenderContext) -> str:
    deps = resolve_dependencies(Framework.NESTJS, ctx.spec.database, effective_features(ctx.spec))
    prod, dev = split_dependencies(deps)
    scripts = {"build": "nest build", "start": "node dist/main", "start:dev": "nest start --watch"}
    if ctx.has(Feature.TESTING):
        scripts["test"] = "jest"
    document = {
        "name": ctx.slug,
        "version": "1.0.0",
        "description": ctx.spec.description,
        "scripts": scripts,
        "dependencies": {d.name: d.version for d in prod},
        "devDependencies": {d.name: d.version for d in dev},
    }
    return json.dumps(document, indent=2)


_TSCONFIG = {
    "compilerOptions": {
        "module": "commonjs",
        "target": "ES2021",
        "outDir": "./dist",
        "emitDecoratorMetadata": True,
        "experimentalDecorators": True,
        "strictPropertyInitialization": False,
        "skipLibCheck": True,
        "sourceMap": True,
    }
}


class NestJsRenderer(FrameworkRenderer):
    framework = Framework.NESTJS
    runtime = "node"
    entity_templates = ("model", "routes", "controller", "module")
    docker_command = '["node", "dist/main"]'

    def entity_path(self, template_id: str, names: EntityNames) -> str:
        suffix = {"model": "entity", "routes": "controller", "controller": "service", "module": "module"}[template_id]
        return f"src/{names.kebab}/{names.kebab}.{suffix}.ts"

    def render_entity(self, template_id: str, ctx: RenderContext, entity: Entity) -> str:
        if template_id == "model":
            return render_entity_model(ctx, entity)
        if template_id == "routes":
            return render_entity_controller(ctx, entity)
        if template_id == "controller":
            return render_entity_service(ctx, entity)
        return render_entity_module(ctx, entity)

    def base_files(self, ctx: RenderContext) -> List[GeneratedFile]:
        env = [f"DATABASE_URL={'mongodb://localhost:27017/' + ctx.slug if ctx.document_db else ''}", "PORT=3000"]
        if ctx.auth_enabled:
            env.append("API_KEY=change-me" if ctx.auth_strategy == AuthStrategy.API_KEY else "JWT_SECRET=change-me")
        return [
            make_file("src/main.ts", render_main_ts(ctx), "Server entry point"),
            make_file("src/app.module.ts", render_app_module(ctx), "Root module"),
            make_file("src/health.controller.ts", """import { Controller, Get } from '@nestjs/common';

@Controller('api/health')
export class HealthController {
  @Get()
  health() {
    return { status: 'ok' };
  }
}
""", "Health check route"),
            make_file("package.json", render_package_json(ctx), "Dependencies configuration"),
            make_file("tsconfig.json", json.dumps(_TSCONFIG, indent=2), "TypeScript configuration"),
            make_file("nest-cli.json", json.dumps({"collection": "@nestjs/schematics", "sourceRoot": "src"}, indent=2),
                      "Nest CLI configuration"),
            make_file(".env.example", "\n".join(env), "Environment template"),
        ]

    def auth_files(self, ctx: RenderContext) -> List[GeneratedFile]:
        if ctx.auth_strategy == AuthStrategy.API_KEY:
            guard = """import { CanActivate, ExecutionContext, Injectable, UnauthorizedException } from '@nestjs/common';

@Injectable()
export class AuthGuard implements CanActivate {
  canActivate(context: ExecutionContext): boolean {
    const request = context.switchToHttp().getRequest();
    if (request.headers['x-api-key'] !== process.env.API_KEY) {
      throw new UnauthorizedException('Invalid API key');
    }
    return true;
  }
}
"""
        else:
            guard = """import { CanActivate, ExecutionContext, Injectable, UnauthorizedException } from '@nestjs/common';
import { JwtService } from '@nestjs/jwt';

@Injectable()
export class AuthGuard implements CanActivate {
  constructor(private readonly jwt: JwtService) {}

  async canActivate(context: ExecutionContext): Promise<boolean> {
    const request = context.switchToHttp().getRequest();
    const [type, token] = (request.headers.authorization || '').split(' ');
    if (type !== 'Bearer' || !token) {
      throw new UnauthorizedException();
    }
    try {
      request.user = await this.jwt.verifyAsync(token, { secret: process.env.JWT_SECRET });
    } catch {
      throw new UnauthorizedException();
    }
    return true;
  }
}
"""
        if ctx.auth_strategy == AuthStrategy.API_KEY:
            return [
                make_file("src/auth/auth.guard.ts", guard, "Auth guard"),
                make_file("src/auth/auth.module.ts", """import { Global, Module } from '@nestjs/common';
import { AuthGuard } from './auth.guard';

@Global()
@Module({
  providers: [AuthGuard],
  exports: [AuthGuard],
})
export class AuthModule {}
""", "Auth module"),
            ]
        return [
            make_file("src/auth/auth.guard.ts", guard, "Auth guard"),
            make_file("src/auth/auth.module.ts", """import { Global, Module } from '@nestjs/common';
import { JwtModule } from '@nestjs/jwt';
import { AuthController } from './auth.controller';
import { AuthGuard } from './auth.guard';

@Global()
@Module({
  imports: [JwtModule.register({ secret: process.env.JWT_SECRET, signOptions: { expiresIn: '1h' } })],
  controllers: [AuthController],
  providers: [AuthGuard],
  exports: [AuthGuard, JwtModule],
})
export class AuthModule {}
""", "Auth module"),
            make_file("src/auth/auth.controller.ts", """import { Body, ConflictException, Controller, Post, UnauthorizedException } from '@nestjs/common';
import { JwtService } from '@nestjs/jwt';
import * as bcrypt from 'bcryptjs';

@Controller('api/auth')
export class AuthController {
  private readonly users = new Map<string, string>();

  constructor(private readonly jwt: JwtService) {}

  @Post('register')
  async register(@Body() body: { email: string; password: string }) {
    if (this.users.has(body.email)) {
      throw new ConflictException('User already exists');
    }
    this.users.set(body.email, await bcrypt.hash(body.password, 10));
    return { email: body.email };
  }

  @Post('login')
  async login(@Body() body: { email: string; password: string }) {
    const hash = this.users.get(body.email);
    if (!hash || !(await bcrypt.compare(body.password, hash))) {
      throw new UnauthorizedException('Invalid credentials');
    }
    return { accessToken: await this.jwt.signAsync({ sub: body.email }) };
  }
}
""", "Auth routes"),
        ]

    def feature_files(self, ctx: RenderContext, feature: Feature) -> List[GeneratedFile]:
        if feature == Feature.FILE_UPLOAD:
            return [
                make_file("src/uploads/uploads.controller.ts", """import { Controller, Post, UploadedFile, UseInterceptors } from '@nestjs/common';
import { FileInterceptor } from '@nestjs/platform-express';

@Controller('api/uploads')
export class UploadsController {
  @Post()
  @UseInterceptors(FileInterceptor('file', { dest: process.env.UPLOAD_DIR || 'uploads/' }))
  upload(@UploadedFile() file: Express.Multer.File) {
    return { filename: file.filename };
  }
}
""", "File upload route"),
                make_file("src/uploads/uploads.module.ts", """import { Module } from '@nestjs/common';
import { UploadsController } from './uploads.controller';

@Module({ controllers: [UploadsController] })
export class UploadsModule {}
""", "File upload module"),
            ]
        if feature == Feature.MONITORING:
            return [make_file("src/metrics.controller.ts", """import { Controller, Get, Header } from '@nestjs/common';
import * as client from 'prom-client';

client.collectDefaultMetrics();

@Controller('metrics')
export class MetricsController {
  @Get()
  @Header('Content-Type', client.register.contentType)
  metrics() {
    return client.register.metrics();
  }
}
""", "Prometheus metrics route")]
        if feature == Feature.TESTING:
            return [make_file("test/health.spec.ts", """import { Test } from '@nestjs/testing';
import { HealthController } from '../src/health.controller';

describe('HealthController', () => {
  it('responds with ok', async () => {
    const moduleRef = await Test.createTestingModule({ controllers: [HealthController] }).compile();
    expect(moduleRef.get(HealthController).health()).toEqual({ status: 'ok' });
  });
});
""", "Smoke test")]
        return []

    def setup_instructions(self, ctx: RenderContext) -> List[str]:
        steps = [
            "Run `npm install`",
            "Copy `.env.example` to `.env` and adjust the values",
            "Start the server with `npm run start:dev`",
        ]
        if ctx.has(Feature.DOCKER):
            steps.append("Or run the whole stack with `docker compose up --build`")
        return steps
