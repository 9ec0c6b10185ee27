"""Built-in profile catalogues.

Weights: a manifest dependency on the framework package is the strongest
signal (10), a framework-specific config file next (8). Thresholds are set so
a dependency alone is enough for single-package frameworks, while combined
profiles such as "Vite + React" need both halves.
"""

import re

from testdaemon.detector.types import (
    ContentMatchPattern,
    DependencyScope,
    FileExistsPattern,
    ManifestDependencyPattern,
    Profile,
)


def dep(
    name: str,
    priority: int = 10,
    scope: DependencyScope = DependencyScope.BOTH,
) -> ManifestDependencyPattern:
    """Pattern matching ``"<name>":`` as a key in the dependency mapping."""
    return ManifestDependencyPattern(
        pattern=rf'"{re.escape(name)}"\s*:', scope=scope, priority=priority
    )


def exists(file: str, priority: int = 8) -> FileExistsPattern:
    return FileExistsPattern(file=file, should_exist=True, priority=priority)


FRAMEWORK_PROFILES: list[Profile] = [
    Profile("Next.js", (dep("next"), exists("next.config.*"))),
    Profile("Remix", (dep("@remix-run/node"), exists("remix.config.*"))),
    Profile("SvelteKit", (dep("@sveltejs/kit"), exists("svelte.config.js"))),
    Profile("Nuxt", (dep("nuxt"), exists("nuxt.config.*"))),
    Profile(
        "Vite + React",
        (dep("vite", 5), dep("react", 5)),
        excludes=("Next.js", "Remix", "SvelteKit", "Nuxt"),
        confidence_threshold=0.6,
    ),
    Profile(
        "Vite + Vue",
        (dep("vite", 5), dep("vue", 5)),
        excludes=("Nuxt",),
        confidence_threshold=0.6,
    ),
    Profile(
        "Vite + Svelte",
        (dep("vite", 5), dep("svelte", 5)),
        excludes=("SvelteKit",),
        confidence_threshold=0.6,
    ),
    Profile("Astro", (dep("astro"),)),
    Profile("Gatsby", (dep("gatsby"),)),
    Profile("Angular", (exists("angular.json", 10),)),
]

BACKEND_PROFILES: list[Profile] = [
    Profile("Express", (dep("express", scope=DependencyScope.DEPENDENCIES),)),
    Profile("Fastify", (dep("fastify", scope=DependencyScope.DEPENDENCIES),)),
    Profile("Hono", (dep("hono", scope=DependencyScope.DEPENDENCIES),)),
    Profile("Koa", (dep("koa", scope=DependencyScope.DEPENDENCIES),)),
    Profile("NestJS", (dep("@nestjs/core", scope=DependencyScope.DEPENDENCIES),)),
]

LANGUAGE_PROFILES: list[Profile] = [
    Profile(
        "TypeScript",
        (exists("tsconfig.json"), dep("typescript", 5)),
        confidence_threshold=0.3,
    ),
    Profile(
        "JavaScript",
        (exists("package.json", 5), exists("jsconfig.json", 3)),
        excludes=("TypeScript",),
        confidence_threshold=0.5,
    ),
    Profile(
        "Python",
        (exists("pyproject.toml", 5), exists("setup.py", 5), exists("requirements*.txt", 5)),
        confidence_threshold=0.3,
    ),
    Profile("Go", (exists("go.mod", 10),)),
    Profile("Rust", (exists("Cargo.toml", 10),)),
    Profile("Ruby", (exists("Gemfile", 10),)),
    Profile("Java", (exists("pom.xml", 5), exists("build.gradle*", 5))),
]

TEST_RUNNER_PROFILES: list[Profile] = [
    Profile("Vitest", (dep("vitest"), exists("vitest.config.*"))),
    Profile("Jest", (dep("jest"), exists("jest.config.*"))),
    Profile("Mocha", (dep("mocha"), exists(".mocharc.*", 5))),
    Profile("Jasmine", (dep("jasmine"), exists("spec/support/jasmine.json", 5))),
    Profile(
        "Pytest",
        (
            exists("pytest.ini", 10),
            ContentMatchPattern(file="pyproject.toml", pattern=r"\[tool\.pytest", priority=10),
            exists("conftest.py", 5),
        ),
        confidence_threshold=0.2,
    ),
]

DATABASE_PROFILES: list[Profile] = [
    Profile(
        "Prisma",
        (dep("@prisma/client"), dep("prisma", 5), exists("prisma/schema.prisma")),
        confidence_threshold=0.4,
    ),
    Profile("Drizzle", (dep("drizzle-orm"), exists("drizzle.config.*", 5))),
    Profile("TypeORM", (dep("typeorm"),)),
    Profile("MikroORM", (dep("@mikro-orm/core"),)),
    Profile("Mongoose", (dep("mongoose"),)),
    Profile(
        "SQLAlchemy",
        (
            ContentMatchPattern(file="requirements.txt", pattern=r"(?im)^sqlalchemy\b", priority=10),
            ContentMatchPattern(file="pyproject.toml", pattern=r"(?i)[\"']sqlalchemy\b", priority=10),
        ),
    ),
]
