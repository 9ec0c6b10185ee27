"""Dependency categorization for the detection report."""

from typing import Optional

from testdaemon.detector.manifest import get_dependencies
from testdaemon.detector.types import DependencyCategory, DependencyDetection, DependencyScope

# Entries ending in a scope (e.g. "@radix-ui") also match every package in it.
CATEGORY_PACKAGES: dict[DependencyCategory, tuple[str, ...]] = {
    DependencyCategory.ROUTER: (
        "@tanstack/react-router",
        "react-router",
        "react-router-dom",
        "@remix-run/react",
        "@sveltejs/kit",
        "vue-router",
        "react-navigation",
    ),
    DependencyCategory.STATE: (
        "zustand",
        "@reduxjs/toolkit",
        "redux",
        "jotai",
        "recoil",
        "valtio",
        "mobx",
        "pinia",
        "vuex",
    ),
    DependencyCategory.QUERY: (
        "@tanstack/react-query",
        "@tanstack/solid-query",
        "@tanstack/vue-query",
        "swr",
        "react-query",
        "@apollo/client",
    ),
    DependencyCategory.FORMS: (
        "react-hook-form",
        "formik",
        "zod",
        "yup",
        "joi",
        "superstruct",
        "valibot",
    ),
    DependencyCategory.UI: (
        "@radix-ui",
        "@headlessui",
        "@chakra-ui",
        "@mui/material",
        "antd",
        "@mantine",
        "tailwindcss",
    ),
    DependencyCategory.TESTING: (
        "@testing-library",
        "vitest",
        "jest",
        "mocha",
    ),
    DependencyCategory.E2E: (
        "@playwright/test",
        "cypress",
        "@wdio/cli",
        "nightwatch",
        "testcafe",
    ),
}


def categorize(package_name: str) -> DependencyCategory:
    for category, packages in CATEGORY_PACKAGES.items():
        for entry in packages:
            if package_name == entry or package_name.startswith(entry + "/"):
                return category
    return DependencyCategory.OTHER


def categorize_dependencies(manifest: Optional[dict]) -> list[DependencyDetection]:
    """Every declared dependency (runtime and dev) with its category."""
    deps = get_dependencies(manifest, DependencyScope.BOTH)
    return [
        DependencyDetection(
            category=categorize(name),
            package_name=name,
            version=version if isinstance(version, str) else None,
        )
        for name, version in deps.items()
    ]
