"""Project-type catalog.

Each project type carries a default tech stack, the technologies available
per stack category, quality/scalability/security levels and the derived
per-transformer rules that switch optional artifacts on or off.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .utils import print_warning

DEFAULT_PROJECT_TYPE = "web_app"

# ---------------------------------------------------------------------------
# Tech stacks
# ---------------------------------------------------------------------------

_DEFAULT_TECH_STACKS: dict[str, dict[str, str]] = {
    "web_app": {
        "frontend": "React",
        "backend": "Python/FastAPI",
        "database": "PostgreSQL",
        "deployment": "Vercel",
        "cicd": "GitHub Actions",
        "containerization": "Docker",
    },
    "mobile_app": {
        "frontend": "React Native",
        "backend": "Python/Django",
        "database": "PostgreSQL",
        "deployment": "Google Cloud",
        "cicd": "GitHub Actions",
    },
    "api_service": {
        "backend": "Python/FastAPI",
        "database": "PostgreSQL",
        "deployment": "Google Cloud",
        "cicd": "GitHub Actions",
        "containerization": "Docker",
    },
    "desktop_app": {
        "frontend": "Electron",
        "backend": "Node.js",
        "database": "SQLite",
        "deployment": "GitHub Releases",
    },
    "prototype": {
        "frontend": "HTML/CSS/JS",
        "backend": "Python/Flask",
        "database": "SQLite",
        "deployment": "Netlify",
    },
}

_AVAILABLE_OPTIONS: dict[str, dict[str, list[str]]] = {
    "web_app": {
        "frontend": ["React", "Vue.js", "Angular", "Svelte", "Next.js"],
        "backend": ["Node.js/Express", "Python/Django", "Python/FastAPI", "Go/Gin", "Java/Spring"],
        "database": ["PostgreSQL", "MySQL", "MongoDB", "SQLite"],
        "deployment": ["Vercel", "Netlify", "AWS", "Google Cloud", "Azure"],
        "cicd": ["GitHub Actions", "GitLab CI", "Jenkins", "CircleCI"],
        "containerization": ["Docker", "Podman"],
        "vector_db": ["Pinecone", "Weaviate", "Chroma"],
        "ai_framework": ["OpenAI", "Anthropic", "Hugging Face"],
    },
    "mobile_app": {
        "frontend": ["React Native", "Flutter", "Swift", "Kotlin"],
        "backend": ["Node.js/Express", "Python/Django", "Go/Gin"],
        "database": ["PostgreSQL", "MongoDB", "Firebase"],
        "deployment": ["AWS", "Google Cloud", "Firebase"],
        "cicd": ["GitHub Actions", "Bitrise", "App Center"],
    },
    "api_service": {
        "backend": ["Node.js/Express", "Python/FastAPI", "Go/Gin", "Rust/Actix"],
        "database": ["PostgreSQL", "MongoDB", "Redis"],
        "deployment": ["AWS", "Google Cloud", "Azure"],
        "cicd": ["GitHub Actions", "GitLab CI"],
        "containerization": ["Docker", "Kubernetes"],
        "vector_db": ["Pinecone", "Chroma"],
        "ai_framework": ["OpenAI", "Anthropic"],
    },
    "desktop_app": {
        "frontend": ["Electron", "Tauri", "Qt", "GTK"],
        "backend": ["Node.js", "Python", "Rust", "C++"],
        "database": ["SQLite", "PostgreSQL"],
        "deployment": ["GitHub Releases", "Microsoft Store", "Mac App Store"],
    },
    "prototype": {
        "frontend": ["HTML/CSS/JS", "React", "Vue.js"],
        "backend": ["Node.js/Express", "Python/Flask"],
        "database": ["SQLite", "JSON files"],
        "deployment": ["Netlify", "Vercel", "GitHub Pages"],
    },
}

# Categories every stack is expected to name.
REQUIRED_STACK_CATEGORIES: tuple[str, ...] = ("frontend", "backend", "database", "deployment")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ProjectTypeConfig(BaseModel):
    """Workflow characteristics of a project type."""

    id: str
    name: str
    description: str = ""
    complexity: str = Field(default="standard", description="'simple' or 'standard'")
    phases: list[str] = Field(default_factory=list)
    default_tech_stack: dict[str, str] = Field(default_factory=dict)
    available_options: dict[str, list[str]] = Field(default_factory=dict)
    quality_level: str = Field(default="standard", description="'basic', 'standard' or 'high'")
    scalability_requirements: str = Field(default="medium")
    security_requirements: str = Field(default="high")


class TechStackValidation(BaseModel):
    """Outcome of checking a stack against a project type's options."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class TransformationRules(BaseModel):
    """Switches for the optional artifacts each transformer emits."""

    include_non_functional: bool = True
    include_security_requirements: bool = True
    min_requirements: int = 5
    include_wireframes: bool = True
    include_design_system: bool = True
    include_accessibility: bool = True
    include_scalability: bool = True
    include_security: bool = True
    include_performance: bool = True
    include_testing_suite: bool = True
    include_documentation: bool = True
    include_cicd: bool = True
    include_monitoring: bool = True
    include_scaling: bool = True
    include_backup: bool = True


_FULL_LIFECYCLE = ["concept", "requirements", "design", "architecture", "implementation", "deployment"]

PROJECT_TYPES: dict[str, ProjectTypeConfig] = {
    "web_app": ProjectTypeConfig(
        id="web_app",
        name="Web Application",
        description="Full-stack web application",
        phases=_FULL_LIFECYCLE,
        default_tech_stack=_DEFAULT_TECH_STACKS["web_app"],
        available_options=_AVAILABLE_OPTIONS["web_app"],
        quality_level="standard",
        scalability_requirements="medium",
        security_requirements="high",
    ),
    "mobile_app": ProjectTypeConfig(
        id="mobile_app",
        name="Mobile Application",
        description="Native or cross-platform mobile app",
        phases=_FULL_LIFECYCLE,
        default_tech_stack=_DEFAULT_TECH_STACKS["mobile_app"],
        available_options=_AVAILABLE_OPTIONS["mobile_app"],
        quality_level="high",
        scalability_requirements="high",
        security_requirements="high",
    ),
    "api_service": ProjectTypeConfig(
        id="api_service",
        name="API Service",
        description="Backend API service or microservice",
        phases=["concept", "requirements", "architecture", "implementation", "deployment"],
        default_tech_stack=_DEFAULT_TECH_STACKS["api_service"],
        available_options=_AVAILABLE_OPTIONS["api_service"],
        quality_level="high",
        scalability_requirements="high",
        security_requirements="high",
    ),
    "desktop_app": ProjectTypeConfig(
        id="desktop_app",
        name="Desktop Application",
        description="Cross-platform desktop application",
        phases=_FULL_LIFECYCLE,
        default_tech_stack=_DEFAULT_TECH_STACKS["desktop_app"],
        available_options=_AVAILABLE_OPTIONS["desktop_app"],
        quality_level="standard",
        scalability_requirements="low",
        security_requirements="medium",
    ),
    "prototype": ProjectTypeConfig(
        id="prototype",
        name="Prototype",
        description="Quick proof-of-concept or MVP",
        complexity="simple",
        phases=["concept", "design", "implementation"],
        default_tech_stack=_DEFAULT_TECH_STACKS["prototype"],
        available_options=_AVAILABLE_OPTIONS["prototype"],
        quality_level="basic",
        scalability_requirements="low",
        security_requirements="low",
    ),
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_project_type_config(project_type: str | None = DEFAULT_PROJECT_TYPE) -> ProjectTypeConfig:
    """Return the configuration for *project_type*, falling back to ``web_app``."""
    config = PROJECT_TYPES.get(project_type or DEFAULT_PROJECT_TYPE)
    if config is None:
        print_warning(f"Unknown project type: {project_type}, using {DEFAULT_PROJECT_TYPE} default")
        return PROJECT_TYPES[DEFAULT_PROJECT_TYPE]
    return config


def available_project_types() -> list[ProjectTypeConfig]:
    """Return every known project type, in catalog order."""
    return list(PROJECT_TYPES.values())


def validate_tech_stack(project_type: str | None, tech_stack: dict[str, Any]) -> TechStackValidation:
    """Check *tech_stack* against the options available for *project_type*.

    Missing required categories only produce warnings; a value that is not
    among the project type's options for its category is an error.
    """
    config = get_project_type_config(project_type)
    errors: list[str] = []
    warnings: list[str] = []

    for category in REQUIRED_STACK_CATEGORIES:
        default = config.default_tech_stack.get(category)
        if not tech_stack.get(category) and default:
            warnings.append(f"Missing {category}, will use default: {default}")

    for category, value in tech_stack.items():
        options = config.available_options.get(category)
        if value and options and value not in options:
            errors.append(
                f"Invalid {category}: {value}. Available options: {', '.join(options)}"
            )

    return TechStackValidation(is_valid=not errors, errors=errors, warnings=warnings)


def get_transformation_rules(project_type: str | None) -> TransformationRules:
    """Derive the optional-artifact switches for *project_type*."""
    config = get_project_type_config(project_type)
    return TransformationRules(
        min_requirements=3 if config.complexity == "simple" else 5,
        include_non_functional=config.quality_level != "basic",
        include_security_requirements=config.security_requirements != "low",
        include_wireframes="design" in config.phases,
        include_design_system=config.quality_level != "basic",
        include_accessibility=config.quality_level != "basic",
        include_scalability=config.scalability_requirements != "low",
        include_security=config.security_requirements != "low",
        include_performance=config.quality_level == "high",
        include_testing_suite=config.quality_level != "basic",
        include_documentation=True,
        include_cicd="deployment" in config.phases,
        include_monitoring=config.quality_level != "basic",
        include_scaling=config.scalability_requirements != "low",
        include_backup=config.quality_level == "high",
    )


_PROJECT_TYPE_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("mobile_app", ("mobile", "app store", "ios", "android")),
    ("api_service", ("api", "service", "microservice", "backend")),
    ("desktop_app", ("desktop", "electron", "native app")),
    ("prototype", ("prototype", "mvp", "proof of concept", "quick")),
]


def suggest_project_type(description: str) -> str:
    """Suggest a project type id from a free-text project description."""
    text = description.lower()
    for project_type, keywords in _PROJECT_TYPE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return project_type
    return DEFAULT_PROJECT_TYPE
