"""Architecture -> implementation.

Turns the system design, database schema and API specification into the
core features to build, a testing suite, a documentation plan, a phased
development plan and quality-assurance guidance.
"""

from __future__ import annotations

import math
from typing import Any

from ..heuristics import AI_KEYWORDS, Rule, StackSignals, first_match, mentions, text_of
from ..models import CommonInsights, PhaseAnalysisBundle
from ..phases import Phase
from .base import BaseTransformer, as_text, items_of, title_of

_HOURS_PER_WEEK = 40

_ARCHITECTURE_RULES = (
    Rule(value="Microservices", keywords=("microservices", "microservice")),
    Rule(value="Modular Monolith", keywords=("modular monolith", "modular")),
)
_ARCHITECTURE_SCORE = {"Microservices": 3, "Modular Monolith": 2}

# Complexity score -> level.
_COMPLEXITY_RULES = (
    Rule(value="high", min_count=8),
    Rule(value="medium", min_count=4),
)
_TEAM_SIZES = {"high": "4-6 developers", "medium": "2-4 developers", "low": "1-2 developers"}

_DEFAULT_AUTH_ENDPOINTS = [
    {"path": "/auth/login", "method": "POST"},
    {"path": "/auth/logout", "method": "POST"},
    {"path": "/auth/refresh", "method": "POST"},
    {"path": "/auth/profile", "method": "GET"},
]
_DEFAULT_DATA_ENDPOINTS = [
    {"path": "/data", "method": "GET"},
    {"path": "/data", "method": "POST"},
    {"path": "/data/:id", "method": "PUT"},
    {"path": "/data/:id", "method": "DELETE"},
]
_DEFAULT_UI_COMPONENTS = ["App", "Header", "Navigation", "Main", "Footer"]

_FEATURE_TESTS: dict[str, dict[str, str]] = {
    "authentication": {"security": "Authentication security tests", "performance": "Login performance tests"},
    "data-management": {"database": "Database integration tests", "validation": "Data validation tests"},
    "user-interface": {"visual": "Visual regression tests", "accessibility": "Accessibility compliance tests"},
}

_TESTING_FRAMEWORKS = {"React": "Jest + React Testing Library", "Vue.js": "Jest + Vue Test Utils"}

# name, weeks, deliverables, milestone criteria
_DEVELOPMENT_PHASES: tuple[tuple[str, int, tuple[str, ...], tuple[str, ...]], ...] = (
    (
        "Foundation Phase", 2,
        ("Project setup", "Authentication system", "Basic infrastructure"),
        ("Development environment ready", "Authentication working"),
    ),
    (
        "Core Features Phase", 4,
        ("Data management", "Core business logic", "API endpoints"),
        ("Core features complete", "API fully functional"),
    ),
    (
        "User Interface Phase", 3,
        ("Frontend components", "User workflows", "Responsive design"),
        ("UI components complete", "User workflows functional"),
    ),
    (
        "Integration & Polish Phase", 2,
        ("Feature integration", "Performance optimization", "Bug fixes"),
        ("All features integrated", "Performance targets met"),
    ),
)

_RISKS = [
    {
        "risk": "Technical complexity underestimated",
        "probability": "Medium",
        "impact": "High",
        "mitigation": "Add 20% buffer to estimates, conduct technical spikes",
    },
    {
        "risk": "Third-party service dependencies",
        "probability": "Low",
        "impact": "Medium",
        "mitigation": "Identify alternatives, implement fallback mechanisms",
    },
    {
        "risk": "Performance requirements not met",
        "probability": "Medium",
        "impact": "Medium",
        "mitigation": "Early performance testing, optimization sprints",
    },
    {
        "risk": "Security vulnerabilities discovered",
        "probability": "Medium",
        "impact": "High",
        "mitigation": "Regular security audits, secure coding practices",
    },
]

_IMPLEMENTATION_GATES = [
    "All unit tests pass with >80% coverage",
    "Integration tests pass",
    "Security scan shows no high-severity issues",
    "Performance benchmarks met",
    "Code review approved",
    "Documentation updated",
]


def _feature_tests(kind: str) -> dict[str, str]:
    return {
        "unit": f"Unit tests for {kind} components",
        "integration": f"Integration tests for {kind} workflows",
        "e2e": f"End-to-end tests for {kind} user journeys",
        **_FEATURE_TESTS.get(kind, {}),
    }


class ArchitectureToImplementationTransformer(BaseTransformer):
    source_phase = Phase.ARCHITECTURE
    output_type = "architecture_to_implementation"

    def derive_artifacts(self, bundle: PhaseAnalysisBundle, insights: CommonInsights) -> dict[str, Any]:
        design = self.deliverable_insights(bundle, "system_design")
        schema = self.deliverable_insights(bundle, "database_schema")
        api = self.deliverable_insights(bundle, "api_specification")

        features = self.core_features(design, schema, api)
        return {
            "core_features": features,
            "testing_suite": self.testing_suite(features, design) if self.rules.include_testing_suite else None,
            "documentation": self.documentation() if self.rules.include_documentation else None,
            "development_plan": self.development_plan(features, design),
            "quality_assurance": self.quality_assurance(),
        }

    def stack_signals(
        self, bundle: PhaseAnalysisBundle, insights: CommonInsights, artifacts: dict[str, Any]
    ) -> StackSignals:
        design = self.deliverable_insights(bundle, "system_design")
        return StackSignals(
            scalability="high" if self.architecture(design) == "Microservices" else "medium",
            realtime=self._has_service(design, "notification"),
            ai=mentions(bundle.insight_text(), AI_KEYWORDS),
        )

    # ------------------------------------------------------------------
    # Reading the architecture deliverables
    # ------------------------------------------------------------------

    def architecture(self, design: dict[str, Any]) -> str:
        value = design.get("architecture")
        text = text_of(value) if isinstance(value, list) else str(value or "")
        return first_match(_ARCHITECTURE_RULES, text, default="Monolithic")

    def services(self, design: dict[str, Any]) -> list[str]:
        found = items_of(design.get("backend"), "services") or items_of(design.get("services"))
        return [as_text(service) for service in found if as_text(service)]

    def ui_components(self, design: dict[str, Any]) -> list[str]:
        found = items_of(design.get("frontend"), "components") or items_of(design.get("components"))
        return [title_of(component, "") for component in found if title_of(component, "")]

    def frontend_framework(self, design: dict[str, Any]) -> str:
        frontend = design.get("frontend")
        if isinstance(frontend, dict) and frontend.get("framework"):
            return str(frontend["framework"])
        return self.project_config.default_tech_stack.get("frontend", "")

    def _has_service(self, design: dict[str, Any], marker: str) -> bool:
        return any(service.lower().startswith(marker) for service in self.services(design))

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def core_features(
        self, design: dict[str, Any], schema: dict[str, Any], api: dict[str, Any]
    ) -> list[dict[str, Any]]:
        endpoints = [item for item in items_of(api, "endpoints") if isinstance(item, dict) and item.get("path")]
        auth_endpoints = [item for item in endpoints if "/auth" in str(item["path"])]
        data_endpoints = [item for item in endpoints if "/auth" not in str(item["path"])]
        tables = [title_of(entity, "").lower() for entity in items_of(schema, "entities")]

        auth_components = ["LoginForm", "AuthService", "TokenManager", "PermissionGuard"]
        backend = design.get("backend")
        if isinstance(backend, dict) and backend.get("authentication"):
            auth_components += ["AuthMiddleware", "JWTService"]
        data_components = ["DataService", "Repository", "ValidationService"]
        if schema.get("type"):
            data_components += ["DatabaseAdapter", "MigrationService"]

        features = [
            {
                "id": "FEAT-001",
                "name": "Authentication System",
                "description": "User authentication and authorization system",
                "priority": "high",
                "complexity": "medium",
                "estimatedHours": 40,
                "dependencies": [],
                "components": auth_components,
                "endpoints": auth_endpoints or list(_DEFAULT_AUTH_ENDPOINTS),
                "database": ["users", "sessions", "permissions", "roles"],
                "testing": _feature_tests("authentication"),
                "acceptanceCriteria": [
                    "Users can register with valid email and password",
                    "Users can login with correct credentials",
                    "Invalid login attempts are rejected",
                    "User sessions expire after configured time",
                    "Password reset functionality works correctly",
                    "User permissions are enforced correctly",
                ],
            },
            {
                "id": "FEAT-002",
                "name": "Data Management",
                "description": "CRUD operations for core entities",
                "priority": "high",
                "complexity": "high",
                "estimatedHours": 60,
                "dependencies": ["FEAT-001"],
                "components": data_components,
                "endpoints": data_endpoints or list(_DEFAULT_DATA_ENDPOINTS),
                "database": [table for table in tables if table] or ["data", "categories", "tags"],
                "testing": _feature_tests("data-management"),
                "acceptanceCriteria": [
                    "Users can create new data entries",
                    "Users can read their own data",
                    "Users can update their data",
                    "Users can delete their data",
                    "Data validation prevents invalid entries",
                    "Data relationships are maintained correctly",
                ],
            },
            {
                "id": "FEAT-003",
                "name": "User Interface",
                "description": "Frontend user interface components and pages",
                "priority": "medium",
                "complexity": "high",
                "estimatedHours": 80,
                "dependencies": ["FEAT-001", "FEAT-002"],
                "components": self.ui_components(design) or list(_DEFAULT_UI_COMPONENTS),
                "endpoints": [],
                "database": [],
                "testing": _feature_tests("user-interface"),
                "acceptanceCriteria": [
                    "All pages load within 2 seconds",
                    "Interface is responsive on mobile devices",
                    "Navigation is intuitive and consistent",
                    "Forms provide clear validation feedback",
                    "Accessibility standards are met",
                    "Visual design matches approved mockups",
                ],
            },
        ]

        if self._has_service(design, "notification"):
            features.append({
                "id": "FEAT-004",
                "name": "Notification System",
                "description": "Real-time notifications and messaging",
                "priority": "medium",
                "complexity": "medium",
                "estimatedHours": 30,
                "dependencies": ["FEAT-001"],
                "components": ["NotificationService", "NotificationComponent", "WebSocketManager"],
                "endpoints": [
                    {"path": "/notifications", "method": "GET"},
                    {"path": "/notifications/mark-read", "method": "POST"},
                ],
                "database": ["notifications"],
                "testing": _feature_tests("notifications"),
                "acceptanceCriteria": [
                    "Users receive real-time notifications",
                    "Notifications can be marked as read",
                    "Notification history is maintained",
                ],
            })
        if self._has_service(design, "file"):
            features.append({
                "id": "FEAT-005",
                "name": "File Management",
                "description": "File upload, storage, and management",
                "priority": "low",
                "complexity": "medium",
                "estimatedHours": 25,
                "dependencies": ["FEAT-001"],
                "components": ["FileUpload", "FileService", "StorageManager"],
                "endpoints": [
                    {"path": "/files/upload", "method": "POST"},
                    {"path": "/files/:id", "method": "GET"},
                    {"path": "/files/:id", "method": "DELETE"},
                ],
                "database": ["files"],
                "testing": _feature_tests("file-management"),
                "acceptanceCriteria": [
                    "Users can upload files securely",
                    "File types are validated",
                    "File access is controlled by permissions",
                ],
            })
        return features

    def testing_suite(self, features: list[dict[str, Any]], design: dict[str, Any]) -> dict[str, Any]:
        framework = self.frontend_framework(design)
        tools = {
            "unit": "Jest",
            "integration": "Supertest",
            "e2e": "Playwright",
            "performance": "Artillery.io",
            "security": "OWASP ZAP",
        }
        if framework == "React":
            tools["component"] = "React Testing Library"

        suite: dict[str, Any] = {
            "framework": _TESTING_FRAMEWORKS.get(framework, "Jest"),
            "coverage": {"target": "80%", "minimum": "70%", "critical": "95%"},
            "unitTests": [
                {
                    "feature": feature["name"],
                    "components": [f"{component} unit tests" for component in feature["components"]],
                    "coverage": "80%",
                    "mocking": "Mock external dependencies",
                }
                for feature in features
            ],
            "integrationTests": [
                {"name": "API Integration Tests", "coverage": "All API endpoints"},
                {"name": "Database Integration Tests", "coverage": "All database models"},
                {"name": "Service Integration Tests", "coverage": "Service boundaries"},
            ],
            "e2eTests": [
                {
                    "name": "User Authentication Journey",
                    "scenarios": ["Register", "Login", "Logout", "Password reset"],
                },
                {"name": "Core Feature Workflows", "scenarios": [feature["name"] for feature in features]},
                {"name": "Cross-browser Testing", "browsers": ["Chrome", "Firefox", "Safari", "Edge"]},
            ],
            "securityTests": {
                "staticAnalysis": "OWASP security rules",
                "dependencyScanning": "Every build",
                "penetrationTesting": "Before each release",
            },
            "automation": {
                "ci": self.project_config.default_tech_stack.get("cicd", "GitHub Actions"),
                "triggers": ["push", "pull_request"],
                "environments": ["development", "staging"],
            },
            "tools": tools,
        }
        if self.rules.include_performance:
            suite["performanceTests"] = {
                "loadTesting": ["Normal load", "Peak load", "Stress test"],
                "metrics": ["Response time", "Throughput", "Error rate"],
            }
        return suite

    def documentation(self) -> dict[str, Any]:
        return {
            "technical": {
                "architecture": {
                    "title": "System Architecture Overview",
                    "sections": ["Architecture Patterns", "Component Diagram", "Data Flow"],
                    "audience": "Developers",
                },
                "api": {"title": "API Documentation", "format": "OpenAPI/Swagger", "audience": "API consumers"},
                "database": {
                    "title": "Database Schema Documentation",
                    "sections": ["Entity Relationships", "Indexes", "Constraints"],
                    "audience": "Developers, DBAs",
                },
                "deployment": {
                    "title": "Deployment Guide",
                    "sections": ["Environment Setup", "Configuration", "Monitoring"],
                    "audience": "DevOps, Developers",
                },
            },
            "user": {
                "userGuide": {
                    "title": "User Guide",
                    "sections": ["Getting Started", "Features", "Troubleshooting"],
                    "audience": "End users",
                },
                "faq": {"title": "Frequently Asked Questions", "audience": "End users, Support"},
            },
            "developer": {
                "setupGuide": {
                    "title": "Development Setup Guide",
                    "sections": ["Prerequisites", "Installation", "Configuration"],
                },
                "contributing": {
                    "title": "Contributing Guidelines",
                    "sections": ["Code Standards", "Pull Request Process", "Testing"],
                },
            },
        }

    def complexity(self, design: dict[str, Any]) -> str:
        score = _ARCHITECTURE_SCORE.get(self.architecture(design), 1)
        score += len(self.services(design))
        score += len(self.ui_components(design)) // 5
        return first_match(_COMPLEXITY_RULES, count=score, default="low")

    def development_plan(self, features: list[dict[str, Any]], design: dict[str, Any]) -> dict[str, Any]:
        total_hours = sum(feature["estimatedHours"] for feature in features)
        members = {
            "Foundation Phase": [
                f["id"] for f in features if f["priority"] == "high" and not f["dependencies"]
            ],
            "Core Features Phase": [
                f["id"] for f in features if f["priority"] == "high" and f["dependencies"]
            ],
            "User Interface Phase": [f["id"] for f in features if "interface" in f["name"].lower()],
            "Integration & Polish Phase": [
                f["id"] for f in features if f["priority"] in ("medium", "low")
            ],
        }

        phases = []
        milestones = []
        elapsed = 0
        for name, weeks, deliverables, criteria in _DEVELOPMENT_PHASES:
            elapsed += weeks
            phases.append({
                "name": name,
                "duration": f"{weeks} weeks",
                "features": members[name],
                "deliverables": list(deliverables),
                "milestones": list(criteria),
            })
            milestones.append({
                "name": f"{name} Complete",
                "week": elapsed,
                "deliverables": list(deliverables),
                "criteria": list(criteria),
            })

        return {
            "overview": {
                "totalFeatures": len(features),
                "estimatedHours": total_hours,
                "estimatedWeeks": math.ceil(total_hours / _HOURS_PER_WEEK),
                "teamSize": _TEAM_SIZES[self.complexity(design)],
                "methodology": "Agile/Scrum",
            },
            "phases": phases,
            "milestones": milestones,
            "riskMitigation": [dict(risk) for risk in _RISKS],
            "qualityGates": list(_IMPLEMENTATION_GATES),
        }

    def quality_assurance(self) -> dict[str, Any]:
        return {
            "codeQuality": {
                "linting": "Linting with project rules",
                "formatting": "Automatic code formatting",
                "complexity": "Cyclomatic complexity analysis",
                "duplication": "Code duplication detection",
            },
            "security": {
                "staticAnalysis": "Static code security analysis",
                "dependencyScanning": "Dependency vulnerability scanning",
                "secretsDetection": "Secrets detection in code",
            },
            "performance": {
                "profiling": "Application performance profiling",
                "loadTesting": "Load and stress testing",
            },
            "accessibility": {
                "standards": "WCAG 2.1 AA compliance",
                "testing": "Automated accessibility testing",
            },
            "reviews": {
                "codeReview": "Mandatory peer code reviews",
                "architectureReview": "Architecture review checkpoints",
                "securityReview": "Security review for sensitive features",
            },
        }
