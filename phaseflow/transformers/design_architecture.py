"""Design -> architecture.

Derives the system design, database schema, API surface, security
architecture and scalability plan from the component specifications,
user flows and wireframes of the design phase.
"""

from __future__ import annotations

import re
from typing import Any

from ..heuristics import (
    AI_KEYWORDS,
    AUTH_KEYWORDS,
    REALTIME_KEYWORDS,
    Rule,
    StackSignals,
    collect,
    first_match,
    mentions,
    text_of,
)
from ..models import CommonInsights, PhaseAnalysisBundle
from ..phases import Phase
from .base import BaseTransformer, as_text, items_of

# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

# Component count (or a complexity tag) -> architecture pattern.
_ARCHITECTURE_RULES = (
    Rule(value="Microservices", keywords=("complex_interactions",)),
    Rule(value="Microservices", min_count=21),
    Rule(value="Modular Monolith", min_count=11),
)

_PATTERNS_BY_ARCHITECTURE: dict[str, tuple[str, ...]] = {
    "Microservices": ("API Gateway", "Service Discovery", "Circuit Breaker"),
    "Modular Monolith": ("Domain-Driven Design", "Hexagonal Architecture"),
}

_BACKEND_FRAMEWORK_RULES = (
    Rule(value="Node.js/Express with Socket.io", keywords=REALTIME_KEYWORDS),
    Rule(value="Go/Gin", keywords=("performance",)),
)

# Component names -> extra backend services.
_SERVICE_RULES = (
    Rule(value="NotificationService", keywords=("notification", "notifications")),
    Rule(value="FileService", keywords=("upload", "file", "files")),
    Rule(value="EmailService", keywords=("email",)),
    Rule(value="PaymentService", keywords=("payment", "payments", "checkout")),
    Rule(value="AnalyticsService", keywords=("analytics",)),
)
_BASE_SERVICES = ("AuthService", "UserService", "DataService")

_STATE_MANAGEMENT_RULES = (
    Rule(value="Redux Toolkit", min_count=21),
    Rule(value="Context API with reducers", min_count=11),
)

# Entities detected from component names (substring match on the name).
_ENTITY_MARKERS: tuple[str, ...] = ("Data", "Profile", "Settings")
_BASE_ENTITIES: tuple[str, ...] = ("User", "Session")

_BASE_FIELDS = ["id", "created_at", "updated_at"]
_ENTITY_FIELDS: dict[str, list[str]] = {
    "user": ["email", "password_hash", "first_name", "last_name", "is_active"],
    "session": ["user_id", "token_hash", "expires_at", "ip_address"],
    "profile": ["user_id", "bio", "avatar_url", "preferences"],
}
_ENTITY_INDEXES: dict[str, list[str]] = {
    "user": ["UNIQUE INDEX (email)", "INDEX (is_active)"],
    "session": ["INDEX (user_id)", "INDEX (expires_at)"],
    "profile": ["UNIQUE INDEX (user_id)"],
}
_ENTITY_CONSTRAINTS: dict[str, list[str]] = {
    "user": ['CHECK (email LIKE "%@%")', "CHECK (LENGTH(password_hash) >= 60)"],
    "session": ["FOREIGN KEY (user_id) REFERENCES users(id)"],
    "profile": ["FOREIGN KEY (user_id) REFERENCES users(id)"],
}
_ENTITY_RELATIONSHIPS: tuple[tuple[str, str, str], ...] = (
    ("User", "Session", "one-to-many"),
    ("User", "Profile", "one-to-one"),
    ("User", "Settings", "one-to-one"),
    ("User", "Data", "one-to-many"),
)

_API_RESOURCES = ("user", "data", "session")
_HTTP_METHODS = ("GET", "POST", "PUT", "DELETE")
_RATE_LIMITS = {"GET": "100 per minute", "POST": "20 per minute", "PUT": "20 per minute", "DELETE": "10 per minute"}

_SCALE_KEYWORDS = ("scale", "scalable", "scalability", "scaling")
_ACID_KEYWORDS = ("transaction", "transactions", "consistency")


def _component_list(value: Any) -> list[dict[str, Any]]:
    """Normalise component specifications to dicts with at least a name."""
    components = []
    for item in items_of(value, "components", "component_specs", "specifications"):
        if isinstance(item, dict):
            components.append({**item, "name": str(item.get("name") or "")})
        else:
            components.append({"name": str(item), "description": str(item)})
    return components


def route_path(title: str) -> str:
    """``"User Dashboard"`` -> ``"/user-dashboard"``."""
    cleaned = "".join(ch for ch in title.lower() if ch.isalnum() or ch.isspace())
    return "/" + "-".join(cleaned.split())


def split_words(name: str) -> str:
    """``"FileUploadComponent"`` -> ``"File Upload Component"``."""
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", name)


class DesignToArchitectureTransformer(BaseTransformer):
    source_phase = Phase.DESIGN
    output_type = "design_to_architecture"

    def derive_artifacts(self, bundle: PhaseAnalysisBundle, insights: CommonInsights) -> dict[str, Any]:
        components = _component_list(bundle.insights.get("component_specifications"))
        flows = items_of(bundle.insights.get("user_flows"), "flows", "user_flows")
        wireframes = items_of(bundle.insights.get("wireframes"), "wireframes", "screens", "pages")

        system_design = self.system_design(components, wireframes)
        return {
            "system_design": system_design,
            "database_schema": self.database_schema(components, insights.requirements),
            "api_specs": self.api_specs(),
            "security_architecture": self.security_architecture(flows) if self.rules.include_security else None,
            "scalability_plan": (
                self.scalability_plan(insights.requirements) if self.rules.include_scalability else None
            ),
        }

    def stack_signals(
        self, bundle: PhaseAnalysisBundle, insights: CommonInsights, artifacts: dict[str, Any]
    ) -> StackSignals:
        components = _component_list(bundle.insights.get("component_specifications"))
        component_text = text_of(components, "name", "description")
        return StackSignals(
            scalability=first_match(
                (Rule(value="high", keywords=_SCALE_KEYWORDS),),
                text_of(insights.requirements),
                default="medium",
            ),
            realtime=mentions(component_text, REALTIME_KEYWORDS),
            ai=mentions(component_text, AI_KEYWORDS),
        )

    # ------------------------------------------------------------------
    # System design
    # ------------------------------------------------------------------

    def architecture_pattern(self, components: list[dict[str, Any]]) -> str:
        complex_interactions = any(len(spec.get("dependencies") or []) > 2 for spec in components)
        tag = "complex_interactions" if complex_interactions else ""
        return first_match(_ARCHITECTURE_RULES, tag, count=len(components), default="Monolithic")

    def system_design(self, components: list[dict[str, Any]], wireframes: list[Any]) -> dict[str, Any]:
        architecture = self.architecture_pattern(components)
        names = " ".join(split_words(spec["name"]) for spec in components)
        descriptions = text_of(components, "description")
        state_items = sum(len(spec.get("state") or []) for spec in components)
        default_stack = self.project_config.default_tech_stack

        return {
            "architecture": architecture,
            "patterns": [
                "MVC (Model-View-Controller)",
                *_PATTERNS_BY_ARCHITECTURE.get(architecture, ()),
                "Repository Pattern",
                "Dependency Injection",
            ],
            "frontend": {
                "framework": default_stack.get("frontend", "React"),
                "components": [
                    {"name": spec["name"], "layer": self._component_layer(spec)}
                    for spec in components
                ],
                "stateManagement": first_match(
                    _STATE_MANAGEMENT_RULES, count=state_items, default="Local component state"
                ),
                "routing": [
                    {"path": route_path(as_text(wireframe)), "title": as_text(wireframe)}
                    for wireframe in wireframes
                    if as_text(wireframe)
                ],
            },
            "backend": {
                "framework": first_match(
                    _BACKEND_FRAMEWORK_RULES,
                    descriptions,
                    default=default_stack.get("backend", "Node.js/Express"),
                ),
                "services": [*_BASE_SERVICES, *dict.fromkeys(collect(_SERVICE_RULES, names))],
                "middleware": ["Authentication", "Request validation", "Error handling", "Rate limiting"],
                "authentication": "JWT with refresh tokens",
                "dataLayer": "Repository pattern over an ORM",
            },
            "infrastructure": {
                "hosting": default_stack.get("deployment", "Cloud hosting"),
                "monitoring": "Application performance monitoring",
                "logging": "Structured centralized logging",
                "caching": "Redis" if len(components) > 5 else "In-memory caching",
            },
        }

    @staticmethod
    def _component_layer(spec: dict[str, Any]) -> str:
        layers = {"display": "presentation", "form": "interaction", "input": "interaction", "navigation": "routing"}
        return layers.get(str(spec.get("type", "")), "business")

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def entities(self, components: list[dict[str, Any]]) -> list[str]:
        found = list(_BASE_ENTITIES)
        for marker in _ENTITY_MARKERS:
            if any(marker.lower() in spec["name"].lower() for spec in components):
                found.append(marker)
        return found

    def database_schema(self, components: list[dict[str, Any]], requirements: list[Any]) -> dict[str, Any]:
        entities = self.entities(components)
        acid = mentions(text_of(requirements), _ACID_KEYWORDS)
        if len(entities) > 5:
            database_type = "PostgreSQL" if acid else "MySQL"
        else:
            database_type = "SQLite"

        return {
            "type": database_type,
            "entities": [
                {
                    "name": entity,
                    "fields": [*_BASE_FIELDS, *_ENTITY_FIELDS.get(entity.lower(), [f"{entity.lower()}_data"])],
                    "indexes": ["PRIMARY KEY (id)", *_ENTITY_INDEXES.get(entity.lower(), [])],
                    "constraints": list(_ENTITY_CONSTRAINTS.get(entity.lower(), [])),
                    "triggers": [
                        f"UPDATE {entity.lower()}_updated_at BEFORE UPDATE",
                        f"LOG_{entity.upper()}_CHANGES AFTER UPDATE",
                    ],
                }
                for entity in entities
            ],
            "relationships": [
                {"from": source, "to": target, "type": kind}
                for source, target, kind in _ENTITY_RELATIONSHIPS
                if source in entities and target in entities
            ],
            "migrations": {
                "versioning": "Sequential versioning",
                "rollback": "Automatic rollback on failure",
                "testing": "Migration testing in staging",
            },
            "backup": {
                "frequency": "Daily automated backups",
                "retention": "30 days",
                "testing": "Monthly restore testing",
            },
        }

    def api_specs(self) -> dict[str, Any]:
        endpoints = [
            {
                "path": f"/api/v1/{resource}{'s' if method == 'GET' else ''}",
                "method": method,
                "description": f"{method} operation for {resource}",
                "authentication": method != "GET",
                "validation": method in ("POST", "PUT"),
                "rateLimit": _RATE_LIMITS.get(method, "50 per minute"),
            }
            for resource in _API_RESOURCES
            for method in _HTTP_METHODS
        ]
        return {
            "version": "v1",
            "baseUrl": "/api/v1",
            "authentication": {
                "type": "Bearer Token (JWT)",
                "header": "Authorization",
                "expiration": "15 minutes",
                "refresh": "Refresh token mechanism",
            },
            "endpoints": endpoints,
            "documentation": {"format": "OpenAPI 3.0", "interactive": True, "examples": True},
            "versioning": {"strategy": "URL versioning", "deprecation": "Gradual with notices"},
            "rateLimit": {"global": "1000 requests per hour", "authenticated": "5000 requests per hour"},
            "errorHandling": {
                "format": "JSON error envelope",
                "codes": ["400", "401", "403", "404", "422", "429", "500"],
            },
        }

    # ------------------------------------------------------------------
    # Security & scalability
    # ------------------------------------------------------------------

    def security_architecture(self, flows: list[Any]) -> dict[str, Any]:
        flow_text = text_of(flows, "persona", "title")
        admin_flows = mentions(flow_text, ("admin", "administrator"))
        auth_flows = mentions(flow_text, AUTH_KEYWORDS)
        permissions = ["read:own", "write:own"]
        if admin_flows:
            permissions.extend(["read:all", "write:all", "admin:manage"])
        return {
            "authentication": {
                "strategy": "JWT with refresh tokens",
                "providers": ["local", "oauth2"],
                "mfa": admin_flows,
                "sessionManagement": "Stateless JWT",
            },
            "authorization": {"model": "RBAC (Role-Based Access Control)", "permissions": permissions},
            "dataProtection": {
                "encryption": {"atRest": "AES-256", "inTransit": "TLS 1.3"},
                "compliance": ["GDPR compliance", "Data encryption standards", "Audit trail requirements"],
            },
            "level": "high" if auth_flows or admin_flows else "medium",
        }

    def scalability_plan(self, requirements: list[Any]) -> dict[str, Any]:
        sharding = mentions(text_of(requirements), _SCALE_KEYWORDS)
        return {
            "horizontal": {
                "loadBalancing": "Application load balancer",
                "autoScaling": "Container-based auto-scaling",
            },
            "vertical": {"resourceMonitoring": "CPU, memory, disk monitoring", "alerting": "Resource threshold alerts"},
            "database": {"readReplicas": "Read replica scaling", "sharding": sharding, "caching": "Multi-level caching"},
            "cdn": {"static": "Static asset CDN", "geographic": "Geographic distribution"},
        }
