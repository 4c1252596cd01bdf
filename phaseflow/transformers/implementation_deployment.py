"""Implementation -> deployment."""

from __future__ import annotations

from typing import Any

from ..heuristics import Rule, StackSignals, first_match, mentions
from ..models import CommonInsights, PhaseAnalysisBundle
from ..phases import Phase
from .base import BaseTransformer, items_of, priority_of, title_of

_HIGH_AVAILABILITY_KEYWORDS = ("high availability", "zero downtime", "99.9", "99.99", "failover")

_STRATEGY_RULES = (
    Rule(value="Blue-Green Deployment", keywords=("high_availability",)),
    Rule(value="Blue-Green Deployment", min_count=6),
    Rule(value="Rolling Deployment", min_count=4),
)

_ENVIRONMENTS = [
    {
        "name": "Development",
        "purpose": "Feature development and testing",
        "resources": "Minimal resources",
        "data": "Synthetic test data",
    },
    {
        "name": "Staging",
        "purpose": "Pre-production testing",
        "resources": "Production-like resources",
        "data": "Anonymized production data",
    },
    {
        "name": "Production",
        "purpose": "Live user environment",
        "resources": "Full production resources",
        "data": "Live user data",
    },
]

_ALERT_RULES = [
    {"metric": "Error rate > 5%", "severity": "critical", "action": "Page on-call"},
    {"metric": "Response time > 2s", "severity": "warning", "action": "Team notification"},
    {"metric": "CPU usage > 80%", "severity": "warning", "action": "Email notification"},
    {"metric": "Memory usage > 90%", "severity": "critical", "action": "Page on-call"},
    {"metric": "Disk space < 10%", "severity": "critical", "action": "Page on-call"},
]

_TROUBLESHOOTING_SECTIONS = [
    "Login and Authentication Issues",
    "Performance Problems",
    "Data Synchronization Issues",
    "Browser Compatibility",
    "API Integration Problems",
]


def _feature_list(value: Any) -> list[dict[str, Any]]:
    """Normalise the analyzed core features to dicts with name, priority and complexity."""
    features = []
    for item in items_of(value, "features", "core_features"):
        name = title_of(item, "")
        if not name:
            continue
        complexity = item.get("complexity") if isinstance(item, dict) else None
        features.append({"name": name, "priority": priority_of(item), "complexity": complexity or "medium"})
    return features


class ImplementationToDeploymentTransformer(BaseTransformer):
    """Plans the production rollout from the implemented features.

    The deployment strategy depends on the feature count and whether any
    feature needs high availability; monitoring, scaling and backup
    sections follow the project type's rules.
    """

    source_phase = Phase.IMPLEMENTATION
    output_type = "implementation_to_deployment"

    def derive_artifacts(self, bundle: PhaseAnalysisBundle, insights: CommonInsights) -> dict[str, Any]:
        features = _feature_list(bundle.insights.get("core_features"))
        high_availability = self.requires_high_availability(features, bundle.insight_text())
        testing = self.deliverable_insights(bundle, "testing_suite")

        deployment_plan = self.deployment_plan(features, high_availability, testing)
        return {
            "deployment_plan": deployment_plan,
            "monitoring_setup": self.monitoring_setup(features) if self.rules.include_monitoring else None,
            "user_documentation": self.user_documentation(features),
            "operational_plan": self.operational_plan(deployment_plan),
            "maintenance_plan": self.maintenance_plan(),
        }

    def stack_signals(
        self, bundle: PhaseAnalysisBundle, insights: CommonInsights, artifacts: dict[str, Any]
    ) -> StackSignals:
        strategy = artifacts["deployment_plan"]["strategy"]
        return StackSignals(scalability="high" if strategy == "Blue-Green Deployment" else "medium")

    # ------------------------------------------------------------------
    # Feature detection
    # ------------------------------------------------------------------

    @staticmethod
    def has_auth_feature(features: list[dict[str, Any]]) -> bool:
        return any("auth" in feature["name"].lower() for feature in features)

    @staticmethod
    def requires_high_availability(features: list[dict[str, Any]], text: str = "") -> bool:
        if any(f["priority"] == "high" and f["complexity"] == "high" for f in features):
            return True
        return mentions(text, _HIGH_AVAILABILITY_KEYWORDS)

    def deployment_strategy(self, features: list[dict[str, Any]], high_availability: bool) -> str:
        tag = "high_availability" if high_availability else ""
        return first_match(_STRATEGY_RULES, tag, count=len(features), default="Recreate Deployment")

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def deployment_plan(
        self, features: list[dict[str, Any]], high_availability: bool, testing: dict[str, Any]
    ) -> dict[str, Any]:
        stack = self.project_config.default_tech_stack
        test_tools = items_of(testing.get("tools")) or ["Unit test runner", "Security scanners"]
        plan: dict[str, Any] = {
            "strategy": self.deployment_strategy(features, high_availability),
            "environments": [dict(env) for env in _ENVIRONMENTS],
            "infrastructure": {
                "hosting": {
                    "provider": stack.get("deployment", "Cloud hosting"),
                    "regions": ["US East", "EU West"],
                    "loadBalancer": "Application load balancer",
                },
                "database": {
                    "type": "Managed database service",
                    "replication": "Read replicas for scaling",
                },
                "networking": {
                    "cdn": "Global CDN for performance",
                    "ssl": "Automated SSL certificate management",
                    "firewall": "Web application firewall",
                },
            },
            "security": {
                "secretsManagement": "Encrypted secrets storage",
                "environmentIsolation": "Network isolation between environments",
                "auditLogging": "All deployment actions logged",
                "vulnerabilityScanning": "Container and dependency scanning",
            },
            "rollback": {
                "automatic": "Automatic rollback on health check failure",
                "manual": "Manual rollback procedures documented",
                "data": "Database rollback strategy",
                "timeLimit": "Rollback within 5 minutes",
            },
            "disasterRecovery": {
                "scenarios": ["Data center outage", "Regional disaster", "Cyber attack"],
                "testing": "Quarterly disaster recovery drills",
            },
        }
        if self.rules.include_cicd:
            plan["pipeline"] = {
                "trigger": "Git push to main branch",
                "provider": stack.get("cicd", "GitHub Actions"),
                "steps": [
                    {"stage": "Build", "tasks": ["Dependency installation", "Asset optimization"]},
                    {"stage": "Test", "tasks": ["Unit tests", "Integration tests", "Security scans"], "tools": test_tools},
                    {"stage": "Deploy to Staging", "tasks": ["Application deployment", "Smoke tests"]},
                    {
                        "stage": "Production Deployment",
                        "tasks": ["Traffic switch", "Health checks", "Monitoring validation"],
                        "approval": "Manual approval required",
                    },
                ],
                "rollback": "Automatic rollback on failure",
            }
        if self.rules.include_scaling:
            plan["scaling"] = {
                "horizontal": {
                    "trigger": "CPU > 70% for 5 minutes",
                    "minInstances": 2,
                    "maxInstances": 10,
                },
                "vertical": {"monitoring": "Memory and CPU monitoring", "alerts": "Resource threshold alerts"},
                "database": {"readReplicas": "Auto-scaling read replicas", "connectionPooling": True},
            }
        if self.rules.include_backup:
            plan["backup"] = {
                "frequency": "Daily automated backups",
                "retention": "30 days for daily, 12 months for monthly",
                "testing": "Monthly backup restore testing",
                "recoveryTime": "RTO: 4 hours, RPO: 1 hour",
            }
        return plan

    def monitoring_setup(self, features: list[dict[str, Any]]) -> dict[str, Any]:
        health_checks = [
            {"endpoint": "/health", "description": "Basic application health"},
            {"endpoint": "/health/database", "description": "Database connectivity"},
            {"endpoint": "/health/dependencies", "description": "External service health"},
        ]
        alert_rules = [dict(rule) for rule in _ALERT_RULES]
        if self.has_auth_feature(features):
            health_checks.append({"endpoint": "/health/auth", "description": "Authentication service health"})
            alert_rules.append(
                {"metric": "Failed login attempts > 100/min", "severity": "warning", "action": "Security alert"}
            )

        return {
            "application": {
                "healthChecks": health_checks,
                "metrics": ["Request rate", "Response time percentiles", "Error rate", "Active users"],
                "logging": {"format": "Structured JSON", "retention": "30 days", "levels": ["error", "warn", "info"]},
                "tracing": {"sampling": "10% of requests", "propagation": "W3C trace context"},
            },
            "infrastructure": {
                "server": ["CPU usage", "Memory usage", "Disk I/O"],
                "network": ["Bandwidth", "Latency", "Packet loss"],
                "database": ["Query time", "Connection count", "Replication lag"],
            },
            "alerting": {
                "rules": alert_rules,
                "escalation": [
                    {"level": 1, "time": "0 minutes", "contact": "Primary on-call engineer"},
                    {"level": 2, "time": "15 minutes", "contact": "Secondary on-call engineer"},
                    {"level": 3, "time": "30 minutes", "contact": "Engineering manager"},
                ],
                "oncall": {"rotation": "Weekly rotation", "coverage": "24/7 coverage"},
            },
            "dashboards": {
                "operational": ["System Overview", "Infrastructure", "Application"],
                "business": ["User Analytics", "Performance KPIs"],
                "security": ["Security Overview", "Compliance"],
            },
        }

    def user_documentation(self, features: list[dict[str, Any]]) -> dict[str, Any]:
        sections = ["Getting Started", "Account Management"]
        sections += [feature["name"] for feature in features if "system" not in feature["name"].lower()]
        sections += ["Troubleshooting", "FAQ"]
        return {
            "userGuide": {"title": "User Guide", "sections": sections, "searchable": True, "versioning": True},
            "apiDocs": {"title": "API Documentation", "format": "OpenAPI/Swagger UI", "interactive": True},
            "troubleshooting": {"title": "Troubleshooting Guide", "sections": list(_TROUBLESHOOTING_SECTIONS)},
            "changelog": {"title": "Release Notes and Changelog", "format": "Markdown with semantic versioning"},
            "onboarding": {"title": "Getting Started Guide", "format": "Step-by-step tutorial"},
        }

    def operational_plan(self, deployment_plan: dict[str, Any]) -> dict[str, Any]:
        return {
            "launch": {
                "strategy": deployment_plan["strategy"],
                "phases": [
                    {"name": "Soft Launch", "description": "Limited user group", "duration": "1 week"},
                    {"name": "Beta Launch", "description": "Expanded user base", "duration": "2 weeks"},
                    {"name": "Full Launch", "description": "General availability", "duration": "Ongoing"},
                ],
                "criteria": [
                    "All critical tests passing",
                    "Performance benchmarks met",
                    "Security review completed",
                    "Monitoring systems operational",
                ],
                "rollbackTriggers": [
                    "Error rate > 10%",
                    "Response time > 5 seconds",
                    "Critical functionality broken",
                    "Data corruption detected",
                ],
            },
            "support": {
                "levels": [
                    {"level": "L1", "description": "Basic user support", "response": "4 hours"},
                    {"level": "L2", "description": "Technical support", "response": "8 hours"},
                    {"level": "L3", "description": "Engineering support", "response": "24 hours"},
                ],
            },
            "performance": {
                "sla": {
                    "availability": "99.9% uptime",
                    "responseTime": "< 2 seconds for 95% of requests",
                    "errorRate": "< 1% error rate",
                },
            },
            "security": {
                "incidentResponse": "Incident response team activation with blameless postmortems",
                "compliance": ["Data protection compliance (GDPR)", "Audit trail maintenance"],
            },
        }

    def maintenance_plan(self) -> dict[str, Any]:
        return {
            "preventive": {
                "schedule": {
                    "daily": "Automated system health checks",
                    "weekly": "Performance optimization review",
                    "monthly": "Security updates and patches",
                    "quarterly": "Major system updates and reviews",
                },
                "tasks": [
                    "Database optimization and cleanup",
                    "Log rotation and archival",
                    "Security patch application",
                    "Backup verification",
                    "Dependency updates",
                ],
                "windows": {"scheduled": "Sunday 2-4 AM UTC", "notice": "48 hours advance notice"},
            },
            "corrective": {"bugFixes": "Rapid bug fix deployment process", "hotfixes": "Emergency hotfix procedures"},
            "adaptive": {"updates": "Bi-weekly feature updates", "security": "Immediate security updates"},
            "perfective": {"optimization": "Performance optimization cycles", "refactoring": "Code quality improvement"},
        }
