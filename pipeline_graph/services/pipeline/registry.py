"""Component Registry.

Catalog of step types the pipeline builder knows about: display metadata,
default configuration, required and deprecated configuration keys, and
which step types may follow which (the connection allow-list).

Definitions are validated when they are registered, so a broken table
fails at load time instead of producing confusing validation results.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
from typing import Any

from pydantic import Field, ValidationError, model_validator

from pipeline_graph.schemas.base import BaseSchema
from pipeline_graph.services.pipeline.exceptions import RegistryError

logger = logging.getLogger(__name__)


class ComponentCategory:
    """Component category identifiers and their display names."""

    SOURCE_CONTROL = "source-control"
    BUILD_COMPILE = "build-compile"
    TESTING = "testing"
    DEPLOYMENT = "deployment"
    DATABASE = "database"
    UTILITIES = "utilities"

    DISPLAY_NAMES: dict[str, str] = {
        SOURCE_CONTROL: "Source Control",
        BUILD_COMPILE: "Build & Compile",
        TESTING: "Testing",
        DEPLOYMENT: "Deployment",
        DATABASE: "Database",
        UTILITIES: "Utilities",
    }


class ComponentDefinition(BaseSchema):
    """Definition of one step type."""

    type: str = Field(..., min_length=1, description="Step type identifier")
    name: str = Field(..., min_length=1, description="Display name")
    description: str = ""
    category: str = ComponentCategory.UTILITIES
    default_config: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    required_fields: frozenset[str] = Field(default_factory=frozenset)
    deprecated_fields: frozenset[str] = Field(default_factory=frozenset)

    @model_validator(mode="after")
    def check_field_sets(self) -> ComponentDefinition:
        """Required keys must have defaults and cannot also be deprecated."""
        if not self.type.strip():
            raise ValueError("type must not be blank")

        overlap = self.required_fields & self.deprecated_fields
        if overlap:
            raise ValueError(
                f"fields both required and deprecated: {', '.join(sorted(overlap))}"
            )

        undeclared = self.required_fields - set(self.default_config)
        if undeclared:
            raise ValueError(
                f"required fields missing from default_config: {', '.join(sorted(undeclared))}"
            )
        return self

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on name, description, type or tags."""
        needle = query.lower()
        return (
            needle in self.name.lower()
            or needle in self.description.lower()
            or needle in self.type.lower()
            or any(needle in tag.lower() for tag in self.tags)
        )


def _definition(
    type: str,
    name: str,
    description: str,
    category: str,
    default_config: dict[str, Any],
    tags: list[str],
    required: tuple[str, ...] = (),
) -> dict[str, Any]:
    return {
        "type": type,
        "name": name,
        "description": description,
        "category": category,
        "default_config": default_config,
        "tags": tags,
        "required_fields": frozenset(required),
    }


BUILTIN_COMPONENTS: list[dict[str, Any]] = [
    # Source control
    _definition(
        "github-clone",
        "GitHub Clone",
        "Clone repository from GitHub",
        ComponentCategory.SOURCE_CONTROL,
        {"repository": "", "branch": "main", "depth": 1, "token": ""},
        ["git", "github", "clone", "source"],
        required=("repository", "branch"),
    ),
    _definition(
        "gitlab-clone",
        "GitLab Clone",
        "Clone repository from GitLab",
        ComponentCategory.SOURCE_CONTROL,
        {"repository": "", "branch": "main", "depth": 1, "token": ""},
        ["git", "gitlab", "clone", "source"],
        required=("repository", "branch"),
    ),
    _definition(
        "git-checkout",
        "Git Checkout",
        "Switch branches or commits",
        ComponentCategory.SOURCE_CONTROL,
        {"branch": "", "commit": "", "createBranch": False},
        ["git", "checkout", "branch", "commit"],
    ),
    # Build & compile
    _definition(
        "normal-build",
        "Normal Build",
        "Standard build process",
        ComponentCategory.BUILD_COMPILE,
        {"command": "make", "workingDirectory": ".", "environment": {}},
        ["build", "compile", "make"],
    ),
    _definition(
        "docker-build",
        "Docker Build",
        "Build Docker images",
        ComponentCategory.BUILD_COMPILE,
        {"dockerfile": "Dockerfile", "context": ".", "tag": "latest", "buildArgs": {}},
        ["docker", "build", "container", "image"],
        required=("dockerfile",),
    ),
    _definition(
        "node-npm",
        "Node.js NPM",
        "Build Node.js with NPM",
        ComponentCategory.BUILD_COMPILE,
        {"command": "npm install", "nodeVersion": "18", "registry": "https://registry.npmjs.org/"},
        ["nodejs", "npm", "javascript", "build"],
    ),
    _definition(
        "python-build",
        "Python Build",
        "Build Python applications",
        ComponentCategory.BUILD_COMPILE,
        {"command": "pip install -r requirements.txt", "pythonVersion": "3.9", "virtualenv": True},
        ["python", "pip", "build", "virtualenv"],
    ),
    # Testing
    _definition(
        "unit-tests",
        "Unit Tests",
        "Run unit tests",
        ComponentCategory.TESTING,
        {"command": "npm test", "coverage": True, "reportFormat": "junit"},
        ["test", "unit", "coverage", "junit"],
    ),
    _definition(
        "integration-tests",
        "Integration Tests",
        "Run integration tests",
        ComponentCategory.TESTING,
        {"command": "npm run test:integration", "timeout": 300, "parallel": False},
        ["test", "integration", "e2e"],
    ),
    _definition(
        "security-scan",
        "Security Scan",
        "Run security vulnerability scans",
        ComponentCategory.TESTING,
        {"tool": "npm audit", "severity": "high", "failOnVulnerabilities": True},
        ["security", "scan", "vulnerability", "audit"],
    ),
    # Deployment
    _definition(
        "deploy-local",
        "Local Deploy",
        "Deploy to local server",
        ComponentCategory.DEPLOYMENT,
        {"path": "/var/www/html", "user": "www-data", "permissions": "755"},
        ["deploy", "local", "server"],
    ),
    _definition(
        "deploy-ssh",
        "SSH Deploy",
        "Deploy via SSH",
        ComponentCategory.DEPLOYMENT,
        {"host": "", "user": "", "port": 22, "path": "/var/www/html", "keyFile": ""},
        ["deploy", "ssh", "remote", "server"],
        required=("host", "user"),
    ),
    _definition(
        "deploy-k8s",
        "Kubernetes Deploy",
        "Deploy to Kubernetes cluster",
        ComponentCategory.DEPLOYMENT,
        {"namespace": "default", "deployment": "", "image": "", "replicas": 1},
        ["deploy", "kubernetes", "k8s", "container"],
        required=("namespace", "deployment"),
    ),
    _definition(
        "deploy-cloud",
        "Cloud Deploy",
        "Deploy to cloud platform",
        ComponentCategory.DEPLOYMENT,
        {"provider": "aws", "region": "us-east-1", "service": "", "configuration": {}},
        ["deploy", "cloud", "aws", "azure", "gcp"],
    ),
    # Utilities
    _definition(
        "shell-command",
        "Shell Command",
        "Execute custom shell commands",
        ComponentCategory.UTILITIES,
        {"command": "", "shell": "/bin/bash", "workingDirectory": ".", "timeout": 300},
        ["shell", "command", "script", "bash"],
    ),
    _definition(
        "file-operations",
        "File Operations",
        "Copy, move, or delete files",
        ComponentCategory.UTILITIES,
        {"operation": "copy", "source": "", "destination": "", "recursive": False},
        ["file", "copy", "move", "delete"],
    ),
    _definition(
        "environment-setup",
        "Environment Setup",
        "Set up environment variables",
        ComponentCategory.UTILITIES,
        {"variables": {}, "file": ".env", "override": False},
        ["environment", "variables", "config", "setup"],
    ),
    _definition(
        "notification",
        "Notification",
        "Send notifications",
        ComponentCategory.UTILITIES,
        {"type": "email", "recipients": [], "message": "", "onFailure": True},
        ["notification", "email", "slack", "webhook"],
    ),
    # Database
    _definition(
        "database-migration",
        "Database Migration",
        "Run database migrations",
        ComponentCategory.DATABASE,
        {"type": "postgresql", "host": "localhost", "port": 5432, "database": "", "migrations": "./migrations"},
        ["database", "migration", "sql", "schema"],
    ),
    _definition(
        "database-backup",
        "Database Backup",
        "Create database backups",
        ComponentCategory.DATABASE,
        {"type": "postgresql", "host": "localhost", "port": 5432, "database": "", "destination": "./backups"},
        ["database", "backup", "dump", "restore"],
    ),
]

_DEPLOY_TARGETS = ["deploy-local", "deploy-ssh", "deploy-k8s"]

# Source step type -> step types it may lead to. Types without an entry
# may connect to anything.
CONNECTION_RULES: dict[str, list[str]] = {
    "github-clone": ["docker-build", "node-npm", "python-build", "normal-build"],
    "gitlab-clone": ["docker-build", "node-npm", "python-build", "normal-build"],
    "docker-build": ["unit-tests", "integration-tests", "security-scan", *_DEPLOY_TARGETS],
    "node-npm": ["unit-tests", "integration-tests", "security-scan", "deploy-local", "deploy-ssh"],
    "unit-tests": ["integration-tests", "security-scan", *_DEPLOY_TARGETS],
    "integration-tests": ["security-scan", *_DEPLOY_TARGETS],
    "security-scan": list(_DEPLOY_TARGETS),
}


def is_missing_value(value: Any) -> bool:
    """A configuration value counts as missing if it is None or a blank string."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


class ComponentRegistry:
    """Registry of component definitions keyed by step type.

    Manages definition registration and answers the lookups the validator
    needs: is a step type known, which configuration keys it requires,
    and which step types it may connect to.

    Example:
        registry = ComponentRegistry()
        registry.required_fields("github-clone")  # frozenset({'repository', 'branch'})
        registry.is_connection_allowed("github-clone", "deploy-k8s")  # False
    """

    def __init__(
        self,
        definitions: list[ComponentDefinition | dict[str, Any]] | None = None,
        connection_rules: dict[str, list[str]] | None = None,
    ) -> None:
        """Initialize registry.

        Args:
            definitions: Component definitions to load. Defaults to the
                built-in catalog.
            connection_rules: Allow-list keyed by source step type.
                Defaults to the built-in rules.

        Raises:
            RegistryError: If a definition is invalid or a type is duplicated.
        """
        self._definitions: dict[str, ComponentDefinition] = {}
        self._connection_rules: dict[str, tuple[str, ...]] = {}
        self._fingerprint: str | None = None

        for definition in BUILTIN_COMPONENTS if definitions is None else definitions:
            self.register(definition)

        rules = CONNECTION_RULES if connection_rules is None else connection_rules
        for source_type, targets in rules.items():
            self._connection_rules[source_type] = tuple(targets)

        logger.debug(
            f"Component registry loaded {len(self._definitions)} definitions, "
            f"{len(self._connection_rules)} connection rules"
        )

    def register(
        self,
        definition: ComponentDefinition | dict[str, Any],
        replace: bool = False,
    ) -> ComponentDefinition:
        """Register a component definition.

        Args:
            definition: Definition model or a mapping of its fields.
            replace: Allow overwriting an existing step type.

        Returns:
            The validated definition.

        Raises:
            RegistryError: If the definition is invalid, or its type is
                already registered and ``replace`` is False.
        """
        if isinstance(definition, dict):
            try:
                definition = ComponentDefinition.model_validate(definition)
            except ValidationError as e:
                raise RegistryError(
                    f"Invalid component definition: {e.errors()[0]['msg']}",
                    step_type=definition.get("type"),
                ) from e

        if definition.type in self._definitions and not replace:
            raise RegistryError(
                f"Component type already registered: {definition.type}",
                step_type=definition.type,
            )

        self._definitions[definition.type] = definition
        self._fingerprint = None
        return definition

    def get(self, step_type: str) -> ComponentDefinition:
        """Get the definition for a step type.

        Raises:
            RegistryError: If the step type is not registered.
        """
        if step_type not in self._definitions:
            raise RegistryError(
                f"No component registered for step type: {step_type}",
                step_type=step_type,
            )
        return self._definitions[step_type]

    def is_registered(self, step_type: str) -> bool:
        return step_type in self._definitions

    def required_fields(self, step_type: str) -> frozenset[str]:
        """Required configuration keys; empty for unknown step types."""
        definition = self._definitions.get(step_type)
        return definition.required_fields if definition else frozenset()

    def deprecated_fields(self, step_type: str) -> frozenset[str]:
        definition = self._definitions.get(step_type)
        return definition.deprecated_fields if definition else frozenset()

    def missing_required_fields(
        self,
        step_type: str,
        configuration: dict[str, Any] | None,
    ) -> list[str]:
        """Return required keys that are absent, None or blank, sorted."""
        config = configuration or {}
        return [
            field
            for field in sorted(self.required_fields(step_type))
            if is_missing_value(config.get(field))
        ]

    def default_config(self, step_type: str) -> dict[str, Any]:
        """Return a deep copy of the default configuration for a step type."""
        return copy.deepcopy(self.get(step_type).default_config)

    def allowed_targets(self, source_type: str) -> tuple[str, ...] | None:
        """Allowed target types for a source type, or None if unrestricted."""
        return self._connection_rules.get(source_type)

    def is_connection_allowed(self, source_type: str, target_type: str) -> bool:
        """Check the allow-list. Sources without an entry may connect to anything."""
        allowed = self._connection_rules.get(source_type)
        return allowed is None or target_type in allowed

    def by_category(self, category: str) -> list[ComponentDefinition]:
        return [d for d in self._definitions.values() if d.category == category]

    def categories(self) -> dict[str, list[ComponentDefinition]]:
        """Group definitions by category, in catalog order."""
        grouped: dict[str, list[ComponentDefinition]] = {}
        for definition in self._definitions.values():
            grouped.setdefault(definition.category, []).append(definition)
        return grouped

    def search(self, query: str) -> list[ComponentDefinition]:
        """Find definitions whose name, description, type or tags contain ``query``."""
        return [d for d in self._definitions.values() if d.matches(query)]

    def fingerprint(self) -> str:
        """Short hash of everything that affects validation results.

        Covers each step type's required and deprecated keys and the
        connection allow-list. Recomputed after ``register``.
        """
        if self._fingerprint is None:
            content = {
                "definitions": {
                    step_type: [sorted(d.required_fields), sorted(d.deprecated_fields)]
                    for step_type, d in self._definitions.items()
                },
                "connections": {
                    source: list(targets) for source, targets in self._connection_rules.items()
                },
            }
            canonical = json.dumps(content, sort_keys=True, separators=(",", ":"))
            self._fingerprint = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
        return self._fingerprint

    def list_registered(self) -> list[str]:
        """List all registered step types."""
        return list(self._definitions.keys())

    def __contains__(self, step_type: object) -> bool:
        return step_type in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)


__all__ = [
    "BUILTIN_COMPONENTS",
    "CONNECTION_RULES",
    "ComponentCategory",
    "ComponentDefinition",
    "ComponentRegistry",
    "is_missing_value",
]
