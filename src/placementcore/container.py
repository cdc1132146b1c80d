"""Dependency injection container for the placement core."""

from __future__ import annotations

from pathlib import Path

from dependency_injector import containers, providers

from .adapters import InMemoryNotificationSink, InMemoryStore
from .audit import AuditLogger
from .core import (
    ApplicationLifecycle,
    ApprovalWorkflow,
    MutationEffects,
    ProfileService,
    RegistryConfig,
    RoleRegistry,
    ScoreConfig,
    ScoreEngine,
)
from .pipeline import CommandPipeline
from .portal import PlacementPortal


class PlacementContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    store = providers.Singleton(InMemoryStore)
    notification_sink = providers.Singleton(InMemoryNotificationSink)
    audit_logger = providers.Object(None)

    registry = providers.Singleton(RoleRegistry)
    score_engine = providers.Singleton(ScoreEngine)

    effects = providers.Singleton(
        MutationEffects,
        sink=notification_sink,
        audit_logger=audit_logger,
    )

    approvals = providers.Singleton(
        ApprovalWorkflow,
        store=store,
        registry=registry,
        effects=effects,
    )

    lifecycle = providers.Singleton(
        ApplicationLifecycle,
        store=store,
        effects=effects,
    )

    profiles = providers.Singleton(
        ProfileService,
        store=store,
        score_engine=score_engine,
        registry=registry,
        effects=effects,
    )

    portal = providers.Singleton(
        PlacementPortal,
        registry=registry,
        approvals=approvals,
        lifecycle=lifecycle,
        profiles=profiles,
        score_engine=score_engine,
    )

    pipeline = providers.Factory(
        CommandPipeline,
        portal=portal,
        sink=notification_sink,
    )


def create_container(
    *,
    settings: dict | None = None,
    audit_path: Path | None = None,
) -> PlacementContainer:
    """Instantiate container with optional overrides."""

    container = PlacementContainer()

    if audit_path is not None:
        container.audit_logger.override(providers.Singleton(AuditLogger, audit_path))

    if not settings:
        return container

    registry_settings = settings.get("registry", {}) if isinstance(settings, dict) else {}
    if registry_settings:
        registry_config = RegistryConfig(**registry_settings)
        container.registry.override(providers.Singleton(RoleRegistry, config=registry_config))

    scoring_settings = settings.get("scoring", {}) if isinstance(settings, dict) else {}
    if scoring_settings:
        score_config = ScoreConfig(**scoring_settings)
        container.score_engine.override(providers.Singleton(ScoreEngine, config=score_config))

    return container
