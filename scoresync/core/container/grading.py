from __future__ import annotations

from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Dependency, Factory, Provider, Singleton

from scoresync.grading import OutcomeAverageAnalyzer, OutcomeScoreService, OverrideGradeService, ReconciliationPass, \
    UnifiedGradeMutator

from ..config import GradingSettings
from ..provider import TimestampProvider


class GradingContainer(DeclarativeContainer):
    """Reconciliation services; the Canvas client is supplied per pass, e.g. `reconciliation(client=client)`."""

    config: Configuration = Configuration()
    utcnow: Provider[TimestampProvider] = Dependency()

    settings: Provider[GradingSettings] = Singleton(GradingSettings, config)
    overrides: Provider[OverrideGradeService] = Singleton(OverrideGradeService, config=settings)
    outcomes: Provider[OutcomeScoreService] = Singleton(OutcomeScoreService, config=settings)
    analyzer: Provider[OutcomeAverageAnalyzer] = Singleton(OutcomeAverageAnalyzer, config=settings, overrides=overrides)
    mutator: Provider[UnifiedGradeMutator] = Singleton(UnifiedGradeMutator, config=settings)

    reconciliation: Provider[ReconciliationPass] = Factory(
        ReconciliationPass,
        config=settings,
        utcnow=utcnow,
        analyzer=analyzer,
        overrides=overrides,
        outcomes=outcomes,
        mutator=mutator,
    )
