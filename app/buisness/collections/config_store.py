"""
ConfigStore - points configuration lifecycle

Activation is one transaction: lock the active rows, deactivate them, flush,
then insert (or re-activate) the new one and commit. The partial unique index
on is_active makes a concurrent activation that loses the race fail with an
IntegrityError, which surfaces as ConfigurationConflictError. Any other
integrity failure is re-raised as is.
"""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from app.buisness.collections.context import CallerContext
from app.buisness.collections.errors import (
    ConfigurationConflictError,
    ConfigurationInUseError,
    NotFoundError,
)
from app.buisness.collections.points import DEFAULT_FORMULA, PointsFormula
from app.buisness.collections.store import CollectionStore
from app.buisness.collections.validation import POINTS_CONFIGURATION
from app.data.collections.points_configuration import SINGLE_ACTIVE_INDEX, PointsConfiguration
from app.utils.logger import get_logger

logger = get_logger("waste_collection.config_store")

DEFAULT_DESCRIPTION = 'Points configuration'

# SQLite names the column rather than the index
SQLITE_ACTIVE_VIOLATION = 'UNIQUE constraint failed: points_configurations.is_active'


def snapshot_of(configuration: Optional[PointsConfiguration]) -> PointsFormula:
    if configuration is None:
        return DEFAULT_FORMULA
    return PointsFormula(
        base_points=configuration.base_points,
        weight_factor=configuration.weight_factor,
        separation_factor=configuration.separation_factor,
        configuration_id=configuration.id,
    )


def is_single_active_violation(error: IntegrityError) -> bool:
    """True when the error comes from the one-active-configuration index"""
    diag = getattr(error.orig, 'diag', None)
    if diag is not None and getattr(diag, 'constraint_name', None):
        return diag.constraint_name == SINGLE_ACTIVE_INDEX
    message = str(error.orig)
    return SINGLE_ACTIVE_INDEX in message or SQLITE_ACTIVE_VIOLATION in message


class ConfigStore:

    def __init__(self, store: CollectionStore, chain):
        self.store = store
        self.chain = chain

    def active(self) -> Optional[PointsConfiguration]:
        return self.store.session.query(PointsConfiguration).filter_by(is_active=True).first()

    def active_snapshot(self) -> PointsFormula:
        """Immutable view of the active parameters, or the defaults when none is active"""
        return snapshot_of(self.active())

    def list_all(self) -> List[PointsConfiguration]:
        return self.store.session.query(PointsConfiguration).order_by(
            PointsConfiguration.created_at.desc(), PointsConfiguration.id.desc()
        ).all()

    def _deactivate_current(self, session) -> None:
        current = session.query(PointsConfiguration).filter_by(is_active=True).with_for_update().all()
        for configuration in current:
            configuration.is_active = False
        session.flush()

    def _commit_activation(self, session, caller: CallerContext, description: str) -> None:
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            if not is_single_active_violation(e):
                logger.error(f"{description} failed: {e.orig}")
                raise
            logger.warning(
                f"{description} lost the race to a concurrent activation",
                extra={"context": {"caller": caller.user_id}},
            )
            raise ConfigurationConflictError("Another configuration was activated concurrently") from e

    def activate(self, data: dict, caller: Optional[CallerContext] = None) -> PointsConfiguration:
        """
        Validate, then create the configuration as the single active one.

        Raises:
            ValidationFailed: parameters are invalid
            ConfigurationConflictError: a concurrent activation won
        """
        caller = caller or CallerContext()
        cleaned = self.chain.require_valid(POINTS_CONFIGURATION, data, caller)
        caller.check_deadline('activate points configuration')

        session = self.store.session
        try:
            self._deactivate_current(session)
            configuration = PointsConfiguration(
                base_points=cleaned['base_points'],
                weight_factor=cleaned['weight_factor'],
                separation_factor=cleaned['separation_factor'],
                description=cleaned.get('description') or DEFAULT_DESCRIPTION,
                is_active=True,
                created_by_id=caller.user_id,
                updated_by_id=caller.user_id,
            )
            session.add(configuration)
        except Exception:
            session.rollback()
            raise
        self._commit_activation(session, caller, "Points configuration activation")

        logger.info(f"Activated points configuration {configuration.id}")
        return configuration

    def activate_existing(self, configuration_id: int, caller: Optional[CallerContext] = None) -> PointsConfiguration:
        caller = caller or CallerContext()
        session = self.store.session
        configuration = session.get(PointsConfiguration, configuration_id)
        if configuration is None:
            raise NotFoundError('PointsConfiguration', configuration_id)
        if configuration.is_active:
            return configuration
        try:
            self._deactivate_current(session)
            configuration.is_active = True
            configuration.updated_by_id = caller.user_id
        except Exception:
            session.rollback()
            raise
        self._commit_activation(session, caller, f"Re-activation of configuration {configuration_id}")
        logger.info(f"Re-activated points configuration {configuration.id}")
        return configuration

    def delete(self, configuration_id: int) -> None:
        session = self.store.session
        configuration = session.get(PointsConfiguration, configuration_id)
        if configuration is None:
            raise NotFoundError('PointsConfiguration', configuration_id)
        if configuration.is_active:
            raise ConfigurationInUseError("The active points configuration cannot be deleted")
        with self.store.transaction():
            session.delete(configuration)
        logger.info(f"Deleted points configuration {configuration_id}")
