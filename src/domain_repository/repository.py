"""Entities repository: save, delete and retrieval orchestration.

A repository is paired with four companion classes. Declare them as class
attributes, or let the repository resolve them from the companion registry
by name::

    class UserRecord(Record): ...
    class UserEntity(Entity): ...

    class UserRepository(EntitiesRepository):
        pass                      # resolves UserEntity / UserRecord,
                                  # UserFinder / UserQuery or the defaults

Every save and delete fires a cancellable "before" event and, on success,
an "after" event. Saves optionally run inside a transaction that commits
only when the save succeeds.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Iterator, Sequence

from sqlalchemy.orm import Session

from domain_repository import registry
from domain_repository.container import container as default_container
from domain_repository.core.config import RepositoryConfig
from domain_repository.core.enums import CompanionElement, RepositoryEvent
from domain_repository.core.errors import InvalidConfigError, UnableToSaveEntityError
from domain_repository.core.interfaces import (
    BeforeHook,
    IContainer,
    IEntity,
    IEventDispatcher,
    IFinder,
    IQuery,
    ITransaction,
)
from domain_repository.event_bus.dispatcher import EventDispatcher
from domain_repository.storage.sql.transaction import TransactionManager

logger = logging.getLogger(__name__)

_BEFORE_EVENTS = (RepositoryEvent.BEFORE_SAVE, RepositoryEvent.BEFORE_DELETE)


class EntitiesRepository:
    """Coordinates entity creation, validation, persistence and lifecycle events."""

    entity_class: type | None = None
    record_class: type | None = None
    finder_class: type | None = None
    query_class: type | None = None

    def __init__(
        self,
        *,
        config: RepositoryConfig | None = None,
        container: IContainer | None = None,
        dispatcher: IEventDispatcher | None = None,
        transaction: ITransaction | None = None,
        session: Session | None = None,
    ) -> None:
        self.config = config or RepositoryConfig()
        self.container = container or default_container
        self.dispatcher = dispatcher or EventDispatcher()
        self.session = session
        self.transaction = transaction or TransactionManager(session)
        self._hooks: dict[RepositoryEvent, list[Callable[[Any], Any]]] = defaultdict(list)

        # Resolved once so misconfiguration fails at construction
        self.entity_class = self.resolve_companion(CompanionElement.ENTITY)
        self.record_class = self.resolve_companion(CompanionElement.RECORD)
        self.finder_class = self.resolve_companion(
            CompanionElement.FINDER, self.config.default_finder_class,
        )
        self.query_class = self.resolve_companion(
            CompanionElement.QUERY, self.config.default_query_class,
        )

    # ------------------------------------------------------------------
    # Companion resolution
    # ------------------------------------------------------------------

    @classmethod
    def resolve_companion(
        cls,
        element: CompanionElement | str,
        default: type | None = None,
    ) -> type:
        """Resolve a companion class for this repository.

        Order: explicit class attribute, registered ``<Name><Element>``
        class (same module first), ``default``.

        Raises:
            InvalidConfigError: If nothing resolves and there is no default.
        """
        element = CompanionElement(element)
        explicit = getattr(cls, f"{element.value.lower()}_class", None)
        if explicit is not None:
            return explicit

        name = registry.companion_name(cls.__name__, element.value)
        found = registry.lookup(name, module=cls.__module__)
        if found is not None:
            return found
        if default is not None:
            return default
        raise InvalidConfigError(
            f"{element.value} class for {cls.__name__} should be an existing "
            f"registered class (looked up '{name}')"
        )

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def validate_and_save(self, entity: IEntity, attributes: Sequence[str] | None = None) -> bool:
        """Validate and persist ``entity``.

        With ``attributes``, only those columns of a stored entity are written
        and changes to its other columns are discarded.

        Returns:
            True on success, False if a before-save handler vetoed the save.

        Raises:
            UnableToSaveEntityError: If the data source refused to persist.
        """
        return self._save(entity, run_validation=True, attributes=attributes)

    def save_without_validation(self, entity: IEntity, attributes: Sequence[str] | None = None) -> bool:
        """Persist ``entity`` bypassing validation. Same contract as :meth:`validate_and_save`."""
        return self._save(entity, run_validation=False, attributes=attributes)

    def _save(self, entity: IEntity, *, run_validation: bool, attributes: Sequence[str] | None) -> bool:
        if attributes is not None:
            self._discard_unlisted_changes(entity, attributes)
        if self.config.use_transactions:
            return self._save_entity_using_transaction(entity, run_validation, attributes)
        return self._save_entity_internal(entity, run_validation, attributes)

    def _discard_unlisted_changes(self, entity: IEntity, attributes: Sequence[str]) -> None:
        # Opening a savepoint flushes the session, so changes outside
        # ``attributes`` must be gone before the transaction begins
        data_source = entity.get_data_mapper().get_data_source()
        discard = getattr(data_source, "discard_changes", None)
        if callable(discard):
            discard(keep=attributes)

    def _save_entity_using_transaction(
        self,
        entity: IEntity,
        run_validation: bool,
        attributes: Sequence[str] | None,
    ) -> bool:
        self.transaction.begin()
        try:
            result = self._save_entity_internal(entity, run_validation, attributes)
        except Exception as exc:
            self.transaction.rollback()
            if isinstance(exc, UnableToSaveEntityError) and self.config.suppress_save_errors:
                logger.warning(
                    "Save of %s rolled back: %s",
                    type(entity).__name__,
                    exc.errors,
                )
                return False
            raise

        if result:
            self.transaction.commit()
        else:
            self.transaction.rollback()
        return result

    def _save_entity_internal(
        self,
        entity: IEntity,
        run_validation: bool,
        attributes: Sequence[str] | None,
    ) -> bool:
        if not self._trigger_model_event(RepositoryEvent.BEFORE_SAVE, entity):
            logger.info("Save of %s vetoed by before_save", type(entity).__name__)
            return False

        data_source = entity.get_data_mapper().get_data_source()
        if run_validation:
            saved = data_source.validate_and_save(attributes)
        else:
            saved = data_source.save_without_validation(attributes)

        if not saved:
            raise UnableToSaveEntityError(
                f"Failed to save entity {type(entity).__name__}",
                data_source.get_errors(),
            )

        self._trigger_model_event(RepositoryEvent.AFTER_SAVE, entity)
        return True

    # ------------------------------------------------------------------
    # Deleting / validating
    # ------------------------------------------------------------------

    def delete(self, entity: IEntity) -> bool:
        """Delete the entity's backing record.

        Returns False when vetoed or when the data source does not delete.
        """
        if not self._trigger_model_event(RepositoryEvent.BEFORE_DELETE, entity):
            logger.info("Delete of %s vetoed by before_delete", type(entity).__name__)
            return False

        if not entity.get_data_mapper().get_data_source().delete_record():
            logger.info("Delete of %s not performed by data source", type(entity).__name__)
            return False

        self._trigger_model_event(RepositoryEvent.AFTER_DELETE, entity)
        return True

    def validate(self, entity: IEntity, attributes: Sequence[str] | None = None) -> bool:
        return entity.get_data_mapper().get_data_source().validate(attributes)

    # ------------------------------------------------------------------
    # Events & hooks
    # ------------------------------------------------------------------

    def on(self, event: RepositoryEvent | str, handler: Callable[[Any], None]) -> None:
        self.dispatcher.on(RepositoryEvent(event), handler)

    def off(self, event: RepositoryEvent | str, handler: Callable[[Any], None] | None = None) -> bool:
        return self.dispatcher.off(RepositoryEvent(event), handler)

    def add_hook(self, event: RepositoryEvent | str, hook: Callable[[Any], Any]) -> None:
        """Register ``hook(entity)``. Before-hooks veto by returning False."""
        self._hooks[RepositoryEvent(event)].append(hook)

    def add_before_save_hook(self, hook: BeforeHook) -> None:
        self.add_hook(RepositoryEvent.BEFORE_SAVE, hook)

    def add_before_delete_hook(self, hook: BeforeHook) -> None:
        self.add_hook(RepositoryEvent.BEFORE_DELETE, hook)

    def _trigger_model_event(self, name: RepositoryEvent, entity: IEntity) -> bool:
        event = self.container.create(
            self.config.model_event_class, entity, name=name, sender=self,
        )
        self.dispatcher.trigger(name, event)
        if name in _BEFORE_EVENTS and not event.is_valid():
            return False

        for hook in self._hooks.get(name, []):
            allowed = hook(entity)
            if name in _BEFORE_EVENTS and allowed is False:
                event.invalidate()
                break

        return event.is_valid()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_new_entity(self, attributes: dict[str, Any] | None = None) -> IEntity:
        """New entity over a fresh, unsaved record."""
        entity = self.create_entity_from_source(self._create_record())
        if attributes:
            entity.set_attributes(attributes)
        return entity

    def _create_record(self) -> Any:
        record = self.container.create(self.record_class)
        if self.session is not None:
            record.bind_session(self.session)
        return record

    def create_entity_from_source(self, record: Any) -> IEntity:
        """Entity wrapping an existing record."""
        return self.container.create({
            "class": self.entity_class,
            "data_mapper": self.container.create(self.config.data_mapper_class, record),
        })

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def create_query(self) -> IQuery:
        return self.container.create(self.query_class, self.record_class, session=self.session)

    def find(self) -> IFinder:
        return self.container.create(self.finder_class, self.create_query(), self)

    def find_one_with_pk(self, pk: Any) -> IEntity | None:
        return self.find().one_with_pk(pk)

    def find_all(self) -> list[IEntity]:
        return self.find().all()

    def each(self, batch_size: int = 100) -> Iterator[IEntity]:
        return self.find().each(batch_size)

    def get_entities_provider(self, **options: Any) -> Any:
        """Paging/sorting provider over a fresh query. Options go to the provider."""
        return self.container.create({
            "class": self.config.entities_provider_class,
            "query": self.create_query(),
            "repository": self,
            **options,
        })
