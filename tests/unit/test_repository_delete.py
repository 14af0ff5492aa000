"""Test the repository delete protocol."""

from conftest import FakeDataSource, TagRepository
from domain_repository.core.config import RepositoryConfig
from domain_repository.core.enums import RepositoryEvent
from domain_repository.domain import DataMapper, Entity


def _entity(source: FakeDataSource) -> Entity:
    return Entity(DataMapper(source))


class TestDeleteWithFakeSource:
    def test_successful_delete_fires_after_delete_once(self, spy_transaction, fake_source):
        repo = TagRepository(transaction=spy_transaction)
        fired = []
        repo.on(RepositoryEvent.AFTER_DELETE, fired.append)

        assert repo.delete(_entity(fake_source)) is True
        assert fake_source.calls == [("delete_record", None)]
        assert len(fired) == 1

    def test_vetoed_delete_never_reaches_storage(self, spy_transaction, fake_source):
        repo = TagRepository(transaction=spy_transaction)
        repo.on(RepositoryEvent.BEFORE_DELETE, lambda event: event.invalidate())
        fired = []
        repo.on(RepositoryEvent.AFTER_DELETE, fired.append)

        assert repo.delete(_entity(fake_source)) is False
        assert fake_source.calls == []
        assert fired == []

    def test_hook_veto(self, spy_transaction, fake_source):
        repo = TagRepository(transaction=spy_transaction)
        repo.add_before_delete_hook(lambda entity: False)

        assert repo.delete(_entity(fake_source)) is False
        assert fake_source.calls == []

    def test_hooks_skipped_after_event_veto(self, spy_transaction, fake_source):
        repo = TagRepository(transaction=spy_transaction)
        repo.on(RepositoryEvent.BEFORE_DELETE, lambda event: event.invalidate())
        seen = []
        repo.add_before_delete_hook(lambda entity: seen.append(entity) or True)

        assert repo.delete(_entity(fake_source)) is False
        assert seen == []

    def test_failed_delete_returns_false_without_after_event(self, spy_transaction):
        source = FakeDataSource(deletes=False)
        repo = TagRepository(transaction=spy_transaction)
        fired = []
        repo.on(RepositoryEvent.AFTER_DELETE, fired.append)

        assert repo.delete(_entity(source)) is False
        assert fired == []

    def test_delete_is_not_transactional(self, spy_transaction, fake_source):
        repo = TagRepository(
            config=RepositoryConfig(use_transactions=True),
            transaction=spy_transaction,
        )

        repo.delete(_entity(fake_source))
        assert spy_transaction.begins == 0

    def test_save_hooks_do_not_affect_delete(self, spy_transaction, fake_source):
        repo = TagRepository(transaction=spy_transaction)
        repo.add_before_save_hook(lambda entity: False)

        assert repo.delete(_entity(fake_source)) is True


class TestDeleteAgainstDatabase:
    def test_delete_removes_row(self, user_repo, make_user):
        user = make_user()
        pk = user.id

        assert user_repo.delete(user) is True
        assert user_repo.find_one_with_pk(pk) is None

    def test_delete_unsaved_entity_returns_false(self, user_repo, dispatcher):
        user = user_repo.create_new_entity({"email": "ada@example.com", "name": "Ada"})

        assert user_repo.delete(user) is False
        assert dispatcher.get_history(RepositoryEvent.AFTER_DELETE) == []

    def test_delete_twice(self, user_repo, make_user):
        user = make_user()

        assert user_repo.delete(user) is True
        assert user_repo.delete(user) is False

    def test_delete_events_in_order(self, user_repo, make_user, dispatcher):
        user = make_user()
        dispatcher.clear_history()

        user_repo.delete(user)
        assert [name for name, _ in dispatcher.get_history()] == ["before_delete", "after_delete"]
