"""Property tests for the save/delete protocol.

Uses hypothesis to verify, over every combination of veto, data-source
outcome and configuration:
- Each transactional save ends in exactly one commit or one rollback
- after_save fires once on success and never otherwise
- A vetoed operation never reaches the data source
"""

import pytest
from hypothesis import given, strategies as st

from conftest import FakeDataSource, SpyTransaction, TagRepository
from domain_repository.core.config import RepositoryConfig
from domain_repository.core.enums import RepositoryEvent
from domain_repository.core.errors import UnableToSaveEntityError
from domain_repository.domain import DataMapper, Entity


def _setup(veto, saves, use_transactions, suppress, hook_veto=False):
    transaction = SpyTransaction()
    repo = TagRepository(
        config=RepositoryConfig(
            use_transactions=use_transactions,
            suppress_save_errors=suppress,
        ),
        transaction=transaction,
    )
    source = FakeDataSource(saves=saves, deletes=saves)
    fired: dict[str, int] = {"after_save": 0, "after_delete": 0}

    if veto:
        repo.on(RepositoryEvent.BEFORE_SAVE, lambda e: e.invalidate())
        repo.on(RepositoryEvent.BEFORE_DELETE, lambda e: e.invalidate())
    if hook_veto:
        repo.add_before_save_hook(lambda entity: False)
        repo.add_before_delete_hook(lambda entity: False)
    repo.on(RepositoryEvent.AFTER_SAVE, lambda e: fired.__setitem__("after_save", fired["after_save"] + 1))
    repo.on(RepositoryEvent.AFTER_DELETE, lambda e: fired.__setitem__("after_delete", fired["after_delete"] + 1))
    return repo, transaction, source, fired


@given(
    veto=st.booleans(),
    hook_veto=st.booleans(),
    saves=st.booleans(),
    use_transactions=st.booleans(),
    suppress=st.booleans(),
    validate=st.booleans(),
)
def test_save_outcome_invariants(veto, hook_veto, saves, use_transactions, suppress, validate):
    repo, transaction, source, fired = _setup(veto, saves, use_transactions, suppress, hook_veto)
    entity = Entity(DataMapper(source))
    save = repo.validate_and_save if validate else repo.save_without_validation

    blocked = veto or hook_veto
    raises = not blocked and not saves and not (use_transactions and suppress)

    if raises:
        with pytest.raises(UnableToSaveEntityError):
            save(entity)
        result = False
    else:
        result = save(entity)

    assert result is (not blocked and saves)
    assert fired["after_save"] == (1 if result else 0)
    assert source.persisted() is (not blocked)

    if use_transactions:
        assert transaction.begins == 1
        assert transaction.commits + transaction.rollbacks == 1
        assert transaction.commits == (1 if result else 0)
    else:
        assert (transaction.begins, transaction.commits, transaction.rollbacks) == (0, 0, 0)


@given(
    veto=st.booleans(),
    hook_veto=st.booleans(),
    deletes=st.booleans(),
)
def test_delete_outcome_invariants(veto, hook_veto, deletes):
    repo, transaction, source, fired = _setup(veto, deletes, True, False, hook_veto)
    entity = Entity(DataMapper(source))

    result = repo.delete(entity)

    blocked = veto or hook_veto
    assert result is (not blocked and deletes)
    assert fired["after_delete"] == (1 if result else 0)
    assert (("delete_record", None) in source.calls) is (not blocked)
    assert transaction.begins == 0
